"""CLI entrypoint: interactive menu plus scripted persona operations."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from rich.console import Console

from persona_setup.catalog import CatalogError
from persona_setup.logging_utils import configure_logging
from persona_setup.personas import PersonaError
from persona_setup.settings import SettingsStore
from services.installer import WingetError
from services.privilege import ensure_admin
from services.workspace import Workspace, open_workspace
from ui.console import ConsoleApp, render_requirements, render_resolution, render_results

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="persona-setup", description="Install Windows application personas with winget")
    parser.add_argument("--settings", type=Path, help="Path to settings.json")
    parser.add_argument("--data-dir", help="Override the data directory")
    parser.add_argument("--log-level", help="Override the log level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("menu", help="Interactive menu (default)")
    sub.add_parser("personas", help="List personas")

    resolve_cmd = sub.add_parser("resolve", help="Show the installation order for a persona")
    resolve_cmd.add_argument("persona")
    resolve_cmd.add_argument("--optional", nargs="*", default=[], help="Optional apps to include")

    install_cmd = sub.add_parser("install", help="Install a persona")
    install_cmd.add_argument("persona")
    install_cmd.add_argument("--optional", nargs="*", default=[], help="Optional apps to include")
    install_cmd.add_argument("--yes", action="store_true", help="Continue past dependency issues")
    install_cmd.add_argument("--dry-run", action="store_true", help="Resolve only; do not run winget")

    updates_cmd = sub.add_parser("updates", help="List catalog applications with available upgrades")
    updates_cmd.add_argument("--apply", action="store_true", help="Upgrade everything listed")

    sub.add_parser("backup", help="Back up all personas")

    restore_cmd = sub.add_parser("restore", help="Restore personas from a backup file")
    restore_cmd.add_argument("file", type=Path)
    restore_cmd.add_argument("--overwrite", action="store_true")

    history_cmd = sub.add_parser("history", help="Show recent installations")
    history_cmd.add_argument("--limit", type=int, default=20)
    return parser


def _cmd_personas(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    for persona in workspace.persona_store.load_all():
        optional = f" (+ optional: {', '.join(persona.optional_apps)})" if persona.optional_apps else ""
        console.print(f"[bold]{persona.name}[/]: {', '.join(persona.base_apps)}{optional}")
    return 0


def _cmd_resolve(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    persona = workspace.persona_store.load(args.persona)
    installer = workspace.installer()
    resolution = installer.resolve(persona, args.optional)
    render_resolution(console, resolution)
    if workspace.settings.check_requirements:
        render_requirements(console, workspace.requirements.check_all(resolution.installation_order, installer.catalog))
    return 1 if resolution.has_issues else 0


def _cmd_install(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    persona = workspace.persona_store.load(args.persona)
    installer = workspace.installer()
    resolution = installer.resolve(persona, args.optional)
    render_resolution(console, resolution)
    if resolution.has_issues and (workspace.settings.block_on_issues or not args.yes):
        console.print("[red]Dependency issues detected; re-run with --yes to continue anyway.[/]")
        return 1
    if args.dry_run:
        return 0
    if not ensure_admin():
        console.print("[red]Administrator privileges are required to install applications.[/]")
        return 1
    results = installer.install_plan(
        resolution.installation_order,
        persona=persona.name,
        status_callback=lambda name: console.print(f"Installing {name}..."),
    )
    render_results(console, results, title=f"{persona.name} installation")
    return 0 if all(result.success for result in results) else 1


def _cmd_updates(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    service = workspace.updates()
    updates = service.check()
    if not updates:
        console.print("All catalog applications are up to date.")
        return 0
    for update in updates:
        console.print(f"{update.app}: {update.candidate.version} -> {update.candidate.available}")
    if not args.apply:
        return 0
    if not ensure_admin():
        console.print("[red]Administrator privileges are required to upgrade applications.[/]")
        return 1
    results = service.upgrade(updates)
    for result in results:
        workspace.history.record(result)
    render_results(console, results, title="Upgrades")
    return 0 if all(result.success for result in results) else 1


def _cmd_backup(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    path = workspace.backups.create()
    console.print(f"Backup written to {path}")
    return 0


def _cmd_restore(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    report = workspace.backups.restore(args.file, overwrite=args.overwrite)
    console.print(f"Restored: {', '.join(report.restored) or 'none'}")
    if report.skipped:
        console.print(f"Skipped existing: {', '.join(report.skipped)}")
    return 0


def _cmd_history(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    for record in workspace.history.recent(args.limit):
        status = "OK" if record.success else "FAILED"
        console.print(f"{record.timestamp}  {record.app:<28} {status:<7} {record.message}")
    return 0


def _cmd_menu(workspace: Workspace, args: argparse.Namespace, console: Console) -> int:
    return ConsoleApp(workspace, console=console).run()


COMMANDS = {
    "menu": _cmd_menu,
    "personas": _cmd_personas,
    "resolve": _cmd_resolve,
    "install": _cmd_install,
    "updates": _cmd_updates,
    "backup": _cmd_backup,
    "restore": _cmd_restore,
    "history": _cmd_history,
}


def main(argv: Sequence[str] | None = None, *, workspace: Workspace | None = None, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    if workspace is None:
        settings = SettingsStore(args.settings).load() if args.settings else SettingsStore().load()
        if args.data_dir:
            settings.data_dir = args.data_dir
        if args.log_level:
            settings.log_level = args.log_level.upper()
        configure_logging(settings.data_paths().logs, settings.log_level, console=console)
        workspace = open_workspace(settings)
    handler = COMMANDS[args.command or "menu"]
    try:
        return handler(workspace, args, console)
    except KeyError as exc:
        console.print(f"[red]Unknown persona or application: {exc.args[0]}[/]")
        return 1
    except (CatalogError, PersonaError, WingetError, ValueError) as exc:
        logger.error("%s failed: %s", args.command or "menu", exc, extra={"event": "command_failed"})
        console.print(f"[red]Error:[/] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
