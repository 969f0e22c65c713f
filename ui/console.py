"""Interactive console menu built on rich."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from persona_setup.catalog import CatalogEntry, CatalogError
from persona_setup.personas import Persona, PersonaError, validate_persona
from services.installer import OperationResult, WingetError
from services.privilege import ensure_admin
from services.recommendations import recommend
from services.requirements import RequirementCheckResult
from services.resolver import ResolutionResult
from services.workspace import Workspace

logger = logging.getLogger(__name__)

AskCallback = Callable[[str], str]

MAIN_MENU = (
    ("1", "Install a persona"),
    ("2", "Preview dependency resolution"),
    ("3", "Manage personas"),
    ("4", "Manage catalog"),
    ("5", "Installation history"),
    ("6", "Backup / restore personas"),
    ("7", "Check for updates"),
    ("8", "Recommendations"),
    ("0", "Exit"),
)


class _Exit(Exception):
    pass


def split_names(text: str) -> List[str]:
    names: List[str] = []
    for part in text.split(","):
        cleaned = part.strip()
        if cleaned and cleaned not in names:
            names.append(cleaned)
    return names


def render_resolution(console: Console, result: ResolutionResult) -> None:
    table = Table(title="Installation order", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Application")
    for index, name in enumerate(result.installation_order, start=1):
        table.add_row(str(index), name)
    if not result.installation_order:
        table.add_row("-", "(nothing to install)")
    console.print(table)
    sections = (
        ("Conflicts", result.conflicts, "yellow"),
        ("Missing dependencies", result.missing_dependencies, "red"),
        ("Circular dependencies", result.circular_dependencies, "red"),
    )
    for title, items, style in sections:
        if items:
            console.print(f"[bold {style}]{title}:[/]")
            for item in items:
                console.print(f"  - {item}", style=style)
    if not result.has_issues:
        console.print("[green]No dependency issues detected.[/]")


def render_requirements(console: Console, checks: Sequence[RequirementCheckResult]) -> None:
    if not checks:
        return
    table = Table(title="System requirements")
    for column in ("Application", "Requirement", "Expected", "Actual", "OK"):
        table.add_column(column)
    for check in checks:
        status = "[green]yes[/]" if check.satisfied else "[red]no[/]"
        table.add_row(check.app, check.name, check.expected, check.actual, status)
    console.print(table)


def render_results(console: Console, results: Sequence[OperationResult], title: str = "Results") -> None:
    table = Table(title=title)
    for column in ("Application", "Status", "Attempts", "Message"):
        table.add_column(column)
    for result in results:
        status = "[green]OK[/]" if result.success else "[red]FAILED[/]"
        table.add_row(result.app, status, str(result.attempts), result.message)
    console.print(table)
    failed = sum(1 for result in results if not result.success)
    summary = f"{len(results) - failed} succeeded, {failed} failed"
    console.print(f"[bold]{summary}[/]")


class ConsoleApp:
    def __init__(
        self,
        workspace: Workspace,
        *,
        console: Console | None = None,
        ask: AskCallback | None = None,
        admin_check: Callable[[], bool] = ensure_admin,
    ) -> None:
        self._workspace = workspace
        self._console = console or Console()
        self._ask_fn = ask or self._console.input
        self._admin_check = admin_check
        self._actions = {
            "1": self.install_persona,
            "2": self.preview_resolution,
            "3": self.manage_personas,
            "4": self.manage_catalog,
            "5": self.show_history,
            "6": self.backup_restore,
            "7": self.check_updates,
            "8": self.show_recommendations,
        }

    def run(self) -> int:
        self._console.print(Panel.fit("Persona Setup", subtitle="winget persona installer"))
        while True:
            self._print_menu(MAIN_MENU)
            try:
                choice = self._ask("Select an option: ")
            except _Exit:
                break
            if choice in {"0", "q", "quit", "exit"}:
                break
            action = self._actions.get(choice)
            if action is None:
                self._console.print(f"[red]Unknown option: {choice}[/]")
                continue
            try:
                action()
            except _Exit:
                break
            except (CatalogError, PersonaError, WingetError, KeyError, ValueError) as exc:
                logger.error("Menu action failed: %s", exc, extra={"event": "menu_error"})
                self._console.print(f"[red]Error:[/] {exc}")
        self._console.print("Goodbye.")
        return 0

    # Install / preview

    def install_persona(self) -> None:
        persona = self._choose_persona()
        if persona is None:
            return
        optional = self._choose_optional(persona)
        installer = self._workspace.installer()
        resolution = installer.resolve(persona, optional)
        render_resolution(self._console, resolution)
        if resolution.has_issues:
            if self._workspace.settings.block_on_issues:
                self._console.print("[red]Installation blocked: resolve the issues above first.[/]")
                return
            if not self._confirm("Dependency issues detected. Continue anyway?"):
                return
        order = list(resolution.installation_order)
        if not order:
            self._console.print("Nothing to install.")
            return
        if not self._confirm(f"Install {len(order)} application(s)?", default=True):
            return
        if not self._admin_check():
            self._console.print("[red]Administrator privileges are required to install applications.[/]")
            return
        results = self._run_with_progress(
            "Installing",
            len(order),
            lambda progress, status: installer.install_plan(
                order,
                persona=persona.name,
                progress_callback=progress,
                status_callback=status,
            ),
        )
        render_results(self._console, results, title=f"{persona.name} installation")

    def preview_resolution(self) -> None:
        persona = self._choose_persona()
        if persona is None:
            return
        optional = self._choose_optional(persona)
        installer = self._workspace.installer()
        resolution = installer.resolve(persona, optional)
        render_resolution(self._console, resolution)
        if self._workspace.settings.check_requirements:
            checks = self._workspace.requirements.check_all(resolution.installation_order, installer.catalog)
            render_requirements(self._console, checks)

    # Personas

    def manage_personas(self) -> None:
        menu = (("1", "List personas"), ("2", "Create persona"), ("3", "Edit persona"), ("4", "Delete persona"), ("0", "Back"))
        actions = {"1": self.list_personas, "2": self.create_persona, "3": self.edit_persona, "4": self.delete_persona}
        self._submenu("Personas", menu, actions)

    def list_personas(self) -> None:
        personas = self._workspace.persona_store.load_all()
        table = Table(title="Personas")
        for column in ("Name", "Description", "Base apps", "Optional apps"):
            table.add_column(column)
        for persona in personas:
            table.add_row(persona.name, persona.description, ", ".join(persona.base_apps), ", ".join(persona.optional_apps))
        self._console.print(table)

    def create_persona(self) -> None:
        name = self._ask("Persona name: ")
        if not name:
            return
        if self._workspace.persona_store.exists(name):
            self._console.print(f"[red]Persona {name} already exists.[/]")
            return
        persona = Persona(
            name=name,
            description=self._ask("Description: "),
            base_apps=split_names(self._ask("Base apps (comma separated): ")),
            optional_apps=split_names(self._ask("Optional apps (comma separated): ")),
        )
        self._save_persona(persona, overwrite=False)

    def edit_persona(self) -> None:
        persona = self._choose_persona()
        if persona is None:
            return
        description = self._ask(f"Description [{persona.description}]: ")
        base = self._ask(f"Base apps [{', '.join(persona.base_apps)}]: ")
        optional = self._ask(f"Optional apps [{', '.join(persona.optional_apps)}]: ")
        updated = Persona(
            name=persona.name,
            description=description or persona.description,
            base_apps=split_names(base) if base else list(persona.base_apps),
            optional_apps=split_names(optional) if optional else list(persona.optional_apps),
        )
        self._save_persona(updated, overwrite=True)

    def delete_persona(self) -> None:
        persona = self._choose_persona()
        if persona is None:
            return
        if self._confirm(f"Delete persona {persona.name}?"):
            self._workspace.persona_store.delete(persona.name)
            self._console.print(f"Deleted {persona.name}.")

    # Catalog

    def manage_catalog(self) -> None:
        menu = (("1", "List catalog"), ("2", "Add application"), ("3", "Edit application"), ("4", "Remove application"), ("0", "Back"))
        actions = {"1": self.list_catalog, "2": self.add_catalog_entry, "3": self.edit_catalog_entry, "4": self.remove_catalog_entry}
        self._submenu("Catalog", menu, actions)

    def list_catalog(self) -> None:
        catalog = self._workspace.catalog()
        table = Table(title=f"Catalog ({len(catalog)} applications)")
        for column in ("Category", "Application", "Package Id", "Dependencies", "Conflicts"):
            table.add_column(column)
        for category, entries in sorted(catalog.by_category().items()):
            for entry in entries:
                table.add_row(category, entry.name, entry.package_id, ", ".join(entry.dependencies), ", ".join(entry.conflicts))
        self._console.print(table)

    def add_catalog_entry(self) -> None:
        name = self._ask("Application name: ")
        if not name:
            return
        package_id = self._ask("winget package id: ")
        if not package_id:
            self._console.print("[red]A package id is required.[/]")
            return
        entry = CatalogEntry(
            name=name,
            package_id=package_id,
            category=self._ask("Category [General]: ") or "General",
            dependencies=tuple(split_names(self._ask("Dependencies (comma separated): "))),
            conflicts=tuple(split_names(self._ask("Conflicts (comma separated): "))),
        )
        catalog = self._workspace.catalog_store.add_entry(entry)
        unknown = [item for item in (*entry.dependencies, *entry.conflicts) if item not in catalog]
        if unknown:
            self._console.print(f"[yellow]Not in catalog yet: {', '.join(unknown)}[/]")
        self._console.print(f"Added {name}.")

    def edit_catalog_entry(self) -> None:
        catalog = self._workspace.catalog()
        name = self._choose("Application", sorted(catalog))
        if name is None:
            return
        entry = catalog[name]
        package_id = self._ask(f"winget package id [{entry.package_id}]: ")
        category = self._ask(f"Category [{entry.category}]: ")
        dependencies = self._ask(f"Dependencies [{', '.join(entry.dependencies)}]: ")
        conflicts = self._ask(f"Conflicts [{', '.join(entry.conflicts)}]: ")
        updated = CatalogEntry(
            name=entry.name,
            package_id=package_id or entry.package_id,
            dependencies=tuple(split_names(dependencies)) if dependencies else entry.dependencies,
            conflicts=tuple(split_names(conflicts)) if conflicts else entry.conflicts,
            system_requirements=entry.system_requirements,
            category=category or entry.category,
            description=entry.description,
        )
        self._workspace.catalog_store.update_entry(updated)
        self._console.print(f"Updated {name}.")

    def remove_catalog_entry(self) -> None:
        catalog = self._workspace.catalog()
        name = self._choose("Application", sorted(catalog))
        if name is None or not self._confirm(f"Remove {name} from the catalog?"):
            return
        dangling = self._workspace.catalog_store.remove_entry(name)
        self._console.print(f"Removed {name}.")
        if dangling:
            self._console.print(f"[yellow]Still referenced by: {', '.join(entry.name for entry in dangling)}[/]")

    # History / backups / updates / recommendations

    def show_history(self) -> None:
        records = self._workspace.history.recent(20)
        if not records:
            self._console.print("No installations recorded yet.")
            return
        table = Table(title="Recent installations")
        for column in ("When", "Persona", "Application", "Operation", "Status", "Message"):
            table.add_column(column)
        for record in records:
            status = "[green]OK[/]" if record.success else "[red]FAILED[/]"
            table.add_row(record.timestamp, record.persona or "-", record.app, record.operation, status, record.message)
        self._console.print(table)

    def backup_restore(self) -> None:
        menu = (("1", "Create backup"), ("2", "Restore backup"), ("3", "List backups"), ("0", "Back"))
        actions = {"1": self.create_backup, "2": self.restore_backup, "3": self.list_backups}
        self._submenu("Backups", menu, actions)

    def create_backup(self) -> None:
        path = self._workspace.backups.create()
        self._console.print(f"Backup written to {path}")

    def list_backups(self) -> None:
        backups = self._workspace.backups.list_backups()
        if not backups:
            self._console.print("No backups found.")
            return
        table = Table(title="Persona backups")
        for column in ("File", "Created", "Personas"):
            table.add_column(column)
        for info in backups:
            table.add_row(info.path.name, info.created, ", ".join(info.persona_names))
        self._console.print(table)

    def restore_backup(self) -> None:
        backups = self._workspace.backups.list_backups()
        if not backups:
            self._console.print("No backups found.")
            return
        choice = self._choose("Backup", [info.path.name for info in backups])
        if choice is None:
            return
        info = next(item for item in backups if item.path.name == choice)
        overwrite = self._confirm("Overwrite personas that already exist?")
        report = self._workspace.backups.restore(info.path, overwrite=overwrite)
        self._console.print(f"Restored: {', '.join(report.restored) or 'none'}")
        if report.skipped:
            self._console.print(f"[yellow]Skipped existing: {', '.join(report.skipped)}[/]")

    def check_updates(self) -> None:
        service = self._workspace.updates()
        with self._console.status("Checking for updates..."):
            updates = service.check()
        if not updates:
            self._console.print("[green]All catalog applications are up to date.[/]")
            return
        table = Table(title="Available updates")
        for column in ("Application", "Package Id", "Installed", "Available"):
            table.add_column(column)
        for update in updates:
            table.add_row(update.app, update.candidate.package_id, update.candidate.version, update.candidate.available)
        self._console.print(table)
        if not self._confirm(f"Upgrade {len(updates)} application(s)?"):
            return
        if not self._admin_check():
            self._console.print("[red]Administrator privileges are required to upgrade applications.[/]")
            return
        results = self._run_with_progress(
            "Upgrading",
            len(updates),
            lambda progress, status: service.upgrade(updates, progress_callback=progress),
        )
        for result in results:
            self._workspace.history.record(result)
        render_results(self._console, results, title="Upgrades")

    def show_recommendations(self) -> None:
        persona = self._choose_persona()
        if persona is None:
            return
        items = recommend(
            persona,
            self._workspace.catalog(),
            history=self._workspace.history,
            personas=self._workspace.persona_store.load_all(),
        )
        if not items:
            self._console.print("No recommendations for this persona.")
            return
        table = Table(title=f"Recommended for {persona.name}")
        for column in ("Application", "Score", "Why"):
            table.add_column(column)
        for item in items:
            table.add_row(item.name, str(item.score), "; ".join(item.reasons))
        self._console.print(table)

    # Helpers

    def _ask(self, prompt: str) -> str:
        try:
            return self._ask_fn(prompt).strip()
        except (EOFError, KeyboardInterrupt) as exc:
            raise _Exit() from exc

    def _confirm(self, prompt: str, *, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        answer = self._ask(f"{prompt} {suffix}: ").lower()
        if not answer:
            return default
        return answer in {"y", "yes"}

    def _print_menu(self, menu: Iterable[tuple[str, str]]) -> None:
        for key, label in menu:
            self._console.print(f"  [bold cyan]{key}[/]) {label}")

    def _submenu(self, title: str, menu: Sequence[tuple[str, str]], actions: dict[str, Callable[[], None]]) -> None:
        while True:
            self._console.print(f"[bold]{title}[/]")
            self._print_menu(menu)
            choice = self._ask("Select an option: ")
            if choice in {"0", ""}:
                return
            action = actions.get(choice)
            if action is None:
                self._console.print(f"[red]Unknown option: {choice}[/]")
                continue
            action()

    def _choose(self, label: str, options: Sequence[str]) -> str | None:
        if not options:
            self._console.print(f"No {label.lower()} entries available.")
            return None
        for index, option in enumerate(options, start=1):
            self._console.print(f"  {index}) {option}")
        answer = self._ask(f"{label} (number or name, blank to cancel): ")
        if not answer:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        if answer in options:
            return answer
        self._console.print(f"[red]Unknown {label.lower()}: {answer}[/]")
        return None

    def _choose_persona(self) -> Persona | None:
        personas = self._workspace.persona_store.load_all()
        name = self._choose("Persona", [persona.name for persona in personas])
        if name is None:
            return None
        return next(persona for persona in personas if persona.name == name)

    def _choose_optional(self, persona: Persona) -> List[str]:
        if not persona.optional_apps:
            return []
        self._console.print(f"Optional apps for {persona.name}:")
        for index, name in enumerate(persona.optional_apps, start=1):
            self._console.print(f"  {index}) {name}")
        answer = self._ask("Optional apps (numbers or names, comma separated, 'all', blank for none): ")
        if answer.lower() == "all":
            return list(persona.optional_apps)
        chosen: List[str] = []
        for token in split_names(answer):
            if token.isdigit() and 1 <= int(token) <= len(persona.optional_apps):
                name = persona.optional_apps[int(token) - 1]
            elif token in persona.optional_apps:
                name = token
            else:
                self._console.print(f"[yellow]Ignoring unknown optional app: {token}[/]")
                continue
            if name not in chosen:
                chosen.append(name)
        return chosen

    def _save_persona(self, persona: Persona, *, overwrite: bool) -> None:
        unknown = validate_persona(persona, self._workspace.catalog())
        if unknown:
            self._console.print(f"[yellow]Not in catalog: {', '.join(unknown)}[/]")
        self._workspace.persona_store.save(persona, overwrite=overwrite)
        self._console.print(f"Saved persona {persona.name}.")

    def _run_with_progress(self, label: str, total: int, job: Callable) -> list:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=self._console,
            transient=True,
        ) as progress:
            task = progress.add_task(label, total=total)

            def _on_progress(current: int, count: int, name: str) -> None:
                progress.update(task, completed=current, total=count)

            def _on_status(name: str) -> None:
                progress.update(task, description=f"{label} {name}")

            return job(_on_progress, _on_status)
