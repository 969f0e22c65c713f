from __future__ import annotations

import io

import pytest
from rich.console import Console

import cli
from persona_setup.personas import Persona
from services.workspace import Workspace

UPGRADE_OUTPUT = "\n".join(
    [
        f"{'Name':<12}{'Id':<16}{'Version':<10}{'Available':<11}Source",
        "-" * 55,
        f"{'Git':<12}{'Git.Git':<16}{'2.44.0':<10}{'2.45.1':<11}winget",
        "1 upgrades available.",
    ]
)


@pytest.fixture(autouse=True)
def _admin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "ensure_admin", lambda: True)


@pytest.fixture()
def console() -> Console:
    return Console(file=io.StringIO(), width=200)


def _output(console: Console) -> str:
    return console.file.getvalue()


def test_parser_defaults_to_menu() -> None:
    args = cli.build_parser().parse_args([])
    assert args.command is None
    args = cli.build_parser().parse_args(["install", "Developer", "--optional", "Docker Desktop", "--dry-run"])
    assert args.optional == ["Docker Desktop"]
    assert args.dry_run is True


def test_personas_lists_seeded_personas(workspace: Workspace, console: Console) -> None:
    assert cli.main(["personas"], workspace=workspace, console=console) == 0
    assert "Developer" in _output(console)
    assert "Streamer" in _output(console)


def test_resolve_exit_code_reflects_issues(workspace: Workspace, console: Console) -> None:
    assert cli.main(["resolve", "Developer", "--optional", "GitHub CLI"], workspace=workspace, console=console) == 0
    assert cli.main(
        ["resolve", "Developer", "--optional", "Docker Desktop", "Podman Desktop"], workspace=workspace, console=console
    ) == 1
    assert "Podman Desktop conflicts with Docker Desktop" in _output(console)


def test_install_orders_dependencies(workspace: Workspace, console: Console, winget) -> None:
    assert cli.main(["install", "Developer", "--optional", "Docker Desktop"], workspace=workspace, console=console) == 0
    ids = [install[0] for install in winget.installs]
    assert ids.index("Microsoft.WSL") < ids.index("Docker.DockerDesktop")
    assert len(workspace.history.load()) == len(ids)


def test_install_refuses_issues_without_yes(workspace: Workspace, console: Console, winget) -> None:
    args = ["install", "Developer", "--optional", "Docker Desktop", "Podman Desktop"]
    assert cli.main(args, workspace=workspace, console=console) == 1
    assert winget.installs == []
    assert cli.main([*args, "--yes", "--dry-run"], workspace=workspace, console=console) == 0
    assert winget.installs == []


def test_failed_install_returns_non_zero(workspace: Workspace, console: Console, winget) -> None:
    winget.install_codes["Git.Git"] = [0x8A150010, 0x8A150010]
    assert cli.main(["install", "Developer"], workspace=workspace, console=console) == 1
    assert workspace.history.last_status("Git") is False


def test_unknown_persona_and_optional(workspace: Workspace, console: Console) -> None:
    assert cli.main(["resolve", "Nobody"], workspace=workspace, console=console) == 1
    assert "Unknown persona or application: Nobody" in _output(console)
    assert cli.main(["resolve", "Developer", "--optional", "Photoshop"], workspace=workspace, console=console) == 1


def test_updates_and_apply(workspace: Workspace, console: Console, winget) -> None:
    winget.upgrade_output = UPGRADE_OUTPUT
    assert cli.main(["updates"], workspace=workspace, console=console) == 0
    assert "Git: 2.44.0 -> 2.45.1" in _output(console)
    assert winget.upgrades == []
    assert cli.main(["updates", "--apply"], workspace=workspace, console=console) == 0
    assert winget.upgrades == ["Git.Git"]
    assert workspace.history.recent(1)[0].operation == "upgrade"


def test_backup_restore_and_history(workspace: Workspace, console: Console) -> None:
    assert cli.main(["backup"], workspace=workspace, console=console) == 0
    backup = workspace.backups.list_backups()[0].path
    workspace.persona_store.delete("Designer")
    workspace.persona_store.save(Persona(name="Developer", base_apps=["Git"]))
    assert cli.main(["restore", str(backup)], workspace=workspace, console=console) == 0
    assert workspace.persona_store.exists("Designer")
    assert workspace.persona_store.load("Developer").base_apps == ["Git"]
    assert cli.main(["restore", str(backup), "--overwrite"], workspace=workspace, console=console) == 0
    assert "Visual Studio Code" in workspace.persona_store.load("Developer").base_apps

    cli.main(["install", "Streamer"], workspace=workspace, console=console)
    assert cli.main(["history", "--limit", "1"], workspace=workspace, console=console) == 0
    assert "VLC" in _output(console)
