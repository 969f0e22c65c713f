from __future__ import annotations

import io

from rich.console import Console

from persona_setup.personas import Persona
from services.workspace import Workspace
from ui.console import ConsoleApp, split_names


def _script(*answers: str):
    pending = list(answers)

    def ask(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return ask


def _run(workspace: Workspace, *answers: str) -> str:
    console = Console(file=io.StringIO(), width=200)
    app = ConsoleApp(workspace, console=console, ask=_script(*answers), admin_check=lambda: True)
    assert app.run() == 0
    return console.file.getvalue()


def test_split_names() -> None:
    assert split_names(" Git, ,VLC,Git ") == ["Git", "VLC"]


def test_end_of_input_exits_cleanly(workspace: Workspace) -> None:
    assert "Goodbye." in _run(workspace)


def test_unknown_option_is_reported(workspace: Workspace) -> None:
    assert "Unknown option: 9" in _run(workspace, "9", "0")


def test_install_persona_from_menu(workspace: Workspace, winget) -> None:
    # Personas are listed alphabetically: Designer, Developer, Office Worker, Streamer.
    output = _run(workspace, "1", "2", "", "", "0")
    assert [install[0] for install in winget.installs] == [
        "Git.Git",
        "Microsoft.VisualStudioCode",
        "Microsoft.WindowsTerminal",
        "Microsoft.PowerShell",
        "7zip.7zip",
    ]
    assert "5 succeeded, 0 failed" in output
    assert {record.persona for record in workspace.history.load()} == {"Developer"}


def test_install_stops_when_issues_not_confirmed(workspace: Workspace, winget) -> None:
    workspace.persona_store.save(Persona(name="Broken", base_apps=["Git", "Ghost"]))
    output = _run(workspace, "1", "1", "n", "0")
    assert "Missing dependencies" in output
    assert winget.installs == []


def test_create_persona_warns_about_unknown_apps(workspace: Workspace) -> None:
    output = _run(workspace, "3", "2", "Tester", "Testing", "Git, Ghost", "", "0", "0")
    assert "Not in catalog: Ghost" in output
    persona = workspace.persona_store.load("Tester")
    assert persona.base_apps == ["Git", "Ghost"]
    assert persona.description == "Testing"


def test_add_and_remove_catalog_entries(workspace: Workspace) -> None:
    _run(workspace, "4", "2", "Scoop", "ScoopInstaller.Scoop", "Tools", "Git", "", "0", "0")
    entry = workspace.catalog()["Scoop"]
    assert entry.dependencies == ("Git",)
    assert entry.category == "Tools"

    output = _run(workspace, "4", "4", "Git", "y", "0", "0")
    assert "Still referenced by: GitHub CLI, Scoop" in output
    assert "Git" not in workspace.catalog()


def test_backup_from_menu(workspace: Workspace) -> None:
    output = _run(workspace, "6", "1", "3", "0", "0")
    assert "Backup written to" in output
    assert len(workspace.backups.list_backups()) == 1


def test_update_check_errors_are_reported(workspace: Workspace, winget) -> None:
    winget._available = False
    output = _run(workspace, "7", "0")
    assert "Error:" in output
    assert "winget executable not found" in output


def test_recommendations_for_persona(workspace: Workspace) -> None:
    output = _run(workspace, "8", "2", "0")
    assert "Recommended for Developer" in output
    assert "GitHub CLI" in output
