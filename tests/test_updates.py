from __future__ import annotations

import pytest

from conftest import DummyWingetClient
from persona_setup.catalog import Catalog, CatalogEntry
from persona_setup.settings import UserSettings
from services.installer import InstallEngine, WingetError
from services.updates import UpdateService, parse_upgrade_table


def _row(name: str, package_id: str, version: str, available: str, source: str) -> str:
    return f"{name:<20}{package_id:<24}{version:<10}{available:<11}{source}"


UPGRADE_OUTPUT = "\n".join(
    [
        "   - \r   \\ \r" + _row("Name", "Id", "Version", "Available", "Source"),
        "-" * 70,
        _row("Git", "Git.Git", "2.44.0", "2.45.1", "winget"),
        _row("Some Other Tool", "Vendor.Tool", "1.0", "1.1", "winget"),
        _row("VLC media player", "VideoLAN.VLC", "3.0.18", "3.0.20", "winget"),
        "3 upgrades available.",
        "",
        "The following packages have an upgrade available, but require explicit targeting for upgrade:",
        _row("Pinned", "Pinned.App", "1", "2", "winget"),
    ]
)


@pytest.fixture()
def catalog() -> Catalog:
    return Catalog.from_entries(
        [
            CatalogEntry(name="Git", package_id="Git.Git"),
            CatalogEntry(name="VLC", package_id="videolan.vlc"),
            CatalogEntry(name="Zoom", package_id="Zoom.Zoom"),
        ]
    )


def test_parse_upgrade_table_reads_columns() -> None:
    candidates = parse_upgrade_table(UPGRADE_OUTPUT)
    assert [candidate.package_id for candidate in candidates] == ["Git.Git", "Vendor.Tool", "VideoLAN.VLC"]
    git = candidates[0]
    assert git.name == "Git"
    assert git.version == "2.44.0"
    assert git.available == "2.45.1"
    assert git.source == "winget"
    assert candidates[1].name == "Some Other Tool"


def test_parse_upgrade_table_without_table() -> None:
    assert parse_upgrade_table("No installed package found matching input criteria.") == []
    assert parse_upgrade_table("") == []


def test_check_matches_catalog_case_insensitively(catalog: Catalog) -> None:
    client = DummyWingetClient()
    client.upgrade_output = UPGRADE_OUTPUT
    updates = UpdateService(catalog, winget_client=client).check()
    assert [(update.app, update.candidate.available) for update in updates] == [("Git", "2.45.1"), ("VLC", "3.0.20")]


def test_check_requires_winget(catalog: Catalog) -> None:
    client = DummyWingetClient()
    client._available = False
    with pytest.raises(WingetError):
        UpdateService(catalog, winget_client=client).check()


def test_upgrade_runs_each_update_with_progress(catalog: Catalog) -> None:
    client = DummyWingetClient()
    client.upgrade_output = UPGRADE_OUTPUT
    engine = InstallEngine(client, settings=UserSettings(), sleep=lambda _: None)
    service = UpdateService(catalog, winget_client=client, engine=engine)
    progress: list[tuple[int, int, str]] = []
    results = service.upgrade(service.check(), progress_callback=lambda *args: progress.append(args))
    assert client.upgrades == ["Git.Git", "videolan.vlc"]
    assert all(result.success and result.operation == "upgrade" for result in results)
    assert results[0].message == "Upgraded via winget"
    assert progress == [(1, 2, "Git"), (2, 2, "VLC")]
