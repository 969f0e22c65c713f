from __future__ import annotations

from pathlib import Path

import pytest

from persona_setup.catalog import Catalog, CatalogEntry
from persona_setup.personas import Persona
from services.history import InstallationHistory
from services.installer import OperationResult
from services.recommendations import recommend


@pytest.fixture()
def catalog() -> Catalog:
    return Catalog.from_entries(
        [
            CatalogEntry(name="Editor", package_id="Vendor.Editor", dependencies=("Runtime",), category="Dev"),
            CatalogEntry(name="Runtime", package_id="Vendor.Runtime", category="Dev"),
            CatalogEntry(name="Linter", package_id="Vendor.Linter", category="Dev"),
            CatalogEntry(name="Rival", package_id="Vendor.Rival", conflicts=("Editor",), category="Dev"),
            CatalogEntry(name="Player", package_id="Vendor.Player", category="Media"),
        ]
    )


@pytest.fixture()
def persona() -> Persona:
    return Persona(name="Coder", base_apps=["Editor"], optional_apps=["Player"])


def test_dependencies_and_category_score(catalog: Catalog, persona: Persona) -> None:
    items = recommend(persona, catalog)
    assert [(item.name, item.score) for item in items] == [("Runtime", 5), ("Linter", 2)]
    assert items[0].reasons[0] == "required by Editor"


def test_conflicting_and_unrelated_apps_are_dropped(catalog: Catalog, persona: Persona) -> None:
    names = [item.name for item in recommend(persona, catalog)]
    assert "Rival" not in names
    assert "Player" not in names


def test_history_and_peer_personas_adjust_scores(catalog: Catalog, persona: Persona, tmp_path: Path) -> None:
    history = InstallationHistory(tmp_path / "history.json")
    history.record(OperationResult(app="Linter", operation="install", success=True, message="ok"))
    history.record(OperationResult(app="Runtime", operation="install", success=False, message="boom"))
    peer = Persona(name="Reviewer", base_apps=["Editor", "Linter"])
    items = recommend(persona, catalog, history=history, personas=[persona, peer])
    assert [(item.name, item.score) for item in items] == [("Linter", 5), ("Runtime", 3)]
    assert "used by 1 similar persona(s)" in items[0].reasons


def test_limit_is_respected(catalog: Catalog, persona: Persona) -> None:
    assert len(recommend(persona, catalog, limit=1)) == 1
