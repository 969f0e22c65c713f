from __future__ import annotations

from persona_setup.catalog import Catalog, CatalogEntry
from services.resolver import ResolutionResult, describe, resolve


def _catalog(graph: dict[str, dict]) -> Catalog:
    return Catalog.from_entries(
        [
            CatalogEntry(
                name=name,
                package_id=f"Test.{name.replace(' ', '')}",
                dependencies=tuple(data.get("deps", ())),
                conflicts=tuple(data.get("conflicts", ())),
            )
            for name, data in graph.items()
        ]
    )


def test_github_cli_follows_git() -> None:
    catalog = _catalog({"Git": {}, "GitHub CLI": {"deps": ["Git"]}})
    result = resolve(["GitHub CLI"], catalog)
    assert result.installation_order == ("Git", "GitHub CLI")
    assert result.has_issues is False


def test_docker_desktop_follows_wsl2() -> None:
    catalog = _catalog({"Docker Desktop": {"deps": ["WSL2"]}, "WSL2": {}})
    result = resolve(["Docker Desktop"], catalog)
    assert result.installation_order == ("WSL2", "Docker Desktop")


def test_dependencies_precede_dependents() -> None:
    catalog = _catalog(
        {
            "App": {"deps": ["Lib A", "Lib B"]},
            "Lib A": {"deps": ["Runtime"]},
            "Lib B": {"deps": ["Runtime"]},
            "Runtime": {},
        }
    )
    order = resolve(["App"], catalog).installation_order
    for name, data in {"App": ["Lib A", "Lib B"], "Lib A": ["Runtime"], "Lib B": ["Runtime"]}.items():
        for dependency in data:
            assert order.index(dependency) < order.index(name)


def test_shared_dependency_resolved_once_at_first_encounter() -> None:
    catalog = _catalog({"A": {"deps": ["Shared"]}, "B": {"deps": ["Shared"]}, "Shared": {}})
    result = resolve(["A", "B"], catalog)
    assert result.installation_order == ("Shared", "A", "B")


def test_duplicate_requests_appear_once() -> None:
    catalog = _catalog({"Git": {}, "GitHub CLI": {"deps": ["Git"]}})
    result = resolve(["Git", "GitHub CLI", "Git", "GitHub CLI"], catalog)
    assert result.installation_order == ("Git", "GitHub CLI")
    assert len(set(result.installation_order)) == len(result.installation_order)


def test_missing_dependency_reported_and_excluded() -> None:
    catalog = _catalog({"Tool": {"deps": ["Ghost"]}})
    result = resolve(["Tool"], catalog)
    assert result.missing_dependencies == ("Ghost",)
    assert "Ghost" not in result.installation_order
    assert result.installation_order == ("Tool",)
    assert result.has_issues


def test_missing_requested_name_reported_once() -> None:
    result = resolve(["Nope", "Nope"], _catalog({}))
    assert result.missing_dependencies == ("Nope",)
    assert result.installation_order == ()


def test_repeat_resolution_is_identical() -> None:
    catalog = _catalog({"A": {"deps": ["B"]}, "B": {"deps": ["C"]}, "C": {}})
    assert resolve(["A"], catalog) == resolve(["A"], catalog)


def test_two_node_cycle_terminates_and_is_reported() -> None:
    catalog = _catalog({"A": {"deps": ["B"]}, "B": {"deps": ["A"]}})
    result = resolve(["A"], catalog)
    assert result.circular_dependencies == ("A -> B -> A",)
    assert result.has_issues
    assert sorted(result.installation_order) == ["A", "B"]


def test_self_dependency_is_a_cycle() -> None:
    result = resolve(["Loop"], _catalog({"Loop": {"deps": ["Loop"]}}))
    assert result.circular_dependencies == ("Loop -> Loop",)


def test_cycle_path_starts_at_reentered_node() -> None:
    catalog = _catalog({"Root": {"deps": ["X"]}, "X": {"deps": ["Y"]}, "Y": {"deps": ["X"]}})
    result = resolve(["Root"], catalog)
    assert result.circular_dependencies == ("X -> Y -> X",)
    assert result.installation_order[-1] == "Root"


def test_deep_acyclic_chain_is_not_reported_as_circular() -> None:
    # A fixed depth cap of 10 used to flag long chains like this one as cycles.
    names = [f"Layer {index}" for index in range(25)]
    graph = {name: {"deps": [names[index + 1]]} for index, name in enumerate(names[:-1])}
    graph[names[-1]] = {}
    result = resolve([names[0]], _catalog(graph))
    assert result.circular_dependencies == ()
    assert result.installation_order == tuple(reversed(names))


def test_sibling_branches_do_not_inherit_stale_path() -> None:
    catalog = _catalog({"Top": {"deps": ["Left", "Right"]}, "Left": {"deps": ["Leaf"]}, "Right": {"deps": ["Leaf"]}, "Leaf": {}})
    result = resolve(["Top"], catalog)
    assert result.circular_dependencies == ()
    assert result.installation_order == ("Leaf", "Left", "Right", "Top")


def test_mutual_conflict_surfaces() -> None:
    catalog = _catalog({"X": {"conflicts": ["Y"]}, "Y": {"conflicts": ["X"]}})
    result = resolve(["X", "Y"], catalog)
    assert result.conflicts == ("Y conflicts with X",)
    assert result.has_issues is True


def test_one_sided_conflict_only_checks_visited_names() -> None:
    # Only the later-processed side sees the conflict; the earlier side is not re-checked.
    catalog = _catalog({"X": {"conflicts": ["Y"]}, "Y": {}})
    assert resolve(["X", "Y"], catalog).conflicts == ()
    assert resolve(["Y", "X"], catalog).conflicts == ("X conflicts with Y",)


def test_dangling_conflict_reference_is_ignored() -> None:
    result = resolve(["A"], _catalog({"A": {"conflicts": ["Unknown"]}}))
    assert result.has_issues is False


def test_describe_lists_sections() -> None:
    result = ResolutionResult(
        installation_order=("Git",),
        conflicts=("A conflicts with B",),
        missing_dependencies=("Ghost",),
    )
    lines = describe(result)
    assert lines[0] == "Installation order:"
    assert "  1. Git" in lines
    assert "Conflicts:" in lines
    assert "  - Ghost" in lines
    assert "No dependency issues detected." not in lines


def test_describe_clean_result() -> None:
    lines = describe(ResolutionResult(installation_order=()))
    assert "  (nothing to install)" in lines
    assert lines[-1] == "No dependency issues detected."
