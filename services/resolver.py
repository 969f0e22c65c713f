"""Dependency resolution over the application catalog.

`resolve` expands a requested list of app names into an installation order in
which every dependency precedes its dependents. Missing entries, cycles and
declared conflicts are reported in the result rather than raised, so callers
can decide whether to warn or stop.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Tuple

from persona_setup.catalog import CatalogEntry


@dataclass(frozen=True)
class ResolutionResult:
    installation_order: Tuple[str, ...]
    conflicts: Tuple[str, ...] = ()
    missing_dependencies: Tuple[str, ...] = ()
    circular_dependencies: Tuple[str, ...] = ()

    @property
    def has_issues(self) -> bool:
        return bool(self.conflicts or self.missing_dependencies or self.circular_dependencies)


class _Walk:
    def __init__(self, catalog: Mapping[str, CatalogEntry]) -> None:
        self.catalog = catalog
        self.resolved: List[str] = []
        self.visited: set[str] = set()
        # Names on the active DFS path; `path` keeps their order for messages.
        self.visiting: set[str] = set()
        self.path: List[str] = []
        self.conflicts: List[str] = []
        self.missing: List[str] = []
        self.circular: List[str] = []

    def visit(self, name: str) -> None:
        if name in self.visited:
            return
        if name in self.visiting:
            cycle = self.path[self.path.index(name):] + [name]
            message = " -> ".join(cycle)
            if message not in self.circular:
                self.circular.append(message)
            return
        entry = self.catalog.get(name)
        if entry is None:
            if name not in self.missing:
                self.missing.append(name)
            return
        self.visiting.add(name)
        self.path.append(name)
        try:
            for conflict in entry.conflicts:
                if conflict in self.visited:
                    message = f"{name} conflicts with {conflict}"
                    if message not in self.conflicts:
                        self.conflicts.append(message)
            for dependency in entry.dependencies:
                if dependency not in self.visited:
                    self.visit(dependency)
            if name not in self.visited:
                self.resolved.append(name)
                self.visited.add(name)
        finally:
            self.path.pop()
            self.visiting.discard(name)


def resolve(requested_names: Iterable[str], catalog: Mapping[str, CatalogEntry]) -> ResolutionResult:
    walk = _Walk(catalog)
    for name in requested_names:
        walk.visit(name)
    return ResolutionResult(
        installation_order=tuple(walk.resolved),
        conflicts=tuple(walk.conflicts),
        missing_dependencies=tuple(walk.missing),
        circular_dependencies=tuple(walk.circular),
    )


def describe(result: ResolutionResult) -> List[str]:
    lines = ["Installation order:"]
    if result.installation_order:
        lines.extend(f"  {index}. {name}" for index, name in enumerate(result.installation_order, start=1))
    else:
        lines.append("  (nothing to install)")
    sections = (
        ("Conflicts", result.conflicts),
        ("Missing dependencies", result.missing_dependencies),
        ("Circular dependencies", result.circular_dependencies),
    )
    for title, items in sections:
        if items:
            lines.append(f"{title}:")
            lines.extend(f"  - {item}" for item in items)
    if not result.has_issues:
        lines.append("No dependency issues detected.")
    return lines
