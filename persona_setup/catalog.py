"""Application catalog: display name to winget package metadata."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    package_id: str
    dependencies: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    system_requirements: Mapping[str, Any] = field(default_factory=dict)
    category: str = DEFAULT_CATEGORY
    description: str = ""
    legacy: bool = False

    def has_metadata(self) -> bool:
        return bool(
            self.dependencies
            or self.conflicts
            or self.system_requirements
            or self.description
            or self.category != DEFAULT_CATEGORY
        )


class Catalog(Mapping):
    """Read-only name -> CatalogEntry view; stores return new instances on change."""

    def __init__(self, entries: Mapping[str, CatalogEntry] | None = None) -> None:
        self._entries: Dict[str, CatalogEntry] = dict(entries or {})

    def __getitem__(self, name: str) -> CatalogEntry:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Catalog({sorted(self._entries)!r})"

    @classmethod
    def from_entries(cls, entries: List[CatalogEntry]) -> "Catalog":
        return cls({entry.name: entry for entry in entries})

    def with_entry(self, entry: CatalogEntry) -> "Catalog":
        entries = dict(self._entries)
        entries[entry.name] = entry
        return Catalog(entries)

    def without(self, name: str) -> "Catalog":
        entries = dict(self._entries)
        entries.pop(name, None)
        return Catalog(entries)

    def by_category(self) -> Dict[str, List[CatalogEntry]]:
        grouped: Dict[str, List[CatalogEntry]] = {}
        for entry in sorted(self._entries.values(), key=lambda item: item.name.lower()):
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def package_ids(self) -> Dict[str, str]:
        return {entry.package_id.lower(): entry.name for entry in self._entries.values()}

    def referencing(self, name: str) -> List[CatalogEntry]:
        return [
            entry
            for entry in self._entries.values()
            if name in entry.dependencies or name in entry.conflicts
        ]


def _name_list(name: str, key: str, value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise CatalogError(f"{name}: '{key}' must be a list of names")
    seen: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise CatalogError(f"{name}: '{key}' contains an invalid name: {item!r}")
        cleaned = item.strip()
        if cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


def entry_from_json(name: str, raw: Any) -> CatalogEntry:
    if not isinstance(name, str) or not name.strip():
        raise CatalogError(f"Invalid catalog entry name: {name!r}")
    name = name.strip()
    if isinstance(raw, str):
        if not raw.strip():
            raise CatalogError(f"{name}: package id is empty")
        return CatalogEntry(name=name, package_id=raw.strip(), legacy=True)
    if not isinstance(raw, dict):
        raise CatalogError(f"{name}: entry must be a package id string or an object")
    package_id = raw.get("id")
    if not isinstance(package_id, str) or not package_id.strip():
        raise CatalogError(f"{name}: missing 'id'")
    requirements = raw.get("system_requirements")
    if requirements is None:
        requirements = {}
    if not isinstance(requirements, dict):
        raise CatalogError(f"{name}: 'system_requirements' must be an object")
    category = raw.get("category") or DEFAULT_CATEGORY
    description = raw.get("description") or ""
    return CatalogEntry(
        name=name,
        package_id=package_id.strip(),
        dependencies=_name_list(name, "dependencies", raw.get("dependencies")),
        conflicts=_name_list(name, "conflicts", raw.get("conflicts")),
        system_requirements=dict(requirements),
        category=str(category),
        description=str(description),
    )


def entry_to_json(entry: CatalogEntry) -> str | dict[str, Any]:
    if entry.legacy and not entry.has_metadata():
        return entry.package_id
    payload: dict[str, Any] = {
        "id": entry.package_id,
        "dependencies": list(entry.dependencies),
        "conflicts": list(entry.conflicts),
        "system_requirements": dict(entry.system_requirements),
        "category": entry.category,
    }
    if entry.description:
        payload["description"] = entry.description
    return payload


def catalog_from_json(data: Any) -> Catalog:
    if not isinstance(data, dict):
        raise CatalogError("Catalog document must be a JSON object")
    return Catalog({entry.name: entry for entry in (entry_from_json(key, value) for key, value in data.items())})


def catalog_to_json(catalog: Catalog) -> dict[str, Any]:
    return {name: entry_to_json(catalog[name]) for name in sorted(catalog)}


class CatalogStore:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> Catalog:
        if not self._path.exists():
            return Catalog()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8-sig"))
        except (json.JSONDecodeError, OSError) as exc:
            raise CatalogError(f"Unable to read catalog {self._path}: {exc}") from exc
        return catalog_from_json(data)

    def save(self, catalog: Catalog) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(catalog_to_json(catalog), indent=2, sort_keys=True)
        self._path.write_text(payload, encoding="utf-8")
        logger.info("Saved catalog with %d entries", len(catalog), extra={"event": "catalog_saved"})

    def add_entry(self, entry: CatalogEntry, *, overwrite: bool = False) -> Catalog:
        catalog = self.load()
        if entry.name in catalog and not overwrite:
            raise CatalogError(f"Catalog already contains {entry.name}")
        catalog = catalog.with_entry(replace(entry, legacy=entry.legacy and not entry.has_metadata()))
        self.save(catalog)
        return catalog

    def update_entry(self, entry: CatalogEntry) -> Catalog:
        catalog = self.load()
        if entry.name not in catalog:
            raise KeyError(entry.name)
        catalog = catalog.with_entry(entry)
        self.save(catalog)
        return catalog

    def remove_entry(self, name: str) -> List[CatalogEntry]:
        catalog = self.load()
        if name not in catalog:
            raise KeyError(name)
        catalog = catalog.without(name)
        self.save(catalog)
        dangling = catalog.referencing(name)
        if dangling:
            logger.warning(
                "%s removed but still referenced by %s",
                name,
                ", ".join(entry.name for entry in dangling),
                extra={"event": "catalog_dangling_reference", "app": name},
            )
        return dangling
