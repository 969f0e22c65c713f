"""Persona definitions: named bundles of base and optional applications."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping

logger = logging.getLogger(__name__)


class PersonaError(ValueError):
    pass


def _unique(names: Iterable[str]) -> List[str]:
    result: List[str] = []
    for name in names:
        if name not in result:
            result.append(name)
    return result


@dataclass
class Persona:
    name: str
    description: str = ""
    base_apps: List[str] = field(default_factory=list)
    optional_apps: List[str] = field(default_factory=list)

    def all_apps(self) -> List[str]:
        return _unique([*self.base_apps, *self.optional_apps])

    def selection(self, optional: Iterable[str] = ()) -> List[str]:
        wanted = list(optional)
        unknown = [name for name in wanted if name not in self.optional_apps]
        if unknown:
            raise ValueError(f"Not optional apps of {self.name}: {', '.join(unknown)}")
        chosen = [name for name in self.optional_apps if name in wanted]
        return _unique([*self.base_apps, *chosen])

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "base_apps": list(self.base_apps),
            "optional_apps": list(self.optional_apps),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Persona":
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise PersonaError("Persona is missing a name")

        def _names(key: str) -> List[str]:
            value = data.get(key) or []
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise PersonaError(f"{name}: '{key}' must be a list of app names")
            return _unique(item.strip() for item in value if item.strip())

        return cls(
            name=name.strip(),
            description=str(data.get("description") or ""),
            base_apps=_names("base_apps"),
            optional_apps=_names("optional_apps"),
        )


def persona_filename(name: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9_-]+", "_", name.strip()).strip("_").lower()
    if not safe:
        raise PersonaError(f"Invalid persona name: {name!r}")
    return f"{safe}.json"


def validate_persona(persona: Persona, catalog: Mapping[str, Any]) -> List[str]:
    return sorted(name for name in persona.all_apps() if name not in catalog)


class PersonaStore:
    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        return self._directory / persona_filename(name)

    def exists(self, name: str) -> bool:
        path = self.path_for(name)
        return path.exists() and self._stored_name(path) == name.strip()

    def load(self, name: str) -> Persona:
        path = self.path_for(name)
        if not path.exists():
            raise KeyError(name)
        persona = self._read(path)
        # Distinct names can share a filename ("Web Dev" and "web dev").
        if persona.name != name.strip():
            raise KeyError(name)
        return persona

    def load_all(self) -> List[Persona]:
        personas: List[Persona] = []
        if not self._directory.exists():
            return personas
        for path in sorted(self._directory.glob("*.json")):
            try:
                personas.append(self._read(path))
            except PersonaError as exc:
                logger.warning("Skipping persona file %s: %s", path.name, exc, extra={"event": "persona_unreadable"})
        return sorted(personas, key=lambda persona: persona.name.lower())

    def list_names(self) -> List[str]:
        return [persona.name for persona in self.load_all()]

    def save(self, persona: Persona, *, overwrite: bool = True) -> Path:
        path = self.path_for(persona.name)
        if path.exists():
            stored = self._stored_name(path)
            if stored is not None and stored != persona.name.strip():
                raise PersonaError(f"Persona {persona.name} would replace {stored} ({path.name})")
            if not overwrite:
                raise PersonaError(f"Persona {persona.name} already exists")
        self._directory.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(persona.to_dict(), indent=2), encoding="utf-8")
        logger.info("Saved persona %s", persona.name, extra={"event": "persona_saved", "persona": persona.name})
        return path

    def delete(self, name: str) -> None:
        if not self.exists(name):
            raise KeyError(name)
        self.path_for(name).unlink()
        logger.info("Deleted persona %s", name, extra={"event": "persona_deleted", "persona": name})

    def _stored_name(self, path: Path) -> str | None:
        try:
            return self._read(path).name
        except PersonaError:
            return None

    def _read(self, path: Path) -> Persona:
        try:
            data = json.loads(path.read_text(encoding="utf-8-sig"))
        except (json.JSONDecodeError, OSError) as exc:
            raise PersonaError(f"Unable to read {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersonaError(f"{path.name} is not a persona object")
        return Persona.from_dict(data)
