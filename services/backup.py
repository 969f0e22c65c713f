"""Persona backup and restore as timestamped JSON bundles."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List

from persona_setup.personas import Persona, PersonaError, PersonaStore

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "personas-"
_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
_STEM = re.compile(r"^personas-(\d{8}-\d{6})(?:-(\d+))?$")


def _age_key(path: Path) -> tuple[str, int]:
    # Same-second backups carry a "-N" counter after the timestamp.
    match = _STEM.match(path.stem)
    if match is None:
        return path.stem, 0
    return match.group(1), int(match.group(2) or 0)


@dataclass(frozen=True)
class BackupInfo:
    path: Path
    created: str
    persona_names: tuple[str, ...]


@dataclass
class RestoreReport:
    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class BackupService:
    def __init__(
        self,
        persona_store: PersonaStore,
        directory: Path,
        *,
        keep: int = 10,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._personas = persona_store
        self._directory = Path(directory)
        self._keep = max(1, keep)
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    def create(self, names: Iterable[str] | None = None) -> Path:
        if names is None:
            personas = self._personas.load_all()
        else:
            personas = [self._personas.load(name) for name in names]
        if not personas:
            raise ValueError("No personas to back up")
        now = self._clock()
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._unique_path(now)
        payload = {
            "created": now.isoformat(timespec="seconds"),
            "personas": [persona.to_dict() for persona in personas],
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(
            "Backed up %d personas to %s",
            len(personas),
            path.name,
            extra={"event": "backup_created", "backup": str(path), "count": len(personas)},
        )
        self._prune()
        return path

    def list_backups(self) -> List[BackupInfo]:
        if not self._directory.exists():
            return []
        backups: List[BackupInfo] = []
        for path in self._directory.glob(f"{BACKUP_PREFIX}*.json"):
            try:
                created, personas = self._read(path)
            except PersonaError as exc:
                logger.warning("Skipping backup %s: %s", path.name, exc, extra={"event": "backup_unreadable"})
                continue
            backups.append(BackupInfo(path, created, tuple(persona.name for persona in personas)))
        return sorted(backups, key=lambda info: _age_key(info.path), reverse=True)

    def restore(
        self,
        path: Path,
        *,
        overwrite: bool = False,
        names: Iterable[str] | None = None,
    ) -> RestoreReport:
        _, personas = self._read(Path(path))
        wanted = set(names) if names is not None else None
        report = RestoreReport()
        for persona in personas:
            if wanted is not None and persona.name not in wanted:
                continue
            if self._personas.exists(persona.name) and not overwrite:
                report.skipped.append(persona.name)
                continue
            self._personas.save(persona)
            report.restored.append(persona.name)
        logger.info(
            "Restored %d personas from %s (%d skipped)",
            len(report.restored),
            Path(path).name,
            len(report.skipped),
            extra={"event": "backup_restored", "backup": str(path)},
        )
        return report

    def delete(self, path: Path) -> None:
        path = Path(path)
        if path.parent.resolve() != self._directory.resolve() or not path.name.startswith(BACKUP_PREFIX):
            raise ValueError(f"{path} is not a persona backup")
        path.unlink()

    def _read(self, path: Path) -> tuple[str, List[Persona]]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise PersonaError(f"Unable to read backup {path.name}: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("personas"), list):
            raise PersonaError(f"{path.name} is not a persona backup")
        personas = [Persona.from_dict(item) for item in data["personas"] if isinstance(item, dict)]
        return str(data.get("created") or ""), personas

    def _unique_path(self, now: datetime) -> Path:
        stem = f"{BACKUP_PREFIX}{now.strftime(_TIMESTAMP_FORMAT)}"
        path = self._directory / f"{stem}.json"
        counter = 1
        while path.exists():
            path = self._directory / f"{stem}-{counter}.json"
            counter += 1
        return path

    def _prune(self) -> None:
        backups = sorted(self._directory.glob(f"{BACKUP_PREFIX}*.json"), key=_age_key, reverse=True)
        for stale in backups[self._keep:]:
            try:
                stale.unlink()
            except OSError as exc:
                logger.warning("Could not remove old backup %s: %s", stale.name, exc)
