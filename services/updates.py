"""Update checks driven by `winget upgrade`."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List

from persona_setup.catalog import Catalog
from services.installer import InstallEngine, OperationResult, WingetClient, WingetError

logger = logging.getLogger(__name__)

_SEPARATOR = re.compile(r"^-{10,}\s*$")
_FOOTER = re.compile(r"^(\d+\s+(upgrades?|packages?)\b|The following\b)", re.IGNORECASE)
_COLUMNS = ("Name", "Id", "Version", "Available", "Source")


@dataclass(frozen=True)
class UpgradeCandidate:
    name: str
    package_id: str
    version: str
    available: str
    source: str = ""


@dataclass(frozen=True)
class CatalogUpdate:
    app: str
    candidate: UpgradeCandidate


def _clean_line(line: str) -> str:
    # winget redraws its spinner with carriage returns; keep only the final frame.
    return line.rsplit("\r", 1)[-1].rstrip()


def _column_starts(header: str) -> dict[str, int] | None:
    starts: dict[str, int] = {}
    for column in _COLUMNS:
        match = re.search(rf"(?<!\S){column}(?!\S)", header, re.IGNORECASE)
        if match:
            starts[column] = match.start()
    if not {"Name", "Id", "Version"} <= starts.keys():
        return None
    return starts


def parse_upgrade_table(text: str) -> List[UpgradeCandidate]:
    lines = [_clean_line(line) for line in text.splitlines()]
    separator_index = next((index for index, line in enumerate(lines) if _SEPARATOR.match(line.strip())), None)
    if separator_index is None or separator_index == 0:
        return []
    starts = _column_starts(lines[separator_index - 1])
    if starts is None:
        return []
    ordered = sorted(starts.items(), key=lambda item: item[1])
    candidates: List[UpgradeCandidate] = []
    for line in lines[separator_index + 1:]:
        if not line.strip():
            continue
        if _FOOTER.match(line.strip()) or _SEPARATOR.match(line.strip()):
            break
        values: dict[str, str] = {}
        for position, (column, start) in enumerate(ordered):
            end = ordered[position + 1][1] if position + 1 < len(ordered) else None
            values[column] = line[start:end].strip() if end is not None else line[start:].strip()
        if not values.get("Id"):
            continue
        candidates.append(
            UpgradeCandidate(
                name=values.get("Name", ""),
                package_id=values["Id"],
                version=values.get("Version", ""),
                available=values.get("Available", ""),
                source=values.get("Source", ""),
            )
        )
    return candidates


class UpdateService:
    def __init__(
        self,
        catalog: Catalog,
        *,
        winget_client: WingetClient | None = None,
        engine: InstallEngine | None = None,
    ) -> None:
        self._catalog = catalog
        self._engine = engine or InstallEngine(winget_client)
        self._winget = winget_client or self._engine.client

    def check(self) -> List[CatalogUpdate]:
        if not self._winget.is_available():
            raise WingetError("winget executable not found in PATH")
        result = self._winget.upgrade_listing()
        candidates = parse_upgrade_table(result.stdout)
        by_package = self._catalog.package_ids()
        updates = [
            CatalogUpdate(by_package[candidate.package_id.lower()], candidate)
            for candidate in candidates
            if candidate.package_id.lower() in by_package
        ]
        logger.info(
            "%d catalog applications have updates (%d upgradable overall)",
            len(updates),
            len(candidates),
            extra={"event": "updates_checked", "catalog_updates": len(updates), "total_updates": len(candidates)},
        )
        return updates

    def upgrade(
        self,
        updates: Iterable[CatalogUpdate],
        *,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> List[OperationResult]:
        selected = list(updates)
        results: List[OperationResult] = []
        for index, update in enumerate(selected, start=1):
            entry = self._catalog.get(update.app)
            if entry is None:
                results.append(OperationResult(update.app, "upgrade", False, "Not in catalog"))
            else:
                results.append(self._engine.upgrade(entry))
            if progress_callback:
                progress_callback(index, len(selected), update.app)
        return results
