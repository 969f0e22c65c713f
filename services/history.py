"""Installation history persisted as a JSON list."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping

if TYPE_CHECKING:
    from services.installer import OperationResult

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class HistoryRecord:
    timestamp: str
    app: str
    package_id: str
    success: bool
    message: str
    attempts: int = 1
    persona: str | None = None
    operation: str = "install"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "app": self.app,
            "package_id": self.package_id,
            "success": self.success,
            "message": self.message,
            "attempts": self.attempts,
            "persona": self.persona,
            "operation": self.operation,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryRecord":
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            app=str(data.get("app") or ""),
            package_id=str(data.get("package_id") or ""),
            success=bool(data.get("success")),
            message=str(data.get("message") or ""),
            attempts=int(data.get("attempts") or 1),
            persona=data.get("persona") or None,
            operation=str(data.get("operation") or "install"),
        )


class InstallationHistory:
    def __init__(
        self,
        path: Path,
        *,
        max_records: int = 500,
        clock: Callable[[], str] = _utc_now,
    ) -> None:
        self._path = Path(path)
        self._max_records = max_records
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[HistoryRecord]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("History file %s unreadable, starting fresh: %s", self._path, exc, extra={"event": "history_unreadable"})
            return []
        if not isinstance(data, list):
            return []
        records: List[HistoryRecord] = []
        for item in data:
            if isinstance(item, dict) and item.get("app"):
                records.append(HistoryRecord.from_dict(item))
        return records

    def record(self, result: "OperationResult", *, persona: str | None = None) -> HistoryRecord:
        entry = HistoryRecord(
            timestamp=self._clock(),
            app=result.app,
            package_id=result.package_id,
            success=result.success,
            message=result.message,
            attempts=result.attempts,
            persona=persona,
            operation=result.operation,
        )
        records = self.load()
        records.append(entry)
        self._write(records[-self._max_records:])
        return entry

    def recent(self, limit: int = 20) -> List[HistoryRecord]:
        records = self.load()
        records.reverse()
        return records[:limit]

    def for_app(self, name: str) -> List[HistoryRecord]:
        return [record for record in self.load() if record.app == name]

    def last_status(self, name: str) -> bool | None:
        records = self.for_app(name)
        if not records:
            return None
        return records[-1].success

    def summary(self) -> Dict[str, Dict[str, Any]]:
        summary: Dict[str, Dict[str, Any]] = {}
        for record in self.load():
            stats = summary.setdefault(record.app, {"installs": 0, "failures": 0, "last_status": None})
            if record.success:
                stats["installs"] += 1
            else:
                stats["failures"] += 1
            stats["last_status"] = "success" if record.success else "failed"
        return summary

    def clear(self) -> None:
        self._write([])
        logger.info("Cleared installation history", extra={"event": "history_cleared"})

    def _write(self, records: List[HistoryRecord]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([record.to_dict() for record in records], indent=2)
        self._path.write_text(payload, encoding="utf-8")
