"""User-configurable settings persisted locally."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from persona_setup.paths import DataPaths, get_home_directory

SETTINGS_FILENAME = "settings.json"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

logger = logging.getLogger(__name__)


def default_settings_path() -> Path:
    return get_home_directory() / SETTINGS_FILENAME


@dataclass
class UserSettings:
    data_dir: str = ""
    log_level: str = "INFO"
    max_attempts: int = 2
    retry_delay_seconds: float = 5.0
    winget_source: str = "winget"
    install_scope: str = ""
    skip_installed: bool = True
    check_requirements: bool = True
    block_on_issues: bool = False
    history_limit: int = 500
    backup_keep: int = 10

    def data_paths(self) -> DataPaths:
        root = Path(self.data_dir).expanduser() if self.data_dir.strip() else get_home_directory()
        return DataPaths(root)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_dir": self.data_dir,
            "log_level": self.log_level,
            "max_attempts": self.max_attempts,
            "retry_delay_seconds": self.retry_delay_seconds,
            "winget_source": self.winget_source,
            "install_scope": self.install_scope,
            "skip_installed": self.skip_installed,
            "check_requirements": self.check_requirements,
            "block_on_issues": self.block_on_issues,
            "history_limit": self.history_limit,
            "backup_keep": self.backup_keep,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserSettings":
        defaults = cls()

        def _get_str(key: str) -> str:
            value = data.get(key, getattr(defaults, key))
            return str(value) if value is not None else ""

        def _get_int(key: str, minimum: int) -> int:
            value = data.get(key, getattr(defaults, key))
            try:
                number = int(value)
            except (TypeError, ValueError):
                return getattr(defaults, key)
            return number if number >= minimum else getattr(defaults, key)

        def _get_float(key: str) -> float:
            value = data.get(key, getattr(defaults, key))
            try:
                number = float(value)
            except (TypeError, ValueError):
                return getattr(defaults, key)
            return number if number >= 0 else getattr(defaults, key)

        def _get_bool(key: str) -> bool:
            value = data.get(key, getattr(defaults, key))
            if isinstance(value, str):
                return value.strip().lower() in {"1", "true", "yes", "on"}
            return bool(value)

        log_level = _get_str("log_level").strip().upper()
        if log_level not in _LOG_LEVELS:
            log_level = defaults.log_level
        return cls(
            data_dir=_get_str("data_dir"),
            log_level=log_level,
            max_attempts=_get_int("max_attempts", 1),
            retry_delay_seconds=_get_float("retry_delay_seconds"),
            winget_source=_get_str("winget_source").strip(),
            install_scope=_get_str("install_scope").strip().lower(),
            skip_installed=_get_bool("skip_installed"),
            check_requirements=_get_bool("check_requirements"),
            block_on_issues=_get_bool("block_on_issues"),
            history_limit=_get_int("history_limit", 1),
            backup_keep=_get_int("backup_keep", 1),
        )


class SettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or default_settings_path()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> UserSettings:
        if not self._path.exists():
            return UserSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return UserSettings()
        if not isinstance(data, dict):
            return UserSettings()
        return UserSettings.from_dict(data)

    def save(self, settings: UserSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(settings.to_dict(), indent=2, sort_keys=True)
        self._path.write_text(payload, encoding="utf-8")
