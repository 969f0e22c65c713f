"""Path utilities for locating the settings file and the data directory."""
from __future__ import annotations

import os
from pathlib import Path

HOME_ENV_VAR = "PERSONA_SETUP_HOME"
SETTINGS_DIRNAME = ".persona_setup"

CATALOG_FILENAME = "catalog.json"
PERSONAS_DIRNAME = "personas"
HISTORY_FILENAME = "history.json"
BACKUPS_DIRNAME = "backups"
LOGS_DIRNAME = "logs"


def get_home_directory() -> Path:
    """Root for settings and, unless overridden in settings, all data files."""
    override = os.environ.get(HOME_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / SETTINGS_DIRNAME


class DataPaths:
    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def catalog(self) -> Path:
        return self._root / CATALOG_FILENAME

    @property
    def personas(self) -> Path:
        return self._root / PERSONAS_DIRNAME

    @property
    def history(self) -> Path:
        return self._root / HISTORY_FILENAME

    @property
    def backups(self) -> Path:
        return self._root / BACKUPS_DIRNAME

    @property
    def logs(self) -> Path:
        return self._root / LOGS_DIRNAME

    def ensure(self) -> None:
        for directory in (self._root, self.personas, self.backups, self.logs):
            directory.mkdir(parents=True, exist_ok=True)
