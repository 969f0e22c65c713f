"""Application entrypoint for the Persona Setup PySide6 GUI."""
from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from persona_setup.logging_utils import configure_logging
from persona_setup.settings import SettingsStore
from services.privilege import ensure_admin
from services.workspace import open_workspace
from ui.main_window import MainWindow


def main() -> int:
    if not ensure_admin():
        return 0
    settings = SettingsStore().load()
    configure_logging(settings.data_paths().logs, settings.log_level, also_console=False)
    app = QApplication(sys.argv)
    window = MainWindow(open_workspace(settings))
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
