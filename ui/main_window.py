"""Main window for Persona Setup."""
from __future__ import annotations

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtWidgets import (
    QMainWindow,
    QSplitter,
    QTabWidget,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from services.workspace import Workspace
from ui.history_tab import HistoryTab
from ui.persona_tab import PersonaTab
from ui.updates_tab import UpdatesTab


class MainWindow(QMainWindow):
    def __init__(self, workspace: Workspace) -> None:
        super().__init__()
        self.setWindowTitle("Persona Setup")
        self.resize(1000, 720)
        self._workspace = workspace
        self._thread_pool = QThreadPool.globalInstance()
        self._log_view = QTextEdit()
        self._log_view.setReadOnly(True)
        self._log_view.setMinimumHeight(120)

        self._history_tab = HistoryTab(workspace)
        self._tabs = QTabWidget()
        self._tabs.addTab(PersonaTab(workspace, self.log_message, self._thread_pool), "Personas")
        self._tabs.addTab(UpdatesTab(workspace, self.log_message, self._thread_pool), "Updates")
        self._tabs.addTab(self._history_tab, "History")
        self._tabs.currentChanged.connect(self._on_tab_changed)

        splitter = QSplitter(Qt.Vertical)
        splitter.addWidget(self._tabs)
        splitter.addWidget(self._log_view)
        splitter.setStretchFactor(0, 4)
        splitter.setStretchFactor(1, 1)

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.addWidget(splitter)
        self.setCentralWidget(container)
        self.log_message(f"Data directory: {workspace.paths.root}")

    def _on_tab_changed(self, index: int) -> None:
        if self._tabs.widget(index) is self._history_tab:
            self._history_tab.refresh()

    def log_message(self, message: str) -> None:
        self._log_view.append(message)
