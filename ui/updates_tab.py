"""Updates tab: list catalog applications with pending winget upgrades."""
from __future__ import annotations

from typing import Callable, List

from PySide6.QtCore import QThreadPool
from PySide6.QtWidgets import (
    QHBoxLayout,
    QHeaderView,
    QMessageBox,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from services.installer import OperationResult
from services.updates import CatalogUpdate
from services.workspace import Workspace
from ui.workers import ServiceWorker

LogCallback = Callable[[str], None]


class UpdatesTab(QWidget):
    def __init__(self, workspace: Workspace, log_callback: LogCallback, thread_pool: QThreadPool) -> None:
        super().__init__()
        self._workspace = workspace
        self._log = log_callback
        self._thread_pool = thread_pool
        self._updates: List[CatalogUpdate] = []

        layout = QVBoxLayout(self)
        self._table = QTableWidget(0, 4)
        self._table.setHorizontalHeaderLabels(["Application", "Package Id", "Installed", "Available"])
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)
        layout.addWidget(self._table)

        button_row = QHBoxLayout()
        self._btn_check = QPushButton("Check for Updates")
        self._btn_upgrade = QPushButton("Upgrade All")
        self._btn_upgrade.setEnabled(False)
        button_row.addStretch()
        button_row.addWidget(self._btn_check)
        button_row.addWidget(self._btn_upgrade)
        layout.addLayout(button_row)

        self._btn_check.clicked.connect(self._start_check)
        self._btn_upgrade.clicked.connect(self._start_upgrade)

    def _start_check(self) -> None:
        self._set_busy(True)
        self._log("Checking for updates...")
        worker = ServiceWorker(self._workspace.updates().check)
        worker.signals.finished.connect(self._show_updates)
        worker.signals.error.connect(self._handle_error)
        self._thread_pool.start(worker)

    def _show_updates(self, updates: List[CatalogUpdate]) -> None:
        self._set_busy(False)
        self._updates = list(updates)
        self._table.setRowCount(len(self._updates))
        for row, update in enumerate(self._updates):
            values = (update.app, update.candidate.package_id, update.candidate.version, update.candidate.available)
            for column, value in enumerate(values):
                self._table.setItem(row, column, QTableWidgetItem(value))
        self._btn_upgrade.setEnabled(bool(self._updates))
        self._log(f"{len(self._updates)} catalog application(s) can be upgraded")

    def _start_upgrade(self) -> None:
        if not self._updates:
            return
        self._set_busy(True)
        worker = ServiceWorker(self._workspace.updates().upgrade, list(self._updates))
        worker.signals.finished.connect(self._handle_results)
        worker.signals.error.connect(self._handle_error)
        self._thread_pool.start(worker)

    def _handle_results(self, results: List[OperationResult]) -> None:
        self._set_busy(False)
        for result in results:
            self._workspace.history.record(result)
            self._log(f"[{'OK' if result.success else 'FAILED'}] {result.app}: {result.message}")
        self._updates = []
        self._table.setRowCount(0)
        self._btn_upgrade.setEnabled(False)

    def _handle_error(self, message: str) -> None:
        self._set_busy(False)
        self._log(f"Error: {message}")
        QMessageBox.critical(self, "Update check failed", message)

    def _set_busy(self, busy: bool) -> None:
        self._btn_check.setEnabled(not busy)
        self._btn_upgrade.setEnabled(not busy and bool(self._updates))
