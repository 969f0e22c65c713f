"""History tab: recent installs and upgrades."""
from __future__ import annotations

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

from services.workspace import Workspace

_COLUMNS = ("When", "Persona", "Application", "Operation", "Status", "Message")


class HistoryTab(QWidget):
    def __init__(self, workspace: Workspace, limit: int = 100) -> None:
        super().__init__()
        self._workspace = workspace
        self._limit = limit

        layout = QVBoxLayout(self)
        self._table = QTableWidget(0, len(_COLUMNS))
        self._table.setHorizontalHeaderLabels(list(_COLUMNS))
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)
        layout.addWidget(self._table)

        button_row = QHBoxLayout()
        refresh = QPushButton("Refresh")
        clear = QPushButton("Clear History")
        button_row.addStretch()
        button_row.addWidget(refresh)
        button_row.addWidget(clear)
        layout.addLayout(button_row)

        refresh.clicked.connect(self.refresh)
        clear.clicked.connect(self._clear)
        self.refresh()

    def refresh(self) -> None:
        records = self._workspace.history.recent(self._limit)
        self._table.setRowCount(len(records))
        for row, record in enumerate(records):
            values = (
                record.timestamp,
                record.persona or "-",
                record.app,
                record.operation,
                "OK" if record.success else "FAILED",
                record.message,
            )
            for column, value in enumerate(values):
                self._table.setItem(row, column, QTableWidgetItem(value))

    def _clear(self) -> None:
        answer = QMessageBox.question(self, "Clear history", "Delete all installation history?")
        if answer == QMessageBox.Yes:
            self._workspace.history.clear()
            self.refresh()
