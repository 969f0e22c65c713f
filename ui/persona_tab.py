"""Persona tab: pick a persona, choose optional apps, preview and install."""
from __future__ import annotations

from typing import Callable, Iterable

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from persona_setup.personas import Persona
from services.installer import OperationResult
from services.resolver import ResolutionResult, describe
from services.workspace import Workspace
from ui.workers import ServiceWorker

LogCallback = Callable[[str], None]


class PersonaTab(QWidget):
    def __init__(self, workspace: Workspace, log_callback: LogCallback, thread_pool: QThreadPool) -> None:
        super().__init__()
        self._workspace = workspace
        self._log = log_callback
        self._thread_pool = thread_pool
        self._personas: dict[str, Persona] = {}
        self._busy = False
        self._build_ui()
        self.reload_personas()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        top_row = QHBoxLayout()
        top_row.addWidget(QLabel("Persona:"))
        self._persona_combo = QComboBox()
        top_row.addWidget(self._persona_combo, 1)
        self._btn_reload = QPushButton("Reload")
        top_row.addWidget(self._btn_reload)
        layout.addLayout(top_row)

        self._description = QLabel("")
        self._description.setWordWrap(True)
        layout.addWidget(self._description)

        lists_row = QHBoxLayout()
        self._base_list = QListWidget()
        self._optional_list = QListWidget()
        base_column = QVBoxLayout()
        base_column.addWidget(QLabel("Always installed"))
        base_column.addWidget(self._base_list)
        optional_column = QVBoxLayout()
        optional_column.addWidget(QLabel("Optional"))
        optional_column.addWidget(self._optional_list)
        lists_row.addLayout(base_column)
        lists_row.addLayout(optional_column)
        layout.addLayout(lists_row)

        self._preview = QTextEdit()
        self._preview.setReadOnly(True)
        layout.addWidget(self._preview)

        self._progress = QProgressBar(self)
        self._progress.setVisible(False)
        self._progress.setTextVisible(True)
        layout.addWidget(self._progress)

        button_row = QHBoxLayout()
        self._btn_preview = QPushButton("Preview Order")
        self._btn_install = QPushButton("Install")
        button_row.addStretch()
        button_row.addWidget(self._btn_preview)
        button_row.addWidget(self._btn_install)
        layout.addLayout(button_row)

        self._persona_combo.currentTextChanged.connect(self._show_persona)
        self._btn_reload.clicked.connect(self.reload_personas)
        self._btn_preview.clicked.connect(self._preview_resolution)
        self._btn_install.clicked.connect(self._start_install)

    def reload_personas(self) -> None:
        personas = self._workspace.persona_store.load_all()
        self._personas = {persona.name: persona for persona in personas}
        self._persona_combo.blockSignals(True)
        self._persona_combo.clear()
        self._persona_combo.addItems(list(self._personas))
        self._persona_combo.blockSignals(False)
        self._show_persona(self._persona_combo.currentText())

    def _current_persona(self) -> Persona | None:
        return self._personas.get(self._persona_combo.currentText())

    def _show_persona(self, name: str) -> None:
        persona = self._personas.get(name)
        self._base_list.clear()
        self._optional_list.clear()
        self._preview.clear()
        if persona is None:
            self._description.setText("")
            return
        self._description.setText(persona.description)
        self._base_list.addItems(persona.base_apps)
        for app in persona.optional_apps:
            item = QListWidgetItem(app)
            item.setFlags(Qt.ItemIsEnabled | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Unchecked)
            self._optional_list.addItem(item)

    def _selected_optional(self) -> list[str]:
        selected: list[str] = []
        for row in range(self._optional_list.count()):
            item = self._optional_list.item(row)
            if item.checkState() == Qt.Checked:
                selected.append(item.text())
        return selected

    def _resolve(self) -> ResolutionResult | None:
        persona = self._current_persona()
        if persona is None:
            return None
        resolution = self._workspace.installer().resolve(persona, self._selected_optional())
        self._preview.setPlainText("\n".join(describe(resolution)))
        return resolution

    def _preview_resolution(self) -> None:
        self._resolve()

    def _start_install(self) -> None:
        if self._busy:
            return
        persona = self._current_persona()
        resolution = self._resolve()
        if persona is None or resolution is None:
            return
        if not resolution.installation_order:
            QMessageBox.information(self, "Nothing to install", "The selection resolved to no applications.")
            return
        if resolution.has_issues:
            if self._workspace.settings.block_on_issues:
                QMessageBox.warning(self, "Dependency issues", "Resolve the dependency issues before installing.")
                return
            answer = QMessageBox.question(self, "Dependency issues", "Dependency issues were detected. Install anyway?")
            if answer != QMessageBox.Yes:
                return
        self._set_busy(True, len(resolution.installation_order))
        self._log(f"Installing {persona.name}: {', '.join(resolution.installation_order)}")
        worker = ServiceWorker(
            self._workspace.installer().install_plan,
            list(resolution.installation_order),
            persona=persona.name,
            with_callbacks=True,
        )
        worker.signals.finished.connect(self._handle_results)
        worker.signals.error.connect(self._handle_error)
        worker.signals.progress.connect(self._handle_progress)
        worker.signals.status.connect(lambda name: self._log(f"Installing {name}..."))
        self._thread_pool.start(worker)

    def _handle_progress(self, current: int, total: int, app_name: str) -> None:
        self._progress.setMaximum(total)
        self._progress.setValue(current)
        self._progress.setFormat(f"{app_name} ({current}/{total})")

    def _handle_results(self, results: Iterable[OperationResult]) -> None:
        self._set_busy(False)
        failures = 0
        for result in results:
            status = "OK" if result.success else "FAILED"
            failures += 0 if result.success else 1
            self._log(f"[{status}] {result.app}: {result.message}")
        if failures:
            QMessageBox.warning(self, "Installation finished", f"{failures} application(s) failed. See the log for details.")
        else:
            QMessageBox.information(self, "Installation finished", "All applications installed.")

    def _handle_error(self, message: str) -> None:
        self._set_busy(False)
        self._log(f"Error: {message}")
        QMessageBox.critical(self, "Installation failed", message)

    def _set_busy(self, busy: bool, total: int = 0) -> None:
        self._busy = busy
        for button in (self._btn_install, self._btn_preview, self._btn_reload):
            button.setEnabled(not busy)
        self._persona_combo.setEnabled(not busy)
        self._progress.setVisible(busy)
        if busy:
            self._progress.setMaximum(total)
            self._progress.setValue(0)
            self._progress.setFormat("Starting...")
