"""Runs service calls on the Qt thread pool and reports back through signals."""
from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QRunnable, Signal, Slot

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    finished = Signal(object)
    error = Signal(str)
    status = Signal(str)
    progress = Signal(int, int, str)


class ServiceWorker(QRunnable):
    """Calls `fn`; pass `with_callbacks=True` to hand it progress/status emitters."""

    def __init__(self, fn, *args, with_callbacks: bool = False, **kwargs) -> None:
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()
        if with_callbacks:
            self.kwargs["progress_callback"] = self.signals.progress.emit
            self.kwargs["status_callback"] = self.signals.status.emit

    @Slot()
    def run(self) -> None:
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as exc:  # pragma: no cover - surfaced via signal
            logger.exception("Background task failed", extra={"event": "worker_failed"})
            self.signals.error.emit(str(exc))
        else:
            self.signals.finished.emit(result)
