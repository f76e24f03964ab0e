"""Worker that performs one blocking remote call off the event loop."""

from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QRunnable, Signal

logger = logging.getLogger(__name__)


class RequestSignals(QObject):
    """Signals emitted by :class:`RequestWorker`.

    Both carry the task id so a single receiver can route many workers.
    """

    finished = Signal(str, object)
    failed = Signal(str, object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)


class RequestWorker(QRunnable):
    """Run *fn* on a pool thread and report its result or exception."""

    def __init__(self, task_id: str, fn: Callable[[], Any]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._task_id = task_id
        self._fn = fn
        self.signals = RequestSignals()

    @property
    def task_id(self) -> str:
        return self._task_id

    def run(self) -> None:  # pragma: no cover - runs in background thread
        try:
            result = self._fn()
        except Exception as exc:
            logger.debug("Task %s raised %s", self._task_id, exc.__class__.__name__)
            self.signals.failed.emit(self._task_id, exc)
            return
        self.signals.finished.emit(self._task_id, result)
