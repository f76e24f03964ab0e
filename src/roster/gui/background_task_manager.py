"""Utility that centralises background request submission for the controllers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from PySide6.QtCore import QObject, QThreadPool, Signal, Slot

from .tasks.request_worker import RequestSignals, RequestWorker

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class TaskDispatcher(Protocol):
    """What the controllers need from a dispatcher."""

    def submit(
        self,
        task_id: str,
        fn: Callable[[], Any],
        *,
        on_finished: FinishedCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        ...


@dataclass
class _TaskRecord:
    """Internal bookkeeping structure for a tracked background task."""

    worker: RequestWorker
    signals: RequestSignals
    on_finished: FinishedCallback
    on_error: Optional[ErrorCallback]


class BackgroundTaskManager(QObject):
    """Run remote calls on a thread pool and deliver results on this object's thread.

    Worker signals are connected to slots of this ``QObject``; since the
    manager lives on the event-loop thread, Qt queues each delivery there.
    Callbacks therefore never run concurrently with the state they update.
    """

    taskStarted = Signal(str)
    taskError = Signal(str, str)
    taskFinished = Signal(str, object)

    def __init__(
        self,
        *,
        thread_pool: Optional[QThreadPool] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._thread_pool = thread_pool or QThreadPool.globalInstance()
        self._active: Dict[str, _TaskRecord] = {}

    # ------------------------------------------------------------------
    # Introspection helpers
    # ------------------------------------------------------------------
    def is_busy(self) -> bool:
        """Return ``True`` while any tracked task is executing."""

        return bool(self._active)

    def active_tasks(self) -> list[str]:
        return list(self._active)

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until the pool is idle; queued results are still pending delivery."""

        return self._thread_pool.waitForDone(msecs)

    # ------------------------------------------------------------------
    # Task submission
    # ------------------------------------------------------------------
    def submit(
        self,
        task_id: str,
        fn: Callable[[], Any],
        *,
        on_finished: FinishedCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Run *fn* in the pool; exactly one of the callbacks fires later."""

        if task_id in self._active:
            raise ValueError(f"Task '{task_id}' is already active")

        worker = RequestWorker(task_id, fn)
        signals = worker.signals
        signals.finished.connect(self._on_worker_finished)
        signals.failed.connect(self._on_worker_failed)
        self._active[task_id] = _TaskRecord(
            worker=worker,
            signals=signals,
            on_finished=on_finished,
            on_error=on_error,
        )
        self.taskStarted.emit(task_id)
        self._thread_pool.start(worker)

    # ------------------------------------------------------------------
    # Worker signal routing
    # ------------------------------------------------------------------
    @Slot(str, object)
    def _on_worker_finished(self, task_id: str, result: object) -> None:
        record = self._active.pop(task_id, None)
        if record is None:
            return
        try:
            record.on_finished(result)
        finally:
            self._cleanup(record)
        self.taskFinished.emit(task_id, result)

    @Slot(str, object)
    def _on_worker_failed(self, task_id: str, error: object) -> None:
        record = self._active.pop(task_id, None)
        if record is None:
            return
        self.taskError.emit(task_id, str(error))
        try:
            if record.on_error is not None:
                record.on_error(error)
            else:
                logger.error("Background task %s failed: %s", task_id, error)
        finally:
            self._cleanup(record)

    # ------------------------------------------------------------------
    # Cleanup helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _cleanup(record: _TaskRecord) -> None:
        for signal in (record.signals.finished, record.signals.failed):
            try:
                signal.disconnect()
            except (TypeError, RuntimeError):
                continue
        record.signals.deleteLater()


__all__ = ["BackgroundTaskManager", "TaskDispatcher"]
