"""Repeating timer that drives silent background refreshes."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...config import POLL_INTERVAL_MS

logger = logging.getLogger(__name__)


class PollScheduler(QObject):
    """Invoke *callback* every ``interval_ms`` until :meth:`stop` is called.

    ``should_defer`` is consulted before each tick; when it returns a reason
    the tick is skipped and the next one happens at the regular interval.
    Failures inside *callback* are logged and never stop the timer.
    """

    ticked = Signal()
    tickSkipped = Signal(str)

    def __init__(
        self,
        callback: Callable[[], None],
        *,
        interval_ms: int = POLL_INTERVAL_MS,
        should_defer: Optional[Callable[[], Optional[str]]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._callback = callback
        self._should_defer = should_defer
        self._timer = QTimer(self)
        self._timer.setSingleShot(False)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._timer.timeout.connect(self.tick)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(1, int(interval_ms)))

    def is_running(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        if not self._timer.isActive():
            logger.debug("Polling every %d ms", self._timer.interval())
            self._timer.start()

    def stop(self) -> None:
        if self._timer.isActive():
            self._timer.stop()
            logger.debug("Polling stopped")

    def tick(self) -> bool:
        """Run one poll now; return False when the tick was deferred."""
        if self._should_defer is not None:
            reason = self._should_defer()
            if reason:
                logger.debug("Deferring poll tick: %s", reason)
                self.tickSkipped.emit(reason)
                return False
        try:
            self._callback()
        except Exception as exc:
            logger.warning("Poll tick failed: %s", exc)
            return False
        self.ticked.emit()
        return True


__all__ = ["PollScheduler"]
