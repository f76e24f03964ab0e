"""Coalesce bursts of input into one delayed trigger."""

from __future__ import annotations

import logging
from typing import Any, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...config import SEARCH_DEBOUNCE_MS

logger = logging.getLogger(__name__)

_NOTHING = object()


class DebounceGate(QObject):
    """Emit :attr:`triggered` once the input has been quiet for ``delay_ms``.

    Every :meth:`push` restarts the single-shot timer and replaces the pending
    value, so only the last value of a burst is ever delivered.  Superseded
    values are dropped, not queued.
    """

    triggered = Signal(object)

    def __init__(self, delay_ms: int = SEARCH_DEBOUNCE_MS, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._pending: Any = _NOTHING
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_ms)))
        self._timer.timeout.connect(self._fire)

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    def set_delay(self, delay_ms: int) -> None:
        self._timer.setInterval(max(0, int(delay_ms)))

    def is_pending(self) -> bool:
        """Return True while a trigger is scheduled but has not fired."""
        return self._pending is not _NOTHING

    def push(self, value: Any) -> None:
        if self._pending is not _NOTHING:
            logger.debug("Debounce: superseding pending value %r", self._pending)
        self._pending = value
        # ``start`` on an active timer restarts the countdown.
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()
        self._pending = _NOTHING

    def flush(self) -> None:
        """Deliver the pending value now instead of waiting for the timer."""
        if self._timer.isActive():
            self._timer.stop()
        self._fire()

    def _fire(self) -> None:
        if self._pending is _NOTHING:
            return
        value = self._pending
        self._pending = _NOTHING
        self.triggered.emit(value)


__all__ = ["DebounceGate"]
