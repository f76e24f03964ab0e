"""Transient user-facing status messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...config import MESSAGE_TIMEOUT_MS
from ...errors.handler import ErrorSeverity

logger = logging.getLogger(__name__)


class MessageLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class StatusMessage:
    text: str
    level: MessageLevel


class StatusMessageController(QObject):
    """Hold at most one message and dismiss it after a fixed timeout.

    ``messageChanged`` carries the new :class:`StatusMessage` or ``None``
    once the message is dismissed.
    """

    messageChanged = Signal(object)

    def __init__(self, timeout_ms: int = MESSAGE_TIMEOUT_MS, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._current: Optional[StatusMessage] = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(timeout_ms)))
        self._timer.timeout.connect(self.clear)

    @property
    def current(self) -> Optional[StatusMessage]:
        return self._current

    def show(self, text: str, level: MessageLevel = MessageLevel.INFO) -> None:
        self._current = StatusMessage(text=text, level=MessageLevel(level))
        self._timer.start()
        self.messageChanged.emit(self._current)

    def clear(self) -> None:
        self._timer.stop()
        if self._current is None:
            return
        self._current = None
        self.messageChanged.emit(None)

    def show_error(self, text: str, severity: ErrorSeverity = ErrorSeverity.ERROR) -> None:
        """Adapter for :meth:`ErrorHandler.register_ui_callback`."""
        level = MessageLevel.WARNING if severity is ErrorSeverity.WARNING else MessageLevel.ERROR
        self.show(text, level)


__all__ = ["MessageLevel", "StatusMessage", "StatusMessageController"]
