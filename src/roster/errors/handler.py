import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from roster.events.bus import EventBus
from roster.events.roster_events import DomainEvent


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorOccurredEvent(DomainEvent):
    error: Optional[Exception] = None
    severity: ErrorSeverity = ErrorSeverity.ERROR
    message: str = ""
    context: dict = field(default_factory=dict)


class ErrorHandler:
    """Log a failure, publish it on the bus and surface it to the UI."""

    def __init__(self, logger: logging.Logger, event_bus: EventBus):
        self._logger = logger
        self._events = event_bus
        self._ui_callback: Optional[Callable[[str, ErrorSeverity], None]] = None

    def register_ui_callback(self, callback: Callable[[str, ErrorSeverity], None]):
        self._ui_callback = callback

    def handle(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[dict] = None,
        message: Optional[str] = None,
    ):
        """Report *error*; *message* overrides the user-facing text."""
        text = message if message is not None else str(error)

        log_method = getattr(self._logger, severity.value, self._logger.error)
        log_method("%s: %s", error.__class__.__name__, error, extra={"context": context or {}})

        self._events.publish(ErrorOccurredEvent(
            error=error,
            severity=severity,
            message=text,
            context=context or {},
        ))

        if self._ui_callback and severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._ui_callback(text, severity)
