"""Pure Python signal system for the Qt-free state core.

Provides ``Signal`` for observer-pattern callbacks and ``ObservableProperty``
for values the view binds to.  The state core is only touched from the event
loop thread, so emission is synchronous and unlocked.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

_logger = logging.getLogger(__name__)


class Signal:
    """Ordered list of callbacks invoked by :meth:`emit`.

    Exceptions raised by individual handlers are caught and logged so that one
    failing view does not prevent the remaining handlers from executing.
    """

    def __init__(self) -> None:
        self._handlers: list[Callable] = []
        self._blocked = 0

    def connect(self, handler: Callable) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def disconnect(self, handler: Callable) -> None:
        self._handlers.remove(handler)

    def emit(self, *args: Any, **kwargs: Any) -> None:
        if self._blocked:
            return
        for handler in list(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                _logger.error("Signal handler %r failed: %s", handler, exc)

    @contextmanager
    def blocked(self) -> Iterator[None]:
        """Suppress emissions for the duration of the block."""
        self._blocked += 1
        try:
            yield
        finally:
            self._blocked -= 1

    @property
    def handler_count(self) -> int:
        return len(self._handlers)


class ObservableProperty:
    """Value holder that emits ``changed(new_value, old_value)`` on change."""

    def __init__(self, initial_value: Any = None) -> None:
        self._value = initial_value
        self.changed = Signal()

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        if self._value != new_value:
            old_value = self._value
            self._value = new_value
            self.changed.emit(new_value, old_value)
