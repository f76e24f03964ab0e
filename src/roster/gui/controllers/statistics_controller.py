"""Aggregate statistics loading."""

from __future__ import annotations

import itertools
import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...api.records import RecordService
from ...domain.models import RosterStatistics
from ...events.bus import EventBus
from ...events.roster_events import StatisticsRefreshedEvent
from ...state.roster_state import RosterState
from ..background_task_manager import TaskDispatcher

logger = logging.getLogger(__name__)


class StatisticsController(QObject):
    """Fetch statistics in the background; failures are only logged."""

    statisticsChanged = Signal(object)

    def __init__(
        self,
        state: RosterState,
        service: RecordService,
        dispatcher: TaskDispatcher,
        *,
        event_bus: Optional[EventBus] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._state = state
        self._service = service
        self._dispatcher = dispatcher
        self._event_bus = event_bus
        self._requests = itertools.count(1)
        self._latest = 0

    def refresh(self) -> None:
        request = next(self._requests)
        self._latest = request
        self._dispatcher.submit(
            f"statistics:{request}",
            self._service.statistics,
            on_finished=lambda stats: self._on_loaded(request, stats),
            on_error=lambda exc: logger.warning("Statistics refresh failed: %s", exc),
        )

    def _on_loaded(self, request: int, stats: RosterStatistics) -> None:
        if request != self._latest:
            logger.debug("Discarding statistics #%d, #%d is newer", request, self._latest)
            return
        self._state.statistics.value = stats
        if self._event_bus is not None:
            self._event_bus.publish(
                StatisticsRefreshedEvent(
                    source="statistics_controller",
                    total_students=stats.total_students,
                    average_grade=stats.average_grade,
                )
            )
        self.statisticsChanged.emit(stats)


__all__ = ["StatisticsController"]
