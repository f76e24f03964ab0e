"""Application-wide context shared by the CLI and any Qt front end."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

import httpx

from .api.auth import AuthService
from .api.records import RecordService
from .auth.session import SessionStore
from .events.bus import EventBus
from .settings.manager import SettingsManager

if TYPE_CHECKING:  # pragma: no cover - only for type checking
    from .gui.background_task_manager import TaskDispatcher
    from .gui.controllers.mutation_coordinator import ConfirmCallback
    from .gui.facade import RosterFacade


def _create_settings_manager() -> SettingsManager:
    manager = SettingsManager()
    manager.load()
    return manager


@dataclass
class AppContext:
    """Container object for the collaborators every entry point needs.

    The HTTP services are built from the settings once the dataclass is
    initialised; ``transport`` lets tests substitute an
    :class:`httpx.MockTransport`.
    """

    settings: SettingsManager = field(default_factory=_create_settings_manager)
    session: SessionStore = field(default_factory=SessionStore)
    event_bus: EventBus = field(default_factory=EventBus)
    transport: Optional[httpx.BaseTransport] = None
    records: RecordService = field(init=False)
    auth: AuthService = field(init=False)

    def __post_init__(self) -> None:
        base_url = self.settings.get("api.base_url")
        timeout = float(self.settings.get("api.timeout_sec"))
        self.records = RecordService(
            base_url,
            token_provider=self.session.token,
            timeout=timeout,
            transport=self.transport,
        )
        self.auth = AuthService(
            base_url,
            token_provider=self.session.token,
            timeout=timeout,
            transport=self.transport,
        )

    @property
    def page_size(self) -> int:
        return int(self.settings.get("ui.page_size"))

    def create_facade(
        self,
        *,
        confirm: Optional["ConfirmCallback"] = None,
        dispatcher: Optional["TaskDispatcher"] = None,
    ) -> "RosterFacade":
        """Build a facade configured from the current settings.

        A Qt application object must exist before the facade's timers run.
        """

        from .gui.facade import RosterFacade  # Qt is only needed by GUI entry points

        return RosterFacade(
            self.records,
            self.session,
            auth=self.auth,
            dispatcher=dispatcher,
            event_bus=self.event_bus,
            confirm=confirm,
            page_size=self.page_size,
            poll_interval_ms=int(self.settings.get("ui.poll_interval_ms")),
            debounce_ms=int(self.settings.get("ui.search_debounce_ms")),
            message_timeout_ms=int(self.settings.get("ui.message_timeout_ms")),
        )

    def close(self) -> None:
        self.records.close()
        self.auth.close()
