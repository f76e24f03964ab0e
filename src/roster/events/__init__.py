from .bus import EventBus, Subscription
from .roster_events import (
    DomainEvent,
    MutationCommittedEvent,
    MutationRolledBackEvent,
    RecordsReloadedEvent,
    StatisticsRefreshedEvent,
)

__all__ = [
    "DomainEvent",
    "EventBus",
    "MutationCommittedEvent",
    "MutationRolledBackEvent",
    "RecordsReloadedEvent",
    "StatisticsRefreshedEvent",
    "Subscription",
]
