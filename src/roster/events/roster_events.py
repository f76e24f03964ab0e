from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""


@dataclass(frozen=True)
class RecordsReloadedEvent(DomainEvent):
    generation: int = 0
    page: int = 1
    total: int = 0
    silent: bool = False


@dataclass(frozen=True)
class MutationCommittedEvent(DomainEvent):
    kind: str = ""
    record_ids: tuple = ()
    message: str = ""


@dataclass(frozen=True)
class MutationRolledBackEvent(DomainEvent):
    kind: str = ""
    record_ids: tuple = ()
    reason: str = ""


@dataclass(frozen=True)
class StatisticsRefreshedEvent(DomainEvent):
    total_students: int = 0
    average_grade: float = 0.0
