from .pagination import PageDescriptor, page_window, record_range, total_pages_for
from .record_cache import LocalRecordCache
from .roster_state import QueryKey, RosterState
from .selection import SelectionTracker
from .transactions import MutationKind, MutationState, OptimisticTransactionManager, PendingMutation

__all__ = [
    "LocalRecordCache",
    "MutationKind",
    "MutationState",
    "OptimisticTransactionManager",
    "PageDescriptor",
    "PendingMutation",
    "QueryKey",
    "RosterState",
    "SelectionTracker",
    "page_window",
    "record_range",
    "total_pages_for",
]
