"""Controllers that drive the roster state from timers and remote calls."""

from .debounce_gate import DebounceGate
from .mutation_coordinator import MutationCoordinator
from .poll_scheduler import PollScheduler
from .query_controller import QueryController
from .statistics_controller import StatisticsController
from .status_messages import MessageLevel, StatusMessage, StatusMessageController

__all__ = [
    "DebounceGate",
    "MessageLevel",
    "MutationCoordinator",
    "PollScheduler",
    "QueryController",
    "StatisticsController",
    "StatusMessage",
    "StatusMessageController",
]
