"""Background workers used by the roster controllers."""

from .request_worker import RequestSignals, RequestWorker

__all__ = ["RequestSignals", "RequestWorker"]
