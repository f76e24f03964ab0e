"""HTTP clients for the remote roster service."""

from .auth import AuthService
from .http import ApiClient
from .records import ListResult, RecordService

__all__ = ["ApiClient", "AuthService", "ListResult", "RecordService"]
