"""Custom exception hierarchy for the roster client."""

from __future__ import annotations

from typing import Optional


class RosterError(Exception):
    """Base class for all custom errors raised by the roster client."""


# --- 3-layer hierarchy ---

class DomainError(RosterError):
    """Base class for domain-level errors."""


class InfrastructureError(RosterError):
    """Base class for infrastructure-level errors."""


class ApplicationError(RosterError):
    """Base class for application-level errors."""


# --- Domain errors ---

class ValidationError(DomainError):
    """Raised when user input is rejected locally, before any network call."""


# --- Infrastructure errors ---

class TransportError(InfrastructureError):
    """Raised when a request never produced an HTTP response."""


class RemoteError(InfrastructureError):
    """Raised when the server answered with a failure.

    Either the HTTP status was not 2xx or the body carried
    ``"success": false``.  ``message`` holds the server-provided text when
    there was one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class AuthenticationError(RemoteError):
    """Raised on HTTP 401; the session is no longer accepted by the server."""


class PermissionDeniedError(RemoteError):
    """Raised on HTTP 403; the current role may not perform the operation."""


class RecordNotFoundError(RemoteError):
    """Raised on HTTP 404 for a record lookup or mutation."""


# --- Application errors ---

class SessionExpiredError(ApplicationError):
    """Raised when no valid local session exists."""


class MutationStateError(ApplicationError):
    """Raised when a mutation handle is resolved twice."""


# --- Settings errors ---

class SettingsError(RosterError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
