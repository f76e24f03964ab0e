"""Login and logout against the remote API."""

from __future__ import annotations

import logging
from typing import Tuple

from roster.api.http import ApiClient
from roster.domain.models import AuthUser
from roster.errors import RemoteError, ValidationError

logger = logging.getLogger(__name__)


class AuthService(ApiClient):
    def login(self, username: str, password: str) -> Tuple[str, AuthUser]:
        """Return the bearer token and user descriptor for valid credentials."""
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required")
        payload = self._send(
            "POST",
            "login",
            json={"username": username, "password": password},
            authenticated=False,
            fallback_message="Authentication failed",
        )
        token = payload.get("token")
        if not token:
            raise RemoteError("Login response did not include a token", payload=payload)
        return str(token), AuthUser.from_payload(payload.get("user") or {})

    def logout(self) -> None:
        self._send("POST", "logout", fallback_message="Logout failed")
