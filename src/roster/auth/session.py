"""Persisted login session.

The session file holds the bearer token, the user descriptor and the login
time.  A session older than two hours counts as expired and is cleared the
first time anyone asks.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config import ADMIN_ROLE, SESSION_MAX_AGE_SEC
from ..domain.models import AuthUser
from ..errors import SessionExpiredError
from ..settings.manager import default_config_dir
from ..utils.jsonio import read_json, write_json

logger = logging.getLogger(__name__)


def default_session_path() -> Path:
    return default_config_dir() / "session.json"


class SessionStore:
    def __init__(
        self,
        path: Path | None = None,
        *,
        max_age_sec: float = SESSION_MAX_AGE_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = path or default_session_path()
        self._max_age = max_age_sec
        self._clock = clock
        self._data: Optional[Dict[str, Any]] = None
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _load(self) -> Optional[Dict[str, Any]]:
        if self._loaded:
            return self._data
        self._loaded = True
        if not self._path.exists():
            return None
        try:
            payload = read_json(self._path)
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable session file %s: %s", self._path, exc)
            self.clear()
            return None
        if isinstance(payload, dict) and payload.get("token"):
            self._data = payload
        return self._data

    def save(self, token: str, user: AuthUser) -> None:
        self._data = {
            "token": token,
            "user": user.to_payload(),
            "logged_in_at": self._clock(),
        }
        self._loaded = True
        write_json(self._path, self._data)
        logger.info("Session stored for %s (%s)", user.username, user.role)

    def clear(self) -> None:
        self._data = None
        self._loaded = True
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove session file %s: %s", self._path, exc)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_authenticated(self) -> bool:
        data = self._load()
        if data is None:
            return False
        logged_in_at = float(data.get("logged_in_at") or 0)
        if self._clock() - logged_in_at > self._max_age:
            logger.info("Session expired; clearing stored credentials")
            self.clear()
            return False
        return True

    def token(self) -> Optional[str]:
        if not self.is_authenticated():
            return None
        return str(self._data["token"])

    def user(self) -> Optional[AuthUser]:
        if not self.is_authenticated():
            return None
        return AuthUser.from_payload(self._data.get("user") or {})

    def is_admin(self) -> bool:
        user = self.user()
        return user is not None and user.role == ADMIN_ROLE

    def require_auth(self) -> AuthUser:
        user = self.user()
        if user is None:
            raise SessionExpiredError("Session expired, please log in again")
        return user

    def auth_headers(self) -> Dict[str, str]:
        token = self.token()
        return {"Authorization": f"Bearer {token}"} if token else {}


__all__ = ["SessionStore", "default_session_path"]
