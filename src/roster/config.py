"""Default configuration values for the roster client."""

from __future__ import annotations

from typing import Final

DEFAULT_API_BASE: Final[str] = "http://localhost/crud_estudiantes"
API_BASE_ENV_VAR: Final[str] = "ROSTER_API_BASE"
REQUEST_TIMEOUT_SEC: Final[float] = 20.0

# Paths are relative to the API base.  The remote service is a set of flat
# PHP scripts, so every operation owns its own path rather than a REST
# resource hierarchy.
ENDPOINTS: Final[dict[str, str]] = {
    "list": "php/students.php",
    "read_one": "php/read_one.php",
    "create": "php/create.php",
    "update": "php/update.php",
    "delete": "php/delete.php",
    "batch_delete": "php/batch_delete.php",
    "statistics": "php/statistics.php",
    "login": "php/login.php",
    "logout": "php/logout.php",
}

# ---------------------------------------------------------------------------
# Query and refresh timings
# ---------------------------------------------------------------------------

PAGE_SIZE: Final[int] = 10
POLL_INTERVAL_MS: Final[int] = 30_000
SEARCH_DEBOUNCE_MS: Final[int] = 500

# Pages within this distance of the current page get their own button in
# the pagination bar; pages exactly one step further collapse into "...".
PAGINATION_WINDOW_RADIUS: Final[int] = 2

# ---------------------------------------------------------------------------
# UI feedback
# ---------------------------------------------------------------------------

MESSAGE_TIMEOUT_MS: Final[int] = 5_000
GENERIC_CONNECTION_ERROR: Final[str] = "Connection error"

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

SESSION_MAX_AGE_SEC: Final[int] = 2 * 60 * 60
ADMIN_ROLE: Final[str] = "admin"
STUDENT_ROLE: Final[str] = "student"
APP_DIR_NAME: Final[str] = "roster"
