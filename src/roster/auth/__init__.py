"""Local session handling."""

from .session import SessionStore, default_session_path

__all__ = ["SessionStore", "default_session_path"]
