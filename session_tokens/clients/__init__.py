"""Expose constructed client wrappers."""

from .sqlite_sessions import SQLiteSessionStore

__all__ = ["SQLiteSessionStore"]
