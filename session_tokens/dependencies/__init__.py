"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_request_session,
    get_session_cipher,
    get_session_store,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_request_session",
    "get_session_cipher",
    "get_session_store",
    "get_token_store",
]
