"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from session_tokens.clients import SQLiteSessionStore
from session_tokens.core.config import AppSettings, get_settings
from session_tokens.dependencies.config import get_app_settings
from session_tokens.services import (
    SessionCipher,
    SessionUserAccessTokenStore,
    StoredAuthenticationSession,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_session_cipher() -> SessionCipher | None:
    """Provide the at-rest cipher when an encryption secret is configured."""
    secret = _settings().security.session_encryption_secret
    if not secret:
        return None
    return SessionCipher(secret=secret)


@lru_cache()
def get_session_store() -> SQLiteSessionStore:
    """Provide the shared SQLite session record store."""
    settings = _settings()
    return SQLiteSessionStore(settings.session.store_path, cipher=get_session_cipher())


@lru_cache()
def get_token_store() -> SessionUserAccessTokenStore:
    """Provide the session-backed user token store."""
    return SessionUserAccessTokenStore()


def get_request_session(
    request: Request,
    store: Annotated[SQLiteSessionStore, Depends(get_session_store)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> StoredAuthenticationSession:
    """Bind the session named by the request cookie to the record store."""
    session_id = request.cookies.get(settings.session.cookie_name)
    return StoredAuthenticationSession(
        store,
        session_id,
        default_scheme=settings.session.default_sign_in_scheme,
    )


__all__ = [
    "get_request_session",
    "get_session_cipher",
    "get_session_store",
    "get_token_store",
]
