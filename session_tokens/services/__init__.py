"""Service layer exports."""

from .authentication import AuthenticationSession, StoredAuthenticationSession
from .session_cipher import SessionCipher
from .token_store import (
    AnonymousSessionError,
    SessionUserAccessTokenStore,
    TokenExpirationFormatError,
    token_key,
)

__all__ = [
    "AnonymousSessionError",
    "AuthenticationSession",
    "SessionCipher",
    "SessionUserAccessTokenStore",
    "StoredAuthenticationSession",
    "TokenExpirationFormatError",
    "token_key",
]
