"""
Authentication session collaborators used by the token store.

The store never resolves the current session on its own; callers hand it an
``AuthenticationSession`` for the request being served.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

from session_tokens.models.session import (
    AuthenticateResult,
    AuthenticationProperties,
    SessionPrincipal,
)

if TYPE_CHECKING:
    from session_tokens.clients.sqlite_sessions import SQLiteSessionStore

logger = logging.getLogger(__name__)


class AuthenticationSession(Protocol):
    """Authenticate a request against a scheme and re-issue its session."""

    async def authenticate(self, scheme: Optional[str]) -> AuthenticateResult:
        ...

    async def sign_in(
        self,
        scheme: Optional[str],
        principal: SessionPrincipal,
        properties: AuthenticationProperties,
    ) -> None:
        ...


class StoredAuthenticationSession:
    """Session handle for one session id backed by a persisted record store."""

    def __init__(
        self,
        store: "SQLiteSessionStore",
        session_id: Optional[str],
        *,
        default_scheme: str,
    ) -> None:
        self._store = store
        self._session_id = session_id
        self._default_scheme = default_scheme

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def _resolve(self, scheme: Optional[str]) -> str:
        return scheme or self._default_scheme

    async def authenticate(self, scheme: Optional[str]) -> AuthenticateResult:
        resolved = self._resolve(scheme)
        if not self._session_id:
            return AuthenticateResult.fail("No session identifier supplied.")

        try:
            record = self._store.get_record(session_id=self._session_id, scheme=resolved)
            if record is None:
                return AuthenticateResult.fail(f"No session found for scheme {resolved}.")

            principal = SessionPrincipal.model_validate(record["principal"])
            raw_properties = record.get("properties")
            properties = (
                AuthenticationProperties.model_validate(raw_properties)
                if raw_properties is not None
                else None
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable session record for scheme %s: %s", resolved, exc)
            return AuthenticateResult.fail(f"Session record for scheme {resolved} is unreadable.")

        return AuthenticateResult.success(principal, properties)

    async def sign_in(
        self,
        scheme: Optional[str],
        principal: SessionPrincipal,
        properties: AuthenticationProperties,
    ) -> None:
        if not self._session_id:
            raise ValueError("Cannot sign in without a session identifier.")

        resolved = self._resolve(scheme)
        self._store.put_record(
            session_id=self._session_id,
            scheme=resolved,
            record={
                "principal": principal.model_dump(mode="json"),
                "properties": properties.model_dump(mode="json"),
            },
        )
        logger.debug("Re-issued session for scheme %s", resolved)


__all__ = ["AuthenticationSession", "StoredAuthenticationSession"]
