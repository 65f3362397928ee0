"""
Token store backed by the authentication session's property bag.

Access tokens, refresh tokens and expirations live in the session properties
under ``.Token.<name>[::<qualifier>]`` keys. The resource qualifies the access
token and expiration; the challenge scheme qualifies the refresh token.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from session_tokens.models.session import (
    TOKEN_KEY_PREFIX,
    AuthenticationProperties,
    SessionPrincipal,
)
from session_tokens.models.tokens import UserAccessToken, UserAccessTokenParameters
from session_tokens.services.authentication import AuthenticationSession

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access_token"
REFRESH_TOKEN = "refresh_token"
EXPIRES_AT = "expires_at"

PrincipalFilter = Callable[[SessionPrincipal], Awaitable[SessionPrincipal]]

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


class AnonymousSessionError(Exception):
    """Raised when tokens are written for a request without a valid session."""


class TokenExpirationFormatError(ValueError):
    """Raised when a stored expiration cannot be parsed as a timestamp."""


def token_key(kind: str, qualifier: Optional[str] = None, *, prefix: str = TOKEN_KEY_PREFIX) -> str:
    """Build the property bag key for a token kind and optional qualifier."""
    name = f"{prefix}{kind}"
    if qualifier:
        name += f"::{qualifier}"
    return name


def format_expiration(expiration: datetime) -> str:
    """Render an expiration as an ISO-8601 string with an explicit offset."""
    if expiration.tzinfo is None:
        expiration = expiration.replace(tzinfo=timezone.utc)
    return expiration.isoformat()


def parse_expiration(value: str) -> datetime:
    """Parse a stored expiration; naive values are read as UTC."""
    try:
        # datetime only keeps microseconds; round-trip formats may carry 7 digits.
        parsed = datetime.fromisoformat(_EXCESS_FRACTION.sub(r"\1", value))
    except (TypeError, ValueError) as exc:
        raise TokenExpirationFormatError(
            f"Stored token expiration {value!r} is not an ISO-8601 timestamp."
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _keep_principal(principal: SessionPrincipal) -> SessionPrincipal:
    return principal


def _scheme_label(parameters: UserAccessTokenParameters) -> str:
    return parameters.sign_in_scheme or "default signin scheme"


class SessionUserAccessTokenStore:
    """Reads and writes user tokens inside an authentication session."""

    def __init__(self, *, principal_filter: Optional[PrincipalFilter] = None) -> None:
        # Lets callers drop claims before the session is re-issued.
        self._filter_principal = principal_filter or _keep_principal

    async def get_token(
        self,
        session: AuthenticationSession,
        user: Optional[SessionPrincipal] = None,
        parameters: Optional[UserAccessTokenParameters] = None,
    ) -> Optional[UserAccessToken]:
        """Return the tokens stored for ``parameters`` or None when unavailable."""
        parameters = parameters or UserAccessTokenParameters()
        result = await session.authenticate(parameters.sign_in_scheme)

        if not result.succeeded:
            logger.info("Cannot authenticate scheme: %s", _scheme_label(parameters))
            return None

        if result.properties is None:
            logger.info(
                "Authentication result properties are null for scheme: %s",
                _scheme_label(parameters),
            )
            return None

        tokens = result.properties.token_items()
        if not tokens:
            logger.info(
                "No tokens found in session properties. Token saving must be "
                "enabled for automatic token refresh."
            )
            return None

        access_token = tokens.get(token_key(ACCESS_TOKEN, parameters.resource))
        refresh_token = tokens.get(token_key(REFRESH_TOKEN, parameters.challenge_scheme))
        expires_at = tokens.get(token_key(EXPIRES_AT, parameters.resource))

        expiration = parse_expiration(expires_at) if expires_at is not None else None

        return UserAccessToken(
            access_token=access_token,
            refresh_token=refresh_token,
            expiration=expiration,
        )

    async def store_token(
        self,
        session: AuthenticationSession,
        user: Optional[SessionPrincipal],
        access_token: str,
        expiration: datetime,
        refresh_token: Optional[str] = None,
        parameters: Optional[UserAccessTokenParameters] = None,
    ) -> None:
        """Write tokens into the session and re-issue it."""
        parameters = parameters or UserAccessTokenParameters()
        result = await session.authenticate(parameters.sign_in_scheme)

        if not result.succeeded or result.principal is None:
            raise AnonymousSessionError("Can't store tokens. User is anonymous")

        principal = await self._filter_principal(result.principal)
        properties = result.properties or AuthenticationProperties()

        access_token_name = token_key(ACCESS_TOKEN, parameters.resource, prefix="")
        refresh_token_name = token_key(REFRESH_TOKEN, parameters.challenge_scheme, prefix="")
        expires_name = token_key(EXPIRES_AT, parameters.resource, prefix="")

        properties.items[f"{TOKEN_KEY_PREFIX}{access_token_name}"] = access_token
        properties.items[f"{TOKEN_KEY_PREFIX}{expires_name}"] = format_expiration(expiration)

        if refresh_token is not None:
            if not properties.update_token_value(refresh_token_name, refresh_token):
                properties.items[f"{TOKEN_KEY_PREFIX}{refresh_token_name}"] = refresh_token

        await session.sign_in(parameters.sign_in_scheme, principal, properties)

    async def clear_token(
        self,
        session: AuthenticationSession,
        user: Optional[SessionPrincipal] = None,
        parameters: Optional[UserAccessTokenParameters] = None,
    ) -> None:
        """Remove the tokens matching ``parameters``; other entries are kept."""
        parameters = parameters or UserAccessTokenParameters()
        result = await session.authenticate(parameters.sign_in_scheme)

        if not result.succeeded or result.principal is None or result.properties is None:
            logger.info(
                "Nothing to clear for scheme: %s", _scheme_label(parameters)
            )
            return

        properties = result.properties
        removed = [
            key
            for key in (
                token_key(ACCESS_TOKEN, parameters.resource),
                token_key(EXPIRES_AT, parameters.resource),
                token_key(REFRESH_TOKEN, parameters.challenge_scheme),
            )
            if properties.items.pop(key, None) is not None
        ]
        if not removed:
            return

        principal = await self._filter_principal(result.principal)
        await session.sign_in(parameters.sign_in_scheme, principal, properties)
        logger.info("Cleared %d token entries", len(removed))


__all__ = [
    "ACCESS_TOKEN",
    "AnonymousSessionError",
    "EXPIRES_AT",
    "PrincipalFilter",
    "REFRESH_TOKEN",
    "SessionUserAccessTokenStore",
    "TokenExpirationFormatError",
    "format_expiration",
    "parse_expiration",
    "token_key",
]
