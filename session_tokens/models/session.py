"""
Domain models describing an authenticated session and its property bag.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

TOKEN_KEY_PREFIX = ".Token."


class SessionPrincipal(BaseModel):
    """The signed-in user a session belongs to."""

    subject: str
    authentication_type: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)


class AuthenticationProperties(BaseModel):
    """Mutable string-keyed metadata persisted alongside a session."""

    items: Dict[str, str] = Field(default_factory=dict)

    def update_token_value(self, token_name: str, token_value: str) -> bool:
        """
        Overwrite an existing token entry in place.

        Returns False without touching the bag when no entry exists yet.
        """
        key = f"{TOKEN_KEY_PREFIX}{token_name}"
        if key not in self.items:
            return False
        self.items[key] = token_value
        return True

    def token_items(self) -> Dict[str, str]:
        """Return only the entries that follow the token naming convention."""
        return {
            key: value
            for key, value in self.items.items()
            if key.startswith(TOKEN_KEY_PREFIX)
        }


class AuthenticateResult(BaseModel):
    """Outcome of authenticating a request against a session scheme."""

    succeeded: bool
    principal: Optional[SessionPrincipal] = None
    properties: Optional[AuthenticationProperties] = None
    failure: Optional[str] = None

    @classmethod
    def success(
        cls,
        principal: SessionPrincipal,
        properties: Optional[AuthenticationProperties] = None,
    ) -> "AuthenticateResult":
        return cls(succeeded=True, principal=principal, properties=properties)

    @classmethod
    def fail(cls, message: str) -> "AuthenticateResult":
        return cls(succeeded=False, failure=message)


__all__ = [
    "AuthenticateResult",
    "AuthenticationProperties",
    "SessionPrincipal",
    "TOKEN_KEY_PREFIX",
]
