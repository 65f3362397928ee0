"""Schemas for the session token endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from session_tokens.models.tokens import UserAccessTokenParameters


class StoreTokenRequest(BaseModel):
    """Payload written into the caller's session."""

    access_token: str = Field(..., min_length=1, description="Access token to persist.")
    expires_at: datetime = Field(..., description="Absolute expiration of the access token.")
    refresh_token: str | None = Field(
        default=None, description="Optional refresh token; left untouched when omitted."
    )
    sign_in_scheme: str | None = None
    resource: str | None = None
    challenge_scheme: str | None = None

    def parameters(self) -> UserAccessTokenParameters:
        return UserAccessTokenParameters(
            sign_in_scheme=self.sign_in_scheme,
            resource=self.resource,
            challenge_scheme=self.challenge_scheme,
        )


class TokenResponse(BaseModel):
    """Token values returned for the caller's session."""

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None


__all__ = ["StoreTokenRequest", "TokenResponse"]
