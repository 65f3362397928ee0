"""
Domain models for tokens persisted in an authentication session.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserAccessTokenParameters(BaseModel):
    """Qualifiers selecting which session and which token entries to use."""

    model_config = ConfigDict(frozen=True)

    sign_in_scheme: Optional[str] = Field(
        None, description="Session scheme to authenticate against; None uses the default."
    )
    challenge_scheme: Optional[str] = Field(
        None, description="Scopes the refresh token entry."
    )
    resource: Optional[str] = Field(
        None, description="Scopes the access token and expiration entries."
    )


class UserAccessToken(BaseModel):
    """Token values read back from a session property bag."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expiration: Optional[datetime] = None


__all__ = ["UserAccessToken", "UserAccessTokenParameters"]
