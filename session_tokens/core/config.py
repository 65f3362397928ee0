"""
Application configuration models and helpers.

Centralizes settings for the session token API so the FastAPI app, the
session record store and the tests share one configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the environment."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SessionSettings(BaseSettings):
    """Where authentication sessions live and how requests identify them."""

    model_config = SettingsConfigDict(populate_by_name=True)

    default_sign_in_scheme: str = Field(
        "Cookies",
        validation_alias="SESSION_DEFAULT_SCHEME",
        description="Scheme used when a caller does not name one.",
    )
    store_path: str = Field("data/sessions.db", validation_alias="SESSION_STORE_PATH")
    cookie_name: str = Field("session_id", validation_alias="SESSION_COOKIE_NAME")

    @field_validator("default_sign_in_scheme")
    @classmethod
    def _require_scheme(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Default sign-in scheme must not be empty.")
        return cleaned


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    session_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="SESSION_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting persisted "
            "session records. Records are stored as plain JSON when omitted."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    session: SessionSettings = Field(default_factory=SessionSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "SecuritySettings",
    "SessionSettings",
    "get_settings",
]
