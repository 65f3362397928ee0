"""
FastAPI application entrypoint for the session token API.
"""

from __future__ import annotations

from fastapi import FastAPI

from session_tokens.api.routes import router as api_router
from session_tokens.core.config import get_settings
from session_tokens.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Session Token Store",
        version="0.1.0",
        description="Read, store and clear user tokens kept in the authentication session.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
