"""
FastAPI routes exposing the tokens stored in the caller's session.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from session_tokens.dependencies import get_request_session, get_token_store
from session_tokens.models.tokens import UserAccessTokenParameters
from session_tokens.schemas import StoreTokenRequest, TokenResponse
from session_tokens.services.token_store import (
    AnonymousSessionError,
    TokenExpirationFormatError,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_parameters(
    sign_in_scheme: str | None = Query(
        default=None, description="Session scheme; the configured default when omitted."
    ),
    resource: str | None = Query(
        default=None, description="Resource the access token is scoped to."
    ),
    challenge_scheme: str | None = Query(
        default=None, description="Challenge scheme the refresh token is scoped to."
    ),
) -> UserAccessTokenParameters:
    return UserAccessTokenParameters(
        sign_in_scheme=sign_in_scheme,
        resource=resource,
        challenge_scheme=challenge_scheme,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/session/tokens", status_code=HTTPStatus.OK, response_model=TokenResponse)
async def read_session_tokens(
    session: Annotated[Any, Depends(get_request_session)],
    token_store: Annotated[Any, Depends(get_token_store)],
    parameters: Annotated[UserAccessTokenParameters, Depends(_token_parameters)],
) -> TokenResponse:
    """Return the tokens stored in the current session."""
    try:
        token = await token_store.get_token(session, None, parameters)
    except TokenExpirationFormatError as exc:
        logger.exception("Session holds a malformed token expiration")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Stored token expiration is malformed.",
        ) from exc

    if token is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No tokens available for this session.",
        )

    return TokenResponse(
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        expires_at=token.expiration,
    )


@router.put("/session/tokens", status_code=HTTPStatus.NO_CONTENT)
async def store_session_tokens(
    payload: StoreTokenRequest,
    session: Annotated[Any, Depends(get_request_session)],
    token_store: Annotated[Any, Depends(get_token_store)],
) -> Response:
    """Persist tokens into the current session and re-issue it."""
    try:
        await token_store.store_token(
            session,
            None,
            payload.access_token,
            payload.expires_at,
            refresh_token=payload.refresh_token,
            parameters=payload.parameters(),
        )
    except AnonymousSessionError as exc:
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail=str(exc)) from exc

    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.delete("/session/tokens", status_code=HTTPStatus.NO_CONTENT)
async def clear_session_tokens(
    session: Annotated[Any, Depends(get_request_session)],
    token_store: Annotated[Any, Depends(get_token_store)],
    parameters: Annotated[UserAccessTokenParameters, Depends(_token_parameters)],
) -> Response:
    """Remove the matching tokens from the current session."""
    await token_store.clear_token(session, None, parameters)
    return Response(status_code=HTTPStatus.NO_CONTENT)


__all__ = ["router"]
