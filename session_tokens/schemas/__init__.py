"""Public schema exports."""

from .tokens import StoreTokenRequest, TokenResponse

__all__ = ["StoreTokenRequest", "TokenResponse"]
