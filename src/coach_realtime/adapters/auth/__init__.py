"""Authentication adapters."""

from coach_realtime.adapters.auth.backend import (
    AuthenticatedUser,
    BearerTokenBackend,
    extract_token,
    on_auth_error,
)
from coach_realtime.adapters.auth.tokens import TokenError, TokenService

__all__ = [
    "AuthenticatedUser",
    "BearerTokenBackend",
    "TokenError",
    "TokenService",
    "extract_token",
    "on_auth_error",
]
