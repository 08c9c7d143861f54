"""Starlette authentication backend for bearer tokens."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    AuthenticationError,
    BaseUser,
)
from starlette.responses import JSONResponse

from coach_realtime.adapters.auth.tokens import TokenError, TokenService

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection
    from starlette.responses import Response

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseUser):
    """A user authenticated by a valid access token."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.user_id

    @property
    def identity(self) -> str:
        return self.user_id


def extract_token(conn: HTTPConnection) -> str | None:
    """Read the bearer token from the Authorization header or the ``token`` query param.

    Browsers cannot set headers on websocket handshakes, so live connections
    pass the token in the query string.
    """
    authorization = conn.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    token = conn.query_params.get("token")
    return token or None


class BearerTokenBackend(AuthenticationBackend):
    """Authenticates requests and websocket handshakes carrying an access token."""

    def __init__(self, tokens: TokenService) -> None:
        self._tokens = tokens

    async def authenticate(self, conn: HTTPConnection) -> tuple[AuthCredentials, BaseUser] | None:
        token = extract_token(conn)
        if token is None:
            return None
        try:
            user_id = self._tokens.validate(token)
        except TokenError as e:
            logger.info(f"Rejected token on {conn.url.path}: {e}")
            raise AuthenticationError(str(e)) from e
        return AuthCredentials(["authenticated"]), AuthenticatedUser(user_id)


def on_auth_error(_conn: HTTPConnection, exc: Exception) -> Response:
    """Respond to an invalid token with 401."""
    return JSONResponse({"error": str(exc)}, status_code=401)
