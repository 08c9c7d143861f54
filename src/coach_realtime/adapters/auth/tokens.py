"""Signed access tokens.

Tokens are HS256 JWTs carrying the user id in ``sub``. They are
self-contained; nothing is stored server side.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"


class TokenError(Exception):
    """Raised when a token is missing, malformed, expired or forged."""


class TokenService:
    """Issues and validates access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_hours: int = 24) -> None:
        """Initialize the token service.

        Args:
            secret: Signing secret.
            algorithm: JWT algorithm.
            ttl_hours: Default token lifetime in hours.
        """
        if not secret:
            raise TokenError("token secret is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(hours=ttl_hours)

    def issue(self, user_id: str, ttl: timedelta | None = None) -> str:
        """Issue a token for the user.

        Args:
            user_id: Identity placed in the ``sub`` claim.
            ttl: Optional lifetime overriding the default.

        Returns:
            Encoded JWT.
        """
        if not user_id:
            raise TokenError("cannot issue a token without a user id")
        now = datetime.now(UTC)
        payload = {
            "type": TOKEN_TYPE,
            "sub": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + (ttl or self._ttl)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> str:
        """Validate a token and return its user id.

        Raises:
            TokenError: If the token is invalid or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("token has expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenError(f"invalid token: {e}") from e

        if payload.get("type") != TOKEN_TYPE:
            raise TokenError("invalid token type")
        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise TokenError("token has no subject")
        return user_id
