"""
Token service.

Propdesk does not own sign-up or login; an upstream identity provider
hands out bearer tokens signed with the shared secret. This service
issues tokens with the same shape for tooling and tests, and decodes
them for the API.
"""

from datetime import timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from propdesk.core.config import settings
from propdesk.utils.timezone import utc_now


class AuthService:
    """Stateless JWT helper."""

    def create_access_token(
        self,
        user_id: UUID | str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create JWT access token with `sub` set to the user id."""
        expire = utc_now() + (
            expires_delta
            or timedelta(minutes=settings.auth.access_token_expire_minutes)
        )
        payload = {
            "sub": str(user_id),
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(
            payload,
            settings.auth.secret_key,
            algorithm=settings.auth.algorithm,
        )

    def decode_token(self, token: str) -> dict[str, Any]:
        """
        Decode and verify a token.

        Raises:
            jose.JWTError: If the signature or expiry is invalid, or the
                token is not an access token
        """
        payload = jwt.decode(
            token,
            settings.auth.secret_key,
            algorithms=[settings.auth.algorithm],
        )
        if payload.get("type") != "access":
            raise JWTError("Not an access token")
        return payload
