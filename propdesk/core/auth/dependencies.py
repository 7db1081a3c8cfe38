"""
FastAPI dependencies for authentication.

Tokens are issued elsewhere; this module only verifies them and resolves
the caller to a User row.

Usage:
    from propdesk.core.auth import CurrentUser

    @router.get("/protected")
    async def handler(user: CurrentUser):
        ...
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.api.dependencies.database import get_db
from propdesk.models.user import User
from propdesk.repositories.user import UserRepository
from propdesk.services.auth import AuthService


bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        HTTPException 401: If not authenticated
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = AuthService().decode_token(credentials.credentials)
    except JWTError:
        raise _unauthorized("Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Invalid token")

    try:
        user_id = UUID(subject)
    except ValueError:
        raise _unauthorized("Invalid token")

    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise _unauthorized("User is inactive")

    return user


# Authenticated user (required)
CurrentUser = Annotated[User, Depends(get_current_user)]
