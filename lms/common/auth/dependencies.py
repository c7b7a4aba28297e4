"""
Authentication dependencies for the LMS API.

This module provides FastAPI dependencies that resolve the calling user
from the bearer token and gate routes by role.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.common.auth.exceptions import (
    InsufficientPermissionsError,
    MissingTokenError,
    UserNotFoundError,
)
from lms.common.auth.jwt import TokenType, get_token_identity, validate_token
from lms.common.auth.roles import UserRole
from lms.common.db.session import get_session

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the authenticated user for the request.

    Args:
        authorization: Authorization header value
        session: Database session

    Returns:
        The User the access token was issued to

    Raises:
        MissingTokenError: If no bearer token was sent
        ExpiredTokenError: If the token has expired
        InvalidTokenError: If the token fails verification
        UserNotFoundError: If the user no longer exists
    """
    token = extract_bearer_token(authorization)
    if not token:
        logger.debug("Request without access token")
        raise MissingTokenError()

    payload = validate_token(token, TokenType.ACCESS)
    user = await session.get(User, get_token_identity(payload))
    if user is None:
        raise UserNotFoundError()

    return user


def require_role(*roles: UserRole) -> Callable:
    """
    Build a dependency that only lets the listed roles through.

    ADMIN users pass every role check.

    Usage:
        @router.post("/", dependencies=[Depends(require_role(UserRole.INSTRUCTOR))])
    """
    allowed = set(roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role == UserRole.ADMIN or user.role in allowed:
            return user
        raise InsufficientPermissionsError()

    return dependency


require_staff = require_role(UserRole.ADMIN, UserRole.INSTRUCTOR)
require_admin = require_role(UserRole.ADMIN)
require_student = require_role(UserRole.STUDENT)
