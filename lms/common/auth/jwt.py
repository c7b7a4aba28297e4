"""
JWT Authentication Module

This module provides utilities for JWT-based authentication, including token
creation and validation. Access and refresh tokens are signed with separate
secrets so a leaked refresh secret cannot mint access tokens.
"""

import datetime
import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

# Using PyJWT for JWT operations
import jwt

from lms.config import settings
from lms.common.auth.exceptions import ExpiredTokenError, InvalidTokenError


class TokenType(enum.Enum):
    """Types of JWT tokens supported by the system."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class JWTConfig:
    """
    Configuration for JWT tokens.

    Attributes:
        access_secret: Secret used to sign access tokens
        refresh_secret: Secret used to sign refresh tokens
        algorithm: Algorithm used for signing tokens
        access_token_expires: Access token expiration time in minutes
        refresh_token_expires: Refresh token expiration time in days
        token_issuer: Issuer of the tokens
    """
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_token_expires: int = 15  # minutes
    refresh_token_expires: int = 7  # days
    token_issuer: str = "lms-api"

    def secret_for(self, token_type: TokenType) -> str:
        if token_type == TokenType.REFRESH:
            return self.refresh_secret
        return self.access_secret


_jwt_config = JWTConfig(
    access_secret=settings.JWT_ACCESS_SECRET,
    refresh_secret=settings.JWT_REFRESH_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    access_token_expires=settings.ACCESS_TOKEN_EXPIRES_MINUTES,
    refresh_token_expires=settings.REFRESH_TOKEN_EXPIRES_DAYS,
)


def get_jwt_config() -> JWTConfig:
    """
    Get the current JWT configuration.

    Returns:
        The current JWT configuration
    """
    return _jwt_config


def _encode(
    subject: Union[str, int],
    token_type: TokenType,
    expires_delta: datetime.timedelta,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    config = get_jwt_config()
    now = datetime.datetime.now(datetime.timezone.utc)

    payload = {
        "sub": str(subject),
        "exp": now + expires_delta,
        "iat": now,
        "iss": config.token_issuer,
        "type": token_type.value
    }
    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, config.secret_for(token_type), algorithm=config.algorithm)


def create_access_token(
    subject: Union[str, int],
    additional_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None
) -> str:
    """
    Create a new JWT access token.

    Args:
        subject: The subject of the token (the user ID)
        additional_claims: Additional claims to include in the token, e.g. the role
        expires_in: Token expiration time in minutes (overrides config)

    Returns:
        The JWT access token as a string
    """
    minutes = expires_in if expires_in is not None else get_jwt_config().access_token_expires
    return _encode(subject, TokenType.ACCESS, datetime.timedelta(minutes=minutes), additional_claims)


def create_refresh_token(
    subject: Union[str, int],
    additional_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None
) -> str:
    """
    Create a new JWT refresh token.

    Args:
        subject: The subject of the token (the user ID)
        additional_claims: Additional claims to include in the token
        expires_in: Token expiration time in days (overrides config)

    Returns:
        The JWT refresh token as a string
    """
    days = expires_in if expires_in is not None else get_jwt_config().refresh_token_expires
    return _encode(subject, TokenType.REFRESH, datetime.timedelta(days=days), additional_claims)


def validate_token(
    token: str,
    expected_type: TokenType = TokenType.ACCESS,
    expired_message: str = "Token expired",
    invalid_message: str = "Invalid token"
) -> Dict[str, Any]:
    """
    Validate a JWT token and return its payload.

    Args:
        token: The JWT token to validate
        expected_type: The token type, which also selects the signing secret
        expired_message: Message used when the token has expired
        invalid_message: Message used for any other verification failure

    Returns:
        The decoded and validated token payload

    Raises:
        InvalidTokenError: If the token is invalid or of the wrong type
        ExpiredTokenError: If the token has expired
    """
    config = get_jwt_config()

    try:
        payload = jwt.decode(
            token,
            config.secret_for(expected_type),
            algorithms=[config.algorithm],
            issuer=config.token_issuer,
            options={"require": ["exp", "iat", "sub", "type"]}
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError(expired_message)
    except jwt.PyJWTError:
        raise InvalidTokenError(invalid_message)

    if payload.get("type") != expected_type.value:
        raise InvalidTokenError(invalid_message)

    return payload


def get_token_identity(payload: Dict[str, Any]) -> str:
    """
    Extract the subject (user id) from a validated payload.

    Raises:
        InvalidTokenError: If the payload doesn't contain a subject
    """
    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenError()
    return subject
