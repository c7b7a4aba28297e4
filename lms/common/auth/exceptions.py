"""
Authentication Exceptions

This module defines the exception classes raised by token handling and the
request authentication dependencies. They share the LMSError hierarchy so
the API layer renders them like any other service error.
"""

from lms.common.error_handling import AuthenticationError, AuthorizationError


class AuthError(AuthenticationError):
    """Base exception for authentication errors (401)."""

    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)


class MissingTokenError(AuthError):
    """Raised when a request carries no bearer token."""

    def __init__(self, message: str = "Access token required"):
        super().__init__(message)


class ExpiredTokenError(AuthError):
    """Raised when a token has expired."""

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)


class InvalidTokenError(AuthorizationError):
    """Raised when a token cannot be verified (403)."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Raised when login credentials are invalid."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class UserNotFoundError(AuthError):
    """Raised when a token references a user that no longer exists."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class InsufficientPermissionsError(AuthorizationError):
    """Raised when a user does not have a required role."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)
