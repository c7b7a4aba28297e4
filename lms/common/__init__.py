"""
Common Components for the LMS backend

Infrastructure shared across the resource modules:
1. Logging - Centralized logging configuration
2. Error Handling - Error hierarchy, tracing and HTTP error bodies
3. Validation - Business-rule checks with client-facing messages
4. Auth - JWT tokens, password hashing and role dependencies
5. Database - Async sessions and the generic repository
"""

from lms.common.logger import app_logger

from lms.common.error_handling import (
    LMSError, ValidationError, AuthenticationError, AuthorizationError,
    NotFoundError, ConflictError, RateLimitError, StorageError, AsyncErrorTracer
)

__all__ = [
    "app_logger",
    "LMSError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "StorageError",
    "AsyncErrorTracer",
]
