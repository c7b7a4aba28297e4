"""
Error handling for the LMS backend.

Every failure a handler reports to a client is an ``LMSError``: it carries
the message shown to the client, an ``ErrorCode`` and the HTTP status the
API layer answers with. The module also holds the retry decorator used for
database start-up and ``AsyncErrorTracer`` with its decorator form
``trace_errors``, which log failures of follow-up work (evaluation
recomputes, suggestion counters) and can swallow them so the request that
triggered them still succeeds.
"""

import asyncio
import functools
import inspect
import logging
import random
import traceback
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar, Union, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

F = TypeVar('F', bound=Callable)

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Machine-readable codes sent in the ``code`` field of error bodies"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_FOUND_ERROR = "not_found_error"
    CONFLICT_ERROR = "conflict_error"
    RATE_LIMIT_ERROR = "rate_limit_error"
    DATABASE_ERROR = "database_error"
    DATABASE_CONNECTION_ERROR = "database_connection_error"
    STORAGE_ERROR = "storage_error"


class ErrorInfo(BaseModel):
    """Serializable snapshot of an LMSError"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    status_code: int = 500
    severity: ErrorSeverity = ErrorSeverity.ERROR
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    stack_trace: Optional[List[str]] = None

    @field_validator('stack_trace', mode='before')
    @classmethod
    def split_stack_trace(cls, v):
        if isinstance(v, str):
            return v.splitlines()
        return v


class LMSError(Exception):
    """
    Base class for errors reported to API clients.

    Subclasses set ``status_code``, ``code`` and ``severity`` as class
    attributes; the constructor arguments override them per instance.
    """

    status_code: int = 500
    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        severity: Optional[ErrorSeverity] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if severity is not None:
            self.severity = severity
        if status_code is not None:
            self.status_code = status_code
        self.details = dict(details or {})
        self.cause = cause
        self.context = dict(context or {})
        self.timestamp = datetime.now()

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return ErrorInfo(
            code=self.code,
            message=self.message,
            status_code=self.status_code,
            severity=self.severity,
            timestamp=self.timestamp,
            details=details,
            context=self.context,
            stack_trace=traceback.format_exc() if include_stack_trace else None,
        )

    def __str__(self) -> str:
        text = f"{self.code.value}: {self.message}"
        if self.cause is not None:
            text += f" caused by {type(self.cause).__name__}: {self.cause}"
        return text


class ValidationError(LMSError):
    """A request broke a business rule (400)"""
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR
    severity = ErrorSeverity.WARNING


class AuthenticationError(LMSError):
    """The caller could not be identified (401)"""
    status_code = 401
    code = ErrorCode.AUTHENTICATION_ERROR
    severity = ErrorSeverity.WARNING


class AuthorizationError(LMSError):
    """The caller may not perform the action (403)"""
    status_code = 403
    code = ErrorCode.AUTHORIZATION_ERROR
    severity = ErrorSeverity.WARNING


class NotFoundError(LMSError):
    """A referenced course, session, quiz or other record does not exist (404)"""
    status_code = 404
    code = ErrorCode.NOT_FOUND_ERROR
    severity = ErrorSeverity.WARNING


class ConflictError(LMSError):
    """A write clashes with existing data (409)"""
    status_code = 409
    code = ErrorCode.CONFLICT_ERROR
    severity = ErrorSeverity.WARNING


class RateLimitError(LMSError):
    """Too many requests from one client (429)"""
    status_code = 429
    code = ErrorCode.RATE_LIMIT_ERROR
    severity = ErrorSeverity.WARNING

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        if retry_after is not None:
            self.details["retry_after_seconds"] = retry_after


class DatabaseError(LMSError):
    code = ErrorCode.DATABASE_ERROR


class DatabaseConnectionError(DatabaseError):
    """The database could not be reached at start-up"""
    code = ErrorCode.DATABASE_CONNECTION_ERROR
    severity = ErrorSeverity.CRITICAL

    def __init__(self, database: str, **kwargs):
        super().__init__(f"Failed to connect to database {database}", **kwargs)
        self.details["database"] = database


class StorageError(LMSError):
    """An uploaded file could not be written or read"""
    code = ErrorCode.STORAGE_ERROR


def convert_exception(exception: Exception, context: Optional[Dict[str, Any]] = None) -> LMSError:
    """
    Wrap any exception as an LMSError, keeping LMSErrors as they are.

    Args:
        exception: The exception to convert
        context: Extra context merged into the error

    Returns:
        The LMSError to report
    """
    if isinstance(exception, LMSError):
        exception.context.update(context or {})
        return exception
    return LMSError(str(exception) or "An unexpected error occurred", cause=exception, context=context)


def retry(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ignore_exceptions: Tuple[Type[Exception], ...] = ()
):
    """
    Retry a coroutine function with exponential backoff.

    Args:
        max_retries: Retries after the first failure
        retry_delay: Delay before the first retry in seconds
        backoff_factor: Multiplier applied to the delay after each retry
        jitter: Relative random spread applied to each delay
        retry_exceptions: Exception types that trigger a retry
        ignore_exceptions: Exception types raised immediately

    Returns:
        Decorated function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            delay = retry_delay
            for attempt in range(1, max_retries + 2):
                try:
                    return await func(*args, **kwargs)
                except ignore_exceptions:
                    raise
                except retry_exceptions as e:
                    if attempt > max_retries:
                        raise
                    wait = delay * (1 + random.uniform(-jitter, jitter))
                    logger.warning(
                        f"{func.__name__} failed ({type(e).__name__}: {e}), "
                        f"retry {attempt}/{max_retries} in {wait:.2f}s"
                    )
                    await asyncio.sleep(wait)
                    delay *= backoff_factor

        return cast(F, wrapper)

    return decorator


class AsyncErrorTracer:
    """
    Async context manager that logs failures of an operation.

    Errors leave the block as LMSErrors. With ``suppress=True`` they are
    logged and swallowed instead.

    Example:
        async with AsyncErrorTracer("recompute_evaluation", context={"session_id": sid}, suppress=True):
            await recompute_evaluation(session, sid, student_id)
    """

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.ERROR,
        include_stack_trace: bool = True,
        suppress: bool = False
    ):
        self.operation = operation
        self.context = {**(context or {}), "operation": operation}
        self.log_level = log_level
        self.include_stack_trace = include_stack_trace
        self.suppress = suppress

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_val is None or isinstance(exc_val, (KeyboardInterrupt, SystemExit, asyncio.CancelledError)):
            return False

        error = convert_exception(exc_val, context=self.context)
        message = f"Error in {self.operation}: {error}"
        if self.include_stack_trace:
            message += f"\n{traceback.format_exc()}"
        logger.log(self.log_level, message)

        if self.suppress:
            return True
        if error is exc_val:
            return False
        raise error from exc_val


def trace_errors(
    operation: str,
    context: Optional[Dict[str, Any]] = None,
    log_level: int = logging.ERROR,
    include_stack_trace: bool = True,
    suppress: bool = False
):
    """
    Decorator running a coroutine function inside an ``AsyncErrorTracer``.

    With ``suppress=True`` a failure is logged and the call returns None.

    Args:
        operation: Name of the operation in the log message
        context: Extra context attached to the error
        log_level: Logging level for failures
        include_stack_trace: Whether to log the stack trace
        suppress: Swallow failures instead of raising them

    Returns:
        Decorated function
    """
    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"trace_errors needs a coroutine function, got {func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            tracer = AsyncErrorTracer(
                operation=operation,
                context={**(context or {}), "function": func.__name__},
                log_level=log_level,
                include_stack_trace=include_stack_trace,
                suppress=suppress,
            )
            async with tracer:
                return await func(*args, **kwargs)
            return None

        return cast(F, wrapper)

    return decorator


def error_response(error: Union[LMSError, Exception], include_details: bool = True) -> Dict[str, Any]:
    """
    The ``{"status": "error", "code", "message", "error"}`` body sent to
    clients; ``error`` repeats the message for clients that read that key.
    """
    error = convert_exception(error)
    body = {"status": "error", "code": error.code.value, "message": error.message, "error": error.message}
    if include_details and error.details:
        body["details"] = error.details
    return body


def log_error(
    error: Union[LMSError, Exception],
    level: int = logging.ERROR,
    include_stack_trace: bool = True,
    context: Optional[Dict[str, Any]] = None
) -> None:
    error = convert_exception(error, context=context)
    message = f"ERROR [{error.code.value}]: {error.message}"
    if error.context:
        message += " (" + ", ".join(f"{k}={v}" for k, v in error.context.items()) + ")"
    if error.cause is not None:
        message += f" caused by {type(error.cause).__name__}: {error.cause}"
    info = error.to_error_info(include_stack_trace=include_stack_trace)
    if info.stack_trace:
        message += "\n" + "\n".join(info.stack_trace)
    # JsonFormatter merges ``data`` into the emitted record
    logger.log(level, message, extra={"data": info.model_dump(mode="json", exclude={"message", "stack_trace"})})
