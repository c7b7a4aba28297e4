"""
Application logging.

All LMS loggers hang below the ``lms`` logger, which is configured once
from the LOG_LEVEL, LOG_JSON and LOG_FILE settings. Modules call
``get_logger(__name__)`` and inherit its handlers; ``with_context`` adds
fixed fields to every record and ``log_execution_time`` times a call.
"""

import datetime
import functools
import inspect
import json
import logging
import os
import sys
import time
from typing import Any, Callable, Dict, Optional, TypeVar, Union, cast

from lms.config import settings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

F = TypeVar('F', bound=Callable)

APP_LOGGER_NAME = "lms"

__all__ = [
    'JsonFormatter',
    'configure_logger',
    'get_logger',
    'app_logger',
    'LoggerAdapter',
    'with_context',
    'log_execution_time',
]


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    A dict passed as ``extra={"data": {...}}`` is merged into the object,
    which is how error logs carry their code, status and context.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry.update(data)

        return json.dumps(entry, default=str)


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    use_json: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Replace the handlers of a logger with a stdout handler and, optionally,
    a file handler.

    Args:
        name: Logger name
        level: Level name or number
        use_json: Emit JSON lines instead of the plain format
        log_file: Also write to this file, creating its directory

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    formatter = JsonFormatter() if use_json else logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            logger.warning(f"Could not open log file {log_file}: {e}")

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def get_logger(name: str, parent: Optional[logging.Logger] = None) -> logging.Logger:
    """Logger for a module; pass ``parent`` to nest it under another logger."""
    if parent:
        return parent.getChild(name)
    return logging.getLogger(name)


app_logger = configure_logger(
    level=settings.LOG_LEVEL,
    use_json=settings.LOG_JSON,
    log_file=settings.LOG_FILE,
)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adds a fixed context, such as a student or course id, to every record.

    The context travels in ``extra["data"]``, so ``JsonFormatter`` emits it
    as top-level fields.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs = kwargs.copy()
        extra = dict(kwargs.get("extra") or {})
        extra["data"] = {**self.extra, **(extra.get("data") or {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context) -> "LoggerAdapter":
        """A new adapter with this adapter's context plus ``context``."""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def with_context(name: Optional[str] = None, **context) -> LoggerAdapter:
    """
    Logger adapter carrying ``context`` on every record.

    Args:
        name: Logger name, defaults to the ``lms`` logger
        **context: Fields added to each record

    Example:
        log = with_context(__name__, student_id=student_id, course_id=course_id)
        log.info("Metrics computed")
    """
    logger = get_logger(name) if name else app_logger
    return LoggerAdapter(logger, context)


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Decorator logging how long a function or coroutine function took.

    Successful calls are logged at debug level, failures at error level
    before the exception propagates.
    """
    def decorator(func: F) -> F:
        def report(start_time: float, error: Optional[Exception] = None) -> None:
            elapsed = time.perf_counter() - start_time
            target = logger or app_logger
            if error is None:
                target.debug(f"{func.__name__} executed in {elapsed:.3f} seconds")
            else:
                target.error(f"{func.__name__} failed after {elapsed:.3f} seconds: {error}")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start_time, e)
                raise
            report(start_time)
            return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                report(start_time, e)
                raise
            report(start_time)
            return result

        return cast(F, async_wrapper if inspect.iscoroutinefunction(func) else wrapper)

    return decorator
