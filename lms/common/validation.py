"""
Input validation helpers.

Request bodies are parsed by pydantic; the checks here cover the business
rules whose messages clients rely on, and raise ValidationError (400).
"""

import datetime
import re
from enum import Enum
from typing import Any, Optional, Type

from lms.common.error_handling import ValidationError
from lms.common.utils import to_naive_utc

# Common validation patterns
PATTERNS = {
    "email": r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$",
    "url": r"^https?://.+",
}


def matches(pattern_name: str, value: Optional[str]) -> bool:
    """Check a value against one of the named PATTERNS."""
    if not isinstance(value, str):
        return False
    return re.match(PATTERNS[pattern_name], value) is not None


def is_valid_email(value: Optional[str]) -> bool:
    return matches("email", value)


def is_valid_url(value: Optional[str]) -> bool:
    return matches("url", value)


def require(condition: Any, message: str) -> None:
    """Raise a ValidationError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ValidationError(message)


def parse_enum(enum_class: Type[Enum], value: Any, message: str) -> Enum:
    """
    Convert a raw value to a member of ``enum_class``.

    Raises:
        ValidationError: If the value is not one of the enum values
    """
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        raise ValidationError(message)


def require_list(value: Any, message: str, allow_empty: bool = False) -> list:
    """Require a JSON array, non-empty unless ``allow_empty``."""
    if not isinstance(value, list) or (not allow_empty and not value):
        raise ValidationError(message)
    return value


def parse_iso_datetime(value: Any, message: str) -> datetime.datetime:
    """
    Parse an ISO-8601 date or datetime sent by a client into naive UTC.

    Raises:
        ValidationError: If the value is missing or not ISO-8601
    """
    if isinstance(value, datetime.datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    try:
        parsed = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(message)
    return to_naive_utc(parsed)


def parse_optional_datetime(value: Any, message: str) -> Optional[datetime.datetime]:
    """Like parse_iso_datetime, but empty values give None."""
    if value is None or value == "":
        return None
    return parse_iso_datetime(value, message)


def parse_int(value: Any, message: str, minimum: Optional[int] = None) -> int:
    """
    Accept an integer, or a string holding one, no smaller than ``minimum``.

    Raises:
        ValidationError: If the value is not such an integer
    """
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or (minimum is not None and value < minimum):
        raise ValidationError(message)
    return value


def parse_optional_int(value: Any, message: str, minimum: Optional[int] = None) -> Optional[int]:
    """Like parse_int, but falsy values (None, "", 0) give None."""
    if value is None or value == "" or value == 0:
        return None
    return parse_int(value, message, minimum)
