"""
Common utility functions shared across LMS modules.
"""

import uuid
import datetime
from typing import Any, Iterable, List, Optional


def generate_id() -> str:
    """Generate a new string UUID for primary keys."""
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    """Current UTC time as a naive datetime, the way it is stored."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted to UTC before the tzinfo is dropped;
    naive values are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def isoformat(value: Any) -> Any:
    """Render dates and datetimes as ISO-8601 strings, leave others untouched."""
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


def round_half_up(value: float, digits: int = 1) -> float:
    """Round half away from zero to ``digits`` decimals."""
    factor = 10 ** digits
    scaled = value * factor
    rounded = int(scaled + 0.5) if scaled >= 0 else -int(-scaled + 0.5)
    return rounded / factor


def unique(values: Iterable[Any]) -> List[Any]:
    """Deduplicate while keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def paginate(total: int, page: int, limit: int) -> dict:
    """Build the pagination block returned by list endpoints."""
    total_pages = (total + limit - 1) // limit if limit > 0 else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
    }
