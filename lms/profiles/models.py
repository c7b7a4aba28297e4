"""
SQLAlchemy models for extended user profiles and the autocomplete
suggestion values collected from them.
"""

import datetime
from typing import Any, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lms.common.utils import utcnow
from lms.database.base import JSONType, ModelBase

DEFAULT_COUNTRY = "Jordan"
DEFAULT_CITY = "Amman"


class Profile(ModelBase):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    is_student: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    full_name4: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[str] = mapped_column(String(128), nullable=False, default=DEFAULT_COUNTRY, index=True)
    city: Mapped[str] = mapped_column(String(128), nullable=False, default=DEFAULT_CITY, index=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    skills: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    interests: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    experience_level: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    current_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    portfolio_links: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    heard_from: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    heard_from_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    university: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    major: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    education_level: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    graduation_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class SuggestionValue(ModelBase):
    """A value users typed for a profile field, counted for autocomplete."""

    __tablename__ = "suggestion_values"
    __table_args__ = (
        UniqueConstraint("key", "value", "country_scope"),
        Index("idx_suggestion_values_key_scope", "key", "country_scope"),
    )

    key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    country_scope: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_used_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )
