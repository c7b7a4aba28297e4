"""
SQLAlchemy Base Configuration

This module provides the SQLAlchemy declarative base shared by every LMS
model, plus the column helpers the models use.
"""

import datetime
import enum
from typing import Any, Dict, Iterable, Optional
import logging

from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, MetaData, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from lms.common.utils import generate_id

logger = logging.getLogger(__name__)

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)

# Generic JSON column, JSONB on PostgreSQL
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base with the configured metadata."""

    metadata = metadata


class ModelBase(Base):
    """Base class for all LMS models: string UUID key plus dict helpers."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)

    def to_dict(self, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to a camelCase dictionary.

        Args:
            exclude: Column names (snake_case) to leave out

        Returns:
            Dictionary of column values keyed by camelCase name
        """
        skipped = set(exclude or ())
        data = {}
        for column in self.__table__.columns:
            if column.key in skipped:
                continue
            value = getattr(self, column.key)
            if isinstance(value, (datetime.datetime, datetime.date)):
                value = value.isoformat()
            elif isinstance(value, enum.Enum):
                value = value.value
            data[to_camel(column.key)] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Any:
        """Create model instance from a snake_case dictionary."""
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__table__.columns
        })

    def update(self, data: Dict[str, Any]) -> None:
        """Update model instance from a snake_case dictionary."""
        for key, value in data.items():
            if key in self.__table__.columns and key != "id":
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id='{self.id}')>"
