"""
SQLAlchemy model for platform users.
"""

import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from lms.common.auth.roles import UserRole
from lms.common.utils import utcnow
from lms.database.base import ModelBase


class User(ModelBase):
    """A person using the platform: administrator, instructor or student."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False),
        nullable=False,
        default=UserRole.STUDENT,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def to_dict(self, exclude=None) -> Dict[str, Any]:
        return super().to_dict(exclude={"password_hash", *(exclude or ())})

    def brief(self) -> Dict[str, Any]:
        """The short form embedded in other resources."""
        return {"id": self.id, "name": self.name, "email": self.email}
