"""
SQLAlchemy model for per-session pre/post evaluations.
"""

import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lms.common.utils import utcnow
from lms.database.base import JSONType, ModelBase


class StudentEvaluation(ModelBase):
    """
    Comparison of a student's PRE and POST quiz results for one session,
    with the strongest and weakest question tags.
    """

    __tablename__ = "student_evaluations"
    __table_args__ = (UniqueConstraint("session_id", "student_id"),)

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pre_attempt_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("quiz_attempts.id", ondelete="SET NULL"), nullable=True
    )
    post_attempt_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("quiz_attempts.id", ondelete="SET NULL"), nullable=True
    )
    pre_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    post_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    pre_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    post_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    improvement_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    improvement_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    strengths: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    weaknesses: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    computed_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )
