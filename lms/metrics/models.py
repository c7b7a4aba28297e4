"""
SQLAlchemy model for storing computed per-course student metrics.
"""

import datetime
from typing import List

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lms.common.utils import utcnow
from lms.database.base import JSONType, ModelBase


class StudentCourseMetrics(ModelBase):
    """
    Latest computed performance snapshot of a student in one course.

    Rates are stored as fractions in [0, 1]; overall_score is 0-100.
    """

    __tablename__ = "student_course_metrics"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id"),
        Index("idx_student_course_metrics_overall", "overall_score"),
    )

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attendance_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    assignment_completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    assignment_quality: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    exams_avg: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    alerts: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    recommendations: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    computed_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self):
        return (f"<StudentCourseMetrics(student_id='{self.student_id}', "
                f"course_id='{self.course_id}', overall={self.overall_score})>")
