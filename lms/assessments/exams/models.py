"""
SQLAlchemy models for pre/post session exams. Unlike quizzes, an exam
serves a random subset of its question bank to every attempt.
"""

import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from lms.assessments.quizzes.models import (
    AssessmentStatus, AssessmentType, AttemptStatus, QuestionType
)
from lms.common.utils import utcnow
from lms.database.base import JSONType, ModelBase


class Exam(ModelBase):
    __tablename__ = "exams"
    __table_args__ = (UniqueConstraint("session_id", "type"),)

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[AssessmentType] = mapped_column(
        Enum(AssessmentType, name="assessment_type", native_enum=False), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exam_question_count: Mapped[int] = mapped_column(Integer, nullable=False)
    time_limit_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    attempts_allowed: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    available_from: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, nullable=True)
    available_to: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, nullable=True)
    show_solutions_after_submit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[AssessmentStatus] = mapped_column(
        Enum(AssessmentStatus, name="assessment_status", native_enum=False),
        nullable=False,
        default=AssessmentStatus.DRAFT,
    )
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class ExamQuestion(ModelBase):
    __tablename__ = "exam_questions"

    exam_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_type: Mapped[QuestionType] = mapped_column(
        Enum(QuestionType, name="question_type", native_enum=False), nullable=False
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    choices: Mapped[Optional[List[str]]] = mapped_column(JSONType, nullable=True)
    correct_answer: Mapped[Any] = mapped_column(JSONType, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def public_dict(self):
        return self.to_dict(exclude={"correct_answer"})


class ExamAttempt(ModelBase):
    __tablename__ = "exam_attempts"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", "attempt_number"),)

    exam_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    served_question_ids: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[AttemptStatus] = mapped_column(
        Enum(AttemptStatus, name="attempt_status", native_enum=False),
        nullable=False,
        default=AttemptStatus.IN_PROGRESS,
    )
    started_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    submitted_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, nullable=True)
    raw_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_raw_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    final_score10: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class ExamAnswer(ModelBase):
    __tablename__ = "exam_answers"
    __table_args__ = (UniqueConstraint("attempt_id", "question_id"),)

    attempt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("exam_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answer: Mapped[Any] = mapped_column(JSONType, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    earned_points: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
