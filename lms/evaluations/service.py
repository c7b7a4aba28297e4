"""
Evaluation Service

Builds the per-session comparison of a student's PRE and POST quiz
results and serves the evaluation listings and CSV exports.
"""

import csv
import io
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assessments.grading import aggregate_tag_performance, percentage, split_strengths_weaknesses
from lms.assessments.quizzes.models import (
    AssessmentStatus, AssessmentType, AttemptStatus, Quiz, QuizAnswer, QuizAttempt, QuizQuestion
)
from lms.common.error_handling import NotFoundError, trace_errors
from lms.common.logger import get_logger
from lms.common.utils import utcnow
from lms.courses.models import Course, Enrollment, EnrollmentStatus, Session
from lms.evaluations.models import StudentEvaluation

logger = get_logger(__name__)

CSV_HEADERS = [
    "Student Name", "Email", "Pre Score", "Pre %", "Post Score", "Post %",
    "Improvement Score", "Improvement %", "Strengths", "Weaknesses",
]
COURSE_CSV_HEADERS = ["Session Topic", "Session Date"] + CSV_HEADERS


async def _latest_submitted_attempt(
    session: AsyncSession, class_session_id: str, quiz_type: AssessmentType, student_id: str
) -> Optional[QuizAttempt]:
    quiz = (await session.execute(
        select(Quiz).where(
            Quiz.session_id == class_session_id,
            Quiz.type == quiz_type,
            Quiz.status == AssessmentStatus.PUBLISHED,
        )
    )).scalars().first()
    if quiz is None:
        return None

    return (await session.execute(
        select(QuizAttempt)
        .where(
            QuizAttempt.quiz_id == quiz.id,
            QuizAttempt.student_id == student_id,
            QuizAttempt.status == AttemptStatus.SUBMITTED,
        )
        .order_by(QuizAttempt.submitted_at.desc(), QuizAttempt.attempt_number.desc())
        .limit(1)
    )).scalars().first()


async def _answer_tag_rows(session: AsyncSession, attempt_ids: Sequence[str]):
    if not attempt_ids:
        return []
    rows = (await session.execute(
        select(QuizQuestion.tags, QuizAnswer.earned_points, QuizQuestion.points)
        .join(QuizQuestion, QuizQuestion.id == QuizAnswer.question_id)
        .where(QuizAnswer.attempt_id.in_(attempt_ids))
        .order_by(QuizAnswer.created_at.asc())
    )).all()
    return [(tags, earned, points) for tags, earned, points in rows]


async def compute_student_evaluation(
    session: AsyncSession, class_session_id: str, student_id: str
) -> StudentEvaluation:
    """
    Compute and store a student's evaluation for a session.

    Uses the latest submitted attempt of the session's published PRE and
    POST quizzes. Missing attempts count as zero.

    Args:
        session: Database session
        class_session_id: The class session being evaluated
        student_id: The student

    Returns:
        The upserted evaluation

    Raises:
        NotFoundError: If the class session does not exist
    """
    class_session = await session.get(Session, class_session_id)
    if class_session is None:
        raise NotFoundError("Session not found")

    pre = await _latest_submitted_attempt(session, class_session_id, AssessmentType.PRE, student_id)
    post = await _latest_submitted_attempt(session, class_session_id, AssessmentType.POST, student_id)

    pre_score = pre.total_score if pre else 0
    post_score = post.total_score if post else 0
    pre_percent = percentage(pre_score, pre.max_score if pre else 0)
    post_percent = percentage(post_score, post.max_score if post else 0)

    tag_stats = aggregate_tag_performance(
        await _answer_tag_rows(session, [a.id for a in (pre, post) if a is not None])
    )
    strengths, weaknesses = split_strengths_weaknesses(tag_stats)

    evaluation = (await session.execute(
        select(StudentEvaluation).where(
            StudentEvaluation.session_id == class_session_id,
            StudentEvaluation.student_id == student_id,
        )
    )).scalars().first()
    if evaluation is None:
        evaluation = StudentEvaluation(
            course_id=class_session.course_id,
            session_id=class_session_id,
            student_id=student_id,
        )
        session.add(evaluation)

    evaluation.pre_attempt_id = pre.id if pre else None
    evaluation.post_attempt_id = post.id if post else None
    evaluation.pre_score = pre_score
    evaluation.post_score = post_score
    evaluation.pre_percent = pre_percent
    evaluation.post_percent = post_percent
    evaluation.improvement_score = post_score - pre_score
    evaluation.improvement_percent = post_percent - pre_percent
    evaluation.strengths = strengths
    evaluation.weaknesses = weaknesses
    evaluation.computed_at = utcnow()

    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return evaluation


async def recompute_session_evaluations(session: AsyncSession, class_session_id: str) -> List[StudentEvaluation]:
    """Recompute the evaluation of every actively enrolled student of a session."""
    class_session = await session.get(Session, class_session_id)
    if class_session is None:
        raise NotFoundError("Session not found")

    student_ids = (await session.execute(
        select(Enrollment.user_id).where(
            Enrollment.course_id == class_session.course_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
    )).scalars().all()

    evaluations = []
    for student_id in student_ids:
        evaluations.append(await compute_student_evaluation(session, class_session_id, student_id))
    logger.info(f"Recomputed {len(evaluations)} evaluation(s) for session {class_session_id}")
    return evaluations


@trace_errors("compute_student_evaluation", suppress=True)
async def refresh_student_evaluation(session: AsyncSession, class_session_id: str, student_id: str) -> None:
    """Recompute one evaluation after a quiz submit; failures are only logged."""
    await compute_student_evaluation(session, class_session_id, student_id)


@trace_errors("recompute_session_evaluations", suppress=True)
async def refresh_session_evaluations(session: AsyncSession, class_session_id: str) -> None:
    """Recompute a session's evaluations after a question changes; failures are only logged."""
    await recompute_session_evaluations(session, class_session_id)


def _number(value: float) -> str:
    return f"{value:.2f}"


def _evaluation_cells(evaluation: StudentEvaluation, student: Optional[User]) -> List[str]:
    return [
        student.name if student else "",
        student.email if student else "",
        _number(evaluation.pre_score),
        _number(evaluation.pre_percent),
        _number(evaluation.post_score),
        _number(evaluation.post_percent),
        _number(evaluation.improvement_score),
        _number(evaluation.improvement_percent),
        ", ".join(evaluation.strengths or []),
        ", ".join(evaluation.weaknesses or []),
    ]


def render_csv(rows: List[List[str]]) -> str:
    """Every cell double-quoted, rows separated by a bare newline."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


class EvaluationService:
    """Read side of evaluations: listings and exports."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _query(self):
        return (
            select(StudentEvaluation, User, Session, Course)
            .join(User, User.id == StudentEvaluation.student_id)
            .join(Session, Session.id == StudentEvaluation.session_id)
            .join(Course, Course.id == StudentEvaluation.course_id)
        )

    @staticmethod
    def _serialize(row, include_student: bool = True) -> Dict[str, Any]:
        evaluation, student, class_session, course = row
        data = evaluation.to_dict()
        if include_student:
            data["student"] = student.brief()
        data["course"] = {"id": course.id, "title": course.title}
        data["session"] = {
            "id": class_session.id,
            "topic": class_session.topic,
            "date": class_session.date.isoformat(),
        }
        return data

    async def for_student(self, student_id: str, by_session_date: bool = False) -> List[Dict[str, Any]]:
        order = Session.date.desc() if by_session_date else StudentEvaluation.computed_at.desc()
        rows = (await self.session.execute(
            self._query().where(StudentEvaluation.student_id == student_id).order_by(order)
        )).all()
        return [self._serialize(row, include_student=False) for row in rows]

    async def for_session(self, class_session_id: str) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            self._query()
            .where(StudentEvaluation.session_id == class_session_id)
            .order_by(User.name.asc())
        )).all()
        return [self._serialize(row) for row in rows]

    async def for_course(self, course_id: str) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            self._query()
            .where(StudentEvaluation.course_id == course_id)
            .order_by(Session.date.desc(), User.name.asc())
        )).all()
        return [self._serialize(row) for row in rows]

    async def export_session_csv(self, class_session_id: str) -> str:
        rows = (await self.session.execute(
            self._query()
            .where(StudentEvaluation.session_id == class_session_id)
            .order_by(User.name.asc())
        )).all()
        return render_csv([CSV_HEADERS] + [
            _evaluation_cells(evaluation, student) for evaluation, student, _, _ in rows
        ])

    async def export_course_csv(self, course_id: str) -> str:
        rows = (await self.session.execute(
            self._query()
            .where(StudentEvaluation.course_id == course_id)
            .order_by(Session.date.desc(), User.name.asc())
        )).all()
        return render_csv([COURSE_CSV_HEADERS] + [
            [class_session.topic or "N/A", class_session.date.date().isoformat()]
            + _evaluation_cells(evaluation, student)
            for evaluation, student, class_session, _ in rows
        ])
