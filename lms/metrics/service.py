"""
Student Course Metrics Service

Computes attendance, assignment and assessment performance of a student in
one course, derives alerts and recommendations, and stores the snapshot.
"""

import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.assessments.exams.models import Exam, ExamAttempt
from lms.assessments.quizzes.models import AttemptStatus, Quiz, QuizAnswer, QuizAttempt, QuizQuestion
from lms.assignments.models import Assignment, Review, Submission
from lms.common.error_handling import NotFoundError
from lms.common.logger import get_logger, log_execution_time, with_context
from lms.common.utils import utcnow
from lms.courses.models import Attendance, Enrollment, Session
from lms.metrics import scoring
from lms.metrics.models import StudentCourseMetrics

logger = get_logger(__name__)

ACTIVITY_WINDOW = datetime.timedelta(days=14)


async def _exists(session: AsyncSession, stmt) -> bool:
    return (await session.execute(stmt.limit(1))).first() is not None


async def has_recent_activity(
    session: AsyncSession,
    student_id: str,
    course_id: Optional[str] = None,
    since: Optional[datetime.datetime] = None
) -> bool:
    """
    Whether the student marked attendance, submitted work or attempted a
    quiz or exam since ``since`` (14 days ago by default).

    Args:
        session: Database session
        student_id: The student
        course_id: Restrict to one course, or None for any course
        since: Start of the activity window

    Returns:
        True if any such activity exists
    """
    since = since or utcnow() - ACTIVITY_WINDOW

    attendance = (
        select(Attendance.id)
        .join(Session, Session.id == Attendance.session_id)
        .where(Attendance.student_id == student_id, Attendance.created_at >= since)
    )
    submissions = (
        select(Submission.id)
        .join(Assignment, Assignment.id == Submission.assignment_id)
        .where(Submission.student_id == student_id, Submission.submitted_at >= since)
    )
    quiz_attempts = (
        select(QuizAttempt.id)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .where(QuizAttempt.student_id == student_id, QuizAttempt.created_at >= since)
    )
    exam_attempts = (
        select(ExamAttempt.id)
        .join(Exam, Exam.id == ExamAttempt.exam_id)
        .where(ExamAttempt.student_id == student_id, ExamAttempt.created_at >= since)
    )
    if course_id is not None:
        attendance = attendance.where(Session.course_id == course_id)
        submissions = submissions.where(Assignment.course_id == course_id)
        quiz_attempts = quiz_attempts.where(Quiz.course_id == course_id)
        exam_attempts = exam_attempts.where(Exam.course_id == course_id)

    for stmt in (attendance, submissions, quiz_attempts, exam_attempts):
        if await _exists(session, stmt):
            return True
    return False


async def _attendance_statuses(session: AsyncSession, student_id: str, course_id: str) -> List[Optional[str]]:
    rows = (await session.execute(
        select(Session.id, Attendance.status)
        .outerjoin(
            Attendance,
            (Attendance.session_id == Session.id) & (Attendance.student_id == student_id),
        )
        .where(Session.course_id == course_id)
    )).all()
    return [status.value if status else None for _, status in rows]


async def _first_review_scores(session: AsyncSession, student_id: str, course_id: str):
    """
    Published assignments with the score of the first review of the
    student's first submission (None when missing).

    Returns:
        List of (assignment, submitted, score)
    """
    assignments = (await session.execute(
        select(Assignment).where(Assignment.course_id == course_id, Assignment.is_published.is_(True))
    )).scalars().all()

    results = []
    for assignment in assignments:
        first_submission = (await session.execute(
            select(Submission)
            .where(Submission.assignment_id == assignment.id, Submission.student_id == student_id)
            .order_by(Submission.submitted_at.asc())
            .limit(1)
        )).scalars().first()
        score = None
        if first_submission is not None:
            first_review = (await session.execute(
                select(Review)
                .where(Review.submission_id == first_submission.id)
                .order_by(Review.created_at.asc())
                .limit(1)
            )).scalars().first()
            if first_review is not None:
                score = first_review.score
        results.append((assignment, first_submission is not None, score))
    return results


async def _weak_quiz_tags(session: AsyncSession, student_id: str, course_id: str) -> List[str]:
    rows = (await session.execute(
        select(QuizQuestion.tags)
        .join(QuizAnswer, QuizAnswer.question_id == QuizQuestion.id)
        .join(QuizAttempt, QuizAttempt.id == QuizAnswer.attempt_id)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .where(
            QuizAttempt.student_id == student_id,
            QuizAttempt.status == AttemptStatus.SUBMITTED,
            Quiz.course_id == course_id,
            QuizAnswer.is_correct.is_(False),
        )
        .order_by(QuizAnswer.created_at.asc())
    )).scalars().all()
    return [tag for tags in rows if isinstance(tags, list) for tag in tags]


@log_execution_time(logger)
async def compute_student_course_metrics(session: AsyncSession, student_id: str, course_id: str) -> Dict[str, Any]:
    """
    Compute and store a student's metrics for one course.

    Args:
        session: Database session
        student_id: The student
        course_id: The course

    Returns:
        The stored metrics as a dict

    Raises:
        NotFoundError: If the student has no enrollment in the course
    """
    enrollment = (await session.execute(
        select(Enrollment).where(Enrollment.user_id == student_id, Enrollment.course_id == course_id)
    )).scalars().first()
    if enrollment is None:
        raise NotFoundError("Student not enrolled in this course")

    statuses = await _attendance_statuses(session, student_id, course_id)
    attendance = scoring.attendance_rate(statuses)

    assignment_rows = await _first_review_scores(session, student_id, course_id)
    total_assignments = len(assignment_rows)
    submitted = sum(1 for _, has_submission, _ in assignment_rows if has_submission)
    completion = submitted / total_assignments if total_assignments else 0.0
    scored = [
        scoring.score_ratio(score, assignment.max_score)
        for assignment, _, score in assignment_rows if score is not None
    ]
    quality = sum(scored) / len(scored) if scored else completion

    quiz_results = (await session.execute(
        select(QuizAttempt.percentage, QuizAttempt.max_score)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .where(
            QuizAttempt.student_id == student_id,
            QuizAttempt.status == AttemptStatus.SUBMITTED,
            Quiz.course_id == course_id,
        )
    )).all()
    exam_scores = (await session.execute(
        select(ExamAttempt.final_score10)
        .join(Exam, Exam.id == ExamAttempt.exam_id)
        .where(
            ExamAttempt.student_id == student_id,
            ExamAttempt.status == AttemptStatus.SUBMITTED,
            Exam.course_id == course_id,
        )
    )).scalars().all()
    exams_avg, exam_count = scoring.assessment_average(quiz_results, exam_scores)

    weights = scoring.module_weights(bool(statuses), total_assignments > 0, exam_count > 0)
    overall = scoring.overall_score(weights, attendance, completion, quality, exams_avg)

    alerts = scoring.build_alerts(
        session_count=len(statuses),
        attendance=attendance,
        assignments_missing=0 < total_assignments and submitted < total_assignments,
        completion=completion,
        has_exams=exam_count > 0,
        exams=exams_avg,
        recently_active=await has_recent_activity(session, student_id, course_id),
    )

    weak_tags = await _weak_quiz_tags(session, student_id, course_id) if scoring.LOW_EXAMS in alerts else []
    failed_titles = [
        assignment.title
        for assignment, _, score in assignment_rows
        if score is not None and scoring.score_ratio(score, assignment.max_score) < scoring.FAILING_RATIO
    ]
    recommendations = scoring.build_recommendations(alerts, weak_tags, failed_titles)

    metrics = (await session.execute(
        select(StudentCourseMetrics).where(
            StudentCourseMetrics.student_id == student_id,
            StudentCourseMetrics.course_id == course_id,
        )
    )).scalars().first()
    if metrics is None:
        metrics = StudentCourseMetrics(student_id=student_id, course_id=course_id)
        session.add(metrics)

    metrics.attendance_rate = attendance
    metrics.assignment_completion_rate = completion
    metrics.assignment_quality = quality
    metrics.exams_avg = exams_avg
    metrics.overall_score = overall
    metrics.alerts = alerts
    metrics.recommendations = recommendations
    metrics.computed_at = utcnow()

    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    with_context(__name__, student_id=student_id, course_id=course_id).debug(
        f"Metrics for student {student_id} in course {course_id}: overall={overall:.1f}, alerts={alerts}"
    )
    return metrics.to_dict()
