"""
Admin Service

The students directory with per-course metrics, the per-student report and
the subscribers list, plus PDF exports of the report and the list.
"""

import asyncio
import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.admin import pdf
from lms.assessments.exams.models import Exam, ExamAttempt
from lms.assessments.quizzes.models import AttemptStatus, Quiz, QuizAttempt
from lms.assignments.models import Assignment, Review, Submission, SubmissionStatus
from lms.common.auth.roles import UserRole
from lms.common.error_handling import AsyncErrorTracer, NotFoundError
from lms.common.logger import get_logger
from lms.common.utils import paginate, round_half_up, unique, utcnow
from lms.common.validation import parse_int
from lms.courses.models import Attendance, AttendanceStatus, Course, Enrollment, EnrollmentStatus, Session
from lms.metrics import scoring
from lms.metrics.service import ACTIVITY_WINDOW, compute_student_course_metrics, has_recent_activity
from lms.profiles.models import Profile

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50
LOW_PERFORMANCE_THRESHOLD = 60
TIMELINE_LIMIT = 20


@dataclass
class DirectoryFilters:
    """Query filters shared by the students directory and the subscribers list."""

    search: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_student: Optional[str] = None
    course_id: Optional[str] = None
    alert_type: Optional[str] = None
    low_performance: Optional[str] = None
    page: Any = 1
    limit: Any = DEFAULT_PAGE_SIZE

    def page_and_limit(self):
        page = parse_int(self.page or 1, "Page must be a positive integer", minimum=1)
        limit = parse_int(self.limit or DEFAULT_PAGE_SIZE, "Limit must be a positive integer", minimum=1)
        return page, limit

    def profile_filters(self) -> Dict[str, Any]:
        filters = {}
        if self.city and self.city.strip():
            filters["city"] = self.city.strip()
        if self.country and self.country.strip():
            filters["country"] = self.country.strip()
        if self.is_student not in (None, "", "undefined"):
            filters["is_student"] = self.is_student == "true"
        return filters


def _matches_profile(profile: Optional[Profile], filters: Dict[str, Any]) -> bool:
    if not filters:
        return True
    if profile is None:
        return False
    return all(getattr(profile, field) == value for field, value in filters.items())


def _page(items: List[Any], page: int, limit: int) -> Dict[str, Any]:
    start = (page - 1) * limit
    return {"data": items[start:start + limit], "pagination": paginate(len(items), page, limit)}


def _course_brief(course: Course) -> Dict[str, Any]:
    return {"id": course.id, "title": course.title}


class AdminService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _users(self, search: Optional[str], role: Optional[UserRole] = None) -> List[User]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return list((await self.session.execute(stmt.order_by(User.created_at.desc()))).scalars().all())

    async def _profiles(self, user_ids: List[str]) -> Dict[str, Profile]:
        if not user_ids:
            return {}
        rows = (await self.session.execute(select(Profile).where(Profile.user_id.in_(user_ids)))).scalars().all()
        return {profile.user_id: profile for profile in rows}

    async def _active_courses(self, user_ids: List[str]) -> Dict[str, List[Course]]:
        courses: Dict[str, List[Course]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return courses
        rows = (await self.session.execute(
            select(Enrollment.user_id, Course)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.user_id.in_(user_ids), Enrollment.status == EnrollmentStatus.ACTIVE)
        )).all()
        for user_id, course in rows:
            courses[user_id].append(course)
        return courses

    async def _safe_metrics(self, student_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        metrics = None
        async with AsyncErrorTracer(
            "compute_student_course_metrics",
            context={"student_id": student_id, "course_id": course_id},
            suppress=True,
        ):
            metrics = await compute_student_course_metrics(self.session, student_id, course_id)
        return metrics

    async def _directory_entry(
        self, student: User, profile: Optional[Profile], courses: List[Course]
    ) -> Dict[str, Any]:
        course_metrics = []
        for course in courses:
            metrics = await self._safe_metrics(student.id, course.id) or {}
            course_metrics.append({
                "courseId": course.id,
                "courseTitle": course.title,
                "overallScore": metrics.get("overallScore") or 0,
                "alerts": metrics.get("alerts") or [],
                "recommendations": metrics.get("recommendations") or [],
            })

        scores = [m["overallScore"] for m in course_metrics]
        overall = sum(scores) / len(scores) if scores else 0
        alerts = unique(alert for m in course_metrics for alert in m["alerts"])
        if courses and scoring.NO_ACTIVITY_14_DAYS not in alerts:
            if not await has_recent_activity(self.session, student.id):
                alerts.append(scoring.NO_ACTIVITY_14_DAYS)

        return {
            "id": student.id,
            "name": student.name,
            "email": student.email,
            "phone": student.phone,
            "profile": profile.to_dict() if profile else None,
            "courses": [_course_brief(course) for course in courses],
            "courseMetrics": course_metrics,
            "overallScore": round_half_up(overall, 1),
            "alertsCount": len(alerts),
            "alerts": alerts,
        }

    async def students_directory(self, filters: DirectoryFilters) -> Dict[str, Any]:
        """
        Students with their per-course metrics, filtered then paginated.

        Args:
            filters: Search, profile, course, alert and performance filters

        Returns:
            ``{data, pagination}``
        """
        page, limit = filters.page_and_limit()
        profile_filters = filters.profile_filters()

        students = await self._users(filters.search, role=UserRole.STUDENT)
        ids = [s.id for s in students]
        profiles = await self._profiles(ids)
        courses = await self._active_courses(ids)

        entries = []
        for student in students:
            profile = profiles.get(student.id)
            if not _matches_profile(profile, profile_filters):
                continue
            student_courses = courses[student.id]
            if filters.course_id and not any(c.id == filters.course_id for c in student_courses):
                continue

            entry = await self._directory_entry(student, profile, student_courses)
            if filters.alert_type and filters.alert_type not in entry["alerts"]:
                continue
            if filters.low_performance == "true" and entry["overallScore"] >= LOW_PERFORMANCE_THRESHOLD:
                continue
            entries.append(entry)

        logger.info(f"Students directory: {len(entries)} of {len(students)} students match")
        return _page(entries, page, limit)

    async def _subscribers(self, filters: DirectoryFilters) -> List[Dict[str, Any]]:
        profile_filters = filters.profile_filters()
        users = await self._users(filters.search)
        profiles = await self._profiles([u.id for u in users])
        entries = []
        for user in users:
            profile = profiles.get(user.id)
            if _matches_profile(profile, profile_filters):
                entries.append({**user.to_dict(), "profile": profile.to_dict() if profile else None})
        return entries

    async def subscribers(self, filters: DirectoryFilters) -> Dict[str, Any]:
        page, limit = filters.page_and_limit()
        return _page(await self._subscribers(filters), page, limit)

    async def subscribers_pdf(self, filters: DirectoryFilters) -> bytes:
        """Every subscriber matching the filters, unpaginated, as a PDF."""
        entries = await self._subscribers(filters)
        logger.info(f"Exporting {len(entries)} subscribers to PDF")
        return await asyncio.to_thread(pdf.subscribers_pdf, entries)

    # ---- report ----------------------------------------------------------

    async def _attendance_summary(self, student_id: str, course_id: str) -> Dict[str, Any]:
        rows = (await self.session.execute(
            select(Session.id, Attendance.status)
            .outerjoin(
                Attendance,
                (Attendance.session_id == Session.id) & (Attendance.student_id == student_id),
            )
            .where(Session.course_id == course_id)
        )).all()
        statuses = [status for _, status in rows]
        return {
            "total": len(statuses),
            "present": statuses.count(AttendanceStatus.PRESENT),
            "absent": sum(1 for s in statuses if s is None or s == AttendanceStatus.ABSENT),
            "late": statuses.count(AttendanceStatus.LATE),
            "excused": statuses.count(AttendanceStatus.EXCUSED),
            "rate": scoring.attendance_rate(s.value if s else None for s in statuses),
        }

    async def _assignment_summary(self, student_id: str, course_id: str) -> Dict[str, Any]:
        assignments = (await self.session.execute(
            select(Assignment).where(Assignment.course_id == course_id, Assignment.is_published.is_(True))
        )).scalars().all()

        submitted = approved = needs_changes = 0
        scores = []
        for assignment in assignments:
            first = (await self.session.execute(
                select(Submission)
                .where(Submission.assignment_id == assignment.id, Submission.student_id == student_id)
                .order_by(Submission.submitted_at.asc())
                .limit(1)
            )).scalars().first()
            if first is None:
                continue
            submitted += 1
            approved += first.status == SubmissionStatus.APPROVED
            needs_changes += first.status == SubmissionStatus.NEEDS_CHANGES
            review = (await self.session.execute(
                select(Review).where(Review.submission_id == first.id).order_by(Review.created_at.asc()).limit(1)
            )).scalars().first()
            if review is not None and review.score is not None:
                scores.append(review.score)

        return {
            "total": len(assignments),
            "submitted": submitted,
            "approved": approved,
            "needsChanges": needs_changes,
            "avgScore": sum(scores) / len(scores) if scores else 0,
        }

    async def _exams_summary(self, student_id: str, course_id: str) -> Dict[str, Any]:
        quiz_attempts = (await self.session.execute(
            select(QuizAttempt)
            .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .where(
                QuizAttempt.student_id == student_id,
                QuizAttempt.status == AttemptStatus.SUBMITTED,
                Quiz.course_id == course_id,
            )
        )).scalars().all()
        exam_attempts = (await self.session.execute(
            select(ExamAttempt)
            .join(Exam, Exam.id == ExamAttempt.exam_id)
            .where(
                ExamAttempt.student_id == student_id,
                ExamAttempt.status == AttemptStatus.SUBMITTED,
                Exam.course_id == course_id,
            )
        )).scalars().all()

        scores = [a.total_score / a.max_score * 10 for a in quiz_attempts if a.max_score > 0]
        scores.extend(a.final_score10 for a in exam_attempts)
        return {
            "quizAttempts": len(quiz_attempts),
            "examAttempts": len(exam_attempts),
            "avgScore": sum(scores) / len(scores) if scores else 0,
        }

    async def _timeline(self, student_id: str, since: datetime.datetime) -> List[Dict[str, Any]]:
        events = []

        attendance = (await self.session.execute(
            select(Attendance, Session, Course)
            .join(Session, Session.id == Attendance.session_id)
            .join(Course, Course.id == Session.course_id)
            .where(Attendance.student_id == student_id, Attendance.created_at >= since)
            .order_by(Attendance.created_at.desc())
            .limit(TIMELINE_LIMIT)
        )).all()
        for record, class_session, course in attendance:
            events.append((record.created_at, "attendance", {
                "session": {**class_session.to_dict(), "course": _course_brief(course)},
                "status": record.status.value,
            }))

        submissions = (await self.session.execute(
            select(Submission, Assignment, Course)
            .join(Assignment, Assignment.id == Submission.assignment_id)
            .join(Course, Course.id == Assignment.course_id)
            .where(Submission.student_id == student_id, Submission.submitted_at >= since)
            .order_by(Submission.submitted_at.desc())
            .limit(TIMELINE_LIMIT)
        )).all()
        for submission, assignment, course in submissions:
            events.append((submission.submitted_at, "submission", {
                "assignment": {**assignment.to_dict(), "course": _course_brief(course)},
                "status": submission.status.value,
            }))

        quiz_attempts = (await self.session.execute(
            select(QuizAttempt, Quiz, Course)
            .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .join(Course, Course.id == Quiz.course_id)
            .where(
                QuizAttempt.student_id == student_id,
                QuizAttempt.created_at >= since,
                QuizAttempt.status == AttemptStatus.SUBMITTED,
            )
            .order_by(QuizAttempt.submitted_at.desc())
            .limit(TIMELINE_LIMIT)
        )).all()
        for attempt, quiz, course in quiz_attempts:
            events.append((attempt.submitted_at or attempt.created_at, "quiz", {
                "quiz": {**quiz.to_dict(), "course": _course_brief(course)},
                "score": attempt.percentage,
            }))

        exam_attempts = (await self.session.execute(
            select(ExamAttempt, Exam, Course)
            .join(Exam, Exam.id == ExamAttempt.exam_id)
            .join(Course, Course.id == Exam.course_id)
            .where(
                ExamAttempt.student_id == student_id,
                ExamAttempt.created_at >= since,
                ExamAttempt.status == AttemptStatus.SUBMITTED,
            )
            .order_by(ExamAttempt.submitted_at.desc())
            .limit(TIMELINE_LIMIT)
        )).all()
        for attempt, exam, course in exam_attempts:
            events.append((attempt.submitted_at or attempt.created_at, "exam", {
                "exam": {**exam.to_dict(), "course": _course_brief(course)},
                "score": attempt.final_score10,
            }))

        events.sort(key=lambda event: event[0], reverse=True)
        return [{"type": kind, "date": date.isoformat(), "data": data} for date, kind, data in events]

    async def student_report(self, student_id: str) -> Dict[str, Any]:
        """
        Everything an administrator sees about one student: per-course
        attendance, assignment and assessment summaries with metrics, and
        a timeline of the last 14 days.

        Raises:
            NotFoundError: If the user does not exist
        """
        student = await self.session.get(User, student_id)
        if student is None:
            raise NotFoundError("Student not found")
        profile = (await self._profiles([student_id])).get(student_id)

        rows = (await self.session.execute(
            select(Enrollment, Course)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.user_id == student_id)
        )).all()

        enrollments = []
        for enrollment, course in rows:
            metrics = await self._safe_metrics(student_id, course.id)
            enrollments.append({
                "course": course.to_dict(),
                "enrollment": enrollment.to_dict(),
                "attendanceSummary": await self._attendance_summary(student_id, course.id),
                "assignmentSummary": await self._assignment_summary(student_id, course.id),
                "examsSummary": await self._exams_summary(student_id, course.id),
                "metrics": metrics or {"overallScore": 0, "alerts": [], "recommendations": []},
            })

        return {
            "email": student.email,
            "name": student.name,
            "phone": student.phone,
            "profile": profile.to_dict() if profile else None,
            "enrollments": enrollments,
            "timeline": await self._timeline(student_id, utcnow() - ACTIVITY_WINDOW),
        }

    async def student_report_pdf(self, student_id: str) -> bytes:
        """The student report rendered as a PDF document."""
        report = await self.student_report(student_id)
        return await asyncio.to_thread(pdf.student_report_pdf, report)
