"""
Course service: course CRUD, instructors and enrollments.

Also exposes the enrollment lookups other modules use for their
student access checks.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.assignments.models import Assignment
from lms.common.auth.roles import STAFF_ROLES, UserRole
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import AuthorizationError, NotFoundError, ValidationError
from lms.common.logger import get_logger
from lms.common.validation import parse_iso_datetime, require
from lms.courses.models import Course, CourseInstructor, Enrollment, EnrollmentStatus, Session
from lms.courses.schemas import CourseCreateRequest, CourseUpdateRequest

logger = get_logger(__name__)


async def get_active_enrollment(session: AsyncSession, user_id: str, course_id: str) -> Optional[Enrollment]:
    """The user's ACTIVE enrollment in the course, if any."""
    result = await session.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
    )
    return result.scalars().first()


async def active_course_ids(session: AsyncSession, user_id: str) -> List[str]:
    """Ids of the courses a user is actively enrolled in."""
    result = await session.execute(
        select(Enrollment.course_id).where(
            Enrollment.user_id == user_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
    )
    return list(result.scalars().all())


async def active_students(session: AsyncSession, course_id: str) -> List[User]:
    """Users with an ACTIVE enrollment in the course, newest enrollment first."""
    result = await session.execute(
        select(User)
        .join(Enrollment, Enrollment.user_id == User.id)
        .where(Enrollment.course_id == course_id, Enrollment.status == EnrollmentStatus.ACTIVE)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return list(result.scalars().all())


def student_brief(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}


class CourseService:
    """Business logic behind /courses."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.courses = SQLAlchemyRepository(session, Course, "Course")

    async def get_course(self, course_id: str) -> Course:
        course = await self.courses.get_or_none(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _counts(self, course_ids: List[str]) -> Dict[str, Dict[str, int]]:
        counts = {
            course_id: {"enrollments": 0, "sessions": 0, "assignments": 0}
            for course_id in course_ids
        }
        if not course_ids:
            return counts

        for key, model in (("enrollments", Enrollment), ("sessions", Session), ("assignments", Assignment)):
            result = await self.session.execute(
                select(model.course_id, func.count())
                .where(model.course_id.in_(course_ids))
                .group_by(model.course_id)
            )
            for course_id, count in result.all():
                counts[course_id][key] = count
        return counts

    async def _instructors(self, course_id: str) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(User)
            .join(CourseInstructor, CourseInstructor.instructor_id == User.id)
            .where(CourseInstructor.course_id == course_id)
        )
        return [{"instructor": user.brief()} for user in result.scalars().all()]

    async def _with_creator(self, course: Course) -> Dict[str, Any]:
        creator = await self.session.get(User, course.created_by)
        data = course.to_dict()
        data["creator"] = creator.brief() if creator else None
        return data

    async def list_courses(self, user: User) -> List[Dict[str, Any]]:
        """
        List courses visible to the user.

        Students only see courses they are actively enrolled in; staff see
        every course. Newest courses come first.
        """
        stmt = select(Course).order_by(Course.created_at.desc())
        if user.role == UserRole.STUDENT:
            course_ids = await active_course_ids(self.session, user.id)
            if not course_ids:
                return []
            stmt = stmt.where(Course.id.in_(course_ids))

        courses = list((await self.session.execute(stmt)).scalars().all())
        creators = await users_by_id(self.session, (course.created_by for course in courses))
        counts = await self._counts([course.id for course in courses])

        items = []
        for course in courses:
            data = course.to_dict()
            creator = creators.get(course.created_by)
            data["creator"] = creator.brief() if creator else None
            data["_count"] = counts[course.id]
            items.append(data)
        return items

    async def list_instructors(self) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(User).where(User.role.in_(STAFF_ROLES)).order_by(User.name.asc())
        )
        return [{**user.brief(), "role": user.role.value} for user in result.scalars().all()]

    async def get_course_detail(self, course_id: str, user: User) -> Dict[str, Any]:
        course = await self.get_course(course_id)

        if user.role == UserRole.STUDENT:
            if await get_active_enrollment(self.session, user.id, course_id) is None:
                raise AuthorizationError("Not enrolled in this course")

        data = await self._with_creator(course)

        enrollments = (await self.session.execute(
            select(Enrollment).where(Enrollment.course_id == course_id)
        )).scalars().all()
        enrolled_users = await users_by_id(self.session, (e.user_id for e in enrollments))
        data["enrollments"] = [
            {**enrollment.to_dict(), "user": student_brief(enrolled_users[enrollment.user_id])}
            for enrollment in enrollments
            if enrollment.user_id in enrolled_users
        ]

        sessions = (await self.session.execute(
            select(Session).where(Session.course_id == course_id).order_by(Session.date.asc())
        )).scalars().all()
        data["sessions"] = [s.to_dict() for s in sessions]

        assignments = (await self.session.execute(
            select(Assignment).where(Assignment.course_id == course_id).order_by(Assignment.due_date.asc())
        )).scalars().all()
        data["assignments"] = [a.to_dict() for a in assignments]

        data["instructors"] = await self._instructors(course_id)
        return data

    async def create_course(self, body: CourseCreateRequest, user: User) -> Dict[str, Any]:
        require(body.title and body.title.strip(), "Title is required")
        course = await self.courses.create({
            "title": body.title.strip(),
            "description": body.description,
            "start_date": parse_iso_datetime(body.start_date, "Valid start date is required"),
            "end_date": parse_iso_datetime(body.end_date, "Valid end date is required"),
            "created_by": user.id,
        })
        await self.session.commit()
        logger.info(f"Course {course.id} created by {user.id}")
        return await self._with_creator(course)

    def _check_owner(self, course: Course, user: User, action: str) -> None:
        if course.created_by != user.id and user.role != UserRole.ADMIN:
            raise AuthorizationError(f"Not authorized to {action} this course")

    async def update_course(self, course_id: str, body: CourseUpdateRequest, user: User) -> Dict[str, Any]:
        course = await self.get_course(course_id)
        self._check_owner(course, user, "update")
        changes = body.provided()

        if "title" in changes:
            require(body.title and body.title.strip(), "Title is required")
            course.title = body.title.strip()
        if "description" in changes:
            course.description = body.description
        if "start_date" in changes:
            course.start_date = parse_iso_datetime(body.start_date, "Valid start date is required")
        if "end_date" in changes:
            course.end_date = parse_iso_datetime(body.end_date, "Valid end date is required")

        if body.created_by and user.role == UserRole.ADMIN:
            new_creator = await self.session.get(User, body.created_by)
            if new_creator is not None and new_creator.role in STAFF_ROLES:
                course.created_by = new_creator.id

        if body.instructor_ids is not None:
            await self._replace_instructors(course, body.instructor_ids)

        await self.session.commit()
        data = await self._with_creator(course)
        data["instructors"] = await self._instructors(course_id)
        return data

    async def _replace_instructors(self, course: Course, instructor_ids: Iterable[str]) -> None:
        await self.session.execute(
            delete(CourseInstructor).where(CourseInstructor.course_id == course.id)
        )
        candidates = {i for i in instructor_ids if i and i != course.created_by}
        if not candidates:
            return

        result = await self.session.execute(
            select(User.id).where(User.id.in_(candidates), User.role.in_(STAFF_ROLES))
        )
        for instructor_id in result.scalars().all():
            self.session.add(CourseInstructor(course_id=course.id, instructor_id=instructor_id))
        await self.session.flush()

    async def delete_course(self, course_id: str, user: User) -> None:
        course = await self.get_course(course_id)
        self._check_owner(course, user, "delete")
        await self.session.delete(course)
        await self.session.commit()
        logger.info(f"Course {course_id} deleted by {user.id}")

    async def enroll_students(self, course_id: str, student_ids: Any) -> List[Dict[str, Any]]:
        """Upsert an ACTIVE enrollment for every student id."""
        if not isinstance(student_ids, list) or not student_ids:
            raise ValidationError("Student IDs array is required")
        await self.get_course(course_id)

        students = await users_by_id(self.session, student_ids)
        existing = {
            e.user_id: e
            for e in (await self.session.execute(
                select(Enrollment).where(
                    Enrollment.course_id == course_id,
                    Enrollment.user_id.in_(student_ids),
                )
            )).scalars().all()
        }

        enrollments = []
        for student_id in dict.fromkeys(student_ids):
            if student_id not in students:
                raise NotFoundError("User not found")
            enrollment = existing.get(student_id)
            if enrollment is None:
                enrollment = Enrollment(user_id=student_id, course_id=course_id)
                self.session.add(enrollment)
            enrollment.status = EnrollmentStatus.ACTIVE
            enrollments.append(enrollment)

        await self.session.commit()
        return [
            {**e.to_dict(), "user": student_brief(students[e.user_id])}
            for e in enrollments
        ]

    async def list_students(self, course_id: str) -> List[Dict[str, Any]]:
        return [
            {**student_brief(user), "createdAt": user.created_at.isoformat()}
            for user in await active_students(self.session, course_id)
        ]
