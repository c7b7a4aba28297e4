"""
Class session scheduling.
"""

from typing import Any, Dict, List

from pydantic import ValidationError as SchemaError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import NotFoundError, ValidationError
from lms.common.validation import parse_iso_datetime, require
from lms.courses.models import Attendance, Course, Session
from lms.courses.schemas import SessionCreateRequest, SessionFields
from lms.courses.service import active_students
from lms.profiles.models import Profile


def _course_brief(course: Course) -> Dict[str, Any]:
    return {"id": course.id, "title": course.title}


class SessionService:
    """Business logic behind /sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.sessions = SQLAlchemyRepository(session, Session, "Session")

    async def get_class_session(self, session_id: str) -> Session:
        class_session = await self.sessions.get_or_none(session_id)
        if class_session is None:
            raise NotFoundError("Session not found")
        return class_session

    async def _require_course(self, course_id: str) -> Course:
        require(course_id, "Course ID is required")
        course = await self.session.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _attendance_counts(self, session_ids: List[str]) -> Dict[str, int]:
        if not session_ids:
            return {}
        result = await self.session.execute(
            select(Attendance.session_id, func.count())
            .where(Attendance.session_id.in_(session_ids))
            .group_by(Attendance.session_id)
        )
        return dict(result.all())

    async def list_for_course(self, course_id: str) -> List[Dict[str, Any]]:
        sessions = (await self.session.execute(
            select(Session).where(Session.course_id == course_id).order_by(Session.date.asc())
        )).scalars().all()
        counts = await self._attendance_counts([s.id for s in sessions])
        return [
            {**s.to_dict(), "_count": {"attendances": counts.get(s.id, 0)}}
            for s in sessions
        ]

    async def list_all(self) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            select(Session, Course)
            .join(Course, Course.id == Session.course_id)
            .order_by(Session.date.desc())
        )).all()
        counts = await self._attendance_counts([s.id for s, _ in rows])
        return [
            {
                **s.to_dict(),
                "course": _course_brief(course),
                "_count": {"attendances": counts.get(s.id, 0)},
            }
            for s, course in rows
        ]

    async def _avatars(self, user_ids) -> Dict[str, Any]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Profile.user_id, Profile.avatar).where(Profile.user_id.in_(ids))
        )
        return dict(result.all())

    async def get_detail(self, session_id: str) -> Dict[str, Any]:
        """
        A session with its course, the course's active students and the
        recorded attendance.
        """
        class_session = await self.get_class_session(session_id)
        course = await self.session.get(Course, class_session.course_id)
        students = await active_students(self.session, class_session.course_id)

        attendances = (await self.session.execute(
            select(Attendance).where(Attendance.session_id == session_id)
        )).scalars().all()
        attendees = await users_by_id(self.session, (a.student_id for a in attendances))
        avatars = await self._avatars({u.id for u in students} | set(attendees))

        def person(user: User) -> Dict[str, Any]:
            return {**user.brief(), "profile": {"avatar": avatars.get(user.id)}}

        data = class_session.to_dict()
        data["course"] = {
            **course.to_dict(),
            "enrollments": [{"userId": u.id, "user": person(u)} for u in students],
        }
        data["attendances"] = [
            {**a.to_dict(), "student": person(attendees[a.student_id])}
            for a in attendances
            if a.student_id in attendees
        ]
        return data

    def _session_values(self, body: SessionFields, partial: bool = False) -> Dict[str, Any]:
        changes = body.provided()
        values: Dict[str, Any] = {}
        if not partial or "date" in changes:
            values["date"] = parse_iso_datetime(body.date, "Valid date is required")
        for field in ("start_time", "end_time"):
            if field in changes:
                values[field] = (changes[field] or "").strip()
        for field in ("topic", "notes"):
            if field in changes:
                values[field] = changes[field]
        return values

    async def create(self, body: SessionCreateRequest) -> Dict[str, Any]:
        course = await self._require_course(body.course_id)
        values = self._session_values(body)
        class_session = await self.sessions.create({"course_id": course.id, **values})
        await self.session.commit()
        return {**class_session.to_dict(), "course": _course_brief(course)}

    async def create_bulk(self, course_id: str, items: Any) -> List[Dict[str, Any]]:
        if not isinstance(items, list) or not items:
            raise ValidationError("Sessions array is required")
        course = await self._require_course(course_id)

        created = []
        for item in items:
            if not isinstance(item, dict):
                raise ValidationError("Sessions array is required")
            try:
                fields = SessionFields.model_validate(item)
            except SchemaError:
                raise ValidationError("Invalid session data")
            values = self._session_values(fields)
            created.append(await self.sessions.create({"course_id": course.id, **values}))
        await self.session.commit()
        return [s.to_dict() for s in created]

    async def update(self, session_id: str, body: SessionFields) -> Dict[str, Any]:
        class_session = await self.get_class_session(session_id)
        class_session.update(self._session_values(body, partial=True))
        await self.session.commit()
        course = await self.session.get(Course, class_session.course_id)
        return {**class_session.to_dict(), "course": _course_brief(course)}

    async def delete(self, session_id: str) -> None:
        class_session = await self.get_class_session(session_id)
        await self.session.delete(class_session)
        await self.session.commit()
