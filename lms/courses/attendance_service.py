"""
Attendance recording and summaries.
"""

from collections import Counter
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.service import users_by_id
from lms.common.auth.roles import UserRole
from lms.common.error_handling import NotFoundError
from lms.common.utils import round_half_up
from lms.common.validation import parse_enum
from lms.courses.models import Attendance, AttendanceStatus, Course, Enrollment, EnrollmentStatus, Session
from lms.courses.schemas import AttendanceBulkRequest
from lms.courses.service import active_students
from lms.profiles.models import Profile


def status_counts(statuses) -> Dict[str, int]:
    """Count PRESENT/ABSENT/LATE/EXCUSED occurrences."""
    counter = Counter(statuses)
    return {
        "presentCount": counter[AttendanceStatus.PRESENT],
        "absentCount": counter[AttendanceStatus.ABSENT],
        "lateCount": counter[AttendanceStatus.LATE],
        "excusedCount": counter[AttendanceStatus.EXCUSED],
    }


def presence_rate(present: int, total: int) -> float:
    """Present sessions as a percentage of all sessions."""
    return (present / total) * 100 if total > 0 else 0


class AttendanceService:
    """Business logic behind /attendance."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_session(self, session_id: str) -> List[Dict[str, Any]]:
        rows = (await self.session.execute(
            select(Attendance, User, Session)
            .join(User, User.id == Attendance.student_id)
            .join(Session, Session.id == Attendance.session_id)
            .where(Attendance.session_id == session_id)
            .order_by(User.name.asc())
        )).all()
        return [
            {
                **attendance.to_dict(),
                "student": student.brief(),
                "session": {
                    "id": class_session.id,
                    "date": class_session.date.isoformat(),
                    "topic": class_session.topic,
                },
            }
            for attendance, student, class_session in rows
        ]

    async def record_bulk(self, body: AttendanceBulkRequest) -> List[Dict[str, Any]]:
        """Upsert one attendance record per student for the session."""
        class_session = await self.session.get(Session, body.session_id)
        if class_session is None:
            raise NotFoundError("Session not found")

        entries = [
            (entry, parse_enum(AttendanceStatus, entry.status, "Invalid request data"))
            for entry in body.attendances
        ]
        student_ids = [entry.student_id for entry, _ in entries]
        students = await users_by_id(self.session, student_ids)
        existing = {
            a.student_id: a
            for a in (await self.session.execute(
                select(Attendance).where(
                    Attendance.session_id == body.session_id,
                    Attendance.student_id.in_(student_ids),
                )
            )).scalars().all()
        }

        records = []
        for entry, attendance_status in entries:
            if entry.student_id not in students:
                raise NotFoundError("Student not found")
            record = existing.get(entry.student_id)
            if record is None:
                record = Attendance(session_id=body.session_id, student_id=entry.student_id)
                self.session.add(record)
                existing[entry.student_id] = record
            record.status = attendance_status
            record.note = entry.note
            records.append(record)

        await self.session.commit()
        return [
            {**record.to_dict(), "student": students[record.student_id].brief()}
            for record in records
        ]

    async def _course_sessions(self, course_id: str) -> List[Session]:
        result = await self.session.execute(
            select(Session).where(Session.course_id == course_id).order_by(Session.date.asc())
        )
        return list(result.scalars().all())

    async def _records_by_session(self, student_id: str, session_ids: List[str]) -> Dict[str, Attendance]:
        if not session_ids:
            return {}
        result = await self.session.execute(
            select(Attendance).where(
                Attendance.student_id == student_id,
                Attendance.session_id.in_(session_ids),
            )
        )
        return {a.session_id: a for a in result.scalars().all()}

    async def student_course_summary(self, student_id: str, course_id: str) -> Dict[str, Any]:
        sessions = await self._course_sessions(course_id)
        records = await self._records_by_session(student_id, [s.id for s in sessions])

        total = len(sessions)
        counts = status_counts(records[s.id].status for s in sessions if s.id in records)
        return {
            "summary": {
                "totalSessions": total,
                **counts,
                "attendanceRate": round_half_up(presence_rate(counts["presentCount"], total), 2),
            },
            "sessions": [
                {
                    "id": s.id,
                    "date": s.date.isoformat(),
                    "topic": s.topic,
                    "status": records[s.id].status.value if s.id in records else AttendanceStatus.ABSENT.value,
                    "note": records[s.id].note if s.id in records else None,
                }
                for s in sessions
            ],
        }

    async def course_summary(self, course_id: str) -> List[Dict[str, Any]]:
        sessions = await self._course_sessions(course_id)
        session_ids = [s.id for s in sessions]
        total = len(sessions)

        summaries = []
        for student in await active_students(self.session, course_id):
            records = await self._records_by_session(student.id, session_ids)
            counts = status_counts(r.status for r in records.values())
            summaries.append({
                "student": student.brief(),
                "totalSessions": total,
                **counts,
                "attendanceRate": round_half_up(presence_rate(counts["presentCount"], total), 2),
            })
        return summaries

    async def all_students_summary(self) -> List[Dict[str, Any]]:
        """Attendance of every student across all of their active courses."""
        students = (await self.session.execute(
            select(User).where(User.role == UserRole.STUDENT).order_by(User.name.asc())
        )).scalars().all()

        enrollment_rows = (await self.session.execute(
            select(Enrollment.user_id, Course.id, Course.title)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.status == EnrollmentStatus.ACTIVE)
        )).all()
        session_rows = (await self.session.execute(select(Session.id, Session.course_id))).all()
        avatars = dict((await self.session.execute(select(Profile.user_id, Profile.avatar))).all())

        sessions_by_course: Dict[str, List[str]] = {}
        for session_id, course_id in session_rows:
            sessions_by_course.setdefault(course_id, []).append(session_id)

        summaries = []
        for student in students:
            courses = [(cid, title) for uid, cid, title in enrollment_rows if uid == student.id]
            session_ids = [sid for cid, _ in courses for sid in sessions_by_course.get(cid, [])]
            records = await self._records_by_session(student.id, session_ids)

            total = len(session_ids)
            counts = status_counts(r.status for r in records.values())
            summaries.append({
                "student": {
                    **student.brief(),
                    "phone": student.phone,
                    "createdAt": student.created_at.isoformat(),
                    "profile": {"avatar": avatars.get(student.id)},
                },
                "courses": [title for _, title in courses],
                "summary": {
                    "totalSessions": total,
                    **counts,
                    "attendanceRate": int(round_half_up(presence_rate(counts["presentCount"], total), 0)),
                },
            })
        return summaries
