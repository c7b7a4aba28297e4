"""
Request bodies for courses, sessions and attendance.

Dates travel as ISO-8601 strings and are parsed by the services so that
malformed values produce the documented 400 messages.
"""

from typing import Any, List, Optional

from lms.common.schemas import CamelModel


class CourseCreateRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class CourseUpdateRequest(CourseCreateRequest):
    created_by: Optional[str] = None
    instructor_ids: Optional[List[str]] = None


class EnrollmentRequest(CamelModel):
    student_ids: Optional[Any] = None


class SessionFields(CamelModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    topic: Optional[str] = None
    notes: Optional[str] = None


class SessionCreateRequest(SessionFields):
    course_id: Optional[str] = None


class SessionUpdateRequest(SessionFields):
    pass


class SessionBulkRequest(CamelModel):
    course_id: Optional[str] = None
    sessions: Optional[Any] = None


class AttendanceEntry(CamelModel):
    student_id: str
    status: str
    note: Optional[str] = None


class AttendanceBulkRequest(CamelModel):
    session_id: str
    attendances: List[AttendanceEntry]
