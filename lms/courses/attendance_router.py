"""
Attendance endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.common.auth.dependencies import get_current_user, require_admin, require_staff
from lms.common.db.session import get_session
from lms.courses.attendance_service import AttendanceService
from lms.courses.schemas import AttendanceBulkRequest

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/session/{session_id}")
async def list_session_attendance(session_id: str, session: AsyncSession = Depends(get_session)):
    return {"attendances": await AttendanceService(session).list_for_session(session_id)}


@router.post("/bulk", dependencies=[Depends(require_staff)])
async def record_attendance(body: AttendanceBulkRequest, session: AsyncSession = Depends(get_session)):
    return {"attendances": await AttendanceService(session).record_bulk(body)}


@router.get("/student/{student_id}/course/{course_id}")
async def student_course_attendance(student_id: str, course_id: str, session: AsyncSession = Depends(get_session)):
    return await AttendanceService(session).student_course_summary(student_id, course_id)


@router.get("/course/{course_id}/summary", dependencies=[Depends(require_staff)])
async def course_attendance_summary(course_id: str, session: AsyncSession = Depends(get_session)):
    return {"summaries": await AttendanceService(session).course_summary(course_id)}


@router.get("/students/summary", dependencies=[Depends(require_admin)])
async def students_attendance_summary(session: AsyncSession = Depends(get_session)):
    return {"summaries": await AttendanceService(session).all_students_summary()}
