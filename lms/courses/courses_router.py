"""
Course endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.common.auth.dependencies import get_current_user, require_staff
from lms.common.db.session import get_session
from lms.courses.schemas import CourseCreateRequest, CourseUpdateRequest, EnrollmentRequest
from lms.courses.service import CourseService

router = APIRouter()


@router.get("")
async def list_courses(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    return {"courses": await CourseService(session).list_courses(user)}


@router.get("/instructors", dependencies=[Depends(require_staff)])
async def list_instructors(session: AsyncSession = Depends(get_session)):
    return {"instructors": await CourseService(session).list_instructors()}


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"course": await CourseService(session).get_course_detail(course_id, user)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseCreateRequest,
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    return {"course": await CourseService(session).create_course(body, user)}


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    body: CourseUpdateRequest,
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    return {"course": await CourseService(session).update_course(course_id, body, user)}


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    await CourseService(session).delete_course(course_id, user)
    return {"message": "Course deleted successfully"}


@router.post("/{course_id}/enrollments", dependencies=[Depends(require_staff)])
async def enroll_students(course_id: str, body: EnrollmentRequest, session: AsyncSession = Depends(get_session)):
    return {"enrollments": await CourseService(session).enroll_students(course_id, body.student_ids)}


@router.get("/{course_id}/students", dependencies=[Depends(require_staff)])
async def list_students(course_id: str, session: AsyncSession = Depends(get_session)):
    return {"students": await CourseService(session).list_students(course_id)}
