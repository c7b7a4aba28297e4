"""
Class session endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.common.auth.dependencies import get_current_user, require_admin, require_staff
from lms.common.db.session import get_session
from lms.courses.schemas import SessionBulkRequest, SessionCreateRequest, SessionUpdateRequest
from lms.courses.sessions_service import SessionService

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/course/{course_id}")
async def list_course_sessions(course_id: str, session: AsyncSession = Depends(get_session)):
    return {"sessions": await SessionService(session).list_for_course(course_id)}


@router.get("/all", dependencies=[Depends(require_admin)])
async def list_all_sessions(session: AsyncSession = Depends(get_session)):
    return {"sessions": await SessionService(session).list_all()}


@router.get("/{session_id}")
async def get_class_session(session_id: str, session: AsyncSession = Depends(get_session)):
    return {"session": await SessionService(session).get_detail(session_id)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_staff)])
async def create_class_session(body: SessionCreateRequest, session: AsyncSession = Depends(get_session)):
    return {"session": await SessionService(session).create(body)}


@router.post("/bulk", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_staff)])
async def create_class_sessions(body: SessionBulkRequest, session: AsyncSession = Depends(get_session)):
    return {"sessions": await SessionService(session).create_bulk(body.course_id, body.sessions)}


@router.put("/{session_id}", dependencies=[Depends(require_staff)])
async def update_class_session(
    session_id: str,
    body: SessionUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    return {"session": await SessionService(session).update(session_id, body)}


@router.delete("/{session_id}", dependencies=[Depends(require_staff)])
async def delete_class_session(session_id: str, session: AsyncSession = Depends(get_session)):
    await SessionService(session).delete(session_id)
    return {"message": "Session deleted successfully"}
