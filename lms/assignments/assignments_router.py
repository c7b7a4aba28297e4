"""
Assignment endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assignments.schemas import AssignmentCreateRequest, AssignmentUpdateRequest, PublishRequest
from lms.assignments.service import AssignmentService
from lms.common.auth.dependencies import get_current_user, require_staff
from lms.common.db.session import get_session

router = APIRouter()


@router.get("/course/{course_id}")
async def list_course_assignments(
    course_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"assignments": await AssignmentService(session).list_for_course(course_id, user)}


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"assignment": await AssignmentService(session).get_detail(assignment_id, user)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_staff)])
async def create_assignment(body: AssignmentCreateRequest, session: AsyncSession = Depends(get_session)):
    return {"assignment": await AssignmentService(session).create(body)}


@router.put("/{assignment_id}", dependencies=[Depends(require_staff)])
async def update_assignment(
    assignment_id: str,
    body: AssignmentUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    return {"assignment": await AssignmentService(session).update(assignment_id, body)}


@router.patch("/{assignment_id}/publish", dependencies=[Depends(require_staff)])
async def publish_assignment(assignment_id: str, body: PublishRequest, session: AsyncSession = Depends(get_session)):
    return {"assignment": await AssignmentService(session).set_published(assignment_id, body.is_published)}


@router.delete("/{assignment_id}", dependencies=[Depends(require_staff)])
async def delete_assignment(assignment_id: str, session: AsyncSession = Depends(get_session)):
    await AssignmentService(session).delete(assignment_id)
    return {"message": "Assignment deleted successfully"}
