"""
Submission endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assignments.schemas import SubmissionStatusRequest
from lms.assignments.submissions_service import SubmissionService
from lms.common.auth.dependencies import get_current_user, require_staff, require_student
from lms.common.db.session import get_session

router = APIRouter()


@router.get("/assignment/{assignment_id}", dependencies=[Depends(require_staff)])
async def list_assignment_submissions(assignment_id: str, session: AsyncSession = Depends(get_session)):
    return {"submissions": await SubmissionService(session).list_for_assignment(assignment_id)}


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"submission": await SubmissionService(session).get_detail(submission_id, user)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_submission(
    assignment_id: Optional[str] = Form(None, alias="assignmentId"),
    note: Optional[str] = Form(None),
    assets: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    user: User = Depends(require_student),
    session: AsyncSession = Depends(get_session),
):
    submission = await SubmissionService(session).create(user, assignment_id, note, assets, files)
    return {"submission": submission}


@router.patch("/{submission_id}/status", dependencies=[Depends(require_staff)])
async def update_submission_status(
    submission_id: str,
    body: SubmissionStatusRequest,
    session: AsyncSession = Depends(get_session),
):
    return {"submission": await SubmissionService(session).update_status(submission_id, body)}
