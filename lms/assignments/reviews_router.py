"""
Review endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.assignments.schemas import ReviewRequest
from lms.assignments.submissions_service import ReviewService
from lms.common.auth.dependencies import get_current_user, require_staff
from lms.common.db.session import get_session

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upsert_review(
    body: ReviewRequest,
    user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
):
    return {"review": await ReviewService(session).upsert(user, body)}


@router.get("/submission/{submission_id}")
async def list_submission_reviews(submission_id: str, session: AsyncSession = Depends(get_session)):
    return {"reviews": await ReviewService(session).list_for_submission(submission_id)}
