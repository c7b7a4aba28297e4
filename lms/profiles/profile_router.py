"""
Profile endpoints for the signed-in user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.common.auth.dependencies import get_current_user
from lms.common.db.session import get_session
from lms.profiles.defaults import profile_options
from lms.profiles.schemas import ProfileUpdateRequest
from lms.profiles.service import ProfileService

router = APIRouter()


@router.get("/options")
async def get_profile_options():
    return {"data": profile_options()}


@router.get("")
async def get_profile(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    return {"data": await ProfileService(session).get_or_create(user)}


@router.put("")
async def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return {"data": await ProfileService(session).update(user, body)}
