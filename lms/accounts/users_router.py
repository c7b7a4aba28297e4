"""
User administration endpoints for staff.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.schemas import UserCreateRequest, UserUpdateRequest
from lms.accounts.service import AccountService
from lms.common.auth.dependencies import require_admin, require_staff
from lms.common.db.session import get_session

router = APIRouter(dependencies=[Depends(require_staff)])


@router.get("")
async def list_users(
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    return {"users": await AccountService(session).list_users(role=role, search=search)}


@router.get("/{user_id}")
async def get_user(user_id: str, session: AsyncSession = Depends(get_session)):
    user = await AccountService(session).get_user(user_id)
    return {"user": user.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreateRequest, session: AsyncSession = Depends(get_session)):
    user = await AccountService(session).create_user(body)
    return {"user": user.to_dict()}


@router.put("/{user_id}")
async def update_user(user_id: str, body: UserUpdateRequest, session: AsyncSession = Depends(get_session)):
    user = await AccountService(session).update_user(user_id, body)
    return {"user": user.to_dict()}


@router.delete("/{user_id}", dependencies=[Depends(require_admin)])
async def delete_user(user_id: str, session: AsyncSession = Depends(get_session)):
    await AccountService(session).delete_user(user_id)
    return {"message": "User deleted successfully"}
