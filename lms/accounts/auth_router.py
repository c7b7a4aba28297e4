"""
Authentication endpoints: register, login, refresh and current user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.schemas import LoginRequest, RefreshRequest, RegisterRequest
from lms.accounts.service import AccountService
from lms.common.auth.dependencies import get_current_user
from lms.common.db.session import get_session

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: AsyncSession = Depends(get_session)):
    return await AccountService(session).register(body)


@router.post("/login")
async def login(body: LoginRequest, session: AsyncSession = Depends(get_session)):
    return await AccountService(session).login(body)


@router.post("/refresh")
async def refresh(body: RefreshRequest, session: AsyncSession = Depends(get_session)):
    return await AccountService(session).refresh(body.refresh_token)


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"user": user.to_dict()}
