"""
Autocomplete suggestions for profile fields.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.common.db.session import get_session
from lms.profiles.service import SuggestionService

router = APIRouter()


@router.get("")
async def get_suggestions(
    key: Optional[str] = None,
    q: Optional[str] = None,
    country: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    return {"data": await SuggestionService(session).suggest(key, q, country)}
