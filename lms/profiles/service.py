"""
Profile Service

Extended user profiles plus the autocomplete suggestion values collected
from them.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lms.accounts.models import User
from lms.common.error_handling import AsyncErrorTracer, ValidationError
from lms.common.logger import get_logger
from lms.common.utils import utcnow
from lms.common.validation import is_valid_url, parse_optional_int
from lms.profiles.defaults import (
    COUNTRY_SCOPED_KEYS, DEFAULT_CITIES_BY_COUNTRY, default_suggestions
)
from lms.profiles.models import DEFAULT_CITY, DEFAULT_COUNTRY, Profile, SuggestionValue
from lms.profiles.schemas import ProfileUpdateRequest

logger = get_logger(__name__)

SUGGESTION_SCAN_LIMIT = 50
SUGGESTION_RESULT_LIMIT = 10

PORTFOLIO_URL_ERRORS = (
    ("githubUrl", "Invalid GitHub URL"),
    ("linkedinUrl", "Invalid LinkedIn URL"),
    ("websiteUrl", "Invalid website URL"),
)


def _validate_profile(body: ProfileUpdateRequest) -> None:
    if body.full_name4:
        if not isinstance(body.full_name4, str) or len(body.full_name4.split()) < 4:
            raise ValidationError("Full name must contain at least 4 words")

    links = body.portfolio_links
    if links:
        if not isinstance(links, dict):
            raise ValidationError("Portfolio links must be an object")
        for field, message in PORTFOLIO_URL_ERRORS:
            if links.get(field) and not is_valid_url(links[field]):
                raise ValidationError(message)

    if body.is_student is True:
        if not body.university:
            raise ValidationError("University is required for students")
        if not body.major:
            raise ValidationError("Major is required for students")


def profile_suggestion_entries(profile: Profile) -> List[Tuple[str, str, Optional[str]]]:
    """
    (key, value, country_scope) for every suggestion a saved profile feeds.

    City and university are scoped by the profile's country.
    """
    scope = profile.country or None
    entries = []
    if profile.country:
        entries.append(("country", profile.country, None))
    if profile.city and scope:
        entries.append(("city", profile.city, scope))
    if profile.university and scope:
        entries.append(("university", profile.university, scope))
    if profile.major:
        entries.append(("major", profile.major, None))
    if profile.heard_from:
        entries.append(("heardFrom", profile.heard_from, None))
    for key, values in (("skills", profile.skills), ("interests", profile.interests)):
        for value in values or []:
            if isinstance(value, str) and value.strip():
                entries.append((key, value.strip(), None))
    return entries


async def _find_suggestion(
    session: AsyncSession, key: str, value: str, scope: Optional[str]
) -> Optional[SuggestionValue]:
    scope_clause = (
        SuggestionValue.country_scope.is_(None) if scope is None else SuggestionValue.country_scope == scope
    )
    return (await session.execute(
        select(SuggestionValue).where(
            SuggestionValue.key == key, SuggestionValue.value == value, scope_clause
        )
    )).scalars().first()


async def upsert_suggestions(session: AsyncSession, entries: List[Tuple[str, str, Optional[str]]]) -> None:
    """Count one more use of each value, creating it on first use."""
    now = utcnow()
    try:
        for key, value, scope in entries:
            existing = await _find_suggestion(session, key, value, scope)
            if existing is not None:
                existing.count += 1
                existing.last_used_at = now
            else:
                session.add(SuggestionValue(key=key, value=value, country_scope=scope, count=1, last_used_at=now))
                await session.flush()
        await session.commit()
    except Exception:
        await session.rollback()
        raise


def default_suggestion_entries() -> List[Tuple[str, str, Optional[str]]]:
    entries = [("country", value, None) for value in default_suggestions("country")]
    for country, cities in DEFAULT_CITIES_BY_COUNTRY.items():
        entries.extend(("city", city, country) for city in cities)
    for key in ("heardFrom", "skills", "interests"):
        entries.extend((key, value, None) for value in default_suggestions(key))
    return entries


async def seed_default_suggestions(session_factory: async_sessionmaker) -> Dict[str, int]:
    """
    Insert the built-in suggestion values that are missing.

    Args:
        session_factory: Factory for the session used to seed

    Returns:
        Counts of created and already existing values
    """
    created = skipped = 0
    async with session_factory() as session:
        for key, value, scope in default_suggestion_entries():
            if await _find_suggestion(session, key, value, scope) is not None:
                skipped += 1
                continue
            session.add(SuggestionValue(key=key, value=value, country_scope=scope, count=1))
            created += 1
        await session.commit()
    logger.info(f"Default suggestions seeded: {created} created, {skipped} already existed")
    return {"created": created, "skipped": skipped}


class ProfileService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find(self, user_id: str) -> Optional[Profile]:
        return (await self.session.execute(
            select(Profile).where(Profile.user_id == user_id)
        )).scalars().first()

    async def get_or_create(self, user: User) -> Dict[str, Any]:
        profile = await self._find(user.id)
        if profile is None:
            profile = Profile(
                user_id=user.id,
                is_student=False,
                country=DEFAULT_COUNTRY,
                city=DEFAULT_CITY,
                skills=[],
                interests=[],
            )
            self.session.add(profile)
            await self.session.commit()
            logger.info(f"Created default profile for user {user.id}")
        return profile.to_dict()

    async def update(self, user: User, body: ProfileUpdateRequest) -> Dict[str, Any]:
        """
        Replace the user's profile with the submitted values.

        Student fields are kept only for students. Suggestion counts are
        refreshed afterwards; a failure there does not fail the update.

        Raises:
            ValidationError: On a short full name, a malformed portfolio URL
                or a student without university or major
        """
        _validate_profile(body)
        is_student = body.is_student is True
        graduation_year = (
            parse_optional_int(body.graduation_year, "Graduation year must be a number") if is_student else None
        )

        profile = await self._find(user.id)
        if profile is None:
            profile = Profile(user_id=user.id)
            self.session.add(profile)

        profile.is_student = is_student
        profile.full_name4 = body.full_name4 or None
        profile.country = body.country or DEFAULT_COUNTRY
        profile.city = body.city or DEFAULT_CITY
        profile.nationality = body.nationality
        profile.phone = body.phone
        profile.bio = body.bio
        profile.skills = body.skills if isinstance(body.skills, list) else []
        profile.interests = body.interests if isinstance(body.interests, list) else []
        profile.experience_level = body.experience_level
        profile.current_status = body.current_status
        profile.portfolio_links = body.portfolio_links or None
        profile.heard_from = body.heard_from
        profile.heard_from_details = body.heard_from_details
        profile.emergency_contact_name = body.emergency_contact_name
        profile.emergency_contact_phone = body.emergency_contact_phone
        profile.university = body.university if is_student else None
        profile.major = body.major if is_student else None
        profile.education_level = body.education_level if is_student else None
        profile.graduation_year = graduation_year

        await self.session.commit()
        data = profile.to_dict()

        async with AsyncErrorTracer("upsert_suggestions", context={"user_id": user.id}, suppress=True):
            await upsert_suggestions(self.session, profile_suggestion_entries(profile))
        return data


class SuggestionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def suggest(self, key: Optional[str], q: Optional[str], country: Optional[str]) -> List[Dict[str, Any]]:
        """
        Autocomplete values for a profile field.

        Stored values override built-in ones with the same lowercase value;
        stored values rank before built-in ones, then by usage count.

        Raises:
            ValidationError: If no key is given
        """
        if not key:
            raise ValidationError("Key parameter is required")
        query = (q or "").strip().lower()
        if not query:
            return []
        scope = country or None

        stmt = select(SuggestionValue).where(SuggestionValue.key == key)
        if key in COUNTRY_SCOPED_KEYS:
            if scope:
                stmt = stmt.where(SuggestionValue.country_scope == scope)
        else:
            stmt = stmt.where(SuggestionValue.country_scope.is_(None))
        stored = (await self.session.execute(
            stmt.order_by(SuggestionValue.last_used_at.desc(), SuggestionValue.count.desc())
            .limit(SUGGESTION_SCAN_LIMIT)
        )).scalars().all()

        merged: Dict[str, Dict[str, Any]] = {}
        for value in default_suggestions(key, scope):
            if value.lower().startswith(query):
                merged.setdefault(value.lower(), {"value": value, "count": 1, "default": True})
        for row in stored:
            if row.value.lower().startswith(query):
                merged[row.value.lower()] = {"value": row.value, "count": row.count, "default": False}

        ranked = sorted(
            merged.values(),
            key=lambda s: (not s["value"].lower().startswith(query), s["default"], -s["count"]),
        )
        return [{"value": s["value"], "count": s["count"]} for s in ranked[:SUGGESTION_RESULT_LIMIT]]
