"""
Account service: registration, login, token refresh and user administration.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.accounts.models import User
from lms.accounts.schemas import (
    LoginRequest,
    RegisterRequest,
    UserCreateRequest,
    UserUpdateRequest,
)
from lms.common.auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from lms.common.auth.jwt import (
    TokenType,
    create_access_token,
    create_refresh_token,
    get_token_identity,
    validate_token,
)
from lms.common.auth.password import (
    MIN_PASSWORD_LENGTH,
    hash_password,
    validate_admin_password,
    verify_password,
)
from lms.common.auth.roles import UserRole
from lms.common.db.repository import SQLAlchemyRepository
from lms.common.error_handling import NotFoundError, ValidationError
from lms.common.logger import get_logger
from lms.common.validation import is_valid_email, parse_enum, require

logger = get_logger(__name__)

EMAIL_TAKEN = "Email already registered"


def issue_tokens(user: User) -> Dict[str, str]:
    """Create the access/refresh token pair for a user."""
    return {
        "accessToken": create_access_token(user.id, additional_claims={"role": user.role.value}),
        "refreshToken": create_refresh_token(user.id),
    }


def _check_admin_password(password: str) -> None:
    ok, message = validate_admin_password(password)
    if not ok:
        raise ValidationError(message)


class AccountService:
    """Business logic behind /auth and /users."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = SQLAlchemyRepository(session, User, "User")

    async def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        existing = await self.users.find_one(email=email)
        return existing is not None and existing.id != exclude_id

    def _validate_new_user(self, data: RegisterRequest) -> UserRole:
        require(data.name and data.name.strip(), "Name is required")
        require(is_valid_email(data.email), "Valid email is required")
        require(
            data.password and len(data.password) >= MIN_PASSWORD_LENGTH,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
        role = UserRole.STUDENT
        if data.role is not None:
            role = parse_enum(UserRole, data.role, "Invalid role")
        if role == UserRole.ADMIN:
            _check_admin_password(data.password)
        return role

    async def _create(self, data: RegisterRequest) -> User:
        role = self._validate_new_user(data)
        if await self._email_taken(data.email):
            raise ValidationError(EMAIL_TAKEN)

        user = await self.users.create({
            "name": data.name.strip(),
            "email": data.email,
            "phone": data.phone,
            "role": role,
            "password_hash": hash_password(data.password),
        })
        await self.session.commit()
        logger.info(f"Created {role.value} user {user.id}")
        return user

    async def register(self, data: RegisterRequest) -> Dict[str, Any]:
        user = await self._create(data)
        return {"user": user.to_dict(), **issue_tokens(user)}

    async def login(self, data: LoginRequest) -> Dict[str, Any]:
        require(is_valid_email(data.email), "Valid email is required")
        require(data.password, "Password is required")

        user = await self.users.find_one(email=data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.debug(f"Failed login for {data.email}")
            raise InvalidCredentialsError()

        return {"user": user.to_dict(), **issue_tokens(user)}

    async def refresh(self, refresh_token: Optional[str]) -> Dict[str, str]:
        """
        Exchange a refresh token for a new access token.

        Raises:
            AuthError: If no token was sent or its user is gone
            ExpiredTokenError: If the refresh token has expired
            InvalidTokenError: If the refresh token fails verification
        """
        if not refresh_token:
            raise AuthError("Refresh token required")

        payload = validate_token(
            refresh_token,
            TokenType.REFRESH,
            expired_message="Refresh token expired",
            invalid_message="Invalid refresh token",
        )
        user = await self.users.get_or_none(get_token_identity(payload))
        if user is None:
            raise UserNotFoundError()

        return {
            "accessToken": create_access_token(user.id, additional_claims={"role": user.role.value})
        }

    async def list_users(self, role: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == parse_enum(UserRole, role, "Invalid role"))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        stmt = stmt.order_by(User.created_at.desc())

        result = await self.session.execute(stmt)
        return [user.to_dict() for user in result.scalars().all()]

    async def get_user(self, user_id: str) -> User:
        user = await self.users.get_or_none(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, data: UserCreateRequest) -> User:
        return await self._create(data)

    async def update_user(self, user_id: str, data: UserUpdateRequest) -> User:
        user = await self.get_user(user_id)
        changes = data.provided()

        role = user.role
        if changes.get("role"):
            role = parse_enum(UserRole, changes["role"], "Invalid role")

        if changes.get("password"):
            if role == UserRole.ADMIN or user.role == UserRole.ADMIN:
                _check_admin_password(changes["password"])
            user.password_hash = hash_password(changes["password"])

        if changes.get("email") and changes["email"] != user.email:
            require(is_valid_email(changes["email"]), "Valid email is required")
            if await self._email_taken(changes["email"], exclude_id=user.id):
                raise ValidationError(EMAIL_TAKEN)
            user.email = changes["email"]

        if changes.get("name"):
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = changes["phone"]
        user.role = role

        await self.session.commit()
        return user

    async def delete_user(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        await self.session.delete(user)
        await self.session.commit()
        logger.info(f"Deleted user {user_id}")


async def users_by_id(session: AsyncSession, user_ids) -> Dict[str, User]:
    """Load the users with the given ids, keyed by id."""
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}
