"""
User Service
HealthMate API

Registration, login, token refresh, profile updates and account deletion.
"""

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, ValidationFailedError
from app.core.security import (
    REFRESH_TOKEN,
    create_token_pair,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models.user import DEFAULT_PREFERENCES, User, UserStatus
from app.schemas.user import ProfileUpdate, RegisterRequest
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ANONYMIZED_NAME = "Deleted User"


def anonymize_user(user: User) -> None:
    """Strip personal data from a deleted account; the row itself is kept."""
    user.name = ANONYMIZED_NAME
    user.email = f"deleted-{user.id}@anonymized.invalid"
    user.phone = None
    user.date_of_birth = None
    user.gender = None


class UserService:
    """Account lifecycle and credential checks."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_user(db: AsyncSession, user_id: str) -> Optional[User]:
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user

    @staticmethod
    async def register(db: AsyncSession, data: RegisterRequest) -> Tuple[User, Dict[str, str]]:
        if await UserService.get_by_email(db, data.email):
            raise ValidationFailedError(
                "User already exists with this email",
                errors=[{"field": "email", "message": "Email is already registered"}],
            )

        user = User(
            name=data.name,
            email=data.email,
            password_hash=get_password_hash(data.password),
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            gender=data.gender.value if data.gender else None,
            preferences=dict(DEFAULT_PREFERENCES),
            last_login_at=utcnow(),
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user, create_token_pair(user.id)

    @staticmethod
    async def login(db: AsyncSession, email: str, password: str) -> Tuple[User, Dict[str, str]]:
        user = await UserService.get_by_email(db, email)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise AuthenticationError("Invalid email or password")

        user.last_login_at = utcnow()
        await db.flush()
        await db.refresh(user)
        logger.info("User %s logged in", user.id)
        return user, create_token_pair(user.id)

    @staticmethod
    async def refresh(db: AsyncSession, refresh_token: str) -> Tuple[User, Dict[str, str]]:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        user = await UserService.get_active_user(db, payload["sub"])
        if user is None:
            raise AuthenticationError("User not found or inactive")
        return user, create_token_pair(user.id)

    @staticmethod
    async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
        changes = data.model_dump(exclude_unset=True, exclude={"preferences"})
        if "name" in changes and changes["name"] is not None:
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = changes["phone"]
        if "date_of_birth" in changes:
            user.date_of_birth = changes["date_of_birth"]
        if "gender" in changes:
            user.gender = changes["gender"].value if changes["gender"] else None

        if data.preferences is not None:
            merged = {**DEFAULT_PREFERENCES, **(user.preferences or {})}
            merged.update(data.preferences.model_dump(mode="json", exclude_none=True))
            # JSON columns only persist on reassignment
            user.preferences = merged

        await db.flush()
        await db.refresh(user)
        logger.info("Updated profile for user %s", user.id)
        return user

    @staticmethod
    async def delete_account(db: AsyncSession, user: User, password: str) -> None:
        if not verify_password(password, user.password_hash):
            raise ValidationFailedError(
                "Password is incorrect",
                errors=[{"field": "password", "message": "Password is incorrect"}],
            )

        user.status = UserStatus.DELETED
        user.deleted_at = utcnow()
        anonymize_user(user)
        await db.flush()
        logger.info("Account %s deleted and anonymized", user.id)
