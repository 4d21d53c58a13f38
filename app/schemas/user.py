"""
Pydantic Schemas - Users, authentication and profile
HealthMate API
"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel
from app.schemas.enums import Gender, LanguagePreference, Theme

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


# ── Preferences ────────────────────────────────────────────────────
class Preferences(CamelModel):
    language: LanguagePreference = LanguagePreference.BOTH
    notifications: bool = True
    theme: Theme = Theme.LIGHT


class PreferencesUpdate(CamelModel):
    language: Optional[LanguagePreference] = None
    notifications: Optional[bool] = None
    theme: Optional[Theme] = None


# ── Auth requests ──────────────────────────────────────────────────
class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(default=None, max_length=32)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not _PASSWORD_RULE.match(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, "
                "one uppercase letter, and one number"
            )
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


# ── Profile ────────────────────────────────────────────────────────
class UserOut(CamelModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    preferences: Preferences = Field(default_factory=Preferences)
    status: str
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=32)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    preferences: Optional[PreferencesUpdate] = None


class AccountDeleteRequest(CamelModel):
    password: str = Field(..., min_length=1)


class AuthData(CamelModel):
    user: UserOut
    token: str
    refresh_token: str
    token_type: str = "bearer"
