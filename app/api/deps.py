"""
Shared route dependencies
HealthMate API
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError
from app.core.security import decode_token
from app.database.session import get_db
from app.models.user import User
from app.services.user_service import UserService

# auto_error=False so a missing header is a 401 in our envelope, not a 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the bearer token and return the active account it names."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")

    payload = decode_token(credentials.credentials)
    user = await UserService.get_active_user(db, payload["sub"])
    if user is None:
        raise AuthenticationError("User not found or inactive")
    return user
