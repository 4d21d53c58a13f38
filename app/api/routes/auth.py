"""
Auth API Routes
HealthMate API

Endpoints:
  POST /api/auth/register   - Create an account, returns tokens
  POST /api/auth/login      - Authenticate, returns tokens
  POST /api/auth/refresh    - Exchange a refresh token for a new pair
  GET  /api/auth/me         - Current user profile
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database.session import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.user import AuthData, LoginRequest, RefreshRequest, RegisterRequest, UserOut
from app.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _auth_payload(user: User, tokens: dict) -> AuthData:
    return AuthData(user=UserOut.model_validate(user), **tokens)


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user, tokens = await UserService.register(db, data)
    return ApiResponse(message="User registered successfully", data=_auth_payload(user, tokens))


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user, tokens = await UserService.login(db, data.email, data.password)
    return ApiResponse(message="Login successful", data=_auth_payload(user, tokens))


@router.post(
    "/refresh",
    response_model=ApiResponse[AuthData],
    responses={401: {"model": ErrorResponse}},
)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    user, tokens = await UserService.refresh(db, data.refresh_token)
    return ApiResponse(message="Token refreshed", data=_auth_payload(user, tokens))


@router.get("/me", response_model=ApiResponse[UserOut])
async def me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserOut.model_validate(current_user))
