"""
User API Routes
HealthMate API

Endpoints:
  GET    /api/user/profile       - Read profile
  PUT    /api/user/profile       - Update profile and preferences
  DELETE /api/user/account       - Delete (anonymize) the account
  GET    /api/user/dashboard     - Aggregate overview
  GET    /api/user/activity      - Merged activity timeline
  GET    /api/user/export-data   - Everything the user owns, as JSON
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database.session import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.dashboard import ActivityData, DashboardData, ExportData
from app.schemas.user import AccountDeleteRequest, ProfileUpdate, UserOut
from app.services.dashboard_service import DashboardService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/profile", response_model=ApiResponse[UserOut])
async def get_profile(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserOut.model_validate(current_user))


@router.put(
    "/profile",
    response_model=ApiResponse[UserOut],
    responses={400: {"model": ErrorResponse}},
)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService.update_profile(db, current_user, data)
    return ApiResponse(message="Profile updated successfully", data=UserOut.model_validate(user))


@router.delete(
    "/account",
    response_model=ApiResponse[None],
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def delete_account(
    data: AccountDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService.delete_account(db, current_user, data.password)
    return ApiResponse(message="Account deleted successfully")


@router.get("/dashboard", response_model=ApiResponse[DashboardData])
async def dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await DashboardService.dashboard(db, current_user.id))


@router.get("/activity", response_model=ApiResponse[ActivityData])
async def activity(
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await DashboardService.activity(db, current_user.id, limit))


@router.get("/export-data", response_model=ApiResponse[ExportData])
async def export_data(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await DashboardService.export(db, current_user))
