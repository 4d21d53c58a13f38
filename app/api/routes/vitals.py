"""
Vitals API Routes
HealthMate API

Endpoints:
  POST   /api/vitals                    - Record a reading (weight also syncs BMI)
  GET    /api/vitals                    - List active readings (paginated, type/days filters)
  GET    /api/vitals/latest             - Latest reading per type
  GET    /api/vitals/stats/overview     - count/avg/min/max per type over `days`
  GET    /api/vitals/stats/trends       - Series and direction for one type
  GET    /api/vitals/{id}               - Single reading
  PUT    /api/vitals/{id}               - Update a reading
  PATCH  /api/vitals/{id}/deactivate    - Soft delete
  DELETE /api/vitals/{id}               - Hard delete
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database.session import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, Pagination
from app.schemas.enums import VitalType
from app.schemas.vitals import VitalCreate, VitalOut, VitalStats, VitalTrend, VitalUpdate
from app.services.vitals_service import VitalsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/vitals", tags=["Vitals"])


@router.post(
    "",
    response_model=ApiResponse[VitalOut],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_vital(
    data: VitalCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reading = await VitalsService.create(db, current_user.id, data)
    return ApiResponse(message="Vital recorded successfully", data=VitalOut.model_validate(reading))


@router.get("", response_model=PaginatedResponse[VitalOut])
async def list_vitals(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    vital_type: Optional[VitalType] = Query(default=None, alias="type"),
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await VitalsService.list_readings(
        db, current_user.id, page, limit,
        vital_type=vital_type.value if vital_type else None,
        days=days,
    )
    return PaginatedResponse(
        data=[VitalOut.model_validate(item) for item in items],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/latest", response_model=ApiResponse[List[VitalOut]])
async def latest_vitals(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await VitalsService.latest_per_type(db, current_user.id)
    return ApiResponse(data=[VitalOut.model_validate(item) for item in items])


@router.get("/stats/overview", response_model=ApiResponse[List[VitalStats]])
async def vitals_stats(
    days: int = Query(default=30, ge=1, le=3650),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await VitalsService.stats(db, current_user.id, days)
    return ApiResponse(data=[VitalStats(**row) for row in rows])


@router.get("/stats/trends", response_model=ApiResponse[VitalTrend])
async def vitals_trends(
    vital_type: VitalType = Query(..., alias="type"),
    days: int = Query(default=30, ge=1, le=3650),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=VitalTrend(**await VitalsService.trends(db, current_user.id, vital_type, days)))


@router.get(
    "/{vital_id}",
    response_model=ApiResponse[VitalOut],
    responses={404: {"model": ErrorResponse}},
)
async def get_vital(
    vital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reading = await VitalsService.get(db, current_user.id, vital_id)
    return ApiResponse(data=VitalOut.model_validate(reading))


@router.put(
    "/{vital_id}",
    response_model=ApiResponse[VitalOut],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_vital(
    vital_id: str,
    data: VitalUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reading = await VitalsService.update(db, current_user.id, vital_id, data)
    return ApiResponse(message="Vital updated successfully", data=VitalOut.model_validate(reading))


@router.patch(
    "/{vital_id}/deactivate",
    response_model=ApiResponse[VitalOut],
    responses={404: {"model": ErrorResponse}},
)
async def deactivate_vital(
    vital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reading = await VitalsService.deactivate(db, current_user.id, vital_id)
    return ApiResponse(message="Vital deactivated successfully", data=VitalOut.model_validate(reading))


@router.delete(
    "/{vital_id}",
    response_model=ApiResponse[None],
    responses={404: {"model": ErrorResponse}},
)
async def delete_vital(
    vital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await VitalsService.delete(db, current_user.id, vital_id)
    return ApiResponse(message="Vital deleted successfully")
