"""
Insights API Routes
HealthMate API

Endpoints:
  GET   /api/insights                  - List insights (paginated, fileId/unread filters)
  GET   /api/insights/critical         - Insights with a critical abnormal value
  GET   /api/insights/stats/overview   - Totals, unread count, average confidence
  GET   /api/insights/{id}             - Single insight
  PATCH /api/insights/{id}/read        - Mark read
  POST  /api/insights/{id}/feedback    - Rate an insight, marks it reviewed
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database.session import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, Pagination
from app.schemas.insight import FeedbackRequest, InsightOut, InsightStats
from app.services.insight_service import InsightService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/insights", tags=["Insights"])


@router.get("", response_model=PaginatedResponse[InsightOut])
async def list_insights(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    file_id: Optional[str] = Query(default=None, alias="fileId"),
    unread: Optional[bool] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await InsightService.list_insights(
        db, current_user.id, page, limit, file_id=file_id, unread=unread
    )
    return PaginatedResponse(
        data=[InsightOut.model_validate(item) for item in items],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/critical", response_model=ApiResponse[List[InsightOut]])
async def critical_insights(
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await InsightService.critical(db, current_user.id, limit)
    return ApiResponse(data=[InsightOut.model_validate(item) for item in items])


@router.get("/stats/overview", response_model=ApiResponse[InsightStats])
async def insight_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=InsightStats(**await InsightService.stats(db, current_user.id)))


@router.get(
    "/{insight_id}",
    response_model=ApiResponse[InsightOut],
    responses={404: {"model": ErrorResponse}},
)
async def get_insight(
    insight_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    insight = await InsightService.get(db, current_user.id, insight_id)
    return ApiResponse(data=InsightOut.model_validate(insight))


@router.patch(
    "/{insight_id}/read",
    response_model=ApiResponse[InsightOut],
    responses={404: {"model": ErrorResponse}},
)
async def mark_read(
    insight_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    insight = await InsightService.mark_read(db, current_user.id, insight_id)
    return ApiResponse(message="Insight marked as read", data=InsightOut.model_validate(insight))


@router.post(
    "/{insight_id}/feedback",
    response_model=ApiResponse[InsightOut],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def add_feedback(
    insight_id: str,
    data: FeedbackRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    insight = await InsightService.add_feedback(db, current_user.id, insight_id, data)
    return ApiResponse(message="Feedback submitted successfully", data=InsightOut.model_validate(insight))
