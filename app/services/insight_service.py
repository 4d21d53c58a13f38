"""
Insight Service
HealthMate API
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.insight import Insight
from app.schemas.insight import FeedbackOut, FeedbackRequest
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class InsightService:
    """Read and review AI insights; creation happens in the upload flow."""

    @staticmethod
    async def get(db: AsyncSession, user_id: str, insight_id: str) -> Insight:
        result = await db.execute(
            select(Insight).where(Insight.id == insight_id, Insight.user_id == user_id)
        )
        insight = result.scalar_one_or_none()
        if insight is None:
            raise NotFoundError("Insight")
        return insight

    @staticmethod
    async def list_insights(
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        file_id: Optional[str] = None,
        unread: Optional[bool] = None,
    ) -> Tuple[List[Insight], int]:
        filters = [Insight.user_id == user_id]
        if file_id:
            filters.append(Insight.file_id == file_id)
        if unread is not None:
            filters.append(Insight.is_read.is_(not unread))

        total = (await db.execute(select(func.count(Insight.id)).where(*filters))).scalar_one()
        result = await db.execute(
            select(Insight)
            .where(*filters)
            .order_by(desc(Insight.created_at))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def critical(db: AsyncSession, user_id: str, limit: int = 10) -> List[Insight]:
        result = await db.execute(
            select(Insight)
            .where(Insight.user_id == user_id, Insight.critical_findings_count > 0)
            .order_by(desc(Insight.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(db: AsyncSession, user_id: str, insight_id: str) -> Insight:
        insight = await InsightService.get(db, user_id, insight_id)
        if not insight.is_read:
            insight.is_read = True
            insight.read_at = utcnow()
            await db.flush()
            await db.refresh(insight)
        return insight

    @staticmethod
    async def add_feedback(
        db: AsyncSession, user_id: str, insight_id: str, data: FeedbackRequest
    ) -> Insight:
        insight = await InsightService.get(db, user_id, insight_id)
        # Merged over earlier feedback; fields left out keep their previous answer
        merged = {
            **(insight.user_feedback or {}),
            **data.model_dump(mode="json", by_alias=True, exclude_unset=True),
            "reviewedAt": utcnow(),
        }
        insight.user_feedback = FeedbackOut.model_validate(merged).model_dump(mode="json", by_alias=True)
        insight.is_reviewed = True
        await db.flush()
        await db.refresh(insight)
        logger.info("Feedback recorded for insight %s", insight_id)
        return insight

    @staticmethod
    async def stats(db: AsyncSession, user_id: str) -> Dict[str, Any]:
        total, unread, average, last = (
            await db.execute(
                select(
                    func.count(Insight.id),
                    func.count(Insight.id).filter(Insight.is_read.is_(False)),
                    func.avg(Insight.confidence),
                    func.max(Insight.created_at),
                ).where(Insight.user_id == user_id)
            )
        ).one()
        return {
            "total": total,
            "unread": unread,
            "average_confidence": round(float(average), 1) if average is not None else None,
            "last_insight_at": last,
        }
