"""
Dashboard Service
HealthMate API

Read-only composition over files, vitals and insights. Nothing is cached;
every call recomputes from the database.
"""

import logging
from typing import List

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.insight import Insight
from app.models.uploaded_file import UploadedFile
from app.models.user import User
from app.models.vitals import Vitals
from app.schemas.dashboard import (
    ActivityData,
    ActivityItem,
    DashboardData,
    DashboardStats,
    ExportData,
)
from app.schemas.file import FileOut
from app.schemas.insight import InsightOut
from app.schemas.user import UserOut
from app.schemas.vitals import VitalOut
from app.services.vitals_service import VitalsService
from app.utils.time_utils import days_ago, utcnow

logger = logging.getLogger(__name__)

RECENT_FILES_DAYS = 30
RECENT_VITALS_DAYS = 7
RECENT_INSIGHTS = 5


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


class DashboardService:

    @staticmethod
    async def dashboard(db: AsyncSession, user_id: str) -> DashboardData:
        async def count(stmt) -> int:
            return (await db.execute(stmt)).scalar_one()

        stats = DashboardStats(
            recent_files=await count(
                select(func.count(UploadedFile.id)).where(
                    UploadedFile.user_id == user_id,
                    UploadedFile.created_at >= days_ago(RECENT_FILES_DAYS),
                )
            ),
            total_files=await count(
                select(func.count(UploadedFile.id)).where(UploadedFile.user_id == user_id)
            ),
            recent_vitals=await count(
                select(func.count(Vitals.id)).where(
                    Vitals.user_id == user_id,
                    Vitals.is_active.is_(True),
                    Vitals.recorded_at >= days_ago(RECENT_VITALS_DAYS),
                )
            ),
            critical_insights=await count(
                select(func.count(Insight.id)).where(
                    Insight.user_id == user_id, Insight.critical_findings_count > 0
                )
            ),
        )

        latest = await VitalsService.latest_per_type(db, user_id)
        recent = (
            await db.execute(
                select(Insight)
                .where(Insight.user_id == user_id)
                .order_by(desc(Insight.created_at))
                .limit(RECENT_INSIGHTS)
            )
        ).scalars().all()

        return DashboardData(
            stats=stats,
            latest_vitals=[VitalOut.model_validate(v) for v in latest],
            recent_insights=[InsightOut.model_validate(i) for i in recent],
        )

    @staticmethod
    async def activity(db: AsyncSession, user_id: str, limit: int = 20) -> ActivityData:
        """Uploads, active readings and insights merged newest first."""
        files = (
            await db.execute(
                select(UploadedFile)
                .where(UploadedFile.user_id == user_id)
                .order_by(desc(UploadedFile.created_at))
                .limit(limit)
            )
        ).scalars().all()
        vitals = (
            await db.execute(
                select(Vitals)
                .where(Vitals.user_id == user_id, Vitals.is_active.is_(True))
                .order_by(desc(Vitals.recorded_at))
                .limit(limit)
            )
        ).scalars().all()
        insights = (
            await db.execute(
                select(Insight)
                .where(Insight.user_id == user_id)
                .order_by(desc(Insight.created_at))
                .limit(limit)
            )
        ).scalars().all()

        items: List[ActivityItem] = [
            *(ActivityItem(type="file_upload", timestamp=f.created_at,
                           data=_dump(FileOut.model_validate(f))) for f in files),
            *(ActivityItem(type="vital_added", timestamp=v.recorded_at,
                           data=_dump(VitalOut.model_validate(v))) for v in vitals),
            *(ActivityItem(type="insight_generated", timestamp=i.created_at,
                           data=_dump(InsightOut.model_validate(i))) for i in insights),
        ]
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return ActivityData(activities=items[:limit])

    @staticmethod
    async def export(db: AsyncSession, user: User) -> ExportData:
        files = (
            await db.execute(
                select(UploadedFile)
                .where(UploadedFile.user_id == user.id)
                .order_by(desc(UploadedFile.created_at))
            )
        ).scalars().all()
        vitals = (
            await db.execute(
                select(Vitals)
                .where(Vitals.user_id == user.id, Vitals.is_active.is_(True))
                .order_by(desc(Vitals.recorded_at))
            )
        ).scalars().all()
        insights = (
            await db.execute(
                select(Insight)
                .where(Insight.user_id == user.id)
                .order_by(desc(Insight.created_at))
            )
        ).scalars().all()

        logger.info(
            "Exporting data for user %s: %d files, %d vitals, %d insights",
            user.id, len(files), len(vitals), len(insights),
        )
        return ExportData(
            user=UserOut.model_validate(user),
            files=[_dump(FileOut.model_validate(f)) for f in files],
            vitals=[_dump(VitalOut.model_validate(v)) for v in vitals],
            insights=[_dump(InsightOut.model_validate(i)) for i in insights],
            exported_at=utcnow(),
        )
