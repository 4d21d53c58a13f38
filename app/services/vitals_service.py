"""
Vitals Service
HealthMate API

CRUD and aggregates over vital sign readings. Saving a weight reading
recomputes BMI from the latest height and upserts it within +/-24h of the
weight reading.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.models.vitals import Vitals
from app.schemas.enums import VitalSource, VitalType, VitalUnit
from app.schemas.vitals import VitalCreate, VitalUpdate, VitalValue, check_reading
from app.utils.time_utils import days_ago, utcnow

logger = logging.getLogger(__name__)

BMI_WINDOW = timedelta(hours=24)
BMI_NOTE = "Auto-calculated from weight and height"

_TO_KG = {VitalUnit.KG.value: 1.0, VitalUnit.LBS.value: 0.45359237}
_TO_CM = {VitalUnit.CM.value: 1.0, VitalUnit.IN.value: 2.54, VitalUnit.FT.value: 30.48}


def calculate_bmi(weight: float, weight_unit: str, height: float, height_unit: str) -> Optional[float]:
    """BMI = kg / m², rounded to one decimal. None when inputs are unusable."""
    if weight_unit not in _TO_KG or height_unit not in _TO_CM:
        return None
    kg = weight * _TO_KG[weight_unit]
    meters = height * _TO_CM[height_unit] / 100
    if kg <= 0 or meters <= 0:
        return None
    return round(kg / (meters * meters), 1)


def _apply_value(reading: Vitals, value: VitalValue) -> None:
    reading.value_numeric = value.numeric
    reading.value_text = value.text
    reading.value_systolic = value.systolic
    reading.value_diastolic = value.diastolic


def _trend(current: Optional[float], previous: Optional[float]) -> str:
    if current is None or previous is None:
        return "no_data"
    if current > previous:
        return "increasing"
    if current < previous:
        return "decreasing"
    return "stable"


class VitalsService:
    """Every query is scoped to the owning user."""

    # ── Create / update ──────────────────────────────────────────
    @staticmethod
    async def create(db: AsyncSession, user_id: str, data: VitalCreate) -> Vitals:
        reading = Vitals(
            user_id=user_id,
            type=data.type.value,
            unit=data.unit.value,
            recorded_at=data.recorded_at or utcnow(),
            notes=data.notes,
            source=data.source.value,
            location=data.location.value,
            device=data.device.model_dump(mode="json", by_alias=True) if data.device else None,
            conditions=data.conditions.model_dump(mode="json"),
            tags=data.tags,
            is_active=True,
        )
        _apply_value(reading, data.value)
        db.add(reading)
        await db.flush()

        if reading.type == VitalType.WEIGHT.value:
            await VitalsService.sync_bmi(db, reading)

        await db.refresh(reading)
        logger.info("Recorded %s reading %s for user %s", reading.type, reading.id, user_id)
        return reading

    @staticmethod
    async def update(db: AsyncSession, user_id: str, vital_id: str, data: VitalUpdate) -> Vitals:
        reading = await VitalsService.get(db, user_id, vital_id)
        changes = data.model_dump(exclude_unset=True)

        if "value" in changes or "unit" in changes:
            value = data.value if "value" in changes else VitalValue.model_validate(reading.value)
            unit = data.unit if "unit" in changes and data.unit else VitalUnit(reading.unit)
            try:
                value, unit = check_reading(VitalType(reading.type), value, unit)
            except ValueError as e:
                raise ValidationFailedError(str(e), errors=[{"field": "value", "message": str(e)}])
            _apply_value(reading, value)
            reading.unit = unit.value

        if data.recorded_at is not None:
            reading.recorded_at = data.recorded_at
        if "notes" in changes:
            reading.notes = data.notes
        if data.location is not None:
            reading.location = data.location.value
        if "device" in changes:
            reading.device = data.device.model_dump(mode="json", by_alias=True) if data.device else None
        if data.conditions is not None:
            reading.conditions = data.conditions.model_dump(mode="json")
        if data.tags is not None:
            reading.tags = data.tags

        await db.flush()
        if reading.type == VitalType.WEIGHT.value and reading.is_active:
            await VitalsService.sync_bmi(db, reading)
        await db.refresh(reading)
        return reading

    @staticmethod
    async def sync_bmi(db: AsyncSession, weight: Vitals) -> Optional[Vitals]:
        """
        Upsert the BMI reading derived from ``weight`` and the latest height.

        At most one calculated BMI row exists within +/-24h of the weight
        reading; an existing one is updated in place.
        """
        if weight.value_numeric is None:
            return None

        height = (
            await db.execute(
                select(Vitals)
                .where(
                    Vitals.user_id == weight.user_id,
                    Vitals.type == VitalType.HEIGHT.value,
                    Vitals.is_active.is_(True),
                    Vitals.value_numeric.is_not(None),
                )
                .order_by(desc(Vitals.recorded_at))
                .limit(1)
            )
        ).scalar_one_or_none()
        if height is None:
            return None

        bmi = calculate_bmi(weight.value_numeric, weight.unit, height.value_numeric, height.unit)
        if bmi is None:
            return None

        existing = (
            await db.execute(
                select(Vitals)
                .where(
                    Vitals.user_id == weight.user_id,
                    Vitals.type == VitalType.BMI.value,
                    Vitals.is_active.is_(True),
                    Vitals.recorded_at >= weight.recorded_at - BMI_WINDOW,
                    Vitals.recorded_at <= weight.recorded_at + BMI_WINDOW,
                )
                .order_by(desc(Vitals.recorded_at))
                .limit(1)
            )
        ).scalar_one_or_none()

        if existing is None:
            existing = Vitals(
                user_id=weight.user_id,
                type=VitalType.BMI.value,
                unit=VitalUnit.KG_M2.value,
                source=VitalSource.CALCULATED.value,
                conditions={},
                tags=[],
                is_active=True,
            )
            db.add(existing)

        existing.value_numeric = bmi
        existing.recorded_at = weight.recorded_at
        existing.notes = BMI_NOTE
        await db.flush()
        logger.info("BMI %.1f synced for user %s", bmi, weight.user_id)
        return existing

    # ── Read ─────────────────────────────────────────────────────
    @staticmethod
    async def get(db: AsyncSession, user_id: str, vital_id: str) -> Vitals:
        result = await db.execute(
            select(Vitals).where(Vitals.id == vital_id, Vitals.user_id == user_id)
        )
        reading = result.scalar_one_or_none()
        if reading is None:
            raise NotFoundError("Vital reading")
        return reading

    @staticmethod
    async def list_readings(
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        vital_type: Optional[str] = None,
        days: Optional[int] = None,
    ) -> Tuple[List[Vitals], int]:
        filters = [Vitals.user_id == user_id, Vitals.is_active.is_(True)]
        if vital_type:
            filters.append(Vitals.type == vital_type)
        if days:
            filters.append(Vitals.recorded_at >= days_ago(days))

        total = (await db.execute(select(func.count(Vitals.id)).where(*filters))).scalar_one()
        result = await db.execute(
            select(Vitals)
            .where(*filters)
            .order_by(desc(Vitals.recorded_at))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def latest_per_type(db: AsyncSession, user_id: str) -> List[Vitals]:
        """Most recent active reading of each type, newest first."""
        newest = (
            select(Vitals.type, func.max(Vitals.recorded_at).label("recorded_at"))
            .where(Vitals.user_id == user_id, Vitals.is_active.is_(True))
            .group_by(Vitals.type)
            .subquery()
        )
        result = await db.execute(
            select(Vitals)
            .join(
                newest,
                and_(Vitals.type == newest.c.type, Vitals.recorded_at == newest.c.recorded_at),
            )
            .where(Vitals.user_id == user_id, Vitals.is_active.is_(True))
            .order_by(desc(Vitals.recorded_at), desc(Vitals.created_at))
        )
        latest: Dict[str, Vitals] = {}
        for reading in result.scalars().all():
            # Ties on recorded_at: keep the first (most recently created)
            latest.setdefault(reading.type, reading)
        return list(latest.values())

    @staticmethod
    async def stats(db: AsyncSession, user_id: str, days: int = 30) -> List[Dict[str, Any]]:
        """count/avg/min/max per type over the trailing window."""
        result = await db.execute(
            select(
                Vitals.type,
                func.count(Vitals.id),
                func.avg(Vitals.value_numeric),
                func.min(Vitals.value_numeric),
                func.max(Vitals.value_numeric),
                func.avg(Vitals.value_systolic),
                func.avg(Vitals.value_diastolic),
                func.max(Vitals.recorded_at),
            )
            .where(
                Vitals.user_id == user_id,
                Vitals.is_active.is_(True),
                Vitals.recorded_at >= days_ago(days),
            )
            .group_by(Vitals.type)
            .order_by(Vitals.type)
        )

        def _round(v):
            return round(float(v), 2) if v is not None else None

        return [
            {
                "type": vtype,
                "count": count,
                "average": _round(avg),
                "min": _round(low),
                "max": _round(high),
                "average_systolic": _round(avg_sys),
                "average_diastolic": _round(avg_dia),
                "latest": latest,
            }
            for vtype, count, avg, low, high, avg_sys, avg_dia, latest in result.all()
        ]

    @staticmethod
    async def trends(db: AsyncSession, user_id: str, vital_type: VitalType, days: int = 30) -> Dict[str, Any]:
        result = await db.execute(
            select(Vitals)
            .where(
                Vitals.user_id == user_id,
                Vitals.type == vital_type.value,
                Vitals.is_active.is_(True),
                Vitals.recorded_at >= days_ago(days),
            )
            .order_by(Vitals.recorded_at)
        )
        points = [
            {"recorded_at": r.recorded_at, "value": r.primary_value}
            for r in result.scalars().all()
            if r.primary_value is not None
        ]
        trend = "no_data"
        if len(points) >= 2:
            trend = _trend(points[-1]["value"], points[-2]["value"])
        return {"type": vital_type, "days": days, "trend": trend, "points": points}

    # ── Delete ───────────────────────────────────────────────────
    @staticmethod
    async def deactivate(db: AsyncSession, user_id: str, vital_id: str) -> Vitals:
        reading = await VitalsService.get(db, user_id, vital_id)
        reading.is_active = False
        await db.flush()
        await db.refresh(reading)
        return reading

    @staticmethod
    async def delete(db: AsyncSession, user_id: str, vital_id: str) -> None:
        reading = await VitalsService.get(db, user_id, vital_id)
        await db.delete(reading)
        await db.flush()
        logger.info("Deleted vital reading %s for user %s", vital_id, user_id)
