"""
SQLAlchemy ORM Models - Vital sign readings
HealthMate API
"""

import uuid
from typing import Any, Dict, Optional, Union
from sqlalchemy import (
    Column, String, Float, Integer, DateTime, JSON, Boolean, ForeignKey, Index
)

from app.database.session import Base
from app.schemas.enums import VitalType
from app.utils.time_utils import utcnow


def _plain_number(value: float) -> Union[int, float]:
    return int(value) if float(value).is_integer() else value


class Vitals(Base):
    """A single timestamped health measurement."""

    __tablename__ = "vitals"

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    type = Column(String(32), nullable=False)

    # Polymorphic value: exactly one shape is populated per type
    value_numeric = Column(Float, nullable=True)
    value_text = Column(String(255), nullable=True)
    value_systolic = Column(Integer, nullable=True)
    value_diastolic = Column(Integer, nullable=True)

    unit = Column(String(16), nullable=False)
    recorded_at = Column(DateTime, default=utcnow, nullable=False)
    notes = Column(String(500), nullable=True)
    source = Column(String(16), nullable=False, default="manual")
    location = Column(String(16), nullable=False, default="home")
    device = Column(JSON, nullable=True)

    # {fasting, medication, exercise, stress}
    conditions = Column(JSON, nullable=False, default=dict)
    tags = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_vitals_user_type_recorded", "user_id", "type", "recorded_at"),
        Index("ix_vitals_user_recorded", "user_id", "recorded_at"),
    )

    @property
    def value(self) -> Dict[str, Any]:
        return {
            "numeric": self.value_numeric,
            "text": self.value_text,
            "systolic": self.value_systolic,
            "diastolic": self.value_diastolic,
        }

    @property
    def formatted_value(self) -> str:
        if self.type == VitalType.BLOOD_PRESSURE.value:
            return f"{self.value_systolic}/{self.value_diastolic} {self.unit}"
        if self.value_numeric is not None:
            return f"{_plain_number(self.value_numeric)} {self.unit}"
        if self.value_text:
            return self.value_text
        return "N/A"

    @property
    def primary_value(self) -> Optional[float]:
        """Number used for trends: the reading itself, or systolic for blood pressure."""
        if self.value_numeric is not None:
            return self.value_numeric
        if self.value_systolic is not None:
            return float(self.value_systolic)
        return None

    def __repr__(self) -> str:
        return f"<Vitals id={self.id} type={self.type} value={self.formatted_value}>"
