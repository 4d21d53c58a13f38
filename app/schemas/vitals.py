"""
Pydantic Schemas - Vital sign readings
HealthMate API

A reading's value shape follows its type: blood pressure carries a
systolic/diastolic pair, subjective scales carry text, everything else a
single non-negative number.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from app.schemas.common import CamelModel
from app.schemas.enums import (
    PAIRED_VALUE_RANGES,
    TEXT_VITAL_TYPES,
    VITAL_UNITS,
    VitalLocation,
    VitalSource,
    VitalType,
    VitalUnit,
)
from app.utils.time_utils import to_naive_utc

_VALUE_KEYS = ("numeric", "text", "systolic", "diastolic")


class VitalValue(CamelModel):
    numeric: Optional[float] = None
    text: Optional[str] = Field(default=None, max_length=255)
    systolic: Optional[int] = None
    diastolic: Optional[int] = None


class DeviceInfo(CamelModel):
    name: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None


class VitalConditions(CamelModel):
    fasting: bool = False
    medication: bool = False
    exercise: bool = False
    stress: Literal["low", "medium", "high"] = "low"


def _plain(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def check_reading(
    vital_type: VitalType, value: Optional[VitalValue], unit: Optional[VitalUnit]
) -> Tuple[VitalValue, VitalUnit]:
    """
    Validate a value/unit pair against the reading type.

    Returns the normalized value (only the fields the type uses) and the unit,
    defaulted to the type's first unit. Raises ValueError on any mismatch.
    """
    allowed = VITAL_UNITS[vital_type]
    unit = unit or allowed[0]
    if unit not in allowed:
        raise ValueError(f"Unit '{unit.value}' is not valid for {vital_type.value}")

    value = value or VitalValue()

    if vital_type == VitalType.BLOOD_PRESSURE:
        if value.systolic is None or value.diastolic is None:
            raise ValueError("Blood pressure requires both systolic and diastolic values")
        low, high = PAIRED_VALUE_RANGES.get(unit, (0, float("inf")))
        for name, reading in (("systolic", value.systolic), ("diastolic", value.diastolic)):
            if not low <= reading <= high:
                raise ValueError(f"{name.capitalize()} must be between {low} and {high} {unit.value}")
        return VitalValue(systolic=value.systolic, diastolic=value.diastolic), unit

    if vital_type in TEXT_VITAL_TYPES:
        text = (value.text or "").strip()
        if not text and value.numeric is not None:
            text = _plain(value.numeric)
        if not text:
            raise ValueError(f"{vital_type.value} requires a text value")
        return VitalValue(text=text), unit

    if value.numeric is None:
        raise ValueError(f"{vital_type.value} requires a numeric value")
    if value.numeric < 0:
        raise ValueError("Numeric value cannot be negative")
    return VitalValue(numeric=value.numeric), unit


def _lift_value(data: Any) -> Any:
    """Accept {systolic: 120, diastolic: 80} as well as {value: {...}}."""
    if not isinstance(data, dict):
        return data
    loose = {k: data[k] for k in _VALUE_KEYS if k in data}
    if not loose:
        return data
    data = {k: v for k, v in data.items() if k not in _VALUE_KEYS}
    nested = data.get("value") if isinstance(data.get("value"), dict) else {}
    data["value"] = {**loose, **nested}
    return data


class _TagsMixin(CamelModel):
    @field_validator("tags", check_fields=False)
    @classmethod
    def normalize_tags(cls, v):
        if v is None:
            return v
        return [t.strip().lower() for t in v if t and t.strip()]

    @field_validator("recorded_at", check_fields=False)
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)


class VitalCreate(_TagsMixin):
    type: VitalType
    value: Optional[VitalValue] = None
    unit: Optional[VitalUnit] = None
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    source: VitalSource = VitalSource.MANUAL
    location: VitalLocation = VitalLocation.HOME
    device: Optional[DeviceInfo] = None
    conditions: VitalConditions = Field(default_factory=VitalConditions)
    tags: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def lift_value(cls, data: Any) -> Any:
        return _lift_value(data)

    @model_validator(mode="after")
    def validate_reading(self) -> "VitalCreate":
        self.value, self.unit = check_reading(self.type, self.value, self.unit)
        return self


class VitalUpdate(_TagsMixin):
    """The reading type is fixed at creation."""

    value: Optional[VitalValue] = None
    unit: Optional[VitalUnit] = None
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[VitalLocation] = None
    device: Optional[DeviceInfo] = None
    conditions: Optional[VitalConditions] = None
    tags: Optional[List[str]] = None

    @model_validator(mode="before")
    @classmethod
    def lift_value(cls, data: Any) -> Any:
        return _lift_value(data)


class VitalOut(CamelModel):
    id: str
    type: VitalType
    value: VitalValue
    unit: str
    formatted_value: str
    recorded_at: datetime
    notes: Optional[str] = None
    source: VitalSource
    location: VitalLocation
    device: Optional[DeviceInfo] = None
    conditions: VitalConditions = Field(default_factory=VitalConditions)
    tags: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime


class VitalStats(CamelModel):
    type: VitalType
    count: int
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    average_systolic: Optional[float] = None
    average_diastolic: Optional[float] = None
    latest: Optional[datetime] = None


class TrendPoint(CamelModel):
    recorded_at: datetime
    value: float


class VitalTrend(CamelModel):
    type: VitalType
    days: int
    trend: Literal["increasing", "decreasing", "stable", "no_data"]
    points: List[TrendPoint] = Field(default_factory=list)
