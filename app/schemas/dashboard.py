"""
Pydantic Schemas - Dashboard, activity timeline and data export
HealthMate API
"""

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.insight import InsightOut
from app.schemas.user import UserOut
from app.schemas.vitals import VitalOut


class DashboardStats(CamelModel):
    recent_files: int
    total_files: int
    recent_vitals: int
    critical_insights: int


class DashboardData(CamelModel):
    stats: DashboardStats
    latest_vitals: List[VitalOut] = Field(default_factory=list)
    recent_insights: List[InsightOut] = Field(default_factory=list)


class ActivityItem(CamelModel):
    type: Literal["file_upload", "vital_added", "insight_generated"]
    timestamp: datetime
    data: Dict[str, Any]


class ActivityData(CamelModel):
    activities: List[ActivityItem] = Field(default_factory=list)


class ExportData(CamelModel):
    user: UserOut
    files: List[Dict[str, Any]] = Field(default_factory=list)
    vitals: List[Dict[str, Any]] = Field(default_factory=list)
    insights: List[Dict[str, Any]] = Field(default_factory=list)
    exported_at: datetime
