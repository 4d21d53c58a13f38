"""
Pydantic Schemas - AI insights
HealthMate API
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.analysis import (
    AbnormalValue,
    BilingualText,
    Disclaimers,
    DoctorQuestion,
    FollowUpSuggestion,
    KeyFinding,
    Recommendations,
    RiskFactor,
)
from app.schemas.common import CamelModel
from app.schemas.file import FileBrief


class FeedbackRequest(CamelModel):
    helpful: Optional[bool] = None
    accurate: Optional[bool] = None
    comments: Optional[str] = Field(default=None, max_length=1000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)


class FeedbackOut(FeedbackRequest):
    reviewed_at: datetime


class InsightOut(CamelModel):
    id: str
    file_id: str
    file: Optional[FileBrief] = None
    type: str
    title: str
    analysis_kind: str
    summary: BilingualText
    key_findings: List[KeyFinding] = Field(default_factory=list)
    abnormal_values: List[AbnormalValue] = Field(default_factory=list)
    doctor_questions: List[DoctorQuestion] = Field(default_factory=list)
    recommendations: Recommendations = Field(default_factory=Recommendations)
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    follow_up_suggestions: List[FollowUpSuggestion] = Field(default_factory=list)
    disclaimers: Disclaimers
    confidence: float
    language: str
    model: str
    processing_time_ms: float
    version: str
    is_read: bool
    read_at: Optional[datetime] = None
    is_reviewed: bool
    user_feedback: Optional[FeedbackOut] = None
    critical_findings_count: int = 0
    high_priority_recommendations_count: int = 0
    created_at: datetime
    updated_at: datetime


class InsightStats(CamelModel):
    total: int
    unread: int
    average_confidence: Optional[float] = None
    last_insight_at: Optional[datetime] = None
