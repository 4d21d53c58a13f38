"""
Pydantic Schemas - AI report analysis
HealthMate API

The adapter returns a tagged variant: StructuredAnalysis when the model
produced parseable JSON of the documented shape, FallbackAnalysis otherwise.
Both carry a fully-typed ReportAnalysis so callers never see a half-built shape.

Model output drifts from the requested shape: enum fields accept synonyms and
fall back to a default, bilingual fields accept a bare string, and confidence
accepts "85%" style text.
"""

import re
from typing import Annotated, Dict, List, Literal, Optional, Union, get_args

from pydantic import BeforeValidator, Field

from app.schemas.common import CamelModel

DEFAULT_CONFIDENCE = 85


def _choice(choices, default: str, synonyms: Optional[Dict[str, str]] = None):
    """Literal field that maps synonyms and unknown values onto ``default``."""
    allowed = get_args(choices)

    def normalize(value):
        if isinstance(value, str):
            value = value.strip().lower().replace(" ", "_").replace("-", "_")
            value = (synonyms or {}).get(value, value)
        return value if value in allowed else default

    return Annotated[choices, BeforeValidator(normalize)]


def _as_bilingual(value):
    if isinstance(value, str):
        return {"english": value}
    return value


def _as_confidence(value):
    if isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value)
        value = float(match.group(0)) if match else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    return min(max(float(value), 0.0), 100.0)


Priority = _choice(
    Literal["low", "medium", "high"], "medium", {"moderate": "medium", "urgent": "high"}
)
FindingStatus = _choice(
    Literal["normal", "abnormal", "critical", "borderline"],
    "abnormal",
    {"severe": "critical", "within_range": "normal", "ok": "normal"},
)
Severity = _choice(
    Literal["low", "medium", "high", "critical"],
    "medium",
    {"mild": "low", "moderate": "medium", "severe": "high"},
)
QuestionCategory = _choice(
    Literal["general", "medication", "lifestyle", "follow_up", "symptoms"],
    "general",
    {"followup": "follow_up", "symptom": "symptoms", "medications": "medication"},
)
LifestyleType = _choice(
    Literal["diet", "exercise", "sleep", "stress", "hydration", "other"],
    "other",
    {"nutrition": "diet", "activity": "exercise", "water": "hydration"},
)
Urgency = _choice(
    Literal["routine", "soon", "urgent", "emergency"], "routine", {"immediate": "emergency"}
)
FollowUpType = _choice(
    Literal["test", "consultation", "medication_review", "lifestyle_check"],
    "consultation",
    {"lab_test": "test", "retest": "test", "visit": "consultation"},
)
ReadingValue = Union[str, int, float]


class BilingualText(CamelModel):
    english: Optional[str] = None
    urdu: Optional[str] = None

    def is_empty(self) -> bool:
        return not ((self.english or "").strip() or (self.urdu or "").strip())


Bilingual = Annotated[BilingualText, BeforeValidator(_as_bilingual)]


class KeyFinding(CamelModel):
    parameter: str
    value: Optional[ReadingValue] = None
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    status: FindingStatus = "abnormal"
    explanation: Optional[Bilingual] = None


class AbnormalValue(CamelModel):
    parameter: str
    value: Optional[ReadingValue] = None
    unit: Optional[str] = None
    severity: Severity = "medium"
    explanation: Optional[Bilingual] = None
    recommendation: Optional[Bilingual] = None


class DoctorQuestion(CamelModel):
    question: Bilingual
    category: QuestionCategory = "general"
    priority: Priority = "medium"


class LifestyleRecommendation(CamelModel):
    type: LifestyleType = "other"
    suggestion: Bilingual
    priority: Priority = "medium"


class MedicalRecommendation(CamelModel):
    suggestion: Bilingual
    urgency: Urgency = "routine"


class Recommendations(CamelModel):
    lifestyle: List[LifestyleRecommendation] = Field(default_factory=list)
    medical: List[MedicalRecommendation] = Field(default_factory=list)


class RiskFactor(CamelModel):
    factor: Bilingual
    level: Priority = "medium"
    description: Optional[Bilingual] = None


class FollowUpSuggestion(CamelModel):
    type: FollowUpType = "consultation"
    timeframe: str
    description: Optional[Bilingual] = None
    priority: Priority = "medium"


class Disclaimers(CamelModel):
    ai_disclaimer: Optional[Bilingual] = None
    medical_disclaimer: Optional[Bilingual] = None


class ReportAnalysis(CamelModel):
    """Documented JSON shape requested from the model."""

    summary: Optional[Bilingual] = None
    key_findings: List[KeyFinding] = Field(default_factory=list)
    abnormal_values: List[AbnormalValue] = Field(default_factory=list)
    doctor_questions: List[DoctorQuestion] = Field(default_factory=list)
    recommendations: Recommendations = Field(default_factory=Recommendations)
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    follow_up_suggestions: List[FollowUpSuggestion] = Field(default_factory=list)
    confidence: Annotated[float, BeforeValidator(_as_confidence)] = Field(
        default=DEFAULT_CONFIDENCE, ge=0, le=100
    )
    disclaimers: Optional[Disclaimers] = None

    def has_summary(self) -> bool:
        return self.summary is not None and not self.summary.is_empty()


class StructuredAnalysis(CamelModel):
    kind: Literal["structured"] = "structured"
    report: ReportAnalysis
    raw_text: str
    processing_time_ms: float
    model: str


class FallbackAnalysis(CamelModel):
    kind: Literal["fallback"] = "fallback"
    report: ReportAnalysis
    raw_text: str
    processing_time_ms: float
    model: str


AnalysisOutcome = Annotated[
    Union[StructuredAnalysis, FallbackAnalysis], Field(discriminator="kind")
]


# ── Standard disclaimers ───────────────────────────────────────────
AI_DISCLAIMER = BilingualText(
    english=(
        "This analysis is generated by AI and is for informational purposes only. "
        "Always consult with a qualified healthcare professional for medical advice."
    ),
    urdu=(
        "Yeh analysis AI ke zariye generate hui hai aur sirf information ke liye hai. "
        "Medical advice ke liye hamesha qualified doctor se consult karein."
    ),
)

MEDICAL_DISCLAIMER = BilingualText(
    english=(
        "This information should not replace professional medical advice, diagnosis, "
        "or treatment. Seek immediate medical attention for emergencies."
    ),
    urdu=(
        "Yeh information professional medical advice, diagnosis ya treatment ka "
        "replacement nahi hai. Emergency cases mein immediately doctor se contact karein."
    ),
)


def default_disclaimers() -> Disclaimers:
    return Disclaimers(
        ai_disclaimer=AI_DISCLAIMER.model_copy(),
        medical_disclaimer=MEDICAL_DISCLAIMER.model_copy(),
    )
