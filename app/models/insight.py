"""
SQLAlchemy ORM Models - AI insights
HealthMate API
"""

import uuid
from sqlalchemy import (
    Column, String, Float, Integer, DateTime, JSON, Boolean, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.models.uploaded_file import UploadedFile
from app.utils.time_utils import utcnow


class Insight(Base):
    """One persisted AI analysis result for a single uploaded report."""

    __tablename__ = "insights"

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
    file_id = Column(
        String(36),
        ForeignKey("uploaded_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = Column(String(32), nullable=False, default="report_analysis")
    title = Column(String(255), nullable=False)
    analysis_kind = Column(String(20), nullable=False, default="structured")

    # Bilingual content
    summary = Column(JSON, nullable=False)
    key_findings = Column(JSON, nullable=False, default=list)
    abnormal_values = Column(JSON, nullable=False, default=list)
    doctor_questions = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=lambda: {"lifestyle": [], "medical": []})
    risk_factors = Column(JSON, nullable=False, default=list)
    follow_up_suggestions = Column(JSON, nullable=False, default=list)
    disclaimers = Column(JSON, nullable=False)

    # Denormalized so dashboards can count without JSON queries
    critical_findings_count = Column(Integer, nullable=False, default=0)

    confidence = Column(Float, nullable=False, default=85)
    language = Column(String(10), nullable=False, default="both")
    model = Column(String(64), nullable=False)
    processing_time_ms = Column(Float, nullable=False, default=0)
    version = Column(String(10), nullable=False, default="1.0")

    # Review state
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    is_reviewed = Column(Boolean, nullable=False, default=False)
    user_feedback = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    file = relationship(UploadedFile, lazy="selectin")

    __table_args__ = (
        Index("ix_insights_user_created", "user_id", "created_at"),
    )

    @property
    def high_priority_recommendations_count(self) -> int:
        recs = self.recommendations or {}
        lifestyle = sum(1 for r in recs.get("lifestyle") or [] if r.get("priority") == "high")
        medical = sum(
            1 for r in recs.get("medical") or []
            if r.get("urgency") in ("urgent", "emergency")
        )
        return lifestyle + medical

    def __repr__(self) -> str:
        return f"<Insight id={self.id} file={self.file_id} kind={self.analysis_kind}>"
