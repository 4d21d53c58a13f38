"""
SQLAlchemy ORM Models - Uploaded reports
HealthMate API
"""

import uuid
from sqlalchemy import (
    Column, String, Text, Date, DateTime, JSON, ForeignKey, Index
)

from app.database.session import Base
from app.schemas.enums import FileStatus
from app.utils.time_utils import utcnow


class UploadedFile(Base):
    """
    One logical report: the stored objects that make it up, the report
    metadata, and a snapshot of every successful AI analysis.
    """

    __tablename__ = "uploaded_files"

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

    # Report metadata
    report_type = Column(String(32), nullable=False)
    report_date = Column(Date, nullable=False)
    doctor_name = Column(String(255), nullable=False, default="")
    hospital_name = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=False, default="")

    # [{original_name, storage_id, url, format, size, mime_type}, ...]
    files = Column(JSON, nullable=False, default=list)

    # Snapshots of successful analyses, appended when analysis settles
    ai_analysis = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default=FileStatus.UPLOADED.value, index=True)
    error_message = Column(Text, nullable=True)

    uploaded_at = Column(DateTime, default=utcnow, nullable=False)
    analyzed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_uploaded_files_user_uploaded", "user_id", "uploaded_at"),
        Index("ix_uploaded_files_user_type", "user_id", "report_type"),
    )

    @property
    def total_size(self) -> int:
        return sum(int(f.get("size") or 0) for f in self.files or [])

    @property
    def analysis_count(self) -> int:
        return len(self.ai_analysis or [])

    def __repr__(self) -> str:
        return f"<UploadedFile id={self.id} type={self.report_type} status={self.status}>"
