"""
Pydantic Schemas - Uploaded reports
HealthMate API
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.enums import FileStatus, ReportType


class StoredFileOut(CamelModel):
    original_name: str
    storage_id: str
    url: str
    format: str
    size: int
    mime_type: str


class FileOut(CamelModel):
    id: str
    report_type: ReportType
    report_date: date
    doctor_name: str = ""
    hospital_name: str = ""
    notes: str = ""
    files: List[StoredFileOut] = Field(default_factory=list)
    ai_analysis: List[Dict[str, Any]] = Field(default_factory=list)
    status: FileStatus
    error_message: Optional[str] = None
    total_size: int = 0
    analysis_count: int = 0
    uploaded_at: datetime
    analyzed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FileBrief(CamelModel):
    """Linked-report summary embedded in insights."""

    id: str
    report_type: ReportType
    report_date: date
    status: FileStatus


class RejectedFile(CamelModel):
    name: str
    reason: str


class UploadResult(CamelModel):
    file: FileOut
    uploaded_files: int
    rejected_files: List[RejectedFile] = Field(default_factory=list)


class FileStats(CamelModel):
    total_reports: int
    total_size: int
    report_types: List[str]
    last_upload: Optional[datetime] = None
    by_type: Dict[str, int] = Field(default_factory=dict)
