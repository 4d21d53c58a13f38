"""
Files API Routes
HealthMate API

Endpoints:
  POST   /api/files/upload              - Upload 1-5 report files, analysis runs after the response
  GET    /api/files                     - List reports (paginated)
  GET    /api/files/stats/overview      - Upload statistics
  GET    /api/files/{id}                - Single report (poll `status` for analysis progress)
  GET    /api/files/{id}/download       - Redirect to a signed URL of one stored file
  DELETE /api/files/{id}                - Delete report, stored objects and insights
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import (
    APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
)
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database.session import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, Pagination
from app.schemas.enums import ReportType
from app.schemas.file import FileOut, FileStats, RejectedFile, UploadResult
from app.services.upload_service import UploadService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/files", tags=["Medical Reports"])


# ── Upload ─────────────────────────────────────────────────────────
@router.post(
    "/upload",
    response_model=ApiResponse[UploadResult],
    status_code=status.HTTP_201_CREATED,
    summary="Upload medical reports",
    description=(
        "Upload up to 5 PDF/JPEG/PNG files (10MB each). Files outside policy are "
        "skipped and listed in `rejectedFiles`. AI analysis runs after the response; "
        "poll the report's `status` for `analyzed` or `failed`."
    ),
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def upload_files(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(..., description="Report files (PDF, JPEG, PNG)"),
    report_type: ReportType = Form(..., alias="reportType"),
    report_date: date = Form(..., alias="reportDate"),
    doctor_name: str = Form(default="", alias="doctorName", max_length=255),
    hospital_name: str = Form(default="", alias="hospitalName", max_length=255),
    notes: str = Form(default="", max_length=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record, rejected = await UploadService.create_upload(
        db,
        user_id=current_user.id,
        uploads=files,
        report_type=report_type.value,
        report_date=report_date,
        doctor_name=doctor_name,
        hospital_name=hospital_name,
        notes=notes,
    )
    # The background job reads the record from its own session
    await db.commit()

    if record.files:
        background_tasks.add_task(UploadService.run_analyses, record.id)
        message = "Files uploaded successfully. AI analysis in progress."
    else:
        message = "No files could be stored."

    return ApiResponse(
        message=message,
        data=UploadResult(
            file=FileOut.model_validate(record),
            uploaded_files=len(record.files),
            rejected_files=[RejectedFile(**r) for r in rejected],
        ),
    )


# ── List ───────────────────────────────────────────────────────────
@router.get("", response_model=PaginatedResponse[FileOut])
async def list_files(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    report_type: Optional[ReportType] = Query(default=None, alias="reportType"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await UploadService.list_files(
        db, current_user.id, page, limit, report_type.value if report_type else None
    )
    return PaginatedResponse(
        data=[FileOut.model_validate(item) for item in items],
        pagination=Pagination.build(page, limit, total),
    )


# ── Stats (declared before /{file_id}) ─────────────────────────────
@router.get("/stats/overview", response_model=ApiResponse[FileStats])
async def file_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=FileStats(**await UploadService.stats(db, current_user.id)))


# ── Single report ──────────────────────────────────────────────────
@router.get(
    "/{file_id}",
    response_model=ApiResponse[FileOut],
    responses={404: {"model": ErrorResponse}},
)
async def get_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await UploadService.get_file(db, current_user.id, file_id)
    return ApiResponse(data=FileOut.model_validate(record))


@router.get(
    "/{file_id}/download",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={404: {"model": ErrorResponse}},
)
async def download_file(
    file_id: str,
    index: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    url = await UploadService.download_url(db, current_user.id, file_id, index)
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


# ── Delete ─────────────────────────────────────────────────────────
@router.delete(
    "/{file_id}",
    response_model=ApiResponse[None],
    responses={404: {"model": ErrorResponse}},
)
async def delete_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await UploadService.delete_file(db, current_user.id, file_id)
    return ApiResponse(message="File deleted successfully")
