"""
Upload Service
HealthMate API

Orchestrates the report upload flow:
1. Check each file against upload policy (rejects never abort siblings)
2. Stage to a temp file, push to object storage, discard the temp copy
3. Create one UploadedFile record (status=uploaded) and answer the request
4. In the background: one AI analysis per stored image/PDF, joined all-settled
5. Persist snapshots + Insights, flip status to analyzed or failed
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    ValidationFailedError,
)
from app.database.session import job_session
from app.models.insight import Insight
from app.models.uploaded_file import UploadedFile
from app.schemas.analysis import AnalysisOutcome, Disclaimers, default_disclaimers
from app.schemas.enums import FileStatus
from app.services.ai_service import ai_service
from app.services.storage_service import storage_service
from app.utils.file_handler import (
    build_storage_id,
    check_upload_policy,
    detect_format,
    is_analyzable,
    normalize_mime_type,
    remove_temp_file,
    write_temp_file,
)
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _complete_disclaimers(disclaimers: Optional[Disclaimers]) -> Disclaimers:
    """Fill each disclaimer block the model left out or left blank."""
    defaults = default_disclaimers()
    disclaimers = disclaimers or Disclaimers()
    return Disclaimers(
        ai_disclaimer=(
            disclaimers.ai_disclaimer
            if disclaimers.ai_disclaimer and not disclaimers.ai_disclaimer.is_empty()
            else defaults.ai_disclaimer
        ),
        medical_disclaimer=(
            disclaimers.medical_disclaimer
            if disclaimers.medical_disclaimer and not disclaimers.medical_disclaimer.is_empty()
            else defaults.medical_disclaimer
        ),
    )


def build_snapshot(outcome: AnalysisOutcome, source: Dict[str, Any]) -> Dict[str, Any]:
    snapshot = outcome.report.model_dump(mode="json", by_alias=True)
    snapshot.update(
        kind=outcome.kind,
        model=outcome.model,
        processingTimeMs=round(outcome.processing_time_ms, 2),
        analysisDate=utcnow().isoformat(),
        sourceFile=source["storage_id"],
    )
    return snapshot


def build_insight(record: UploadedFile, outcome: AnalysisOutcome) -> Insight:
    """Map one analysis outcome onto a new Insight row."""
    data = outcome.report.model_dump(mode="json", by_alias=True)
    critical = sum(1 for v in outcome.report.abnormal_values if v.severity == "critical")
    return Insight(
        user_id=record.user_id,
        file_id=record.id,
        title=f"Analysis: {record.report_type}",
        analysis_kind=outcome.kind,
        summary=data["summary"],
        key_findings=data["keyFindings"],
        abnormal_values=data["abnormalValues"],
        doctor_questions=data["doctorQuestions"],
        recommendations=data["recommendations"],
        risk_factors=data["riskFactors"],
        follow_up_suggestions=data["followUpSuggestions"],
        disclaimers=_complete_disclaimers(outcome.report.disclaimers).model_dump(
            mode="json", by_alias=True
        ),
        critical_findings_count=critical,
        confidence=outcome.report.confidence,
        model=outcome.model or settings.ai_model,
        processing_time_ms=outcome.processing_time_ms,
    )


class UploadService:
    """Report upload, background analysis and report CRUD."""

    # ── Upload ───────────────────────────────────────────────────
    @staticmethod
    async def _store_one(upload: UploadFile, content: bytes, user_id: str) -> Dict[str, Any]:
        mime = normalize_mime_type(upload.content_type)
        file_format = detect_format(upload.filename or "", mime)
        path = write_temp_file(content, file_format)
        try:
            stored = await storage_service.store(
                path,
                folder=settings.storage_folder,
                desired_id=build_storage_id(user_id),
                content_type=mime,
                file_format=file_format,
            )
        finally:
            remove_temp_file(path)

        return {
            "original_name": upload.filename or stored.id,
            "storage_id": stored.id,
            "url": stored.url,
            "format": stored.format,
            "size": stored.size,
            "mime_type": mime,
        }

    @staticmethod
    async def _read_within_limit(upload: UploadFile) -> Optional[bytes]:
        """File body, or None as soon as it is known to exceed the size limit."""
        limit = settings.max_file_size_bytes
        if upload.size is not None and upload.size > limit:
            return None
        content = await upload.read(limit + 1)
        return None if len(content) > limit else content

    @staticmethod
    async def create_upload(
        db: AsyncSession,
        user_id: str,
        uploads: Sequence[UploadFile],
        report_type: str,
        report_date: date,
        doctor_name: str = "",
        hospital_name: str = "",
        notes: str = "",
    ) -> Tuple[UploadedFile, List[Dict[str, str]]]:
        """
        Store every acceptable file and record the report.

        Returns the created record and the list of rejected files
        ({name, reason}). Rejected or failed files never abort siblings.
        """
        uploads = [u for u in uploads if u is not None and (u.filename or u.size)]
        if not uploads:
            raise ValidationFailedError(
                "No files uploaded",
                errors=[{"field": "files", "message": "At least one file is required"}],
            )
        if len(uploads) > settings.max_files_per_upload:
            raise ValidationFailedError(
                f"Too many files. Maximum {settings.max_files_per_upload} files per upload",
                errors=[{"field": "files", "message": "Too many files"}],
            )

        stored: List[Dict[str, Any]] = []
        rejected: List[Dict[str, str]] = []

        for upload in uploads:
            name = upload.filename or "unnamed"
            content = await UploadService._read_within_limit(upload)
            size = len(content) if content is not None else settings.max_file_size_bytes + 1
            reason = check_upload_policy(name, upload.content_type, size)
            if reason:
                logger.warning("Rejected upload '%s' from user %s: %s", name, user_id, reason)
                rejected.append({"name": name, "reason": reason})
                continue
            try:
                stored.append(await UploadService._store_one(upload, content, user_id))
            except (StorageError, ConfigurationError, OSError) as e:
                logger.error("Storage failed for '%s' (user %s): %s", name, user_id, e)
                rejected.append({"name": name, "reason": "Storage failed"})

        record = UploadedFile(
            user_id=user_id,
            report_type=report_type,
            report_date=report_date,
            doctor_name=doctor_name or "",
            hospital_name=hospital_name or "",
            notes=notes or "",
            files=stored,
            ai_analysis=[],
            status=FileStatus.UPLOADED.value,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        logger.info(
            "Created report %s for user %s: %d stored, %d rejected",
            record.id, user_id, len(stored), len(rejected),
        )
        return record, rejected

    # ── Background analysis ──────────────────────────────────────
    @staticmethod
    async def _analyze_one(source: Dict[str, Any], report_type: str) -> AnalysisOutcome:
        url = await storage_service.signed_url(source["storage_id"])
        return await ai_service.analyze_report(
            file_url=url,
            mime_type=source["mime_type"],
            report_type=report_type,
        )

    @staticmethod
    async def run_analyses(file_id: str) -> None:
        """
        Analyze every stored image/PDF of a report and settle its status.

        Runs after the response has been sent, in its own session. Never
        raises: individual failures become null results, anything else marks
        the report failed.
        """
        async with job_session() as db:
            try:
                record = await db.get(UploadedFile, file_id)
                if record is None:
                    logger.warning("Report %s vanished before analysis", file_id)
                    return

                targets = [f for f in record.files or [] if is_analyzable(f.get("mime_type", ""))]
                if not targets:
                    logger.info("Report %s has nothing to analyze", file_id)
                    return

                record.status = FileStatus.ANALYZING.value
                await db.commit()

                results = await asyncio.gather(
                    *(UploadService._analyze_one(t, record.report_type) for t in targets),
                    return_exceptions=True,
                )

                successes: List[Tuple[Dict[str, Any], AnalysisOutcome]] = []
                for source, result in zip(targets, results):
                    if isinstance(result, BaseException):
                        logger.error(
                            "Analysis failed for %s (report %s): %s",
                            source["storage_id"], file_id, result,
                        )
                        continue
                    successes.append((source, result))

                await UploadService._settle(db, record, successes)
            except Exception as e:
                logger.error("Background analysis crashed for report %s: %s", file_id, e, exc_info=True)
                await db.rollback()
                await UploadService._mark_failed(db, file_id, "Analysis could not be completed")

    @staticmethod
    async def _settle(
        db: AsyncSession,
        record: UploadedFile,
        successes: List[Tuple[Dict[str, Any], AnalysisOutcome]],
    ) -> None:
        insights = []
        if successes:
            record.ai_analysis = [
                *(record.ai_analysis or []),
                *(build_snapshot(outcome, source) for source, outcome in successes),
            ]
            for _, outcome in successes:
                if outcome.report.has_summary():
                    insight = build_insight(record, outcome)
                    db.add(insight)
                    insights.append(insight)

        if insights:
            record.status = FileStatus.ANALYZED.value
            record.analyzed_at = utcnow()
            record.error_message = None
        else:
            record.status = FileStatus.FAILED.value
            record.error_message = (
                "AI analysis returned no usable summary"
                if successes else "AI analysis failed for every file"
            )

        await db.commit()
        logger.info(
            "Report %s settled as %s: %d analyses, %d insights",
            record.id, record.status, len(successes), len(insights),
        )

    @staticmethod
    async def _mark_failed(db: AsyncSession, file_id: str, message: str) -> None:
        try:
            record = await db.get(UploadedFile, file_id)
            if record is not None:
                record.status = FileStatus.FAILED.value
                record.error_message = message
                await db.commit()
        except Exception as e:
            logger.error("Could not mark report %s failed: %s", file_id, e)

    # ── Queries ──────────────────────────────────────────────────
    @staticmethod
    async def get_file(db: AsyncSession, user_id: str, file_id: str) -> UploadedFile:
        result = await db.execute(
            select(UploadedFile).where(
                UploadedFile.id == file_id, UploadedFile.user_id == user_id
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("File")
        return record

    @staticmethod
    async def list_files(
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        report_type: Optional[str] = None,
    ) -> Tuple[List[UploadedFile], int]:
        filters = [UploadedFile.user_id == user_id]
        if report_type:
            filters.append(UploadedFile.report_type == report_type)

        total = (await db.execute(select(func.count(UploadedFile.id)).where(*filters))).scalar_one()
        result = await db.execute(
            select(UploadedFile)
            .where(*filters)
            .order_by(desc(UploadedFile.uploaded_at))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def download_url(db: AsyncSession, user_id: str, file_id: str, index: int = 0) -> str:
        record = await UploadService.get_file(db, user_id, file_id)
        files = record.files or []
        if not 0 <= index < len(files):
            raise NotFoundError("Stored file")
        return await storage_service.signed_url(files[index]["storage_id"])

    @staticmethod
    async def stats(db: AsyncSession, user_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(UploadedFile.report_type, func.count(UploadedFile.id))
            .where(UploadedFile.user_id == user_id)
            .group_by(UploadedFile.report_type)
        )
        by_type = {report_type: count for report_type, count in result.all()}

        last_upload = (
            await db.execute(
                select(func.max(UploadedFile.uploaded_at)).where(UploadedFile.user_id == user_id)
            )
        ).scalar_one()

        # Stored sizes live in the JSON descriptor list
        files = (
            await db.execute(select(UploadedFile.files).where(UploadedFile.user_id == user_id))
        ).scalars().all()
        total_size = sum(int(f.get("size") or 0) for entry in files for f in entry or [])

        return {
            "total_reports": sum(by_type.values()),
            "total_size": total_size,
            "report_types": sorted(by_type),
            "last_upload": last_upload,
            "by_type": by_type,
        }

    # ── Delete ───────────────────────────────────────────────────
    @staticmethod
    async def delete_file(db: AsyncSession, user_id: str, file_id: str) -> None:
        """Remove stored objects (best effort), linked insights, then the record."""
        record = await UploadService.get_file(db, user_id, file_id)

        for entry in record.files or []:
            try:
                await storage_service.delete(entry["storage_id"])
            except (StorageError, ConfigurationError) as e:
                logger.warning("Could not delete stored object %s: %s", entry.get("storage_id"), e)

        await db.execute(delete(Insight).where(Insight.file_id == record.id))
        await db.delete(record)
        await db.flush()
        logger.info("Deleted report %s for user %s", file_id, user_id)
