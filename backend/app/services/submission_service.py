"""Writer-side analysis submissions: create, edit while under review, resubmit after rejection."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import NotFound, PermissionDenied, StageMismatch
from app.models import AnalysisStatus, ViralAnalysis
from app.repositories.analysis_repository import analysis_repository
from app.services.audit_service import audit_service

logger = get_logger("services.submission")

SUBMISSION_FIELDS = (
    "reference_url",
    "title",
    "hook",
    "why_viral",
    "how_to_replicate",
    "target_emotion",
    "expected_outcome",
    "form_data",
)
EDITABLE_STATUSES = (AnalysisStatus.PENDING, AnalysisStatus.REJECTED)


class SubmissionService:
    async def get_visible(self, db: AsyncSession, *, analysis_id: Any, user: Any) -> ViralAnalysis:
        analysis = await analysis_repository.get_analysis(db, analysis_id)
        if not analysis:
            raise NotFound("Analysis not found", code="analysis_not_found")
        if analysis.user_id != user.id and not getattr(user, "is_admin", False):
            raise PermissionDenied("You can only view your own analyses")
        return analysis

    async def create(self, db: AsyncSession, *, writer: Any, values: dict[str, Any]) -> ViralAnalysis:
        analysis = ViralAnalysis(
            user_id=writer.id,
            status=AnalysisStatus.PENDING,
            **{key: values[key] for key in SUBMISSION_FIELDS if key in values},
        )
        if analysis.form_data is None:
            analysis.form_data = {}
        db.add(analysis)
        await db.flush()
        await audit_service.log_action(
            db,
            action="analysis_submitted",
            entity_type="viral_analysis",
            entity_id=analysis.id,
            actor=writer,
            to_state=AnalysisStatus.PENDING,
        )
        logger.info("analysis_submitted", analysis_id=str(analysis.id), writer_id=str(writer.id))
        return analysis

    async def list_own(self, db: AsyncSession, *, writer: Any, status: AnalysisStatus | None = None) -> list[ViralAnalysis]:
        return await analysis_repository.list_analyses(db, status=status, user_id=writer.id, limit=500)

    async def _own_for_write(self, db: AsyncSession, *, analysis_id: Any, writer: Any) -> ViralAnalysis:
        analysis = await analysis_repository.get_analysis(db, analysis_id)
        if not analysis:
            raise NotFound("Analysis not found", code="analysis_not_found")
        if analysis.user_id != writer.id:
            raise PermissionDenied("You can only modify your own analyses")
        return analysis

    async def update(self, db: AsyncSession, *, analysis_id: Any, writer: Any, values: dict[str, Any]) -> ViralAnalysis:
        analysis = await self._own_for_write(db, analysis_id=analysis_id, writer=writer)
        if analysis.status not in EDITABLE_STATUSES or analysis.is_dissolved:
            raise StageMismatch(
                "Only pending or rejected analyses can be edited",
                details={"status": analysis.status.value, "is_dissolved": bool(analysis.is_dissolved)},
            )

        previous_status = analysis.status
        for key in SUBMISSION_FIELDS:
            if key in values:
                setattr(analysis, key, values[key])
        if previous_status == AnalysisStatus.REJECTED:
            analysis.status = AnalysisStatus.PENDING
        await db.flush()

        if previous_status != analysis.status:
            await audit_service.log_action(
                db,
                action="analysis_resubmitted",
                entity_type="viral_analysis",
                entity_id=analysis.id,
                actor=writer,
                from_state=previous_status,
                to_state=analysis.status,
            )
        return analysis

    async def delete(self, db: AsyncSession, *, analysis_id: Any, writer: Any) -> None:
        analysis = await self._own_for_write(db, analysis_id=analysis_id, writer=writer)
        if analysis.status != AnalysisStatus.PENDING:
            raise StageMismatch("Only pending analyses can be deleted", details={"status": analysis.status.value})
        await db.delete(analysis)
        await db.flush()
        logger.info("analysis_deleted", analysis_id=str(analysis_id), writer_id=str(writer.id))


submission_service = SubmissionService()
