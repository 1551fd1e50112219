from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import NotFound, PermissionDenied, ValidationError
from app.models import ProductionFile, ViralAnalysis, normalize_file_type

logger = get_logger("services.files")


class FileService:
    async def register(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        uploader: Any,
        file_type: str,
        file_name: str,
        file_url: str,
        file_id: str | None = None,
        file_size: int | None = None,
        mime_type: str | None = None,
        description: str | None = None,
    ) -> ProductionFile:
        try:
            normalized = normalize_file_type(file_type)
        except ValueError as exc:
            raise ValidationError("Unsupported file type", details={"file_type": file_type}) from exc
        if not (file_name or "").strip() or not (file_url or "").strip():
            raise ValidationError("File name and URL are required")

        exists = await db.execute(select(ViralAnalysis.id).where(ViralAnalysis.id == analysis_id))
        if exists.scalar_one_or_none() is None:
            raise NotFound("Analysis not found", code="analysis_not_found")

        record = ProductionFile(
            analysis_id=analysis_id,
            uploaded_by=uploader.id,
            file_type=normalized,
            file_name=file_name.strip(),
            file_url=file_url.strip(),
            file_id=file_id,
            file_size=file_size,
            mime_type=mime_type,
            description=description,
        )
        db.add(record)
        await db.flush()
        logger.info(
            "production_file_registered",
            analysis_id=str(analysis_id),
            file_type=normalized.value,
            uploader_id=str(uploader.id),
        )
        return record

    async def list_for_analysis(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        include_deleted: bool = False,
    ) -> list[ProductionFile]:
        stmt = select(ProductionFile).where(ProductionFile.analysis_id == analysis_id)
        if not include_deleted:
            stmt = stmt.where(ProductionFile.is_deleted.is_(False))
        rows = await db.execute(stmt.order_by(ProductionFile.created_at.desc()))
        return list(rows.scalars().all())

    async def soft_delete(self, db: AsyncSession, *, file_id: int, user: Any) -> ProductionFile:
        row = await db.execute(select(ProductionFile).where(ProductionFile.id == file_id))
        record = row.scalar_one_or_none()
        if not record or record.is_deleted:
            raise NotFound("File not found")
        if record.uploaded_by != user.id and not getattr(user, "is_admin", False):
            raise PermissionDenied("Only the uploader or an admin can delete this file")
        record.is_deleted = True
        record.deleted_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("production_file_deleted", file_id=file_id, user_id=str(user.id))
        return record


file_service = FileService()
