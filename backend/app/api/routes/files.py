from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import success_envelope
from app.api.routes.auth import get_current_user
from app.core.database import get_db
from app.models import Profile
from app.schemas.workflow import FileCreateRequest, ProductionFileResponse
from app.services.file_service import file_service

router = APIRouter(prefix="/files", tags=["Production Files"])


def _serialize_file(record) -> dict:
    return ProductionFileResponse.model_validate(record).model_dump(mode="json")


@router.post("", status_code=201)
async def register_file(
    data: FileCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    record = await file_service.register(
        db,
        analysis_id=data.analysis_id,
        uploader=current_user,
        file_type=data.file_type,
        file_name=data.file_name,
        file_url=data.file_url,
        file_id=data.file_id,
        file_size=data.file_size,
        mime_type=data.mime_type,
        description=data.description,
    )
    await db.commit()
    await db.refresh(record)
    return success_envelope(_serialize_file(record), status_code=201)


@router.get("/analysis/{analysis_id}")
async def list_files(
    analysis_id: UUID,
    include_deleted: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(get_current_user),
):
    rows = await file_service.list_for_analysis(db, analysis_id=analysis_id, include_deleted=include_deleted)
    return success_envelope([_serialize_file(item) for item in rows], meta={"count": len(rows)})


@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    record = await file_service.soft_delete(db, file_id=file_id, user=current_user)
    await db.commit()
    return success_envelope({"id": record.id, "deleted": True})
