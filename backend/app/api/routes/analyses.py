"""Writer submissions: create, list own, view, edit while under review, delete while pending."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import success_envelope
from app.api.routes.auth import get_current_user
from app.api.serializers import serialize_analysis
from app.core.database import get_db
from app.models import AnalysisStatus, Profile
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import AnalysisCreateRequest, AnalysisUpdateRequest
from app.services.submission_service import submission_service

router = APIRouter(prefix="/analyses", tags=["Analyses"])


@router.post("", status_code=201)
async def create_analysis(
    data: AnalysisCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    analysis = await submission_service.create(db, writer=current_user, values=data.model_dump())
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, analysis.id)
    return success_envelope(serialize_analysis(analysis), status_code=201)


@router.get("")
async def list_my_analyses(
    status: AnalysisStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    rows = await submission_service.list_own(db, writer=current_user, status=status)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/{analysis_id}")
async def get_analysis(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    analysis = await submission_service.get_visible(db, analysis_id=analysis_id, user=current_user)
    return success_envelope(serialize_analysis(analysis))


@router.patch("/{analysis_id}")
async def update_analysis(
    analysis_id: UUID,
    data: AnalysisUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await submission_service.update(
        db,
        analysis_id=analysis_id,
        writer=current_user,
        values=data.model_dump(exclude_unset=True),
    )
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, analysis_id)
    return success_envelope(serialize_analysis(analysis))


@router.delete("/{analysis_id}")
async def delete_analysis(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await submission_service.delete(db, analysis_id=analysis_id, writer=current_user)
    await db.commit()
    return success_envelope({"id": str(analysis_id), "deleted": True})
