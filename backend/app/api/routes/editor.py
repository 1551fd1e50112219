from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_roles
from app.api.envelope import success_envelope
from app.api.serializers import serialize_analysis
from app.core.database import get_db
from app.models import Profile, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import CompleteRequest, PickRequest, SkipRequest
from app.services.editor_service import editor_service

router = APIRouter(prefix="/editor", tags=["Editor"])

EDITOR_ROLES = (UserRole.EDITOR, UserRole.SUPER_ADMIN, UserRole.CREATOR)


@router.get("/available")
async def available_projects(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    rows = await editor_service.get_available_projects(db, editor=current_user)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/my-projects")
async def my_projects(
    stage: list[ProductionStage] | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    rows = await editor_service.get_my_projects(db, editor=current_user, stages=stage)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/stats")
async def stats(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    return success_envelope(await editor_service.get_stats(db, editor=current_user))


@router.post("/pick")
async def pick_project(
    data: PickRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    await editor_service.pick_project(db, analysis_id=data.analysis_id, editor=current_user)
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, data.analysis_id)
    return success_envelope(serialize_analysis(analysis))


@router.post("/complete")
async def complete_editing(
    data: CompleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    await editor_service.mark_editing_complete(
        db,
        analysis_id=data.analysis_id,
        editor=current_user,
        production_notes=data.production_notes,
    )
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, data.analysis_id)
    return success_envelope(serialize_analysis(analysis))


@router.get("/skips")
async def list_skips(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    return success_envelope(await editor_service.get_rejected_ids(db, editor=current_user))


@router.post("/skips")
async def skip_project(
    data: SkipRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    await editor_service.reject_project(db, analysis_id=data.analysis_id, editor=current_user)
    await db.commit()
    return success_envelope({"analysis_id": str(data.analysis_id), "skipped": True})


@router.delete("/skips/{analysis_id}")
async def unskip_project(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*EDITOR_ROLES)),
):
    removed = await editor_service.unreject_project(db, analysis_id=analysis_id, editor=current_user)
    await db.commit()
    return success_envelope({"analysis_id": str(analysis_id), "skipped": False, "removed": removed})
