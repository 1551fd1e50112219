from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_roles
from app.api.envelope import success_envelope
from app.api.serializers import serialize_analysis
from app.core.database import get_db
from app.models import AssignmentRole, Profile, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import CompleteRequest, PickRequest, SkipRequest
from app.services.videographer_service import videographer_service

router = APIRouter(prefix="/videographer", tags=["Videographer"])

VIDEOGRAPHER_ROLES = (UserRole.VIDEOGRAPHER, UserRole.SUPER_ADMIN, UserRole.CREATOR)


@router.get("/available")
async def available_projects(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    rows = await videographer_service.get_available_projects(db, videographer=current_user)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/my-projects")
async def my_projects(
    stage: list[ProductionStage] | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    rows = await videographer_service.get_my_projects(db, videographer=current_user, stages=stage)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/stats")
async def stats(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    return success_envelope(await videographer_service.get_stats(db, videographer=current_user))


@router.post("/pick")
async def pick_project(
    data: PickRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    await videographer_service.pick_project(
        db,
        analysis_id=data.analysis_id,
        videographer=current_user,
        profile_id=data.profile_id,
        deadline=data.deadline,
    )
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, data.analysis_id)
    return success_envelope(serialize_analysis(analysis))


@router.post("/complete")
async def complete_shooting(
    data: CompleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    await videographer_service.mark_shooting_complete(
        db,
        analysis_id=data.analysis_id,
        videographer=current_user,
        production_notes=data.production_notes,
    )
    await db.commit()
    analysis = await analysis_repository.get_analysis(db, data.analysis_id)
    return success_envelope(serialize_analysis(analysis))


@router.get("/skips")
async def list_skips(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    skips = await analysis_repository.list_skips(db, user_id=current_user.id, role=AssignmentRole.VIDEOGRAPHER)
    return success_envelope([str(item.analysis_id) for item in skips])


@router.post("/skips")
async def skip_project(
    data: SkipRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    await videographer_service.reject_project(db, analysis_id=data.analysis_id, videographer=current_user)
    await db.commit()
    return success_envelope({"analysis_id": str(data.analysis_id), "skipped": True})


@router.delete("/skips/{analysis_id}")
async def unskip_project(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*VIDEOGRAPHER_ROLES)),
):
    removed = await videographer_service.unreject_project(db, analysis_id=analysis_id, videographer=current_user)
    await db.commit()
    return success_envelope({"analysis_id": str(analysis_id), "skipped": False, "removed": removed})
