from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_roles
from app.api.envelope import success_envelope
from app.api.serializers import serialize_analysis
from app.core.database import get_db
from app.domain.errors import NotFound
from app.models import Profile, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import MarkPostedRequest, PostingDetailsRequest, ScheduleRequest
from app.services.posting_service import posting_service

router = APIRouter(prefix="/posting", tags=["Posting"])

POSTING_ROLES = (UserRole.POSTING_MANAGER, UserRole.SUPER_ADMIN, UserRole.CREATOR)


async def _reloaded(db: AsyncSession, analysis_id: UUID) -> dict:
    analysis = await analysis_repository.get_analysis(db, analysis_id)
    if not analysis:
        raise NotFound("Analysis not found", code="analysis_not_found")
    return serialize_analysis(analysis)


@router.get("/ready")
async def ready_to_post(
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    rows = await posting_service.get_ready_to_post(db)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/scheduled")
async def scheduled_posts(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    start = start or datetime.now(timezone.utc)
    end = end or start + timedelta(days=7)
    rows = await posting_service.get_scheduled_posts(db, start=start, end=end)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/posted")
async def posted_projects(
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    rows = await posting_service.get_posted_projects(db, limit=limit)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/stats")
async def posting_stats(
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    return success_envelope(await posting_service.get_stats(db))


@router.put("/{analysis_id}/details")
async def set_details(
    analysis_id: UUID,
    data: PostingDetailsRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    await posting_service.set_posting_details(
        db,
        analysis_id=analysis_id,
        manager=current_user,
        platform=data.posting_platform,
        caption=data.posting_caption,
        heading=data.posting_heading,
        hashtags=data.posting_hashtags,
        scheduled_post_time=data.scheduled_post_time,
    )
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.put("/{analysis_id}/schedule")
async def schedule(
    analysis_id: UUID,
    data: ScheduleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    await posting_service.schedule_post(
        db,
        analysis_id=analysis_id,
        manager=current_user,
        scheduled_post_time=data.scheduled_post_time,
    )
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/{analysis_id}/posted")
async def mark_posted(
    analysis_id: UUID,
    data: MarkPostedRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    await posting_service.mark_as_posted(
        db,
        analysis_id=analysis_id,
        manager=current_user,
        posted_url=data.posted_url,
        keep_in_queue=data.keep_in_queue,
    )
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.get("/{analysis_id}/details")
async def get_details(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_roles(*POSTING_ROLES)),
):
    return success_envelope(await _reloaded(db, analysis_id))
