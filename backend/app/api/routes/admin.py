"""
VCA Production Workflow - Admin Workflow Routes
===============================================
Review, stage control, review gates, team assignment, bulk moves, stats and
the skip list. Every route requires an admin profile.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_admin
from app.api.envelope import success_envelope
from app.api.serializers import serialize_analysis, serialize_skip
from app.core.database import get_db
from app.core.logging import get_logger
from app.domain.errors import NotFound, ValidationError
from app.domain.production.state_machine import GateAction
from app.domain.review.scoring import ReviewDecision, ReviewScores
from app.models import AnalysisStatus, Profile
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import (
    AssignTeamRequest,
    BulkStageRequest,
    DisapproveRequest,
    GateRequest,
    ReviewRequest,
    StageUpdateRequest,
)
from app.services.analytics_service import analytics_service, bucket_stages
from app.services.assignment_service import TeamAssignment, assignment_service
from app.services.production_service import production_service
from app.services.review_service import review_service

router = APIRouter(prefix="/admin", tags=["Admin Workflow"])
logger = get_logger("api.admin")

GATE_ROUTES = {
    "approve-shoot": GateAction.APPROVE_SHOOT,
    "request-reshoot": GateAction.REQUEST_RESHOOT,
    "approve-edit": GateAction.APPROVE_EDIT,
    "request-revision": GateAction.REQUEST_REVISION,
    "approve-final": GateAction.APPROVE_FINAL,
}


async def _reloaded(db: AsyncSession, analysis_id: Any) -> dict:
    analysis = await analysis_repository.get_analysis(db, analysis_id)
    if not analysis:
        raise NotFound("Analysis not found", code="analysis_not_found")
    return serialize_analysis(analysis)


async def _parse_review(request: Request) -> tuple[ReviewRequest, bytes | None]:
    """JSON body, or multipart form with an optional `voice_note` file."""
    content_type = request.headers.get("content-type", "")
    voice_note: bytes | None = None
    try:
        if content_type.startswith("multipart/form-data"):
            form = await request.form()
            upload = form.get("voice_note")
            fields = {key: value for key, value in form.items() if key != "voice_note"}
            if upload is not None and hasattr(upload, "read"):
                voice_note = await upload.read() or None
            return ReviewRequest.model_validate(fields), voice_note
        return ReviewRequest.model_validate(await request.json()), voice_note
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    except ValueError as exc:
        raise ValidationError("Malformed review payload") from exc


# ── Analyses ──

@router.get("/analyses")
async def list_analyses(
    status: AnalysisStatus | None = Query(default=None),
    stage: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_admin),
):
    stages = None
    if stage:
        stages = bucket_stages(stage)
        if stages is None:
            raise ValidationError("Unknown stage bucket", details={"stage": stage})
    rows = await analysis_repository.list_analyses(db, status=status, stages=stages, limit=limit)
    return success_envelope([serialize_analysis(item) for item in rows], meta={"count": len(rows)})


@router.get("/analyses/{analysis_id}")
async def get_analysis(
    analysis_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_admin),
):
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/analyses/{analysis_id}/review")
async def review_analysis(
    analysis_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    payload, voice_note = await _parse_review(request)
    _, outcome = await review_service.review_analysis(
        db,
        analysis_id=analysis_id,
        decision=ReviewDecision(payload.status),
        scores=ReviewScores(
            hook_strength=payload.hook_strength,
            content_quality=payload.content_quality,
            viral_potential=payload.viral_potential,
            replication_clarity=payload.replication_clarity,
        ),
        reviewer=current_user,
        feedback=payload.feedback,
        profile_id=payload.profile_id,
        voice_note=voice_note,
    )
    await db.commit()
    return success_envelope(
        await _reloaded(db, analysis_id),
        meta={
            "overall_score": outcome.overall_score,
            "rejection_count": outcome.rejection_count,
            "dissolved": outcome.dissolved,
            "dissolution_warning": outcome.dissolution_warning,
        },
    )


@router.patch("/analyses/{analysis_id}/stage")
async def update_stage(
    analysis_id: UUID,
    data: StageUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    await production_service.update_stage(
        db,
        analysis_id=analysis_id,
        target=data.production_stage,
        actor=current_user,
        production_notes=data.production_notes,
        planned_date=data.planned_date,
        posted_url=data.posted_url,
    )
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/analyses/{analysis_id}/request-review")
async def request_review(
    analysis_id: UUID,
    data: GateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    action = GateAction.REQUEST_SHOOT_REVIEW if data.target == "shoot" else GateAction.REQUEST_EDIT_REVIEW
    await production_service.apply_gate(db, analysis_id=analysis_id, action=action, actor=current_user, note=data.note)
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/analyses/{analysis_id}/disapprove")
async def disapprove(
    analysis_id: UUID,
    data: DisapproveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    await production_service.disapprove(db, analysis_id=analysis_id, reason=data.reason, actor=current_user)
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/analyses/{analysis_id}/assign-team")
async def assign_team(
    analysis_id: UUID,
    data: AssignTeamRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    team = TeamAssignment.from_form(data.model_dump())
    _, assigned = await assignment_service.assign_team(db, analysis_id=analysis_id, team=team, actor=current_user)
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id), meta={"assigned": assigned})


@router.post("/analyses/{analysis_id}/{gate}")
async def apply_gate(
    analysis_id: UUID,
    gate: str,
    data: GateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    action = GATE_ROUTES.get(gate)
    if action is None:
        raise NotFound("Unknown review action", details={"action": gate})
    await production_service.apply_gate(
        db,
        analysis_id=analysis_id,
        action=action,
        actor=current_user,
        note=data.note if data else None,
    )
    await db.commit()
    return success_envelope(await _reloaded(db, analysis_id))


@router.post("/analyses/bulk-stage")
async def bulk_stage(
    data: BulkStageRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    results = await production_service.bulk_update_stage(
        db,
        analysis_ids=data.analysis_ids,
        target=data.production_stage,
        actor=current_user,
    )
    await db.commit()
    succeeded = sum(1 for item in results if item["ok"])
    return success_envelope(
        {"results": results, "succeeded": succeeded, "failed": len(results) - succeeded},
    )


# ── Stats ──

@router.get("/stats/queue")
async def queue_stats(db: AsyncSession = Depends(get_db), _: Profile = Depends(require_admin)):
    return success_envelope(await analytics_service.get_queue_stats(db))


@router.get("/stats/dashboard")
async def dashboard_stats(db: AsyncSession = Depends(get_db), _: Profile = Depends(require_admin)):
    return success_envelope(await analytics_service.get_dashboard_stats(db))


@router.get("/stats/team")
async def team_stats(db: AsyncSession = Depends(get_db), _: Profile = Depends(require_admin)):
    return success_envelope(await analytics_service.get_team_stats(db))


@router.get("/analytics")
async def analytics(db: AsyncSession = Depends(get_db), _: Profile = Depends(require_admin)):
    return success_envelope(await analytics_service.get_analytics(db))


# ── Skips ──

@router.get("/skips")
async def list_skips(
    limit: int = Query(default=200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_admin),
):
    rows = await analysis_repository.list_skips(db, limit=limit)
    return success_envelope([serialize_skip(item) for item in rows])


@router.delete("/skips/{skip_id}")
async def delete_skip(
    skip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    removed = await analysis_repository.delete_skip_by_id(db, skip_id)
    if not removed:
        raise NotFound("Skip not found")
    await db.commit()
    logger.info("skip_removed_by_admin", skip_id=skip_id, admin_id=str(current_user.id))
    return success_envelope({"id": skip_id, "deleted": True})
