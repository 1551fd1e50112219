"""Videographer self-service queue: pick approved scripts to shoot and hand footage to editing."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import PermissionDenied
from app.domain.production.state_machine import plan_shooting_complete, plan_videographer_pick
from app.models import AssignmentRole, ProductionStage, ViralAnalysis
from app.repositories.analysis_repository import analysis_repository
from app.services.state_transition_service import state_transition_service

logger = get_logger("services.videographer")

ROLE = AssignmentRole.VIDEOGRAPHER
HANDED_OFF_STAGES = (
    ProductionStage.READY_FOR_EDIT,
    ProductionStage.EDITING,
    ProductionStage.READY_TO_POST,
    ProductionStage.POSTED,
)


class VideographerService:
    async def get_available_projects(self, db: AsyncSession, *, videographer: Any) -> list[ViralAnalysis]:
        return await analysis_repository.list_available_for_videographer(db, videographer.id)

    async def get_my_projects(
        self,
        db: AsyncSession,
        *,
        videographer: Any,
        stages: list[ProductionStage] | None = None,
    ) -> list[ViralAnalysis]:
        return await analysis_repository.list_assigned_to(db, user_id=videographer.id, role=ROLE, stages=stages)

    async def pick_project(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        videographer: Any,
        profile_id: int | None = None,
        deadline: datetime | None = None,
    ) -> ViralAnalysis:
        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        plan = plan_videographer_pick(
            snapshot,
            facts,
            videographer_id=videographer.id,
            now=datetime.now(timezone.utc),
            profile_id=profile_id,
            deadline=deadline,
        )
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=videographer, action="videographer_picked_project"
        )

    async def mark_shooting_complete(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        videographer: Any,
        production_notes: str | None = None,
    ) -> ViralAnalysis:
        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        if not getattr(videographer, "is_admin", False):
            assignment = await analysis_repository.get_assignment(db, analysis.id, ROLE)
            if not assignment or assignment.user_id != videographer.id:
                raise PermissionDenied("Only the assigned videographer can complete this shoot")
        plan = plan_shooting_complete(snapshot, facts, production_notes=production_notes)
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=videographer, action="shooting_completed"
        )

    async def reject_project(self, db: AsyncSession, *, analysis_id: Any, videographer: Any) -> None:
        await analysis_repository.add_skip(db, analysis_id=analysis_id, user_id=videographer.id, role=ROLE)

    async def unreject_project(self, db: AsyncSession, *, analysis_id: Any, videographer: Any) -> bool:
        return await analysis_repository.remove_skip(db, analysis_id=analysis_id, user_id=videographer.id, role=ROLE)

    async def get_stats(self, db: AsyncSession, *, videographer: Any) -> dict[str, int]:
        active = await analysis_repository.count_assigned_to(
            db, user_id=videographer.id, role=ROLE, stages=[ProductionStage.SHOOTING]
        )
        total = await analysis_repository.count_assigned_to(db, user_id=videographer.id, role=ROLE)
        completed = await analysis_repository.count_assigned_to(
            db, user_id=videographer.id, role=ROLE, stages=HANDED_OFF_STAGES
        )
        scripts = len(await analysis_repository.list_analyses(db, user_id=videographer.id, limit=500))
        available = len(await analysis_repository.list_available_for_videographer(db, videographer.id))
        return {
            "activeShoots": active,
            "totalShoots": total,
            "completed": completed,
            "scripts": scripts,
            "available": available,
        }


videographer_service = VideographerService()
