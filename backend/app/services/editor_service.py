"""Editor self-service queue: browse, pick, skip and complete edits."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import PermissionDenied
from app.domain.production.state_machine import plan_editing_complete, plan_editor_pick
from app.models import AssignmentRole, ProductionStage, ViralAnalysis
from app.repositories.analysis_repository import analysis_repository
from app.services.state_transition_service import state_transition_service

logger = get_logger("services.editor")

ROLE = AssignmentRole.EDITOR
COMPLETED_STAGES = (ProductionStage.READY_TO_POST, ProductionStage.POSTED)


class EditorService:
    async def get_available_projects(self, db: AsyncSession, *, editor: Any) -> list[ViralAnalysis]:
        return await analysis_repository.list_available_for_editor(db, editor.id)

    async def get_my_projects(
        self,
        db: AsyncSession,
        *,
        editor: Any,
        stages: list[ProductionStage] | None = None,
    ) -> list[ViralAnalysis]:
        return await analysis_repository.list_assigned_to(db, user_id=editor.id, role=ROLE, stages=stages)

    async def pick_project(self, db: AsyncSession, *, analysis_id: Any, editor: Any) -> ViralAnalysis:
        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        plan = plan_editor_pick(snapshot, facts, editor_id=editor.id)
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=editor, action="editor_picked_project"
        )

    async def mark_editing_complete(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        editor: Any,
        production_notes: str | None = None,
    ) -> ViralAnalysis:
        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        if not getattr(editor, "is_admin", False):
            assignment = await analysis_repository.get_assignment(db, analysis.id, ROLE)
            if not assignment or assignment.user_id != editor.id:
                raise PermissionDenied("Only the assigned editor can complete this project")
        plan = plan_editing_complete(snapshot, facts, production_notes=production_notes)
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=editor, action="editing_completed"
        )

    async def reject_project(self, db: AsyncSession, *, analysis_id: Any, editor: Any) -> None:
        await analysis_repository.add_skip(db, analysis_id=analysis_id, user_id=editor.id, role=ROLE)
        logger.info("editor_skipped_project", analysis_id=str(analysis_id), editor_id=str(editor.id))

    async def unreject_project(self, db: AsyncSession, *, analysis_id: Any, editor: Any) -> bool:
        return await analysis_repository.remove_skip(db, analysis_id=analysis_id, user_id=editor.id, role=ROLE)

    async def get_rejected_ids(self, db: AsyncSession, *, editor: Any) -> list[str]:
        skips = await analysis_repository.list_skips(db, user_id=editor.id, role=ROLE)
        return [str(item.analysis_id) for item in skips]

    async def get_stats(self, db: AsyncSession, *, editor: Any) -> dict[str, int]:
        in_progress = await analysis_repository.count_assigned_to(
            db, user_id=editor.id, role=ROLE, stages=[ProductionStage.EDITING]
        )
        completed = await analysis_repository.count_assigned_to(
            db, user_id=editor.id, role=ROLE, stages=COMPLETED_STAGES
        )
        available = len(await analysis_repository.list_available_for_editor(db, editor.id))
        return {"inProgress": in_progress, "completed": completed, "available": available}


editor_service = EditorService()
