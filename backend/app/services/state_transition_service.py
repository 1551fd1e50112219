from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import DuplicateAssignment, NotFound, TransitionConflict, UpstreamError
from app.domain.production.state_machine import (
    AnalysisSnapshot,
    SideEffectKind,
    TransitionFacts,
    TransitionPlan,
    apply_plan,
)
from app.models import AssignmentRole, ViralAnalysis
from app.repositories.analysis_repository import analysis_repository
from app.services.audit_service import audit_service
from app.services.content_id_service import content_id_service

logger = get_logger("services.state_transition")

DUPLICATE_PICK_MESSAGES = {
    AssignmentRole.EDITOR: "This project has already been picked by another editor",
    AssignmentRole.VIDEOGRAPHER: "This project has already been picked",
    AssignmentRole.POSTING_MANAGER: "A posting manager is already assigned to this project",
}


class StateTransitionService:
    async def lock_analysis(
        self,
        *,
        db: AsyncSession,
        analysis_id: Any,
        lock_nowait: bool = True,
    ) -> ViralAnalysis:
        try:
            row = await db.execute(
                select(ViralAnalysis)
                .where(ViralAnalysis.id == analysis_id)
                .with_for_update(nowait=lock_nowait)
            )
        except OperationalError as exc:
            raise TransitionConflict(
                "The analysis is being updated by another operation. Retry.",
                details={"analysis_id": str(analysis_id)},
            ) from exc

        analysis = row.scalar_one_or_none()
        if not analysis:
            raise NotFound("Analysis not found", code="analysis_not_found", details={"analysis_id": str(analysis_id)})
        return analysis

    async def load_facts(self, *, db: AsyncSession, analysis_id: Any, posted_url: str | None = None) -> TransitionFacts:
        raw = await analysis_repository.count_raw_files(db, analysis_id)
        edited = await analysis_repository.count_edited_files(db, analysis_id)
        assignments = await analysis_repository.list_assignments(db, analysis_id)
        return TransitionFacts(
            raw_file_count=raw,
            edited_file_count=edited,
            assigned_roles=frozenset(item.role for item in assignments),
            posted_url=posted_url,
        )

    async def snapshot(self, *, db: AsyncSession, analysis_id: Any, posted_url: str | None = None):
        """Lock the row and gather everything a planner needs."""
        analysis = await self.lock_analysis(db=db, analysis_id=analysis_id)
        facts = await self.load_facts(db=db, analysis_id=analysis_id, posted_url=posted_url or analysis.posted_url)
        return analysis, AnalysisSnapshot.of(analysis), facts

    async def execute_plan(
        self,
        *,
        db: AsyncSession,
        analysis: ViralAnalysis,
        plan: TransitionPlan,
        actor: Any,
        action: str,
        reason: str | None = None,
    ) -> ViralAnalysis:
        """
        Write the stage update, then the assignment insert, inside the caller's transaction.
        If the insert fails, the prior values are written back before the error is raised.
        """
        previous = {key: getattr(analysis, key) for key in plan.updates}
        apply_plan(analysis, plan)
        await db.flush()

        for effect in plan.effects_of(SideEffectKind.INSERT_ASSIGNMENT):
            role: AssignmentRole = effect.payload["role"]
            try:
                await analysis_repository.create_assignment(
                    db,
                    analysis_id=analysis.id,
                    user_id=effect.payload["user_id"],
                    role=role,
                    assigned_by=getattr(actor, "id", None),
                )
            except SQLAlchemyError as exc:
                for key, value in previous.items():
                    setattr(analysis, key, value)
                await db.flush()
                logger.warning(
                    "assignment_insert_rolled_back",
                    analysis_id=str(analysis.id),
                    role=role.value,
                    restored_stage=previous.get("production_stage").value if previous.get("production_stage") else None,
                    error=str(exc.__class__.__name__),
                )
                if isinstance(exc, IntegrityError):
                    raise DuplicateAssignment(DUPLICATE_PICK_MESSAGES[role]) from exc
                raise UpstreamError("Failed to record the assignment", details=str(exc)) from exc

        for effect in plan.effects_of(SideEffectKind.GENERATE_CONTENT_ID):
            await content_id_service.generate(db, analysis=analysis, profile_id=effect.payload["profile_id"])

        await audit_service.log_action(
            db,
            action=action,
            entity_type="viral_analysis",
            entity_id=analysis.id,
            actor=actor,
            reason=reason,
            from_state=plan.from_stage,
            to_state=plan.to_stage,
        )
        logger.info(
            "stage_transition_applied",
            action=action,
            analysis_id=str(analysis.id),
            from_state=plan.from_stage.value if plan.from_stage else None,
            to_state=plan.to_stage.value if plan.to_stage else None,
        )
        return analysis


state_transition_service = StateTransitionService()
