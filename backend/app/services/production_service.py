"""Admin-side production stage operations: direct stage updates, review gates, send-back and bulk moves."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import WorkflowError
from app.domain.posting.rules import plan_mark_posted
from app.domain.production.state_machine import (
    GateAction,
    plan_disapproval,
    plan_gate_action,
    plan_stage_change,
)
from app.models import ProductionStage, ViralAnalysis
from app.services.state_transition_service import state_transition_service

logger = get_logger("services.production")


class ProductionService:
    async def update_stage(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        target: ProductionStage,
        actor: Any,
        production_notes: str | None = None,
        planned_date: datetime | None = None,
        posted_url: str | None = None,
    ) -> ViralAnalysis:
        now = datetime.now(timezone.utc)
        if target == ProductionStage.POSTED:
            # Same bookkeeping as the posting endpoint: history entry, posted_url, posted_at.
            analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
            plan = plan_mark_posted(
                stage=analysis.production_stage,
                posted_urls=list(analysis.posted_urls or []),
                posted_url=posted_url,
                keep_in_queue=False,
                now=now,
            )
            if production_notes is not None:
                plan.updates["production_notes"] = production_notes
            return await state_transition_service.execute_plan(
                db=db, analysis=analysis, plan=plan, actor=actor, action="posted"
            )

        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        plan = plan_stage_change(
            snapshot,
            target,
            facts=facts,
            now=now,
            production_notes=production_notes,
            planned_date=planned_date,
        )
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=actor, action="production_stage_updated"
        )

    async def apply_gate(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        action: GateAction,
        actor: Any,
        note: str | None = None,
    ) -> ViralAnalysis:
        analysis, snapshot, facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        plan = plan_gate_action(snapshot, action, facts=facts, now=datetime.now(timezone.utc), note=note)
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=actor, action=action.value, reason=note
        )

    async def disapprove(self, db: AsyncSession, *, analysis_id: Any, reason: str, actor: Any) -> ViralAnalysis:
        analysis, snapshot, _facts = await state_transition_service.snapshot(db=db, analysis_id=analysis_id)
        plan = plan_disapproval(snapshot, reason=reason, now=datetime.now(timezone.utc))
        return await state_transition_service.execute_plan(
            db=db, analysis=analysis, plan=plan, actor=actor, action="analysis_disapproved", reason=reason
        )

    async def bulk_update_stage(
        self,
        db: AsyncSession,
        *,
        analysis_ids: list[Any],
        target: ProductionStage,
        actor: Any,
    ) -> list[dict]:
        """Each analysis moves in its own savepoint; one failure does not undo the others."""
        results: list[dict] = []
        for analysis_id in analysis_ids:
            try:
                async with db.begin_nested():
                    await self.update_stage(db, analysis_id=analysis_id, target=target, actor=actor)
            except WorkflowError as exc:
                results.append({"analysis_id": str(analysis_id), "ok": False, "code": exc.code, "message": exc.message})
                continue
            results.append({"analysis_id": str(analysis_id), "ok": True, "production_stage": target.value})

        logger.info(
            "bulk_stage_update_done",
            target=target.value,
            requested=len(analysis_ids),
            succeeded=sum(1 for item in results if item["ok"]),
        )
        return results


production_service = ProductionService()
