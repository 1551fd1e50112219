from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import desc, func, nulls_last, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.posting.rules import assert_ready_to_post, plan_mark_posted, validate_posting_details
from app.models import AssignmentRole, ProductionStage, ViralAnalysis
from app.repositories.analysis_repository import PRIORITY_ORDER, analysis_repository
from app.services.assignment_service import assignment_service
from app.services.audit_service import audit_service
from app.services.state_transition_service import state_transition_service

logger = get_logger("services.posting")


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class PostingService:
    async def _ensure_posting_manager(self, db: AsyncSession, *, analysis: ViralAnalysis, manager: Any) -> None:
        existing = await analysis_repository.get_assignment(db, analysis.id, AssignmentRole.POSTING_MANAGER)
        if existing:
            return
        await assignment_service.assign_role(
            db,
            analysis=analysis,
            role=AssignmentRole.POSTING_MANAGER,
            user_id=manager.id,
            actor=manager,
        )
        logger.info("posting_manager_self_assigned", analysis_id=str(analysis.id), user_id=str(manager.id))

    async def set_posting_details(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        manager: Any,
        platform: str | None,
        caption: str | None,
        heading: str | None = None,
        hashtags: list[str] | None = None,
        scheduled_post_time: datetime | None = None,
    ) -> ViralAnalysis:
        details = validate_posting_details(
            platform=platform,
            caption=caption,
            heading=heading,
            hashtags=hashtags,
            scheduled_post_time=scheduled_post_time,
        )
        analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
        assert_ready_to_post(analysis.production_stage)

        for key, value in details.as_columns().items():
            setattr(analysis, key, value)
        await db.flush()
        if not getattr(manager, "is_admin", False):
            await self._ensure_posting_manager(db, analysis=analysis, manager=manager)

        await audit_service.log_action(
            db,
            action="posting_details_set",
            entity_type="viral_analysis",
            entity_id=analysis.id,
            actor=manager,
            details={"platform": details.platform.value, "hashtags": len(details.hashtags)},
        )
        return analysis

    async def schedule_post(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        manager: Any,
        scheduled_post_time: datetime | None,
    ) -> ViralAnalysis:
        analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
        assert_ready_to_post(analysis.production_stage)
        analysis.scheduled_post_time = scheduled_post_time
        await db.flush()
        logger.info(
            "post_scheduled",
            analysis_id=str(analysis.id),
            scheduled_post_time=scheduled_post_time.isoformat() if scheduled_post_time else None,
        )
        return analysis

    async def mark_as_posted(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        manager: Any,
        posted_url: str | None,
        keep_in_queue: bool = False,
    ) -> ViralAnalysis:
        analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
        plan = plan_mark_posted(
            stage=analysis.production_stage,
            posted_urls=list(analysis.posted_urls or []),
            posted_url=posted_url,
            keep_in_queue=keep_in_queue,
            now=datetime.now(timezone.utc),
        )
        return await state_transition_service.execute_plan(
            db=db,
            analysis=analysis,
            plan=plan,
            actor=manager,
            action="posted_keep_in_queue" if keep_in_queue else "posted",
        )

    async def get_ready_to_post(self, db: AsyncSession) -> list[ViralAnalysis]:
        rows = await db.execute(
            analysis_repository.with_relations(select(ViralAnalysis))
            .where(ViralAnalysis.production_stage == ProductionStage.READY_TO_POST)
            .order_by(
                nulls_last(ViralAnalysis.scheduled_post_time.asc()),
                PRIORITY_ORDER.desc(),
                nulls_last(ViralAnalysis.deadline.asc()),
            )
        )
        return list(rows.scalars().all())

    async def get_scheduled_posts(self, db: AsyncSession, *, start: datetime, end: datetime) -> list[ViralAnalysis]:
        rows = await db.execute(
            analysis_repository.with_relations(select(ViralAnalysis))
            .where(
                ViralAnalysis.production_stage == ProductionStage.READY_TO_POST,
                ViralAnalysis.scheduled_post_time >= start,
                ViralAnalysis.scheduled_post_time <= end,
            )
            .order_by(ViralAnalysis.scheduled_post_time.asc())
        )
        return list(rows.scalars().all())

    async def get_posted_projects(self, db: AsyncSession, *, limit: int = 50) -> list[ViralAnalysis]:
        rows = await db.execute(
            analysis_repository.with_relations(select(ViralAnalysis))
            .where(ViralAnalysis.production_stage == ProductionStage.POSTED)
            .order_by(desc(ViralAnalysis.posted_at))
            .limit(max(1, min(limit, 200)))
        )
        return list(rows.scalars().all())

    async def get_stats(self, db: AsyncSession, *, now: datetime | None = None) -> dict[str, int]:
        now = now or datetime.now(timezone.utc)
        today = _start_of_day(now)
        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)

        async def _count(*conditions) -> int:
            row = await db.execute(select(func.count(ViralAnalysis.id)).where(*conditions))
            return int(row.scalar_one() or 0)

        ready = ViralAnalysis.production_stage == ProductionStage.READY_TO_POST
        posted = ViralAnalysis.production_stage == ProductionStage.POSTED
        return {
            "readyToPost": await _count(ready),
            "scheduledToday": await _count(
                ready,
                ViralAnalysis.scheduled_post_time >= today,
                ViralAnalysis.scheduled_post_time < today + timedelta(days=1),
            ),
            "postedThisWeek": await _count(posted, ViralAnalysis.posted_at >= week_start),
            "postedThisMonth": await _count(posted, ViralAnalysis.posted_at >= month_start),
        }


posting_service = PostingService()
