"""
VCA Production Workflow - Analytics
===================================
Queue buckets, dashboard counters, team breakdown and the review analytics
shown on the admin overview.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models import AnalysisStatus, ProductionStage, Profile, UserRole, ViralAnalysis
from app.repositories.profile_repository import profile_repository

logger = get_logger("services.analytics")

STAGE_BUCKETS: dict[str, tuple[ProductionStage | None, ...]] = {
    "planning": (
        None,
        ProductionStage.PLANNING,
        ProductionStage.NOT_STARTED,
        ProductionStage.PRE_PRODUCTION,
        ProductionStage.PLANNED,
    ),
    "shooting": (ProductionStage.SHOOTING,),
    "readyForEdit": (ProductionStage.READY_FOR_EDIT, ProductionStage.SHOOT_REVIEW),
    "editing": (ProductionStage.EDITING,),
    "readyToPost": (
        ProductionStage.READY_TO_POST,
        ProductionStage.EDIT_REVIEW,
        ProductionStage.FINAL_REVIEW,
    ),
    "posted": (ProductionStage.POSTED,),
}

TOP_WRITERS_LIMIT = 5


def stage_bucket(stage: ProductionStage | None) -> str:
    for bucket, stages in STAGE_BUCKETS.items():
        if stage in stages:
            return bucket
    raise ValueError(f"Unknown production stage: {stage!r}")


def bucket_stages(bucket: str) -> tuple[ProductionStage | None, ...] | None:
    return STAGE_BUCKETS.get(bucket)


def _week_start(now: datetime) -> datetime:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return today - timedelta(days=today.weekday())


class AnalyticsService:
    async def stage_distribution(self, db: AsyncSession) -> dict[str, int]:
        rows = await db.execute(
            select(ViralAnalysis.production_stage, func.count(ViralAnalysis.id))
            .where(ViralAnalysis.status == AnalysisStatus.APPROVED)
            .group_by(ViralAnalysis.production_stage)
        )
        distribution: dict[str, int] = {}
        for stage, count in rows.all():
            key = stage.value if stage else "UNASSIGNED"
            distribution[key] = int(count or 0)
        return distribution

    async def get_queue_stats(self, db: AsyncSession) -> dict[str, int]:
        stats = {bucket: 0 for bucket in STAGE_BUCKETS}
        for stage_name, count in (await self.stage_distribution(db)).items():
            stage = None if stage_name == "UNASSIGNED" else ProductionStage(stage_name)
            stats[stage_bucket(stage)] += count
        stats["totalActive"] = sum(value for key, value in stats.items() if key != "posted")
        return stats

    async def get_dashboard_stats(self, db: AsyncSession) -> dict[str, int]:
        rows = await db.execute(
            select(ViralAnalysis.status, func.count(ViralAnalysis.id)).group_by(ViralAnalysis.status)
        )
        by_status = {status.value: int(count or 0) for status, count in rows.all()}
        dissolved = await db.execute(
            select(func.count(ViralAnalysis.id)).where(ViralAnalysis.is_dissolved.is_(True))
        )
        return {
            "total": sum(by_status.values()),
            "pending": by_status.get(AnalysisStatus.PENDING.value, 0),
            "approved": by_status.get(AnalysisStatus.APPROVED.value, 0),
            "rejected": by_status.get(AnalysisStatus.REJECTED.value, 0),
            "dissolved": int(dissolved.scalar() or 0),
        }

    async def get_team_stats(self, db: AsyncSession) -> dict[str, int]:
        counts = await profile_repository.count_by_role(db)
        stats = {role.value: counts.get(role, 0) for role in UserRole}
        stats["total"] = sum(stats.values())
        return stats

    async def get_analytics(self, db: AsyncSession, *, now: datetime | None = None) -> dict:
        now = now or datetime.now(timezone.utc)
        this_week = _week_start(now)
        last_week = this_week - timedelta(days=7)

        this_week_count = await db.execute(
            select(func.count(ViralAnalysis.id)).where(ViralAnalysis.created_at >= this_week)
        )
        last_week_count = await db.execute(
            select(func.count(ViralAnalysis.id)).where(
                and_(ViralAnalysis.created_at >= last_week, ViralAnalysis.created_at < this_week)
            )
        )

        reviewed = await db.execute(
            select(ViralAnalysis.status, func.count(ViralAnalysis.id))
            .where(ViralAnalysis.status.in_([AnalysisStatus.APPROVED, AnalysisStatus.REJECTED]))
            .group_by(ViralAnalysis.status)
        )
        reviewed_counts = {status: int(count or 0) for status, count in reviewed.all()}
        approved = reviewed_counts.get(AnalysisStatus.APPROVED, 0)
        total_reviewed = approved + reviewed_counts.get(AnalysisStatus.REJECTED, 0)
        approval_rate = round(approved * 100 / total_reviewed, 1) if total_reviewed else 0.0

        avg_seconds = await db.execute(
            select(func.avg(func.extract("epoch", ViralAnalysis.reviewed_at - ViralAnalysis.created_at))).where(
                ViralAnalysis.status == AnalysisStatus.APPROVED,
                ViralAnalysis.reviewed_at.isnot(None),
            )
        )
        seconds = avg_seconds.scalar()
        avg_hours = round(float(seconds) / 3600, 1) if seconds is not None else None

        approved_count = func.count(ViralAnalysis.id).label("approved")
        top = await db.execute(
            select(Profile.id, Profile.full_name, Profile.email, approved_count)
            .join(ViralAnalysis, ViralAnalysis.user_id == Profile.id)
            .where(ViralAnalysis.status == AnalysisStatus.APPROVED)
            .group_by(Profile.id, Profile.full_name, Profile.email)
            .order_by(desc(approved_count), Profile.full_name)
            .limit(TOP_WRITERS_LIMIT)
        )
        top_writers = [
            {"id": str(row.id), "full_name": row.full_name, "email": row.email, "approved": int(row.approved)}
            for row in top.all()
        ]

        result = {
            "scriptsThisWeek": int(this_week_count.scalar() or 0),
            "scriptsLastWeek": int(last_week_count.scalar() or 0),
            "approvalRate": approval_rate,
            "avgHoursToApproval": avg_hours,
            "topWriters": top_writers,
            "stageDistribution": await self.stage_distribution(db),
        }
        logger.debug("analytics_computed", approval_rate=approval_rate, reviewed=total_reviewed)
        return result


analytics_service = AnalyticsService()
