from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.assignment.workload import Candidate
from app.models import AssignmentRole, Profile, ProjectAssignment, ProductionStage, UserRole, ViralAnalysis


class ProfileRepository:
    async def get_by_id(self, db: AsyncSession, profile_id: Any) -> Profile | None:
        row = await db.execute(select(Profile).where(Profile.id == profile_id))
        return row.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Profile | None:
        row = await db.execute(select(Profile).where(func.lower(Profile.email) == email.strip().lower()))
        return row.scalar_one_or_none()

    async def list_profiles(self, db: AsyncSession, *, role: UserRole | None = None) -> list[Profile]:
        stmt = select(Profile)
        if role:
            stmt = stmt.where(Profile.role == role)
        rows = await db.execute(stmt.order_by(Profile.role, Profile.full_name))
        return list(rows.scalars().all())

    async def create_profile(
        self,
        db: AsyncSession,
        *,
        email: str,
        full_name: str | None,
        role: UserRole,
    ) -> Profile:
        profile = Profile(email=email.strip().lower(), full_name=(full_name or "").strip() or None, role=role)
        db.add(profile)
        await db.flush()
        return profile

    async def count_by_role(self, db: AsyncSession) -> dict[UserRole, int]:
        rows = await db.execute(select(Profile.role, func.count(Profile.id)).group_by(Profile.role))
        return {role: int(count) for role, count in rows.all()}

    async def workload_candidates(self, db: AsyncSession, role: AssignmentRole) -> list[Candidate]:
        """Profiles holding `role`, each with its count of assignments on analyses not yet POSTED."""
        active = (
            select(
                ProjectAssignment.user_id.label("user_id"),
                func.count(ProjectAssignment.id).label("active"),
            )
            .join(ViralAnalysis, ViralAnalysis.id == ProjectAssignment.analysis_id)
            .where(
                ProjectAssignment.role == role,
                or_(
                    ViralAnalysis.production_stage.is_(None),
                    ViralAnalysis.production_stage != ProductionStage.POSTED,
                ),
            )
            .group_by(ProjectAssignment.user_id)
            .subquery()
        )
        rows = await db.execute(
            select(Profile.id, Profile.full_name, func.coalesce(active.c.active, 0))
            .outerjoin(active, active.c.user_id == Profile.id)
            .where(Profile.role == role.profile_role)
        )
        return [
            Candidate(user_id=user_id, full_name=full_name, active_assignments=int(count or 0))
            for user_id, full_name, count in rows.all()
        ]


profile_repository = ProfileRepository()
