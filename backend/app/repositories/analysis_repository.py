from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import and_, case, delete, desc, exists, false, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import (
    EDITED_FILE_TYPES,
    PRIORITY_RANK,
    RAW_FILE_TYPES,
    AnalysisStatus,
    AssignmentRole,
    FileType,
    ProductionFile,
    ProductionStage,
    ProjectAssignment,
    ProjectSkip,
    ViralAnalysis,
    analysis_character_tags,
    analysis_hook_tags,
)

PRIORITY_ORDER = case(
    *[(ViralAnalysis.priority == priority, rank) for priority, rank in PRIORITY_RANK.items()],
    else_=0,
)


def _live_files_exist(file_types: Iterable[FileType]):
    return exists().where(
        ProductionFile.analysis_id == ViralAnalysis.id,
        ProductionFile.is_deleted.is_(False),
        ProductionFile.file_type.in_(list(file_types)),
    )


def _role_taken(role: AssignmentRole):
    return exists().where(
        ProjectAssignment.analysis_id == ViralAnalysis.id,
        ProjectAssignment.role == role,
    )


def _skipped_by(user_id: Any, role: AssignmentRole):
    return exists().where(
        ProjectSkip.analysis_id == ViralAnalysis.id,
        ProjectSkip.user_id == user_id,
        ProjectSkip.role == role,
    )


class AnalysisRepository:
    def with_relations(self, stmt):
        return stmt.options(
            selectinload(ViralAnalysis.assignments).selectinload(ProjectAssignment.user),
            selectinload(ViralAnalysis.hook_tags),
            selectinload(ViralAnalysis.character_tags),
            selectinload(ViralAnalysis.writer),
        )

    async def get_analysis(self, db: AsyncSession, analysis_id: Any) -> ViralAnalysis | None:
        row = await db.execute(
            self.with_relations(select(ViralAnalysis))
            .where(ViralAnalysis.id == analysis_id)
            .execution_options(populate_existing=True)
        )
        return row.scalar_one_or_none()

    async def list_analyses(
        self,
        db: AsyncSession,
        *,
        status: AnalysisStatus | None = None,
        stages: Iterable[ProductionStage | None] | None = None,
        user_id: Any = None,
        limit: int = 100,
    ) -> list[ViralAnalysis]:
        stmt = self.with_relations(select(ViralAnalysis))
        if status:
            stmt = stmt.where(ViralAnalysis.status == status)
        if stages is not None:
            stage_list = list(stages)
            named = [stage for stage in stage_list if stage is not None]
            clauses = [ViralAnalysis.production_stage.in_(named)] if named else []
            if None in stage_list:
                clauses.append(ViralAnalysis.production_stage.is_(None))
            stmt = stmt.where(or_(*clauses)) if clauses else stmt.where(false())
        if user_id is not None:
            stmt = stmt.where(ViralAnalysis.user_id == user_id)
        stmt = stmt.order_by(desc(ViralAnalysis.created_at)).limit(max(1, min(limit, 500)))
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def count_live_files(self, db: AsyncSession, analysis_id: Any, file_types: Iterable[FileType]) -> int:
        row = await db.execute(
            select(func.count(ProductionFile.id)).where(
                ProductionFile.analysis_id == analysis_id,
                ProductionFile.is_deleted.is_(False),
                ProductionFile.file_type.in_(list(file_types)),
            )
        )
        return int(row.scalar_one() or 0)

    async def count_raw_files(self, db: AsyncSession, analysis_id: Any) -> int:
        return await self.count_live_files(db, analysis_id, RAW_FILE_TYPES)

    async def count_edited_files(self, db: AsyncSession, analysis_id: Any) -> int:
        return await self.count_live_files(db, analysis_id, EDITED_FILE_TYPES)

    async def list_assignments(self, db: AsyncSession, analysis_id: Any) -> list[ProjectAssignment]:
        rows = await db.execute(select(ProjectAssignment).where(ProjectAssignment.analysis_id == analysis_id))
        return list(rows.scalars().all())

    async def get_assignment(
        self, db: AsyncSession, analysis_id: Any, role: AssignmentRole
    ) -> ProjectAssignment | None:
        row = await db.execute(
            select(ProjectAssignment).where(
                ProjectAssignment.analysis_id == analysis_id,
                ProjectAssignment.role == role,
            )
        )
        return row.scalar_one_or_none()

    async def create_assignment(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        user_id: Any,
        role: AssignmentRole,
        assigned_by: Any = None,
    ) -> ProjectAssignment:
        """Insert inside a savepoint so a unique violation leaves the outer transaction usable."""
        assignment = ProjectAssignment(
            analysis_id=analysis_id,
            user_id=user_id,
            role=role,
            assigned_by=assigned_by,
        )
        async with db.begin_nested():
            db.add(assignment)
            await db.flush()
        return assignment

    async def delete_assignment(self, db: AsyncSession, assignment: ProjectAssignment) -> None:
        await db.delete(assignment)
        await db.flush()

    async def replace_tag_links(
        self,
        db: AsyncSession,
        analysis_id: Any,
        *,
        hook_tag_ids: Iterable[int] | None = None,
        character_tag_ids: Iterable[int] | None = None,
    ) -> None:
        if hook_tag_ids is not None:
            await db.execute(delete(analysis_hook_tags).where(analysis_hook_tags.c.analysis_id == analysis_id))
            ids = sorted(set(hook_tag_ids))
            if ids:
                await db.execute(
                    insert(analysis_hook_tags),
                    [{"analysis_id": analysis_id, "hook_tag_id": tag_id} for tag_id in ids],
                )
        if character_tag_ids is not None:
            await db.execute(
                delete(analysis_character_tags).where(analysis_character_tags.c.analysis_id == analysis_id)
            )
            ids = sorted(set(character_tag_ids))
            if ids:
                await db.execute(
                    insert(analysis_character_tags),
                    [{"analysis_id": analysis_id, "character_tag_id": tag_id} for tag_id in ids],
                )

    async def list_available_for_editor(self, db: AsyncSession, editor_id: Any) -> list[ViralAnalysis]:
        stmt = (
            self.with_relations(select(ViralAnalysis))
            .where(
                ViralAnalysis.status == AnalysisStatus.APPROVED,
                ViralAnalysis.production_stage == ProductionStage.READY_FOR_EDIT,
                ViralAnalysis.is_dissolved.is_(False),
                _live_files_exist(RAW_FILE_TYPES),
                ~_role_taken(AssignmentRole.EDITOR),
                ~_skipped_by(editor_id, AssignmentRole.EDITOR),
            )
            .order_by(PRIORITY_ORDER.desc(), ViralAnalysis.created_at.asc())
        )
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def list_available_for_videographer(self, db: AsyncSession, videographer_id: Any) -> list[ViralAnalysis]:
        pre_shoot = [
            ProductionStage.PLANNING,
            ProductionStage.NOT_STARTED,
            ProductionStage.PRE_PRODUCTION,
            ProductionStage.PLANNED,
        ]
        stmt = (
            self.with_relations(select(ViralAnalysis))
            .where(
                ViralAnalysis.status == AnalysisStatus.APPROVED,
                or_(ViralAnalysis.production_stage.is_(None), ViralAnalysis.production_stage.in_(pre_shoot)),
                ViralAnalysis.is_dissolved.is_(False),
                ~_role_taken(AssignmentRole.VIDEOGRAPHER),
                ~_skipped_by(videographer_id, AssignmentRole.VIDEOGRAPHER),
            )
            .order_by(PRIORITY_ORDER.desc(), ViralAnalysis.created_at.asc())
        )
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def list_assigned_to(
        self,
        db: AsyncSession,
        *,
        user_id: Any,
        role: AssignmentRole,
        stages: Iterable[ProductionStage] | None = None,
    ) -> list[ViralAnalysis]:
        stmt = (
            self.with_relations(select(ViralAnalysis))
            .join(
                ProjectAssignment,
                and_(ProjectAssignment.analysis_id == ViralAnalysis.id, ProjectAssignment.role == role),
            )
            .where(ProjectAssignment.user_id == user_id)
        )
        if stages is not None:
            stmt = stmt.where(ViralAnalysis.production_stage.in_(list(stages)))
        stmt = stmt.order_by(desc(ViralAnalysis.updated_at))
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def count_assigned_to(
        self,
        db: AsyncSession,
        *,
        user_id: Any,
        role: AssignmentRole,
        stages: Iterable[ProductionStage] | None = None,
    ) -> int:
        stmt = (
            select(func.count(ProjectAssignment.id))
            .join(ViralAnalysis, ViralAnalysis.id == ProjectAssignment.analysis_id)
            .where(ProjectAssignment.user_id == user_id, ProjectAssignment.role == role)
        )
        if stages is not None:
            stmt = stmt.where(ViralAnalysis.production_stage.in_(list(stages)))
        row = await db.execute(stmt)
        return int(row.scalar_one() or 0)

    # -- skips --

    async def get_skip(self, db: AsyncSession, *, analysis_id: Any, user_id: Any, role: AssignmentRole):
        row = await db.execute(
            select(ProjectSkip).where(
                ProjectSkip.analysis_id == analysis_id,
                ProjectSkip.user_id == user_id,
                ProjectSkip.role == role,
            )
        )
        return row.scalar_one_or_none()

    async def add_skip(self, db: AsyncSession, *, analysis_id: Any, user_id: Any, role: AssignmentRole) -> ProjectSkip:
        existing = await self.get_skip(db, analysis_id=analysis_id, user_id=user_id, role=role)
        if existing:
            return existing
        skip = ProjectSkip(analysis_id=analysis_id, user_id=user_id, role=role)
        db.add(skip)
        await db.flush()
        return skip

    async def remove_skip(self, db: AsyncSession, *, analysis_id: Any, user_id: Any, role: AssignmentRole) -> bool:
        result = await db.execute(
            delete(ProjectSkip).where(
                ProjectSkip.analysis_id == analysis_id,
                ProjectSkip.user_id == user_id,
                ProjectSkip.role == role,
            )
        )
        return bool(result.rowcount)

    async def list_skips(
        self,
        db: AsyncSession,
        *,
        user_id: Any = None,
        role: AssignmentRole | None = None,
        limit: int = 200,
    ) -> list[ProjectSkip]:
        stmt = select(ProjectSkip)
        if user_id is not None:
            stmt = stmt.where(ProjectSkip.user_id == user_id)
        if role is not None:
            stmt = stmt.where(ProjectSkip.role == role)
        stmt = stmt.order_by(desc(ProjectSkip.skipped_at)).limit(max(1, min(limit, 1000)))
        rows = await db.execute(stmt)
        return list(rows.scalars().all())

    async def delete_skip_by_id(self, db: AsyncSession, skip_id: int) -> bool:
        result = await db.execute(delete(ProjectSkip).where(ProjectSkip.id == skip_id))
        return bool(result.rowcount)


analysis_repository = AnalysisRepository()
