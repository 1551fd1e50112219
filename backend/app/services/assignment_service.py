from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.assignment.workload import pick_lowest_workload
from app.domain.errors import DuplicateAssignment, NotFound, StageMismatch, ValidationError
from app.models import (
    SHOOT_POSSIBILITY_VALUES,
    AnalysisStatus,
    AssignmentRole,
    ProductionStage,
    ProjectAssignment,
    ViralAnalysis,
)
from app.repositories.analysis_repository import analysis_repository
from app.repositories.profile_repository import profile_repository
from app.services.audit_service import audit_service
from app.services.content_id_service import content_id_service
from app.services.state_transition_service import state_transition_service

logger = get_logger("services.assignment")


@dataclass(slots=True)
class RoleSelection:
    role: AssignmentRole
    user_id: Any = None
    auto: bool = False


# role -> (explicit user field, auto-assign flag field) on the assign-team form
TEAM_ROLE_FIELDS = (
    (AssignmentRole.VIDEOGRAPHER, "videographer_id", "auto_assign_videographer"),
    (AssignmentRole.EDITOR, "editor_id", "auto_assign_editor"),
    (AssignmentRole.POSTING_MANAGER, "posting_manager_id", "auto_assign_posting_manager"),
)


@dataclass(slots=True)
class TeamAssignment:
    selections: list[RoleSelection] = field(default_factory=list)
    industry_id: int | None = None
    profile_id: int | None = None
    hook_tag_ids: list[int] | None = None
    character_tag_ids: list[int] | None = None
    total_people_involved: int | None = None
    shoot_possibility: int | None = None
    admin_remarks: str | None = None

    @classmethod
    def from_form(cls, values: dict[str, Any]) -> "TeamAssignment":
        """Build from the flat form: `<role>_id` wins over `auto_assign_<role>`; roles with neither are skipped."""
        selections = [
            RoleSelection(role=role, user_id=values.get(id_field), auto=bool(values.get(auto_field)))
            for role, id_field, auto_field in TEAM_ROLE_FIELDS
            if values.get(id_field) is not None or values.get(auto_field)
        ]
        return cls(
            selections=selections,
            industry_id=values.get("industry_id"),
            profile_id=values.get("profile_id"),
            hook_tag_ids=values.get("hook_tag_ids"),
            character_tag_ids=values.get("character_tag_ids"),
            total_people_involved=values.get("total_people_involved"),
            shoot_possibility=values.get("shoot_possibility"),
            admin_remarks=values.get("admin_remarks"),
        )


class AssignmentService:
    async def resolve_auto_assignee(self, db: AsyncSession, role: AssignmentRole) -> Any:
        candidate = pick_lowest_workload(await profile_repository.workload_candidates(db, role))
        if candidate is None:
            raise ValidationError(
                f"No team member with role {role.value} is available for auto-assignment",
                code="no_assignee_available",
            )
        logger.info(
            "auto_assignee_selected",
            role=role.value,
            user_id=str(candidate.user_id),
            active_assignments=candidate.active_assignments,
        )
        return candidate.user_id

    async def _assert_holder_role(self, db: AsyncSession, user_id: Any, role: AssignmentRole) -> None:
        profile = await profile_repository.get_by_id(db, user_id)
        if not profile:
            raise NotFound("Team member not found", details={"user_id": str(user_id)})
        if profile.role != role.profile_role:
            raise ValidationError(
                f"User does not have the {role.value} role",
                details={"user_id": str(user_id), "role": profile.role.value if profile.role else None},
            )

    async def assign_role(
        self,
        db: AsyncSession,
        *,
        analysis: ViralAnalysis,
        role: AssignmentRole,
        user_id: Any,
        actor: Any,
        existing: ProjectAssignment | None = None,
    ) -> ProjectAssignment | None:
        """Place `user_id` in `role`. Same holder is a no-op; a different holder is replaced."""
        if existing and existing.user_id == user_id:
            return existing
        await self._assert_holder_role(db, user_id, role)
        if existing:
            await analysis_repository.delete_assignment(db, existing)
        try:
            return await analysis_repository.create_assignment(
                db,
                analysis_id=analysis.id,
                user_id=user_id,
                role=role,
                assigned_by=getattr(actor, "id", None),
            )
        except IntegrityError as exc:
            raise DuplicateAssignment(f"The {role.value} role is already filled for this project") from exc

    async def assign_team(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        team: TeamAssignment,
        actor: Any,
    ) -> tuple[ViralAnalysis, dict[str, str]]:
        analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
        if analysis.status != AnalysisStatus.APPROVED or analysis.is_dissolved:
            raise StageMismatch("Only approved analyses can be assigned a team")
        if analysis.production_stage == ProductionStage.POSTED:
            raise StageMismatch("This project has already been posted")
        if team.shoot_possibility is not None and team.shoot_possibility not in SHOOT_POSSIBILITY_VALUES:
            raise ValidationError(
                "Shoot possibility must be one of 25, 50, 75 or 100",
                details={"shoot_possibility": team.shoot_possibility},
            )

        existing = {item.role: item for item in await analysis_repository.list_assignments(db, analysis.id)}
        assigned: dict[str, str] = {}
        for selection in team.selections:
            user_id = selection.user_id
            if user_id is None and selection.auto:
                user_id = await self.resolve_auto_assignee(db, selection.role)
            if user_id is None:
                continue
            await self.assign_role(
                db,
                analysis=analysis,
                role=selection.role,
                user_id=user_id,
                actor=actor,
                existing=existing.get(selection.role),
            )
            assigned[selection.role.value] = str(user_id)

        details = {
            "industry_id": team.industry_id,
            "profile_id": team.profile_id,
            "total_people_involved": team.total_people_involved,
            "shoot_possibility": team.shoot_possibility,
            "admin_remarks": (team.admin_remarks or "").strip() or None,
        }
        for key, value in details.items():
            if value is not None:
                setattr(analysis, key, value)
        await analysis_repository.replace_tag_links(
            db,
            analysis.id,
            hook_tag_ids=team.hook_tag_ids,
            character_tag_ids=team.character_tag_ids,
        )
        await db.flush()

        if team.profile_id is not None and not analysis.content_id:
            await content_id_service.generate(db, analysis=analysis, profile_id=team.profile_id)

        await audit_service.log_action(
            db,
            action="team_assigned",
            entity_type="viral_analysis",
            entity_id=analysis.id,
            actor=actor,
            details={"assigned": assigned},
        )
        logger.info("team_assigned", analysis_id=str(analysis.id), assigned=assigned)
        return analysis, assigned


assignment_service = AssignmentService()
