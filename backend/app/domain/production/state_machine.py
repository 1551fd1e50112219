"""
Production stage machine.

Every planner takes a snapshot of the analysis, the requested move and the
supporting facts (file counts, roles already assigned) and returns a
`TransitionPlan`: the field updates to write plus the side effects the caller
must carry out in the same transaction. Illegal moves raise a named
`WorkflowError` before anything is written.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.domain.errors import DuplicateAssignment, MissingPrerequisiteFiles, StageMismatch, ValidationError
from app.domain.production.notes import append_note, append_section
from app.models.analysis import AnalysisStatus, ProductionStage
from app.models.assignment import AssignmentRole

Stage = ProductionStage | None

PRE_SHOOT_STAGES: frozenset[Stage] = frozenset(
    {
        None,
        ProductionStage.PLANNING,
        ProductionStage.NOT_STARTED,
        ProductionStage.PRE_PRODUCTION,
        ProductionStage.PLANNED,
    }
)

STAGE_TRANSITIONS: dict[Stage, set[ProductionStage]] = {
    None: {ProductionStage.PLANNING, ProductionStage.PLANNED, ProductionStage.SHOOTING},
    ProductionStage.PLANNING: {ProductionStage.PLANNED, ProductionStage.SHOOTING},
    ProductionStage.NOT_STARTED: {ProductionStage.PLANNED, ProductionStage.SHOOTING},
    ProductionStage.PRE_PRODUCTION: {ProductionStage.PLANNED, ProductionStage.SHOOTING},
    ProductionStage.PLANNED: {ProductionStage.SHOOTING},
    ProductionStage.SHOOTING: {ProductionStage.SHOOT_REVIEW, ProductionStage.READY_FOR_EDIT, ProductionStage.PLANNED},
    ProductionStage.SHOOT_REVIEW: {
        ProductionStage.EDITING,
        ProductionStage.SHOOTING,
        ProductionStage.READY_FOR_EDIT,
        ProductionStage.PLANNED,
    },
    ProductionStage.READY_FOR_EDIT: {ProductionStage.EDITING, ProductionStage.PLANNED},
    ProductionStage.EDITING: {
        ProductionStage.SHOOT_REVIEW,
        ProductionStage.EDIT_REVIEW,
        ProductionStage.READY_TO_POST,
        ProductionStage.PLANNED,
    },
    ProductionStage.EDIT_REVIEW: {ProductionStage.FINAL_REVIEW, ProductionStage.EDITING, ProductionStage.PLANNED},
    ProductionStage.FINAL_REVIEW: {ProductionStage.READY_TO_POST, ProductionStage.EDITING, ProductionStage.PLANNED},
    ProductionStage.READY_TO_POST: {ProductionStage.POSTED, ProductionStage.PLANNED},
    ProductionStage.POSTED: set(),
}

# (from, to) -> which file family must be present
RAW_FILES_REQUIRED = "raw"
EDITED_FILES_REQUIRED = "edited"
FILE_GATES: dict[tuple[Stage, ProductionStage], str] = {
    (ProductionStage.SHOOTING, ProductionStage.READY_FOR_EDIT): RAW_FILES_REQUIRED,
    (ProductionStage.READY_FOR_EDIT, ProductionStage.EDITING): RAW_FILES_REQUIRED,
    (ProductionStage.EDITING, ProductionStage.READY_TO_POST): EDITED_FILES_REQUIRED,
    (ProductionStage.FINAL_REVIEW, ProductionStage.READY_TO_POST): EDITED_FILES_REQUIRED,
}

EDITOR_NOTES_HEADING = "[Editor Notes]"
VIDEOGRAPHER_NOTES_HEADING = "[Videographer Notes]"
RESHOOT_NOTE = "Reshoot required"
REVISION_NOTE = "Revision needed"


class SideEffectKind(str, enum.Enum):
    INSERT_ASSIGNMENT = "insert_assignment"
    GENERATE_CONTENT_ID = "generate_content_id"


@dataclass(slots=True, frozen=True)
class SideEffect:
    kind: SideEffectKind
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class AnalysisSnapshot:
    status: AnalysisStatus
    stage: Stage
    production_notes: str | None = None
    content_id: str | None = None
    is_dissolved: bool = False
    disapproval_count: int = 0
    production_started_at: datetime | None = None

    @classmethod
    def of(cls, analysis: Any) -> "AnalysisSnapshot":
        return cls(
            status=analysis.status,
            stage=analysis.production_stage,
            production_notes=analysis.production_notes,
            content_id=getattr(analysis, "content_id", None),
            is_dissolved=bool(getattr(analysis, "is_dissolved", False)),
            disapproval_count=int(getattr(analysis, "disapproval_count", 0) or 0),
            production_started_at=getattr(analysis, "production_started_at", None),
        )


@dataclass(slots=True, frozen=True)
class TransitionFacts:
    raw_file_count: int = 0
    edited_file_count: int = 0
    assigned_roles: frozenset[AssignmentRole] = frozenset()
    posted_url: str | None = None


@dataclass(slots=True)
class TransitionPlan:
    from_stage: Stage
    to_stage: Stage
    updates: dict[str, Any] = field(default_factory=dict)
    effects: list[SideEffect] = field(default_factory=list)

    def effects_of(self, kind: SideEffectKind) -> list[SideEffect]:
        return [effect for effect in self.effects if effect.kind == kind]


@dataclass(slots=True)
class TransitionValidationResult:
    valid: bool
    from_state: Stage
    to_state: ProductionStage
    allowed_targets: list[ProductionStage]


class GateAction(str, enum.Enum):
    REQUEST_SHOOT_REVIEW = "request_shoot_review"
    REQUEST_EDIT_REVIEW = "request_edit_review"
    APPROVE_SHOOT = "approve_shoot"
    REQUEST_RESHOOT = "request_reshoot"
    APPROVE_EDIT = "approve_edit"
    REQUEST_REVISION = "request_revision"
    APPROVE_FINAL = "approve_final"


# action -> (stages it may start from, target stage, note appended to production_notes)
GATE_ACTIONS: dict[GateAction, tuple[frozenset[ProductionStage], ProductionStage, str | None]] = {
    GateAction.REQUEST_SHOOT_REVIEW: (
        frozenset({ProductionStage.SHOOTING, ProductionStage.EDITING}),
        ProductionStage.SHOOT_REVIEW,
        None,
    ),
    GateAction.REQUEST_EDIT_REVIEW: (frozenset({ProductionStage.EDITING}), ProductionStage.EDIT_REVIEW, None),
    GateAction.APPROVE_SHOOT: (frozenset({ProductionStage.SHOOT_REVIEW}), ProductionStage.EDITING, None),
    GateAction.REQUEST_RESHOOT: (frozenset({ProductionStage.SHOOT_REVIEW}), ProductionStage.SHOOTING, RESHOOT_NOTE),
    GateAction.APPROVE_EDIT: (frozenset({ProductionStage.EDIT_REVIEW}), ProductionStage.FINAL_REVIEW, None),
    GateAction.REQUEST_REVISION: (
        frozenset({ProductionStage.EDIT_REVIEW, ProductionStage.FINAL_REVIEW}),
        ProductionStage.EDITING,
        REVISION_NOTE,
    ),
    GateAction.APPROVE_FINAL: (frozenset({ProductionStage.FINAL_REVIEW}), ProductionStage.READY_TO_POST, None),
}


def _stage_value(stage: Stage) -> str | None:
    return stage.value if stage else None


def allowed_targets(from_state: Stage) -> set[ProductionStage]:
    return set(STAGE_TRANSITIONS.get(from_state, set()))


def can_transition(from_state: Stage, to_state: ProductionStage) -> bool:
    if from_state == to_state:
        return True
    return to_state in allowed_targets(from_state)


def validate_transition(from_state: Stage, to_state: ProductionStage) -> TransitionValidationResult:
    targets = sorted(allowed_targets(from_state), key=lambda item: item.value)
    return TransitionValidationResult(
        valid=can_transition(from_state, to_state),
        from_state=from_state,
        to_state=to_state,
        allowed_targets=targets,
    )


def validate_path(states: Iterable[Stage]) -> bool:
    sequence = list(states)
    if len(sequence) <= 1:
        return True
    return all(can_transition(sequence[idx], sequence[idx + 1]) for idx in range(0, len(sequence) - 1))


def assert_transition(from_state: Stage, to_state: ProductionStage) -> None:
    result = validate_transition(from_state, to_state)
    if result.valid:
        return
    raise StageMismatch(
        f"Cannot move from {_stage_value(from_state) or 'no stage'} to {to_state.value}",
        code="invalid_stage_transition",
        details={
            "from_state": _stage_value(from_state),
            "to_state": to_state.value,
            "allowed_targets": [item.value for item in result.allowed_targets],
        },
    )


def _assert_in_production(snapshot: AnalysisSnapshot) -> None:
    if snapshot.status != AnalysisStatus.APPROVED:
        raise StageMismatch(
            "Analysis must be approved before production",
            details={"status": snapshot.status.value if snapshot.status else None},
        )


def _assert_file_gate(from_state: Stage, to_state: ProductionStage, facts: TransitionFacts) -> None:
    gate = FILE_GATES.get((from_state, to_state))
    if gate == RAW_FILES_REQUIRED and facts.raw_file_count < 1:
        raise MissingPrerequisiteFiles("This project has no raw footage files")
    if gate == EDITED_FILES_REQUIRED and facts.edited_file_count < 1:
        raise MissingPrerequisiteFiles("Please upload at least one edited video before marking as complete")


def _stage_timestamps(snapshot: AnalysisSnapshot, to_state: ProductionStage, now: datetime) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if to_state == ProductionStage.SHOOTING and snapshot.production_started_at is None:
        updates["production_started_at"] = now
    if to_state == ProductionStage.POSTED:
        updates["production_completed_at"] = now
    return updates


def plan_stage_change(
    snapshot: AnalysisSnapshot,
    target: ProductionStage,
    *,
    facts: TransitionFacts,
    now: datetime,
    production_notes: str | None = None,
    planned_date: datetime | None = None,
) -> TransitionPlan:
    """Admin-driven move along the table. File gates still apply; POSTED needs a posted URL."""
    _assert_in_production(snapshot)
    assert_transition(snapshot.stage, target)
    _assert_file_gate(snapshot.stage, target, facts)
    if target == ProductionStage.POSTED and not (facts.posted_url or "").strip():
        raise ValidationError("Posted URL is required")

    updates: dict[str, Any] = {"production_stage": target}
    updates.update(_stage_timestamps(snapshot, target, now))
    if target == ProductionStage.PLANNED:
        updates["planned_date"] = planned_date or now
    if production_notes is not None:
        updates["production_notes"] = production_notes
    return TransitionPlan(from_stage=snapshot.stage, to_stage=target, updates=updates)


def plan_gate_action(
    snapshot: AnalysisSnapshot,
    action: GateAction,
    *,
    facts: TransitionFacts,
    now: datetime,
    note: str | None = None,
) -> TransitionPlan:
    """Review-gate moves (request review, approve, reshoot, revision)."""
    _assert_in_production(snapshot)
    sources, target, default_note = GATE_ACTIONS[action]
    if snapshot.stage not in sources:
        raise StageMismatch(
            f"Cannot {action.value.replace('_', ' ')} from {_stage_value(snapshot.stage) or 'no stage'}",
            details={"from_state": _stage_value(snapshot.stage), "allowed_from": sorted(s.value for s in sources)},
        )
    assert_transition(snapshot.stage, target)
    _assert_file_gate(snapshot.stage, target, facts)

    updates: dict[str, Any] = {"production_stage": target}
    updates.update(_stage_timestamps(snapshot, target, now))
    text = (note or "").strip() or default_note
    if text:
        updates["production_notes"] = append_note(snapshot.production_notes, text)
    return TransitionPlan(from_stage=snapshot.stage, to_stage=target, updates=updates)


def plan_editor_pick(snapshot: AnalysisSnapshot, facts: TransitionFacts, *, editor_id: Any) -> TransitionPlan:
    if snapshot.status != AnalysisStatus.APPROVED or snapshot.stage != ProductionStage.READY_FOR_EDIT:
        raise StageMismatch("This project is no longer available for editing")
    if AssignmentRole.EDITOR in facts.assigned_roles:
        raise DuplicateAssignment("This project has already been picked by another editor")
    if facts.raw_file_count < 1:
        raise MissingPrerequisiteFiles("This project has no raw footage files")

    return TransitionPlan(
        from_stage=snapshot.stage,
        to_stage=ProductionStage.EDITING,
        updates={"production_stage": ProductionStage.EDITING},
        effects=[SideEffect(SideEffectKind.INSERT_ASSIGNMENT, {"role": AssignmentRole.EDITOR, "user_id": editor_id})],
    )


def plan_editing_complete(
    snapshot: AnalysisSnapshot,
    facts: TransitionFacts,
    *,
    production_notes: str | None = None,
) -> TransitionPlan:
    if snapshot.stage != ProductionStage.EDITING:
        raise StageMismatch("This project is not currently in editing")
    if facts.edited_file_count < 1:
        raise MissingPrerequisiteFiles("Please upload at least one edited video before marking as complete")

    updates: dict[str, Any] = {"production_stage": ProductionStage.READY_TO_POST}
    if production_notes and production_notes.strip():
        updates["production_notes"] = append_section(
            snapshot.production_notes, EDITOR_NOTES_HEADING, production_notes
        )
    return TransitionPlan(from_stage=snapshot.stage, to_stage=ProductionStage.READY_TO_POST, updates=updates)


def plan_videographer_pick(
    snapshot: AnalysisSnapshot,
    facts: TransitionFacts,
    *,
    videographer_id: Any,
    now: datetime,
    profile_id: int | None = None,
    deadline: datetime | None = None,
) -> TransitionPlan:
    if snapshot.status != AnalysisStatus.APPROVED or snapshot.stage not in PRE_SHOOT_STAGES:
        raise StageMismatch("This project is no longer available")
    if AssignmentRole.VIDEOGRAPHER in facts.assigned_roles:
        raise DuplicateAssignment("This project has already been picked")

    updates: dict[str, Any] = {"production_stage": ProductionStage.SHOOTING}
    updates.update(_stage_timestamps(snapshot, ProductionStage.SHOOTING, now))
    effects = [
        SideEffect(SideEffectKind.INSERT_ASSIGNMENT, {"role": AssignmentRole.VIDEOGRAPHER, "user_id": videographer_id})
    ]
    if profile_id is not None:
        updates["profile_id"] = profile_id
        if not snapshot.content_id:
            effects.append(SideEffect(SideEffectKind.GENERATE_CONTENT_ID, {"profile_id": profile_id}))
    if deadline is not None:
        updates["deadline"] = deadline
    return TransitionPlan(
        from_stage=snapshot.stage,
        to_stage=ProductionStage.SHOOTING,
        updates=updates,
        effects=effects,
    )


def plan_shooting_complete(
    snapshot: AnalysisSnapshot,
    facts: TransitionFacts,
    *,
    production_notes: str | None = None,
) -> TransitionPlan:
    if snapshot.stage != ProductionStage.SHOOTING:
        raise StageMismatch("This project is not currently being shot")
    if facts.raw_file_count < 1:
        raise MissingPrerequisiteFiles("Please upload at least one file before marking as complete")

    updates: dict[str, Any] = {"production_stage": ProductionStage.READY_FOR_EDIT}
    if production_notes and production_notes.strip():
        updates["production_notes"] = append_section(
            snapshot.production_notes, VIDEOGRAPHER_NOTES_HEADING, production_notes
        )
    return TransitionPlan(from_stage=snapshot.stage, to_stage=ProductionStage.READY_FOR_EDIT, updates=updates)


def plan_disapproval(snapshot: AnalysisSnapshot, *, reason: str, now: datetime) -> TransitionPlan:
    """Send an approved analysis back to PENDING before shooting has started."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A reason is required to send an analysis back")
    if snapshot.status != AnalysisStatus.APPROVED:
        raise StageMismatch("Only approved analyses can be sent back")
    if snapshot.stage not in PRE_SHOOT_STAGES:
        raise StageMismatch(
            "Production has already started for this analysis",
            details={"from_state": _stage_value(snapshot.stage)},
        )

    stamp = now.strftime("%Y-%m-%d %H:%M UTC")
    return TransitionPlan(
        from_stage=snapshot.stage,
        to_stage=None,
        updates={
            "status": AnalysisStatus.PENDING,
            "production_stage": None,
            "disapproval_count": snapshot.disapproval_count + 1,
            "last_disapproved_at": now,
            "disapproval_reason": cleaned,
            "production_notes": append_note(snapshot.production_notes, f"DISAPPROVED on {stamp}\nReason: {cleaned}"),
        },
    )


def apply_plan(target: Any, plan: TransitionPlan) -> None:
    for key, value in plan.updates.items():
        setattr(target, key, value)
