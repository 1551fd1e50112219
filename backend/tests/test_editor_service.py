from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from app.domain.errors import DuplicateAssignment, MissingPrerequisiteFiles, PermissionDenied, StageMismatch
from app.models import AssignmentRole, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.services.editor_service import editor_service
from app.services.state_transition_service import state_transition_service
from conftest import make_analysis, make_user


def _wire(monkeypatch, analysis, *, raw=1, edited=0, assignments=(), insert_error=None):
    created: list[dict] = []

    async def _lock(*, db, analysis_id, lock_nowait=True):
        return analysis

    async def _count_raw(_db, _analysis_id):
        return raw

    async def _count_edited(_db, _analysis_id):
        return edited

    async def _list_assignments(_db, _analysis_id):
        return list(assignments)

    async def _get_assignment(_db, _analysis_id, role):
        return next((item for item in assignments if item.role == role), None)

    async def _create_assignment(_db, **kwargs):
        if insert_error is not None:
            raise insert_error
        created.append(kwargs)
        return SimpleNamespace(**kwargs)

    monkeypatch.setattr(state_transition_service, "lock_analysis", _lock)
    monkeypatch.setattr(analysis_repository, "count_raw_files", _count_raw)
    monkeypatch.setattr(analysis_repository, "count_edited_files", _count_edited)
    monkeypatch.setattr(analysis_repository, "list_assignments", _list_assignments)
    monkeypatch.setattr(analysis_repository, "get_assignment", _get_assignment)
    monkeypatch.setattr(analysis_repository, "create_assignment", _create_assignment)
    return created


@pytest.mark.asyncio
async def test_pick_moves_to_editing_and_records_assignment(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_FOR_EDIT)
    editor = make_user(UserRole.EDITOR)
    created = _wire(monkeypatch, analysis)

    picked = await editor_service.pick_project(db, analysis_id=analysis.id, editor=editor)

    assert picked.production_stage == ProductionStage.EDITING
    assert created == [
        {"analysis_id": analysis.id, "user_id": editor.id, "role": AssignmentRole.EDITOR, "assigned_by": editor.id}
    ]


@pytest.mark.asyncio
async def test_pick_refuses_project_outside_ready_for_edit(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.SHOOTING)
    _wire(monkeypatch, analysis)

    with pytest.raises(StageMismatch) as exc_info:
        await editor_service.pick_project(db, analysis_id=analysis.id, editor=make_user(UserRole.EDITOR))

    assert exc_info.value.message == "This project is no longer available for editing"


@pytest.mark.asyncio
async def test_pick_refuses_project_already_taken(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_FOR_EDIT)
    taken = SimpleNamespace(role=AssignmentRole.EDITOR, user_id="someone-else")
    _wire(monkeypatch, analysis, assignments=[taken])

    with pytest.raises(DuplicateAssignment) as exc_info:
        await editor_service.pick_project(db, analysis_id=analysis.id, editor=make_user(UserRole.EDITOR))

    assert exc_info.value.message == "This project has already been picked by another editor"


@pytest.mark.asyncio
async def test_pick_refuses_project_without_raw_footage(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_FOR_EDIT)
    _wire(monkeypatch, analysis, raw=0)

    with pytest.raises(MissingPrerequisiteFiles) as exc_info:
        await editor_service.pick_project(db, analysis_id=analysis.id, editor=make_user(UserRole.EDITOR))

    assert exc_info.value.message == "This project has no raw footage files"


@pytest.mark.asyncio
async def test_failed_assignment_insert_restores_stage(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_FOR_EDIT)
    race = IntegrityError("INSERT INTO project_assignments", {}, Exception("duplicate key"))
    _wire(monkeypatch, analysis, insert_error=race)

    with pytest.raises(DuplicateAssignment):
        await editor_service.pick_project(db, analysis_id=analysis.id, editor=make_user(UserRole.EDITOR))

    assert analysis.production_stage == ProductionStage.READY_FOR_EDIT


@pytest.mark.asyncio
async def test_complete_requires_edited_video(monkeypatch, db) -> None:
    editor = make_user(UserRole.EDITOR)
    analysis = make_analysis(production_stage=ProductionStage.EDITING)
    mine = SimpleNamespace(role=AssignmentRole.EDITOR, user_id=editor.id)
    _wire(monkeypatch, analysis, edited=0, assignments=[mine])

    with pytest.raises(MissingPrerequisiteFiles) as exc_info:
        await editor_service.mark_editing_complete(db, analysis_id=analysis.id, editor=editor)

    assert exc_info.value.message == "Please upload at least one edited video before marking as complete"


@pytest.mark.asyncio
async def test_complete_appends_editor_notes(monkeypatch, db) -> None:
    editor = make_user(UserRole.EDITOR)
    analysis = make_analysis(production_stage=ProductionStage.EDITING, production_notes="Shot on 35mm")
    mine = SimpleNamespace(role=AssignmentRole.EDITOR, user_id=editor.id)
    _wire(monkeypatch, analysis, edited=1, assignments=[mine])

    done = await editor_service.mark_editing_complete(
        db, analysis_id=analysis.id, editor=editor, production_notes="Colour graded, captions burned in"
    )

    assert done.production_stage == ProductionStage.READY_TO_POST
    assert done.production_notes == "Shot on 35mm\n\n[Editor Notes]\nColour graded, captions burned in"


@pytest.mark.asyncio
async def test_only_assigned_editor_can_complete(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.EDITING)
    other = SimpleNamespace(role=AssignmentRole.EDITOR, user_id="another-editor")
    _wire(monkeypatch, analysis, edited=1, assignments=[other])

    with pytest.raises(PermissionDenied):
        await editor_service.mark_editing_complete(db, analysis_id=analysis.id, editor=make_user(UserRole.EDITOR))


@pytest.mark.asyncio
async def test_complete_with_no_prior_notes_starts_editor_section(monkeypatch, db) -> None:
    editor = make_user(UserRole.EDITOR)
    analysis = make_analysis(production_stage=ProductionStage.EDITING, production_notes=None)
    mine = SimpleNamespace(role=AssignmentRole.EDITOR, user_id=editor.id)
    _wire(monkeypatch, analysis, edited=1, assignments=[mine])

    done = await editor_service.mark_editing_complete(
        db, analysis_id=analysis.id, editor=editor, production_notes="Final cut exported"
    )

    assert done.production_notes == "[Editor Notes]\nFinal cut exported"

