from __future__ import annotations

import json
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.api.routes import admin as admin_route
from app.api.routes import editor as editor_route
from app.api.routes import posting as posting_route
from app.api.routes import videographer as videographer_route
from app.models import AssignmentRole, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.schemas.workflow import (
    AssignTeamRequest,
    CompleteRequest,
    MarkPostedRequest,
    PickRequest,
    ReviewRequest,
    StageUpdateRequest,
)
from app.services.assignment_service import RoleSelection, assignment_service
from app.services.editor_service import editor_service
from app.services.posting_service import posting_service
from app.services.production_service import production_service
from app.services.videographer_service import videographer_service
from conftest import make_user


def _decode(response):
    return json.loads(response.body.decode("utf-8"))


def _stub_reload(monkeypatch, module) -> None:
    async def _reloaded(_db, analysis_id):
        return {"id": str(analysis_id)}

    monkeypatch.setattr(module, "_reloaded", _reloaded)


def _stub_serialized_analysis(monkeypatch, module) -> None:
    async def _get_analysis(_db, analysis_id):
        return SimpleNamespace(id=analysis_id)

    monkeypatch.setattr(analysis_repository, "get_analysis", _get_analysis)
    monkeypatch.setattr(module, "serialize_analysis", lambda analysis: {"id": str(analysis.id)})


@pytest.mark.asyncio
async def test_assign_team_accepts_flat_form(monkeypatch, db) -> None:
    analysis_id = uuid4()
    videographer_id = uuid4()
    posting_manager_id = uuid4()
    captured: dict = {}

    async def _assign_team(_db, *, analysis_id, team, actor):
        captured["team"] = team
        return None, {"VIDEOGRAPHER": str(videographer_id)}

    monkeypatch.setattr(assignment_service, "assign_team", _assign_team)
    _stub_reload(monkeypatch, admin_route)

    data = AssignTeamRequest.model_validate(
        {
            "videographerId": str(videographer_id),
            "editorId": None,
            "postingManagerId": str(posting_manager_id),
            "autoAssignVideographer": False,
            "autoAssignEditor": True,
            "autoAssignPostingManager": False,
            "industryId": 2,
            "profileId": 3,
            "hookTagIds": [1, 4],
            "characterTagIds": [2],
            "totalPeopleInvolved": 3,
            "shootPossibility": 75,
            "adminRemarks": "Rooftop, golden hour",
        }
    )
    response = await admin_route.assign_team(
        analysis_id, data, db=db, current_user=make_user(UserRole.SUPER_ADMIN)
    )

    team = captured["team"]
    assert team.selections == [
        RoleSelection(role=AssignmentRole.VIDEOGRAPHER, user_id=videographer_id, auto=False),
        RoleSelection(role=AssignmentRole.EDITOR, user_id=None, auto=True),
        RoleSelection(role=AssignmentRole.POSTING_MANAGER, user_id=posting_manager_id, auto=False),
    ]
    assert team.industry_id == 2
    assert team.profile_id == 3
    assert team.hook_tag_ids == [1, 4]
    assert team.character_tag_ids == [2]
    assert team.total_people_involved == 3
    assert team.shoot_possibility == 75
    assert team.admin_remarks == "Rooftop, golden hour"
    assert db.commit_count == 1
    assert _decode(response)["meta"]["assigned"] == {"VIDEOGRAPHER": str(videographer_id)}


def test_assign_team_form_skips_roles_without_user_or_flag() -> None:
    data = AssignTeamRequest.model_validate({"autoAssignVideographer": True, "shootPossibility": 50})

    assert data.shoot_possibility == 50
    assert data.auto_assign_videographer is True
    assert data.editor_id is None


@pytest.mark.asyncio
async def test_mark_posted_keeps_in_queue_from_camel_case_body(monkeypatch, db) -> None:
    analysis_id = uuid4()
    calls: list[dict] = []

    async def _mark_as_posted(_db, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(posting_service, "mark_as_posted", _mark_as_posted)
    _stub_reload(monkeypatch, posting_route)

    data = MarkPostedRequest.model_validate({"postedUrl": "https://x.io/a", "keepInQueue": True})
    await posting_route.mark_posted(analysis_id, data, db=db, current_user=make_user(UserRole.POSTING_MANAGER))

    assert calls[0]["posted_url"] == "https://x.io/a"
    assert calls[0]["keep_in_queue"] is True


@pytest.mark.asyncio
async def test_editor_pick_and_complete_read_analysis_id(monkeypatch, db) -> None:
    analysis_id = uuid4()
    picked: list = []
    completed: list = []

    async def _pick(_db, *, analysis_id, editor):
        picked.append(analysis_id)

    async def _complete(_db, *, analysis_id, editor, production_notes=None):
        completed.append((analysis_id, production_notes))

    monkeypatch.setattr(editor_service, "pick_project", _pick)
    monkeypatch.setattr(editor_service, "mark_editing_complete", _complete)
    _stub_serialized_analysis(monkeypatch, editor_route)
    editor = make_user(UserRole.EDITOR)

    await editor_route.pick_project(PickRequest.model_validate({"analysisId": str(analysis_id)}), db=db, current_user=editor)
    await editor_route.complete_editing(
        CompleteRequest.model_validate({"analysisId": str(analysis_id), "productionNotes": "Color graded"}),
        db=db,
        current_user=editor,
    )

    assert picked == [analysis_id]
    assert completed == [(analysis_id, "Color graded")]


@pytest.mark.asyncio
async def test_videographer_pick_reads_profile_id(monkeypatch, db) -> None:
    analysis_id = uuid4()
    calls: list[dict] = []

    async def _pick(_db, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(videographer_service, "pick_project", _pick)
    _stub_serialized_analysis(monkeypatch, videographer_route)

    data = PickRequest.model_validate({"analysisId": str(analysis_id), "profileId": 4})
    await videographer_route.pick_project(data, db=db, current_user=make_user(UserRole.VIDEOGRAPHER))

    assert calls[0]["analysis_id"] == analysis_id
    assert calls[0]["profile_id"] == 4


def test_review_and_snake_case_bodies_are_both_accepted() -> None:
    camel = ReviewRequest.model_validate(
        {
            "status": "APPROVED",
            "hookStrength": 8,
            "contentQuality": 7,
            "viralPotential": 9,
            "replicationClarity": 6,
            "profileId": 3,
        }
    )
    snake = PickRequest.model_validate({"analysis_id": "6f1c2d9e-8a61-4c1b-9d55-0a4c1f4b7e21"})

    assert camel.profile_id == 3
    assert camel.hook_strength == 8
    assert snake.analysis_id == UUID("6f1c2d9e-8a61-4c1b-9d55-0a4c1f4b7e21")


@pytest.mark.asyncio
async def test_stage_patch_passes_posted_url(monkeypatch, db) -> None:
    analysis_id = uuid4()
    calls: list[dict] = []

    async def _update_stage(_db, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(production_service, "update_stage", _update_stage)
    _stub_reload(monkeypatch, admin_route)

    data = StageUpdateRequest.model_validate({"productionStage": "POSTED", "postedUrl": "https://youtube.com/shorts/z"})
    await admin_route.update_stage(analysis_id, data, db=db, current_user=make_user(UserRole.CREATOR))

    assert calls[0]["target"] == ProductionStage.POSTED
    assert calls[0]["posted_url"] == "https://youtube.com/shorts/z"
