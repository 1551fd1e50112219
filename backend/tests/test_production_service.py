from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.domain.errors import DuplicateAssignment, ValidationError
from app.models import AnalysisStatus, AssignmentRole, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.services.content_id_service import content_id_service
from app.services.production_service import production_service
from app.services.state_transition_service import state_transition_service
from app.services.videographer_service import videographer_service
from conftest import make_analysis, make_user


def _wire(monkeypatch, analyses: dict, *, raw=0, assignments=()):
    async def _lock(*, db, analysis_id, lock_nowait=True):
        return analyses[analysis_id]

    async def _count(_db, _analysis_id):
        return raw

    async def _list_assignments(_db, _analysis_id):
        return list(assignments)

    async def _create_assignment(_db, **kwargs):
        return SimpleNamespace(**kwargs)

    monkeypatch.setattr(state_transition_service, "lock_analysis", _lock)
    monkeypatch.setattr(analysis_repository, "count_raw_files", _count)
    monkeypatch.setattr(analysis_repository, "count_edited_files", _count)
    monkeypatch.setattr(analysis_repository, "list_assignments", _list_assignments)
    monkeypatch.setattr(analysis_repository, "create_assignment", _create_assignment)


@pytest.mark.asyncio
async def test_bulk_stage_reports_each_analysis(monkeypatch, db) -> None:
    ready = make_analysis(production_stage=ProductionStage.PLANNING)
    pending = make_analysis(status=AnalysisStatus.PENDING)
    posted = make_analysis(production_stage=ProductionStage.POSTED)
    _wire(monkeypatch, {item.id: item for item in (ready, pending, posted)})

    results = await production_service.bulk_update_stage(
        db,
        analysis_ids=[ready.id, pending.id, posted.id],
        target=ProductionStage.SHOOTING,
        actor=make_user(UserRole.SUPER_ADMIN),
    )

    assert [item["ok"] for item in results] == [True, False, False]
    assert results[1]["code"] == "stage_mismatch"
    assert results[2]["code"] == "invalid_stage_transition"
    assert ready.production_stage == ProductionStage.SHOOTING
    assert ready.production_started_at is not None
    assert posted.production_stage == ProductionStage.POSTED


@pytest.mark.asyncio
async def test_disapprove_sends_analysis_back_to_pending(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.PLANNED, production_notes="Shoot Tuesday")
    _wire(monkeypatch, {analysis.id: analysis})

    await production_service.disapprove(
        db, analysis_id=analysis.id, reason="Client pulled the brief", actor=make_user(UserRole.CREATOR)
    )

    assert analysis.status == AnalysisStatus.PENDING
    assert analysis.production_stage is None
    assert analysis.disapproval_count == 1
    assert analysis.production_notes.startswith("Shoot Tuesday\n\nDISAPPROVED on ")
    assert analysis.production_notes.endswith("\nReason: Client pulled the brief")


@pytest.mark.asyncio
async def test_videographer_pick_with_profile_generates_content_id(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.PLANNING)
    videographer = make_user(UserRole.VIDEOGRAPHER)
    requested: list[int] = []

    async def _generate(_db, *, analysis, profile_id):
        requested.append(profile_id)
        analysis.content_id = "BCH-1002"
        return analysis.content_id

    _wire(monkeypatch, {analysis.id: analysis})
    monkeypatch.setattr(content_id_service, "generate", _generate)

    picked = await videographer_service.pick_project(
        db, analysis_id=analysis.id, videographer=videographer, profile_id=5
    )

    assert picked.production_stage == ProductionStage.SHOOTING
    assert picked.profile_id == 5
    assert picked.content_id == "BCH-1002"
    assert requested == [5]


@pytest.mark.asyncio
async def test_videographer_cannot_take_picked_project(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.PLANNING)
    taken = SimpleNamespace(role=AssignmentRole.VIDEOGRAPHER, user_id="someone")
    _wire(monkeypatch, {analysis.id: analysis}, assignments=[taken])

    with pytest.raises(DuplicateAssignment) as exc_info:
        await videographer_service.pick_project(
            db, analysis_id=analysis.id, videographer=make_user(UserRole.VIDEOGRAPHER)
        )

    assert exc_info.value.message == "This project has already been picked"


@pytest.mark.asyncio
async def test_admin_stage_to_posted_records_posted_url(monkeypatch, db) -> None:
    analysis = make_analysis(
        production_stage=ProductionStage.READY_TO_POST,
        posted_urls=[{"url": "https://instagram.com/p/a", "posted_at": "2026-10-18T09:00:00+00:00"}],
    )
    _wire(monkeypatch, {analysis.id: analysis})

    await production_service.update_stage(
        db,
        analysis_id=analysis.id,
        target=ProductionStage.POSTED,
        actor=make_user(UserRole.SUPER_ADMIN),
        posted_url="https://youtube.com/shorts/z",
    )

    assert analysis.production_stage == ProductionStage.POSTED
    assert analysis.posted_url == "https://youtube.com/shorts/z"
    assert analysis.posted_at is not None
    assert [entry["url"] for entry in analysis.posted_urls] == [
        "https://instagram.com/p/a",
        "https://youtube.com/shorts/z",
    ]


@pytest.mark.asyncio
async def test_admin_stage_to_posted_requires_url(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_TO_POST)
    _wire(monkeypatch, {analysis.id: analysis})

    with pytest.raises(ValidationError) as exc_info:
        await production_service.update_stage(
            db, analysis_id=analysis.id, target=ProductionStage.POSTED, actor=make_user(UserRole.SUPER_ADMIN)
        )

    assert exc_info.value.message == "Posted URL is required"
    assert analysis.production_stage == ProductionStage.READY_TO_POST
    assert analysis.posted_urls == []
