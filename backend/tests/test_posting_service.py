from __future__ import annotations

import pytest

from app.domain.errors import StageMismatch
from app.models import PostingPlatform, ProductionStage, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.services.assignment_service import assignment_service
from app.services.posting_service import posting_service
from app.services.state_transition_service import state_transition_service
from conftest import make_analysis, make_user


def _lock_returning(monkeypatch, analysis):
    async def _lock(*, db, analysis_id, lock_nowait=True):
        return analysis

    monkeypatch.setattr(state_transition_service, "lock_analysis", _lock)


@pytest.mark.asyncio
async def test_multi_platform_posting_keeps_every_url(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_TO_POST, posting_platform=PostingPlatform.TIKTOK)
    manager = make_user(UserRole.POSTING_MANAGER)
    _lock_returning(monkeypatch, analysis)

    await posting_service.mark_as_posted(
        db, analysis_id=analysis.id, manager=manager, posted_url="https://instagram.com/p/a", keep_in_queue=True
    )
    await posting_service.mark_as_posted(
        db, analysis_id=analysis.id, manager=manager, posted_url="https://tiktok.com/@vca/video/b", keep_in_queue=True
    )
    assert analysis.production_stage == ProductionStage.READY_TO_POST
    assert analysis.posting_platform is None

    await posting_service.mark_as_posted(
        db, analysis_id=analysis.id, manager=manager, posted_url="https://youtube.com/shorts/c", keep_in_queue=False
    )

    assert analysis.production_stage == ProductionStage.POSTED
    assert [entry["url"] for entry in analysis.posted_urls] == [
        "https://instagram.com/p/a",
        "https://tiktok.com/@vca/video/b",
        "https://youtube.com/shorts/c",
    ]
    assert analysis.posted_url == "https://youtube.com/shorts/c"


@pytest.mark.asyncio
async def test_posting_details_self_assign_posting_manager(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.READY_TO_POST)
    manager = make_user(UserRole.POSTING_MANAGER)
    assigned: list = []

    async def _get_assignment(_db, _analysis_id, _role):
        return None

    async def _assign_role(_db, *, analysis, role, user_id, actor, existing=None):
        assigned.append((role, user_id))

    _lock_returning(monkeypatch, analysis)
    monkeypatch.setattr(analysis_repository, "get_assignment", _get_assignment)
    monkeypatch.setattr(assignment_service, "assign_role", _assign_role)

    await posting_service.set_posting_details(
        db,
        analysis_id=analysis.id,
        manager=manager,
        platform="YOUTUBE_SHORTS",
        caption="Behind the scenes",
        heading="How we shot it",
        hashtags=["#bts"],
        scheduled_post_time=None,
    )

    assert analysis.posting_platform == PostingPlatform.YOUTUBE_SHORTS
    assert analysis.posting_hashtags == ["bts"]
    assert assigned and assigned[0][1] == manager.id


@pytest.mark.asyncio
async def test_posting_details_require_ready_to_post(monkeypatch, db) -> None:
    analysis = make_analysis(production_stage=ProductionStage.EDITING)
    _lock_returning(monkeypatch, analysis)

    with pytest.raises(StageMismatch):
        await posting_service.set_posting_details(
            db,
            analysis_id=analysis.id,
            manager=make_user(UserRole.SUPER_ADMIN),
            platform="INSTAGRAM_REEL",
            caption="Caption",
            heading=None,
            hashtags=None,
            scheduled_post_time=None,
        )
