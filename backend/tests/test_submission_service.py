from __future__ import annotations

import pytest

from app.domain.errors import PermissionDenied, StageMismatch
from app.models import AnalysisStatus, UserRole
from app.repositories.analysis_repository import analysis_repository
from app.services.submission_service import submission_service
from conftest import make_analysis, make_user


def _serve(monkeypatch, analysis):
    async def _get(_db, _analysis_id):
        return analysis

    monkeypatch.setattr(analysis_repository, "get_analysis", _get)


@pytest.mark.asyncio
async def test_editing_rejected_analysis_resubmits_it(monkeypatch, db) -> None:
    writer = make_user(UserRole.SCRIPT_WRITER)
    analysis = make_analysis(user_id=writer.id, status=AnalysisStatus.REJECTED, hook="Old hook")
    _serve(monkeypatch, analysis)

    updated = await submission_service.update(
        db, analysis_id=analysis.id, writer=writer, values={"hook": "Sharper hook", "unknown": "ignored"}
    )

    assert updated.hook == "Sharper hook"
    assert updated.status == AnalysisStatus.PENDING
    assert not hasattr(updated, "unknown")


@pytest.mark.asyncio
async def test_dissolved_analysis_is_read_only(monkeypatch, db) -> None:
    writer = make_user(UserRole.SCRIPT_WRITER)
    analysis = make_analysis(user_id=writer.id, status=AnalysisStatus.REJECTED, is_dissolved=True)
    _serve(monkeypatch, analysis)

    with pytest.raises(StageMismatch):
        await submission_service.update(db, analysis_id=analysis.id, writer=writer, values={"hook": "x"})


@pytest.mark.asyncio
async def test_writers_cannot_touch_other_writers_analyses(monkeypatch, db) -> None:
    analysis = make_analysis(status=AnalysisStatus.PENDING)
    _serve(monkeypatch, analysis)

    with pytest.raises(PermissionDenied):
        await submission_service.delete(db, analysis_id=analysis.id, writer=make_user(UserRole.SCRIPT_WRITER))


@pytest.mark.asyncio
async def test_only_pending_analyses_can_be_deleted(monkeypatch, db) -> None:
    writer = make_user(UserRole.SCRIPT_WRITER)
    analysis = make_analysis(user_id=writer.id, status=AnalysisStatus.APPROVED)
    _serve(monkeypatch, analysis)

    with pytest.raises(StageMismatch):
        await submission_service.delete(db, analysis_id=analysis.id, writer=writer)
    assert db.deleted == []


@pytest.mark.asyncio
async def test_admins_can_view_any_analysis(monkeypatch, db) -> None:
    analysis = make_analysis()
    _serve(monkeypatch, analysis)

    seen = await submission_service.get_visible(db, analysis_id=analysis.id, user=make_user(UserRole.CREATOR))

    assert seen is analysis
