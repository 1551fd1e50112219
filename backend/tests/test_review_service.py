from __future__ import annotations

import pytest

from app.domain.errors import StageMismatch
from app.domain.review.scoring import ReviewDecision, ReviewScores
from app.models import AnalysisStatus, ProductionStage, UserRole
from app.services.content_id_service import content_id_service
from app.services.review_service import review_service, voice_note_path
from app.services.state_transition_service import state_transition_service
from app.services.storage_service import storage_service
from conftest import make_analysis, make_user

SCORES = ReviewScores(hook_strength=8, content_quality=7, viral_potential=9, replication_clarity=6)


def _lock_returning(monkeypatch, analysis):
    async def _lock(*, db, analysis_id, lock_nowait=True):
        return analysis

    monkeypatch.setattr(state_transition_service, "lock_analysis", _lock)


@pytest.mark.asyncio
async def test_approval_writes_scores_and_requests_content_id(monkeypatch, db) -> None:
    analysis = make_analysis(status=AnalysisStatus.PENDING)
    admin = make_user(UserRole.SUPER_ADMIN)
    generated: list[int] = []

    async def _generate(_db, *, analysis, profile_id):
        generated.append(profile_id)
        analysis.content_id = "BCH-1001"
        return analysis.content_id

    _lock_returning(monkeypatch, analysis)
    monkeypatch.setattr(content_id_service, "generate", _generate)

    reviewed, outcome = await review_service.review_analysis(
        db,
        analysis_id=analysis.id,
        decision=ReviewDecision.APPROVE,
        scores=SCORES,
        reviewer=admin,
        profile_id=2,
    )

    assert outcome.overall_score == 7.5
    assert reviewed.status == AnalysisStatus.APPROVED
    assert reviewed.production_stage == ProductionStage.PLANNING
    assert reviewed.reviewed_by == admin.id
    assert reviewed.content_id == "BCH-1001"
    assert generated == [2]


@pytest.mark.asyncio
async def test_rejection_with_voice_note_stores_webm(monkeypatch, db) -> None:
    analysis = make_analysis(status=AnalysisStatus.PENDING, rejection_count=3)
    stored: list[str] = []

    async def _save(path, content, *, upsert=False):
        stored.append(path)
        return f"http://files.test/{path}"

    _lock_returning(monkeypatch, analysis)
    monkeypatch.setattr(storage_service, "save_file", _save)

    reviewed, outcome = await review_service.review_analysis(
        db,
        analysis_id=analysis.id,
        decision=ReviewDecision.REJECT,
        scores=SCORES,
        reviewer=make_user(UserRole.CREATOR),
        feedback="Hook needs a stronger open",
        voice_note=b"webm-bytes",
    )

    assert reviewed.status == AnalysisStatus.REJECTED
    assert reviewed.rejection_count == 4
    assert outcome.dissolution_warning is True
    assert stored[0].startswith(f"feedback-{analysis.id}-") and stored[0].endswith(".webm")
    assert reviewed.feedback_voice_note_url == f"http://files.test/{stored[0]}"


@pytest.mark.asyncio
async def test_review_refused_once_production_started(monkeypatch, db) -> None:
    analysis = make_analysis(status=AnalysisStatus.APPROVED, production_stage=ProductionStage.EDITING)
    _lock_returning(monkeypatch, analysis)

    with pytest.raises(StageMismatch):
        await review_service.review_analysis(
            db,
            analysis_id=analysis.id,
            decision=ReviewDecision.APPROVE,
            scores=SCORES,
            reviewer=make_user(UserRole.SUPER_ADMIN),
        )


def test_voice_note_path_shape() -> None:
    path = voice_note_path("abc")
    assert path.startswith("feedback-abc-")
    assert path.endswith(".webm")
    assert path[len("feedback-abc-"):-len(".webm")].isdigit()
