import pytest

from app.domain.errors import MissingFeedback, ValidationError
from app.domain.review.scoring import ReviewDecision, ReviewScores, decide_review, overall_score
from app.models import AnalysisStatus, ProductionStage


def _scores(a=8, b=7, c=9, d=6) -> ReviewScores:
    return ReviewScores(hook_strength=a, content_quality=b, viral_potential=c, replication_clarity=d)


def test_overall_score_is_mean_rounded_to_one_decimal() -> None:
    assert overall_score(_scores()) == 7.5
    assert overall_score(_scores(10, 10, 10, 9)) == 9.8
    # 7.25 rounds half-up
    assert overall_score(_scores(7, 7, 7, 8)) == 7.3
    assert overall_score(_scores(3, 2, 1, 2)) == 2.0


@pytest.mark.parametrize("value", [0, 11, True, "5"])
def test_scores_outside_range_are_rejected(value) -> None:
    with pytest.raises(ValidationError):
        _scores(a=value)


def test_approval_enters_planning_and_requests_content_id() -> None:
    outcome = decide_review(
        decision=ReviewDecision.APPROVE,
        scores=_scores(),
        feedback=None,
        rejection_count=0,
        profile_id=4,
    )
    assert outcome.updates["status"] == AnalysisStatus.APPROVED
    assert outcome.updates["production_stage"] == ProductionStage.PLANNING
    assert outcome.updates["profile_id"] == 4
    assert outcome.generate_content_id is True


def test_rejection_requires_feedback() -> None:
    with pytest.raises(MissingFeedback):
        decide_review(decision=ReviewDecision.REJECT, scores=_scores(), feedback="  ", rejection_count=0)


def test_fourth_rejection_warns_and_fifth_dissolves() -> None:
    fourth = decide_review(decision=ReviewDecision.REJECT, scores=_scores(), feedback="Weak hook", rejection_count=3)
    assert fourth.rejection_count == 4
    assert fourth.dissolution_warning is True
    assert fourth.dissolved is False

    fifth = decide_review(decision=ReviewDecision.REJECT, scores=_scores(), feedback="Weak hook", rejection_count=4)
    assert fifth.dissolved is True
    assert fifth.updates["is_dissolved"] is True
    assert fifth.updates["status"] == AnalysisStatus.REJECTED


def test_dissolved_analysis_cannot_be_reviewed() -> None:
    with pytest.raises(ValidationError) as exc_info:
        decide_review(
            decision=ReviewDecision.APPROVE,
            scores=_scores(),
            feedback=None,
            rejection_count=5,
            is_dissolved=True,
        )
    assert exc_info.value.code == "analysis_dissolved"
