"""
Review scoring and approve/reject consequences.

Pure functions: the review service loads the analysis, calls `decide_review`,
stores any voice note, then writes `ReviewOutcome.updates`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.domain.errors import MissingFeedback, ValidationError
from app.models.analysis import AnalysisStatus, ProductionStage

SCORE_MIN = 1
SCORE_MAX = 10
APPROVAL_ENTRY_STAGE = ProductionStage.PLANNING


class ReviewDecision(str, enum.Enum):
    APPROVE = "APPROVED"
    REJECT = "REJECTED"


@dataclass(slots=True, frozen=True)
class ReviewScores:
    hook_strength: int
    content_quality: int
    viral_potential: int
    replication_clarity: int

    def __post_init__(self) -> None:
        for name in ("hook_strength", "content_quality", "viral_potential", "replication_clarity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not SCORE_MIN <= value <= SCORE_MAX:
                raise ValidationError(
                    f"{name} must be an integer between {SCORE_MIN} and {SCORE_MAX}",
                    details={"field": name, "value": value},
                )

    def as_columns(self) -> dict[str, int]:
        return {
            "hook_strength": self.hook_strength,
            "content_quality": self.content_quality,
            "viral_potential": self.viral_potential,
            "replication_clarity": self.replication_clarity,
        }


def overall_score(scores: ReviewScores) -> float:
    """Mean of the four scores, rounded half-up to one decimal (8,7,9,6 -> 7.5)."""
    total = scores.hook_strength + scores.content_quality + scores.viral_potential + scores.replication_clarity
    mean = Decimal(total) / Decimal(4)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass(slots=True)
class ReviewOutcome:
    decision: ReviewDecision
    overall_score: float
    updates: dict[str, Any] = field(default_factory=dict)
    rejection_count: int = 0
    dissolved: bool = False
    dissolution_warning: bool = False
    generate_content_id: bool = False


def decide_review(
    *,
    decision: ReviewDecision,
    scores: ReviewScores,
    feedback: str | None,
    rejection_count: int,
    is_dissolved: bool = False,
    profile_id: int | None = None,
    dissolution_threshold: int = 5,
    warning_threshold: int = 4,
) -> ReviewOutcome:
    if is_dissolved:
        raise ValidationError("This analysis has been dissolved and can no longer be reviewed", code="analysis_dissolved")

    cleaned_feedback = (feedback or "").strip() or None
    if decision == ReviewDecision.REJECT and not cleaned_feedback:
        raise MissingFeedback("Feedback is required when rejecting an analysis")

    score = overall_score(scores)
    updates: dict[str, Any] = {
        **scores.as_columns(),
        "overall_score": score,
        "feedback": cleaned_feedback,
    }
    outcome = ReviewOutcome(decision=decision, overall_score=score, updates=updates, rejection_count=rejection_count)

    if decision == ReviewDecision.REJECT:
        count = rejection_count + 1
        updates["status"] = AnalysisStatus.REJECTED
        updates["rejection_count"] = count
        outcome.rejection_count = count
        if count >= dissolution_threshold:
            updates["is_dissolved"] = True
            updates["dissolution_reason"] = f"Dissolved after {count} rejections"
            outcome.dissolved = True
        elif count >= warning_threshold:
            outcome.dissolution_warning = True
        return outcome

    updates["status"] = AnalysisStatus.APPROVED
    updates["production_stage"] = APPROVAL_ENTRY_STAGE
    if profile_id is not None:
        updates["profile_id"] = profile_id
        outcome.generate_content_id = True
    return outcome
