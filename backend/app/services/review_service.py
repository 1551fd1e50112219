from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.domain.errors import NotAuthenticated, StageMismatch
from app.domain.production.state_machine import PRE_SHOOT_STAGES
from app.domain.review.scoring import ReviewDecision, ReviewOutcome, ReviewScores, decide_review
from app.models import AnalysisStatus, ViralAnalysis
from app.services.audit_service import audit_service
from app.services.content_id_service import content_id_service
from app.services.state_transition_service import state_transition_service
from app.services.storage_service import storage_service

settings = get_settings()
logger = get_logger("services.review")


def voice_note_path(analysis_id: Any) -> str:
    return f"feedback-{analysis_id}-{int(time.time() * 1000)}.webm"


class ReviewService:
    async def review_analysis(
        self,
        db: AsyncSession,
        *,
        analysis_id: Any,
        decision: ReviewDecision,
        scores: ReviewScores,
        reviewer: Any,
        feedback: str | None = None,
        profile_id: int | None = None,
        voice_note: bytes | None = None,
    ) -> tuple[ViralAnalysis, ReviewOutcome]:
        if reviewer is None:
            raise NotAuthenticated("Not authenticated")

        analysis = await state_transition_service.lock_analysis(db=db, analysis_id=analysis_id)
        if analysis.status == AnalysisStatus.APPROVED and analysis.production_stage not in PRE_SHOOT_STAGES:
            raise StageMismatch(
                "This analysis is already in production",
                details={"production_stage": analysis.production_stage.value},
            )

        outcome = decide_review(
            decision=decision,
            scores=scores,
            feedback=feedback,
            rejection_count=int(analysis.rejection_count or 0),
            is_dissolved=bool(analysis.is_dissolved),
            profile_id=profile_id,
            dissolution_threshold=settings.dissolution_threshold,
            warning_threshold=settings.rejection_warning_threshold,
        )

        updates = dict(outcome.updates)
        # storage errors propagate before anything is written
        updates["feedback_voice_note_url"] = (
            await storage_service.save_file(voice_note_path(analysis.id), voice_note) if voice_note else None
        )
        updates["reviewed_by"] = reviewer.id
        updates["reviewed_at"] = datetime.now(timezone.utc)

        previous_status = analysis.status
        for key, value in updates.items():
            setattr(analysis, key, value)
        await db.flush()

        if outcome.generate_content_id and profile_id is not None:
            await content_id_service.generate(db, analysis=analysis, profile_id=profile_id)

        await audit_service.log_action(
            db,
            action="analysis_reviewed",
            entity_type="viral_analysis",
            entity_id=analysis.id,
            actor=reviewer,
            reason=outcome.updates.get("feedback"),
            from_state=previous_status,
            to_state=analysis.status,
            details={
                "overall_score": outcome.overall_score,
                "rejection_count": outcome.rejection_count,
                "dissolved": outcome.dissolved,
            },
        )

        if outcome.dissolved:
            logger.warning("analysis_dissolved", analysis_id=str(analysis.id), rejection_count=outcome.rejection_count)
        elif outcome.dissolution_warning:
            logger.info(
                "analysis_near_dissolution",
                analysis_id=str(analysis.id),
                rejection_count=outcome.rejection_count,
                threshold=settings.dissolution_threshold,
            )
        logger.info(
            "analysis_reviewed",
            analysis_id=str(analysis.id),
            decision=decision.value,
            overall_score=outcome.overall_score,
        )
        return analysis, outcome


review_service = ReviewService()
