"""Content id assignment, delegated to the `generate_content_id_on_approval` database function."""

from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger

logger = get_logger("services.content_id")

GENERATE_SQL = text("SELECT generate_content_id_on_approval(:analysis_id, :profile_id)")


class ContentIdService:
    async def generate(self, db: AsyncSession, *, analysis: Any, profile_id: int) -> str | None:
        """Non-critical: failures are logged and the caller's operation continues."""
        try:
            async with db.begin_nested():
                result = await db.execute(GENERATE_SQL, {"analysis_id": analysis.id, "profile_id": profile_id})
                content_id = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.warning(
                "content_id_generation_failed",
                analysis_id=str(analysis.id),
                profile_id=profile_id,
                error=str(exc.__class__.__name__),
            )
            return None

        if content_id:
            analysis.content_id = content_id
            logger.info("content_id_generated", analysis_id=str(analysis.id), content_id=content_id)
        return content_id


content_id_service = ContentIdService()
