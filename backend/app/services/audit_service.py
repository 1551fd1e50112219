from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.correlation import get_correlation_id, get_request_id
from app.core.logging import get_logger
from app.models import ActionAuditLog

logger = get_logger("services.audit")


def _state(value: Any) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", str(value))


class AuditService:
    async def log_action(
        self,
        db: AsyncSession,
        *,
        action: str,
        entity_type: str,
        entity_id: Any = None,
        actor: Any = None,
        reason: str | None = None,
        from_state: Any = None,
        to_state: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Best-effort: an audit write failure never fails the workflow action."""
        try:
            async with db.begin_nested():
                db.add(
                    ActionAuditLog(
                        action=action,
                        entity_type=entity_type,
                        entity_id=str(entity_id) if entity_id is not None else None,
                        from_state=_state(from_state),
                        to_state=_state(to_state),
                        reason=reason,
                        details_json=details or {},
                        actor_user_id=str(actor.id) if actor else None,
                        actor_email=getattr(actor, "email", None) if actor else None,
                        correlation_id=get_correlation_id() or None,
                        request_id=get_request_id() or None,
                    )
                )
                await db.flush()
        except SQLAlchemyError as exc:
            logger.warning(
                "audit_log_failed",
                action=action,
                entity_type=entity_type,
                error=str(exc.__class__.__name__),
            )


audit_service = AuditService()
