"""Per-account skip list for the self-service project queues."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base
from app.models.assignment import AssignmentRole


class ProjectSkip(Base):
    __tablename__ = "project_skips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(
        UUID(as_uuid=True),
        ForeignKey("viral_analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(AssignmentRole, name="assignment_role"), nullable=False)
    skipped_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("analysis_id", "user_id", "role", name="uq_project_skips_analysis_user_role"),
    )
