"""Role assignments of team members to analyses. Rows are inserted or deleted, never updated."""

from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.profile import UserRole


class AssignmentRole(str, enum.Enum):
    VIDEOGRAPHER = "VIDEOGRAPHER"
    EDITOR = "EDITOR"
    POSTING_MANAGER = "POSTING_MANAGER"

    @property
    def profile_role(self) -> UserRole:
        return UserRole(self.value)


class ProjectAssignment(Base):
    __tablename__ = "project_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(
        UUID(as_uuid=True),
        ForeignKey("viral_analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(AssignmentRole, name="assignment_role"), nullable=False)
    assigned_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    analysis = relationship("ViralAnalysis", back_populates="assignments", lazy="raise")
    user = relationship("Profile", foreign_keys=[user_id], lazy="raise")

    __table_args__ = (
        UniqueConstraint("analysis_id", "role", name="uq_project_assignments_analysis_role"),
        Index("ix_project_assignments_user_role", "user_id", "role"),
    )
