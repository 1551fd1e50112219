"""
Viral analysis model: the unit of work that moves through review and production.
"""

from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import relationship

from app.core.database import Base


class AnalysisStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ProductionStage(str, enum.Enum):
    PLANNING = "PLANNING"
    NOT_STARTED = "NOT_STARTED"
    PRE_PRODUCTION = "PRE_PRODUCTION"
    PLANNED = "PLANNED"
    SHOOTING = "SHOOTING"
    SHOOT_REVIEW = "SHOOT_REVIEW"
    READY_FOR_EDIT = "READY_FOR_EDIT"
    EDITING = "EDITING"
    EDIT_REVIEW = "EDIT_REVIEW"
    FINAL_REVIEW = "FINAL_REVIEW"
    READY_TO_POST = "READY_TO_POST"
    POSTED = "POSTED"


class Priority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK = {
    Priority.URGENT: 4,
    Priority.HIGH: 3,
    Priority.NORMAL: 2,
    Priority.LOW: 1,
}


class PostingPlatform(str, enum.Enum):
    INSTAGRAM_REEL = "INSTAGRAM_REEL"
    INSTAGRAM_POST = "INSTAGRAM_POST"
    INSTAGRAM_STORY = "INSTAGRAM_STORY"
    TIKTOK = "TIKTOK"
    YOUTUBE_SHORTS = "YOUTUBE_SHORTS"
    YOUTUBE_VIDEO = "YOUTUBE_VIDEO"


SHOOT_POSSIBILITY_VALUES = (25, 50, 75, 100)


analysis_hook_tags = Table(
    "analysis_hook_tags",
    Base.metadata,
    Column("analysis_id", UUID(as_uuid=True), ForeignKey("viral_analyses.id", ondelete="CASCADE"), primary_key=True),
    Column("hook_tag_id", Integer, ForeignKey("hook_tags.id", ondelete="CASCADE"), primary_key=True),
)

analysis_character_tags = Table(
    "analysis_character_tags",
    Base.metadata,
    Column("analysis_id", UUID(as_uuid=True), ForeignKey("viral_analyses.id", ondelete="CASCADE"), primary_key=True),
    Column("character_tag_id", Integer, ForeignKey("character_tags.id", ondelete="CASCADE"), primary_key=True),
)


class ViralAnalysis(Base):
    __tablename__ = "viral_analyses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)

    # Writer submission
    reference_url = Column(String(2048), nullable=True)
    title = Column(String(512), nullable=True)
    hook = Column(Text, nullable=True)
    why_viral = Column(Text, nullable=True)
    how_to_replicate = Column(Text, nullable=True)
    target_emotion = Column(String(120), nullable=True)
    expected_outcome = Column(Text, nullable=True)
    form_data = Column(JSON, nullable=False, default=dict)

    # Review
    status = Column(Enum(AnalysisStatus, name="analysis_status"), nullable=False, default=AnalysisStatus.PENDING, index=True)
    hook_strength = Column(Integer, nullable=True)
    content_quality = Column(Integer, nullable=True)
    viral_potential = Column(Integer, nullable=True)
    replication_clarity = Column(Integer, nullable=True)
    overall_score = Column(Numeric(3, 1), nullable=True)
    feedback = Column(Text, nullable=True)
    feedback_voice_note_url = Column(String(2048), nullable=True)
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_count = Column(Integer, nullable=False, default=0)
    is_dissolved = Column(Boolean, nullable=False, default=False)
    dissolution_reason = Column(Text, nullable=True)
    disapproval_count = Column(Integer, nullable=False, default=0)
    last_disapproved_at = Column(DateTime(timezone=True), nullable=True)
    disapproval_reason = Column(Text, nullable=True)

    # Production
    production_stage = Column(Enum(ProductionStage, name="production_stage"), nullable=True, index=True)
    priority = Column(Enum(Priority, name="production_priority"), nullable=False, default=Priority.NORMAL)
    content_id = Column(String(64), nullable=True, unique=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    budget = Column(Numeric(12, 2), nullable=True)
    production_notes = Column(Text, nullable=True)
    admin_remarks = Column(Text, nullable=True)
    planned_date = Column(DateTime(timezone=True), nullable=True)
    production_started_at = Column(DateTime(timezone=True), nullable=True)
    production_completed_at = Column(DateTime(timezone=True), nullable=True)
    industry_id = Column(Integer, ForeignKey("industries.id", ondelete="SET NULL"), nullable=True)
    profile_id = Column(Integer, ForeignKey("profile_list.id", ondelete="SET NULL"), nullable=True)
    total_people_involved = Column(Integer, nullable=True)
    shoot_possibility = Column(Integer, nullable=True)

    # Posting
    posting_platform = Column(Enum(PostingPlatform, name="posting_platform"), nullable=True)
    posting_caption = Column(Text, nullable=True)
    posting_heading = Column(String(512), nullable=True)
    posting_hashtags = Column(ARRAY(String), nullable=True)
    scheduled_post_time = Column(DateTime(timezone=True), nullable=True, index=True)
    posted_url = Column(String(2048), nullable=True)
    posted_at = Column(DateTime(timezone=True), nullable=True)
    posted_urls = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    writer = relationship("Profile", foreign_keys=[user_id], lazy="raise")
    assignments = relationship(
        "ProjectAssignment",
        back_populates="analysis",
        cascade="all, delete-orphan",
        lazy="raise",
    )
    hook_tags = relationship("HookTag", secondary=analysis_hook_tags, lazy="raise")
    character_tags = relationship("CharacterTag", secondary=analysis_character_tags, lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "(hook_strength IS NULL) OR (hook_strength BETWEEN 1 AND 10)", name="hook_strength_range"
        ),
        CheckConstraint(
            "(content_quality IS NULL) OR (content_quality BETWEEN 1 AND 10)", name="content_quality_range"
        ),
        CheckConstraint(
            "(viral_potential IS NULL) OR (viral_potential BETWEEN 1 AND 10)", name="viral_potential_range"
        ),
        CheckConstraint(
            "(replication_clarity IS NULL) OR (replication_clarity BETWEEN 1 AND 10)",
            name="replication_clarity_range",
        ),
        CheckConstraint(
            "(shoot_possibility IS NULL) OR (shoot_possibility IN (25, 50, 75, 100))",
            name="shoot_possibility_values",
        ),
        Index("ix_viral_analyses_status_stage", "status", "production_stage"),
    )

    def __repr__(self):
        return f"<ViralAnalysis {self.id} {self.status}/{self.production_stage}>"
