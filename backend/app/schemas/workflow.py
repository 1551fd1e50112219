"""
VCA Production Workflow - Workflow Schemas
==========================================
Request bodies for review, production, assignment, posting, submissions and files.
Clients send camelCase keys; snake_case keys are accepted as well.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models import ProductionStage


# ── Review ──

class ReviewRequest(BaseModel):
    status: str = Field(..., pattern="^(APPROVED|REJECTED)$")
    hook_strength: int = Field(..., alias="hookStrength", ge=1, le=10)
    content_quality: int = Field(..., alias="contentQuality", ge=1, le=10)
    viral_potential: int = Field(..., alias="viralPotential", ge=1, le=10)
    replication_clarity: int = Field(..., alias="replicationClarity", ge=1, le=10)
    feedback: Optional[str] = None
    profile_id: Optional[int] = Field(default=None, alias="profileId")

    class Config:
        populate_by_name = True


# ── Production ──

class StageUpdateRequest(BaseModel):
    production_stage: ProductionStage = Field(..., alias="productionStage")
    production_notes: Optional[str] = Field(default=None, alias="productionNotes")
    planned_date: Optional[datetime] = Field(default=None, alias="plannedDate")
    posted_url: Optional[str] = Field(default=None, alias="postedUrl")

    class Config:
        populate_by_name = True


class GateRequest(BaseModel):
    note: Optional[str] = None
    target: Optional[str] = Field(default=None, pattern="^(shoot|edit)$")


class DisapproveRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class BulkStageRequest(BaseModel):
    analysis_ids: list[UUID] = Field(..., alias="analysisIds", min_length=1, max_length=200)
    production_stage: ProductionStage = Field(..., alias="productionStage")

    class Config:
        populate_by_name = True


class AssignTeamRequest(BaseModel):
    """Per role: an explicit user id, or the auto-assign flag. Omitted roles are left alone."""

    videographer_id: Optional[UUID] = Field(default=None, alias="videographerId")
    editor_id: Optional[UUID] = Field(default=None, alias="editorId")
    posting_manager_id: Optional[UUID] = Field(default=None, alias="postingManagerId")
    auto_assign_videographer: bool = Field(default=False, alias="autoAssignVideographer")
    auto_assign_editor: bool = Field(default=False, alias="autoAssignEditor")
    auto_assign_posting_manager: bool = Field(default=False, alias="autoAssignPostingManager")
    industry_id: Optional[int] = Field(default=None, alias="industryId")
    profile_id: Optional[int] = Field(default=None, alias="profileId")
    hook_tag_ids: Optional[list[int]] = Field(default=None, alias="hookTagIds")
    character_tag_ids: Optional[list[int]] = Field(default=None, alias="characterTagIds")
    total_people_involved: Optional[int] = Field(default=None, alias="totalPeopleInvolved", ge=1)
    shoot_possibility: Optional[int] = Field(default=None, alias="shootPossibility")
    admin_remarks: Optional[str] = Field(default=None, alias="adminRemarks")

    class Config:
        populate_by_name = True


# ── Self-service queues ──

class PickRequest(BaseModel):
    analysis_id: UUID = Field(..., alias="analysisId")
    profile_id: Optional[int] = Field(default=None, alias="profileId")
    deadline: Optional[datetime] = None

    class Config:
        populate_by_name = True


class CompleteRequest(BaseModel):
    analysis_id: UUID = Field(..., alias="analysisId")
    production_notes: Optional[str] = Field(default=None, alias="productionNotes")

    class Config:
        populate_by_name = True


class SkipRequest(BaseModel):
    analysis_id: UUID = Field(..., alias="analysisId")

    class Config:
        populate_by_name = True


# ── Posting ──

class PostingDetailsRequest(BaseModel):
    posting_platform: Optional[str] = Field(default=None, alias="platform")
    posting_caption: Optional[str] = Field(default=None, alias="caption")
    posting_heading: Optional[str] = Field(default=None, alias="heading")
    posting_hashtags: Optional[list[str]] = Field(default=None, alias="hashtags")
    scheduled_post_time: Optional[datetime] = Field(default=None, alias="scheduledTime")

    class Config:
        populate_by_name = True


class ScheduleRequest(BaseModel):
    scheduled_post_time: Optional[datetime] = Field(default=None, alias="scheduledTime")

    class Config:
        populate_by_name = True


class MarkPostedRequest(BaseModel):
    posted_url: Optional[str] = Field(default=None, alias="postedUrl")
    keep_in_queue: bool = Field(default=False, alias="keepInQueue")

    class Config:
        populate_by_name = True


# ── Writer submissions ──

class AnalysisCreateRequest(BaseModel):
    reference_url: Optional[str] = Field(default=None, alias="referenceUrl", max_length=2048)
    title: Optional[str] = Field(default=None, max_length=512)
    hook: Optional[str] = None
    why_viral: Optional[str] = Field(default=None, alias="whyViral")
    how_to_replicate: Optional[str] = Field(default=None, alias="howToReplicate")
    target_emotion: Optional[str] = Field(default=None, alias="targetEmotion", max_length=120)
    expected_outcome: Optional[str] = Field(default=None, alias="expectedOutcome")
    form_data: dict[str, Any] = Field(default_factory=dict, alias="formData")

    class Config:
        populate_by_name = True


class AnalysisUpdateRequest(BaseModel):
    reference_url: Optional[str] = Field(default=None, alias="referenceUrl", max_length=2048)
    title: Optional[str] = Field(default=None, max_length=512)
    hook: Optional[str] = None
    why_viral: Optional[str] = Field(default=None, alias="whyViral")
    how_to_replicate: Optional[str] = Field(default=None, alias="howToReplicate")
    target_emotion: Optional[str] = Field(default=None, alias="targetEmotion", max_length=120)
    expected_outcome: Optional[str] = Field(default=None, alias="expectedOutcome")
    form_data: Optional[dict[str, Any]] = Field(default=None, alias="formData")

    class Config:
        populate_by_name = True


# ── Files ──

class FileCreateRequest(BaseModel):
    analysis_id: UUID = Field(..., alias="analysisId")
    file_type: str = Field(..., alias="fileType")
    file_name: str = Field(..., alias="fileName", min_length=1, max_length=512)
    file_url: str = Field(..., alias="fileUrl", min_length=1, max_length=2048)
    file_id: Optional[str] = Field(default=None, alias="fileId")
    file_size: Optional[int] = Field(default=None, alias="fileSize", ge=0)
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    description: Optional[str] = None

    class Config:
        populate_by_name = True


class ProductionFileResponse(BaseModel):
    id: int
    analysis_id: UUID
    uploaded_by: Optional[UUID] = None
    file_type: str
    file_name: str
    file_url: str
    file_id: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


