"""
VCA Production Workflow - Pydantic Schemas
==========================================
Request/Response schemas for the API layer.
"""

from datetime import datetime

from pydantic import BaseModel

from app.schemas.auth import (
    AdminResetPasswordRequest,
    AdminUserCreateRequest,
    ChangePasswordRequest,
    ChangePinRequest,
    ForgotPasswordRequest,
    LoginRequest,
    PinLoginRequest,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SetPinRequest,
    TrustedWriterRequest,
)
from app.schemas.workflow import (
    AnalysisCreateRequest,
    AnalysisUpdateRequest,
    AssignTeamRequest,
    BulkStageRequest,
    CompleteRequest,
    DisapproveRequest,
    FileCreateRequest,
    GateRequest,
    MarkPostedRequest,
    PickRequest,
    PostingDetailsRequest,
    ProductionFileResponse,
    ReviewRequest,
    ScheduleRequest,
    SkipRequest,
    StageUpdateRequest,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    timestamp: datetime


__all__ = [
    "AdminResetPasswordRequest",
    "AdminUserCreateRequest",
    "AnalysisCreateRequest",
    "AnalysisUpdateRequest",
    "AssignTeamRequest",
    "BulkStageRequest",
    "ChangePasswordRequest",
    "ChangePinRequest",
    "CompleteRequest",
    "DisapproveRequest",
    "FileCreateRequest",
    "ForgotPasswordRequest",
    "GateRequest",
    "HealthResponse",
    "LoginRequest",
    "PinLoginRequest",
    "MarkPostedRequest",
    "PickRequest",
    "PostingDetailsRequest",
    "ProductionFileResponse",
    "ProfileResponse",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "SetPinRequest",
    "ReviewRequest",
    "ScheduleRequest",
    "SkipRequest",
    "StageUpdateRequest",
    "TrustedWriterRequest",
]
