"""
VCA Production Workflow - Authentication Schemas
================================================
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str
    full_name: str = Field(..., alias="fullName", min_length=1, max_length=255)

    class Config:
        populate_by_name = True


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    class Config:
        populate_by_name = True


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    class Config:
        populate_by_name = True


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., alias="newPassword")

    class Config:
        populate_by_name = True


# ── PIN sign-in ──

class SetPinRequest(BaseModel):
    pin: Optional[str] = None
    temp_token: Optional[str] = Field(default=None, alias="tempToken")

    class Config:
        populate_by_name = True


class PinLoginRequest(BaseModel):
    email: Optional[str] = None
    pin: Optional[str] = None


class ChangePinRequest(BaseModel):
    current_pin: Optional[str] = Field(default=None, alias="currentPin")
    new_pin: Optional[str] = Field(default=None, alias="newPin")

    class Config:
        populate_by_name = True


class ProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: str
    is_trusted_writer: bool = False
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ── Admin user management ──

class AdminUserCreateRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    role: Optional[str] = None

    class Config:
        populate_by_name = True


class AdminResetPasswordRequest(BaseModel):
    temporary_password: Optional[str] = Field(default=None, alias="temporaryPassword")

    class Config:
        populate_by_name = True


class TrustedWriterRequest(BaseModel):
    is_trusted_writer: bool = Field(..., alias="isTrustedWriter")

    class Config:
        populate_by_name = True
