"""
VCA Production Workflow - Admin User Management
===============================================
Team accounts are created at the identity provider first, then mirrored as
local profiles. Deleting removes both sides; the provider side is best-effort.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.rbac import require_admin
from app.api.envelope import success_envelope
from app.api.serializers import serialize_profile
from app.core.database import get_db
from app.models import Profile, UserRole
from app.schemas.auth import AdminResetPasswordRequest, AdminUserCreateRequest, TrustedWriterRequest
from app.services.user_admin_service import user_admin_service

router = APIRouter(prefix="/admin/users", tags=["Admin Users"])


@router.get("")
async def list_users(
    role: UserRole | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(require_admin),
):
    team = await user_admin_service.list_team(db, role=role)
    return success_envelope(
        {
            "users": [serialize_profile(item) for item in team["users"]],
            "counts": team["counts"],
        }
    )


@router.post("", status_code=201)
async def create_user(
    data: AdminUserCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    profile = await user_admin_service.create_user(
        db,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        role=data.role,
        actor=current_user,
    )
    await db.commit()
    await db.refresh(profile)
    return success_envelope(serialize_profile(profile), status_code=201)


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    await user_admin_service.delete_user(db, profile_id=user_id, actor=current_user)
    await db.commit()
    return success_envelope({"id": str(user_id), "deleted": True})


@router.post("/{user_id}/reset-password")
async def reset_password(
    user_id: UUID,
    data: AdminResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    profile = await user_admin_service.reset_password(
        db,
        profile_id=user_id,
        temporary_password=data.temporary_password,
        actor=current_user,
    )
    await db.commit()
    return success_envelope({"id": str(profile.id), "message": "Password reset successfully"})


@router.post("/{user_id}/reset-pin")
async def reset_pin(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    profile = await user_admin_service.reset_pin(db, profile_id=user_id, actor=current_user)
    await db.commit()
    return success_envelope({"id": str(profile.id), "message": "PIN reset. The user will set a new PIN on next sign-in."})


@router.patch("/{user_id}/trusted-writer")
async def set_trusted_writer(
    user_id: UUID,
    data: TrustedWriterRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    profile = await user_admin_service.set_trusted_writer(
        db,
        profile_id=user_id,
        value=data.is_trusted_writer,
        actor=current_user,
    )
    await db.commit()
    await db.refresh(profile)
    return success_envelope(serialize_profile(profile))
