"""
VCA Production Workflow - Authentication Routes
===============================================
Login, PIN sign-in, registration, session refresh, current profile and
password recovery.
Credentials are checked at the identity provider; the session carries a
locally minted token whose subject is the profile id.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import success_envelope
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.security import decode_access_token
from app.domain.errors import NotAuthenticated
from app.models import Profile
from app.repositories.profile_repository import profile_repository
from app.schemas.auth import (
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
)
from app.services.auth_bridge_service import auth_bridge_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("auth")
security = HTTPBearer(auto_error=False)


# -- Dependency: current user --
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if credentials is None:
        raise NotAuthenticated("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise NotAuthenticated("Invalid or expired token")

    try:
        profile_id = UUID(str(payload.get("sub") or ""))
    except ValueError:
        raise NotAuthenticated("Invalid token subject")

    profile = await profile_repository.get_by_id(db, profile_id)
    if not profile:
        raise NotAuthenticated("Profile not found for this session")
    return profile


@router.post("/login")
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    session = await auth_bridge_service.login(db, email=data.email, password=data.password)
    return success_envelope(session)


@router.post("/register", status_code=201)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    session = await auth_bridge_service.register(
        db,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
    )
    await db.commit()
    return success_envelope(session, status_code=201)


@router.post("/refresh")
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    session = await auth_bridge_service.refresh(db, refresh_token=data.refresh_token)
    return success_envelope(session)


@router.get("/me")
async def me(current_user: Profile = Depends(get_current_user)):
    return success_envelope(ProfileResponse.model_validate(current_user).model_dump(mode="json"))


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    current_user: Profile = Depends(get_current_user),
):
    result = await auth_bridge_service.change_password(
        profile=current_user,
        current_password=data.current_password,
        new_password=data.new_password,
    )
    return success_envelope(result)


@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    return success_envelope(await auth_bridge_service.forgot_password(db, email=data.email))


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    result = await auth_bridge_service.reset_password(db, token=data.token, new_password=data.new_password)
    return success_envelope(result)


@router.post("/set-pin")
async def set_pin(data: SetPinRequest, db: AsyncSession = Depends(get_db)):
    session = await auth_bridge_service.set_pin(db, temp_token=data.temp_token, pin=data.pin)
    await db.commit()
    return success_envelope(session)


@router.post("/pin-login")
async def pin_login(data: PinLoginRequest, db: AsyncSession = Depends(get_db)):
    session = await auth_bridge_service.pin_login(db, email=data.email, pin=data.pin)
    return success_envelope(session)


@router.post("/change-pin")
async def change_pin(
    data: ChangePinRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    result = await auth_bridge_service.change_pin(
        db,
        profile=current_user,
        current_pin=data.current_pin,
        new_pin=data.new_pin,
    )
    await db.commit()
    return success_envelope(result)


@router.post("/logout")
async def logout(current_user: Profile = Depends(get_current_user)):
    logger.info("user_logout", profile_id=str(current_user.id))
    return success_envelope({"message": "Logged out"})
