"""
VCA Production Workflow - Auth Bridge
=====================================
Verifies credentials against the Authentik flow executor, trades a short-lived
app password for provider tokens, and mints the local HS256 token whose `sub`
is the profile id the database API authorizes against.

Login walks an explicit state machine:

    STARTED -> IDENTITY_SUBMITTED -> PASSWORD_SUBMITTED -> SUCCEEDED | FAILED

Any unexpected component, any `response_errors` and any non-2xx answer ends
in FAILED and surfaces as the generic InvalidCredentials.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.security import (
    create_access_token,
    create_password_reset_token,
    create_pin_setup_token,
    decode_password_reset_token,
    decode_pin_setup_token,
    hash_password,
    verify_password,
)
from app.domain.errors import (
    InvalidCredentials,
    NotAuthenticated,
    NotFound,
    UpstreamError,
    ValidationError,
)
from app.models import Profile, UserRole
from app.repositories.profile_repository import profile_repository
from app.services.email_service import email_service
from app.services.identity_provider import identity_provider

logger = get_logger("services.auth_bridge")
settings = get_settings()

IDENTIFICATION_COMPONENT = "ak-stage-identification"
PASSWORD_COMPONENT = "ak-stage-password"
REDIRECT_COMPONENT = "xak-flow-redirect"

MIN_PASSWORD_LENGTH = 8
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent"
RESET_PASSWORD_MESSAGE = "Password has been reset successfully"
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset token"
PASSWORD_TOO_SHORT_MESSAGE = "Password must be at least 8 characters"
PROVIDER_USER_MISSING_MESSAGE = "User not found in authentication system"
INVALID_PIN_LOGIN_MESSAGE = "Invalid email or PIN"
PIN_FORMAT_MESSAGE = "PIN must be exactly 4 digits"


class FlowState(str, enum.Enum):
    STARTED = "STARTED"
    IDENTITY_SUBMITTED = "IDENTITY_SUBMITTED"
    PASSWORD_SUBMITTED = "PASSWORD_SUBMITTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class FlowExecution:
    email: str
    state: FlowState = FlowState.STARTED
    component: str | None = None
    errors: Any = None
    history: list[FlowState] = field(default_factory=list)

    def advance(self, state: FlowState, component: str | None) -> None:
        self.history.append(self.state)
        self.state = state
        self.component = component

    def fail(self, component: str | None, errors: Any = None) -> None:
        self.advance(FlowState.FAILED, component)
        self.errors = errors

    @property
    def succeeded(self) -> bool:
        return self.state == FlowState.SUCCEEDED


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def validate_new_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(PASSWORD_TOO_SHORT_MESSAGE)
    return password


def validate_pin(pin: str | None) -> str:
    if not pin or len(pin) != 4 or not pin.isascii() or not pin.isdigit():
        raise ValidationError(PIN_FORMAT_MESSAGE)
    return pin


def serialize_session_user(profile: Profile) -> dict:
    return {
        "id": str(profile.id),
        "email": profile.email,
        "user_metadata": {"full_name": profile.full_name},
        "app_metadata": {"role": profile.role.value if profile.role else None},
    }


class AuthBridgeService:
    # ── Credential verification ──

    def _check_step(
        self,
        execution: FlowExecution,
        status_code: int,
        body: dict,
        *,
        expected: str,
        next_state: FlowState | None,
    ) -> None:
        component = body.get("component")
        errors = body.get("response_errors")
        if status_code >= 400 or errors or component != expected:
            execution.fail(component, errors)
            logger.info(
                "auth_flow_failed",
                email=execution.email,
                step=execution.history[-1].value,
                component=component,
                status_code=status_code,
            )
            raise InvalidCredentials()
        if next_state is None:
            execution.component = component
        else:
            execution.advance(next_state, component)

    async def verify_credentials(self, email: str, password: str) -> FlowExecution:
        execution = FlowExecution(email=normalize_email(email))
        if not execution.email or not password:
            execution.fail(None)
            raise InvalidCredentials()

        try:
            async with identity_provider.client() as client:
                status_code, body = await identity_provider.flow_step(client)
                self._check_step(
                    execution, status_code, body,
                    expected=IDENTIFICATION_COMPONENT,
                    next_state=None,
                )
                status_code, body = await identity_provider.flow_step(
                    client,
                    {"component": IDENTIFICATION_COMPONENT, "uid_field": execution.email},
                )
                self._check_step(
                    execution, status_code, body,
                    expected=PASSWORD_COMPONENT,
                    next_state=FlowState.IDENTITY_SUBMITTED,
                )
                status_code, body = await identity_provider.flow_step(
                    client,
                    {"component": PASSWORD_COMPONENT, "password": password},
                )
                execution.advance(FlowState.PASSWORD_SUBMITTED, PASSWORD_COMPONENT)
                self._check_step(
                    execution, status_code, body,
                    expected=REDIRECT_COMPONENT,
                    next_state=FlowState.SUCCEEDED,
                )
        except httpx.HTTPError as exc:
            execution.fail(execution.component, str(exc))
            raise UpstreamError("Identity provider unreachable", details={"detail": str(exc)}) from exc
        return execution

    # ── Provider tokens ──

    async def _delete_app_password(self, identifier: str) -> None:
        try:
            await identity_provider.delete_token(identifier)
        except UpstreamError as exc:
            logger.warning("app_password_cleanup_failed", identifier=identifier, error=exc.message)

    async def _provider_tokens(self, provider_user: dict, username: str) -> tuple[dict, dict]:
        identifier = f"vca-login-{provider_user['pk']}-{uuid4().hex[:12]}"
        expires = datetime.now(timezone.utc) + timedelta(seconds=settings.authentik_app_password_ttl_seconds)
        await identity_provider.create_app_password(
            user_pk=provider_user["pk"],
            identifier=identifier,
            expires=expires,
        )
        try:
            key = await identity_provider.view_key(identifier)
            tokens = await identity_provider.exchange_app_password(username=username, key=key)
            userinfo = await identity_provider.userinfo(tokens["access_token"])
        finally:
            await self._delete_app_password(identifier)
        return tokens, userinfo

    def build_session(self, profile: Profile, provider_tokens: dict | None = None) -> dict:
        access_token = create_access_token(
            profile_id=str(profile.id),
            email=profile.email,
            app_role=profile.role.value,
        )
        return {
            "session": {
                "access_token": access_token,
                "refresh_token": (provider_tokens or {}).get("refresh_token"),
                "expires_in": settings.access_token_expire_minutes * 60,
                "token_type": "bearer",
                "user": serialize_session_user(profile),
            }
        }

    # ── Public operations ──

    async def login(self, db: AsyncSession, *, email: str, password: str) -> dict:
        execution = await self.verify_credentials(email, password)
        provider_user = await identity_provider.find_user_by_username(execution.email)
        if not provider_user:
            logger.warning("login_provider_user_missing", email=execution.email)
            raise InvalidCredentials()

        tokens, userinfo = await self._provider_tokens(provider_user, execution.email)
        profile = await profile_repository.get_by_email(db, userinfo.get("email") or execution.email)
        if not profile:
            logger.warning("login_profile_missing", email=execution.email)
            raise InvalidCredentials()

        logger.info("login_succeeded", profile_id=str(profile.id), role=profile.role.value)
        session = self.build_session(profile, tokens)
        if not getattr(profile, "pin_hash", None):
            session["needs_pin"] = True
            session["pin_setup_token"] = create_pin_setup_token(profile_id=str(profile.id), email=profile.email)
        return session

    async def refresh(self, db: AsyncSession, *, refresh_token: str) -> dict:
        if not refresh_token:
            raise NotAuthenticated("Refresh token is required")
        try:
            tokens = await identity_provider.refresh(refresh_token)
            userinfo = await identity_provider.userinfo(tokens["access_token"])
        except UpstreamError as exc:
            logger.info("session_refresh_rejected", error=exc.message)
            raise NotAuthenticated("Session expired, please sign in again") from exc

        profile = await profile_repository.get_by_email(db, userinfo.get("email") or "")
        if not profile:
            raise NotAuthenticated("Session expired, please sign in again")
        tokens.setdefault("refresh_token", refresh_token)
        return self.build_session(profile, tokens)

    async def delete_provider_user(self, email: str) -> bool:
        """Best-effort removal of the provider account for `email`."""
        try:
            provider_user = await identity_provider.find_user_by_username(email)
            if not provider_user:
                return False
            await identity_provider.delete_user(provider_user["pk"])
        except UpstreamError as exc:
            logger.warning("provider_user_cleanup_failed", email=email, error=exc.message)
            return False
        return True

    async def provision_account(
        self,
        db: AsyncSession,
        *,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
    ) -> Profile:
        """Provider user, then its password, then the local profile. Any failure removes the provider user."""
        email = normalize_email(email)
        validate_new_password(password)
        if await profile_repository.get_by_email(db, email):
            raise ValidationError("An account with this email already exists", code="email_taken")

        provider_user = await identity_provider.create_user(username=email, email=email, name=full_name)
        try:
            await identity_provider.set_password(provider_user["pk"], password)
            profile = await profile_repository.create_profile(db, email=email, full_name=full_name, role=role)
        except (UpstreamError, SQLAlchemyError):
            try:
                await identity_provider.delete_user(provider_user["pk"])
            except UpstreamError as cleanup_exc:
                logger.warning("provider_user_cleanup_failed", email=email, error=cleanup_exc.message)
            raise

        logger.info("account_provisioned", profile_id=str(profile.id), role=role.value)
        return profile

    async def register(self, db: AsyncSession, *, email: str, password: str, full_name: str) -> dict:
        if not normalize_email(email) or not (full_name or "").strip():
            raise ValidationError("Email, password and full name are required")
        await self.provision_account(
            db,
            email=email,
            password=password,
            full_name=full_name.strip(),
            role=UserRole.SCRIPT_WRITER,
        )
        try:
            return await self.login(db, email=email, password=password)
        except (InvalidCredentials, UpstreamError):
            # The request rolls back the profile; the provider account goes with it.
            logger.warning("register_login_failed", email=normalize_email(email))
            await self.delete_provider_user(normalize_email(email))
            raise

    async def set_provider_password(self, email: str, password: str) -> None:
        provider_user = await identity_provider.find_user_by_username(email)
        if not provider_user:
            raise NotFound(PROVIDER_USER_MISSING_MESSAGE)
        await identity_provider.set_password(provider_user["pk"], password)

    async def change_password(self, *, profile: Profile, current_password: str, new_password: str) -> dict:
        validate_new_password(new_password)
        await self.verify_credentials(profile.email, current_password)
        await self.set_provider_password(profile.email, new_password)
        logger.info("password_changed", profile_id=str(profile.id))
        return {"message": "Password updated successfully"}

    async def forgot_password(self, db: AsyncSession, *, email: str) -> dict:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        profile = await profile_repository.get_by_email(db, email)
        if profile:
            token = create_password_reset_token(profile_id=str(profile.id), email=profile.email)
            await email_service.send_password_reset(email=profile.email, token=token, name=profile.full_name)
        else:
            logger.info("password_reset_unknown_email")
        return {"message": FORGOT_PASSWORD_MESSAGE}

    async def reset_password(self, db: AsyncSession, *, token: str, new_password: str) -> dict:
        payload = decode_password_reset_token(token or "")
        if not payload:
            raise ValidationError(INVALID_RESET_TOKEN_MESSAGE, code="invalid_reset_token")
        validate_new_password(new_password)

        profile = await profile_repository.get_by_email(db, payload.get("email") or "")
        if not profile or str(profile.id) != payload.get("sub"):
            raise ValidationError(INVALID_RESET_TOKEN_MESSAGE, code="invalid_reset_token")
        await self.set_provider_password(profile.email, new_password)
        logger.info("password_reset_completed", profile_id=str(profile.id))
        return {"message": RESET_PASSWORD_MESSAGE}

    # ── PIN sign-in ──
    # A PIN is set once with the short-lived token handed out by password login,
    # then email + PIN signs in without the identity provider round trip.

    async def set_pin(self, db: AsyncSession, *, temp_token: str, pin: str) -> dict:
        if not pin or not temp_token:
            raise ValidationError("PIN and temp token are required")
        validate_pin(pin)
        payload = decode_pin_setup_token(temp_token)
        if not payload:
            raise NotAuthenticated("Token expired. Please sign in again.")

        profile = await profile_repository.get_by_email(db, payload.get("email") or "")
        if not profile or str(profile.id) != payload.get("sub"):
            raise NotFound("Profile not found")
        profile.pin_hash = hash_password(pin)
        await db.flush()
        logger.info("pin_set", profile_id=str(profile.id))
        return self.build_session(profile)

    async def pin_login(self, db: AsyncSession, *, email: str, pin: str) -> dict:
        email = normalize_email(email)
        if not email or not pin:
            raise ValidationError("Email and PIN are required")
        profile = await profile_repository.get_by_email(db, email)
        if not profile or not profile.pin_hash or not verify_password(pin, profile.pin_hash):
            logger.info("pin_login_failed", email=email)
            raise InvalidCredentials(INVALID_PIN_LOGIN_MESSAGE)
        logger.info("pin_login_succeeded", profile_id=str(profile.id), role=profile.role.value)
        return self.build_session(profile)

    async def change_pin(self, db: AsyncSession, *, profile: Profile, current_pin: str, new_pin: str) -> dict:
        if not current_pin or not new_pin:
            raise ValidationError("Current PIN and new PIN are required")
        validate_pin(new_pin)
        if not profile.pin_hash:
            raise ValidationError("No PIN set")
        if not verify_password(current_pin, profile.pin_hash):
            raise ValidationError("Current PIN is incorrect")
        profile.pin_hash = hash_password(new_pin)
        await db.flush()
        logger.info("pin_changed", profile_id=str(profile.id))
        return {"message": "PIN updated successfully"}


auth_bridge_service = AuthBridgeService()
