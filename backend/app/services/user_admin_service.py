from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.domain.errors import NotFound, ValidationError
from app.models import Profile, UserRole
from app.repositories.profile_repository import profile_repository
from app.services.audit_service import audit_service
from app.services.auth_bridge_service import auth_bridge_service, validate_new_password

logger = get_logger("services.user_admin")


def parse_role(value: str | UserRole | None) -> UserRole:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole((value or "").strip().upper())
    except ValueError as exc:
        raise ValidationError(
            "Invalid role",
            details={"role": value, "allowed": [item.value for item in UserRole]},
        ) from exc


class UserAdminService:
    async def _get_profile(self, db: AsyncSession, profile_id: Any) -> Profile:
        profile = await profile_repository.get_by_id(db, profile_id)
        if not profile:
            raise NotFound("User not found", details={"user_id": str(profile_id)})
        return profile

    async def create_user(
        self,
        db: AsyncSession,
        *,
        email: str | None,
        password: str | None,
        full_name: str | None,
        role: str | UserRole | None,
        actor: Any,
    ) -> Profile:
        missing = [
            name
            for name, value in (("email", email), ("password", password), ("fullName", full_name), ("role", role))
            if not (value.strip() if isinstance(value, str) else value)
        ]
        if missing:
            raise ValidationError("Missing required fields: email, password, fullName, role", details={"missing": missing})

        profile = await auth_bridge_service.provision_account(
            db,
            email=email,
            password=password,
            full_name=full_name.strip(),
            role=parse_role(role),
        )
        await audit_service.log_action(
            db,
            action="user_created",
            entity_type="profile",
            entity_id=profile.id,
            actor=actor,
            details={"role": profile.role.value},
        )
        return profile

    async def delete_user(self, db: AsyncSession, *, profile_id: Any, actor: Any) -> None:
        profile = await self._get_profile(db, profile_id)
        if actor is not None and profile.id == actor.id:
            raise ValidationError("You cannot delete your own account")

        provider_removed = await auth_bridge_service.delete_provider_user(profile.email)
        await db.delete(profile)
        await db.flush()
        await audit_service.log_action(
            db,
            action="user_deleted",
            entity_type="profile",
            entity_id=profile_id,
            actor=actor,
            details={"email": profile.email, "provider_removed": provider_removed},
        )
        logger.info("user_deleted", profile_id=str(profile_id), provider_removed=provider_removed)

    async def reset_password(
        self,
        db: AsyncSession,
        *,
        profile_id: Any,
        temporary_password: str | None,
        actor: Any,
    ) -> Profile:
        if not temporary_password:
            raise ValidationError("Temporary password is required")
        validate_new_password(temporary_password)
        profile = await self._get_profile(db, profile_id)
        await auth_bridge_service.set_provider_password(profile.email, temporary_password)
        await audit_service.log_action(
            db,
            action="user_password_reset",
            entity_type="profile",
            entity_id=profile.id,
            actor=actor,
        )
        return profile

    async def list_team(self, db: AsyncSession, *, role: UserRole | None = None) -> dict:
        profiles = await profile_repository.list_profiles(db, role=role)
        counts = await profile_repository.count_by_role(db)
        return {
            "users": profiles,
            "counts": {item.value: counts.get(item, 0) for item in UserRole},
        }

    async def set_trusted_writer(self, db: AsyncSession, *, profile_id: Any, value: bool, actor: Any) -> Profile:
        profile = await self._get_profile(db, profile_id)
        if profile.role != UserRole.SCRIPT_WRITER:
            raise ValidationError("Only script writers can be marked as trusted")
        profile.is_trusted_writer = bool(value)
        await db.flush()
        await audit_service.log_action(
            db,
            action="trusted_writer_set",
            entity_type="profile",
            entity_id=profile.id,
            actor=actor,
            details={"is_trusted_writer": profile.is_trusted_writer},
        )
        return profile

    async def reset_pin(self, db: AsyncSession, *, profile_id: Any, actor: Any) -> Profile:
        """Clear the PIN; the next password sign-in hands out a fresh setup token."""
        profile = await self._get_profile(db, profile_id)
        profile.pin_hash = None
        await db.flush()
        await audit_service.log_action(
            db,
            action="pin_reset",
            entity_type="profile",
            entity_id=profile.id,
            actor=actor,
        )
        return profile


user_admin_service = UserAdminService()
