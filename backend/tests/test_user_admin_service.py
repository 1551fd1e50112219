from __future__ import annotations

import pytest

from app.domain.errors import ValidationError
from app.models import UserRole
from app.repositories.profile_repository import profile_repository
from app.services.auth_bridge_service import auth_bridge_service
from app.services.user_admin_service import parse_role, user_admin_service
from conftest import make_user


def _profiles(monkeypatch, *profiles):
    by_id = {item.id: item for item in profiles}

    async def _get_by_id(_db, profile_id):
        return by_id.get(profile_id)

    monkeypatch.setattr(profile_repository, "get_by_id", _get_by_id)


@pytest.mark.asyncio
async def test_create_user_lists_missing_fields(db) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await user_admin_service.create_user(
            db, email="a@example.com", password="", full_name=" ", role="EDITOR", actor=None
        )

    assert exc_info.value.message == "Missing required fields: email, password, fullName, role"
    assert exc_info.value.details == {"missing": ["password", "fullName"]}


@pytest.mark.asyncio
async def test_admin_cannot_delete_own_account(monkeypatch, db) -> None:
    admin = make_user(UserRole.SUPER_ADMIN)
    _profiles(monkeypatch, admin)

    with pytest.raises(ValidationError) as exc_info:
        await user_admin_service.delete_user(db, profile_id=admin.id, actor=admin)

    assert exc_info.value.message == "You cannot delete your own account"


@pytest.mark.asyncio
async def test_delete_user_survives_provider_cleanup_failure(monkeypatch, db) -> None:
    admin = make_user(UserRole.SUPER_ADMIN)
    editor = make_user(UserRole.EDITOR)
    _profiles(monkeypatch, admin, editor)

    async def _delete_provider_user(_email):
        return False

    monkeypatch.setattr(auth_bridge_service, "delete_provider_user", _delete_provider_user)

    await user_admin_service.delete_user(db, profile_id=editor.id, actor=admin)

    assert db.deleted == [editor]


@pytest.mark.asyncio
async def test_trusted_flag_only_for_script_writers(monkeypatch, db) -> None:
    writer = make_user(UserRole.SCRIPT_WRITER)
    editor = make_user(UserRole.EDITOR)
    _profiles(monkeypatch, writer, editor)

    updated = await user_admin_service.set_trusted_writer(db, profile_id=writer.id, value=True, actor=None)
    assert updated.is_trusted_writer is True

    with pytest.raises(ValidationError):
        await user_admin_service.set_trusted_writer(db, profile_id=editor.id, value=True, actor=None)


@pytest.mark.asyncio
async def test_temporary_password_must_be_long_enough(db) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await user_admin_service.reset_password(db, profile_id="x", temporary_password="short", actor=None)

    assert exc_info.value.message == "Password must be at least 8 characters"


def test_parse_role_is_case_insensitive() -> None:
    assert parse_role(" posting_manager ") == UserRole.POSTING_MANAGER
    with pytest.raises(ValidationError):
        parse_role("INTERN")
