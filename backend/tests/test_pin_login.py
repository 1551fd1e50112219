from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.core.security import (
    create_password_reset_token,
    create_pin_setup_token,
    decode_access_token,
    decode_pin_setup_token,
    hash_password,
    verify_password,
)
from app.domain.errors import InvalidCredentials, NotAuthenticated, ValidationError
from app.models import UserRole
from app.repositories.profile_repository import profile_repository
from app.services.auth_bridge_service import auth_bridge_service
from app.services.user_admin_service import user_admin_service
from conftest import make_user


def _profile(pin: str | None = None):
    return SimpleNamespace(
        id=uuid4(),
        email="videographer@example.com",
        full_name="Omar Shoots",
        role=UserRole.VIDEOGRAPHER,
        pin_hash=hash_password(pin) if pin else None,
    )


def _lookup(monkeypatch, profile) -> None:
    async def _get_by_email(_db, email):
        return profile if profile and profile.email == email else None

    monkeypatch.setattr(profile_repository, "get_by_email", _get_by_email)


@pytest.mark.asyncio
async def test_set_pin_stores_hash_and_signs_in(monkeypatch, db) -> None:
    profile = _profile()
    _lookup(monkeypatch, profile)
    token = create_pin_setup_token(profile_id=str(profile.id), email=profile.email)

    result = await auth_bridge_service.set_pin(db, temp_token=token, pin="4821")

    assert verify_password("4821", profile.pin_hash)
    assert decode_access_token(result["session"]["access_token"])["sub"] == str(profile.id)
    assert db.flush_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("pin", ["123", "12345", "12a4", "١٢٣٤"])
async def test_set_pin_requires_four_ascii_digits(monkeypatch, db, pin) -> None:
    profile = _profile()
    _lookup(monkeypatch, profile)
    token = create_pin_setup_token(profile_id=str(profile.id), email=profile.email)

    with pytest.raises(ValidationError) as exc_info:
        await auth_bridge_service.set_pin(db, temp_token=token, pin=pin)

    assert exc_info.value.message == "PIN must be exactly 4 digits"
    assert profile.pin_hash is None


@pytest.mark.asyncio
async def test_set_pin_rejects_other_purpose_tokens(monkeypatch, db) -> None:
    profile = _profile()
    _lookup(monkeypatch, profile)
    reset_token = create_password_reset_token(profile_id=str(profile.id), email=profile.email)

    with pytest.raises(NotAuthenticated):
        await auth_bridge_service.set_pin(db, temp_token=reset_token, pin="4821")


@pytest.mark.asyncio
async def test_pin_login_issues_same_token_as_password_login(monkeypatch, db) -> None:
    profile = _profile(pin="4821")
    _lookup(monkeypatch, profile)

    result = await auth_bridge_service.pin_login(db, email=" Videographer@Example.com ", pin="4821")

    claims = decode_access_token(result["session"]["access_token"])
    assert claims["sub"] == str(profile.id)
    assert claims["role"] == "authenticated"
    assert claims["app_role"] == "VIDEOGRAPHER"
    assert result["session"]["user"]["app_metadata"]["role"] == "VIDEOGRAPHER"


@pytest.mark.asyncio
@pytest.mark.parametrize("stored_pin, email", [("4821", "videographer@example.com"), (None, "videographer@example.com"), ("4821", "nobody@example.com")])
async def test_pin_login_failures_share_one_message(monkeypatch, db, stored_pin, email) -> None:
    _lookup(monkeypatch, _profile(pin=stored_pin))

    with pytest.raises(InvalidCredentials) as exc_info:
        await auth_bridge_service.pin_login(db, email=email, pin="0000")

    assert exc_info.value.message == "Invalid email or PIN"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_change_pin_checks_current_pin(db) -> None:
    profile = _profile(pin="4821")

    with pytest.raises(ValidationError) as exc_info:
        await auth_bridge_service.change_pin(db, profile=profile, current_pin="1111", new_pin="2468")
    assert exc_info.value.message == "Current PIN is incorrect"

    result = await auth_bridge_service.change_pin(db, profile=profile, current_pin="4821", new_pin="2468")

    assert result["message"] == "PIN updated successfully"
    assert verify_password("2468", profile.pin_hash)


@pytest.mark.asyncio
async def test_change_pin_without_pin_set(db) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await auth_bridge_service.change_pin(db, profile=_profile(), current_pin="1111", new_pin="2468")

    assert exc_info.value.message == "No PIN set"


def test_pin_setup_token_is_not_an_access_token() -> None:
    token = create_pin_setup_token(profile_id="p-1", email="videographer@example.com")

    assert decode_pin_setup_token(token)["sub"] == "p-1"
    assert decode_access_token(token) is None


@pytest.mark.asyncio
async def test_admin_reset_pin_clears_hash(monkeypatch, db) -> None:
    profile = _profile(pin="4821")

    async def _get_by_id(_db, _profile_id):
        return profile

    monkeypatch.setattr(profile_repository, "get_by_id", _get_by_id)

    await user_admin_service.reset_pin(db, profile_id=profile.id, actor=make_user(UserRole.SUPER_ADMIN))

    assert profile.pin_hash is None
