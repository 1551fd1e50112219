from __future__ import annotations

import json
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from app.core.security import decode_access_token, decode_pin_setup_token
from app.domain.errors import InvalidCredentials, NotAuthenticated, UpstreamError
from app.models import UserRole
from app.repositories.profile_repository import profile_repository
from app.services.auth_bridge_service import FlowState, auth_bridge_service
from app.services.identity_provider import identity_provider

FLOW_PATH = "/api/v3/flows/executor/test-flow/"
GOOD_PASSWORD = "correct-horse-battery"


class _FakeAuthentik:
    """In-memory Authentik answering the endpoints the bridge calls."""

    def __init__(self, *, token_delete_status: int = 204, refresh_status: int = 200, set_password_status: int = 204):
        self.token_delete_status = token_delete_status
        self.refresh_status = refresh_status
        self.set_password_status = set_password_status
        self.calls: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))

        if path == FLOW_PATH and method == "GET":
            return httpx.Response(200, json={"component": "ak-stage-identification"})
        if path == FLOW_PATH and method == "POST":
            body = json.loads(request.content)
            if body["component"] == "ak-stage-identification":
                return httpx.Response(200, json={"component": "ak-stage-password"})
            if body.get("password") == GOOD_PASSWORD:
                return httpx.Response(200, json={"component": "xak-flow-redirect", "to": "/"})
            return httpx.Response(
                200,
                json={"component": "ak-stage-password", "response_errors": {"password": [{"string": "Invalid password"}]}},
            )
        if path == "/api/v3/core/users/" and method == "GET":
            return httpx.Response(200, json={"results": [{"pk": 42, "username": request.url.params["username"]}]})
        if path == "/api/v3/core/users/" and method == "POST":
            return httpx.Response(201, json={"pk": 7})
        if path.endswith("/set_password/"):
            return httpx.Response(self.set_password_status, json={} if self.set_password_status < 400 else {"detail": "x"})
        if path.startswith("/api/v3/core/users/") and method == "DELETE":
            return httpx.Response(204)
        if path == "/api/v3/core/tokens/" and method == "POST":
            return httpx.Response(201, json={"identifier": "created"})
        if path.endswith("/view_key/"):
            return httpx.Response(200, json={"key": "app-password-key"})
        if path.startswith("/api/v3/core/tokens/") and method == "DELETE":
            return httpx.Response(self.token_delete_status)
        if path == "/application/o/token/":
            form = dict(httpx.QueryParams(request.content.decode()))
            if form["grant_type"] == "refresh_token" and self.refresh_status >= 400:
                return httpx.Response(self.refresh_status, json={"error": "invalid_grant"})
            return httpx.Response(
                200,
                json={"access_token": "provider-access", "refresh_token": "provider-refresh", "expires_in": 300},
            )
        if path == "/application/o/userinfo/":
            return httpx.Response(200, json={"email": "writer@example.com"})
        return httpx.Response(404, json={"detail": f"unexpected {method} {path}"})


def _install(monkeypatch, fake: _FakeAuthentik, profile=None):
    monkeypatch.setattr(identity_provider, "base_url", "http://authentik.test")
    monkeypatch.setattr(identity_provider, "api_token", "api-token")
    monkeypatch.setattr(identity_provider, "client_id", "vca")
    monkeypatch.setattr(identity_provider, "client_secret", "")
    monkeypatch.setattr(identity_provider, "flow_slug", "test-flow")
    monkeypatch.setattr(identity_provider, "transport", httpx.MockTransport(fake))

    async def _get_by_email(_db, email):
        return profile if profile and profile.email == email else None

    monkeypatch.setattr(profile_repository, "get_by_email", _get_by_email)


def _profile():
    return SimpleNamespace(id=uuid4(), email="writer@example.com", full_name="Rania Writer", role=UserRole.SCRIPT_WRITER)


@pytest.mark.asyncio
async def test_login_mints_local_token_with_profile_id_as_subject(monkeypatch) -> None:
    profile = _profile()
    fake = _FakeAuthentik()
    _install(monkeypatch, fake, profile)

    result = await auth_bridge_service.login(None, email=" Writer@Example.com ", password=GOOD_PASSWORD)

    session = result["session"]
    claims = decode_access_token(session["access_token"])
    assert claims["sub"] == str(profile.id)
    assert claims["role"] == "authenticated"
    assert claims["app_role"] == "SCRIPT_WRITER"
    assert session["refresh_token"] == "provider-refresh"
    assert session["user"]["app_metadata"]["role"] == "SCRIPT_WRITER"
    # the app password never outlives the exchange
    assert any(method == "DELETE" and path.startswith("/api/v3/core/tokens/") for method, path in fake.calls)


@pytest.mark.asyncio
async def test_wrong_password_is_generic_invalid_credentials(monkeypatch) -> None:
    _install(monkeypatch, _FakeAuthentik(), _profile())

    with pytest.raises(InvalidCredentials) as exc_info:
        await auth_bridge_service.login(None, email="writer@example.com", password="wrong-password")

    assert exc_info.value.message == "Invalid email or password"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_flow_execution_records_each_state(monkeypatch) -> None:
    _install(monkeypatch, _FakeAuthentik(), _profile())

    execution = await auth_bridge_service.verify_credentials("writer@example.com", GOOD_PASSWORD)

    assert execution.succeeded
    assert execution.history == [
        FlowState.STARTED,
        FlowState.IDENTITY_SUBMITTED,
        FlowState.PASSWORD_SUBMITTED,
    ]


@pytest.mark.asyncio
async def test_app_password_cleanup_failure_does_not_fail_login(monkeypatch) -> None:
    profile = _profile()
    _install(monkeypatch, _FakeAuthentik(token_delete_status=500), profile)

    result = await auth_bridge_service.login(None, email="writer@example.com", password=GOOD_PASSWORD)

    assert decode_access_token(result["session"]["access_token"])["sub"] == str(profile.id)


@pytest.mark.asyncio
async def test_rejected_refresh_asks_user_to_sign_in_again(monkeypatch) -> None:
    _install(monkeypatch, _FakeAuthentik(refresh_status=400), _profile())

    with pytest.raises(NotAuthenticated) as exc_info:
        await auth_bridge_service.refresh(None, refresh_token="stale")

    assert exc_info.value.message == "Session expired, please sign in again"


@pytest.mark.asyncio
async def test_provisioning_removes_provider_user_when_password_fails(monkeypatch) -> None:
    fake = _FakeAuthentik(set_password_status=400)
    _install(monkeypatch, fake, None)

    with pytest.raises(UpstreamError):
        await auth_bridge_service.provision_account(
            None,
            email="new.editor@example.com",
            password="long-enough-pass",
            full_name="New Editor",
            role=UserRole.EDITOR,
        )

    assert ("DELETE", "/api/v3/core/users/7/") in fake.calls


@pytest.mark.asyncio
async def test_register_removes_provider_user_when_login_fails(monkeypatch) -> None:
    fake = _FakeAuthentik()
    # No profile is ever found by email, so the login after provisioning fails.
    _install(monkeypatch, fake, None)

    async def _create_profile(_db, *, email, full_name, role):
        return SimpleNamespace(id=uuid4(), email=email, full_name=full_name, role=role)

    monkeypatch.setattr(profile_repository, "create_profile", _create_profile)

    with pytest.raises(InvalidCredentials):
        await auth_bridge_service.register(
            None, email="writer@example.com", password=GOOD_PASSWORD, full_name="Rania Writer"
        )

    assert ("DELETE", "/api/v3/core/users/42/") in fake.calls


@pytest.mark.asyncio
async def test_login_without_pin_hands_out_pin_setup_token(monkeypatch) -> None:
    profile = _profile()
    profile.pin_hash = None
    _install(monkeypatch, _FakeAuthentik(), profile)

    result = await auth_bridge_service.login(None, email="writer@example.com", password=GOOD_PASSWORD)

    assert result["needs_pin"] is True
    assert decode_pin_setup_token(result["pin_setup_token"])["sub"] == str(profile.id)
