"""
VCA Production Workflow - Authentik Client
==========================================
Thin async wrapper over the Authentik admin API, the flow executor and the
OAuth2 token endpoints. Every non-2xx response becomes an UpstreamError
carrying the provider's payload verbatim.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import httpx

from app.core.config import get_settings
from app.core.logging import get_logger
from app.domain.errors import UpstreamError

logger = get_logger("services.identity_provider")
settings = get_settings()

OAUTH_SCOPE = "openid email profile offline_access"


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class AuthentikClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_token: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        flow_slug: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.authentik_base_url).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.authentik_api_token
        self.client_id = client_id if client_id is not None else settings.authentik_client_id
        self.client_secret = client_secret if client_secret is not None else settings.authentik_client_secret
        self.flow_slug = flow_slug or settings.authentik_flow_slug
        self.timeout = timeout or settings.authentik_timeout_seconds
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        """A fresh client; the flow executor relies on its cookie jar across steps."""
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        detail = _payload(response)
        logger.warning(
            "identity_provider_error",
            operation=operation,
            status_code=response.status_code,
        )
        raise UpstreamError(
            f"Identity provider request failed: {operation}",
            details={"status_code": response.status_code, "detail": detail},
        )

    async def _api(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self.api_token}"}
        try:
            async with self.client() as client:
                response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Identity provider unreachable: {operation}",
                details={"detail": str(exc)},
            ) from exc
        self._raise_for_status(response, operation)
        if response.status_code == 204 or not response.content:
            return None
        return _payload(response)

    # ── Flow executor ──

    def flow_path(self) -> str:
        return f"/api/v3/flows/executor/{self.flow_slug}/"

    async def flow_step(self, client: httpx.AsyncClient, payload: dict | None = None) -> tuple[int, dict]:
        """One executor round-trip: GET to start the flow, POST to answer the current stage."""
        if payload is None:
            response = await client.get(self.flow_path())
        else:
            response = await client.post(self.flow_path(), json=payload)
        body = _payload(response)
        return response.status_code, body if isinstance(body, dict) else {}

    # ── Users ──

    async def find_user_by_username(self, username: str) -> dict | None:
        data = await self._api(
            "GET",
            "/api/v3/core/users/",
            operation="find_user",
            params={"username": username},
        )
        results = (data or {}).get("results") or []
        return results[0] if results else None

    async def create_user(self, *, username: str, email: str, name: str) -> dict:
        return await self._api(
            "POST",
            "/api/v3/core/users/",
            operation="create_user",
            json={"username": username, "email": email, "name": name, "is_active": True},
        )

    async def set_password(self, user_pk: int, password: str) -> None:
        await self._api(
            "POST",
            f"/api/v3/core/users/{user_pk}/set_password/",
            operation="set_password",
            json={"password": password},
        )

    async def delete_user(self, user_pk: int) -> None:
        await self._api("DELETE", f"/api/v3/core/users/{user_pk}/", operation="delete_user")

    # ── App passwords ──

    async def create_app_password(self, *, user_pk: int, identifier: str, expires: datetime) -> dict:
        return await self._api(
            "POST",
            "/api/v3/core/tokens/",
            operation="create_app_password",
            json={
                "identifier": identifier,
                "intent": "app_password",
                "user": user_pk,
                "expiring": True,
                "expires": expires.isoformat(),
            },
        )

    async def view_key(self, identifier: str) -> str:
        data = await self._api("GET", f"/api/v3/core/tokens/{identifier}/view_key/", operation="view_key")
        key = (data or {}).get("key")
        if not key:
            raise UpstreamError("Identity provider returned no app password key")
        return key

    async def delete_token(self, identifier: str) -> None:
        await self._api("DELETE", f"/api/v3/core/tokens/{identifier}/", operation="delete_token")

    # ── OAuth2 ──

    async def _token_request(self, form: dict, operation: str) -> dict:
        if self.client_secret:
            form["client_secret"] = self.client_secret
        try:
            async with self.client() as client:
                response = await client.post("/application/o/token/", data=form)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Identity provider unreachable: {operation}",
                details={"detail": str(exc)},
            ) from exc
        self._raise_for_status(response, operation)
        return _payload(response)

    async def exchange_app_password(self, *, username: str, key: str) -> dict:
        return await self._token_request(
            {
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "username": username,
                "password": key,
                "scope": OAUTH_SCOPE,
            },
            "token_exchange",
        )

    async def refresh(self, refresh_token: str) -> dict:
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "refresh_token": refresh_token,
            },
            "token_refresh",
        )

    async def userinfo(self, access_token: str) -> dict:
        try:
            async with self.client() as client:
                response = await client.get(
                    "/application/o/userinfo/",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise UpstreamError("Identity provider unreachable: userinfo", details={"detail": str(exc)}) from exc
        self._raise_for_status(response, "userinfo")
        return _payload(response)


identity_provider = AuthentikClient()
