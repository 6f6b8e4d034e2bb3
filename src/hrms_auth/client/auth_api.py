"""
hrms_auth.client.auth_api

HTTP client boundary used by the flows to call the backend auth API.

Responsibilities:
- Attach the stored bearer credential to authenticated calls.
- Translate HTTP outcomes into the auth error taxonomy (server-reported vs transport).
- Provide a stable interface that flows (and test stubs) depend on.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from hrms_auth.auth.errors import AuthenticationError, TransportError
from hrms_auth.auth.schemas import (
    OperationResult,
    PasswordResetInitiation,
    PasswordResetVerification,
    TwoFactorEnrollment,
    TwoFactorRequirement,
)
from hrms_auth.observability.http_hooks import clear_request_context, event_hooks
from hrms_auth.observability.logging import get_logger
from hrms_auth.settings import Settings

log = get_logger(__name__)

TokenProvider = Callable[[], str | None]


def create_http_client(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    # One pooled client per process; flows share it through AuthApiClient.
    return httpx.AsyncClient(
        transport=transport,
        base_url=settings.api_base_url,
        timeout=settings.http_timeout_seconds,
        headers={"Content-Type": "application/json"},
        event_hooks=event_hooks(),
    )


class AuthApiClient:
    """
    Enterprise boundary:
    - Flows talk to the auth backend via this client interface.
    - Responses stay plain dicts where they carry identities (parsed by the flows) and
      become pydantic models everywhere else.
    """

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._http = http
        self._token_provider = token_provider or (lambda: None)

    def _authz(self) -> dict[str, str]:
        token = self._token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        auth: bool = False,
    ) -> dict[str, Any]:
        try:
            r = await self._http.request(
                method,
                url,
                json=json,
                headers=self._authz() if auth else None,
            )
        except httpx.HTTPError as e:
            log.info("auth_api_unreachable", error=type(e).__name__)
            clear_request_context()
            raise TransportError() from e

        body = _json_object(r)
        if r.is_success:
            if body is None:
                raise TransportError("Invalid response from server", status_code=r.status_code)
            return body
        if body is None:
            raise TransportError(f"HTTP error! status: {r.status_code}", status_code=r.status_code)
        message = str(body.get("message") or f"HTTP error! status: {r.status_code}")
        raise AuthenticationError(message, status_code=r.status_code, payload=body)

    # Login / session

    async def login(
        self,
        *,
        email: str,
        password: str,
        two_factor_code: str | None = None,
        setup_two_factor: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"email": email, "password": password}
        if two_factor_code is not None:
            payload["twoFactorCode"] = two_factor_code
        if setup_two_factor:
            payload["setupTwoFactor"] = True
        return await self._send("POST", "/auth/login", json=payload)

    async def current_user(self) -> dict[str, Any]:
        return await self._send("GET", "/auth/me", auth=True)

    async def check_two_factor_requirement(self) -> TwoFactorRequirement:
        body = await self._send("GET", "/auth/2fa/check", auth=True)
        return TwoFactorRequirement.model_validate(body)

    async def impersonate(self, *, role: str) -> dict[str, Any]:
        return await self._send("GET", f"/auth/impersonate/{role}", auth=True)

    # Two-factor

    async def verify_two_factor_setup(
        self, *, email: str, code: str, secret: str
    ) -> dict[str, Any]:
        return await self._send(
            "POST",
            "/auth/2fa/verify-setup",
            json={"email": email, "code": code, "secret": secret},
        )

    async def verify_two_factor_login(self, *, email: str, code: str) -> dict[str, Any]:
        return await self._send(
            "POST", "/auth/2fa/verify-login", json={"email": email, "code": code}
        )

    async def begin_two_factor_setup(self) -> TwoFactorEnrollment:
        body = await self._send("POST", "/auth/2fa/setup", auth=True)
        return TwoFactorEnrollment.model_validate(body)

    async def enable_two_factor(self, *, code: str, secret: str | None) -> OperationResult:
        body = await self._send(
            "POST", "/auth/2fa/verify", json={"code": code, "secret": secret}, auth=True
        )
        return OperationResult.model_validate(body)

    async def disable_two_factor(self) -> OperationResult:
        body = await self._send("POST", "/auth/2fa/disable", auth=True)
        return OperationResult.model_validate(body)

    # Password reset (unauthenticated: must work for locked-out users)

    async def initiate_password_reset(self, *, email: str) -> PasswordResetInitiation:
        body = await self._send("POST", "/auth/password-reset/initiate", json={"email": email})
        return PasswordResetInitiation.model_validate(body)

    async def verify_two_factor_for_reset(
        self, *, email: str, code: str, reset_token: str
    ) -> PasswordResetVerification:
        body = await self._send(
            "POST",
            "/auth/password-reset/verify-2fa",
            json={"email": email, "twoFactorCode": code, "resetToken": reset_token},
        )
        return PasswordResetVerification.model_validate(body)

    async def reset_password(
        self,
        *,
        email: str,
        new_password: str,
        reset_token: str,
        two_factor_code: str | None = None,
    ) -> OperationResult:
        payload: dict[str, Any] = {
            "email": email,
            "newPassword": new_password,
            "resetToken": reset_token,
        }
        if two_factor_code is not None:
            payload["twoFactorCode"] = two_factor_code
        body = await self._send("POST", "/auth/password-reset/reset", json=payload)
        return OperationResult.model_validate(body)

    async def cancel_password_reset(self, *, email: str) -> OperationResult:
        body = await self._send("POST", "/auth/password-reset/cancel", json={"email": email})
        return OperationResult.model_validate(body)

    # Authenticated account changes

    async def change_password(
        self,
        *,
        current_password: str,
        new_password: str,
        two_factor_code: str | None = None,
    ) -> OperationResult:
        payload: dict[str, Any] = {
            "currentPassword": current_password,
            "newPassword": new_password,
        }
        if two_factor_code is not None:
            payload["twoFactorCode"] = two_factor_code
        body = await self._send("POST", "/auth/change-password", json=payload, auth=True)
        return OperationResult.model_validate(body)


def _json_object(r: httpx.Response) -> dict[str, Any] | None:
    try:
        body = r.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


# --- Module Notes -----------------------------------------------------------
# Paths are relative to `Settings.api_base_url` (httpx joins them onto the base path).
# Timeouts are configured per environment; nothing here retries.
