"""
tests.conftest

Shared fixtures: an in-process fake of the HRMS auth API and a fully wired AuthService.

Responsibilities:
- Serve a FastAPI fake of the auth endpoints through `httpx.ASGITransport`.
- Mint real (HS256) bearer tokens carrying the 2FA trust claims.
- Provide a temp SQLite storage URL per test.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx
import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hrms_auth.auth.trust import DEFAULT_TRUST_WINDOW_MS
from hrms_auth.db.init_db import init_db
from hrms_auth.db.repositories.storage import StorageRepo
from hrms_auth.db.session import create_engine, create_sessionmaker
from hrms_auth.services.auth_service import AuthService
from hrms_auth.session.store import SessionStore
from hrms_auth.settings import Settings

VALID_CODE = "123456"
SETUP_SECRET = "JBSWY3DPEHPK3PXP"
QR_CODE = "data:image/png;base64,iVBORw0KGgo="
SIGNING_KEY = "fake-auth-api-signing-key-for-tests"
BASE_URL = "http://auth.test/api"


@dataclass
class FakeUser:
    email: str
    password: str
    role: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:24])
    employee_id: str | None = None
    name: str | None = None
    two_factor_enabled: bool = False
    two_factor_setup_completed: bool = False
    offboarding_in_progress: bool = False
    employee_status: str = "active"
    reset_token: str | None = None

    def profile(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "email": self.email,
            "role": self.role,
            "employeeId": self.employee_id,
            "adminId": None,
            "hrId": None,
            "twoFactorEnabled": self.two_factor_enabled,
            "twoFactorSetupCompleted": self.two_factor_setup_completed,
            "offboardingInProgress": self.offboarding_in_progress,
            "employeeStatus": self.employee_status,
            "name": self.name or self.email.split("@")[0],
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


class FakeAuthBackend:
    """
    Behaves like the production auth controller for the endpoints the client uses.
    `calls` records every request path so tests can assert that nothing was sent.
    """

    def __init__(self) -> None:
        self.users: dict[str, FakeUser] = {}
        self.calls: list[str] = []
        self.trust_window_ms = DEFAULT_TRUST_WINDOW_MS
        self._reset_counter = 0

    def add_user(self, user: FakeUser) -> FakeUser:
        self.users[user.email] = user
        return user

    def sign_token(
        self, user: FakeUser, *, verified: bool = False, expires_at: int | None = None
    ) -> str:
        claims: dict[str, Any] = {
            "id": user.id,
            "role": user.role,
            "employeeId": user.employee_id,
            "email": user.email,
            "twoFactorEnabled": user.two_factor_enabled,
            "twoFactorSetupCompleted": user.two_factor_setup_completed,
        }
        if verified and user.two_factor_enabled and user.two_factor_setup_completed:
            claims["twoFactorVerifiedAt"] = _now_ms()
            claims["twoFactorExpiresAt"] = expires_at or _now_ms() + self.trust_window_ms
        return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")

    def _next_reset_token(self) -> str:
        self._reset_counter += 1
        return f"reset-{self._reset_counter}"

    def _session_payload(self, user: FakeUser, *, verified: bool) -> dict[str, Any]:
        expires_at = _now_ms() + self.trust_window_ms
        payload = {
            "success": True,
            "message": "Two-factor authentication verified",
            "token": self.sign_token(user, verified=verified, expires_at=expires_at),
            "user": user.profile(),
        }
        if verified:
            payload["twoFactorVerified"] = True
            payload["twoFactorExpiresAt"] = expires_at
        return payload

    def _user_from_bearer(self, request: Request) -> FakeUser | None:
        header = request.headers.get("authorization", "")
        if not header.startswith("Bearer "):
            return None
        try:
            claims = jwt.decode(header[len("Bearer ") :], SIGNING_KEY, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            return None
        user = self.users.get(claims.get("email", ""))
        if user is not None:
            request.state.claims = claims
        return user

    def build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.calls.append(request.url.path.removeprefix("/api"))
            return await call_next(request)

        def bad(message: str, status: int = 400, **extra: Any) -> JSONResponse:
            return JSONResponse({"success": False, "message": message, **extra}, status_code=status)

        @app.post("/api/auth/login")
        async def login(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None or user.password != body.get("password"):
                return bad("Invalid email or password")
            code = body.get("twoFactorCode")
            setup = bool(body.get("setupTwoFactor"))

            if user.two_factor_enabled and not user.two_factor_setup_completed and not code:
                return {
                    "requiresTwoFactor": True,
                    "requiresTwoFactorSetup": True,
                    "message": "Two-factor authentication setup required",
                    "twoFactorSetup": {
                        "secret": SETUP_SECRET,
                        "qrCodeDataURL": QR_CODE,
                        "requiresVerification": True,
                    },
                }
            if code and code != VALID_CODE:
                return bad("Invalid two-factor authentication code")
            if setup and code:
                user.two_factor_enabled = True
                user.two_factor_setup_completed = True
            if user.two_factor_enabled and user.two_factor_setup_completed and not code:
                return {
                    "requiresTwoFactor": True,
                    "requiresTwoFactorSetup": False,
                    "message": "Two-factor authentication verification required",
                }

            verified = bool(code)
            expires_at = _now_ms() + backend.trust_window_ms
            payload = {
                **user.profile(),
                "token": backend.sign_token(user, verified=verified, expires_at=expires_at),
            }
            if verified:
                payload["twoFactorVerified"] = True
                payload["twoFactorExpiresAt"] = expires_at
            return payload

        @app.post("/api/auth/2fa/verify-setup")
        async def verify_setup(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None:
                return bad("User not found", 404)
            if body.get("code") != VALID_CODE or body.get("secret") != SETUP_SECRET:
                return bad("Invalid verification code. Please try again.")
            user.two_factor_enabled = True
            user.two_factor_setup_completed = True
            return backend._session_payload(user, verified=True)

        @app.post("/api/auth/2fa/verify-login")
        async def verify_login(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None:
                return bad("User not found", 404)
            if not user.two_factor_setup_completed:
                return bad(
                    "Two-factor authentication setup required",
                    403,
                    requiresTwoFactorSetup=True,
                )
            if body.get("code") != VALID_CODE:
                return bad("Invalid verification code")
            return backend._session_payload(user, verified=True)

        @app.get("/api/auth/2fa/check")
        async def check(request: Request):
            user = backend._user_from_bearer(request)
            if user is None:
                return JSONResponse({"message": "Not authorized, token failed"}, status_code=401)
            claims = request.state.claims
            if user.two_factor_enabled and not user.two_factor_setup_completed:
                return {"requiresTwoFactor": True, "requiresTwoFactorSetup": True}
            if user.two_factor_enabled and user.two_factor_setup_completed:
                expires_at = claims.get("twoFactorExpiresAt")
                if claims.get("twoFactorVerifiedAt") and expires_at and _now_ms() < expires_at:
                    return {
                        "requiresTwoFactor": False,
                        "requiresTwoFactorSetup": False,
                        "twoFactorVerified": True,
                        "twoFactorExpiresAt": expires_at,
                    }
                return {"requiresTwoFactor": True, "requiresTwoFactorSetup": False}
            return {"requiresTwoFactor": False, "requiresTwoFactorSetup": False}

        @app.get("/api/auth/me")
        async def me(request: Request):
            user = backend._user_from_bearer(request)
            if user is None:
                return JSONResponse({"message": "Not authorized"}, status_code=401)
            return user.profile()

        @app.get("/api/auth/impersonate/{role}")
        async def impersonate(role: str):
            for user in backend.users.values():
                if user.role == role:
                    return {"user": user.profile()}
            return bad(f"No user with role {role}", 404)

        @app.post("/api/auth/2fa/setup")
        async def begin_setup(request: Request):
            user = backend._user_from_bearer(request)
            if user is None:
                return bad("Not authorized", 401)
            user.two_factor_setup_completed = False
            return {
                "success": True,
                "secret": SETUP_SECRET,
                "qrCodeDataURL": QR_CODE,
                "requiresVerification": True,
            }

        @app.post("/api/auth/2fa/verify")
        async def enable(request: Request, body: dict[str, Any]):
            user = backend._user_from_bearer(request)
            if user is None:
                return bad("Not authorized", 401)
            if body.get("code") != VALID_CODE:
                return bad("Invalid verification code. Please try again.")
            user.two_factor_enabled = True
            user.two_factor_setup_completed = True
            return {
                "success": True,
                "message": "Two-factor authentication has been enabled successfully",
            }

        @app.post("/api/auth/2fa/disable")
        async def disable(request: Request):
            user = backend._user_from_bearer(request)
            if user is None:
                return bad("Not authorized", 401)
            if user.role not in ("admin", "employer"):
                return bad("Only administrators can disable two-factor authentication", 403)
            user.two_factor_enabled = False
            user.two_factor_setup_completed = False
            return {"success": True, "message": "Two-factor authentication has been disabled"}

        @app.post("/api/auth/password-reset/initiate")
        async def reset_initiate(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            message = "If the email exists, a reset process has been initiated"
            if user is None:
                return {"success": True, "message": message, "requiresTwoFactor": False}
            user.reset_token = backend._next_reset_token()
            return {
                "success": True,
                "message": message,
                "requiresTwoFactor": user.two_factor_enabled and user.two_factor_setup_completed,
                "resetToken": user.reset_token,
            }

        @app.post("/api/auth/password-reset/verify-2fa")
        async def reset_verify(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None or not user.reset_token:
                return bad("Invalid or expired reset process")
            if body.get("twoFactorCode") != VALID_CODE:
                return bad("Invalid two-factor authentication code")
            user.reset_token = backend._next_reset_token()
            return {
                "success": True,
                "message": "Two-factor authentication verified",
                "resetToken": user.reset_token,
            }

        @app.post("/api/auth/password-reset/reset")
        async def reset(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None or not user.reset_token or user.reset_token != body.get("resetToken"):
                return bad("Invalid or expired reset token")
            if user.two_factor_enabled and user.two_factor_setup_completed:
                if not body.get("twoFactorCode"):
                    return bad("Two-factor authentication code is required")
                if body.get("twoFactorCode") != VALID_CODE:
                    return bad("Invalid two-factor authentication code")
            user.password = body["newPassword"]
            user.reset_token = None
            return {"success": True, "message": "Password has been reset successfully"}

        @app.post("/api/auth/password-reset/cancel")
        async def reset_cancel(body: dict[str, Any]):
            user = backend.users.get(body.get("email", ""))
            if user is None:
                return bad("User not found", 404)
            user.reset_token = None
            return {"success": True, "message": "Password reset process cancelled"}

        @app.post("/api/auth/change-password")
        async def change_password(request: Request, body: dict[str, Any]):
            user = backend._user_from_bearer(request)
            if user is None:
                return bad("Not authorized", 401)
            if user.password != body.get("currentPassword"):
                return bad("Current password is incorrect")
            if user.two_factor_enabled and user.two_factor_setup_completed:
                if not body.get("twoFactorCode"):
                    return bad(
                        "Two-factor authentication code is required",
                        requiresTwoFactor=True,
                    )
                if body.get("twoFactorCode") != VALID_CODE:
                    return bad("Invalid two-factor authentication code")
            user.password = body["newPassword"]
            return {"success": True, "message": "Password has been changed successfully"}

        return app


@pytest.fixture
def backend() -> FakeAuthBackend:
    fake = FakeAuthBackend()
    fake.add_user(FakeUser(email="boss@acme.test", password="boss-pass", role="employer"))
    fake.add_user(FakeUser(email="hr@acme.test", password="hr-pass", role="hr"))
    fake.add_user(
        FakeUser(email="emp@acme.test", password="emp-pass", role="employee", employee_id="E-100")
    )
    fake.add_user(
        FakeUser(
            email="secure@acme.test",
            password="secure-pass",
            role="admin",
            two_factor_enabled=True,
            two_factor_setup_completed=True,
        )
    )
    fake.add_user(
        FakeUser(
            email="new@acme.test",
            password="new-pass",
            role="hr",
            two_factor_enabled=True,
            two_factor_setup_completed=False,
        )
    )
    return fake


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        api_base_url=BASE_URL,
        storage_url=f"sqlite+aiosqlite:///{tmp_path / 'session.db'}",
    )


@pytest_asyncio.fixture
async def http(backend: FakeAuthBackend):
    transport = httpx.ASGITransport(app=backend.build_app())
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest_asyncio.fixture
async def store(settings: Settings):
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield SessionStore(storage=StorageRepo(create_sessionmaker(engine)))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def service(settings: Settings, http: httpx.AsyncClient):
    svc = AuthService(settings=settings, http=http)
    await svc.startup()
    try:
        yield svc
    finally:
        await svc.aclose()


# --- Module Notes -----------------------------------------------------------
# Restart scenarios build a second AuthService over the same `settings` (same SQLite file).
