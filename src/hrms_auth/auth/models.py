"""
hrms_auth.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated principal (`Identity`) and the closed `Role` set.
- Parse identities from server payloads (login, 2FA verification, current user, storage).
- Define the transient, never-persisted flow records (2FA challenge, reset session,
  impersonation context).
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from hrms_auth.auth.errors import DataIntegrityError
from hrms_auth.auth.jwt import read_unverified_claims


class Role(enum.StrEnum):
    # Values are the backend's role strings; treat as a stable API contract.
    employer = "employer"
    admin = "admin"
    hr = "hr"
    employee = "employee"
    it_admin = "it_admin"

    @classmethod
    def parse(cls, raw: object) -> Role:
        try:
            return cls(str(raw).strip().lower())
        except ValueError as e:
            raise DataIntegrityError(f"Unknown role in server response: {raw!r}") from e


# HR and the employer (administrator) role share the privileged half of the permission table.
# The backend `admin` role only gates server-side account settings; it grants nothing here.
PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.employer, Role.hr})

# Only the employer (administrator) role may impersonate.
IMPERSONATOR_ROLE = Role.employer


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Authenticated principal plus its security attributes and bearer credential.
    """

    id: str
    email: str
    role: Role
    name: str
    token: str = field(repr=False)
    team_ids: tuple[str, ...] = ()
    employee_id: str | None = None
    employee_status: str = "active"
    offboarding_in_progress: bool = False
    two_factor_enabled: bool = False
    two_factor_setup_completed: bool = False
    two_factor_verified: bool = False
    two_factor_expires_at: int | None = None  # epoch milliseconds
    permissions: frozenset[str] = frozenset()
    admin_id: str | None = None
    hr_id: str | None = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, token: str | None = None) -> Identity:
        """
        Build an identity from a server (or storage) payload.

        Accepts both the flat login shape and the nested `{"token", "user": {...}}` shape
        returned by the 2FA verification endpoints.
        """

        data = dict(payload)
        nested = data.get("user")
        if isinstance(nested, Mapping):
            data = {**data, **nested}

        bearer = token or data.get("token")
        if not bearer:
            raise DataIntegrityError("Invalid response from server: missing token")

        email = str(data.get("email") or "").strip()
        if not email:
            raise DataIntegrityError("Invalid response from server: missing email")

        role = Role.parse(data.get("role"))

        raw_id = data.get("_id") or data.get("id")
        if not raw_id:
            raise DataIntegrityError("Invalid response from server: missing user id")

        employee_id = data.get("employeeId") or data.get("empId") or data.get("employeeID")
        if role is Role.employee and not employee_id:
            raise DataIntegrityError("Employee ID not found in login response")

        team_id = data.get("teamId") or 1
        team_ids = data.get("teamIds") or [team_id]
        permissions = data.get("permissions") or ()
        if not isinstance(team_ids, (list, tuple)) or not isinstance(permissions, (list, tuple)):
            raise DataIntegrityError(
                "Invalid response from server: malformed teamIds or permissions"
            )

        verified = bool(data.get("twoFactorVerified"))
        expires_at = _as_epoch_ms(data.get("twoFactorExpiresAt"))
        if expires_at is None:
            # The current-user endpoint omits trust attributes; the token still carries them.
            claims = read_unverified_claims(str(bearer))
            expires_at = _as_epoch_ms(claims.get("twoFactorExpiresAt"))
            verified = verified or bool(expires_at and claims.get("twoFactorVerifiedAt"))

        return cls(
            id=str(raw_id),
            email=email,
            role=role,
            name=str(data.get("name") or email.split("@")[0]),
            token=str(bearer),
            team_ids=tuple(str(t) for t in team_ids),
            employee_id=str(employee_id) if employee_id else None,
            employee_status=str(data.get("employeeStatus") or "active"),
            offboarding_in_progress=bool(data.get("offboardingInProgress")),
            two_factor_enabled=bool(data.get("twoFactorEnabled")),
            two_factor_setup_completed=bool(data.get("twoFactorSetupCompleted")),
            two_factor_verified=verified,
            two_factor_expires_at=expires_at,
            permissions=frozenset(str(p) for p in permissions),
            admin_id=_opt_str(data.get("adminId")),
            hr_id=_opt_str(data.get("hrId")),
        )

    def to_storage(self) -> dict[str, Any]:
        # Same keys as the server payload so `from_payload` reads it back; no token here,
        # the bearer credential lives under its own storage key.
        return {
            "_id": self.id,
            "email": self.email,
            "role": self.role.value,
            "name": self.name,
            "teamIds": list(self.team_ids),
            "employeeId": self.employee_id,
            "employeeStatus": self.employee_status,
            "offboardingInProgress": self.offboarding_in_progress,
            "twoFactorEnabled": self.two_factor_enabled,
            "twoFactorSetupCompleted": self.two_factor_setup_completed,
            "twoFactorVerified": self.two_factor_verified,
            "twoFactorExpiresAt": self.two_factor_expires_at,
            "permissions": sorted(self.permissions),
            "adminId": self.admin_id,
            "hrId": self.hr_id,
        }


@dataclass(frozen=True, slots=True)
class TwoFactorSetup:
    """
    Enrollment material returned when the server demands 2FA setup.
    """

    secret: str | None = field(default=None, repr=False)
    qr_code_data_url: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> TwoFactorSetup | None:
        if not payload:
            return None
        return cls(
            secret=_opt_str(payload.get("secret")),
            qr_code_data_url=_opt_str(payload.get("qrCodeDataURL")),
        )


@dataclass(frozen=True, slots=True)
class TwoFactorChallenge:
    # In-memory only; never written to storage.
    pending_email: str
    setup_required: bool
    setup: TwoFactorSetup | None = None


class ResetStep(enum.StrEnum):
    not_started = "not_started"
    awaiting_new_password = "awaiting_new_password"


@dataclass(slots=True)
class PasswordResetSession:
    # Mutable: the server may rotate `reset_token` after a 2FA sub-step.
    email: str
    step: ResetStep = ResetStep.not_started
    reset_token: str | None = field(default=None, repr=False)
    requires_two_factor: bool = False


@dataclass(frozen=True, slots=True)
class ImpersonationContext:
    original: Identity
    substitute: Identity


def _opt_str(value: object) -> str | None:
    return None if value is None or value == "" else str(value)


def _as_epoch_ms(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None


# --- Module Notes -----------------------------------------------------------
# Keep these models free of I/O; they cross every layer (store, flows, permissions, storage).
