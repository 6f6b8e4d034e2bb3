"""
hrms_auth.flows.results

Result values returned by every flow operation.

Responsibilities:
- Name the outcome of a transition so the presentation layer can react to it.
- Carry the user-facing message and the typed error instead of notifying inline.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from hrms_auth.auth.errors import AuthError
from hrms_auth.auth.models import Identity, TwoFactorSetup


class Outcome(enum.StrEnum):
    # Credential flow
    authenticated = "AUTHENTICATED"
    two_factor_setup_required = "TWO_FACTOR_SETUP_REQUIRED"
    two_factor_verify_required = "TWO_FACTOR_VERIFY_REQUIRED"
    logged_out = "LOGGED_OUT"

    # Password reset flow
    reset_awaiting_password = "RESET_AWAITING_PASSWORD"
    reset_two_factor_verified = "RESET_TWO_FACTOR_VERIFIED"
    reset_completed = "RESET_COMPLETED"
    reset_cancelled = "RESET_CANCELLED"

    # Impersonation overlay
    impersonating = "IMPERSONATING"
    restored = "RESTORED"

    # Account service
    password_changed = "PASSWORD_CHANGED"
    two_factor_enrollment_started = "TWO_FACTOR_ENROLLMENT_STARTED"
    two_factor_enabled = "TWO_FACTOR_ENABLED"
    two_factor_disabled = "TWO_FACTOR_DISABLED"
    refreshed = "REFRESHED"

    # Shared
    failed = "FAILED"
    denied = "DENIED"
    superseded = "SUPERSEDED"


_NOT_OK = frozenset({Outcome.failed, Outcome.denied, Outcome.superseded})


@dataclass(frozen=True, slots=True)
class FlowResult:
    outcome: Outcome
    message: str | None = None
    error: AuthError | None = None
    identity: Identity | None = None
    setup: TwoFactorSetup | None = None

    @property
    def ok(self) -> bool:
        return self.outcome not in _NOT_OK

    @classmethod
    def failure(cls, error: AuthError) -> FlowResult:
        return cls(outcome=Outcome.failed, message=str(error), error=error)


SUPERSEDED = FlowResult(outcome=Outcome.superseded)


# --- Module Notes -----------------------------------------------------------
# `SUPERSEDED` means a newer request, a cancel or a logout happened while the call was in
# flight; its response was discarded and no state changed.
