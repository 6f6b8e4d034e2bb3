"""
hrms_auth.observability.notifications

Presentation effects derived from flow results.

Responsibilities:
- Map a `FlowResult` onto the user-facing notice (title, description, variant).
- Deliver notices to a host-provided sink (toast, status bar, CLI echo) and log them.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from hrms_auth.flows.results import FlowResult, Outcome
from hrms_auth.observability.logging import get_logger

log = get_logger(__name__)


class Variant(enum.StrEnum):
    default = "default"
    destructive = "destructive"


@dataclass(frozen=True, slots=True)
class Notice:
    title: str
    description: str
    variant: Variant = Variant.default


NoticeSink = Callable[[Notice], None]

# Outcomes with a fixed title; the description comes from the result when it has one.
_TITLES: dict[Outcome, tuple[str, str]] = {
    Outcome.logged_out: ("Logged out", "You have been successfully logged out"),
    Outcome.reset_completed: (
        "Password Reset Successful",
        "You can now login with your new password",
    ),
    Outcome.impersonating: ("Impersonation Started", "You are now acting as another role."),
    Outcome.restored: ("Impersonation Stopped", "You are back to your original role."),
    Outcome.password_changed: ("Password Changed", "Password has been changed successfully"),
    Outcome.two_factor_enabled: (
        "Two-Factor Enabled",
        "Two-factor authentication has been enabled successfully",
    ),
    Outcome.two_factor_disabled: (
        "Two-Factor Disabled",
        "Two-factor authentication has been disabled",
    ),
}


def notice_for(result: FlowResult, *, failure_title: str = "Failed") -> Notice | None:
    """
    Return the notice for `result`, or None when the outcome is shown inline by the host
    (2FA prompts, reset steps) or should not be shown at all (superseded responses).
    """

    outcome = result.outcome
    if outcome is Outcome.authenticated and result.identity is not None:
        identity = result.identity
        if identity.offboarding_in_progress:
            return Notice(
                title="Offboarding in Progress",
                description="Welcome back! Your offboarding process is in progress.",
            )
        return Notice(
            title="Welcome back!",
            description=f"Successfully logged in as {identity.role.value}.",
        )
    if outcome is Outcome.denied:
        return Notice(
            title="Permission Denied",
            description=result.message or "You are not allowed to do that.",
            variant=Variant.destructive,
        )
    if outcome is Outcome.failed:
        return Notice(
            title=failure_title,
            description=result.message or "Something went wrong. Please try again.",
            variant=Variant.destructive,
        )
    if outcome in _TITLES:
        title, fallback = _TITLES[outcome]
        return Notice(title=title, description=result.message or fallback)
    return None


class Notifier:
    def __init__(self, sink: NoticeSink | None = None) -> None:
        self._sink = sink

    def __call__(self, result: FlowResult, *, failure_title: str = "Failed") -> Notice | None:
        notice = notice_for(result, failure_title=failure_title)
        if notice is None:
            return None
        log.info(
            "notice",
            title=notice.title,
            variant=notice.variant.value,
            outcome=result.outcome.value,
        )
        if self._sink is not None:
            self._sink(notice)
        return notice


# --- Module Notes -----------------------------------------------------------
# Hosts pass `failure_title="Login failed"` for credential-flow results, matching the
# login screen; every other failure uses the generic title.
