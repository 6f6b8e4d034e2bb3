"""
hrms_auth.auth.trust

Two-factor trust window rules.

Responsibilities:
- Decide whether the current identity must re-verify 2FA right now.
- Compute the remaining time in the rolling trust window.

A successful 2FA verification grants a trust window (3 days on the server) instead of
demanding a code on every request. These functions are advisory: the server's
requirement check is authoritative and is consulted on startup.
"""

from __future__ import annotations

import time

from hrms_auth.auth.models import Identity

DEFAULT_TRUST_WINDOW_MS = 3 * 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def is_required_now(identity: Identity, *, now: int | None = None) -> bool:
    if not identity.two_factor_enabled or not identity.two_factor_setup_completed:
        return False
    current = now_ms() if now is None else now
    expires_at = identity.two_factor_expires_at
    if identity.two_factor_verified and expires_at is not None and current < expires_at:
        return False
    # Never verified, or the window has lapsed.
    return True


def remaining_trust_ms(identity: Identity, *, now: int | None = None) -> int:
    if identity.two_factor_expires_at is None:
        return 0
    current = now_ms() if now is None else now
    return max(0, identity.two_factor_expires_at - current)
