"""
hrms_auth.auth.jwt

Read-only JWT helpers for the bearer credential.

Responsibilities:
- Decode the server-issued bearer token's claims without verifying the signature.

Note:
- The client holds no signing key and is never the authority: claims read here are
  advisory (e.g. the 2FA trust expiry) and are re-validated against the server on startup.
"""

from __future__ import annotations

from typing import Any

import jwt
from jwt import InvalidTokenError

from hrms_auth.observability.logging import get_logger

log = get_logger(__name__)


def read_unverified_claims(token: str | None) -> dict[str, Any]:
    if not token:
        return {}
    try:
        # Signature/exp are the server's business; we only want the payload shape.
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
            algorithms=["HS256", "HS384", "HS512", "RS256", "ES256"],
        )
    except InvalidTokenError:
        # Opaque (non-JWT) bearer tokens are legal; they just carry no readable claims.
        log.debug("bearer_token_not_jwt")
        return {}
    return claims if isinstance(claims, dict) else {}


# --- Module Notes -----------------------------------------------------------
# Used by `auth.models.Identity.from_payload` when a response omits `twoFactorExpiresAt`
# (the current-user endpoint never returns it, the token always does).
