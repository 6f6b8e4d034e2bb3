"""
hrms_auth.auth.errors

Exception taxonomy for the auth core.

Responsibilities:
- Separate client-side validation, server-reported authentication failures,
  transport failures and data-integrity failures.
- Carry the structured server body so flows can branch on 2FA indications.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """
    Base class for every failure surfaced by the auth core.
    `str(err)` is the user-facing message.
    """


class InputValidationError(AuthError):
    # Raised before any network call (mismatched passwords, malformed code, missing field).
    pass


class AuthenticationError(AuthError):
    """
    Server-reported credential or code failure. The message is shown verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload: dict[str, Any] = dict(payload or {})

    @property
    def requires_two_factor(self) -> bool:
        return bool(self.payload.get("requiresTwoFactor"))

    @property
    def requires_two_factor_setup(self) -> bool:
        return bool(self.payload.get("requiresTwoFactorSetup"))


class TransportError(AuthError):
    """
    Network failure, or a non-2xx response without a structured body.
    """

    def __init__(
        self,
        message: str = "Unable to reach the authentication service",
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class DataIntegrityError(AuthError):
    # Fatal for the current attempt; the identity is never installed.
    pass


class FlowStateError(AuthError):
    # Programming error: an operation was invoked from a state where it is illegal.
    pass


# --- Module Notes -----------------------------------------------------------
# Nothing in this package retries. Each failure ends the attempt and needs a new user action.
