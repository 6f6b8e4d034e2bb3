"""
hrms_auth.flows.validation

Client-side input checks shared by the flows.

Responsibilities:
- Reject malformed 2FA codes and weak/mismatched passwords before any network call.
"""

from __future__ import annotations

from hrms_auth.auth.errors import InputValidationError


def validate_code(code: str | None, *, length: int) -> str:
    value = (code or "").strip()
    if len(value) != length or not (value.isascii() and value.isdigit()):
        raise InputValidationError(f"Please enter a valid {length}-digit code")
    return value


def validate_new_password(new_password: str, confirm_password: str, *, min_length: int) -> None:
    if not new_password or not confirm_password:
        raise InputValidationError("Please fill in both password fields")
    if new_password != confirm_password:
        raise InputValidationError("Passwords do not match")
    if len(new_password) < min_length:
        raise InputValidationError(f"Password must be at least {min_length} characters long")
