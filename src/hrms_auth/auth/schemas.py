"""
hrms_auth.auth.schemas

Pydantic models for auth API responses that are not identities.

Responsibilities:
- Map the backend's camelCase fields onto typed, snake_case attributes.
- Ignore unknown fields so additive backend changes never break the client.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class TwoFactorRequirement(_ApiModel):
    requires_two_factor: bool = Field(default=True, alias="requiresTwoFactor")
    requires_two_factor_setup: bool = Field(default=False, alias="requiresTwoFactorSetup")
    two_factor_verified: bool = Field(default=False, alias="twoFactorVerified")
    two_factor_expires_at: int | None = Field(default=None, alias="twoFactorExpiresAt")
    message: str | None = None


class PasswordResetInitiation(_ApiModel):
    success: bool = False
    requires_two_factor: bool = Field(default=False, alias="requiresTwoFactor")
    reset_token: str | None = Field(default=None, alias="resetToken", repr=False)
    message: str | None = None


class PasswordResetVerification(_ApiModel):
    success: bool = False
    reset_token: str | None = Field(default=None, alias="resetToken", repr=False)
    message: str | None = None


class OperationResult(_ApiModel):
    # Generic `{success, message}` envelope (finalize reset, change password, 2FA toggles).
    success: bool = False
    message: str | None = None


class TwoFactorEnrollment(_ApiModel):
    success: bool = False
    secret: str | None = Field(default=None, repr=False)
    qr_code_data_url: str | None = Field(default=None, alias="qrCodeDataURL")
    requires_verification: bool = Field(default=True, alias="requiresVerification")


# --- Module Notes -----------------------------------------------------------
# Identity payloads are parsed by `auth.models.Identity.from_payload` instead: they need
# cross-field fallbacks (id/_id, employeeId/empId) and the data-integrity checks.
