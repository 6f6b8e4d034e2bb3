"""
hrms_auth.services.account_service

Authenticated account changes.

Responsibilities:
- Change the password of the signed-in user (with the 2FA step when the account has 2FA).
- Enroll the signed-in user in 2FA and disable it for administrators.
- Keep the session identity's 2FA flags in line with what the server accepted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from hrms_auth.auth.errors import (
    AuthenticationError,
    AuthError,
    FlowStateError,
    InputValidationError,
)
from hrms_auth.auth.models import Identity, Role, TwoFactorSetup
from hrms_auth.client.auth_api import AuthApiClient
from hrms_auth.flows.results import FlowResult, Outcome
from hrms_auth.flows.validation import validate_code, validate_new_password
from hrms_auth.observability.logging import get_logger, mask_email
from hrms_auth.session.store import SessionStore
from hrms_auth.settings import Settings

log = get_logger(__name__)

# The server refuses 2FA disable for every other role.
_TWO_FACTOR_ADMINS = frozenset({Role.admin, Role.employer})


class AccountService:
    def __init__(
        self,
        *,
        store: SessionStore,
        client: AuthApiClient,
        settings: Settings,
        is_impersonating: Callable[[], bool] = lambda: False,
    ) -> None:
        self._store = store
        self._client = client
        self._settings = settings
        self._is_impersonating = is_impersonating

    async def change_password(
        self,
        current_password: str,
        new_password: str,
        confirm_password: str,
        two_factor_code: str | None = None,
    ) -> FlowResult:
        """
        Change the signed-in user's password.

        When the server answers that a 2FA code is needed, the result outcome is
        `two_factor_verify_required`; the caller collects the code and calls again.
        """

        identity = self._require_identity()
        try:
            if not current_password:
                raise InputValidationError("Current password is required")
            validate_new_password(
                new_password,
                confirm_password,
                min_length=self._settings.min_password_length,
            )
            if new_password == current_password:
                raise InputValidationError("New password must be different from current password")
            code = None
            if two_factor_code is not None:
                code = validate_code(two_factor_code, length=self._settings.two_factor_code_length)
        except InputValidationError as e:
            return FlowResult.failure(e)

        try:
            result = await self._client.change_password(
                current_password=current_password,
                new_password=new_password,
                two_factor_code=code,
            )
        except AuthenticationError as e:
            if e.requires_two_factor:
                return FlowResult(outcome=Outcome.two_factor_verify_required, message=str(e))
            return FlowResult.failure(e)
        except AuthError as e:
            return FlowResult.failure(e)

        if not result.success:
            return FlowResult.failure(
                AuthenticationError(result.message or "Error changing password")
            )
        log.info("password_changed", user=mask_email(identity.email))
        return FlowResult(
            outcome=Outcome.password_changed,
            message=result.message or "Password has been changed successfully",
        )

    async def begin_two_factor_enrollment(self) -> FlowResult:
        self._require_identity()
        try:
            enrollment = await self._client.begin_two_factor_setup()
        except AuthError as e:
            return FlowResult.failure(e)
        if not enrollment.success or not enrollment.secret:
            return FlowResult.failure(
                AuthenticationError("Error setting up two-factor authentication")
            )
        return FlowResult(
            outcome=Outcome.two_factor_enrollment_started,
            setup=TwoFactorSetup(
                secret=enrollment.secret,
                qr_code_data_url=enrollment.qr_code_data_url,
            ),
        )

    async def confirm_two_factor_enrollment(self, code: str, secret: str | None) -> FlowResult:
        identity = self._require_identity()
        try:
            code = validate_code(code, length=self._settings.two_factor_code_length)
        except InputValidationError as e:
            return FlowResult.failure(e)

        try:
            result = await self._client.enable_two_factor(code=code, secret=secret)
        except AuthError as e:
            return FlowResult.failure(e)
        if not result.success:
            return FlowResult.failure(
                AuthenticationError(result.message or "Invalid verification code")
            )

        updated = replace(identity, two_factor_enabled=True, two_factor_setup_completed=True)
        await self._install(updated)
        log.info("two_factor_enabled", user=mask_email(identity.email))
        return FlowResult(
            outcome=Outcome.two_factor_enabled,
            message=result.message,
            identity=updated,
        )

    async def disable_two_factor(self) -> FlowResult:
        identity = self._require_identity()
        if identity.role not in _TWO_FACTOR_ADMINS:
            return FlowResult(
                outcome=Outcome.denied,
                message="Only administrators can disable two-factor authentication",
            )

        try:
            result = await self._client.disable_two_factor()
        except AuthError as e:
            return FlowResult.failure(e)
        if not result.success:
            return FlowResult.failure(
                AuthenticationError(result.message or "Error disabling two-factor authentication")
            )

        updated = replace(
            identity,
            two_factor_enabled=False,
            two_factor_setup_completed=False,
            two_factor_verified=False,
            two_factor_expires_at=None,
        )
        await self._install(updated)
        log.info("two_factor_disabled", user=mask_email(identity.email))
        return FlowResult(
            outcome=Outcome.two_factor_disabled,
            message=result.message,
            identity=updated,
        )

    def _require_identity(self) -> Identity:
        identity = self._store.identity
        if identity is None:
            raise FlowStateError("account changes require an authenticated session")
        return identity

    async def _install(self, identity: Identity) -> None:
        # A substitute identity never reaches durable storage.
        await self._store.set(identity, persist=not self._is_impersonating())
