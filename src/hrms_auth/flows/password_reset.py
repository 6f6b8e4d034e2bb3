"""
hrms_auth.flows.password_reset

Password reset state machine.

Responsibilities:
- Carry a server-issued reset token from initiation to the final password-set step.
- Collect the 2FA code (when required) together with the new password.
- Stay independent of the session store so locked-out users can reset.

States: idle -> initiated -> awaiting_new_password -> idle (success or cancel).
"""

from __future__ import annotations

import enum

from hrms_auth.auth.errors import (
    AuthenticationError,
    AuthError,
    FlowStateError,
    InputValidationError,
)
from hrms_auth.auth.models import PasswordResetSession, ResetStep
from hrms_auth.client.auth_api import AuthApiClient
from hrms_auth.flows.results import SUPERSEDED, FlowResult, Outcome
from hrms_auth.flows.sequence import RequestSequence
from hrms_auth.flows.validation import validate_code, validate_new_password
from hrms_auth.observability.logging import get_logger, mask_email
from hrms_auth.settings import Settings

log = get_logger(__name__)


class ResetState(enum.StrEnum):
    idle = "idle"
    initiated = "initiated"
    awaiting_new_password = "awaiting_new_password"


class PasswordResetFlow:
    def __init__(self, *, client: AuthApiClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self._session: PasswordResetSession | None = None
        self._seq = RequestSequence()
        self.loading = False

    @property
    def state(self) -> ResetState:
        if self._session is None:
            return ResetState.idle
        if self._session.step is ResetStep.not_started:
            return ResetState.initiated
        return ResetState.awaiting_new_password

    @property
    def email(self) -> str | None:
        return self._session.email if self._session else None

    @property
    def requires_two_factor(self) -> bool:
        return bool(self._session and self._session.requires_two_factor)

    async def initiate(self, email: str) -> FlowResult:
        """
        Start a reset for `email`. Any previous reset is discarded first.

        The server answers uniformly whether or not the account exists, so this always
        advances to `awaiting_new_password` on a successful response.
        """

        email = (email or "").strip()
        if not email:
            return FlowResult.failure(InputValidationError("Email is required"))

        # A fresh reset never inherits the token of a previous target e-mail.
        self._seq.invalidate()
        session = PasswordResetSession(email=email)
        self._session = session
        ticket = self._seq.issue()
        self.loading = True
        try:
            result = await self._client.initiate_password_reset(email=email)
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            if not result.success:
                raise AuthenticationError(result.message or "Failed to initiate password reset")
        except AuthError as e:
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            self._session = None
            log.info("password_reset_initiation_failed", user=mask_email(email), error=str(e))
            return FlowResult.failure(e)
        finally:
            if self._seq.is_current(ticket):
                self.loading = False

        session.reset_token = result.reset_token
        session.requires_two_factor = result.requires_two_factor
        session.step = ResetStep.awaiting_new_password
        log.info(
            "password_reset_initiated",
            user=mask_email(email),
            requires_two_factor=result.requires_two_factor,
        )
        return FlowResult(outcome=Outcome.reset_awaiting_password, message=result.message)

    async def verify_two_factor(self, code: str) -> FlowResult:
        """
        Optional sub-step: prove the 2FA code ahead of the final step. The server rotates
        the reset token on success and the rotated token replaces the stored one.
        """

        session = self._require_awaiting()
        if not session.requires_two_factor:
            raise FlowStateError("two-factor verification is not required for this reset")
        try:
            code = validate_code(code, length=self._settings.two_factor_code_length)
            token = self._resolved_token(session)
        except InputValidationError as e:
            return FlowResult.failure(e)

        ticket = self._seq.issue()
        self.loading = True
        try:
            result = await self._client.verify_two_factor_for_reset(
                email=session.email, code=code, reset_token=token
            )
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            if not result.success:
                raise AuthenticationError(result.message or "Invalid verification code")
        except AuthError as e:
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            self._rotate_from(session, e)
            return FlowResult.failure(e)
        finally:
            if self._seq.is_current(ticket):
                self.loading = False

        if result.reset_token:
            session.reset_token = result.reset_token
        log.info("password_reset_two_factor_verified", user=mask_email(session.email))
        return FlowResult(outcome=Outcome.reset_two_factor_verified, message=result.message)

    async def reset_password(
        self,
        new_password: str,
        confirm_password: str,
        two_factor_code: str | None = None,
    ) -> FlowResult:
        session = self._require_awaiting()
        try:
            validate_new_password(
                new_password,
                confirm_password,
                min_length=self._settings.min_password_length,
            )
            code = None
            if session.requires_two_factor:
                code = validate_code(two_factor_code, length=self._settings.two_factor_code_length)
            token = self._resolved_token(session)
        except InputValidationError as e:
            # Fail fast: nothing is sent to the server.
            return FlowResult.failure(e)

        ticket = self._seq.issue()
        self.loading = True
        try:
            result = await self._client.reset_password(
                email=session.email,
                new_password=new_password,
                reset_token=token,
                two_factor_code=code,
            )
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            if not result.success:
                raise AuthenticationError(result.message or "Failed to reset password")
        except AuthError as e:
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            # Stay in awaiting_new_password so the user can correct the code and resubmit.
            self._rotate_from(session, e)
            log.info("password_reset_failed", user=mask_email(session.email), error=str(e))
            return FlowResult.failure(e)
        finally:
            if self._seq.is_current(ticket):
                self.loading = False

        self._session = None
        log.info("password_reset_completed", user=mask_email(session.email))
        return FlowResult(
            outcome=Outcome.reset_completed,
            message=result.message or "Password has been reset successfully",
        )

    def cancel(self) -> None:
        # Client-side only; in-flight responses are discarded through the sequence.
        self._seq.invalidate()
        self._session = None
        self.loading = False

    async def abandon(self) -> FlowResult:
        """
        Cancel locally, then ask the server to drop its reset token for this e-mail.
        """

        email = self.email
        self.cancel()
        if email is None:
            return FlowResult(outcome=Outcome.reset_cancelled)
        try:
            result = await self._client.cancel_password_reset(email=email)
        except AuthError as e:
            return FlowResult.failure(e)
        return FlowResult(outcome=Outcome.reset_cancelled, message=result.message)

    def _require_awaiting(self) -> PasswordResetSession:
        session = self._session
        if session is None or session.step is not ResetStep.awaiting_new_password:
            raise FlowStateError(f"operation not allowed in reset state {self.state}")
        return session

    @staticmethod
    def _resolved_token(session: PasswordResetSession) -> str:
        if not session.reset_token:
            # Same wording the server uses for unknown accounts: no enumeration signal.
            raise InputValidationError("Invalid or expired reset token")
        return session.reset_token

    @staticmethod
    def _rotate_from(session: PasswordResetSession, error: AuthError) -> None:
        if isinstance(error, AuthenticationError):
            rotated = error.payload.get("resetToken")
            if rotated:
                session.reset_token = str(rotated)


# --- Module Notes -----------------------------------------------------------
# Open question kept as observed: the 2FA code is collected in the same step as the new
# password. `verify_two_factor` exists for hosts that prefer a separate screen.
