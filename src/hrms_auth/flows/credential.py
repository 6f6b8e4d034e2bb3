"""
hrms_auth.flows.credential

Credential (login) state machine with 2FA setup and verification.

Responsibilities:
- Submit e-mail/password and interpret the server's answer.
- Branch into exactly one of: authenticated, 2FA setup required, 2FA verification
  required, failed (back to anonymous).
- Complete 2FA verification or setup and install the resulting identity.
- Discard responses that arrive after a newer request, a cancel, or a logout.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable
from typing import Any

from hrms_auth.auth.errors import (
    AuthenticationError,
    AuthError,
    DataIntegrityError,
    FlowStateError,
    InputValidationError,
)
from hrms_auth.auth.models import Identity, TwoFactorChallenge, TwoFactorSetup
from hrms_auth.client.auth_api import AuthApiClient
from hrms_auth.flows.password_reset import PasswordResetFlow
from hrms_auth.flows.results import SUPERSEDED, FlowResult, Outcome
from hrms_auth.flows.sequence import RequestSequence
from hrms_auth.flows.validation import validate_code
from hrms_auth.observability.logging import get_logger, mask_email
from hrms_auth.session.store import SessionStore
from hrms_auth.settings import Settings

log = get_logger(__name__)


class LoginState(enum.StrEnum):
    anonymous = "anonymous"
    submitting = "submitting"
    authenticated = "authenticated"
    two_factor_setup_required = "two_factor_setup_required"
    two_factor_verify_required = "two_factor_verify_required"


_TWO_FACTOR_STATES = frozenset(
    {LoginState.two_factor_setup_required, LoginState.two_factor_verify_required}
)

ResponseHandler = Callable[[dict[str, Any]], Awaitable[FlowResult]]


class CredentialFlow:
    """
    Login orchestration. One instance per process, bound to the session store.

    The flow does not serialize overlapping calls: hosts disable the submit control while
    `loading` is true. If two calls do overlap, only the latest one may change state.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        client: AuthApiClient,
        settings: Settings,
        reset_flow: PasswordResetFlow | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._settings = settings
        self._reset_flow = reset_flow
        self._state = LoginState.anonymous
        self._challenge: TwoFactorChallenge | None = None
        self._seq = RequestSequence()
        self.loading = False
        store.on_clear(self._teardown)

    @property
    def state(self) -> LoginState:
        return self._state

    @property
    def challenge(self) -> TwoFactorChallenge | None:
        return self._challenge

    @property
    def pending_email(self) -> str | None:
        return self._challenge.pending_email if self._challenge else None

    async def login(self, email: str, password: str) -> FlowResult:
        email = (email or "").strip()
        if not email or not password:
            return FlowResult.failure(InputValidationError("Email and password are required"))

        self._challenge = None
        return await self._submit(
            origin=LoginState.anonymous,
            request=lambda: self._client.login(email=email, password=password),
            handle=lambda body: self._interpret_login(email, body),
        )

    async def verify_two_factor_login(self, code: str) -> FlowResult:
        challenge = self._require(LoginState.two_factor_verify_required)
        try:
            code = validate_code(code, length=self._settings.two_factor_code_length)
        except InputValidationError as e:
            return FlowResult.failure(e)

        return await self._submit(
            origin=LoginState.two_factor_verify_required,
            request=lambda: self._client.verify_two_factor_login(
                email=challenge.pending_email, code=code
            ),
            handle=self._install,
            redirect=self._redirect_to_setup,
        )

    async def setup_two_factor(self, code: str, password: str | None = None) -> FlowResult:
        """
        Finish 2FA enrollment with the first code from the authenticator app.

        With a provisioning secret in hand the dedicated setup-verification endpoint is used;
        otherwise the login is replayed with the code and the setup flag, which needs the
        password the user typed.
        """

        challenge = self._require(LoginState.two_factor_setup_required)
        try:
            code = validate_code(code, length=self._settings.two_factor_code_length)
        except InputValidationError as e:
            return FlowResult.failure(e)

        email = challenge.pending_email
        secret = challenge.setup.secret if challenge.setup else None
        if secret:
            return await self._submit(
                origin=LoginState.two_factor_setup_required,
                request=lambda: self._client.verify_two_factor_setup(
                    email=email, code=code, secret=secret
                ),
                handle=self._install,
            )

        if not password:
            return FlowResult.failure(
                InputValidationError("Password is required to complete two-factor setup")
            )
        return await self._submit(
            origin=LoginState.two_factor_setup_required,
            request=lambda: self._client.login(
                email=email,
                password=password,
                two_factor_code=code,
                setup_two_factor=True,
            ),
            handle=lambda body: self._interpret_login(email, body),
        )

    def cancel(self) -> None:
        if self._state in _TWO_FACTOR_STATES or self._state is LoginState.submitting:
            self._seq.invalidate()
            self._challenge = None
            self._state = LoginState.anonymous
            self.loading = False
            log.info("login_cancelled")

    def require_two_factor(
        self,
        email: str,
        *,
        setup: bool = False,
        setup_payload: TwoFactorSetup | None = None,
    ) -> FlowResult:
        # Startup path: the server says the trust window lapsed for a persisted identity.
        self._seq.invalidate()
        self.loading = False
        return self._enter_challenge(email, setup_required=setup, setup=setup_payload)

    def resume(self, identity: Identity) -> FlowResult:
        # Startup path: a hydrated identity that still holds a valid 2FA window.
        self._seq.invalidate()
        self._challenge = None
        self._state = LoginState.authenticated
        self.loading = False
        return FlowResult(outcome=Outcome.authenticated, identity=identity)

    # Internals

    async def _submit(
        self,
        *,
        origin: LoginState,
        request: Callable[[], Awaitable[dict[str, Any]]],
        handle: ResponseHandler,
        redirect: Callable[[AuthenticationError], FlowResult | None] | None = None,
    ) -> FlowResult:
        ticket = self._seq.issue()
        self._state = LoginState.submitting
        self.loading = True
        try:
            try:
                body = await request()
            except AuthError as e:
                if not self._seq.is_current(ticket):
                    return SUPERSEDED
                if redirect is not None and isinstance(e, AuthenticationError):
                    redirected = redirect(e)
                    if redirected is not None:
                        return redirected
                return self._fail(e, back_to=origin)

            if not self._seq.is_current(ticket):
                log.info("login_response_discarded", ticket=ticket)
                return SUPERSEDED
            try:
                return await handle(body)
            except DataIntegrityError as e:
                # Fatal for this attempt: nothing is installed and the challenge is dropped.
                self._challenge = None
                return self._fail(e, back_to=LoginState.anonymous)
        finally:
            if self._seq.is_current(ticket):
                self.loading = False
                if self._state is LoginState.submitting:
                    self._state = origin

    async def _interpret_login(self, email: str, body: dict[str, Any]) -> FlowResult:
        if body.get("requiresTwoFactorSetup"):
            return self._enter_challenge(
                email,
                setup_required=True,
                setup=TwoFactorSetup.from_payload(body.get("twoFactorSetup")),
                message=body.get("message"),
            )
        if body.get("requiresTwoFactor"):
            return self._enter_challenge(
                email,
                setup_required=False,
                setup=TwoFactorSetup.from_payload(body.get("twoFactorSetup")),
                message=body.get("message"),
            )
        return await self._install(body)

    async def _install(self, body: dict[str, Any]) -> FlowResult:
        identity = Identity.from_payload(body)
        await self._store.set(identity)
        self._challenge = None
        self._state = LoginState.authenticated
        if self._reset_flow is not None:
            self._reset_flow.cancel()
        log.info(
            "login_succeeded",
            user=mask_email(identity.email),
            role=identity.role.value,
            offboarding=identity.offboarding_in_progress,
        )
        return FlowResult(outcome=Outcome.authenticated, identity=identity)

    def _enter_challenge(
        self,
        email: str,
        *,
        setup_required: bool,
        setup: TwoFactorSetup | None,
        message: str | None = None,
    ) -> FlowResult:
        self._challenge = TwoFactorChallenge(
            pending_email=email,
            setup_required=setup_required,
            setup=setup,
        )
        if setup_required:
            self._state = LoginState.two_factor_setup_required
            outcome = Outcome.two_factor_setup_required
        else:
            self._state = LoginState.two_factor_verify_required
            outcome = Outcome.two_factor_verify_required
        log.info("login_two_factor_required", user=mask_email(email), setup=setup_required)
        return FlowResult(outcome=outcome, message=message, setup=setup)

    def _redirect_to_setup(self, error: AuthenticationError) -> FlowResult | None:
        # The account's 2FA state changed underneath us: switch to setup instead of failing.
        if not error.requires_two_factor_setup or self._challenge is None:
            return None
        return self._enter_challenge(
            self._challenge.pending_email,
            setup_required=True,
            setup=TwoFactorSetup.from_payload(error.payload.get("twoFactorSetup")),
            message=str(error),
        )

    def _fail(self, error: AuthError, *, back_to: LoginState) -> FlowResult:
        self._state = back_to
        if back_to is LoginState.anonymous:
            self._challenge = None
        log.info("login_failed", error=str(error), kind=type(error).__name__)
        return FlowResult.failure(error)

    def _require(self, expected: LoginState) -> TwoFactorChallenge:
        if self._state is not expected or self._challenge is None:
            raise FlowStateError(f"operation requires state {expected}, current is {self._state}")
        return self._challenge

    def _teardown(self) -> None:
        self._seq.invalidate()
        self._challenge = None
        self._state = LoginState.anonymous
        self.loading = False


# --- Module Notes -----------------------------------------------------------
# State after a failed attempt is the state the attempt started from: anonymous for login,
# the 2FA state for verify/setup. Data-integrity failures always end in anonymous.
