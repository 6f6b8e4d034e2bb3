"""
hrms_auth.flows.impersonation

Role impersonation overlay for administrators.

Responsibilities:
- Let the employer role act as another role without losing its own identity.
- Keep the original identity in durable storage while the substitute is active.
- Restore the original identity on request or drop everything on logout.
"""

from __future__ import annotations

from hrms_auth.auth.errors import AuthError, FlowStateError
from hrms_auth.auth.models import IMPERSONATOR_ROLE, Identity, ImpersonationContext, Role
from hrms_auth.client.auth_api import AuthApiClient
from hrms_auth.flows.results import SUPERSEDED, FlowResult, Outcome
from hrms_auth.flows.sequence import RequestSequence
from hrms_auth.observability.logging import get_logger, mask_email
from hrms_auth.session.store import SessionStore

log = get_logger(__name__)


class ImpersonationOverlay:
    def __init__(self, *, store: SessionStore, client: AuthApiClient) -> None:
        self._store = store
        self._client = client
        self._context: ImpersonationContext | None = None
        self._seq = RequestSequence()
        self.loading = False
        store.on_clear(self._teardown)

    @property
    def is_impersonating(self) -> bool:
        return self._context is not None

    @property
    def original(self) -> Identity | None:
        return self._context.original if self._context else None

    async def impersonate(self, role: Role | str) -> FlowResult:
        """
        Swap the current identity for one of `role`.

        Only a current identity holding the employer role may impersonate, so a substitute
        of any other role cannot switch itself further. The first saved original is kept.
        """

        current = self._store.identity
        if current is None:
            raise FlowStateError("impersonation requires an authenticated session")
        if current.role is not IMPERSONATOR_ROLE:
            log.info(
                "impersonation_denied",
                user=mask_email(current.email),
                role=current.role.value,
            )
            return FlowResult(
                outcome=Outcome.denied,
                message="Only employers can impersonate roles.",
            )

        original = self._context.original if self._context else current
        ticket = self._seq.issue()
        self.loading = True
        try:
            target = role if isinstance(role, Role) else Role.parse(role)
            body = await self._client.impersonate(role=target.value)
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            substitute = Identity.from_payload(body, token=_bearer_of(body) or current.token)
        except AuthError as e:
            if not self._seq.is_current(ticket):
                return SUPERSEDED
            log.info("impersonation_failed", role=str(role), error=str(e))
            return FlowResult.failure(e)
        finally:
            if self._seq.is_current(ticket):
                self.loading = False

        # Memory only: storage keeps the original so a restart never resumes as the substitute.
        await self._store.set(substitute, persist=False)
        self._context = ImpersonationContext(original=original, substitute=substitute)
        log.info(
            "impersonation_started",
            user=mask_email(original.email),
            acting_as=substitute.role.value,
        )
        return FlowResult(
            outcome=Outcome.impersonating,
            message=f"You are now acting as {target.value}.",
            identity=substitute,
        )

    async def stop_impersonating(self) -> FlowResult | None:
        if self._context is None:
            return None
        original = self._context.original
        self._seq.invalidate()
        self.loading = False
        self._context = None
        await self._store.set(original, persist=False)
        log.info("impersonation_stopped", user=mask_email(original.email))
        return FlowResult(
            outcome=Outcome.restored,
            message="You are back to your original role.",
            identity=original,
        )

    def _teardown(self) -> None:
        self._seq.invalidate()
        self._context = None
        self.loading = False


def _bearer_of(body: dict) -> str | None:
    user = body.get("user")
    nested = user.get("token") if isinstance(user, dict) else None
    return body.get("token") or nested
