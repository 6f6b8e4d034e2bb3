"""
hrms_auth.services.auth_service

Composition root for the auth core (session lifecycle owner).

Responsibilities:
- Build the storage, the API client, the session store and every flow, wired by reference.
- Startup: hydrate the persisted session, then let the server decide whether the 2FA
  trust window still holds.
- Logout and current-user refresh.
- Dispose the HTTP client and the storage engine on shutdown.
"""

from __future__ import annotations

from dataclasses import replace

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from hrms_auth.auth.errors import AuthenticationError, AuthError, FlowStateError, TransportError
from hrms_auth.auth.models import Identity
from hrms_auth.auth.trust import is_required_now
from hrms_auth.client.auth_api import AuthApiClient, create_http_client
from hrms_auth.db.init_db import init_db
from hrms_auth.db.repositories.storage import StorageRepo
from hrms_auth.db.session import create_engine, create_sessionmaker
from hrms_auth.flows.credential import CredentialFlow
from hrms_auth.flows.impersonation import ImpersonationOverlay
from hrms_auth.flows.password_reset import PasswordResetFlow
from hrms_auth.flows.results import FlowResult, Outcome
from hrms_auth.observability.logging import get_logger, mask_email
from hrms_auth.services.account_service import AccountService
from hrms_auth.session.store import SessionStore
from hrms_auth.settings import Settings

log = get_logger(__name__)


class AuthService:
    """
    One instance per host process. The host constructs it, awaits `startup()` and then
    drives the flows exposed as attributes:

    - `login`: credential flow (login, 2FA setup/verification)
    - `password_reset`: reset flow (works without a session)
    - `impersonation`: role impersonation overlay
    - `account`: authenticated account changes
    """

    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient | None = None,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._settings = settings
        self._owns_http = http is None
        self._http = http or create_http_client(settings)
        self._owns_engine = engine is None
        self._engine = engine or create_engine(settings)

        self.store = SessionStore(storage=StorageRepo(create_sessionmaker(self._engine)))
        self.client = AuthApiClient(http=self._http, token_provider=self.store.current_token)
        self.password_reset = PasswordResetFlow(client=self.client, settings=settings)
        self.login = CredentialFlow(
            store=self.store,
            client=self.client,
            settings=settings,
            reset_flow=self.password_reset,
        )
        self.impersonation = ImpersonationOverlay(store=self.store, client=self.client)
        self.account = AccountService(
            store=self.store,
            client=self.client,
            settings=settings,
            is_impersonating=lambda: self.impersonation.is_impersonating,
        )

    @property
    def identity(self) -> Identity | None:
        return self.store.identity

    @property
    def is_authenticated(self) -> bool:
        return self.store.is_authenticated

    async def startup(self) -> FlowResult | None:
        """
        Restore the persisted session, if any, and re-check 2FA with the server.

        Returns None when there is nothing to restore, otherwise the resulting credential
        state: authenticated, 2FA required (session cleared) or failed (session cleared).
        """

        await init_db(self._engine)
        identity = await self.store.hydrate()
        if identity is None:
            return None

        try:
            requirement = await self.client.check_two_factor_requirement()
        except TransportError as e:
            # Offline start: fall back to the locally recorded trust window.
            log.warning("two_factor_recheck_unavailable", error=str(e))
            if is_required_now(identity):
                return await self._force_two_factor(identity, setup=False)
            return self.login.resume(identity)
        except AuthenticationError as e:
            # The server rejected the persisted credential.
            log.info("persisted_session_rejected", status_code=e.status_code)
            await self.store.clear()
            return FlowResult.failure(e)

        if requirement.requires_two_factor or requirement.requires_two_factor_setup:
            return await self._force_two_factor(
                identity, setup=requirement.requires_two_factor_setup
            )

        if requirement.two_factor_expires_at is not None:
            identity = replace(
                identity,
                two_factor_verified=requirement.two_factor_verified,
                two_factor_expires_at=requirement.two_factor_expires_at,
            )
            await self.store.set(identity)
        return self.login.resume(identity)

    async def logout(self) -> FlowResult:
        user = self.store.identity
        await self.store.clear()
        log.info("logout", user=mask_email(user.email) if user else None)
        return FlowResult(
            outcome=Outcome.logged_out,
            message="You have been successfully logged out",
        )

    async def refresh_user(self) -> FlowResult:
        """
        Replace the identity with the server's latest snapshot.

        The current-user endpoint does not report the 2FA trust attributes; the values
        already held are kept unless the token's claims say otherwise.
        """

        current = self.store.identity
        if current is None:
            raise FlowStateError("refresh requires an authenticated session")
        if self.impersonation.is_impersonating:
            raise FlowStateError("refresh is not available while impersonating")

        try:
            body = await self.client.current_user()
            fresh = Identity.from_payload(body, token=current.token)
        except AuthError as e:
            log.info("refresh_user_failed", error=str(e))
            return FlowResult.failure(e)

        if fresh.two_factor_expires_at is None:
            fresh = replace(
                fresh,
                two_factor_verified=current.two_factor_verified,
                two_factor_expires_at=current.two_factor_expires_at,
            )
        await self.store.set(fresh)
        return FlowResult(outcome=Outcome.refreshed, identity=fresh)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
        if self._owns_engine:
            await self._engine.dispose()

    async def _force_two_factor(self, identity: Identity, *, setup: bool) -> FlowResult:
        # Clearing runs the flows' teardown hooks, so the challenge is entered afterwards.
        await self.store.clear()
        log.info("two_factor_recheck_required", user=mask_email(identity.email), setup=setup)
        return self.login.require_two_factor(identity.email, setup=setup)


# --- Module Notes -----------------------------------------------------------
# The persisted identity is dropped when the server demands 2FA again: a lapsed trust window
# must not leave a usable bearer credential in storage.
