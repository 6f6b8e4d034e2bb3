"""
hrms_auth.session.store

Process-wide session store (explicitly constructed, passed by reference).

Responsibilities:
- Hold the current authenticated identity.
- Persist identity + bearer token together, and clear them together.
- Hydrate from durable storage on startup without contacting the server.
- Run teardown hooks so flows drop their transient state on logout.
"""

from __future__ import annotations

import json
from collections.abc import Callable

from hrms_auth.auth.errors import DataIntegrityError
from hrms_auth.auth.models import Identity
from hrms_auth.db.repositories.storage import StorageRepo
from hrms_auth.observability.logging import get_logger, mask_email

log = get_logger(__name__)

USER_KEY = "hrms_user"
TOKEN_KEY = "hrms_token"
SESSION_KEYS = (USER_KEY, TOKEN_KEY)

TeardownHook = Callable[[], None]


class SessionStore:
    def __init__(self, *, storage: StorageRepo) -> None:
        self._storage = storage
        self._identity: Identity | None = None
        self._teardown_hooks: list[TeardownHook] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def current_token(self) -> str | None:
        # Used as the API client's token provider.
        return self._identity.token if self._identity else None

    def on_clear(self, hook: TeardownHook) -> None:
        self._teardown_hooks.append(hook)

    async def hydrate(self) -> Identity | None:
        stored = await self._storage.get_many(SESSION_KEYS)
        raw_user = stored.get(USER_KEY)
        token = stored.get(TOKEN_KEY)

        if not raw_user and not token:
            self._identity = None
            return None

        if not raw_user or not token:
            # An orphaned half is an invalid state; purge it rather than guess.
            log.warning(
                "orphaned_session_entry_purged",
                has_user=bool(raw_user),
                has_token=bool(token),
            )
            await self._storage.delete_many(SESSION_KEYS)
            self._identity = None
            return None

        try:
            data = json.loads(raw_user)
            if not isinstance(data, dict):
                raise DataIntegrityError("persisted identity is not an object")
            identity = Identity.from_payload(data, token=token)
        except (ValueError, TypeError, DataIntegrityError) as e:
            log.warning("persisted_session_unreadable", error=str(e))
            await self._storage.delete_many(SESSION_KEYS)
            self._identity = None
            return None

        self._identity = identity
        log.info("session_hydrated", user=mask_email(identity.email), role=identity.role.value)
        return identity

    async def set(self, identity: Identity, *, persist: bool = True) -> None:
        if persist:
            # Write first: a failed write must leave the in-memory identity untouched.
            await self._storage.put_many(
                {
                    USER_KEY: json.dumps(identity.to_storage()),
                    TOKEN_KEY: identity.token,
                }
            )
        self._identity = identity
        log.info(
            "session_identity_set",
            user=mask_email(identity.email),
            role=identity.role.value,
            persisted=persist,
        )

    async def clear(self) -> None:
        self._identity = None
        for hook in self._teardown_hooks:
            hook()
        await self._storage.delete_many(SESSION_KEYS)
        log.info("session_cleared")


# --- Module Notes -----------------------------------------------------------
# Durable storage is mutated only through `set` and `clear`; every other component reads
# the identity through this object.
