"""
hrms_auth.db.repositories.storage

Repository for `StorageEntry` rows.

Responsibilities:
- Read several keys at once.
- Write or delete several keys atomically (one transaction per call).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms_auth.db.models import StorageEntry


class StorageRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_many(self, keys: Iterable[str]) -> dict[str, str]:
        wanted = list(keys)
        async with self._session_factory() as session:
            stmt = select(StorageEntry).where(StorageEntry.key.in_(wanted))
            rows = (await session.execute(stmt)).scalars().all()
        return {row.key: row.value for row in rows}

    async def put_many(self, values: Mapping[str, str]) -> None:
        # All-or-nothing: either every key is written or none is.
        async with self._session_factory() as session, session.begin():
            for key, value in values.items():
                entry = await session.get(StorageEntry, key)
                if entry is None:
                    session.add(StorageEntry(key=key, value=value))
                else:
                    entry.value = value

    async def delete_many(self, keys: Iterable[str]) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(StorageEntry).where(StorageEntry.key.in_(list(keys))))


# --- Module Notes -----------------------------------------------------------
# Only `session.store.SessionStore` uses this repository; other components read the
# current identity through the store and never touch storage.
