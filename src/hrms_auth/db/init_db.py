"""
hrms_auth.db.init_db

Local storage initialization.

Responsibilities:
- Create the storage table on first start of a host process.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from hrms_auth.db.models import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Create tables if they don't exist. The schema is a single key/value table, so
    there is no migration workflow.
    """

    # Use a transactional DDL block when supported by the backend.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
