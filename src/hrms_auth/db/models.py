"""
hrms_auth.db.models

Durable local storage schema.

Responsibilities:
- Define the key/value table that backs the persisted session
  (the equivalent of browser local storage for a desktop/CLI host).
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(tz=UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class StorageEntry(Base):
    __tablename__ = "local_storage"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    # JSON text for the identity, raw string for the bearer token.
    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


# --- Module Notes -----------------------------------------------------------
# Keys are fixed by the session store (`hrms_user`, `hrms_token`); rows for both are
# always written and deleted in the same transaction.
