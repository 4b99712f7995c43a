"""Declarative base, column types, and mixins for the CMS schema.

Models stick to portable SQLAlchemy types so scenarios run against SQLite
by default and PostgreSQL when ``SCENERY_DATABASE_URL`` points at one.
Class attributes prefixed ``__scenery_`` carry the display metadata the
``TypeRegistry`` reads when a model is registered.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import DateTime, Integer, delete
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from scenery.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


class Base(AsyncAttrs, DeclarativeBase):
    """Base declarative class for every scenery record type."""

    metadata: typ.Any


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Store naive values as UTC and convert aware ones to UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class Timestamped:
    """Adds ``created`` and ``last_edited`` columns maintained on write."""

    created: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    last_edited: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


class Versioned:
    """Draft/live versioning.

    ``version`` increments on every write through ``RecordStore``;
    ``live_version`` is the version last published, or ``None`` while the
    record only exists on the draft stage.
    """

    __scenery_versioned__ = True

    version: Mapped[int] = mapped_column(Integer, default=1)
    live_version: Mapped[int | None] = mapped_column(Integer, default=None)

    @property
    def is_published(self) -> bool:
        """Return True when a version has been copied to the live stage."""
        return self.live_version is not None

    @property
    def is_modified_on_draft(self) -> bool:
        """Return True when the draft has moved past the live version."""
        return self.live_version is not None and self.version > self.live_version


async def init_schema(engine: AsyncEngine) -> None:
    """Create every table registered on ``Base`` if absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def empty_tables(conn: AsyncConnection) -> None:
    """Delete all rows, children before parents, leaving the schema intact."""
    for table in reversed(Base.metadata.sorted_tables):
        await conn.execute(delete(table))
