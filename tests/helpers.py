"""Shared test utilities."""

from __future__ import annotations

import hashlib
import typing as typ

from sqlalchemy import func, select

from scenery.schema import Base

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def sha1_of(path: Path) -> str:
    """Return the hex SHA-1 digest of a file."""
    return hashlib.sha1(path.read_bytes()).hexdigest()  # noqa: S324


async def count_rows(
    session_factory: async_sessionmaker[AsyncSession], model: type[Base]
) -> int:
    """Return the number of ``model`` rows."""
    async with session_factory() as session:
        return len((await session.scalars(select(model))).all())


async def total_rows(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Return the number of rows across every table."""
    total = 0
    async with session_factory() as session:
        for table in Base.metadata.sorted_tables:
            total += await session.scalar(select(func.count()).select_from(table)) or 0
    return total


async def load[T: Base](
    session_factory: async_sessionmaker[AsyncSession], model: type[T], record_id: int
) -> T:
    """Return a fresh copy of a row, failing when it is missing."""
    async with session_factory() as session:
        record = await session.get(model, record_id)
    assert record is not None, f"{model.__name__} #{record_id} not found"
    return record
