"""Database provisioning helpers for scenario sessions."""

from __future__ import annotations

import asyncio
import typing as typ

from scenery.schema.base import empty_tables, init_schema

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from scenery.schema.registry import TypeRegistry

_SKIPPED_STATEMENTS = frozenset({"BEGIN TRANSACTION", "BEGIN", "COMMIT"})


async def provision_database(engine: AsyncEngine) -> None:
    """Create every table and delete any rows left from an earlier run."""
    await init_schema(engine)
    await reset_database(engine)


async def reset_database(engine: AsyncEngine) -> None:
    """Delete all rows, children before parents."""
    async with engine.begin() as conn:
        await empty_tables(conn)


def split_sql_statements(text: str) -> list[str]:
    """Split a data-only SQL dump into executable statements.

    Statements end with a line whose last character is ``;``. Comment lines
    and transaction control statements are dropped.
    """
    statements: list[str] = []
    buffer: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not buffer and (not stripped or stripped.startswith("--")):
            continue
        buffer.append(line)
        if stripped.endswith(";"):
            statement = "\n".join(buffer).strip().rstrip(";").strip()
            buffer.clear()
            if statement.upper() not in _SKIPPED_STATEMENTS:
                statements.append(statement)
    trailing = "\n".join(buffer).strip()
    if trailing:
        statements.append(trailing)
    return statements


async def import_sql_dump(engine: AsyncEngine, path: Path) -> int:
    """Execute a data-only SQL dump in one transaction.

    Returns
    -------
    int
        Number of statements executed.

    """
    text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    statements = split_sql_statements(text)
    async with engine.begin() as conn:
        for statement in statements:
            await conn.exec_driver_sql(statement)
    return len(statements)


async def seed_default_records(
    session_factory: async_sessionmaker[AsyncSession], registry: TypeRegistry
) -> list[str]:
    """Run each registered default-record hook in registration order.

    Returns
    -------
    list[str]
        Names of the types whose hooks ran.

    """
    seeded: list[str] = []
    async with session_factory() as session, session.begin():
        for name, hook in registry.default_record_hooks():
            await hook(session)
            seeded.append(name)
    return seeded
