"""Record persistence for fixtures.

``RecordStore`` is the only component that touches ORM instances. Callers
hand it a ``TypeDescriptor``, an open ``AsyncSession`` and plain field
mappings; it converts step strings into column types, flushes, and returns
primary keys. Transaction boundaries belong to the caller.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import inspect, select, update
from sqlalchemy.types import TypeDecorator

from scenery.common.time import parse_relative_time
from scenery.schema.errors import FieldValueError, RecordNotFoundError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession

    from scenery.schema.base import Base
    from scenery.schema.registry import RelationDescriptor, TypeDescriptor

_TRUE_WORDS = frozenset({"1", "true", "yes", "on", "y"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off", "n", ""})


def _parse_bool(value: str) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(value)


class RecordStore:
    """Create, update and relate records described by ``TypeDescriptor``."""

    async def fetch(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> Base | None:
        """Return the record with ``record_id`` or ``None``."""
        return await session.get(descriptor.model, record_id)

    async def load(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> Base:
        """Return the record with ``record_id``.

        Raises
        ------
        RecordNotFoundError
            If the row does not exist.

        """
        record = await self.fetch(session, descriptor, record_id)
        if record is None:
            raise RecordNotFoundError(descriptor.name, record_id)
        return record

    async def create_record(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        fields: cabc.Mapping[str, object],
    ) -> int:
        """Insert a record and return its primary key."""
        record = descriptor.model(**self.coerce_fields(descriptor, fields))
        session.add(record)
        await session.flush()
        return record.id

    async def update_record(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        record_id: int,
        fields: cabc.Mapping[str, object],
    ) -> None:
        """Overwrite the given fields; versioned records move to a new draft."""
        record = await self.load(session, descriptor, record_id)
        values = self.coerce_fields(descriptor, fields)
        for key, value in values.items():
            setattr(record, key, value)
        if descriptor.versioned and values:
            record.version += 1
        await session.flush()

    async def delete_record(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> None:
        """Delete the record from every stage."""
        record = await self.load(session, descriptor, record_id)
        await session.delete(record)
        await session.flush()

    async def query_first(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        field: str,
        value: object,
    ) -> Base | None:
        """Return the lowest-id record whose ``field`` equals ``value``."""
        model = descriptor.model
        try:
            coerced = self.coerce_value(descriptor, field, value)
        except FieldValueError:
            return None
        return await session.scalar(
            select(model)
            .where(getattr(model, field) == coerced)
            .order_by(model.id)
            .limit(1)
        )

    async def add_to_collection(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        owner_id: int,
        relation: RelationDescriptor,
        target_id: int,
    ) -> bool:
        """Append a record to a to-many relation unless already present.

        Returns
        -------
        bool
            ``True`` when the collection changed.

        """
        owner = await self.load(session, descriptor, owner_id)
        target = await session.get(relation.target, target_id)
        if target is None:
            raise RecordNotFoundError(relation.target.__name__, target_id)
        collection = await getattr(owner.awaitable_attrs, relation.name)
        if target in collection:
            return False
        collection.append(target)
        await session.flush()
        return True

    async def collection_ids(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        owner_id: int,
        relation: RelationDescriptor,
    ) -> list[int]:
        """Return ids on a to-many relation in load order."""
        owner = await self.load(session, descriptor, owner_id)
        collection = await getattr(owner.awaitable_attrs, relation.name)
        return [item.id for item in collection]

    async def set_foreign_key(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        owner_id: int,
        relation: RelationDescriptor,
        target_id: int | None,
    ) -> None:
        """Point a to-one relation at ``target_id`` via its foreign key."""
        if relation.foreign_key is None:
            msg = f"{descriptor.name}.{relation.name} has no foreign key column"
            raise ValueError(msg)
        await self.update_record(
            session, descriptor, owner_id, {relation.foreign_key: target_id}
        )

    async def set_timestamp(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        record_id: int,
        column: str,
        value: dt.datetime,
    ) -> None:
        """Write ``created`` or ``last_edited`` without bumping ``last_edited``."""
        record = await self.load(session, descriptor, record_id)
        values: dict[str, object] = {column: value}
        if column != "last_edited" and "last_edited" in descriptor.columns:
            values["last_edited"] = record.last_edited
        model = descriptor.model
        await session.execute(
            update(model)
            .where(model.id == record_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        session.expire(record)

    async def publish(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> None:
        """Copy the draft version to the live stage."""
        record = await self.load(session, descriptor, record_id)
        record.live_version = record.version
        await session.flush()

    async def unpublish(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> None:
        """Remove the record from the live stage, keeping the draft."""
        record = await self.load(session, descriptor, record_id)
        record.live_version = None
        await session.flush()

    async def relative_link(
        self, session: AsyncSession, descriptor: TypeDescriptor, record_id: int
    ) -> str | None:
        """Return the record's site-relative link, or ``None`` if it has none."""
        record = await self.load(session, descriptor, record_id)
        if not hasattr(record, "relative_link"):
            return None
        parent_link = None
        parent_id = getattr(record, "parent_id", None)
        if parent_id is not None:
            parent_link = await self.relative_link(session, descriptor, parent_id)
        return record.relative_link(parent_link)

    def coerce_fields(
        self, descriptor: TypeDescriptor, fields: cabc.Mapping[str, object]
    ) -> dict[str, object]:
        """Convert every value in ``fields`` to its column's Python type."""
        return {
            key: self.coerce_value(descriptor, key, value)
            for key, value in fields.items()
        }

    def coerce_value(
        self, descriptor: TypeDescriptor, field: str, value: object
    ) -> object:
        """Convert a step string to the Python type of ``field``'s column.

        Non-string values pass through untouched.
        """
        if not isinstance(value, str):
            return value
        column = inspect(descriptor.model).columns[field]
        column_type = column.type
        if isinstance(column_type, TypeDecorator):
            column_type = column_type.impl
        try:
            python_type = column_type.python_type
        except NotImplementedError:
            return value
        try:
            if python_type is bool:
                return _parse_bool(value)
            if python_type is int:
                return int(value)
            if python_type is float:
                return float(value)
            if python_type is dt.datetime:
                return parse_relative_time(value)
        except ValueError as exc:
            raise FieldValueError(descriptor.name, field, value) from exc
        return value
