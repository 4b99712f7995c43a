"""Fixture factory: named records, write-time references and relations.

The factory keeps an in-memory index of ``FixtureRecord`` objects keyed by
``(type, identifier)`` and writes them through ``RecordStore``. Field values
are stored raw and ``=>Type.Identifier`` references are resolved only when a
record is written, so fixtures may point at records declared earlier in the
same scenario without any global resolution pass.

Every public write runs inside :meth:`FixtureFactory.transaction`. A failure
rolls back both the database and the in-memory index; files already copied
into the asset store stay in the ledger so teardown still removes them.
"""

from __future__ import annotations

import contextlib
import typing as typ

from scenery.fixtures.errors import (
    AmbiguousRelationError,
    DuplicateFixtureError,
    NoRelationFoundError,
    UnknownFieldError,
    UnknownTypeError,
    UnresolvedReferenceError,
)
from scenery.fixtures.mapping import TypeFieldMapper
from scenery.fixtures.records import FixtureRecord
from scenery.fixtures.references import (
    ReferenceResolver,
    is_reference,
    split_references,
)
from scenery.logging import get_logger, log_info
from scenery.schema.registry import RELATION_PRIORITY
from scenery.schema.store import RecordStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from scenery.assets.materializer import AssetMaterializer
    from scenery.schema.registry import (
        RelationDescriptor,
        TypeDescriptor,
        TypeRegistry,
    )

logger = get_logger(__name__)

type FieldMap = cabc.Mapping[str, typ.Any]


class FixtureFactory:
    """Create, update and relate named fixtures for one scenario.

    Parameters
    ----------
    registry
        Types that fixtures may be declared as.
    session_factory
        Opens the ``AsyncSession`` each transaction runs in.
    materializer
        Stores file content for file-like and folder-like types. Without
        one, file fixtures are written as plain rows.
    strict_relations
        When True, :meth:`assign_relation` refuses to guess between several
        candidate relations.

    """

    def __init__(
        self,
        registry: TypeRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        materializer: AssetMaterializer | None = None,
        records: RecordStore | None = None,
        strict_relations: bool = True,
    ) -> None:
        """Bind the factory to a registry and a session factory."""
        self.registry = registry
        self.mapper = TypeFieldMapper(registry)
        self.resolver = ReferenceResolver(self, self.mapper)
        self.records = records or RecordStore()
        self.materializer = materializer
        self.strict_relations = strict_relations
        self._session_factory = session_factory
        self._fixtures: dict[tuple[str, str], FixtureRecord] = {}
        self._session: AsyncSession | None = None

    def __len__(self) -> int:
        """Return the number of declared fixtures."""
        return len(self._fixtures)

    def __iter__(self) -> cabc.Iterator[FixtureRecord]:
        """Iterate fixtures in declaration order."""
        return iter(list(self._fixtures.values()))

    @contextlib.asynccontextmanager
    async def transaction(self) -> cabc.AsyncIterator[AsyncSession]:
        """Run the enclosed writes as one database transaction.

        Nested use joins the outer transaction. When the outermost block
        raises, the database transaction rolls back and the fixture index is
        restored to its state on entry.
        """
        if self._session is not None:
            yield self._session
            return
        saved = {key: record.copy() for key, record in self._fixtures.items()}
        async with self._session_factory() as session:
            self._session = session
            try:
                async with session.begin():
                    yield session
            except BaseException:
                self._fixtures = saved
                raise
            finally:
                self._session = None

    def descriptor(self, type_name: str) -> TypeDescriptor:
        """Return the descriptor for a registry name or natural-language type."""
        if type_name in self.registry:
            return self.registry.get(type_name)
        return self.mapper.type_to_schema_class(type_name)

    def get(self, type_name: str, identifier: str) -> FixtureRecord | None:
        """Return the fixture declared as ``(type_name, identifier)``, if any."""
        record = self._fixtures.get((type_name, identifier))
        if record is not None:
            return record
        try:
            name = self.descriptor(type_name).name
        except UnknownTypeError:
            return None
        return self._fixtures.get((name, identifier))

    def get_id(self, type_name: str, identifier: str) -> int:
        """Return the database id of a persisted fixture.

        Raises
        ------
        UnresolvedReferenceError
            If the fixture was never declared or is not persisted yet.

        """
        record = self.get(type_name, identifier)
        if record is None:
            raise UnresolvedReferenceError(
                type_name, identifier, "no matching fixture found"
            )
        if record.persisted_id is None:
            raise UnresolvedReferenceError(type_name, identifier, "not persisted")
        return record.persisted_id

    async def create_object(
        self,
        type_name: str,
        identifier: str,
        fields: FieldMap | None = None,
        *,
        materialize: bool = True,
    ) -> FixtureRecord:
        """Declare and persist a new fixture.

        Raises
        ------
        DuplicateFixtureError
            If ``(type_name, identifier)`` is already declared.
        UnknownFieldError
            If a field is neither a column nor a relation of the type.

        """
        descriptor = self.descriptor(type_name)
        if (descriptor.name, identifier) in self._fixtures:
            raise DuplicateFixtureError(descriptor.name, identifier)
        raw = self.mapper.map_field_aliases(descriptor, fields or {})
        async with self.transaction() as session:
            values = dict(raw)
            if materialize and descriptor.is_file_like and self.materializer:
                values = await self.materializer.materialize(
                    session, descriptor, identifier, values
                )
            record = FixtureRecord(descriptor.name, identifier, dict(raw))
            record.persisted_id = await self._write(
                session, descriptor, identifier, values, None
            )
            self._fixtures[record.key] = record
        log_info(
            logger,
            "Created fixture %s.%s (id=%s)",
            descriptor.name,
            identifier,
            record.persisted_id,
        )
        return record

    async def update(
        self, record: FixtureRecord, fields: FieldMap, *, materialize: bool = True
    ) -> FixtureRecord:
        """Overwrite the given fields of ``record``, leaving the rest as they are.

        File and folder fixtures are stored again from the merged fields, so
        a new ``filename`` is copied and re-hashed before the row changes.
        """
        descriptor = self.registry.get(record.type)
        raw = self.mapper.map_field_aliases(descriptor, fields)
        async with self.transaction() as session:
            values = dict(raw)
            if materialize and descriptor.is_file_like and self.materializer:
                merged = record.merged(raw)
                stored = await self.materializer.materialize(
                    session, descriptor, record.identifier, merged
                )
                values = {
                    key: value
                    for key, value in stored.items()
                    if key in raw or key not in merged
                }
            record.persisted_id = await self._write(
                session, descriptor, record.identifier, values, record.persisted_id
            )
            record.fields.update(raw)
        return record

    async def upsert(
        self,
        type_name: str,
        identifier: str,
        fields: FieldMap | None = None,
        *,
        materialize: bool = True,
    ) -> FixtureRecord:
        """Update the fixture if declared, otherwise create it."""
        existing = self.get(type_name, identifier)
        if existing is not None:
            return await self.update(existing, fields or {}, materialize=materialize)
        return await self.create_object(
            type_name, identifier, fields, materialize=materialize
        )

    async def get_or_create(self, type_name: str, identifier: str) -> FixtureRecord:
        """Return the declared fixture, creating a bare one when absent."""
        existing = self.get(type_name, identifier)
        if existing is not None:
            return existing
        return await self.create_object(type_name, identifier)

    async def assign_relation(
        self,
        owner: FixtureRecord,
        related_type: str,
        target_id: int,
        relation_name: str | None = None,
    ) -> RelationDescriptor:
        """Link record ``target_id`` of ``related_type`` to ``owner``.

        To-many relations gain the target once; to-one relations have their
        foreign key set. Returns the relation used.

        Raises
        ------
        NoRelationFoundError
            If no relation on the owner accepts the related type.
        AmbiguousRelationError
            If several relations match, none was named, and the factory is
            strict.

        """
        owner_descriptor = self.registry.get(owner.type)
        related = self.descriptor(related_type)
        relation = self.find_relation(owner_descriptor, related, relation_name)
        owner_id = self.get_id(owner.type, owner.identifier)
        async with self.transaction() as session:
            await self._link(session, owner_descriptor, owner_id, relation, target_id)
        return relation

    def find_relation(
        self,
        owner: TypeDescriptor,
        related: TypeDescriptor,
        relation_name: str | None = None,
    ) -> RelationDescriptor:
        """Pick the relation on ``owner`` that holds ``related`` records.

        A named relation must exist and accept the type. Without a name,
        candidates are ranked many-many, has-many, has-one.
        """
        if relation_name:
            name = self.mapper.map_field_name(owner, relation_name)
            relation = owner.relation(name)
            if relation is None or not relation.accepts(related.model):
                raise NoRelationFoundError(owner.name, related.name, relation_name)
            return relation
        candidates = [
            relation
            for kind in RELATION_PRIORITY
            for relation in owner.relations_of(kind)
            if relation.accepts(related.model)
        ]
        if not candidates:
            raise NoRelationFoundError(owner.name, related.name)
        if self.strict_relations and len(candidates) > 1:
            raise AmbiguousRelationError(
                owner.name, related.name, [relation.name for relation in candidates]
            )
        return candidates[0]

    async def _link(
        self,
        session: AsyncSession,
        owner: TypeDescriptor,
        owner_id: int,
        relation: RelationDescriptor,
        target_id: int,
    ) -> None:
        if relation.kind.is_to_many:
            await self.records.add_to_collection(
                session, owner, owner_id, relation, target_id
            )
        else:
            await self.records.set_foreign_key(
                session, owner, owner_id, relation, target_id
            )

    async def _write(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        identifier: str,
        fields: FieldMap,
        record_id: int | None,
    ) -> int:
        columns: dict[str, typ.Any] = {}
        to_many: list[tuple[RelationDescriptor, typ.Any]] = []
        for key, value in fields.items():
            if key == "filename" and descriptor.is_file_like:
                columns["file_filename"] = value
                continue
            if key in descriptor.columns:
                columns[key] = self.resolver.resolve(value)
                continue
            relation = descriptor.relation(key)
            if relation is None:
                raise UnknownFieldError(descriptor.name, key)
            if relation.kind.is_to_many:
                to_many.append((relation, value))
            elif relation.foreign_key is not None:
                columns[relation.foreign_key] = self._related_id(relation, value)
        explicit_id = columns.pop("id", None)
        if record_id is None and explicit_id is not None:
            record_id = int(explicit_id)
        if record_id is None:
            title_field = descriptor.title_field
            if title_field is not None:
                columns.setdefault(title_field, identifier)
            record_id = await self.records.create_record(session, descriptor, columns)
        elif columns:
            await self.records.update_record(session, descriptor, record_id, columns)
        for relation, value in to_many:
            for item in split_references(value):
                await self.records.add_to_collection(
                    session,
                    descriptor,
                    record_id,
                    relation,
                    self._related_id(relation, item),
                )
        return record_id

    def _related_id(self, relation: RelationDescriptor, value: object) -> int | None:
        if value is None or value == "":
            return None
        if is_reference(value):
            return self.resolver.resolve(value)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        raise UnresolvedReferenceError(
            relation.target.__name__, str(value), "expected =>Type.Identifier"
        )
