"""Explicit registry of fixture-capable record types.

Each registered model is introspected once, at startup, into a
``TypeDescriptor`` carrying its columns, display labels, relations and
default-record hook. Everything downstream (type mapping, relation
assignment, default seeding) reads descriptors instead of reflecting on
classes at step time.

Examples
--------
>>> registry = build_cms_registry()
>>> registry.get("Page").relation("parent").kind
<RelationKind.HAS_ONE: 'has_one'>

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import typing as typ

from sqlalchemy import inspect
from sqlalchemy.orm import RelationshipDirection, configure_mappers

from scenery.schema.base import Base, Versioned
from scenery.schema.cms import CMS_MODELS

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

type DefaultRecordsHook = cabc.Callable[[AsyncSession], cabc.Awaitable[None]]

_DISCRIMINATOR = "class_name"


class RelationKind(enum.StrEnum):
    """Cardinality of a relation as seen from its owning type."""

    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    MANY_MANY = "many_many"

    @property
    def is_to_many(self) -> bool:
        """Return True for collection-valued relations."""
        return self is not RelationKind.HAS_ONE


RELATION_PRIORITY: tuple[RelationKind, ...] = (
    RelationKind.MANY_MANY,
    RelationKind.HAS_MANY,
    RelationKind.HAS_ONE,
)

_DIRECTION_KINDS = {
    RelationshipDirection.MANYTOONE: RelationKind.HAS_ONE,
    RelationshipDirection.ONETOMANY: RelationKind.HAS_MANY,
    RelationshipDirection.MANYTOMANY: RelationKind.MANY_MANY,
}


class AssetKind(enum.StrEnum):
    """Marks types whose fixtures are backed by the asset store."""

    FILE = "file"
    FOLDER = "folder"


@dc.dataclass(frozen=True, slots=True)
class RelationDescriptor:
    """A named relation declared on a type."""

    name: str
    kind: RelationKind
    target: type[Base]
    foreign_key: str | None = None

    def accepts(self, model: type[Base]) -> bool:
        """Return True when records of ``model`` can sit on this relation."""
        return issubclass(model, self.target)


@dc.dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Everything the fixture layer needs to know about one record type.

    Attributes
    ----------
    name
        Registry key; the model class name, e.g. ``"RedirectorPage"``.
    model
        The SQLAlchemy mapped class.
    singular_name, plural_name
        Display names matched against natural-language step text.
    columns
        Attribute names that may be written directly.
    field_labels
        Canonical attribute name to display label.
    relations
        Relations in declaration order.
    asset_kind
        ``FILE`` or ``FOLDER`` for asset-backed types, otherwise ``None``.
    default_records
        Hook seeding default rows, or ``None``.

    """

    name: str
    model: type[Base]
    singular_name: str
    plural_name: str
    columns: tuple[str, ...]
    field_labels: cabc.Mapping[str, str]
    relations: tuple[RelationDescriptor, ...]
    asset_kind: AssetKind | None = None
    versioned: bool = False
    default_records: DefaultRecordsHook | None = None

    @property
    def is_file_like(self) -> bool:
        """Return True for file and folder types."""
        return self.asset_kind is not None

    @property
    def is_folder_like(self) -> bool:
        """Return True for folder types."""
        return self.asset_kind is AssetKind.FOLDER

    @property
    def title_field(self) -> str | None:
        """Return the column used as the record's human readable label."""
        for candidate in ("title", "name"):
            if candidate in self.columns:
                return candidate
        return None

    @property
    def searchable_field(self) -> str:
        """Return the column used to find existing records by value."""
        for candidate in ("name", "title"):
            if candidate in self.columns:
                return candidate
        return "id"

    def relation(self, name: str) -> RelationDescriptor | None:
        """Return the relation called ``name`` if declared."""
        return next((rel for rel in self.relations if rel.name == name), None)

    def relations_of(self, kind: RelationKind) -> tuple[RelationDescriptor, ...]:
        """Return relations of one kind in declaration order."""
        return tuple(rel for rel in self.relations if rel.kind is kind)


class TypeRegistry:
    """Name-indexed collection of ``TypeDescriptor`` objects."""

    def __init__(self) -> None:
        """Start with no registered types."""
        self._types: dict[str, TypeDescriptor] = {}

    def __contains__(self, name: object) -> bool:
        """Return True when ``name`` is a registered type name."""
        return name in self._types

    def __iter__(self) -> cabc.Iterator[TypeDescriptor]:
        """Iterate descriptors in registration order."""
        return iter(self._types.values())

    def __len__(self) -> int:
        """Return the number of registered types."""
        return len(self._types)

    def register(self, model: type[Base]) -> TypeDescriptor:
        """Introspect ``model`` and add its descriptor."""
        configure_mappers()
        mapper = inspect(model)
        columns = tuple(
            attr.key for attr in mapper.column_attrs if attr.key != _DISCRIMINATOR
        )
        relations = tuple(
            RelationDescriptor(
                name=rel.key,
                kind=_DIRECTION_KINDS[rel.direction],
                target=rel.mapper.class_,
                foreign_key=(
                    mapper.get_property_by_column(next(iter(rel.local_columns))).key
                    if rel.direction is RelationshipDirection.MANYTOONE
                    else None
                ),
            )
            for rel in mapper.relationships
        )
        name = model.__name__
        raw_kind = getattr(model, "__scenery_asset_kind__", None)
        hook = (
            getattr(model, "require_default_records")
            if "require_default_records" in vars(model)
            else None
        )
        descriptor = TypeDescriptor(
            name=name,
            model=model,
            singular_name=getattr(model, "__scenery_singular__", name),
            plural_name=getattr(model, "__scenery_plural__", f"{name}s"),
            columns=columns,
            field_labels=dict(getattr(model, "__scenery_labels__", {})),
            relations=relations,
            asset_kind=AssetKind(raw_kind) if raw_kind else None,
            versioned=issubclass(model, Versioned),
            default_records=hook,
        )
        self._types[name] = descriptor
        return descriptor

    def get(self, name: str) -> TypeDescriptor:
        """Return the descriptor registered under ``name``.

        Raises
        ------
        KeyError
            If no such type is registered.

        """
        return self._types[name]

    def for_model(self, model: type[Base]) -> TypeDescriptor:
        """Return the descriptor of ``model`` or its nearest registered base."""
        for klass in model.__mro__:
            descriptor = self._types.get(klass.__name__)
            if descriptor is not None and descriptor.model is klass:
                return descriptor
        raise KeyError(model.__name__)

    def to_one_relations(self, name: str) -> tuple[RelationDescriptor, ...]:
        """Return the ``HAS_ONE`` relations of the named type."""
        return self.get(name).relations_of(RelationKind.HAS_ONE)

    def to_many_relations(self, name: str) -> tuple[RelationDescriptor, ...]:
        """Return ``MANY_MANY`` then ``HAS_MANY`` relations of the named type."""
        descriptor = self.get(name)
        return descriptor.relations_of(RelationKind.MANY_MANY) + (
            descriptor.relations_of(RelationKind.HAS_MANY)
        )

    def default_record_hooks(self) -> list[tuple[str, DefaultRecordsHook]]:
        """Return ``(type name, hook)`` pairs in registration order."""
        return [
            (descriptor.name, descriptor.default_records)
            for descriptor in self._types.values()
            if descriptor.default_records is not None
        ]


def build_cms_registry() -> TypeRegistry:
    """Return a registry holding every model of the reference CMS schema."""
    registry = TypeRegistry()
    for model in CMS_MODELS:
        registry.register(model)
    return registry
