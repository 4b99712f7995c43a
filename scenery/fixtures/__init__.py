"""Fixture declaration, reference resolution and step operations.

Quick example::

    >>> from scenery.fixtures import FixtureFactory
    >>> factory = FixtureFactory(build_cms_registry(), session_factory)
    >>> page = await factory.create_object("Page", "home", {"Title": "Home"})
    >>> factory.resolver.resolve("=>Page.home") == page.persisted_id
    True

"""

from __future__ import annotations

from .context import FixtureContext, parse_data_pairs, table_to_fields
from .errors import (
    AmbiguousRelationError,
    DuplicateFixtureError,
    FixtureError,
    FixtureSnapshotError,
    InvalidRelationKeywordError,
    InvalidStateTransitionError,
    MissingSourceFileError,
    NoRelationFoundError,
    UnknownFieldError,
    UnknownPermissionError,
    UnknownTypeError,
    UnresolvedReferenceError,
)
from .factory import FixtureFactory
from .mapping import TypeFieldMapper
from .records import FixtureRecord
from .references import ReferenceResolver
from .snapshot import FixtureSnapshot, load_snapshot_file, load_snapshot_text

__all__ = [
    "AmbiguousRelationError",
    "DuplicateFixtureError",
    "FixtureContext",
    "FixtureError",
    "FixtureFactory",
    "FixtureRecord",
    "FixtureSnapshot",
    "FixtureSnapshotError",
    "InvalidRelationKeywordError",
    "InvalidStateTransitionError",
    "MissingSourceFileError",
    "NoRelationFoundError",
    "ReferenceResolver",
    "TypeFieldMapper",
    "UnknownFieldError",
    "UnknownPermissionError",
    "UnknownTypeError",
    "UnresolvedReferenceError",
    "load_snapshot_file",
    "load_snapshot_text",
    "parse_data_pairs",
    "table_to_fields",
]
