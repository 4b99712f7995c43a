"""SQLAlchemy schema, type registry and record persistence."""

from __future__ import annotations

from .base import Base, Timestamped, UTCDateTime, Versioned, empty_tables, init_schema
from .errors import FieldValueError, RecordNotFoundError, SchemaError
from .permissions import DEFAULT_PERMISSIONS, PermissionCatalogue, PermissionDetails
from .registry import (
    RELATION_PRIORITY,
    AssetKind,
    RelationDescriptor,
    RelationKind,
    TypeDescriptor,
    TypeRegistry,
    build_cms_registry,
)
from .store import RecordStore

__all__ = [
    "DEFAULT_PERMISSIONS",
    "RELATION_PRIORITY",
    "AssetKind",
    "Base",
    "FieldValueError",
    "PermissionCatalogue",
    "PermissionDetails",
    "RecordNotFoundError",
    "RecordStore",
    "RelationDescriptor",
    "RelationKind",
    "SchemaError",
    "Timestamped",
    "TypeDescriptor",
    "TypeRegistry",
    "UTCDateTime",
    "Versioned",
    "build_cms_registry",
    "empty_tables",
    "init_schema",
]
