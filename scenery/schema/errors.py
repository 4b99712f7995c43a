"""Errors raised by the persistence layer."""

from __future__ import annotations


class SchemaError(Exception):
    """Base class for persistence errors."""


class RecordNotFoundError(SchemaError, LookupError):
    """Raised when a record id does not exist for a type."""

    def __init__(self, type_name: str, record_id: object) -> None:
        """Record the type and id that could not be loaded."""
        self.type_name = type_name
        self.record_id = record_id
        super().__init__(f"{type_name} #{record_id} does not exist")


class FieldValueError(SchemaError, ValueError):
    """Raised when a step value cannot be converted to a column's type."""

    def __init__(self, type_name: str, field: str, value: object) -> None:
        """Record the offending field and raw value."""
        self.type_name = type_name
        self.field = field
        self.value = value
        super().__init__(f"{type_name}.{field} cannot store {value!r}")
