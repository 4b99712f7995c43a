"""Errors raised while building and resolving fixtures."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class FixtureError(Exception):
    """Base class for fixture errors."""


class UnknownTypeError(FixtureError, LookupError):
    """Raised when a natural-language type name matches no registered type."""

    def __init__(self, type_text: str) -> None:
        """Initialise with the unmatched type text."""
        self.type_text = type_text
        super().__init__(f"Class {type_text!r} not found")


class DuplicateFixtureError(FixtureError):
    """Raised when a ``(type, identifier)`` pair is created twice."""

    def __init__(self, type_name: str, identifier: str) -> None:
        """Initialise with the duplicated pair."""
        self.type_name = type_name
        self.identifier = identifier
        super().__init__(f"Fixture {type_name}.{identifier} already exists")


class UnresolvedReferenceError(FixtureError, LookupError):
    """Raised when a fixture reference cannot be resolved to a persisted id."""

    def __init__(self, type_name: str, identifier: str, reason: str = "") -> None:
        """Initialise with the missing pair and an optional reason."""
        self.type_name = type_name
        self.identifier = identifier
        self.reason = reason
        message = f"Cannot resolve reference {type_name}.{identifier}"
        super().__init__(f"{message}: {reason}" if reason else message)


class NoRelationFoundError(FixtureError):
    """Raised when no declared relation links two types."""

    def __init__(
        self, owner_type: str, related_type: str, relation_name: str | None = None
    ) -> None:
        """Initialise with both type names and the requested relation, if any."""
        self.owner_type = owner_type
        self.related_type = related_type
        self.relation_name = relation_name
        if relation_name:
            message = (
                f"{owner_type} has no relation {relation_name!r} accepting "
                f"{related_type}"
            )
        else:
            message = f"Cannot find any relation on {owner_type} for {related_type}"
        super().__init__(message)


class AmbiguousRelationError(NoRelationFoundError):
    """Raised when several relations match and none was named."""

    def __init__(
        self, owner_type: str, related_type: str, candidates: cabc.Sequence[str]
    ) -> None:
        """Initialise with the candidate relation names."""
        self.candidates = tuple(candidates)
        FixtureError.__init__(
            self,
            f"{owner_type} has several relations for {related_type} "
            f"({', '.join(self.candidates)}); name one explicitly",
        )
        self.owner_type = owner_type
        self.related_type = related_type
        self.relation_name = None


class MissingSourceFileError(FixtureError, FileNotFoundError):
    """Raised when a file fixture has no source file to copy."""

    def __init__(self, source: str) -> None:
        """Initialise with the expected source path."""
        self.source = source
        super().__init__(f"Source file for fixture not found: {source}")


class InvalidStateTransitionError(FixtureError, ValueError):
    """Raised for a record state keyword that is not recognised."""

    def __init__(self, state: str, type_name: str | None = None) -> None:
        """Initialise with the rejected keyword."""
        self.state = state
        self.type_name = type_name
        if type_name:
            message = f"{type_name} cannot be marked {state!r}"
        else:
            message = f"Invalid record state: {state!r}"
        super().__init__(message)


class InvalidRelationKeywordError(FixtureError, ValueError):
    """Raised when a record relation keyword is neither child nor parent."""

    def __init__(self, keyword: str) -> None:
        """Initialise with the rejected keyword."""
        self.keyword = keyword
        super().__init__(f"Invalid relation {keyword!r}, expected child or parent")


class UnknownFieldError(FixtureError, KeyError):
    """Raised when a field is neither a column nor a relation of a type."""

    def __init__(self, type_name: str, field: str) -> None:
        """Initialise with the type and the unknown field."""
        self.type_name = type_name
        self.field = field
        super().__init__(f"{type_name} has no field {field!r}")

    def __str__(self) -> str:
        """Return the message without ``KeyError`` quoting."""
        return str(self.args[0])


class UnknownPermissionError(FixtureError, LookupError):
    """Raised when a permission name or code is not in the catalogue."""

    def __init__(self, permission: str) -> None:
        """Initialise with the unmatched permission text."""
        self.permission = permission
        super().__init__(f"No permission found for {permission!r}")


class FixtureSnapshotError(FixtureError):
    """Raised when a YAML fixture snapshot is malformed."""

    def __init__(self, issues: cabc.Sequence[str]) -> None:
        """Initialise with the collected issues."""
        self.issues = list(issues)
        super().__init__("; ".join(self.issues))
