"""Forward references between fixtures.

A value written as ``=>Type.Identifier`` stands for the primary key of a
fixture declared elsewhere in the scenario. References stay raw on the
``FixtureRecord`` and are resolved only when a record is written.
"""

from __future__ import annotations

import typing as typ

from scenery.fixtures.errors import UnknownTypeError, UnresolvedReferenceError

if typ.TYPE_CHECKING:
    from scenery.fixtures.mapping import TypeFieldMapper

REFERENCE_MARKER = "=>"


class _IdLookup(typ.Protocol):
    def get_id(self, type_name: str, identifier: str) -> int: ...


def is_reference(value: object) -> bool:
    """Return True when ``value`` is a ``=>Type.Identifier`` token."""
    return isinstance(value, str) and value.startswith(REFERENCE_MARKER)


def parse_reference(value: str) -> tuple[str, str]:
    """Split a reference token into ``(type text, identifier)``.

    Raises
    ------
    UnresolvedReferenceError
        If the token has no ``.`` separator or an empty part.

    """
    body = value.removeprefix(REFERENCE_MARKER).strip()
    type_text, dot, identifier = body.partition(".")
    if not dot or not type_text or not identifier:
        raise UnresolvedReferenceError(
            type_text or body, identifier, "expected =>Type.Identifier"
        )
    return type_text, identifier


def split_references(value: object) -> list[object]:
    """Return the individual items of a to-many relation value.

    Lists are returned as-is; strings are split on commas.
    """
    if isinstance(value, list | tuple):
        return list(value)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


class ReferenceResolver:
    """Substitute ``=>Type.Identifier`` tokens with persisted ids."""

    def __init__(self, fixtures: _IdLookup, mapper: TypeFieldMapper) -> None:
        """Resolve through ``fixtures.get_id`` with types named via ``mapper``."""
        self._fixtures = fixtures
        self._mapper = mapper

    def resolve(self, value: typ.Any) -> typ.Any:  # noqa: ANN401
        """Return ``value`` with any reference replaced by its id.

        Lists are resolved element-wise. Values that are not references,
        including strings that merely contain a dot, come back unchanged.
        """
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        if not is_reference(value):
            return value
        type_text, identifier = parse_reference(value)
        try:
            descriptor = self._mapper.type_to_schema_class(type_text)
        except UnknownTypeError as exc:
            raise UnresolvedReferenceError(
                type_text, identifier, "unknown type"
            ) from exc
        return self._fixtures.get_id(descriptor.name, identifier)
