"""In-memory fixture records."""

from __future__ import annotations

import dataclasses as dc
import typing as typ


@dc.dataclass(slots=True)
class FixtureRecord:
    """A named fixture declared by a scenario.

    ``fields`` keeps raw step values, including unresolved ``=>`` references,
    so they can be resolved when the record is written.
    """

    type: str
    identifier: str
    fields: dict[str, typ.Any] = dc.field(default_factory=dict)
    persisted_id: int | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Return the ``(type, identifier)`` index key."""
        return (self.type, self.identifier)

    def merged(self, fields: typ.Mapping[str, typ.Any]) -> dict[str, typ.Any]:
        """Return current fields overlaid with ``fields``."""
        return {**self.fields, **fields}

    def copy(self) -> FixtureRecord:
        """Return an independent copy for rollback snapshots."""
        return dc.replace(self, fields=dict(self.fields))
