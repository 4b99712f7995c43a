"""YAML fixture snapshots.

A snapshot declares fixtures the way unit-test fixture files do::

    Page:
      home:
        Title: Home
      about:
        Title: About
        Parent: =>Page.home
    TaxonomyTerm:
      news:
        Name: News
        Pages: =>Page.home, =>Page.about

Type names and field labels go through ``TypeFieldMapper``. Loading a
snapshot is equivalent to calling ``create_object`` once per entry in
document order, with relation-valued keys applied through
``assign_relation``.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from scenery.fixtures.errors import FixtureSnapshotError, UnknownTypeError
from scenery.fixtures.mapping import TypeFieldMapper
from scenery.fixtures.references import (
    is_reference,
    parse_reference,
    split_references,
)

if typ.TYPE_CHECKING:
    from scenery.fixtures.factory import FixtureFactory
    from scenery.fixtures.records import FixtureRecord
    from scenery.schema.registry import TypeRegistry

YAML_VERSION = (1, 2)

_DOCUMENT_TYPE = dict[str, dict[str, dict[str, typ.Any] | None]]


@dc.dataclass(frozen=True, slots=True)
class SnapshotEntry:
    """One fixture declaration from a snapshot."""

    type_name: str
    identifier: str
    fields: dict[str, typ.Any]


@dc.dataclass(frozen=True, slots=True)
class FixtureSnapshot:
    """Parsed snapshot entries in document order."""

    entries: tuple[SnapshotEntry, ...]

    def __len__(self) -> int:
        """Return the number of fixture declarations."""
        return len(self.entries)

    @property
    def type_names(self) -> list[str]:
        """Return the distinct type names as written, in document order."""
        return list(dict.fromkeys(entry.type_name for entry in self.entries))

    def lint(self, registry: TypeRegistry) -> list[str]:
        """Return problems that would stop the snapshot from loading.

        Checks type names, field names and that each reference points at a
        fixture declared earlier in the document.
        """
        mapper = TypeFieldMapper(registry)
        issues: list[str] = []
        declared: set[tuple[str, str]] = set()
        for entry in self.entries:
            try:
                descriptor = mapper.type_to_schema_class(entry.type_name)
            except UnknownTypeError:
                issues.append(f"{entry.type_name}: unknown type")
                continue
            label = f"{descriptor.name}.{entry.identifier}"
            fields = mapper.map_field_aliases(descriptor, entry.fields)
            for key, value in fields.items():
                if key == "filename" and descriptor.is_file_like:
                    continue
                if key not in descriptor.columns and descriptor.relation(key) is None:
                    issues.append(f"{label}: unknown field {key!r}")
                    continue
                issues.extend(
                    f"{label}.{key}: {problem}"
                    for problem in _reference_issues(mapper, value, declared)
                )
            declared.add((descriptor.name, entry.identifier))
        return issues

    async def write_into(self, factory: FixtureFactory) -> list[FixtureRecord]:
        """Create every entry through ``factory`` in one transaction."""
        created: list[FixtureRecord] = []
        async with factory.transaction():
            for entry in self.entries:
                created.append(await _write_entry(factory, entry))
        return created


def _reference_issues(
    mapper: TypeFieldMapper, value: object, declared: set[tuple[str, str]]
) -> list[str]:
    problems: list[str] = []
    if not isinstance(value, str | list):
        return problems
    for item in split_references(value):
        if not is_reference(item):
            continue
        try:
            type_text, identifier = parse_reference(typ.cast("str", item))
            name = mapper.type_to_schema_class(type_text).name
        except LookupError as exc:
            problems.append(str(exc))
            continue
        if (name, identifier) not in declared:
            problems.append(f"{item} is not declared before use")
    return problems


async def _write_entry(factory: FixtureFactory, entry: SnapshotEntry) -> FixtureRecord:
    descriptor = factory.descriptor(entry.type_name)
    fields = factory.mapper.map_field_aliases(descriptor, entry.fields)
    plain = {
        key: value for key, value in fields.items() if descriptor.relation(key) is None
    }
    record = await factory.create_object(descriptor.name, entry.identifier, plain)
    for key, value in fields.items():
        relation = descriptor.relation(key)
        if relation is None:
            continue
        for item in split_references(value):
            if is_reference(item):
                type_text, _ = parse_reference(typ.cast("str", item))
                related = factory.descriptor(type_text).name
                target_id = factory.resolver.resolve(item)
            elif isinstance(item, int) or str(item).strip().isdigit():
                related = factory.registry.for_model(relation.target).name
                target_id = int(str(item))
            else:
                msg = (
                    f"{descriptor.name}.{entry.identifier}.{key}: {item!r} is not "
                    "a =>Type.Identifier reference"
                )
                raise FixtureSnapshotError([msg])
            await factory.assign_relation(record, related, target_id, key)
    return record


def load_snapshot_text(text: str, *, type_name: str | None = None) -> FixtureSnapshot:
    """Parse snapshot YAML.

    Parameters
    ----------
    text
        YAML source.
    type_name
        When given, ``text`` holds only ``identifier: fields`` mappings for
        this type, as in a "there are the following page records" step.

    Raises
    ------
    FixtureSnapshotError
        If the YAML is invalid or not shaped ``Type: {id: {field: value}}``.

    """
    try:
        loaded = _yaml().load(text)
    except YAMLError as exc:
        raise FixtureSnapshotError([f"failed to parse YAML: {exc}"]) from exc
    if loaded is None:
        raise FixtureSnapshotError(["snapshot is empty"])
    if type_name is not None:
        loaded = {type_name: loaded}
    try:
        document = msgspec.convert(loaded, type=_DOCUMENT_TYPE)
    except msgspec.ValidationError as exc:
        raise FixtureSnapshotError([f"schema validation failed: {exc}"]) from exc
    return FixtureSnapshot(
        tuple(
            SnapshotEntry(name, identifier, dict(fields or {}))
            for name, records in document.items()
            for identifier, fields in records.items()
        )
    )


def load_snapshot_file(path: Path | str) -> FixtureSnapshot:
    """Read and parse a snapshot file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise FixtureSnapshotError([f"failed to read {path}: {exc}"]) from exc
    return load_snapshot_text(text)


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml
