"""Step operations behind the fixture step definitions.

Each coroutine here backs one family of Given/Then steps. It accepts the
natural-language values captured from the step text, and runs as one
transaction on the scenario's ``FixtureFactory``.
"""

from __future__ import annotations

import re
import typing as typ

from sqlalchemy import select

from scenery.common.time import parse_relative_time
from scenery.fixtures.errors import (
    InvalidRelationKeywordError,
    InvalidStateTransitionError,
    UnknownPermissionError,
    UnresolvedReferenceError,
)
from scenery.fixtures.snapshot import load_snapshot_text
from scenery.schema.cms import PERMISSION_GRANT
from scenery.schema.permissions import PermissionCatalogue

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from scenery.assets.store import AssetStore
    from scenery.fixtures.factory import FixtureFactory
    from scenery.fixtures.records import FixtureRecord

_PAIR_PATTERN = re.compile(r'"(?P<key>[^"]+)"\s*=\s*"(?P<value>[^"]*)"')
_QUOTED_PATTERN = re.compile(r'"([^"]+)"')
_TIMESTAMP_COLUMNS = {"created": "created", "last edited": "last_edited"}
_PATH_KINDS = frozenset({"file", "folder"})


def parse_data_pairs(data: str) -> dict[str, str]:
    """Parse ``"Key"="Value" and "Other"="Value"`` step text into a dict."""
    return {match["key"]: match["value"] for match in _PAIR_PATTERN.finditer(data)}


def parse_quoted(text: str) -> list[str]:
    """Return every double-quoted phrase in ``text``."""
    return _QUOTED_PATTERN.findall(text)


def table_to_fields(rows: cabc.Sequence[cabc.Sequence[str]]) -> dict[str, str]:
    """Convert a two-column step table into a field mapping."""
    fields: dict[str, str] = {}
    for row in rows:
        if len(row) != 2:
            msg = f"expected two columns per row, got {len(row)}: {list(row)!r}"
            raise ValueError(msg)
        key, value = row
        fields[key.strip()] = value.strip()
    return fields


class FixtureContext:
    """Fixture step operations for one scenario."""

    def __init__(
        self,
        factory: FixtureFactory,
        *,
        assets: AssetStore | None = None,
        permissions: PermissionCatalogue | None = None,
        member_type: str = "Member",
        group_type: str = "Group",
        permission_type: str = "Permission",
    ) -> None:
        """Bind the operations to the scenario's factory and asset store."""
        self.factory = factory
        self.assets = assets
        self.permissions = permissions or PermissionCatalogue()
        self.member_type = member_type
        self.group_type = group_type
        self.permission_type = permission_type

    async def create_record(self, type_text: str, identifier: str) -> FixtureRecord:
        """Given a "page" "Page 1"."""
        name = self.factory.descriptor(type_text).name
        return await self.factory.create_object(name, identifier)

    async def create_record_with_field(
        self, type_text: str, identifier: str, field: str, value: str
    ) -> FixtureRecord:
        """Given a "page" "Page 1" has the "content" "My content"."""
        name = self.factory.descriptor(type_text).name
        return await self.factory.upsert(
            name, identifier, {field: value}, materialize=False
        )

    async def create_record_with_data(
        self, type_text: str, identifier: str, data: str
    ) -> FixtureRecord:
        """Given a "page" "Page 1" with "URL"="page-1" and "Content"="my page"."""
        name = self.factory.descriptor(type_text).name
        return await self.factory.upsert(name, identifier, parse_data_pairs(data))

    async def create_record_with_table(
        self,
        type_text: str,
        identifier: str,
        rows: cabc.Sequence[cabc.Sequence[str]],
    ) -> FixtureRecord:
        """Given the "page" "Page 2" has the following data, plus a table."""
        name = self.factory.descriptor(type_text).name
        return await self.factory.upsert(name, identifier, table_to_fields(rows))

    async def update_record_relation(
        self,
        type_text: str,
        identifier: str,
        relation: str,
        relation_type: str,
        relation_id: str,
    ) -> FixtureRecord:
        """Given the "page" "Page 1.1" is a child of the "page" "Page 1".

        ``relation`` is ``child`` or ``parent``. The change is not published.
        """
        keyword = relation.strip().lower()
        if keyword not in {"child", "parent"}:
            raise InvalidRelationKeywordError(relation)
        factory = self.factory
        name = factory.descriptor(type_text).name
        async with factory.transaction():
            related = await factory.get_or_create(relation_type, relation_id)
            if keyword == "child":
                return await factory.upsert(
                    name,
                    identifier,
                    {"parent": related.persisted_id},
                    materialize=False,
                )
            record = await factory.get_or_create(name, identifier)
            await factory.update(
                related, {"parent": record.persisted_id}, materialize=False
            )
            return record

    async def assign(
        self,
        type_text: str,
        value: str,
        relation_type: str,
        relation_id: str,
        relation_name: str | None = None,
    ) -> FixtureRecord:
        """I assign the "TaxonomyTerm" "For customers" to the "Page" "Page1".

        The owner fixture is created when missing. The assigned record is
        looked up by fixture identifier, then by its ``name``, ``title`` or
        ``id`` column, and created as a fixture when still not found.
        """
        factory = self.factory
        descriptor = factory.descriptor(type_text)
        async with factory.transaction() as session:
            owner = await factory.get_or_create(relation_type, relation_id)
            relation = factory.find_relation(
                factory.registry.get(owner.type), descriptor, relation_name
            )
            fixture = factory.get(descriptor.name, value)
            if fixture is not None:
                target_id = factory.get_id(descriptor.name, value)
            else:
                existing = await factory.records.query_first(
                    session, descriptor, descriptor.searchable_field, value
                )
                if existing is not None:
                    target_id = existing.id
                else:
                    created = await factory.create_object(descriptor.name, value)
                    target_id = factory.get_id(created.type, created.identifier)
            await factory.assign_relation(
                owner, descriptor.name, target_id, relation.name
            )
        return owner

    async def update_record_state(
        self, type_text: str, identifier: str, state: str
    ) -> FixtureRecord:
        """Given the "page" "Page 1" is published / not published / deleted."""
        factory = self.factory
        descriptor = factory.descriptor(type_text)
        record = factory.get(descriptor.name, identifier)
        if record is None or record.persisted_id is None:
            raise UnresolvedReferenceError(
                descriptor.name, identifier, "no matching fixture found"
            )
        keyword = " ".join(state.lower().split())
        if keyword not in {"published", "not published", "unpublished", "deleted"}:
            raise InvalidStateTransitionError(state)
        if keyword != "deleted" and not descriptor.versioned:
            raise InvalidStateTransitionError(state, descriptor.name)
        async with factory.transaction() as session:
            store = factory.records
            if keyword == "published":
                await store.publish(session, descriptor, record.persisted_id)
            elif keyword == "deleted":
                await store.delete_record(session, descriptor, record.persisted_id)
                record.persisted_id = None
            else:
                await store.unpublish(session, descriptor, record.persisted_id)
        return record

    async def load_records(self, type_text: str, yaml_text: str) -> list[FixtureRecord]:
        """Given there are the following page records, plus a YAML block."""
        snapshot = load_snapshot_text(yaml_text, type_name=type_text)
        return await snapshot.write_into(self.factory)

    async def create_member_with_group(
        self, identifier: str, group_id: str, data: str | None = None
    ) -> FixtureRecord:
        """Given a "member" "Admin" belonging to "Admin Group"."""
        factory = self.factory
        fields = parse_data_pairs(data) if data else {}
        async with factory.transaction():
            group = await factory.get_or_create(self.group_type, group_id)
            member = await factory.create_object(self.member_type, identifier, fields)
            await factory.assign_relation(
                member,
                self.group_type,
                factory.get_id(group.type, group.identifier),
            )
        return member

    async def create_group_with_permissions(
        self, identifier: str, permission_text: str
    ) -> list[str]:
        """Given a "group" "Admin" with permissions "Access to 'Pages' section".

        Every quoted phrase must match a permission code or display name.
        Returns the codes granted, in catalogue order per phrase.

        Raises
        ------
        UnknownPermissionError
            Naming the first phrase that matches nothing; no group is written.

        """
        codes: list[str] = []
        for phrase in parse_quoted(permission_text):
            matched = self.permissions.match(phrase)
            if not matched:
                raise UnknownPermissionError(phrase)
            codes.extend(code for code in matched if code not in codes)
        factory = self.factory
        descriptor = factory.registry.get(self.permission_type)
        model = descriptor.model
        async with factory.transaction() as session:
            group = await factory.get_or_create(self.group_type, identifier)
            group_id = factory.get_id(group.type, group.identifier)
            for code in codes:
                granted = await session.scalar(
                    select(model.id).where(
                        model.group_id == group_id, model.code == code
                    )
                )
                if granted is None:
                    await factory.records.create_record(
                        session,
                        descriptor,
                        {
                            "code": code,
                            "group_id": group_id,
                            "type": PERMISSION_GRANT,
                        },
                    )
        return codes

    async def set_record_timestamp(
        self, type_text: str, identifier: str, which: str, when: str
    ) -> FixtureRecord:
        """Given a "page" "Page 1" was last edited "7 days ago"."""
        column = _TIMESTAMP_COLUMNS.get(" ".join(which.lower().split()))
        if column is None:
            msg = f"expected 'created' or 'last edited', got {which!r}"
            raise ValueError(msg)
        moment = parse_relative_time(when)
        factory = self.factory
        descriptor = factory.descriptor(type_text)
        async with factory.transaction() as session:
            record = await factory.get_or_create(descriptor.name, identifier)
            await factory.records.set_timestamp(
                session,
                descriptor,
                factory.get_id(record.type, record.identifier),
                column,
                moment,
            )
        return record

    async def record_link(self, type_text: str, identifier: str) -> str:
        """Return the site-relative link of a fixture, for "I go to" steps.

        Raises
        ------
        UnresolvedReferenceError
            If no such fixture was declared.
        ValueError
            If the record type has no link.

        """
        factory = self.factory
        descriptor = factory.descriptor(type_text)
        record_id = factory.get_id(descriptor.name, identifier)
        async with factory.transaction() as session:
            link = await factory.records.relative_link(session, descriptor, record_id)
        if link is None:
            msg = f"URL for {descriptor.name} cannot be determined"
            raise ValueError(msg)
        return link

    async def asset_exists(self, filename: str, file_hash: str) -> bool:
        """Then there should be a filename "Uploads/a.jpg" with hash "59de0c8"."""
        return await self._asset_store().exists(filename, file_hash)

    async def path_exists(self, kind: str, path: str) -> bool:
        """Then there should be a file "assets/Uploads/a.jpg"."""
        if kind.strip().lower() not in _PATH_KINDS:
            msg = f"expected 'file' or 'folder', got {kind!r}"
            raise ValueError(msg)
        return await self._asset_store().path_exists(path)

    def _asset_store(self) -> AssetStore:
        if self.assets is None:
            msg = "no asset store is configured for this scenario"
            raise RuntimeError(msg)
        return self.assets
