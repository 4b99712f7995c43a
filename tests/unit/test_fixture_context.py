"""Unit tests for FixtureContext step operations."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy import select

from scenery.assets import AssetLedger, AssetTuple
from scenery.fixtures import (
    FixtureContext,
    FixtureFactory,
    InvalidRelationKeywordError,
    InvalidStateTransitionError,
    UnknownPermissionError,
    UnresolvedReferenceError,
    parse_data_pairs,
    table_to_fields,
)
from scenery.schema.cms import File, Group, Member, Page, Permission, TaxonomyTerm
from tests.helpers import count_rows, load, sha1_of

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from scenery.schema import TypeRegistry


def test_parse_data_pairs() -> None:
    """Quoted key/value pairs are collected in order."""
    assert parse_data_pairs('"URL"="page-1" and "Content"="my page"') == {
        "URL": "page-1",
        "Content": "my page",
    }
    assert parse_data_pairs('"Empty"=""') == {"Empty": ""}


def test_table_to_fields_requires_two_columns() -> None:
    """Rows with more or fewer than two cells are rejected."""
    assert table_to_fields([[" Title ", " Page 2 "]]) == {"Title": "Page 2"}
    with pytest.raises(ValueError, match="two columns"):
        table_to_fields([["Title", "Page 2", "extra"]])


@pytest.mark.asyncio
async def test_child_relation_links_parent(
    fixture_context: FixtureContext,
    factory: FixtureFactory,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A child relation sets the parent link to the parent's id."""
    parent = await factory.create_object("Page", "P1")

    child = await fixture_context.update_record_relation(
        "page", "P1.1", "child", "page", "P1"
    )

    assert child.persisted_id is not None
    page = await load(session_factory, Page, child.persisted_id)
    assert page.parent_id == parent.persisted_id
    assert page.live_version is None, "relation changes are not published"


@pytest.mark.asyncio
async def test_parent_relation_links_related_record(
    fixture_context: FixtureContext,
    factory: FixtureFactory,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A parent relation points the related record at the fixture."""
    record = await fixture_context.update_record_relation(
        "page", "P1", "parent", "page", "P2"
    )

    child_id = factory.get_id("Page", "P2")
    page = await load(session_factory, Page, child_id)
    assert page.parent_id == record.persisted_id


@pytest.mark.asyncio
async def test_relation_keyword_is_validated(fixture_context: FixtureContext) -> None:
    """Only child and parent are accepted."""
    with pytest.raises(InvalidRelationKeywordError):
        await fixture_context.update_record_relation(
            "page", "A", "sibling", "page", "B"
        )


@pytest.mark.asyncio
async def test_create_record_with_field_and_data(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Field and data steps upsert the same fixture."""
    await fixture_context.create_record_with_data(
        "page", "Page 1", '"URL"="page-one" and "Content"="Hello"'
    )
    record = await fixture_context.create_record_with_field(
        "page", "Page 1", "Navigation label", "First"
    )
    await fixture_context.create_record_with_table(
        "page", "Page 1", [["Sort order", "5"]]
    )

    assert record.persisted_id is not None
    page = await load(session_factory, Page, record.persisted_id)
    assert (page.url_segment, page.content, page.menu_title, page.sort) == (
        "page-one",
        "Hello",
        "First",
        5,
    )
    assert await count_rows(session_factory, Page) == 1


@pytest.mark.asyncio
async def test_state_transitions(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Pages can be published, unpublished and deleted."""
    record = await fixture_context.create_record("page", "News")
    assert record.persisted_id is not None
    page_id = record.persisted_id

    await fixture_context.update_record_state("page", "News", "published")
    assert (await load(session_factory, Page, page_id)).is_published

    await fixture_context.update_record_state("page", "News", "not published")
    assert not (await load(session_factory, Page, page_id)).is_published

    await fixture_context.update_record_state("page", "News", "deleted")
    assert record.persisted_id is None
    assert await count_rows(session_factory, Page) == 0


@pytest.mark.asyncio
async def test_state_errors(fixture_context: FixtureContext) -> None:
    """Unknown keywords, unknown fixtures and unversioned types are rejected."""
    await fixture_context.create_record("page", "News")
    await fixture_context.create_record("group", "Staff")

    with pytest.raises(InvalidStateTransitionError) as excinfo:
        await fixture_context.update_record_state("page", "News", "archived")
    assert excinfo.value.state == "archived"

    with pytest.raises(UnresolvedReferenceError):
        await fixture_context.update_record_state("page", "Missing", "published")

    with pytest.raises(InvalidStateTransitionError, match="Group cannot be marked"):
        await fixture_context.update_record_state("group", "Staff", "published")


@pytest.mark.asyncio
async def test_assign_creates_or_finds_related_records(
    fixture_context: FixtureContext,
    factory: FixtureFactory,
    registry: TypeRegistry,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Assignment reuses rows found by name and creates missing ones."""
    async with session_factory() as session, session.begin():
        session.add(TaxonomyTerm(name="Existing"))

    owner = await fixture_context.assign("TaxonomyTerm", "Existing", "Page", "Page1")
    await fixture_context.assign("TaxonomyTerm", "Fresh", "Page", "Page1")
    await fixture_context.assign("TaxonomyTerm", "Fresh", "Page", "Page1")

    assert owner.persisted_id is not None
    terms = registry.get("Page").relation("terms")
    assert terms is not None
    async with session_factory() as session:
        ids = await factory.records.collection_ids(
            session, registry.get("Page"), owner.persisted_id, terms
        )
    assert len(ids) == 2
    assert await count_rows(session_factory, TaxonomyTerm) == 2
    assert factory.get("TaxonomyTerm", "Fresh") is not None


@pytest.mark.asyncio
async def test_member_belonging_to_group(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """The member is created with data and joins a new group."""
    member = await fixture_context.create_member_with_group(
        "Admin", "Admin Group", '"Email"="admin@example.com"'
    )

    assert member.persisted_id is not None
    async with session_factory() as session:
        stored = await session.get(Member, member.persisted_id)
        assert stored is not None
        groups = await stored.awaitable_attrs.groups
        assert [group.title for group in groups] == ["Admin Group"]
        assert stored.email == "admin@example.com"


@pytest.mark.asyncio
async def test_group_permissions_grant_matching_codes(
    fixture_context: FixtureContext,
    factory: FixtureFactory,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Names and codes both match; repeats grant nothing new."""
    codes = await fixture_context.create_group_with_permissions(
        "Editors", "\"Access to 'Pages' section\" and \"SITETREE_EDIT_ALL\""
    )
    await fixture_context.create_group_with_permissions(
        "Editors", '"CMS_ACCESS_CMSMain"'
    )

    assert codes == ["CMS_ACCESS_CMSMain", "SITETREE_EDIT_ALL"]
    group_id = factory.get_id("Group", "Editors")
    async with session_factory() as session:
        granted = list(
            await session.scalars(
                select(Permission.code)
                .where(Permission.group_id == group_id)
                .order_by(Permission.id)
            )
        )
    assert granted == ["CMS_ACCESS_CMSMain", "SITETREE_EDIT_ALL"]


@pytest.mark.asyncio
async def test_unknown_permission_names_it_and_writes_nothing(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """An unmatched permission fails before the group is created."""
    with pytest.raises(UnknownPermissionError, match="Fly the plane") as excinfo:
        await fixture_context.create_group_with_permissions(
            "Pilots", '"ADMIN" and "Fly the plane"'
        )

    assert excinfo.value.permission == "Fly the plane"
    assert await count_rows(session_factory, Group) == 0


@pytest.mark.asyncio
async def test_timestamp_fields_accept_step_strings(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Created given as data or table text is stored as a UTC datetime."""
    first = await fixture_context.create_record_with_data(
        "page", "P1", '"Created"="2021-03-04 05:06:07"'
    )
    second = await fixture_context.create_record_with_table(
        "page", "P2", [["Created", "2022-01-02"]]
    )

    assert first.persisted_id is not None
    assert second.persisted_id is not None
    page = await load(session_factory, Page, first.persisted_id)
    assert page.created == dt.datetime(2021, 3, 4, 5, 6, 7, tzinfo=dt.UTC)
    page = await load(session_factory, Page, second.persisted_id)
    assert page.created == dt.datetime(2022, 1, 2, tzinfo=dt.UTC)


@pytest.mark.asyncio
async def test_set_record_timestamp(
    fixture_context: FixtureContext,
    factory: FixtureFactory,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Created and last edited can be back-dated."""
    await fixture_context.set_record_timestamp(
        "page", "Old", "created", "2020-05-06 07:08:09"
    )
    await fixture_context.set_record_timestamp(
        "page", "Old", "last  edited", "2021-01-01"
    )

    page = await load(session_factory, Page, factory.get_id("Page", "Old"))
    assert page.created == dt.datetime(2020, 5, 6, 7, 8, 9, tzinfo=dt.UTC)
    assert page.last_edited == dt.datetime(2021, 1, 1, tzinfo=dt.UTC)

    with pytest.raises(ValueError, match="last edited"):
        await fixture_context.set_record_timestamp("page", "Old", "deleted", "now")


@pytest.mark.asyncio
async def test_record_link(fixture_context: FixtureContext) -> None:
    """Links follow the page tree; groups have none."""
    await fixture_context.create_record_with_field("page", "About", "URL", "about")
    await fixture_context.update_record_relation(
        "page", "Team", "child", "page", "About"
    )
    await fixture_context.create_record("group", "Staff")

    assert await fixture_context.record_link("page", "Team") == "/about/team/"
    with pytest.raises(ValueError, match="cannot be determined"):
        await fixture_context.record_link("group", "Staff")
    with pytest.raises(UnresolvedReferenceError):
        await fixture_context.record_link("page", "Nowhere")


@pytest.mark.asyncio
async def test_path_and_asset_checks(fixture_context: FixtureContext) -> None:
    """File fixtures are visible through the asset checks."""
    record = await fixture_context.create_record("image", "assets/Uploads/test.jpg")
    assert record.persisted_id is not None

    assert await fixture_context.path_exists("file", "assets/Uploads/test.jpg")
    assert await fixture_context.path_exists("folder", "assets/Uploads")
    assert not await fixture_context.path_exists("file", "assets/Uploads/no.jpg")
    with pytest.raises(ValueError, match="'file' or 'folder'"):
        await fixture_context.path_exists("image", "assets/Uploads/test.jpg")


@pytest.mark.asyncio
async def test_redeclared_file_stores_its_new_filename(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
    ledger: AssetLedger,
    files_path: Path,
) -> None:
    """Data for an existing file fixture copies and re-hashes the new file."""
    record = await fixture_context.create_record("file", "assets/Uploads/test.jpg")
    await fixture_context.create_record_with_data(
        "file", "assets/Uploads/test.jpg", '"Filename"="Other/report.txt"'
    )

    assert record.persisted_id is not None
    stored = await load(session_factory, File, record.persisted_id)
    report_hash = sha1_of(files_path / "report.txt")
    assert (stored.file_filename, stored.file_hash) == (
        "Other/report.txt",
        report_hash,
    )
    assert AssetTuple("Other/report.txt", report_hash) in list(ledger)
    assert await fixture_context.path_exists("file", "Other/report.txt")
    assert await fixture_context.asset_exists("Other/report.txt", report_hash[:10])


@pytest.mark.asyncio
async def test_field_step_on_file_does_not_copy(
    fixture_context: FixtureContext, ledger: AssetLedger
) -> None:
    """The single-field step updates the row without storing content."""
    await fixture_context.create_record("file", "assets/Uploads/test.jpg")
    await fixture_context.create_record_with_field(
        "file", "assets/Uploads/test.jpg", "Filename", "Other/report.txt"
    )

    assert [asset.filename for asset in ledger] == ["Uploads/test.jpg"]
    assert not await fixture_context.path_exists("file", "Other/report.txt")


@pytest.mark.asyncio
async def test_asset_checks_need_a_store(factory: FixtureFactory) -> None:
    """Without an asset store the checks raise RuntimeError."""
    context = FixtureContext(factory)

    with pytest.raises(RuntimeError, match="no asset store"):
        await context.asset_exists("a.jpg", "abc")


@pytest.mark.asyncio
async def test_load_records_from_yaml(
    fixture_context: FixtureContext,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A YAML block declares several records of one type."""
    records = await fixture_context.load_records(
        "page", "first:\n  Title: First\nsecond:\n  Parent: '=>Page.first'\n"
    )

    assert [record.identifier for record in records] == ["first", "second"]
    assert records[1].persisted_id is not None
    second = await load(session_factory, Page, records[1].persisted_id)
    assert second.parent_id == records[0].persisted_id
