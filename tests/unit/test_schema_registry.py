"""Unit tests for the type registry."""

from __future__ import annotations

import pytest

from scenery.schema import AssetKind, RelationKind, TypeRegistry
from scenery.schema.cms import File, Folder, Group, Page, RedirectorPage, TaxonomyTerm

def test_registry_lists_cms_types_in_order(registry: TypeRegistry) -> None:
    """build_cms_registry registers every model in declaration order."""
    assert [descriptor.name for descriptor in registry] == [
        "Page",
        "RedirectorPage",
        "TaxonomyTerm",
        "File",
        "Image",
        "Folder",
        "Member",
        "Group",
        "Permission",
    ]
    assert len(registry) == 9
    assert "Page" in registry
    assert "Nope" not in registry


def test_page_descriptor_exposes_columns_and_labels(registry: TypeRegistry) -> None:
    """Columns exclude the discriminator and labels map to attributes."""
    page = registry.get("Page")

    assert page.model is Page
    assert "class_name" not in page.columns
    assert {"id", "title", "url_segment", "parent_id", "version"} <= set(page.columns)
    assert page.field_labels["url_segment"] == "URL"
    assert page.versioned is True
    assert page.title_field == "title"
    assert page.searchable_field == "title"


def test_relations_are_classified_by_direction(registry: TypeRegistry) -> None:
    """Mapper directions become HAS_ONE, HAS_MANY and MANY_MANY relations."""
    page = registry.get("Page")

    parent = page.relation("parent")
    assert parent is not None
    assert parent.kind is RelationKind.HAS_ONE
    assert parent.foreign_key == "parent_id"
    assert parent.target is Page
    assert page.relation("children").kind is RelationKind.HAS_MANY
    assert page.relation("terms").kind is RelationKind.MANY_MANY
    assert page.relation("terms").target is TaxonomyTerm


def test_subclass_relations_accept_subclass_records(registry: TypeRegistry) -> None:
    """A relation targeting Page accepts RedirectorPage records."""
    parent = registry.get("RedirectorPage").relation("parent")

    assert parent is not None
    assert parent.accepts(RedirectorPage)
    assert not parent.accepts(TaxonomyTerm)


def test_to_one_and_to_many_views(registry: TypeRegistry) -> None:
    """to_many_relations lists many-many before has-many."""
    assert [rel.name for rel in registry.to_one_relations("Page")] == ["parent"]
    assert [rel.name for rel in registry.to_many_relations("Page")] == [
        "terms",
        "children",
    ]
    assert [rel.name for rel in registry.to_many_relations("Group")] == [
        "members",
        "permissions",
    ]


def test_asset_kinds(registry: TypeRegistry) -> None:
    """File types are file-like and Folder is folder-like."""
    assert registry.get("File").asset_kind is AssetKind.FILE
    assert registry.get("Image").is_file_like
    assert registry.get("Folder").is_folder_like
    assert registry.get("Folder").searchable_field == "name"
    assert not registry.get("Page").is_file_like


def test_default_record_hooks_only_for_declaring_types(
    registry: TypeRegistry,
) -> None:
    """Subclasses do not repeat an inherited default-record hook."""
    hooks = registry.default_record_hooks()

    assert [name for name, _ in hooks] == ["Page", "Group"]


def test_for_model_finds_nearest_registered_base() -> None:
    """for_model walks the MRO to a registered class."""
    registry = TypeRegistry()
    registry.register(File)
    registry.register(Group)

    assert registry.for_model(Folder).name == "File"
    with pytest.raises(KeyError):
        registry.for_model(Page)


def test_get_unknown_type_raises_key_error(registry: TypeRegistry) -> None:
    """get raises KeyError for unregistered names."""
    with pytest.raises(KeyError):
        registry.get("Widget")
