"""Unit tests for the filesystem asset store."""

from __future__ import annotations

import typing as typ

import pytest

from scenery.assets import (
    AssetConflictError,
    AssetStore,
    ConflictResolution,
    FilesystemAssetStore,
    Visibility,
)
from scenery.assets.store import strip_assets_prefix
from tests.helpers import sha1_of

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def source(tmp_path: Path) -> Path:
    """Return a small source file."""
    path = tmp_path / "src" / "note.txt"
    path.parent.mkdir(exist_ok=True)
    path.write_text("first\n")
    return path


@pytest.fixture
def other(tmp_path: Path) -> Path:
    """Return a source file with different content."""
    path = tmp_path / "src" / "other.txt"
    path.parent.mkdir(exist_ok=True)
    path.write_text("second\n")
    return path


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("assets/Uploads/a.jpg", "Uploads/a.jpg"),
        ("/assets/a.jpg", "a.jpg"),
        ("assets", ""),
        ("Uploads/a.jpg", "Uploads/a.jpg"),
        ("assetsfolder/a.jpg", "assetsfolder/a.jpg"),
    ],
)
def test_strip_assets_prefix(path: str, expected: str) -> None:
    """Only a whole leading ``assets`` segment is removed."""
    assert strip_assets_prefix(path) == expected


def test_filesystem_store_satisfies_protocol(asset_store: FilesystemAssetStore) -> None:
    """The adapter is a structural AssetStore."""
    assert isinstance(asset_store, AssetStore)


@pytest.mark.asyncio
async def test_public_file_is_stored_at_its_name(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """Public assets land at ``root/filename`` with a SHA-1 hash."""
    asset = await asset_store.set_from_local_file(source, "assets/Uploads/note.txt")

    assert asset.filename == "Uploads/note.txt"
    assert asset.hash == sha1_of(source)
    assert asset.variant == ""
    assert (asset_store.root / "Uploads" / "note.txt").read_text() == "first\n"
    assert await asset_store.exists("Uploads/note.txt", asset.hash[:10])
    assert await asset_store.path_exists("assets/Uploads/note.txt")


@pytest.mark.asyncio
async def test_protected_file_is_hash_partitioned(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """Protected assets sit below a hash directory and prune on delete."""
    asset = await asset_store.set_from_local_file(
        source, "Secret/note.txt", visibility=Visibility.PROTECTED
    )
    stored = (
        asset_store.root / ".protected" / "Secret" / asset.hash[:10] / "note.txt"
    )

    assert stored.is_file()
    assert await asset_store.exists("Secret/note.txt", asset.hash)
    assert await asset_store.delete("Secret/note.txt", asset.hash)
    assert not stored.exists()
    assert not (asset_store.root / ".protected" / "Secret").exists()


@pytest.mark.asyncio
async def test_identical_content_is_not_copied_again(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """Storing the same bytes twice returns the same tuple."""
    first = await asset_store.set_from_local_file(
        source, "note.txt", conflict=ConflictResolution.EXCEPTION
    )
    second = await asset_store.set_from_local_file(
        source, "note.txt", conflict=ConflictResolution.EXCEPTION
    )

    assert first == second


@pytest.mark.asyncio
async def test_conflict_policies(
    asset_store: FilesystemAssetStore, source: Path, other: Path
) -> None:
    """Different content at the target renames, raises or overwrites."""
    await asset_store.set_from_local_file(source, "note.txt")

    renamed = await asset_store.set_from_local_file(
        other, "note.txt", conflict=ConflictResolution.RENAME
    )
    assert renamed.filename == "note-v2.txt"

    with pytest.raises(AssetConflictError) as excinfo:
        await asset_store.set_from_local_file(
            other, "note.txt", conflict=ConflictResolution.EXCEPTION
        )
    assert excinfo.value.filename == "note.txt"

    overwritten = await asset_store.set_from_local_file(other, "note.txt")
    assert overwritten.filename == "note.txt"
    assert (asset_store.root / "note.txt").read_text() == "second\n"


@pytest.mark.asyncio
async def test_delete_requires_matching_hash(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """A wrong hash prefix deletes nothing."""
    asset = await asset_store.set_from_local_file(source, "note.txt")

    assert not await asset_store.delete("note.txt", "0000000000")
    assert await asset_store.exists(asset.filename, asset.hash)
    assert await asset_store.delete(asset.filename, asset.hash)
    assert not await asset_store.exists(asset.filename, asset.hash)
    assert not await asset_store.delete(asset.filename, asset.hash)


@pytest.mark.asyncio
async def test_ensure_folder(asset_store: FilesystemAssetStore) -> None:
    """Folders are created with parents and are idempotent."""
    await asset_store.ensure_folder("assets/Uploads/2024")
    await asset_store.ensure_folder("Uploads/2024")

    assert (asset_store.root / "Uploads" / "2024").is_dir()
    assert await asset_store.path_exists("Uploads/2024")
    assert not await asset_store.path_exists("Uploads/2025")


@pytest.mark.asyncio
async def test_delete_prunes_empty_public_parents(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """Deleting the last file in a folder removes the emptied folders."""
    asset = await asset_store.set_from_local_file(source, "Docs/2024/note.txt")
    kept = await asset_store.set_from_local_file(source, "Docs/keep.txt")

    assert await asset_store.delete(asset.filename, asset.hash)

    assert not await asset_store.path_exists("Docs/2024")
    assert await asset_store.path_exists("Docs")
    assert await asset_store.delete(kept.filename, kept.hash)
    assert not await asset_store.path_exists("Docs")
    assert asset_store.root.is_dir()


@pytest.mark.asyncio
async def test_remove_folder_keeps_folders_with_content(
    asset_store: FilesystemAssetStore, source: Path
) -> None:
    """Only empty folders are removed, deepest first up to the root."""
    await asset_store.ensure_folder("Uploads/Deep/Deeper")
    await asset_store.set_from_local_file(source, "Uploads/note.txt")

    assert await asset_store.remove_folder("assets/Uploads/Deep/Deeper")

    assert not await asset_store.path_exists("Uploads/Deep")
    assert await asset_store.path_exists("Uploads/note.txt")
    assert not await asset_store.remove_folder("Uploads")
    assert not await asset_store.remove_folder("Missing")
    assert not await asset_store.remove_folder("")
    assert asset_store.root.is_dir()
