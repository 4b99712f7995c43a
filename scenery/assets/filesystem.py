r"""Filesystem adapter for the AssetStore protocol.

Public files are written to their natural path and protected files are
kept under a hash-partitioned directory::

    {root}/{filename}
    {root}/.protected/{dirname}/{hash[:10]}/{basename}

Usage
-----
>>> import asyncio
>>> from pathlib import Path
>>> store = FilesystemAssetStore(Path("/tmp/scenery/assets"))
>>> asset = asyncio.run(
...     store.set_from_local_file(Path("fixtures/test.jpg"), "Uploads/test.jpg")
... )
>>> asyncio.run(store.exists(asset.filename, asset.hash[:10]))
True

"""

from __future__ import annotations

import asyncio
import hashlib
import shutil
import typing as typ
from pathlib import Path, PurePosixPath

from scenery.assets.errors import AssetConflictError
from scenery.assets.store import (
    AssetTuple,
    ConflictResolution,
    Visibility,
    strip_assets_prefix,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

PROTECTED_DIR = ".protected"
HASH_DIR_LENGTH = 10


def _sha1(path: Path) -> str:
    digest = hashlib.sha1()  # noqa: S324 - content address, not a security hash
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _copy(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)


def _renamed(filename: str, attempt: int) -> str:
    path = PurePosixPath(filename)
    return str(path.with_name(f"{path.stem}-v{attempt}{path.suffix}"))


class FilesystemAssetStore:
    """Store assets below a local root directory.

    Parameters
    ----------
    root
        Directory playing the role of the web root's ``assets`` folder.

    """

    def __init__(self, root: Path) -> None:
        """Initialise the store with its root directory."""
        self._root = root

    @property
    def root(self) -> Path:
        """Return the asset root directory."""
        return self._root

    async def set_from_local_file(
        self,
        source: Path,
        filename: str,
        *,
        conflict: ConflictResolution = ConflictResolution.OVERWRITE,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> AssetTuple:
        """Copy ``source`` into the store and return its tuple.

        Raises
        ------
        AssetConflictError
            If ``conflict`` is ``EXCEPTION`` and different content already
            sits at ``filename``.

        """
        file_hash = await asyncio.to_thread(_sha1, source)
        name = strip_assets_prefix(filename)
        attempt = 1
        while True:
            target = self._path_for(name, file_hash, visibility)
            if not await asyncio.to_thread(target.is_file):
                break
            if await asyncio.to_thread(_sha1, target) == file_hash:
                return AssetTuple(name, file_hash)
            if conflict is ConflictResolution.OVERWRITE:
                break
            if conflict is ConflictResolution.EXCEPTION:
                raise AssetConflictError(name)
            attempt += 1
            name = _renamed(strip_assets_prefix(filename), attempt)
        await asyncio.to_thread(_copy, source, target)
        return AssetTuple(name, file_hash)

    async def exists(self, filename: str, file_hash: str) -> bool:
        """Return True when ``filename`` is stored under a matching hash prefix."""
        return bool(await self._matching(filename, file_hash))

    async def delete(self, filename: str, file_hash: str) -> bool:
        """Delete every stored copy of ``filename`` matching ``file_hash``."""
        matches = await self._matching(filename, file_hash)
        for path in matches:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            await asyncio.to_thread(self._prune, path.parent)
        return bool(matches)

    async def ensure_folder(self, path: str) -> None:
        """Create ``path`` below the root."""
        folder = self._root / strip_assets_prefix(path)
        await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)

    async def remove_folder(self, path: str) -> bool:
        """Remove ``path`` and then each parent that is left empty.

        Folders that still hold files are kept. The root is never removed.
        """
        folder = self._root / strip_assets_prefix(path)
        if not await asyncio.to_thread(folder.is_dir):
            return False
        await asyncio.to_thread(self._prune, folder)
        return not await asyncio.to_thread(folder.exists)

    async def path_exists(self, path: str) -> bool:
        """Return True when ``path`` (with or without ``assets/``) exists."""
        target = self._root / strip_assets_prefix(path)
        return await asyncio.to_thread(target.exists)

    def _path_for(self, filename: str, file_hash: str, visibility: Visibility) -> Path:
        relative = PurePosixPath(filename)
        if visibility is Visibility.PUBLIC:
            return self._root.joinpath(*relative.parts)
        return self._root.joinpath(
            PROTECTED_DIR,
            *relative.parent.parts,
            file_hash[:HASH_DIR_LENGTH],
            relative.name,
        )

    async def _matching(self, filename: str, file_hash: str) -> list[Path]:
        prefix = file_hash.lower()
        relative = PurePosixPath(strip_assets_prefix(filename))
        candidates = [self._root.joinpath(*relative.parts)]
        protected_dir = self._root.joinpath(PROTECTED_DIR, *relative.parent.parts)
        candidates.extend(
            await asyncio.to_thread(
                self._glob, protected_dir, prefix[:HASH_DIR_LENGTH], relative.name
            )
        )
        matches: list[Path] = []
        for path in candidates:
            if not await asyncio.to_thread(path.is_file):
                continue
            if (await asyncio.to_thread(_sha1, path)).startswith(prefix):
                matches.append(path)
        return matches

    @staticmethod
    def _glob(directory: Path, prefix: str, name: str) -> cabc.Iterable[Path]:
        if not directory.is_dir():
            return []
        return sorted(directory.glob(f"{prefix}*/{name}"))

    def _prune(self, directory: Path) -> None:
        protected_root = self._root / PROTECTED_DIR
        while (
            directory != protected_root
            and self._root in directory.parents
            and directory.is_dir()
        ):
            if any(directory.iterdir()):
                return
            directory.rmdir()
            directory = directory.parent
