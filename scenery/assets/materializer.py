"""Copy source files into the asset store for file and folder fixtures."""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path, PurePosixPath

from sqlalchemy import select

from scenery.assets.store import (
    AssetTuple,
    ConflictResolution,
    Visibility,
    strip_assets_prefix,
)
from scenery.fixtures.errors import MissingSourceFileError
from scenery.logging import get_logger, log_debug
from scenery.schema.store import RecordStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession

    from scenery.assets.store import AssetStore
    from scenery.schema.registry import TypeDescriptor, TypeRegistry

logger = get_logger(__name__)


class AssetLedger:
    """Tuples and folders written during one scenario, deleted when it ends.

    ``len()`` and iteration cover tuples only; folders are listed by
    :attr:`folders`.
    """

    def __init__(self) -> None:
        """Start with an empty ledger."""
        self._tuples: list[AssetTuple] = []
        self._folders: list[str] = []

    def __iter__(self) -> cabc.Iterator[AssetTuple]:
        """Iterate tuples in the order they were stored."""
        return iter(list(self._tuples))

    def __len__(self) -> int:
        """Return the number of tracked tuples."""
        return len(self._tuples)

    def append(self, asset: AssetTuple) -> None:
        """Track ``asset`` for deletion at teardown, once."""
        if asset not in self._tuples:
            self._tuples.append(asset)

    def discard(self, asset: AssetTuple) -> None:
        """Stop tracking ``asset``."""
        if asset in self._tuples:
            self._tuples.remove(asset)

    @property
    def folders(self) -> list[str]:
        """Return tracked folder paths, deepest first."""
        return sorted(self._folders, key=lambda path: path.count("/"), reverse=True)

    def add_folder(self, path: str) -> None:
        """Track a folder for removal at teardown; the root is ignored."""
        if path not in {"", "."} and path not in self._folders:
            self._folders.append(path)

    def discard_folder(self, path: str) -> None:
        """Stop tracking the folder at ``path``."""
        if path in self._folders:
            self._folders.remove(path)


class AssetMaterializer:
    """Prepare file-like fixture fields by storing their content.

    Parameters
    ----------
    registry
        Used to find the folder type for parent rows.
    store
        Destination asset store.
    files_path
        Directory holding source files, looked up by basename.
    ledger
        Receives every tuple written.

    """

    def __init__(
        self,
        registry: TypeRegistry,
        store: AssetStore,
        files_path: Path,
        ledger: AssetLedger,
        records: RecordStore | None = None,
    ) -> None:
        """Bind the materializer to its store, source directory and ledger."""
        self._registry = registry
        self._store = store
        self._files_path = Path(files_path)
        self._ledger = ledger
        self._records = records or RecordStore()

    @property
    def ledger(self) -> AssetLedger:
        """Return the ledger receiving stored tuples."""
        return self._ledger

    async def materialize(
        self,
        session: AsyncSession,
        descriptor: TypeDescriptor,
        identifier: str,
        fields: cabc.Mapping[str, typ.Any],
    ) -> dict[str, typ.Any]:
        """Return ``fields`` extended with storage and parent folder details.

        The target path is ``fields["filename"]`` or ``identifier``, without
        a leading ``assets/``. Folder fixtures get ``id`` set to the leaf
        folder row. File fixtures are copied from ``files_path`` and get
        ``parent_id`` and the ``file_*`` columns.

        Raises
        ------
        MissingSourceFileError
            If a file fixture has no source; nothing is stored or created.

        """
        data = dict(fields)
        target = strip_assets_prefix(str(data.pop("filename", None) or identifier))
        path = PurePosixPath(target)
        if descriptor.is_folder_like:
            await self._store.ensure_folder(target)
            self._ledger.add_folder(target)
            data["id"] = await self.find_or_make_folder(session, target)
        else:
            source = self._files_path / path.name
            if not await asyncio.to_thread(source.is_file):
                raise MissingSourceFileError(str(source))
            data["parent_id"] = await self.find_or_make_folder(
                session, str(path.parent)
            )
            asset = await self._store.set_from_local_file(
                source,
                target,
                conflict=ConflictResolution.OVERWRITE,
                visibility=Visibility.PUBLIC,
            )
            self._ledger.append(asset)
            self._ledger.add_folder(str(PurePosixPath(asset.filename).parent))
            log_debug(logger, "Stored asset %s (%s)", asset.filename, asset.hash)
            data["file_filename"] = asset.filename
            data["file_hash"] = asset.hash
            data["file_variant"] = asset.variant
        data.setdefault("name", path.name)
        return data

    async def find_or_make_folder(
        self, session: AsyncSession, path: str
    ) -> int | None:
        """Return the id of the folder row for ``path``, creating missing ones.

        Returns ``None`` for the asset root.
        """
        descriptor = self._folder_descriptor()
        model = descriptor.model
        parent_id: int | None = None
        for segment in (part for part in path.split("/") if part not in {"", "."}):
            parent_clause = (
                model.parent_id.is_(None)
                if parent_id is None
                else model.parent_id == parent_id
            )
            folder = await session.scalar(
                select(model)
                .where(model.name == segment, parent_clause)
                .order_by(model.id)
                .limit(1)
            )
            if folder is not None:
                parent_id = folder.id
                continue
            parent_id = await self._records.create_record(
                session,
                descriptor,
                {"name": segment, "title": segment, "parent_id": parent_id},
            )
        return parent_id

    def _folder_descriptor(self) -> TypeDescriptor:
        for descriptor in self._registry:
            if descriptor.is_folder_like:
                return descriptor
        msg = "No folder type is registered"
        raise LookupError(msg)
