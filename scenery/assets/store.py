"""AssetStore protocol and the tuple it hands back.

An asset is addressed by ``(filename, hash, variant)`` rather than by a
filesystem path, so stores are free to lay files out as they like. Callers
keep the tuple and use it to check for or delete the stored file later.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

ASSETS_DIR = "assets"


class ConflictResolution(enum.StrEnum):
    """What to do when a different file already sits at the target name."""

    OVERWRITE = "overwrite"
    RENAME = "rename"
    EXCEPTION = "exception"


class Visibility(enum.StrEnum):
    """Whether an asset is served directly or kept behind access checks."""

    PUBLIC = "public"
    PROTECTED = "protected"


@dc.dataclass(frozen=True, slots=True)
class AssetTuple:
    """Identity of a stored asset.

    Attributes
    ----------
    filename
        Path relative to the asset root, using ``/`` separators.
    hash
        Hex SHA-1 digest of the file contents.
    variant
        Name of a derived variant; empty for the original file.

    """

    filename: str
    hash: str
    variant: str = ""


def strip_assets_prefix(path: str) -> str:
    """Return ``path`` without a leading ``assets/`` segment or slashes."""
    trimmed = path.strip().lstrip("/")
    if trimmed == ASSETS_DIR:
        return ""
    return trimmed.removeprefix(f"{ASSETS_DIR}/").lstrip("/")


@typ.runtime_checkable
class AssetStore(typ.Protocol):
    """Port for content-addressed file storage used by file fixtures."""

    async def set_from_local_file(
        self,
        source: Path,
        filename: str,
        *,
        conflict: ConflictResolution = ConflictResolution.OVERWRITE,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> AssetTuple:
        """Copy ``source`` into the store under ``filename``."""
        ...

    async def exists(self, filename: str, file_hash: str) -> bool:
        """Return True when a file with this name and hash prefix is stored."""
        ...

    async def delete(self, filename: str, file_hash: str) -> bool:
        """Remove the stored file; return True when something was deleted."""
        ...

    async def ensure_folder(self, path: str) -> None:
        """Create ``path`` and its parents in the store."""
        ...

    async def remove_folder(self, path: str) -> bool:
        """Remove ``path`` and its parents while they are empty."""
        ...

    async def path_exists(self, path: str) -> bool:
        """Return True when ``path`` exists under the store root."""
        ...
