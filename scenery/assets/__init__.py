"""Asset storage for file and folder fixtures."""

from __future__ import annotations

from .errors import AssetConflictError, AssetStoreError
from .filesystem import FilesystemAssetStore
from .materializer import AssetLedger, AssetMaterializer
from .store import AssetStore, AssetTuple, ConflictResolution, Visibility

__all__ = [
    "AssetConflictError",
    "AssetLedger",
    "AssetMaterializer",
    "AssetStore",
    "AssetStoreError",
    "AssetTuple",
    "ConflictResolution",
    "FilesystemAssetStore",
    "Visibility",
]
