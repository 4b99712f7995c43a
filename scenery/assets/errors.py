"""Errors raised by asset stores."""

from __future__ import annotations


class AssetStoreError(Exception):
    """Base class for asset store errors."""


class AssetConflictError(AssetStoreError):
    """Raised when a store refuses to replace an existing file."""

    def __init__(self, filename: str) -> None:
        """Initialise with the conflicting filename."""
        self.filename = filename
        super().__init__(f"An asset already exists at {filename!r}")
