"""Shared fixtures for BDD feature tests.

Scenarios run against a SQLite session in ``tmp_path``, with file fixtures
copied from ``tests/fixtures/files`` and a recording browser double.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import pytest

from scenery.session import SessionConfig

if typ.TYPE_CHECKING:
    from pathlib import Path


class RecordingBrowser:
    """Browser double that remembers where it was sent."""

    def __init__(self) -> None:
        self.visited: list[str] = []
        self.sizes: list[tuple[int, int]] = []

    def visit(self, url: str) -> None:
        """Record ``url`` as the current page."""
        self.visited.append(url)

    def current_url(self) -> str:
        """Return the last visited URL."""
        return self.visited[-1] if self.visited else "about:blank"

    def resize_window(self, width: int, height: int) -> None:
        """Record the requested window size."""
        self.sizes.append((width, height))


@pytest.fixture
def scenery_config(tmp_path: Path, files_path: Path) -> SessionConfig:
    """Return an isolated session configuration for one scenario."""
    config = SessionConfig.from_env(default_work_dir=tmp_path)
    return dc.replace(config, files_path=files_path, ajax_timeout=0.5)


@pytest.fixture
def scenery_browser() -> RecordingBrowser:
    """Return a recording browser for navigation steps."""
    return RecordingBrowser()
