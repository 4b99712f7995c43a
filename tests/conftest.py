"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from scenery.assets import AssetLedger, AssetMaterializer, FilesystemAssetStore
from scenery.fixtures import FixtureContext, FixtureFactory
from scenery.schema import TypeRegistry, build_cms_registry, init_schema

pytest_plugins = ["scenery.pytest_plugin"]

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine with every CMS table."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scenery_test.db'}")
    try:
        await init_schema(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture(scope="session")
def registry() -> TypeRegistry:
    """Return the reference CMS registry."""
    return build_cms_registry()


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Return the directory holding test data files."""
    return FIXTURES_DIR


@pytest.fixture(scope="session")
def files_path(fixtures_dir: Path) -> Path:
    """Return the directory of source files for file fixtures."""
    return fixtures_dir / "files"


@pytest.fixture
def asset_store(tmp_path: Path) -> FilesystemAssetStore:
    """Return an asset store rooted in the test's temporary directory."""
    return FilesystemAssetStore(tmp_path / "assets")


@pytest.fixture
def ledger() -> AssetLedger:
    """Return an empty asset ledger."""
    return AssetLedger()


@pytest.fixture
def materializer(
    registry: TypeRegistry,
    asset_store: FilesystemAssetStore,
    files_path: Path,
    ledger: AssetLedger,
) -> AssetMaterializer:
    """Return a materializer writing to the temporary asset store."""
    return AssetMaterializer(registry, asset_store, files_path, ledger)


@pytest.fixture
def factory(
    registry: TypeRegistry,
    session_factory: async_sessionmaker[AsyncSession],
    materializer: AssetMaterializer,
) -> FixtureFactory:
    """Return a strict fixture factory over the sqlite database."""
    return FixtureFactory(registry, session_factory, materializer=materializer)


@pytest.fixture
def fixture_context(
    factory: FixtureFactory, asset_store: FilesystemAssetStore
) -> FixtureContext:
    """Return step operations bound to ``factory``."""
    return FixtureContext(factory, assets=asset_store)
