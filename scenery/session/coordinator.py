"""Per-scenario provisioning and teardown.

``SessionCoordinator`` moves through ``UNINITIALIZED -> PROVISIONED ->
TORN_DOWN``. Starting a session builds a fresh database, runs the seed data
and returns a ``ScenarioSession``; teardown removes every asset the
scenario stored, empties the database and disposes the engine even when
asset removal fails.

Usage
-----
>>> coordinator = SessionCoordinator(build_cms_registry())
>>> async with coordinator.session(SessionConfig(work_dir=tmp)) as scenario:
...     await scenario.context.create_record("page", "Page 1")

"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses as dc
import enum
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from scenery.assets.filesystem import FilesystemAssetStore
from scenery.assets.materializer import AssetLedger, AssetMaterializer
from scenery.fixtures.context import FixtureContext
from scenery.fixtures.factory import FixtureFactory
from scenery.fixtures.snapshot import load_snapshot_file
from scenery.logging import (
    get_logger,
    log_exception,
    log_info,
    log_warning,
)
from scenery.mail.mailer import CaptureMailer
from scenery.schema.registry import build_cms_registry
from scenery.session.database import (
    import_sql_dump,
    provision_database,
    reset_database,
    seed_default_records,
)
from scenery.session.errors import SessionStateError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from scenery.assets.store import AssetStore
    from scenery.browser import BrowserSession
    from scenery.schema.registry import TypeRegistry
    from scenery.session.config import SessionConfig

logger = get_logger(__name__)

type AssetStoreFactory = cabc.Callable[[Path], AssetStore]


class SessionState(enum.StrEnum):
    """Lifecycle of a coordinator."""

    UNINITIALIZED = "uninitialized"
    PROVISIONED = "provisioned"
    TORN_DOWN = "torn_down"


@dc.dataclass(slots=True)
class ScenarioSession:
    """Everything one scenario's steps operate on."""

    config: SessionConfig
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    factory: FixtureFactory
    assets: AssetStore
    ledger: AssetLedger
    mailer: CaptureMailer
    context: FixtureContext
    browser: BrowserSession | None = None


class SessionCoordinator:
    """Provision and tear down isolated scenario sessions.

    Parameters
    ----------
    registry
        Types available to fixtures; the reference CMS schema by default.
    mailer
        Mail double shared across scenarios and cleared at each start.
    browser
        Optional browser resized when ``screen_size`` is configured.
    asset_store_factory
        Builds the asset store for a root directory.

    """

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        *,
        mailer: CaptureMailer | None = None,
        browser: BrowserSession | None = None,
        asset_store_factory: AssetStoreFactory | None = None,
    ) -> None:
        """Create a coordinator in the ``UNINITIALIZED`` state."""
        self.registry = registry or build_cms_registry()
        self.mailer = mailer or CaptureMailer()
        self.browser = browser
        self._asset_store_factory = asset_store_factory or FilesystemAssetStore
        self._state = SessionState.UNINITIALIZED
        self._current: ScenarioSession | None = None

    @property
    def state(self) -> SessionState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def current(self) -> ScenarioSession:
        """Return the provisioned scenario session.

        Raises
        ------
        SessionStateError
            If no session is provisioned.

        """
        if self._current is None:
            raise SessionStateError(self._state.value, "access the scenario session")
        return self._current

    async def start_session(self, config: SessionConfig) -> ScenarioSession:
        """Provision a clean database and asset store for one scenario.

        An ``import_database_path`` dump takes precedence over default
        records. A ``fixture_file`` snapshot is loaded last.

        Raises
        ------
        SessionStateError
            If a session is already provisioned.

        """
        if self._state is SessionState.PROVISIONED:
            raise SessionStateError(self._state.value, "start a session")
        await asyncio.to_thread(config.work_dir.mkdir, parents=True, exist_ok=True)
        engine = create_async_engine(config.database_url_for())
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        assets = self._asset_store_factory(config.resolved_assets_path())
        ledger = AssetLedger()
        factory = FixtureFactory(
            self.registry,
            session_factory,
            materializer=AssetMaterializer(
                self.registry, assets, config.resolved_files_path(), ledger
            ),
            strict_relations=config.strict_relations,
        )
        self.mailer.clear_emails()
        self._current = ScenarioSession(
            config=config,
            engine=engine,
            session_factory=session_factory,
            factory=factory,
            assets=assets,
            ledger=ledger,
            mailer=self.mailer,
            context=FixtureContext(factory, assets=assets),
            browser=self.browser,
        )
        self._state = SessionState.PROVISIONED
        try:
            await self._provision(self._current)
        except Exception:
            await self.teardown()
            raise
        log_info(logger, "Provisioned scenario database %s", config.database)
        return self._current

    async def _provision(self, scenario: ScenarioSession) -> None:
        config = scenario.config
        await provision_database(scenario.engine)
        if config.import_database_path is not None:
            count = await import_sql_dump(scenario.engine, config.import_database_path)
            log_info(
                logger,
                "Imported %s statements from %s",
                count,
                config.import_database_path,
            )
        elif config.require_default_records:
            seeded = await seed_default_records(
                scenario.session_factory, self.registry
            )
            log_info(logger, "Seeded default records for %s", ", ".join(seeded))
        if config.fixture_file is not None:
            snapshot = await asyncio.to_thread(load_snapshot_file, config.fixture_file)
            await snapshot.write_into(scenario.factory)
        if scenario.browser is not None and config.screen_size is not None:
            width, height = config.screen_size
            scenario.browser.resize_window(width, height)

    async def teardown(self) -> None:
        """Delete tracked assets, empty the database and dispose the engine.

        Does nothing unless a session is provisioned. A failure in any step
        is logged and re-raised after the remaining steps have run.
        """
        if self._state is not SessionState.PROVISIONED or self._current is None:
            return
        scenario = self._current
        try:
            try:
                await self._delete_assets(scenario)
            finally:
                try:
                    await reset_database(scenario.engine)
                finally:
                    await scenario.engine.dispose()
        except Exception as exc:
            log_exception(logger, "Scenario teardown failed", exc)
            raise
        finally:
            self._state = SessionState.TORN_DOWN
            self._current = None
        log_info(logger, "Tore down scenario database %s", scenario.config.database)

    async def _delete_assets(self, scenario: ScenarioSession) -> None:
        failures: list[Exception] = []
        for asset in scenario.ledger:
            try:
                await scenario.assets.delete(asset.filename, asset.hash)
            except OSError as exc:
                log_warning(
                    logger,
                    "Could not delete asset %s (%s): %s",
                    asset.filename,
                    asset.hash,
                    exc,
                )
                failures.append(exc)
            else:
                scenario.ledger.discard(asset)
        for folder in scenario.ledger.folders:
            try:
                await scenario.assets.remove_folder(folder)
            except OSError as exc:
                log_warning(logger, "Could not remove folder %s: %s", folder, exc)
                failures.append(exc)
            else:
                scenario.ledger.discard_folder(folder)
        if failures:
            raise failures[0]

    @contextlib.asynccontextmanager
    async def session(
        self, config: SessionConfig
    ) -> cabc.AsyncIterator[ScenarioSession]:
        """Provision a session for the enclosed block and always tear it down."""
        scenario = await self.start_session(config)
        try:
            yield scenario
        finally:
            await self.teardown()
