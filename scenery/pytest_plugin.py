"""pytest plugin wiring scenery sessions into pytest-bdd scenarios.

Enable it from a ``conftest.py``::

    pytest_plugins = ["scenery.pytest_plugin"]

Each test that requests the ``scenery`` fixture gets its own provisioned
session, driven on a dedicated ``asyncio.Runner`` so the synchronous step
definitions can await fixture operations in order.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from scenery.logging import configure_logging
from scenery.schema.registry import build_cms_registry
from scenery.session.config import SessionConfig
from scenery.session.coordinator import SessionCoordinator

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from scenery.browser import BrowserSession
    from scenery.fixtures.context import FixtureContext
    from scenery.mail.mailer import CaptureMailer, EmailMessage
    from scenery.schema.registry import TypeRegistry
    from scenery.session.coordinator import ScenarioSession

pytest_plugins = [
    "scenery.steps.fixture_steps",
    "scenery.steps.email_steps",
    "scenery.steps.browser_steps",
]


class SceneryContext:
    """Scenario state shared by the step definitions."""

    def __init__(self, coordinator: SessionCoordinator, runner: asyncio.Runner) -> None:
        """Wrap a provisioned coordinator and the runner driving it."""
        self.coordinator = coordinator
        self._runner = runner
        self.last_email: EmailMessage | None = None

    @property
    def session(self) -> ScenarioSession:
        """Return the provisioned scenario session."""
        return self.coordinator.current

    @property
    def fixtures(self) -> FixtureContext:
        """Return the fixture step operations."""
        return self.session.context

    @property
    def mailer(self) -> CaptureMailer:
        """Return the scenario's mail double."""
        return self.session.mailer

    @property
    def config(self) -> SessionConfig:
        """Return the scenario's configuration."""
        return self.session.config

    def require_browser(self) -> BrowserSession:
        """Return the browser session, failing when none is configured."""
        browser = self.session.browser
        if browser is None:
            msg = "this step needs a browser; override the scenery_browser fixture"
            raise RuntimeError(msg)
        return browser

    def run[T](self, awaitable: cabc.Coroutine[typ.Any, typ.Any, T]) -> T:
        """Run ``awaitable`` to completion on the scenario's event loop."""
        return self._runner.run(awaitable)


def pytest_configure(config: pytest.Config) -> None:
    """Configure femtologging from ``SCENERY_LOG_LEVEL``."""
    configure_logging()


@pytest.fixture(scope="session")
def scenery_registry() -> TypeRegistry:
    """Return the type registry scenarios declare fixtures against."""
    return build_cms_registry()


@pytest.fixture
def scenery_config(tmp_path: Path) -> SessionConfig:
    """Return session configuration from the environment, rooted in ``tmp_path``."""
    return SessionConfig.from_env(default_work_dir=tmp_path)


@pytest.fixture
def scenery_browser() -> BrowserSession | None:
    """Return the browser session for browser steps; none by default."""
    return None


@pytest.fixture
def scenery(
    scenery_registry: TypeRegistry,
    scenery_config: SessionConfig,
    scenery_browser: BrowserSession | None,
) -> cabc.Iterator[SceneryContext]:
    """Provision a scenario session and tear it down after the test."""
    coordinator = SessionCoordinator(scenery_registry, browser=scenery_browser)
    with asyncio.Runner() as runner:
        runner.run(coordinator.start_session(scenery_config))
        try:
            yield SceneryContext(coordinator, runner)
        finally:
            runner.run(coordinator.teardown())
