"""Configuration for scenario sessions.

Usage
-----
>>> config = SessionConfig(work_dir=Path("/tmp/scenery"))
>>> config.database_url_for()
'sqlite+aiosqlite:////tmp/scenery/scenery_test.db'

Or load from environment variables:

>>> import os
>>> os.environ["TESTSESSION_PARAMS"] = "database=shop&requireDefaultRecords=1"
>>> config = SessionConfig.from_env()
>>> (config.database, config.require_default_records)
('shop', True)

"""

from __future__ import annotations

import dataclasses as dc
import os
import re
import urllib.parse
from pathlib import Path

DEFAULT_DATABASE = "scenery_test"
DEFAULT_WORK_DIR = Path(".scenery")

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})
_SCREEN_SIZE = re.compile(r"^\s*(?P<width>\d+)\s*[xX]\s*(?P<height>\d+)\s*$")


def parse_bool(name: str, raw: str) -> bool:
    """Parse a boolean flag, raising ``ValueError`` naming ``name``."""
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    msg = f"{name} must be a boolean flag, got: {raw!r}"
    raise ValueError(msg)


def parse_screen_size(name: str, raw: str) -> tuple[int, int]:
    """Parse ``WIDTHxHEIGHT`` into a tuple."""
    match = _SCREEN_SIZE.match(raw)
    if match is None:
        msg = f"{name} must look like 1024x768, got: {raw!r}"
        raise ValueError(msg)
    return (int(match["width"]), int(match["height"]))


@dc.dataclass(frozen=True, slots=True)
class SessionConfig:
    """Settings for provisioning one scenario's database, assets and browser.

    Attributes
    ----------
    database
        Database name; the SQLite file name when ``database_url`` is unset.
    database_url
        Explicit SQLAlchemy async URL, overriding the SQLite default.
    work_dir
        Directory holding the SQLite database and default asset root.
    files_path
        Directory of source files for file fixtures.
    assets_path
        Asset store root.
    require_default_records
        Run every type's default-record hook after the reset.
    import_database_path
        SQL data dump executed after the reset, in place of default records.
    fixture_file
        YAML snapshot loaded once the database is ready.
    strict_relations
        Refuse to guess between several candidate relations.
    screen_size
        ``(width, height)`` the browser is resized to at session start.
    base_url, admin_url, login_url
        Site locations used by browser steps.
    ajax_timeout
        Seconds browser waits poll before giving up.
    worker_id
        pytest-xdist worker running this session.

    """

    database: str = DEFAULT_DATABASE
    database_url: str | None = None
    work_dir: Path = DEFAULT_WORK_DIR
    files_path: Path | None = None
    assets_path: Path | None = None
    require_default_records: bool = False
    import_database_path: Path | None = None
    fixture_file: Path | None = None
    strict_relations: bool = True
    screen_size: tuple[int, int] | None = None
    base_url: str = "http://localhost/"
    admin_url: str = "/admin/"
    login_url: str = "/Security/login"
    ajax_timeout: float = 5.0
    worker_id: str | None = None

    def database_url_for(self) -> str:
        """Return the SQLAlchemy URL for this session's database."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.work_dir / f'{self.database}.db'}"

    def resolved_files_path(self) -> Path:
        """Return the source files directory."""
        return self.files_path or self.work_dir / "files"

    def resolved_assets_path(self) -> Path:
        """Return the asset store root."""
        return self.assets_path or self.work_dir / "assets"

    def for_worker(self, worker_id: str | None) -> SessionConfig:
        """Return a copy whose database and asset root are suffixed per worker."""
        if not worker_id:
            return self
        assets = self.resolved_assets_path()
        return dc.replace(
            self,
            database=f"{self.database}_{worker_id}",
            assets_path=assets.with_name(f"{assets.name}_{worker_id}"),
            worker_id=worker_id,
        )

    @staticmethod
    def _env(name: str) -> str | None:
        raw = os.environ.get(name, "")
        return raw.strip() or None

    @staticmethod
    def _parse_timeout(name: str, raw: str) -> float:
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{name} must be a number of seconds, got: {raw!r}"
            raise ValueError(msg) from exc
        if value <= 0:
            msg = f"{name} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls, *, default_work_dir: Path | None = None) -> SessionConfig:
        """Create configuration from environment variables.

        Reads ``SCENERY_DATABASE``, ``SCENERY_DATABASE_URL``,
        ``SCENERY_WORK_DIR``, ``SCENERY_FILES_PATH``, ``SCENERY_ASSETS_PATH``,
        ``SCENERY_REQUIRE_DEFAULT_RECORDS``, ``SCENERY_IMPORT_DATABASE_PATH``,
        ``SCENERY_FIXTURE_FILE``, ``SCENERY_STRICT_RELATIONS``,
        ``SCENERY_SCREEN_SIZE``, ``SCENERY_BASE_URL``, ``SCENERY_ADMIN_URL``,
        ``SCENERY_LOGIN_URL`` and ``SCENERY_AJAX_TIMEOUT``. The
        ``TESTSESSION_PARAMS`` query string then overrides ``database``,
        ``importDatabasePath``, ``requireDefaultRecords`` and ``fixture``.
        Under pytest-xdist the worker id from ``PYTEST_XDIST_WORKER`` is
        appended to the database name and asset root.

        Parameters
        ----------
        default_work_dir
            Work directory used when ``SCENERY_WORK_DIR`` is unset.

        Raises
        ------
        ValueError
            If a variable holds a value of the wrong shape.

        """
        values: dict[str, object] = {}
        work_dir = cls._env("SCENERY_WORK_DIR")
        values["work_dir"] = (
            Path(work_dir) if work_dir else (default_work_dir or DEFAULT_WORK_DIR)
        )
        for field, name in (
            ("database", "SCENERY_DATABASE"),
            ("database_url", "SCENERY_DATABASE_URL"),
            ("base_url", "SCENERY_BASE_URL"),
            ("admin_url", "SCENERY_ADMIN_URL"),
            ("login_url", "SCENERY_LOGIN_URL"),
        ):
            if (raw := cls._env(name)) is not None:
                values[field] = raw
        for field, name in (
            ("files_path", "SCENERY_FILES_PATH"),
            ("assets_path", "SCENERY_ASSETS_PATH"),
            ("import_database_path", "SCENERY_IMPORT_DATABASE_PATH"),
            ("fixture_file", "SCENERY_FIXTURE_FILE"),
        ):
            if (raw := cls._env(name)) is not None:
                values[field] = Path(raw)
        for field, name in (
            ("require_default_records", "SCENERY_REQUIRE_DEFAULT_RECORDS"),
            ("strict_relations", "SCENERY_STRICT_RELATIONS"),
        ):
            if (raw := cls._env(name)) is not None:
                values[field] = parse_bool(name, raw)
        if (raw := cls._env("SCENERY_SCREEN_SIZE")) is not None:
            values["screen_size"] = parse_screen_size("SCENERY_SCREEN_SIZE", raw)
        if (raw := cls._env("SCENERY_AJAX_TIMEOUT")) is not None:
            values["ajax_timeout"] = cls._parse_timeout("SCENERY_AJAX_TIMEOUT", raw)

        values.update(parse_testsession_params(cls._env("TESTSESSION_PARAMS") or ""))
        config = cls(**values)  # type: ignore[arg-type]
        return config.for_worker(cls._env("PYTEST_XDIST_WORKER"))


def parse_testsession_params(raw: str) -> dict[str, object]:
    """Map a ``TESTSESSION_PARAMS`` query string onto config fields."""
    params = {
        key: values[-1]
        for key, values in urllib.parse.parse_qs(raw, keep_blank_values=True).items()
    }
    values: dict[str, object] = {}
    if params.get("database"):
        values["database"] = params["database"]
    if params.get("importDatabasePath"):
        values["import_database_path"] = Path(params["importDatabasePath"])
    if params.get("fixture"):
        values["fixture_file"] = Path(params["fixture"])
    if "requireDefaultRecords" in params:
        values["require_default_records"] = parse_bool(
            "TESTSESSION_PARAMS requireDefaultRecords",
            params["requireDefaultRecords"] or "1",
        )
    return values
