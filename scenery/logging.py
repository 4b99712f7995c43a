"""femtologging helpers shared by the scenery packages.

Scenario provisioning, teardown, and fixture writes all log through these
wrappers so messages are percent-formatted before they reach femtologging's
worker thread.

Example:
>>> from scenery.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Provisioned %s", "scenery_test")

"""

from __future__ import annotations

import enum
import os
import typing as typ

from femtologging import basicConfig, get_logger

LOG_LEVEL_ENV = "SCENERY_LOG_LEVEL"


class LogLevel(enum.StrEnum):
    """Levels understood by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a raw level string.

    Parameters
    ----------
    level : str | None
        Level name as supplied by the caller or environment.

    Returns
    -------
    tuple[str, bool]
        The normalized level (``INFO`` when unusable) and whether the input
        was rejected.

    """
    if not level or not level.strip():
        return (LogLevel.INFO.value, True)

    candidate = level.strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)

    return (LogLevel.INFO.value, True)


def configure_logging(
    level: str | None = None, *, force: bool = False
) -> tuple[str, bool]:
    """Configure femtologging, reading ``SCENERY_LOG_LEVEL`` when no level is given.

    Parameters
    ----------
    level : str | None, optional
        Explicit level. Falls back to the environment, then ``INFO``.
    force : bool, optional
        Replace handlers installed by an earlier call.

    Returns
    -------
    tuple[str, bool]
        The applied level and whether the requested level was rejected.

    """
    raw = level if level is not None else os.environ.get(LOG_LEVEL_ENV)
    normalized, invalid = normalize_log_level(raw)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` using percent formatting."""
    if not args:
        return template
    return template % args


class _SupportsLog(typ.Protocol):
    """Protocol for femtologging-compatible loggers."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level.value,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a DEBUG message with percent-style formatting."""
    _emit(logger, LogLevel.DEBUG, template, args, exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the formatted message.
    template : str
        Message template using percent-style placeholders.
    *args : object
        Values to interpolate into the template.
    exc_info : object | None, optional
        Exception information to attach to the log record.

    """
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message with percent-style formatting."""
    _emit(logger, LogLevel.ERROR, template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as exc_info."""
    logger.log(LogLevel.ERROR.value, message, exc_info=exc, stack_info=False)


__all__ = [
    "LOG_LEVEL_ENV",
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
