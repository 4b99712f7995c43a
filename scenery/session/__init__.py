"""Scenario session configuration, provisioning and teardown."""

from __future__ import annotations

from .config import SessionConfig, parse_testsession_params
from .coordinator import ScenarioSession, SessionCoordinator, SessionState
from .errors import SessionStateError

__all__ = [
    "ScenarioSession",
    "SessionConfig",
    "SessionCoordinator",
    "SessionState",
    "SessionStateError",
    "parse_testsession_params",
]
