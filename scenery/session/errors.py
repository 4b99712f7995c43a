"""Errors raised by the session coordinator."""

from __future__ import annotations


class SessionStateError(RuntimeError):
    """Raised when the coordinator is used out of order."""

    def __init__(self, state: str, action: str) -> None:
        """Initialise with the current state and the rejected action."""
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action} while the session is {state}")
