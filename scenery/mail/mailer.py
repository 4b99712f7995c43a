"""In-memory mailer that captures outgoing email for assertions.

Values passed to the finders match exactly, or as a regular expression
when written between slashes (``"/^Welcome/"``).
"""

from __future__ import annotations

import re
import typing as typ

import msgspec


class EmailMessage(msgspec.Struct, kw_only=True):
    """A captured email."""

    to: str
    from_: str = msgspec.field(name="from")
    subject: str = ""
    content: str = ""
    plain_content: str = ""
    cc: str = ""
    bcc: str = ""
    headers: dict[str, str] = msgspec.field(default_factory=dict)


def _matches(expected: str | None, actual: str) -> bool:
    if expected is None:
        return True
    if len(expected) > 1 and expected.startswith("/") and expected.endswith("/"):
        return re.search(expected[1:-1], actual) is not None
    return expected == actual


class CaptureMailer:
    """Mailer double holding every sent message until cleared."""

    def __init__(self) -> None:
        """Start with no captured messages."""
        self._messages: list[EmailMessage] = []

    def __len__(self) -> int:
        """Return the number of captured messages."""
        return len(self._messages)

    @property
    def messages(self) -> tuple[EmailMessage, ...]:
        """Return captured messages in send order."""
        return tuple(self._messages)

    def send(self, message: EmailMessage) -> EmailMessage:
        """Capture ``message`` instead of delivering it."""
        self._messages.append(message)
        return message

    def send_email(
        self,
        to: str,
        from_: str,
        subject: str,
        content: str = "",
        **extra: typ.Any,  # noqa: ANN401
    ) -> EmailMessage:
        """Build and capture a message from keyword parts."""
        return self.send(
            EmailMessage(to=to, from_=from_, subject=subject, content=content, **extra)
        )

    def find_emails(
        self,
        to: str | None = None,
        from_: str | None = None,
        subject: str | None = None,
        content: str | None = None,
    ) -> list[EmailMessage]:
        """Return every captured message matching all given criteria."""
        return [
            message
            for message in self._messages
            if _matches(to, message.to)
            and _matches(from_, message.from_)
            and _matches(subject, message.subject)
            and _matches(content, message.content)
        ]

    def find_email(
        self,
        to: str | None = None,
        from_: str | None = None,
        subject: str | None = None,
        content: str | None = None,
    ) -> EmailMessage | None:
        """Return the first matching message, or ``None``."""
        matches = self.find_emails(to, from_, subject, content)
        return matches[0] if matches else None

    def clear_emails(self) -> None:
        """Forget every captured message."""
        self._messages.clear()
