"""Unit tests for the capture mailer and email content helpers."""

from __future__ import annotations

import msgspec
import pytest

from scenery.mail import CaptureMailer, EmailMessage, find_link, plaintext


@pytest.fixture
def mailer() -> CaptureMailer:
    """Return a mailer holding two messages."""
    mailer = CaptureMailer()
    mailer.send_email(
        "admin@example.com",
        "site@example.com",
        "Welcome to the site",
        "<p>Hello</p>",
    )
    mailer.send_email(
        "editor@example.com",
        "site@example.com",
        "Password reset",
        '<p>Reset</p><a href="/Security/changepassword?t=1">Change it</a>',
    )
    return mailer


def test_find_email_matches_exact_values(mailer: CaptureMailer) -> None:
    """Criteria left as None are ignored."""
    message = mailer.find_email(to="editor@example.com")

    assert message is not None
    assert message.subject == "Password reset"
    assert mailer.find_email(to="editor@example.com", subject="Welcome") is None
    assert len(mailer.find_emails(from_="site@example.com")) == 2


def test_find_email_accepts_slash_delimited_patterns(mailer: CaptureMailer) -> None:
    """Values written between slashes are regular expressions."""
    message = mailer.find_email(subject="/^Welcome/")

    assert message is not None
    assert message.to == "admin@example.com"
    assert mailer.find_email(to="/@nowhere\\./") is None


def test_clear_emails(mailer: CaptureMailer) -> None:
    """Clearing discards every captured message."""
    mailer.clear_emails()

    assert len(mailer) == 0
    assert mailer.messages == ()


def test_email_message_uses_from_on_the_wire() -> None:
    """The sender is serialised under ``from``."""
    message = EmailMessage(to="a@example.com", from_="b@example.com", subject="Hi")

    encoded = msgspec.json.decode(msgspec.json.encode(message))

    assert encoded["from"] == "b@example.com"
    assert msgspec.convert(encoded, type=EmailMessage) == message


def test_plaintext_drops_markup_and_hidden_content() -> None:
    """Comments, scripts and styles are removed; whitespace collapses."""
    html = (
        "<style>p {color: red}</style><p>Hello<br>World</p><!-- hidden -->"
        "<ul><li>One</li><li>Two</li></ul><script>track()</script>"
    )

    assert plaintext(html) == "Hello World One Two"


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Change it", "/change"),
        ("Reset link", "/reset"),
        ("logo-link", "/home"),
        ("Site logo", "/home"),
    ],
)
def test_find_link_matches_text_title_id_and_alt(label: str, expected: str) -> None:
    """Links are found by text, title, id or image alt."""
    html = (
        '<a href="/change">Change\n   it</a>'
        '<a href="/reset" title="Reset link">here</a>'
        '<a href="/home" id="logo-link"><img src="l.png" alt="Site logo"></a>'
    )

    assert find_link(html, label) == expected


def test_find_link_missing_returns_none() -> None:
    """Unknown labels and anchors without href are ignored."""
    assert find_link('<a name="top">Top</a>', "Top") is None
