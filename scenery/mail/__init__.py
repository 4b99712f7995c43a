"""Mail capture double and helpers for reading captured messages."""

from __future__ import annotations

from .content import find_link, plaintext
from .mailer import CaptureMailer, EmailMessage

__all__ = ["CaptureMailer", "EmailMessage", "find_link", "plaintext"]
