"""Time helpers for record timestamps and relative step phrases."""

from __future__ import annotations

import datetime as dt
import re

_UNITS: dict[str, str] = {
    "second": "seconds",
    "sec": "seconds",
    "minute": "minutes",
    "min": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
}
_MONTH_DAYS = 30
_YEAR_DAYS = 365

_AGO_PATTERN = re.compile(r"^(?P<count>\d+)\s+(?P<unit>[a-z]+?)s?\s+ago$")
_OFFSET_PATTERN = re.compile(r"^(?P<sign>[+-])\s*(?P<count>\d+)\s+(?P<unit>[a-z]+?)s?$")


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def _delta(count: int, unit: str) -> dt.timedelta:
    if unit == "month":
        return dt.timedelta(days=count * _MONTH_DAYS)
    if unit == "year":
        return dt.timedelta(days=count * _YEAR_DAYS)
    try:
        return dt.timedelta(**{_UNITS[unit]: count})
    except KeyError:
        msg = f"unsupported time unit: {unit!r}"
        raise ValueError(msg) from None


def parse_relative_time(text: str, *, now: dt.datetime | None = None) -> dt.datetime:
    """Turn a step phrase such as ``"3 days ago"`` into an aware UTC datetime.

    Supported forms are ``now``, ``today``, ``yesterday``, ``tomorrow``,
    ``<n> <unit>s ago``, ``+<n> <unit>s`` / ``-<n> <unit>s`` and ISO-8601
    timestamps. Months and years are approximated as 30 and 365 days.

    Examples
    --------
    >>> base = dt.datetime(2024, 7, 8, 12, tzinfo=dt.UTC)
    >>> parse_relative_time("2 days ago", now=base).isoformat()
    '2024-07-06T12:00:00+00:00'

    """
    reference = now or utcnow()
    phrase = text.strip().lower()
    if not phrase:
        msg = "time phrase must not be empty"
        raise ValueError(msg)

    midnight = reference.replace(hour=0, minute=0, second=0, microsecond=0)
    fixed = {
        "now": reference,
        "today": midnight,
        "yesterday": midnight - dt.timedelta(days=1),
        "tomorrow": midnight + dt.timedelta(days=1),
    }
    if phrase in fixed:
        return fixed[phrase]

    if match := _AGO_PATTERN.match(phrase):
        return reference - _delta(int(match["count"]), match["unit"])

    if match := _OFFSET_PATTERN.match(phrase):
        delta = _delta(int(match["count"]), match["unit"])
        return reference + delta if match["sign"] == "+" else reference - delta

    try:
        parsed = dt.datetime.fromisoformat(text.strip())
    except ValueError as exc:
        msg = f"unrecognised time phrase: {text!r}"
        raise ValueError(msg) from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)
