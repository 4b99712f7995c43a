"""Browser session protocol and URL helpers for browser steps.

The browser driver itself is supplied by the test suite; scenery only needs
something that can visit a URL, report where it is, and resize its window.
"""

from __future__ import annotations

import dataclasses as dc
import time
import typing as typ
import urllib.parse

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@typ.runtime_checkable
class BrowserSession(typ.Protocol):
    """Minimal browser automation surface used by the step definitions."""

    def visit(self, url: str) -> None:
        """Navigate to ``url``."""
        ...

    def current_url(self) -> str:
        """Return the URL of the current page."""
        ...

    def resize_window(self, width: int, height: int) -> None:
        """Resize the browser window."""
        ...


@dc.dataclass(frozen=True, slots=True)
class ParsedURL:
    """Components of a URL with query variables decoded."""

    scheme: str
    host: str
    port: int | None
    path: str
    query: dict[str, str]
    fragment: str | None


def parse_url(url: str) -> ParsedURL:
    """Split ``url`` into components; repeated query keys keep the last value."""
    parts = urllib.parse.urlsplit(url)
    query = {
        key: values[-1]
        for key, values in urllib.parse.parse_qs(
            parts.query, keep_blank_values=True
        ).items()
    }
    return ParsedURL(
        scheme=parts.scheme,
        host=parts.hostname or "",
        port=parts.port,
        path=parts.path,
        query=query,
        fragment=parts.fragment or None,
    )


def is_url_similar_to(current: str, expected: str) -> bool:
    """Return True when ``current`` satisfies ``expected``.

    Paths must be equal. The fragment is compared only when ``expected``
    has one, and only the query variables named in ``expected`` must match.
    """
    have = parse_url(current)
    want = parse_url(expected)
    if have.path != want.path:
        return False
    if want.fragment is not None and have.fragment != want.fragment:
        return False
    return all(have.query.get(name) == value for name, value in want.query.items())


def join_url_parts(*parts: str) -> str:
    """Join URL parts with exactly one ``/`` between them.

    Raises
    ------
    ValueError
        If called without any parts.

    """
    if not parts:
        msg = "Need at least one URL part"
        raise ValueError(msg)
    return "/".join(part.strip("/") for part in parts)


def locate_path(base_url: str, path: str) -> str:
    """Return ``path`` resolved against ``base_url`` unless already absolute."""
    if urllib.parse.urlsplit(path).scheme:
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def wait_until[T](
    condition: cabc.Callable[[], T],
    timeout: float = 5.0,
    interval: float = 0.1,
    *,
    sleep: cabc.Callable[[float], object] = time.sleep,
) -> T:
    """Poll ``condition`` until it returns a truthy value.

    Returns
    -------
    T
        The first truthy result.

    Raises
    ------
    TimeoutError
        If ``timeout`` seconds pass without a truthy result.

    """
    deadline = time.monotonic() + timeout
    while True:
        result = condition()
        if result:
            return result
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            msg = f"condition not met within {timeout} seconds"
            raise TimeoutError(msg)
        sleep(min(interval, remaining))
