"""URL segment utilities.

URL segments are the lower-case, hyphenated path components pages use to
build their relative links. They are derived from titles when a fixture
does not declare one explicitly.
"""

from __future__ import annotations

import re
import unicodedata

_NON_SEGMENT = re.compile(r"[^a-z0-9]+")


def url_segment(title: str) -> str:
    """Convert a page title into a URL segment.

    Parameters
    ----------
    title:
        Human readable title, e.g. ``"About Us"``.

    Returns
    -------
    str
        Segment in ``lower-hyphenated`` form. Titles without any usable
        characters fall back to ``"page"``.

    Examples
    --------
    >>> url_segment("About Us")
    'about-us'
    >>> url_segment("Page 1.1")
    'page-1-1'

    """
    ascii_title = (
        unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    )
    segment = _NON_SEGMENT.sub("-", ascii_title.lower()).strip("-")
    return segment or "page"


def join_segments(*segments: str) -> str:
    """Join URL segments into an absolute link with a trailing slash.

    Examples
    --------
    >>> join_segments("about-us", "team")
    '/about-us/team/'
    >>> join_segments()
    '/'

    """
    parts = [part.strip("/") for part in segments if part and part.strip("/")]
    if not parts:
        return "/"
    return "/" + "/".join(parts) + "/"
