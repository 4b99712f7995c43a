"""Read HTML email bodies the way a recipient would."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment

_WHITESPACE = re.compile(r"\s+")


def plaintext(html: str) -> str:
    """Return the visible text of ``html`` on a single line.

    Comments, ``script`` and ``style`` elements are dropped. Text nodes are
    joined with spaces and runs of whitespace collapse.
    """
    soup = BeautifulSoup(html, "html.parser")
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()
    for element in soup.find_all(["script", "style"]):
        element.decompose()
    return _WHITESPACE.sub(" ", soup.get_text(" ")).strip()


def find_link(html: str, text: str) -> str | None:
    """Return the ``href`` of the link labelled ``text``.

    A link matches when its text, ``title``, ``id`` or the ``alt`` of an
    image inside it equals ``text`` after whitespace is collapsed.
    """
    wanted = _WHITESPACE.sub(" ", text).strip()
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        labels = {
            _WHITESPACE.sub(" ", anchor.get_text()).strip(),
            str(anchor.get("title", "")),
            str(anchor.get("id", "")),
        }
        labels.update(str(image.get("alt", "")) for image in anchor.find_all("img"))
        labels.discard("")
        if wanted in labels:
            return str(anchor["href"])
    return None
