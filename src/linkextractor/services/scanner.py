"""Anchor scanning over raw, possibly malformed, HTML."""

from __future__ import annotations

from typing import Iterator, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

__all__ = ["anchor_text", "scan_links"]


def anchor_text(anchor: Tag) -> str:
    """Return the trimmed text written directly inside ``anchor``.

    Text belonging to nested elements (``<span>``, ``<img alt>``...) is not
    included.
    """

    parts = [
        str(child)
        for child in anchor.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    ]
    return "".join(parts).strip()


def scan_links(html: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(href, text)`` for every anchor with an ``href`` in document order.

    Duplicates are preserved; callers decide how to deduplicate.
    """

    if not html:
        return

    soup = BeautifulSoup(html, "lxml")
    for anchor in soup.find_all("a", href=True):
        href = anchor.get("href")
        if not isinstance(href, str):
            continue
        yield href.strip(), anchor_text(anchor)
