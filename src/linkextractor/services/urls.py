"""URL helpers shared by the scanner, classifier and orchestrator."""

from __future__ import annotations

from urllib.parse import urldefrag, urljoin, urlparse

__all__ = ["domain_of", "is_external", "is_valid_url", "normalize", "strip_fragment"]


def is_valid_url(value: str) -> bool:
    """Return ``True`` when ``value`` parses as an absolute URI."""

    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlparse(value)
        # Accessing ``port`` validates it; urlparse alone accepts "host:abc".
        parsed.port
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc and parsed.hostname)


def domain_of(url: str) -> str:
    """Return the hostname of ``url`` without a leading ``www.``.

    An empty string means the URL has no usable host and the link should be
    dropped.
    """

    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return ""
    if not hostname:
        return ""
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname


def normalize(href: str, base: str) -> str:
    """Resolve ``href`` against ``base``.

    Protocol-relative links (``//host/path``) are pinned to ``https`` first.
    Malformed input is returned unchanged.
    """

    candidate = href.strip()
    if candidate.startswith("//"):
        candidate = f"https:{candidate}"
    try:
        return urljoin(base, candidate)
    except ValueError:
        return href


def is_external(link: str, base: str) -> bool:
    """Return ``True`` when ``link`` points at a different host than ``base``.

    Anything that fails to parse counts as internal.
    """

    try:
        link_host = urlparse(normalize(link, base)).hostname or ""
        base_host = urlparse(base).hostname or ""
    except ValueError:
        return False
    return link_host != base_host


def strip_fragment(url: str) -> str:
    """Return ``url`` without its ``#fragment``."""

    try:
        return urldefrag(url).url
    except ValueError:
        return url
