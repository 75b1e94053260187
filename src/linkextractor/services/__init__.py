"""Service layer entry points for the link extractor."""

from __future__ import annotations

from .extractor import CrawlState, LinkExtractor, extract_links  # noqa: F401
from .fetcher import FetchClient, FetchResponse  # noqa: F401

__all__ = ["CrawlState", "FetchClient", "FetchResponse", "LinkExtractor", "extract_links"]
