"""Deduplication and summary statistics for extracted links."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from linkextractor.models import ArticleLink, ExternalLink, ExtractionResult

__all__ = ["aggregate", "dedupe_links"]


def dedupe_links(links: Iterable[ExternalLink]) -> List[ExternalLink]:
    """Drop links whose URL was already seen, keeping the first occurrence."""

    seen: set[str] = set()
    unique: List[ExternalLink] = []
    for link in links:
        if link.url in seen:
            continue
        seen.add(link.url)
        unique.append(link)
    return unique


def aggregate(
    articles: Sequence[ArticleLink],
    raw_links: Iterable[ExternalLink],
    processing_time: float,
) -> ExtractionResult:
    """Build the final :class:`ExtractionResult`.

    Links are deduplicated before sorting so the earliest article keeps
    ownership of a shared link; the sort by domain is stable.
    """

    external_links = sorted(dedupe_links(raw_links), key=lambda link: link.domain)
    domains = {link.domain for link in external_links}
    contributing = {link.source_article for link in external_links}

    return ExtractionResult(
        total_articles=len(articles),
        total_external_links=len(external_links),
        unique_domains=len(domains),
        articles=list(articles),
        external_links=external_links,
        processing_time=processing_time,
        articles_with_external_links=len(contributing),
    )
