"""Per-domain and per-article breakdowns plus CSV/JSON exports of a result."""

from __future__ import annotations

import csv
import io
import json
from datetime import UTC, datetime
from typing import Dict, Iterable, List, Sequence

from pydantic import BaseModel, Field

from linkextractor.models import ExternalLink, ExtractionResult

__all__ = [
    "ArticleSummary",
    "DomainSummary",
    "articles_to_json",
    "domains_to_csv",
    "domains_to_json",
    "is_excluded_domain",
    "summarize_articles",
    "summarize_domains",
]

SAMPLE_ARTICLES = 3


class DomainSummary(BaseModel):
    domain: str
    link_count: int
    article_count: int
    articles: List[str] = Field(default_factory=list)
    links: List[ExternalLink] = Field(default_factory=list)


class ArticleSummary(BaseModel):
    url: str
    title: str
    external_link_count: int
    domain_count: int


def is_excluded_domain(domain: str, excluded: Iterable[str]) -> bool:
    """Return ``True`` when ``domain`` and an excluded entry contain one another.

    ``".gov"`` therefore excludes every ``*.gov`` host. Substring matching is
    coarse: ``"x.com"`` also excludes ``"max.com"``.
    """

    return any(entry and (entry in domain or domain in entry) for entry in excluded)


def summarize_domains(
    result: ExtractionResult, excluded_domains: Sequence[str] = ()
) -> List[DomainSummary]:
    """Group the result's external links by domain, most linked domains first."""

    grouped: Dict[str, List[ExternalLink]] = {}
    for link in result.external_links:
        if is_excluded_domain(link.domain, excluded_domains):
            continue
        grouped.setdefault(link.domain, []).append(link)

    summaries = []
    for domain, links in grouped.items():
        articles = list(dict.fromkeys(link.source_article for link in links))
        summaries.append(
            DomainSummary(
                domain=domain,
                link_count=len(links),
                article_count=len(articles),
                articles=articles,
                links=links,
            )
        )

    summaries.sort(key=lambda summary: (-summary.link_count, summary.domain))
    return summaries


def summarize_articles(result: ExtractionResult) -> List[ArticleSummary]:
    """Return how many (deduplicated) external links each article contributed."""

    links_by_article: Dict[str, List[ExternalLink]] = {}
    for link in result.external_links:
        links_by_article.setdefault(link.source_article, []).append(link)

    summaries = []
    for article in result.articles:
        links = links_by_article.get(article.url, [])
        summaries.append(
            ArticleSummary(
                url=article.url,
                title=article.title,
                external_link_count=len(links),
                domain_count=len({link.domain for link in links}),
            )
        )
    return summaries


def domains_to_csv(summaries: Sequence[DomainSummary]) -> str:
    """Render domain summaries as CSV with every cell quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Domain", "Link Count", "Article Count", "Sample Articles"])
    for summary in summaries:
        sample = ", ".join(summary.articles[:SAMPLE_ARTICLES])
        if len(summary.articles) > SAMPLE_ARTICLES:
            sample += "..."
        writer.writerow([summary.domain, summary.link_count, summary.article_count, sample])
    return buffer.getvalue()


def domains_to_json(
    summaries: Sequence[DomainSummary],
    result: ExtractionResult,
    *,
    source_url: str,
    excluded_domains: Sequence[str] = (),
    exported_at: datetime | None = None,
) -> str:
    """Render domain summaries and an export header as indented JSON."""

    exported_at = exported_at or datetime.now(UTC)
    articles = summarize_articles(result)
    payload = {
        "summary": {
            "totalUniqueDomains": len(summaries),
            "totalLinks": sum(summary.link_count for summary in summaries),
            "totalArticles": result.total_articles,
            "sourceUrl": source_url,
            "exportDate": exported_at.isoformat(),
            "excludedDomains": list(excluded_domains),
            "articlesWithExternalLinks": result.articles_with_external_links,
        },
        "domains": [
            {
                "domain": summary.domain,
                "linkCount": summary.link_count,
                "articleCount": summary.article_count,
                "articles": summary.articles,
                "links": [
                    {"url": link.url, "title": link.title, "source": link.source}
                    for link in summary.links
                ],
            }
            for summary in summaries
        ],
        "articles": [_article_entry(summary) for summary in articles],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _article_entry(summary: ArticleSummary) -> dict:
    return {
        "url": summary.url,
        "title": summary.title,
        "externalLinkCount": summary.external_link_count,
        "domainCount": summary.domain_count,
    }


def articles_to_json(summaries: Sequence[ArticleSummary]) -> str:
    """Render per-article link counts as indented JSON."""

    return json.dumps([_article_entry(summary) for summary in summaries], ensure_ascii=False, indent=2)
