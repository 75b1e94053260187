"""Heuristics deciding which internal links on a listing page are articles."""

from __future__ import annotations

import logging
import re
from typing import List

from linkextractor.models import ArticleLink
from linkextractor.services.scanner import scan_links
from linkextractor.services.urls import domain_of, is_external, is_valid_url, normalize

__all__ = ["MAX_ARTICLES", "MIN_TITLE_LENGTH", "is_article_link", "select_articles"]

logger = logging.getLogger(__name__)

MAX_ARTICLES = 50
MIN_TITLE_LENGTH = 5

_SKIP_PATTERNS = [
    re.compile(r"/category/", re.IGNORECASE),
    re.compile(r"/tag/", re.IGNORECASE),
    re.compile(r"/author/", re.IGNORECASE),
    re.compile(r"/page/", re.IGNORECASE),
    re.compile(r"/search", re.IGNORECASE),
    re.compile(r"/login", re.IGNORECASE),
    re.compile(r"/register", re.IGNORECASE),
    re.compile(r"/contact", re.IGNORECASE),
    re.compile(r"/about", re.IGNORECASE),
    re.compile(r"\.(?:pdf|jpg|png|gif)$", re.IGNORECASE),
    re.compile(r"#"),
    re.compile(r"\?"),
]

_ARTICLE_PATTERNS = [
    re.compile(r"/article/", re.IGNORECASE),
    re.compile(r"/blog/", re.IGNORECASE),
    re.compile(r"/post/", re.IGNORECASE),
    re.compile(r"/news/", re.IGNORECASE),
    re.compile(r"/story/", re.IGNORECASE),
    re.compile(r"/\d{4}/\d{2}/"),  # /2024/01/
    re.compile(r"-\d+$"),  # trailing numeric id
]

_TITLE_INDICATORS = [
    re.compile(r"\b\d{4}\b"),
    re.compile(r"\b(?:how|what|why|when|where|top|best|guide|tutorial)\b", re.IGNORECASE),
    re.compile(r"\b(?:review|analysis|breaking|latest)\b", re.IGNORECASE),
]


def is_article_link(url: str, title: str) -> bool:
    """Return ``True`` when ``url``/``title`` look like an article rather than navigation."""

    if any(pattern.search(url) for pattern in _SKIP_PATTERNS):
        return False

    if any(pattern.search(url) for pattern in _ARTICLE_PATTERNS):
        return True

    if any(pattern.search(title) for pattern in _TITLE_INDICATORS):
        return True

    # Untitled patterns: long URL and a descriptive anchor.
    return len(url) > 20 and len(title) > 10


def select_articles(
    html: str,
    base_url: str,
    *,
    limit: int = MAX_ARTICLES,
    min_title_length: int = MIN_TITLE_LENGTH,
) -> List[ArticleLink]:
    """Return the article links of a seed page in document order.

    Only same-host links with at least ``min_title_length`` characters of anchor
    text are classified. The first occurrence of each normalized URL wins and
    the cap is applied after classification.
    """

    articles: List[ArticleLink] = []
    seen: set[str] = set()

    for raw_href, title in scan_links(html):
        if not raw_href or not title or len(title) < min_title_length:
            continue

        url = normalize(raw_href, base_url)
        if url in seen or not is_valid_url(url):
            continue
        if is_external(url, base_url):
            continue
        if not is_article_link(url, title):
            continue

        seen.add(url)
        domain = domain_of(url)
        if domain:
            articles.append(ArticleLink(url=url, title=title, domain=domain))

    if len(articles) > limit:
        logger.debug("Truncating %d article candidates to %d", len(articles), limit)
    return articles[:limit]
