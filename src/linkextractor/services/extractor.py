"""Two-level crawl: seed page to articles, articles to external links."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import List, Sequence

from linkextractor.config import ExtractorConfig
from linkextractor.models import ArticleLink, ExternalLink, ExtractionResult
from linkextractor.services.aggregator import aggregate
from linkextractor.services.classifier import select_articles
from linkextractor.services.errors import (
    ExtractionCancelledError,
    FetchCancelledError,
    FetchError,
    InvalidUrlError,
    NoArticlesError,
    NotHtmlError,
    SeedFetchError,
)
from linkextractor.services.fetcher import FetchClient, build_headers
from linkextractor.services.scanner import scan_links
from linkextractor.services.urls import (
    domain_of,
    is_external,
    is_valid_url,
    normalize,
    strip_fragment,
)

__all__ = ["CrawlState", "LinkExtractor", "extract_external_links", "extract_links"]

logger = logging.getLogger(__name__)

_SKIPPED_PREFIXES = ("#", "javascript:", "mailto:")


class CrawlState(str, Enum):
    VALIDATING_INPUT = "validating_input"
    FETCHING_SEED = "fetching_seed"
    CLASSIFYING_ARTICLES = "classifying_articles"
    CRAWLING_ARTICLES = "crawling_articles"
    DONE = "done"
    ABORTED = "aborted"


def extract_external_links(html: str, article: ArticleLink) -> List[ExternalLink]:
    """Return the links in ``html`` that leave the article's host.

    Fragments are dropped so ``/x`` and ``/x#section`` are the same link.
    Duplicates within the page are removed, first occurrence first.
    """

    links: List[ExternalLink] = []
    seen: set[str] = set()

    for raw_href, text in scan_links(html):
        if not raw_href or raw_href.lower().startswith(_SKIPPED_PREFIXES):
            continue

        url = strip_fragment(normalize(raw_href, article.url))
        if url in seen or not is_valid_url(url):
            continue
        if not is_external(url, article.url):
            continue

        seen.add(url)
        domain = domain_of(url)
        if domain:
            links.append(
                ExternalLink(
                    url=url,
                    title=text or None,
                    source=article.title,
                    source_article=article.url,
                    domain=domain,
                )
            )

    return links


class LinkExtractor:
    """Run one extraction request.

    An instance holds per-request state (current :class:`CrawlState`, the
    cancellation event) and should not be shared between requests. Setting
    ``cancel_event`` from another thread aborts in-flight fetches, skips the
    remaining batches and makes :meth:`extract` raise
    :class:`ExtractionCancelledError`.
    """

    def __init__(
        self,
        client: FetchClient | None = None,
        config: ExtractorConfig | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.config = config or ExtractorConfig()
        self._owns_client = client is None
        self._client = client or FetchClient(
            headers=build_headers(self.config.user_agent),
            max_body_bytes=self.config.max_body_bytes,
        )
        self.cancel_event = cancel_event or threading.Event()
        self.state = CrawlState.VALIDATING_INPUT

    def __enter__(self) -> "LinkExtractor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def cancel(self) -> None:
        self.cancel_event.set()

    def extract(self, url: object) -> ExtractionResult:
        """Crawl ``url`` and return the aggregated external links of its articles."""

        started = time.perf_counter()
        try:
            self._transition(CrawlState.VALIDATING_INPUT)
            seed_url = self._validate(url)

            self._transition(CrawlState.FETCHING_SEED)
            html = self._fetch_seed(seed_url)

            self._transition(CrawlState.CLASSIFYING_ARTICLES)
            articles = select_articles(
                html,
                seed_url,
                limit=self.config.max_articles,
                min_title_length=self.config.min_title_length,
            )
            if not articles:
                raise NoArticlesError(
                    "No articles found on this page. Please try a blog or news page."
                )
            logger.info("Found %d articles on %s", len(articles), seed_url)

            self._transition(CrawlState.CRAWLING_ARTICLES)
            raw_links = self._crawl_articles(articles)

            self._transition(CrawlState.DONE)
            result = aggregate(articles, raw_links, time.perf_counter() - started)
        except Exception:
            self._transition(CrawlState.ABORTED)
            raise

        logger.info(
            "Extracted %d external links across %d domains from %s in %.2fs",
            result.total_external_links,
            result.unique_domains,
            seed_url,
            result.processing_time,
        )
        return result

    def _transition(self, state: CrawlState) -> None:
        logger.debug("Extraction state %s -> %s", self.state.value, state.value)
        self.state = state

    def _validate(self, url: object) -> str:
        if not url or not isinstance(url, str):
            raise InvalidUrlError("Valid URL is required")
        if not is_valid_url(url):
            raise InvalidUrlError("Invalid URL format")
        return url

    def _fetch_seed(self, url: str) -> str:
        try:
            response = self._client.fetch(
                url, timeout=self.config.seed_timeout, cancel_event=self.cancel_event
            )
        except FetchCancelledError as exc:
            raise ExtractionCancelledError("Extraction was cancelled") from exc
        except FetchError as exc:
            logger.warning("Failed to fetch seed page %s: %s", url, exc)
            raise SeedFetchError(
                "Failed to fetch the URL. Please check if the website is accessible."
            ) from exc

        if not response.ok:
            raise SeedFetchError(
                f"HTTP {response.status_code}: Failed to fetch the webpage",
                status_code=response.status_code,
            )
        if not response.is_html:
            raise NotHtmlError("The URL does not point to an HTML page")
        return response.text

    def _crawl_articles(self, articles: Sequence[ArticleLink]) -> List[ExternalLink]:
        """Fetch ``articles`` in fixed-size batches and merge their links in order."""

        size = self.config.batch_size
        batches = [articles[start:start + size] for start in range(0, len(articles), size)]
        collected: List[ExternalLink] = []

        with ThreadPoolExecutor(max_workers=size, thread_name_prefix="article-fetch") as pool:
            for index, batch in enumerate(batches, start=1):
                self._raise_if_cancelled()
                logger.info("Crawling batch %d/%d (%d articles)", index, len(batches), len(batch))

                # map() yields in submission order and only returns once every
                # fetch in the batch has finished.
                for links in pool.map(self._links_for_article, batch):
                    collected.extend(links)

                if index < len(batches):
                    self._pause()

        self._raise_if_cancelled()
        return collected

    def _links_for_article(self, article: ArticleLink) -> List[ExternalLink]:
        try:
            response = self._client.fetch(
                article.url, timeout=self.config.article_timeout, cancel_event=self.cancel_event
            )
        except FetchError as exc:
            logger.warning("Failed %s: %s", article.url, exc)
            return []

        if not response.ok:
            logger.warning("Skipping %s: HTTP %d", article.url, response.status_code)
            return []

        try:
            return extract_external_links(response.text, article)
        except Exception as exc:  # noqa: BLE001 - one bad page must not stop the crawl
            logger.warning("Failed to scan %s: %s", article.url, exc)
            return []

    def _pause(self) -> None:
        if self.cancel_event.wait(self.config.batch_pause):
            raise ExtractionCancelledError("Extraction was cancelled")

    def _raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ExtractionCancelledError("Extraction was cancelled")


def extract_links(url: str, config: ExtractorConfig | None = None) -> ExtractionResult:
    """Run a single extraction with a fresh client."""

    with LinkExtractor(config=config) as extractor:
        return extractor.extract(url)
