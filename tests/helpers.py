"""Fakes shared by the extractor and API tests."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Tuple

from linkextractor.services.errors import FetchError
from linkextractor.services.fetcher import FetchResponse


def html_response(
    url: str,
    body: str,
    status_code: int = 200,
    content_type: str = "text/html; charset=utf-8",
) -> FetchResponse:
    return FetchResponse(url=url, status_code=status_code, content_type=content_type, text=body)


def listing_page(links: List[Tuple[str, str]]) -> str:
    anchors = "\n".join(f'<a href="{href}">{text}</a>' for href, text in links)
    return f"<html><body><nav><a href=\"/\">Home</a></nav>{anchors}</body></html>"


class FakeClient:
    """Stands in for :class:`FetchClient`, serving canned pages by URL.

    Values in ``pages`` may be a :class:`FetchResponse` or an exception to raise.
    Unknown URLs raise :class:`FetchError`.
    """

    def __init__(
        self,
        pages: Dict[str, object],
        *,
        delay: float = 0.0,
        on_fetch: Callable[[str], None] | None = None,
    ) -> None:
        self.pages = pages
        self.delay = delay
        self.on_fetch = on_fetch
        self.calls: List[Tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def fetch(self, url: str, timeout: float, cancel_event: threading.Event | None = None):
        with self._lock:
            self.calls.append((url, timeout))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_fetch is not None:
                self.on_fetch(url)
            if self.delay:
                time.sleep(self.delay)
            page = self.pages.get(url)
            if page is None:
                raise FetchError(url, "connection refused")
            if isinstance(page, Exception):
                raise page
            return page
        finally:
            with self._lock:
                self.in_flight -= 1

    def close(self) -> None:
        pass

    @property
    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]
