"""Exceptions raised by the fetch client and the extraction pipeline."""

from __future__ import annotations

__all__ = [
    "ExtractionCancelledError",
    "ExtractionError",
    "FetchCancelledError",
    "FetchError",
    "FetchTimeoutError",
    "InvalidUrlError",
    "NoArticlesError",
    "NotHtmlError",
    "SeedFetchError",
]


class FetchError(Exception):
    """A GET request could not be completed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class FetchTimeoutError(FetchError):
    """The request did not finish before its deadline."""


class FetchCancelledError(FetchError):
    """The request was abandoned because the extraction was cancelled."""


class ExtractionError(Exception):
    """An extraction failure that is reported back to the caller.

    ``str(exc)`` is the user-facing message.
    """


class InvalidUrlError(ExtractionError):
    pass


class SeedFetchError(ExtractionError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotHtmlError(ExtractionError):
    pass


class NoArticlesError(ExtractionError):
    pass


class ExtractionCancelledError(ExtractionError):
    pass
