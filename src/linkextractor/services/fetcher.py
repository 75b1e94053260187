"""HTTP fetching with hard deadlines for seed and article pages."""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import List

import requests
from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import ReadTimeoutError

from linkextractor.config import DEFAULT_USER_AGENT
from linkextractor.services.errors import FetchCancelledError, FetchError, FetchTimeoutError

__all__ = [
    "DEFAULT_HEADERS",
    "DeadlineAdapter",
    "FetchClient",
    "FetchResponse",
    "build_headers",
]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024
DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024
WATCHDOG_INTERVAL = 0.05

# Watchdog of the fetch running on the current thread; pools register the
# connection they hand out with it.
_active = threading.local()


def build_headers(user_agent: str = DEFAULT_USER_AGENT) -> dict[str, str]:
    """Return browser-like request headers; some sites refuse anonymous clients."""

    return {
        "User-Agent": user_agent,
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    }


DEFAULT_HEADERS = build_headers()


class _Watchdog:
    """Background thread that aborts a fetch once its deadline passes or it is cancelled.

    Aborting shuts the registered connection's socket down, which wakes any
    read blocked on it, whether it is waiting for headers or for body bytes.
    """

    def __init__(self, timeout: float, cancel_event: threading.Event | None) -> None:
        self.deadline = time.monotonic() + timeout
        self.expired = False
        self.cancelled = False
        self._cancel_event = cancel_event
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._connection = None
        self._thread = threading.Thread(target=self._run, name="fetch-watchdog", daemon=True)

    def start(self) -> None:
        _active.watchdog = self
        self._thread.start()

    def stop(self) -> None:
        with self._lock:
            self._done.set()
            self._connection = None
        _active.watchdog = None

    def watch(self, connection) -> None:
        with self._lock:
            self._connection = connection

    @property
    def tripped(self) -> bool:
        return self.expired or self.cancelled

    def _run(self) -> None:
        while True:
            if not self.tripped:
                if self._cancel_event is not None and self._cancel_event.is_set():
                    self.cancelled = True
                elif time.monotonic() >= self.deadline:
                    self.expired = True

            if self.tripped:
                # Keep retrying: the socket may only exist once connect() returns.
                self._abort()
                wait = WATCHDOG_INTERVAL
            else:
                wait = min(max(self.deadline - time.monotonic(), 0.0), WATCHDOG_INTERVAL)

            if self._done.wait(wait):
                return

    def _abort(self) -> None:
        with self._lock:
            if self._done.is_set() or self._connection is None:
                return
            sock = getattr(self._connection, "sock", None)
            if not isinstance(sock, socket.socket):
                return
            try:
                # Plain socket shutdown, bypassing SSLSocket's unwrap logic.
                socket.socket.shutdown(sock, socket.SHUT_RDWR)
            except OSError:
                pass


def _watch_connection(connection) -> None:
    watchdog = getattr(_active, "watchdog", None)
    if watchdog is not None:
        watchdog.watch(connection)


class _WatchedHTTPConnectionPool(HTTPConnectionPool):
    def _get_conn(self, timeout=None):
        connection = super()._get_conn(timeout=timeout)
        _watch_connection(connection)
        return connection


class _WatchedHTTPSConnectionPool(HTTPSConnectionPool):
    def _get_conn(self, timeout=None):
        connection = super()._get_conn(timeout=timeout)
        _watch_connection(connection)
        return connection


class DeadlineAdapter(HTTPAdapter):
    """Transport adapter whose connections can be aborted by a fetch watchdog."""

    def init_poolmanager(self, *args, **kwargs) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _WatchedHTTPConnectionPool,
            "https": _WatchedHTTPSConnectionPool,
        }


@dataclass(frozen=True)
class FetchResponse:
    url: str
    status_code: int
    content_type: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


class FetchClient:
    """Thin wrapper around :class:`requests.Session` enforcing a per-call deadline.

    The timeout passed to :meth:`fetch` bounds the whole exchange: connecting,
    reading the headers and streaming the body. A watchdog thread drops the
    connection once the deadline passes or the cancellation event is set.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        headers: dict[str, str] | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(headers or DEFAULT_HEADERS)
        if isinstance(self._session, requests.Session):
            adapter = DeadlineAdapter()
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)
        self._max_body_bytes = max_body_bytes

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "FetchClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch(
        self,
        url: str,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> FetchResponse:
        """GET ``url`` and return its decoded body.

        Raises :class:`FetchTimeoutError` when ``timeout`` seconds elapse,
        :class:`FetchCancelledError` when ``cancel_event`` is set before the
        transfer completes and :class:`FetchError` for any other transport
        failure. HTTP error statuses are returned, not raised.
        """

        if cancel_event is not None and cancel_event.is_set():
            raise FetchCancelledError(url, "cancelled before start")

        watchdog = _Watchdog(timeout, cancel_event)
        watchdog.start()
        try:
            try:
                response = self._session.get(url, timeout=(timeout, timeout), stream=True)
            except (requests.RequestException, OSError) as exc:
                raise _failure(url, timeout, exc, watchdog) from exc

            with response:
                chunks: List[bytes] = []
                size = 0
                try:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if watchdog.tripped or time.monotonic() > watchdog.deadline:
                            break
                        chunks.append(chunk)
                        size += len(chunk)
                        if size >= self._max_body_bytes:
                            logger.debug("Truncating body of %s at %d bytes", url, size)
                            break
                except (requests.RequestException, OSError) as exc:
                    raise _failure(url, timeout, exc, watchdog) from exc

                # An aborted connection can also look like a clean end of body.
                if cancel_event is not None and cancel_event.is_set():
                    raise FetchCancelledError(url, "cancelled during transfer")
                if watchdog.tripped or time.monotonic() > watchdog.deadline:
                    raise FetchTimeoutError(url, f"timed out after {timeout:g}s")

                content_type = response.headers.get("Content-Type", "")
                text = _decode(b"".join(chunks), response.encoding, content_type)
                return FetchResponse(
                    url=url,
                    status_code=response.status_code,
                    content_type=content_type,
                    text=text,
                )
        finally:
            watchdog.stop()


def _failure(url: str, timeout: float, exc: Exception, watchdog: _Watchdog) -> FetchError:
    if watchdog.cancelled:
        return FetchCancelledError(url, "cancelled during transfer")
    if watchdog.expired or _is_timeout(exc):
        return FetchTimeoutError(url, f"timed out after {timeout:g}s")
    return FetchError(url, str(exc))


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, (requests.Timeout, ReadTimeoutError, socket.timeout)):
        return True
    # iter_content re-raises urllib3's ReadTimeoutError as a ConnectionError.
    return any(isinstance(arg, ReadTimeoutError) for arg in getattr(exc, "args", ()))


def _decode(body: bytes, encoding: str | None, content_type: str) -> str:
    # requests falls back to ISO-8859-1 for any text/* type; only trust an
    # explicit charset.
    if encoding and "charset" in content_type.lower():
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            pass
    return body.decode("utf-8", errors="replace")
