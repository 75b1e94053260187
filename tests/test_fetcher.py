from __future__ import annotations

import socket
import threading
import time
from contextlib import contextmanager

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from linkextractor.services.errors import FetchCancelledError, FetchError, FetchTimeoutError
from linkextractor.services.fetcher import DEFAULT_HEADERS, FetchClient, FetchResponse, build_headers


class DummyStreamResponse:
    def __init__(
        self,
        chunks: list[bytes],
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
        encoding: str | None = "utf-8",
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.chunks = chunks
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self.encoding = encoding
        self.delay = delay
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for chunk in self.chunks:
            if self.delay:
                time.sleep(self.delay)
            yield chunk
        if self.error is not None:
            raise self.error

    def __enter__(self) -> "DummyStreamResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True


class DummySession:
    def __init__(self, response: DummyStreamResponse | None = None, error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.response = response
        self.error = error
        self.calls: list[tuple[str, object, bool]] = []
        self.closed = False

    def get(self, url, timeout, stream):
        self.calls.append((url, timeout, stream))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self) -> None:
        self.closed = True


def test_client_sends_browser_headers() -> None:
    session = DummySession(DummyStreamResponse([b"<html></html>"]))

    FetchClient(session=session)

    assert session.headers["User-Agent"].startswith("Mozilla/5.0")
    assert session.headers == DEFAULT_HEADERS


def test_custom_user_agent() -> None:
    session = DummySession()

    FetchClient(session=session, headers=build_headers("TestAgent/1.0"))

    assert session.headers["User-Agent"] == "TestAgent/1.0"


def test_fetch_returns_decoded_body() -> None:
    response = DummyStreamResponse([b"<html>", "café".encode("utf-8"), b"</html>"])
    session = DummySession(response)

    result = FetchClient(session=session).fetch("https://example.com/", timeout=15)

    assert result == FetchResponse(
        url="https://example.com/",
        status_code=200,
        content_type="text/html; charset=utf-8",
        text="<html>café</html>",
    )
    assert result.ok and result.is_html
    assert session.calls == [("https://example.com/", (15, 15), True)]
    assert response.closed


def test_fetch_honours_declared_charset() -> None:
    response = DummyStreamResponse(
        [b"caf\xe9"], content_type="text/html; charset=ISO-8859-1", encoding="ISO-8859-1"
    )

    result = FetchClient(session=DummySession(response)).fetch("https://example.com/", timeout=5)

    assert result.text == "café"


def test_fetch_defaults_to_utf8_without_charset() -> None:
    response = DummyStreamResponse(
        ["naïve".encode("utf-8")], content_type="text/html", encoding="ISO-8859-1"
    )

    result = FetchClient(session=DummySession(response)).fetch("https://example.com/", timeout=5)

    assert result.text == "naïve"


def test_error_status_is_returned_not_raised() -> None:
    response = DummyStreamResponse([b"gone"], status_code=404)

    result = FetchClient(session=DummySession(response)).fetch("https://example.com/", timeout=5)

    assert result.status_code == 404
    assert result.ok is False


def test_non_html_content_type() -> None:
    response = DummyStreamResponse([b"{}"], content_type="application/json")

    result = FetchClient(session=DummySession(response)).fetch("https://example.com/", timeout=5)

    assert result.is_html is False


def test_connect_timeout_raises_timeout_error() -> None:
    session = DummySession(error=requests.ConnectTimeout("slow"))

    with pytest.raises(FetchTimeoutError):
        FetchClient(session=session).fetch("https://example.com/", timeout=1)


def test_transport_error_raises_fetch_error() -> None:
    session = DummySession(error=requests.ConnectionError("refused"))

    with pytest.raises(FetchError) as excinfo:
        FetchClient(session=session).fetch("https://example.com/", timeout=1)

    assert not isinstance(excinfo.value, FetchTimeoutError)
    assert excinfo.value.url == "https://example.com/"


def test_deadline_covers_the_body() -> None:
    response = DummyStreamResponse([b"a", b"b", b"c"], delay=0.05)
    session = DummySession(response)

    with pytest.raises(FetchTimeoutError):
        FetchClient(session=session).fetch("https://example.com/", timeout=0.01)

    assert response.closed


def test_cancelled_event_stops_fetch() -> None:
    cancel_event = threading.Event()
    cancel_event.set()
    session = DummySession(DummyStreamResponse([b"a"]))

    with pytest.raises(FetchCancelledError):
        FetchClient(session=session).fetch("https://example.com/", timeout=5, cancel_event=cancel_event)

    assert session.calls == []


def test_large_bodies_are_truncated() -> None:
    response = DummyStreamResponse([b"abcd", b"efgh", b"ijkl"])

    client = FetchClient(session=DummySession(response), max_body_bytes=4)
    result = client.fetch("https://example.com/", timeout=5)

    assert result.text == "abcd"


def test_client_closes_session() -> None:
    session = DummySession()

    with FetchClient(session=session):
        pass

    assert session.closed


def test_stalled_body_read_is_a_timeout() -> None:
    stalled = requests.ConnectionError(
        ReadTimeoutError(None, "https://example.com/", "Read timed out.")
    )
    response = DummyStreamResponse([b"<html>"], error=stalled)

    with pytest.raises(FetchTimeoutError):
        FetchClient(session=DummySession(response)).fetch("https://example.com/", timeout=5)


def _read_request(conn: socket.socket) -> None:
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return
        data += chunk


@contextmanager
def serve_once(handler):
    """Serve one raw HTTP exchange on localhost, written by ``handler(conn, stop)``."""

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5)
    port = listener.getsockname()[1]
    stop = threading.Event()

    def run() -> None:
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            try:
                _read_request(conn)
                handler(conn, stop)
            except OSError:
                pass

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{port}/"
    finally:
        stop.set()
        listener.close()
        thread.join(timeout=5)


def _slow_headers(conn: socket.socket, stop: threading.Event) -> None:
    conn.sendall(b"HTTP/1.1 200 OK\r\n")
    for _ in range(50):
        if stop.wait(0.2):
            return
        conn.sendall(b"X-Slow: a\r\n")


def _slow_body(conn: socket.socket, stop: threading.Event) -> None:
    conn.sendall(
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/html\r\n"
        b"Content-Length: 1000\r\n"
        b"\r\n"
    )
    for _ in range(50):
        if stop.wait(0.2):
            return
        conn.sendall(b"a")


def _quick_page(conn: socket.socket, stop: threading.Event) -> None:
    body = b"<html>ok</html>"
    conn.sendall(
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/html; charset=utf-8\r\n"
        b"Content-Length: " + str(len(body)).encode() + b"\r\n"
        b"Connection: close\r\n"
        b"\r\n" + body
    )


def test_real_server_page_is_fetched() -> None:
    with serve_once(_quick_page) as url, FetchClient() as client:
        result = client.fetch(url, timeout=5)

    assert result.status_code == 200
    assert result.is_html
    assert result.text == "<html>ok</html>"


def test_deadline_covers_slow_headers() -> None:
    with serve_once(_slow_headers) as url, FetchClient() as client:
        started = time.monotonic()
        with pytest.raises(FetchTimeoutError):
            client.fetch(url, timeout=1.0)
        elapsed = time.monotonic() - started

    assert elapsed < 1.5


def test_deadline_covers_slow_body_on_real_socket() -> None:
    with serve_once(_slow_body) as url, FetchClient() as client:
        started = time.monotonic()
        with pytest.raises(FetchTimeoutError):
            client.fetch(url, timeout=1.0)
        elapsed = time.monotonic() - started

    assert elapsed < 1.5


def test_cancellation_interrupts_header_wait() -> None:
    cancel_event = threading.Event()
    timer = threading.Timer(0.3, cancel_event.set)

    with serve_once(_slow_headers) as url, FetchClient() as client:
        started = time.monotonic()
        timer.start()
        try:
            with pytest.raises(FetchCancelledError):
                client.fetch(url, timeout=5.0, cancel_event=cancel_event)
        finally:
            timer.cancel()
        elapsed = time.monotonic() - started

    assert elapsed < 1.0
