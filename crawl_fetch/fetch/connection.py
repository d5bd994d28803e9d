"""
Connection construction shared by every fetch entry point.

A Connection is one prepared request plus the response obtained for it.
Building a connection never touches the network; the request goes out the
first time its status or headers are needed (Connection.open()).
"""

from __future__ import annotations

import logging

import httpx

from ..config import DEFAULT_METHOD, DEFAULT_TIMEOUT_MS, RequestConfig
from ..errors import FetchIOError, translate_httpx_error

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("http", "https")


class Connection:
    """A single request/response exchange owned by one fetch call.

    Attributes:
        session: The httpx client the request is sent through
        request: The prepared request
        config: The RequestConfig the request was built from, if any
    """

    def __init__(self, session: httpx.Client, request: httpx.Request, config: RequestConfig | None):
        self.session = session
        self.request = request
        self.config = config
        self._response: httpx.Response | None = None

    @property
    def url(self) -> httpx.URL:
        return self.request.url

    def open(self) -> httpx.Response:
        """Send the request once and return its (unread) response."""
        if self._response is None:
            try:
                self._response = self.session.send(self.request, stream=True, follow_redirects=False)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise translate_httpx_error(exc) from exc
            logger.debug("%s %s -> %s", self.request.method, self.url, self._response.status_code)
        return self._response

    @property
    def status_code(self) -> int:
        return self.open().status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.open().headers

    def location(self) -> str:
        """Absolute target of a redirect response."""
        value = self.headers.get("location")
        if not value:
            raise FetchIOError(f"{self.status_code} response from {self.url} has no Location header")
        try:
            return str(self.url.join(value))
        except httpx.InvalidURL as exc:
            raise FetchIOError(f"Malformed Location {value!r} from {self.url}") from exc

    def cookies(self) -> list[str]:
        return self.headers.get_list("set-cookie")

    def close(self) -> None:
        if self._response is not None:
            self._response.close()


def open_connection(session: httpx.Client, url: str, config: RequestConfig | None = None) -> Connection:
    """Build a configured, not yet sent connection for url.

    Without a config the request is a plain GET with a 30 s connect timeout
    and no read timeout. With a config its headers, method, timeouts and
    body (encoded with the configured charset) are applied.

    Raises:
        FetchIOError: The URL is malformed or its scheme is not http/https.
    """
    try:
        target = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise FetchIOError(f"Malformed URL {url!r}: {exc}") from exc

    scheme = (target.scheme or "").lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise FetchIOError(f"Unsupported protocol {target.scheme!r} in {url!r}")

    if config is None:
        timeout = _timeout(None, DEFAULT_TIMEOUT_MS)
        request = session.build_request(DEFAULT_METHOD, target, timeout=timeout)
        return Connection(session, request, None)

    timeout = _timeout(config.read_timeout_ms, config.connect_timeout_ms)
    try:
        request = session.build_request(
            config.method,
            target,
            headers=config.header_dict(),
            content=config.encoded_body(),
            timeout=timeout,
        )
    except httpx.InvalidURL as exc:
        raise FetchIOError(f"Malformed URL {url!r}: {exc}") from exc
    return Connection(session, request, config)


def _timeout(read_ms: int | None, connect_ms: int) -> httpx.Timeout:
    # Writes are unbounded; waiting for a pooled connection counts as connecting
    connect = _seconds(connect_ms)
    return httpx.Timeout(connect=connect, read=_seconds(read_ms), write=None, pool=connect)


def _seconds(milliseconds: int | None) -> float | None:
    # 0 disables the timeout
    if not milliseconds:
        return None
    return milliseconds / 1000
