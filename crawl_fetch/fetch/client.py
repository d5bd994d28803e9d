"""
Blocking fetch entry points.

FetchClient ties the pipeline together: build a connection, follow
redirects, decode the body. Every call opens its own httpx session and
closes it before returning; nothing is pooled or cached across calls.

TLS verification is a per-client setting. The default client accepts any
certificate and host name, which is what the crawler has always done;
pass verify=True (or an ssl.SSLContext) to turn verification back on.
Only sessions created by that client are affected.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import ssl

import httpx

from ..config import DEFAULT_CHARSET, ClientConfig, RequestConfig, chrome_get_config
from ..errors import translate_httpx_error
from ..logging_utils import log_event
from ..types import FetchFailure, FetchResult
from .connection import Connection, open_connection
from .decoder import is_readable, read_body
from .redirects import MAX_REDIRECTS, RedirectErrorPolicy, resolve_redirects

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024


class FetchClient:
    """Single-shot HTTP fetcher.

    Args:
        verify: TLS verification for this client's sessions; False accepts everything
        max_redirects: Number of 301/302 hops followed
        on_redirect_error: Policy applied when a redirect hop fails
        log_errors: Whether swallowed redirect failures are logged
        chunk_size: Byte size of download read/write chunks
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        verify: bool | ssl.SSLContext = False,
        max_redirects: int = MAX_REDIRECTS,
        on_redirect_error: RedirectErrorPolicy | str = RedirectErrorPolicy.USE_LAST_CONNECTION,
        log_errors: bool = True,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        transport: httpx.BaseTransport | None = None,
    ):
        if max_redirects < 0:
            raise ValueError("max_redirects must not be negative")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.verify = verify
        self.max_redirects = max_redirects
        self.on_redirect_error = RedirectErrorPolicy(on_redirect_error)
        self.log_errors = log_errors
        self.chunk_size = chunk_size
        self.transport = transport

    @classmethod
    def from_config(cls, cfg: ClientConfig, transport: httpx.BaseTransport | None = None) -> FetchClient:
        return cls(
            verify=cfg.verify_tls,
            max_redirects=cfg.max_redirects,
            on_redirect_error=cfg.on_redirect_error,
            log_errors=cfg.log_errors,
            chunk_size=cfg.chunk_size,
            transport=transport,
        )

    def fetch_text(self, url: str, config: RequestConfig | None = None) -> str:
        """Fetch url and return its text, or rendered error text on failure.

        Never raises. Use is_error_text() to tell the two apart, or
        fetch_object() for a structured result.
        """
        return self.fetch_object(url, config).as_text()

    def fetch_object(self, url: str, config: RequestConfig | None = None) -> FetchResult:
        """Fetch url and return a FetchResult with body or error, plus cookies.

        Never raises.
        """
        charset = config.charset if config is not None else DEFAULT_CHARSET
        status_code: int | None = None
        try:
            with self._session(url) as session:
                connection = self._resolve(session, url, config)
                try:
                    response = connection.open()
                    status_code = response.status_code
                    cookies = connection.cookies()
                    readable = is_readable(response)
                    text = read_body(connection, charset)
                finally:
                    connection.close()
        except Exception as exc:  # noqa: BLE001
            failure = FetchFailure.from_exception(exc)
            log_event(
                logger,
                "fetch failed",
                level=logging.WARNING,
                url=url,
                status_code=status_code,
                error_kind=failure.kind.value,
                error=failure.message,
            )
            return FetchResult(url=url, status_code=status_code, text=None, error=failure)

        log_event(
            logger,
            "fetched" if readable else "no readable body",
            level=logging.DEBUG,
            url=url,
            status_code=status_code,
            readable=readable,
            cookies=len(cookies),
        )
        return FetchResult(
            url=url,
            status_code=status_code,
            text=text,
            cookies=cookies,
            readable=readable,
        )

    def get(self, url: str, charset: str = DEFAULT_CHARSET) -> str:
        """fetch_text with a desktop Chrome GET configuration."""
        return self.fetch_text(url, chrome_get_config(charset))

    def download_file(self, url: str, destination: str | os.PathLike[str]) -> Path | None:
        """Save the body of a 200 response at url to destination.

        Parent directories are created and an existing file is replaced. The
        raw body is copied in chunk_size pieces.

        Returns:
            The written path, or None when the status was not 200 (nothing is created).

        Raises:
            FetchError: The request or the body transfer failed.
            OSError: The destination could not be written.
        """
        path = Path(destination)
        with self._session(url) as session:
            connection = open_connection(session, url)
            try:
                response = connection.open()
                if response.status_code != 200:
                    log_event(logger, "download skipped", url=url, status_code=response.status_code)
                    return None
                path.parent.mkdir(parents=True, exist_ok=True)
                if path.exists():
                    path.unlink()
                written = 0
                with path.open("wb") as handle:
                    for chunk in response.iter_raw(self.chunk_size):
                        handle.write(chunk)
                        written += len(chunk)
            except (httpx.HTTPError, httpx.StreamError) as exc:
                raise translate_httpx_error(exc) from exc
            finally:
                connection.close()

        log_event(logger, "downloaded", url=url, status_code=200, path=path, bytes=written)
        return path

    def _session(self, url: str) -> httpx.Client:
        if self.verify is False and str(url).lower().startswith("https"):
            logger.debug("TLS verification disabled for %s", url)
        session = httpx.Client(verify=self.verify, transport=self.transport, follow_redirects=False)
        # No implicit compression; callers opt in with an Accept-Encoding header
        del session.headers["Accept-Encoding"]
        return session

    def _resolve(self, session: httpx.Client, url: str, config: RequestConfig | None) -> Connection:
        connection = open_connection(session, url, config)
        return resolve_redirects(
            connection,
            lambda location: open_connection(session, location, config),
            max_redirects=self.max_redirects,
            policy=self.on_redirect_error,
            log_errors=self.log_errors,
        )


_default_client = FetchClient()


def fetch_text(url: str, config: RequestConfig | None = None) -> str:
    return _default_client.fetch_text(url, config)


def fetch_object(url: str, config: RequestConfig | None = None) -> FetchResult:
    return _default_client.fetch_object(url, config)


def download_file(url: str, destination: str | os.PathLike[str]) -> Path | None:
    return _default_client.download_file(url, destination)


def get(url: str, charset: str = DEFAULT_CHARSET) -> str:
    return _default_client.get(url, charset)
