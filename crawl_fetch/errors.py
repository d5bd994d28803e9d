"""
Error taxonomy for fetch operations.

Every failure of the fetch pipeline falls into one of four kinds:
- SOCKET_TIMEOUT: a connect or read timeout expired
- CONNECT_FAIL: the TCP/TLS session could not be established
- IO_FAILURE: any other I/O or protocol error during request/response
- GENERIC: anything else

fetch_text renders failures as text that starts with a reserved prefix,
so callers can tell error text from response text with is_error_text().
"""

from __future__ import annotations

from enum import Enum
import traceback

import httpx


ERROR_TEXT_PREFIX = "[fetch-error] "


class ErrorKind(Enum):
    SOCKET_TIMEOUT = "SocketTimeout"
    CONNECT_FAIL = "ConnectFail"
    IO_FAILURE = "IOFailure"
    GENERIC = "Generic"

    @property
    def tag(self) -> str:
        """Fixed human-readable tag placed in front of rendered error text."""
        return ERROR_TEXT_PREFIX + _TAG_LABELS[self]


_TAG_LABELS = {
    ErrorKind.SOCKET_TIMEOUT: "socket timeout",
    ErrorKind.CONNECT_FAIL: "connect fail",
    ErrorKind.IO_FAILURE: "io failure",
    ErrorKind.GENERIC: "error",
}


class FetchError(Exception):
    """Base class for errors raised by the fetch pipeline."""

    kind = ErrorKind.GENERIC


class FetchIOError(FetchError):
    """I/O or protocol failure while building, sending or reading a request."""

    kind = ErrorKind.IO_FAILURE


class SocketTimeoutError(FetchIOError):
    kind = ErrorKind.SOCKET_TIMEOUT


class ConnectFailError(FetchIOError):
    kind = ErrorKind.CONNECT_FAIL


def translate_httpx_error(exc: Exception) -> FetchError:
    """Wrap an httpx (or OS) exception in the matching FetchError subclass."""
    kind = classify_exception(exc)
    if kind is ErrorKind.SOCKET_TIMEOUT:
        return SocketTimeoutError(str(exc) or type(exc).__name__)
    if kind is ErrorKind.CONNECT_FAIL:
        return ConnectFailError(str(exc) or type(exc).__name__)
    if kind is ErrorKind.IO_FAILURE:
        return FetchIOError(str(exc) or type(exc).__name__)
    return FetchError(str(exc) or type(exc).__name__)


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map an exception to its ErrorKind.

    Our own exceptions carry their kind. httpx timeouts (including connect
    timeouts) are SOCKET_TIMEOUT, httpx connect errors and refused
    connections are CONNECT_FAIL, and the remaining transport, protocol,
    URL and OS errors are IO_FAILURE.
    """
    if isinstance(exc, FetchError):
        return exc.kind
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ErrorKind.SOCKET_TIMEOUT
    if isinstance(exc, (httpx.ConnectError, ConnectionRefusedError)):
        return ErrorKind.CONNECT_FAIL
    if isinstance(
        exc,
        (httpx.TransportError, httpx.InvalidURL, httpx.StreamError, httpx.DecodingError, OSError),
    ):
        return ErrorKind.IO_FAILURE
    return ErrorKind.GENERIC


def format_trace(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip("\n")


def render_error_text(kind: ErrorKind, trace: str) -> str:
    """Render error text as ``<tag>{<trace>}``."""
    return f"{kind.tag}{{{trace}}}"


def is_error_text(text: str | None) -> bool:
    """Return True when a fetch_text result is rendered error text."""
    if not text or not text.startswith(ERROR_TEXT_PREFIX):
        return False
    return any(text.startswith(kind.tag + "{") for kind in ErrorKind)
