"""Tests for error classification and error text rendering."""

from __future__ import annotations

import httpx
import pytest

from crawl_fetch.errors import (
    ERROR_TEXT_PREFIX,
    ConnectFailError,
    ErrorKind,
    FetchIOError,
    SocketTimeoutError,
    classify_exception,
    is_error_text,
    render_error_text,
    translate_httpx_error,
)
from crawl_fetch.types import FetchFailure, FetchResult


@pytest.mark.parametrize(
    "exc, kind",
    [
        (httpx.ConnectTimeout("t"), ErrorKind.SOCKET_TIMEOUT),
        (httpx.ReadTimeout("t"), ErrorKind.SOCKET_TIMEOUT),
        (TimeoutError("t"), ErrorKind.SOCKET_TIMEOUT),
        (httpx.ConnectError("c"), ErrorKind.CONNECT_FAIL),
        (ConnectionRefusedError("c"), ErrorKind.CONNECT_FAIL),
        (httpx.ReadError("r"), ErrorKind.IO_FAILURE),
        (httpx.InvalidURL("u"), ErrorKind.IO_FAILURE),
        (OSError("o"), ErrorKind.IO_FAILURE),
        (FetchIOError("f"), ErrorKind.IO_FAILURE),
        (ValueError("v"), ErrorKind.GENERIC),
    ],
)
def test_classify_exception(exc, kind):
    assert classify_exception(exc) is kind


def test_translate_httpx_error_picks_subclass():
    assert isinstance(translate_httpx_error(httpx.PoolTimeout("p")), SocketTimeoutError)
    assert isinstance(translate_httpx_error(httpx.ConnectError("c")), ConnectFailError)
    assert type(translate_httpx_error(httpx.WriteError("w"))) is FetchIOError


def test_every_tag_shares_the_reserved_prefix():
    tags = {kind.tag for kind in ErrorKind}
    assert len(tags) == len(ErrorKind)
    assert all(tag.startswith(ERROR_TEXT_PREFIX) for tag in tags)


def test_error_text_is_distinguishable_from_body_text():
    rendered = render_error_text(ErrorKind.IO_FAILURE, "trace here")
    assert rendered == ErrorKind.IO_FAILURE.tag + "{trace here}"
    assert is_error_text(rendered)
    assert not is_error_text("<html>ordinary page</html>")
    assert not is_error_text("")
    assert not is_error_text(None)
    assert not is_error_text(ERROR_TEXT_PREFIX + "mentioned in an article")


def test_failure_from_exception_keeps_trace():
    try:
        raise ConnectFailError("no route to host")
    except ConnectFailError as exc:
        failure = FetchFailure.from_exception(exc)

    assert failure.kind is ErrorKind.CONNECT_FAIL
    assert failure.message == "ConnectFailError: no route to host"
    assert "Traceback" in failure.trace
    assert failure.render().startswith(ErrorKind.CONNECT_FAIL.tag + "{Traceback")


def test_result_as_text():
    assert FetchResult(url="u", status_code=200, text="body", readable=True).as_text() == "body"
    failure = FetchFailure(kind=ErrorKind.GENERIC, message="x", trace="t")
    assert FetchResult(url="u", status_code=None, text=None, error=failure).as_text() == (
        ErrorKind.GENERIC.tag + "{t}"
    )
