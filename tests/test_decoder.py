"""Tests for response body decoding."""

from __future__ import annotations

import gzip
import time

import httpx
import pytest

from crawl_fetch.errors import FetchIOError
from crawl_fetch.fetch.connection import open_connection
from crawl_fetch.fetch.decoder import gunzip_or_plain, iter_lines, read_body


def _serve(status: int, body: bytes = b"", headers: list[tuple[str, str]] | None = None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers=headers or [], stream=httpx.ByteStream(body))

    return httpx.Client(transport=httpx.MockTransport(handler))


def _read(session: httpx.Client, charset: str = "UTF-8") -> str:
    with session:
        return read_body(open_connection(session, "http://example.com/page"), charset)


def test_plain_body_lines_joined_without_trailing_newline():
    assert _read(_serve(200, b"first\nsecond\r\nthird\rfourth\n")) == "first\nsecond\nthird\nfourth"


def test_blank_lines_inside_body_are_kept():
    assert _read(_serve(200, b"a\n\nb\n\n")) == "a\n\nb\n"


def test_empty_body_reads_as_empty_text():
    assert _read(_serve(200, b"")) == ""


def test_gzip_body_is_inflated():
    plain = "line one\nline two\n"
    body = gzip.compress(plain.encode("utf-8"))
    text = _read(_serve(200, body, [("Content-Encoding", "gzip")]))
    assert text == "line one\nline two"


def test_declared_gzip_that_is_not_gzip_falls_back_to_raw():
    text = _read(_serve(200, b"not compressed at all\nsecond", [("Content-Encoding", "gzip")]))
    assert text == "not compressed at all\nsecond"


def test_short_body_declared_gzip_falls_back_to_raw():
    assert _read(_serve(200, b"tiny", [("Content-Encoding", "gzip")])) == "tiny"


def test_body_decoded_with_configured_charset():
    body = "한글 본문\n".encode("euc-kr")
    assert _read(_serve(200, body), charset="EUC-KR") == "한글 본문"


def test_cloudflare_403_body_is_read():
    page = b"<html>\nAttention Required! | Cloudflare\n</html>"
    text = _read(_serve(403, page, [("Server", "cloudflare-nginx")]))
    assert text == "<html>\nAttention Required! | Cloudflare\n</html>"


def test_cloudflare_403_gzip_body_is_inflated():
    body = gzip.compress(b"blocked\n")
    text = _read(_serve(403, body, [("Server", "cloudflare"), ("Content-Encoding", "gzip")]))
    assert text == "blocked"


def test_plain_403_reads_as_empty():
    assert _read(_serve(403, b"forbidden", [("Server", "nginx")])) == ""


def test_403_without_server_header_reads_as_empty():
    assert _read(_serve(403, b"forbidden")) == ""


@pytest.mark.parametrize("status", [201, 204, 404, 500, 503])
def test_other_statuses_read_as_empty(status):
    assert _read(_serve(status, b"ignored body")) == ""


def test_response_closed_after_read():
    session = _serve(200, b"body")
    with session:
        connection = open_connection(session, "http://example.com/")
        read_body(connection)
        assert connection.open().is_closed


def test_response_closed_when_gzip_is_corrupt():
    corrupt = gzip.compress(b"some data that will be damaged" * 10)
    corrupt = corrupt[:12] + b"\x00" * 20 + corrupt[32:]
    session = _serve(200, corrupt, [("Content-Encoding", "gzip")])
    with session:
        connection = open_connection(session, "http://example.com/")
        with pytest.raises(FetchIOError):
            read_body(connection)
        assert connection.open().is_closed


def test_iter_lines_handles_crlf_split_across_chunks():
    assert list(iter_lines(["one\r", "\ntwo\r", "three"])) == ["one", "two", "three"]


def test_iter_lines_final_lone_carriage_return():
    assert list(iter_lines(["x\r"])) == ["x"]


def test_iter_lines_long_single_line_body_stays_linear():
    chunks = ["a" * 8192] * 640  # 5 MB, no line break

    started = time.perf_counter()
    lines = list(iter_lines(chunks))
    elapsed = time.perf_counter() - started

    assert len(lines) == 1
    assert len(lines[0]) == 8192 * 640
    assert elapsed < 5


def test_iter_lines_matches_whole_text_split_at_any_chunking():
    text = "first\r\nsecond\rthird\n\nfifth\r"
    expected = ["first", "second", "third", "", "fifth"]
    for size in range(1, len(text) + 1):
        chunks = [text[i : i + size] for i in range(0, len(text), size)]
        assert list(iter_lines(chunks)) == expected, size


def test_iter_lines_lone_carriage_return_chunks():
    assert list(iter_lines(["a", "\r", "\r", "b"])) == ["a", "", "b"]


def test_gunzip_or_plain_accepts_header_split_across_chunks():
    body = gzip.compress(b"split header")
    chunks = [body[:3], body[3:7], body[7:]]
    assert b"".join(gunzip_or_plain(chunks)) == b"split header"


def test_gunzip_or_plain_handles_concatenated_members():
    body = gzip.compress(b"first ") + gzip.compress(b"second")
    assert b"".join(gunzip_or_plain([body])) == b"first second"
