"""
Response body decoding.

Only two statuses have a body worth reading: 200, and a 403 served by
Cloudflare (the block page). Everything else decodes to empty text.
Bodies are read raw; gzip is inflated here rather than by httpx so that a
response that merely claims gzip still yields its bytes.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable, Iterator
import logging
import re
import zlib

import httpx

from ..config import DEFAULT_CHARSET
from ..errors import FetchIOError, translate_httpx_error
from .connection import Connection

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192
GZIP_HEADER_SIZE = 10
GZIP_MAGIC = b"\x1f\x8b\x08"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def is_readable(response: httpx.Response) -> bool:
    """Whether the body of this response is read at all."""
    if response.status_code == 200:
        return True
    if response.status_code == 403:
        return response.headers.get("server", "").startswith("cloudflare")
    return False


def read_body(connection: Connection, charset: str = DEFAULT_CHARSET) -> str:
    """Read the response text of connection.

    Lines are rejoined with a single "\\n" and no trailing newline. The
    response is closed on every path.
    """
    response = connection.open()
    try:
        if not is_readable(response):
            return ""
        chunks: Iterable[bytes] = response.iter_raw(READ_CHUNK_SIZE)
        if response.headers.get("content-encoding", "").strip().lower() == "gzip":
            chunks = gunzip_or_plain(chunks)
        return "\n".join(iter_lines(decode_chunks(chunks, charset)))
    except (httpx.HTTPError, httpx.StreamError) as exc:
        raise translate_httpx_error(exc) from exc
    finally:
        response.close()


def gunzip_or_plain(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Inflate a gzip byte stream, or pass it through when it is not gzip.

    The decision is made on the 10-byte gzip header. Corruption after a
    valid header is an error.
    """
    stream = iter(chunks)
    head = b""
    for chunk in stream:
        head += chunk
        if len(head) >= GZIP_HEADER_SIZE:
            break

    if len(head) < GZIP_HEADER_SIZE or not head.startswith(GZIP_MAGIC):
        logger.debug("Body declared gzip but has no gzip header, reading it raw")
        if head:
            yield head
        yield from stream
        return

    inflater = zlib.decompressobj(zlib.MAX_WBITS | 16)
    pending = head
    while True:
        try:
            data = inflater.decompress(pending)
            # Concatenated members; trailing garbage is ignored
            while inflater.eof and inflater.unused_data.startswith(GZIP_MAGIC[:2]):
                leftover = inflater.unused_data
                inflater = zlib.decompressobj(zlib.MAX_WBITS | 16)
                data += inflater.decompress(leftover)
        except zlib.error as exc:
            raise FetchIOError(f"Corrupt gzip body: {exc}") from exc
        if data:
            yield data
        pending = next(stream, None)
        if pending is None:
            break

    tail = inflater.flush()
    if tail:
        yield tail


def decode_chunks(chunks: Iterable[bytes], charset: str) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder(charset)(errors="replace")
    for chunk in chunks:
        text = decoder.decode(chunk)
        if text:
            yield text
    text = decoder.decode(b"", final=True)
    if text:
        yield text


def iter_lines(texts: Iterable[str]) -> Iterator[str]:
    """Split text into lines on \\n, \\r or \\r\\n, across chunk boundaries.

    A terminator at the very end does not produce an extra empty line.
    Only the newly decoded text is scanned; an unfinished line is kept as
    a list of pieces until its terminator arrives.
    """
    pending: list[str] = []
    carry_cr = False
    for text in texts:
        if not text:
            continue
        if carry_cr:
            text = "\r" + text
        # A trailing "\r" may be the first half of "\r\n"
        carry_cr = text.endswith("\r")
        if carry_cr:
            text = text[:-1]
        first, *lines = _LINE_BREAK.split(text)
        pending.append(first)
        if not lines:
            continue
        yield "".join(pending)
        yield from lines[:-1]
        pending = [lines[-1]]

    tail = "".join(pending) + ("\r" if carry_cr else "")
    if tail:
        lines = _LINE_BREAK.split(tail)
        if lines[-1] == "":
            lines.pop()
        yield from lines
