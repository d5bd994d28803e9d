"""
Configuration management using YAML files and dataclasses.

This module defines the configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- RequestConfig: Per-request options (method, headers, charset, body, timeouts)
- ClientConfig: FetchClient behaviour (TLS policy, redirects, chunking)
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "GET"
DEFAULT_CHARSET = "UTF-8"
DEFAULT_TIMEOUT_MS = 30000
ALLOWED_METHODS = ("GET", "POST", "HEAD", "OPTIONS", "PUT", "DELETE", "TRACE")

# Desktop Chrome identity (update when the browser version moves on)
CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/96.0.4664.93 Safari/537.36"
)

# Recognized option names, including the crawler's legacy spellings
_OPTION_ALIASES = {
    "method": "method",
    "requestMethod": "method",
    "charset": "charset",
    "charSet": "charset",
    "headers": "headers",
    "requestProperty": "headers",
    "body": "body",
    "outputStreamValue": "body",
    "readTimeoutMs": "read_timeout_ms",
    "read_timeout_ms": "read_timeout_ms",
    "readTimeout": "read_timeout_ms",
    "connectTimeoutMs": "connect_timeout_ms",
    "connect_timeout_ms": "connect_timeout_ms",
    "connectTimeout": "connect_timeout_ms",
}


@dataclass(frozen=True)
class RequestConfig:
    """Options applied to every connection built for one fetch.

    Values are normalized on construction: headers become an ordered tuple of
    (name, value) pairs in which a later entry for the same name (compared
    case-insensitively) replaces the earlier value, and malformed method,
    charset or timeout values are logged and replaced by their defaults.
    headers accepts a mapping or an iterable of pairs.

    Attributes:
        method: HTTP method (GET, POST, HEAD, OPTIONS, PUT, DELETE, TRACE)
        charset: Character set used to encode the body and decode the response
        headers: Request headers as (name, value) pairs
        body: Optional request payload; text is encoded with charset
        read_timeout_ms: Read timeout in milliseconds (0 means no timeout)
        connect_timeout_ms: Connect timeout in milliseconds (0 means no timeout)
    """

    method: str = DEFAULT_METHOD
    charset: str = DEFAULT_CHARSET
    headers: tuple[tuple[str, str], ...] = ()
    body: str | bytes | None = None
    read_timeout_ms: int = DEFAULT_TIMEOUT_MS
    connect_timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", _coerce_method(self.method))
        object.__setattr__(self, "charset", _coerce_charset(self.charset))
        object.__setattr__(self, "headers", _normalize_headers(self.headers))
        object.__setattr__(
            self, "read_timeout_ms", _coerce_timeout(self.read_timeout_ms, "read_timeout_ms")
        )
        object.__setattr__(
            self, "connect_timeout_ms", _coerce_timeout(self.connect_timeout_ms, "connect_timeout_ms")
        )

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> RequestConfig:
        """Build a RequestConfig from a loosely typed options mapping.

        Accepts the option names method, headers, charset, body, readTimeoutMs
        and connectTimeoutMs (plus snake_case and legacy spellings). Unknown
        keys are logged and ignored; None values keep the default.
        """
        kwargs: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _OPTION_ALIASES.get(key)
            if name is None:
                logger.warning("Ignoring unknown request option %r", key)
                continue
            if value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    def header_dict(self) -> dict[str, str]:
        return dict(self.headers)

    def encoded_body(self) -> bytes | None:
        if self.body is None:
            return None
        if isinstance(self.body, bytes):
            return self.body
        return str(self.body).encode(self.charset, errors="replace")

    def to_options(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "charset": self.charset,
            "headers": self.header_dict(),
            "body": self.body,
            "read_timeout_ms": self.read_timeout_ms,
            "connect_timeout_ms": self.connect_timeout_ms,
        }


def chrome_get_config(charset: str = DEFAULT_CHARSET) -> RequestConfig:
    """GET configuration that identifies as desktop Chrome."""
    return RequestConfig(
        method="GET",
        charset=charset,
        headers=(("User-Agent", CHROME_USER_AGENT),),
    )


@dataclass
class ClientConfig:
    """Configuration for FetchClient behaviour.

    Attributes:
        verify_tls: Verify server certificates and host names. Off by default:
            the crawler accepts any certificate. Scoped to the client's own sessions.
        max_redirects: Number of 301/302 hops followed before giving up
        on_redirect_error: "use_last_connection" keeps the last good response when a
            redirect hop fails; "abort" turns the hop failure into the fetch error
        log_errors: Whether swallowed redirect failures are logged
        chunk_size: Byte size of the read/write chunks used for downloads
    """

    verify_tls: bool = False
    max_redirects: int = 3
    on_redirect_error: str = "use_last_connection"
    log_errors: bool = True
    chunk_size: int = 1024


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "crawl_fetch.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    client: ClientConfig = field(default_factory=ClientConfig)
    request: RequestConfig = field(default_factory=RequestConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "client": {
            "verify_tls": cfg.client.verify_tls,
            "max_redirects": cfg.client.max_redirects,
            "on_redirect_error": cfg.client.on_redirect_error,
            "log_errors": cfg.client.log_errors,
            "chunk_size": cfg.client.chunk_size,
        },
        "request": cfg.request.to_options(),
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        client=ClientConfig(**data["client"]),
        request=RequestConfig.from_options(data["request"]),
        logging=LoggingConfig(**data["logging"]),
    )


def _coerce_method(value: Any) -> str:
    if value is None:
        return DEFAULT_METHOD
    method = str(value).strip().upper()
    if method not in ALLOWED_METHODS:
        logger.error("Unsupported request method %r, using %s", value, DEFAULT_METHOD)
        return DEFAULT_METHOD
    return method


def _coerce_charset(value: Any) -> str:
    if value is None:
        return DEFAULT_CHARSET
    charset = str(value)
    try:
        # str.encode and bytes.decode refuse bytes-to-bytes codecs such as base64
        "".encode(charset)
        b"".decode(charset)
    except (LookupError, ValueError):
        logger.error("Unknown or non-text charset %r, using %s", value, DEFAULT_CHARSET)
        return DEFAULT_CHARSET
    return charset


def _coerce_timeout(value: Any, name: str) -> int:
    if value is None:
        return DEFAULT_TIMEOUT_MS
    if isinstance(value, bool):
        logger.error("Invalid %s %r, using %d", name, value, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        logger.error("Invalid %s %r, using %d", name, value, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS
    if timeout < 0:
        logger.error("Negative %s %r, using %d", name, value, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS
    return timeout


def _normalize_headers(headers: Any) -> tuple[tuple[str, str], ...]:
    if not headers:
        return ()
    if isinstance(headers, (str, bytes)) or not isinstance(headers, (Mapping, Iterable)):
        logger.error("Ignoring malformed headers %r; expected a mapping or name/value pairs", headers)
        return ()
    merged: dict[str, tuple[str, str]] = {}
    for name, value in _header_pairs(headers):
        # One value per name; the latest assignment wins
        merged[str(name).lower()] = (str(name), str(value))
    return tuple(merged.values())


def _header_pairs(headers: Mapping[Any, Any] | Iterable[Any]) -> Iterator[tuple[Any, Any]]:
    if isinstance(headers, Mapping):
        yield from headers.items()
        return
    for entry in headers:
        # YAML lists of headers usually come as one-key mappings
        if isinstance(entry, Mapping):
            yield from entry.items()
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            yield entry[0], entry[1]
        else:
            logger.error("Ignoring malformed header entry %r", entry)
