"""
crawl-fetch - blocking HTTP fetch helper for crawlers.

Fetches a URL with a configurable method, headers, body, charset and
timeouts, follows up to three redirects by hand, decodes gzip or plain
bodies (including Cloudflare 403 block pages) and turns every failure
into a value instead of an exception.

Example:
    >>> from crawl_fetch import fetch_text, is_error_text
    >>> text = fetch_text("https://example.com")
    >>> is_error_text(text)
    False
"""

__all__ = [
    "__version__",
    "FetchClient",
    "fetch_text",
    "fetch_object",
    "download_file",
    "get",
    "RequestConfig",
    "ClientConfig",
    "chrome_get_config",
    "ErrorKind",
    "FetchError",
    "is_error_text",
    "FetchResult",
    "FetchFailure",
]
__version__ = "0.1.0"

from .config import ClientConfig, RequestConfig, chrome_get_config
from .errors import ErrorKind, FetchError, is_error_text
from .fetch import FetchClient, download_file, fetch_object, fetch_text, get
from .types import FetchFailure, FetchResult
