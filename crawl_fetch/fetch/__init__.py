"""
HTTP fetching.

This package builds connections, follows redirects, decodes
response bodies and exposes the blocking fetch entry points.
"""

from .client import FetchClient, download_file, fetch_object, fetch_text, get
from .connection import Connection, open_connection
from .decoder import read_body
from .redirects import RedirectErrorPolicy, resolve_redirects

__all__ = [
    "FetchClient",
    "fetch_text",
    "fetch_object",
    "download_file",
    "get",
    "Connection",
    "open_connection",
    "read_body",
    "RedirectErrorPolicy",
    "resolve_redirects",
]
