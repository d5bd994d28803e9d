"""
Bounded manual redirect following.

Automatic redirects are disabled on every connection; this module follows
301/302 responses itself, rebuilding the request with the same
RequestConfig for every hop.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging

from ..errors import FetchIOError, format_trace
from .connection import Connection

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3
MOVED_STATUSES = (301, 302)


class RedirectErrorPolicy(str, Enum):
    """What to do when a redirect hop fails.

    USE_LAST_CONNECTION keeps the last connection that produced a response
    and logs the failure. ABORT re-raises it.
    """

    USE_LAST_CONNECTION = "use_last_connection"
    ABORT = "abort"


def resolve_redirects(
    connection: Connection,
    reopen: Callable[[str], Connection],
    max_redirects: int = MAX_REDIRECTS,
    policy: RedirectErrorPolicy = RedirectErrorPolicy.USE_LAST_CONNECTION,
    log_errors: bool = True,
) -> Connection:
    """Follow up to max_redirects 301/302 hops starting at connection.

    Args:
        connection: The initial connection; failures sending it propagate
        reopen: Builds a connection for a redirect target with the same request config
        max_redirects: Hop bound; a redirect past the bound is not followed
        policy: Handling of I/O failures on a hop
        log_errors: Whether swallowed hop failures are logged

    Returns:
        The connection whose response the body should be read from. Replaced
        connections are closed.
    """
    current = connection
    current.open()

    for _ in range(max_redirects):
        if current.status_code not in MOVED_STATUSES:
            break

        following: Connection | None = None
        try:
            location = current.location()
            following = reopen(location)
            following.open()
        except FetchIOError as exc:
            if following is not None:
                following.close()
            if policy is RedirectErrorPolicy.ABORT:
                raise
            if log_errors:
                logger.error("Redirect from %s failed, keeping last response\n%s", current.url, format_trace(exc))
            break

        logger.debug("Redirected %s -> %s", current.url, following.url)
        current.close()
        current = following

    return current
