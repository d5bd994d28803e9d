"""
Result types returned by the fetch entry points.

- FetchFailure: the structured error of a failed fetch
- FetchResult: tagged result carrying either response text or a failure
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import ErrorKind, classify_exception, format_trace, render_error_text


@dataclass(frozen=True)
class FetchFailure:
    """Structured description of a failed fetch.

    Attributes:
        kind: The error category
        message: One-line summary ("ExceptionType: message")
        trace: Full formatted traceback of the failure
    """
    kind: ErrorKind
    message: str
    trace: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> FetchFailure:
        return cls(
            kind=classify_exception(exc),
            message=f"{type(exc).__name__}: {exc}",
            trace=format_trace(exc),
        )

    def render(self) -> str:
        return render_error_text(self.kind, self.trace)


@dataclass
class FetchResult:
    """Result of a single fetch.

    Either text will be populated (success) or error will be populated (failure),
    but never both. A successful fetch whose status is neither 200 nor a
    Cloudflare 403 has empty text and readable=False; status_code tells the
    caller what came back.

    Attributes:
        url: The URL that was requested
        status_code: Status of the final response, or None if no response was obtained
        text: The decoded response text, or None on error
        error: Failure details, or None on success
        cookies: Raw Set-Cookie header values of the final response, in order
        readable: Whether the status was one whose body is read
    """
    url: str
    status_code: int | None
    text: str | None
    error: FetchFailure | None = None
    cookies: list[str] = field(default_factory=list)
    readable: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_text(self) -> str:
        """Collapse into the single text channel used by fetch_text."""
        if self.error is not None:
            return self.error.render()
        return self.text or ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status_code, "cookies": list(self.cookies)}
        if self.error is not None:
            payload["error"] = self.error.render()
        else:
            payload["body"] = self.text
        return payload
