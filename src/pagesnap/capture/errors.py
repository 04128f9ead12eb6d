"""Error taxonomy for page capture."""

from __future__ import annotations

from typing import Optional


class CaptureError(RuntimeError):
    """Base class for every failure raised while capturing a page."""


class NoContextFound(CaptureError):
    """Raised when no tracked execution context hosts the capture engine."""

    def __init__(self, candidates: Optional[list[int]] = None) -> None:
        self.candidates = list(candidates or [])
        if self.candidates:
            message = f"No context id found among {len(self.candidates)} candidate(s)"
        else:
            message = "No context id found"
        super().__init__(message)


class CaptureExecutionFailed(CaptureError):
    """Raised when the in-page capture engine reports a runtime error."""

    def __init__(self, description: Optional[str]) -> None:
        self.description = description or "Unknown error"
        super().__init__(self.description)


class MalformedPayload(CaptureError):
    """Raised when the streamed chunks do not rebuild a valid result."""


class ProtocolCallFailed(CaptureError):
    """Raised when a DevTools protocol round-trip fails."""

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"{method} failed: {reason}")


class ScriptBundleError(CaptureError):
    """Raised when the injectable capture scripts cannot be loaded."""


class PageLoadTimeout(CaptureError):
    """Raised when a page does not reach its load condition in time."""

    code = "ERR_LOAD_TIMEOUT"

    def __init__(self, url: str, timeout_ms: int) -> None:
        self.url = url
        self.timeout_ms = timeout_ms
        super().__init__(f"{self.code}: {url} did not load within {timeout_ms}ms")
