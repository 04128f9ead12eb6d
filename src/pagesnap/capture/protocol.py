"""
DevTools protocol session handle.

`ProtocolSession` wraps a Playwright `CDPSession` so the rest of the capture
code can rely on a small surface:

- `send()` performs one round-trip and raises `ProtocolCallFailed` on error.
- `subscribe()` / `unsubscribe()` manage push notifications.
- `detach()` releases the underlying session.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Protocol

from .errors import ProtocolCallFailed
from .logging_utils import _log_capture_event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Any]


class CDPSessionLike(Protocol):
    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...

    def on(self, event: str, f: EventHandler) -> Any: ...

    def remove_listener(self, event: str, f: EventHandler) -> Any: ...

    async def detach(self) -> None: ...


def _compact_exception_message(exc: BaseException) -> str:
    text = str(exc).strip() or exc.__class__.__name__
    first_line = text.splitlines()[0].strip()
    return first_line[:300]


class ProtocolSession:
    """Owned handle around one live CDP session."""

    def __init__(self, cdp_session: CDPSessionLike, *, label: str = "") -> None:
        self._cdp = cdp_session
        self.label = label
        self._detached = False

    @classmethod
    async def attach(cls, page: Any) -> "ProtocolSession":
        try:
            cdp_session = await page.context.new_cdp_session(page)
        except Exception as exc:
            raise ProtocolCallFailed("Target.attachToTarget", _compact_exception_message(exc)) from exc
        label = str(getattr(page, "url", "") or "")
        _log_capture_event(logger, level=logging.DEBUG, event="session_attached", page=label)
        return cls(cdp_session, label=label)

    @property
    def detached(self) -> bool:
        return self._detached

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._detached:
            raise ProtocolCallFailed(method, "session already detached")
        try:
            if params is None:
                result = await self._cdp.send(method)
            else:
                result = await self._cdp.send(method, params)
        except Exception as exc:
            raise ProtocolCallFailed(method, _compact_exception_message(exc)) from exc
        return result if isinstance(result, dict) else {}

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._cdp.on(event, handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        self._cdp.remove_listener(event, handler)

    async def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        await self._cdp.detach()
        _log_capture_event(logger, level=logging.DEBUG, event="session_detached", page=self.label)
