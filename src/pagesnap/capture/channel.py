"""
Duplex channel between the host and the isolated capture world.

Two CDP bindings are registered in the resolved context:

- the payload binding receives the serialized result in ordered chunks and
  one final empty call (the sentinel);
- the progress binding receives self-contained JSON progress events.

Bindings only carry one bounded string per call, hence the chunking.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from .capture_common import SEND_PROGRESS_BINDING, SET_PAGE_DATA_BINDING
from .cleanup import CleanupEffect, CleanupRegistry
from .errors import MalformedPayload
from .logging_utils import _log_capture_event
from .page_data import PageData, ProgressEvent
from .protocol import ProtocolSession

logger = logging.getLogger(__name__)

BINDING_CALLED_EVENT = "Runtime.bindingCalled"

ProgressCallback = Callable[[ProgressEvent], Any]


class PayloadAssembler:
    """Concatenates chunk bodies until the empty sentinel, then parses."""

    def __init__(self) -> None:
        self._parts: List[str] = []
        self._complete = False
        self._result: Optional[PageData] = None
        self._error: Optional[MalformedPayload] = None

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def chunk_count(self) -> int:
        return len(self._parts)

    def feed(self, body: str) -> bool:
        """Add one chunk; returns True once the sentinel has been seen."""
        if self._complete:
            _log_capture_event(logger, level=logging.WARNING, event="payload_chunk_after_sentinel", size=len(body))
            return True
        if body:
            self._parts.append(body)
            return False
        self._complete = True
        try:
            self._result = parse_page_data("".join(self._parts))
        except MalformedPayload as exc:
            self._error = exc
        self._parts = []
        return True

    def result(self) -> PageData:
        if not self._complete:
            raise MalformedPayload(
                f"payload transfer incomplete after {len(self._parts)} chunk(s)"
            )
        if self._error is not None:
            raise self._error
        if self._result is None:
            raise MalformedPayload("payload transfer produced no page data")
        return self._result


def parse_page_data(text: str) -> PageData:
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise MalformedPayload(f"payload is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise MalformedPayload(f"payload must be a JSON object, got {type(raw).__name__}")

    content = raw.get("content")
    if isinstance(content, list):
        try:
            raw["content"] = bytes(content)
        except (TypeError, ValueError) as exc:
            raise MalformedPayload(f"content is not a byte array: {exc}") from exc
    elif content is None:
        raise MalformedPayload("payload has no content")

    try:
        return PageData.model_validate(raw)
    except ValidationError as exc:
        raise MalformedPayload(f"payload does not describe page data: {exc}") from exc


class DuplexChannel:
    def __init__(
        self,
        session: ProtocolSession,
        registry: CleanupRegistry,
        context_id: int,
        *,
        payload_binding: str = SET_PAGE_DATA_BINDING,
        progress_binding: str = SEND_PROGRESS_BINDING,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._session = session
        self._registry = registry
        self.context_id = context_id
        self.payload_binding = payload_binding
        self.progress_binding = progress_binding
        self._on_progress = on_progress
        self._assembler = PayloadAssembler()
        self._pending_callbacks: Set[asyncio.Future] = set()
        self.progress_events: List[ProgressEvent] = []

    async def open(self) -> None:
        for name in (self.payload_binding, self.progress_binding):
            await self._add_binding(name)

        session = self._session
        handler = self._on_binding_called
        session.subscribe(BINDING_CALLED_EVENT, handler)
        self._registry.register(
            lambda: session.unsubscribe(BINDING_CALLED_EVENT, handler),
            effect=CleanupEffect.LISTENER,
            label=BINDING_CALLED_EVENT,
        )

    async def _add_binding(self, name: str) -> None:
        session = self._session
        await session.send(
            "Runtime.addBinding",
            {"name": name, "executionContextId": self.context_id},
        )

        async def remove_binding() -> None:
            await session.send("Runtime.removeBinding", {"name": name})

        self._registry.register(remove_binding, effect=CleanupEffect.BINDING, label=name)

    def _on_binding_called(self, params: Dict[str, Any]) -> None:
        source_context = params.get("executionContextId")
        if source_context is not None and source_context != self.context_id:
            return
        name = params.get("name")
        payload = params.get("payload")
        if not isinstance(payload, str):
            payload = "" if payload is None else str(payload)
        if name == self.payload_binding:
            self._assembler.feed(payload)
        elif name == self.progress_binding:
            self._handle_progress(payload)

    def _handle_progress(self, body: str) -> None:
        try:
            event = ProgressEvent.model_validate_json(body)
        except ValidationError as exc:
            _log_capture_event(
                logger,
                level=logging.DEBUG,
                event="progress_unparseable",
                error=exc.error_count(),
            )
            return
        self.progress_events.append(event)
        if self._on_progress is None:
            return
        try:
            outcome = self._on_progress(event)
        except Exception as exc:
            _log_capture_event(logger, level=logging.WARNING, event="progress_callback_failed", error=exc)
            return
        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._pending_callbacks.add(future)
            future.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, future: asyncio.Future) -> None:
        self._pending_callbacks.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            _log_capture_event(logger, level=logging.WARNING, event="progress_callback_failed", error=exc)

    @property
    def transfer_complete(self) -> bool:
        return self._assembler.complete

    def result(self) -> PageData:
        return self._assembler.result()
