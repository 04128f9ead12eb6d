"""Execution context tracking and capture-engine context resolution."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from .cleanup import CleanupAction, CleanupEffect, CleanupRegistry
from .errors import NoContextFound, ProtocolCallFailed
from .logging_utils import _log_capture_event
from .page_scripts import ENGINE_PROBE_EXPRESSION
from .protocol import ProtocolSession

logger = logging.getLogger(__name__)

CONTEXT_CREATED_EVENT = "Runtime.executionContextCreated"
CONTEXT_DESTROYED_EVENT = "Runtime.executionContextDestroyed"

ContextProbe = Callable[[int], Awaitable[bool]]


class ExecutionContextTracker:
    """Live execution context ids of one page, in the order they appeared."""

    def __init__(self) -> None:
        # dict keeps insertion order, which is the observation order.
        self._live: Dict[int, None] = {}
        self._session: Optional[ProtocolSession] = None
        self._registry: Optional[CleanupRegistry] = None
        self._subscriptions: List[CleanupAction] = []

    def record_created(self, context_id: int) -> None:
        self._live[int(context_id)] = None

    def record_destroyed(self, context_id: int) -> None:
        # Contexts created before tracking began are unknown here.
        self._live.pop(int(context_id), None)

    def snapshot(self) -> List[int]:
        return list(self._live)

    def __len__(self) -> int:
        return len(self._live)

    def _on_context_created(self, params: Dict[str, Any]) -> None:
        context = params.get("context") or {}
        context_id = context.get("id")
        if context_id is None:
            return
        self.record_created(context_id)

    def _on_context_destroyed(self, params: Dict[str, Any]) -> None:
        context_id = params.get("executionContextId")
        if context_id is None:
            return
        self.record_destroyed(context_id)

    @property
    def attached(self) -> bool:
        return bool(self._subscriptions)

    def attach(self, session: ProtocolSession, registry: CleanupRegistry) -> None:
        if self._subscriptions:
            return
        self._session = session
        self._registry = registry
        for event, handler in (
            (CONTEXT_CREATED_EVENT, self._on_context_created),
            (CONTEXT_DESTROYED_EVENT, self._on_context_destroyed),
        ):
            session.subscribe(event, handler)
            self._subscriptions.append(
                registry.register(
                    lambda event=event, handler=handler: session.unsubscribe(event, handler),
                    effect=CleanupEffect.LISTENER,
                    label=event,
                )
            )

    async def detach(self) -> None:
        registry = self._registry
        subscriptions = self._subscriptions
        self._subscriptions = []
        if registry is None:
            return
        for action in subscriptions:
            await registry.release(action)


def make_engine_probe(session: ProtocolSession, expression: str = ENGINE_PROBE_EXPRESSION) -> ContextProbe:
    async def probe(context_id: int) -> bool:
        try:
            response = await session.send(
                "Runtime.evaluate",
                {
                    "expression": expression,
                    "contextId": context_id,
                    "returnByValue": True,
                },
            )
        except ProtocolCallFailed as exc:
            _log_capture_event(
                logger,
                level=logging.DEBUG,
                event="context_probe_failed",
                context_id=context_id,
                error=exc.reason,
            )
            return False
        if response.get("exceptionDetails"):
            return False
        result = response.get("result") or {}
        return result.get("value") is True

    return probe


class ContextResolver:
    """Finds the context hosting the capture engine and caches it."""

    def __init__(self, probe: ContextProbe) -> None:
        self._probe = probe
        self._context_id: Optional[int] = None

    @property
    def context_id(self) -> Optional[int]:
        return self._context_id

    async def resolve(self, candidate_ids: Iterable[int]) -> int:
        if self._context_id is not None:
            return self._context_id

        candidates = list(candidate_ids)
        for context_id in candidates:
            if await self._probe(context_id):
                self._context_id = context_id
                _log_capture_event(
                    logger,
                    level=logging.DEBUG,
                    event="context_resolved",
                    context_id=context_id,
                    candidates=len(candidates),
                )
                return context_id

        raise NoContextFound(candidates)
