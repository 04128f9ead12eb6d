"""Ordered registry of actions that revert protocol-level side effects."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from .logging_utils import _log_capture_event

logger = logging.getLogger(__name__)

RevertFn = Callable[[], Union[None, Awaitable[None]]]


class CleanupEffect(str, Enum):
    SCRIPT = "script"
    BINDING = "binding"
    LISTENER = "listener"
    DOMAIN = "domain"


@dataclass(eq=False)
class CleanupAction:
    effect: CleanupEffect
    label: str
    revert: RevertFn

    async def __call__(self) -> None:
        outcome = self.revert()
        if inspect.isawaitable(outcome):
            await outcome


class CleanupRegistry:
    """
    Collects one revert action per installed effect.

    Actions are appended right after their effect succeeds, so `pending` always
    equals the number of effects still installed. `run_all()` never raises.
    """

    def __init__(self, session: Any = None) -> None:
        self.session = session
        self._actions: List[CleanupAction] = []
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._actions)

    @property
    def closed(self) -> bool:
        return self._closed

    def actions(self, effect: Optional[CleanupEffect] = None) -> List[CleanupAction]:
        if effect is None:
            return list(self._actions)
        return [action for action in self._actions if action.effect == effect]

    def register(
        self,
        revert: RevertFn,
        *,
        effect: CleanupEffect,
        label: str = "",
    ) -> CleanupAction:
        if self._closed:
            raise RuntimeError("cleanup registry already ran")
        action = CleanupAction(effect=CleanupEffect(effect), label=label, revert=revert)
        self._actions.append(action)
        return action

    async def release(self, action: CleanupAction) -> bool:
        """Revert one effect ahead of teardown. Returns False if it failed."""
        try:
            self._actions.remove(action)
        except ValueError:
            return True
        return await self._invoke(action)

    async def run_all(self) -> int:
        """Revert every registered effect; returns the number of failures."""
        if self._closed:
            _log_capture_event(logger, level=logging.DEBUG, event="cleanup_skipped", reason="already_ran")
            return 0
        self._closed = True

        actions = list(reversed(self._actions))
        self._actions.clear()
        failures = 0
        for action in actions:
            if not await self._invoke(action):
                failures += 1

        self.session = None
        _log_capture_event(
            logger,
            level=logging.DEBUG,
            event="cleanup_done",
            reverted=len(actions) - failures,
            failed=failures,
        )
        return failures

    async def _invoke(self, action: CleanupAction) -> bool:
        try:
            await action()
        except Exception as exc:
            _log_capture_event(
                logger,
                level=logging.WARNING,
                event="cleanup_failed",
                exc_info=True,
                effect=action.effect.value,
                label=action.label,
                error=exc,
            )
            return False
        return True
