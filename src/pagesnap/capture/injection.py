"""Registration of scripts that run on every new document."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .cleanup import CleanupEffect, CleanupRegistry
from .errors import ProtocolCallFailed
from .logging_utils import _log_capture_event
from .protocol import ProtocolSession

logger = logging.getLogger(__name__)


class ScriptInjector:
    def __init__(self, session: ProtocolSession, registry: CleanupRegistry) -> None:
        self._session = session
        self._registry = registry

    async def inject(
        self,
        source: str,
        *,
        world_name: Optional[str] = None,
        run_immediately: bool = True,
    ) -> str:
        """
        Add `source` to the page's new-document scripts.

        `world_name=None` targets the main world of every frame; a name targets
        an isolated world of that name. With `run_immediately` the script is
        also applied to the documents already loaded.
        """
        params: Dict[str, Any] = {
            "source": source,
            "runImmediately": bool(run_immediately),
        }
        if world_name:
            params["worldName"] = world_name

        method = "Page.addScriptToEvaluateOnNewDocument"
        response = await self._session.send(method, params)
        identifier = response.get("identifier")
        if not identifier:
            raise ProtocolCallFailed(method, "no script identifier returned")

        session = self._session

        async def remove_script() -> None:
            await session.send(
                "Page.removeScriptToEvaluateOnNewDocument",
                {"identifier": identifier},
            )

        self._registry.register(
            remove_script,
            effect=CleanupEffect.SCRIPT,
            label=f"{world_name or 'main'}:{identifier}",
        )
        _log_capture_event(
            logger,
            level=logging.DEBUG,
            event="script_injected",
            world=world_name or "main",
            identifier=identifier,
            size=len(source),
        )
        return str(identifier)
