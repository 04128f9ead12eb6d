"""
End-to-end extraction of page data over one DevTools protocol session.

Sequence for one `get_page_data()` call:

1. attach a CDP session to the page;
2. inject the hook script in the main world;
3. enable runtime notifications and start tracking execution contexts;
4. inject the capture engine in the `singlefile` isolated world;
5. probe the tracked contexts for the engine and keep the first that has it;
6. register the payload and progress bindings in that context;
7. evaluate the trigger expression and wait for the streamed result.

Every effect registers a revert action; the registry runs and the session is
detached in a `finally` region whatever happened before.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from .capture_common import (
    SEND_PROGRESS_BINDING,
    SET_PAGE_DATA_BINDING,
    SINGLE_FILE_WORLD_NAME,
    _max_chunk_size,
)
from .channel import DuplexChannel, ProgressCallback
from .cleanup import CleanupEffect, CleanupRegistry
from .context_tracker import ContextResolver, ExecutionContextTracker, make_engine_probe
from .errors import CaptureExecutionFailed, MalformedPayload
from .injection import ScriptInjector
from .logging_utils import _log_capture_event
from .page_data import PageData
from .page_scripts import build_trigger_expression
from .protocol import ProtocolSession
from .script_bundle import ScriptBundle, load_script_bundle
from ..config.snapshot_options import OptionsInput, SnapshotOptions, resolve_snapshot_options

logger = logging.getLogger(__name__)


class CaptureSession:
    """
    Per-extraction owner of the tracker, resolver, registry and channel.

    Instances are single-use; concurrent extractions each build their own.
    """

    def __init__(
        self,
        session: ProtocolSession,
        options: SnapshotOptions,
        bundle: ScriptBundle,
        *,
        on_progress: Optional[ProgressCallback] = None,
        world_name: str = SINGLE_FILE_WORLD_NAME,
        payload_binding: str = SET_PAGE_DATA_BINDING,
        progress_binding: str = SEND_PROGRESS_BINDING,
    ) -> None:
        self.session = session
        self.options = options
        self.bundle = bundle
        self.world_name = world_name
        self.payload_binding = payload_binding
        self.progress_binding = progress_binding
        self._on_progress = on_progress

        self.registry = CleanupRegistry(session)
        self.tracker = ExecutionContextTracker()
        self.resolver = ContextResolver(make_engine_probe(session))
        self.injector = ScriptInjector(session, self.registry)
        self.channel: Optional[DuplexChannel] = None

    async def _enable_domains(self) -> None:
        session = self.session

        await session.send("Runtime.enable")

        async def disable_runtime() -> None:
            await session.send("Runtime.disable")

        self.registry.register(disable_runtime, effect=CleanupEffect.DOMAIN, label="Runtime")

        await session.send("Page.setLifecycleEventsEnabled", {"enabled": True})

        async def disable_lifecycle_events() -> None:
            await session.send("Page.setLifecycleEventsEnabled", {"enabled": False})

        self.registry.register(disable_lifecycle_events, effect=CleanupEffect.DOMAIN, label="Page.lifecycleEvents")

    async def resolve_context(self) -> int:
        context_id = await self.resolver.resolve(self.tracker.snapshot())
        await self.tracker.detach()
        return context_id

    async def run(self) -> PageData:
        await self.injector.inject(self.bundle.get_hook_script_source(), run_immediately=True)

        # Contexts created while the domain is enabled are reported right away.
        self.tracker.attach(self.session, self.registry)
        await self._enable_domains()

        await self.injector.inject(
            self.bundle.get_script_source(self.options),
            world_name=self.world_name,
            run_immediately=True,
        )

        context_id = await self.resolve_context()

        self.channel = DuplexChannel(
            self.session,
            self.registry,
            context_id,
            payload_binding=self.payload_binding,
            progress_binding=self.progress_binding,
            on_progress=self._on_progress,
        )
        await self.channel.open()

        expression = build_trigger_expression(
            self.options.to_engine_options(),
            payload_binding=self.payload_binding,
            progress_binding=self.progress_binding,
            max_content_size=_max_chunk_size(),
        )
        response = await self.session.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "awaitPromise": True,
                "contextId": context_id,
            },
        )
        _raise_for_error_result(response)

        if not self.channel.transfer_complete:
            raise MalformedPayload("capture finished without the end-of-transfer call")
        return self.channel.result()

    async def close(self) -> None:
        try:
            await self.registry.run_all()
        except Exception as exc:
            _log_capture_event(logger, level=logging.WARNING, event="cleanup_error", exc_info=True, error=exc)
        try:
            await self.session.detach()
        except Exception as exc:
            _log_capture_event(logger, level=logging.WARNING, event="detach_error", exc_info=True, error=exc)


def _raise_for_error_result(response: Any) -> None:
    result = (response or {}).get("result") or {}
    if result.get("subtype") == "error":
        raise CaptureExecutionFailed(result.get("description"))
    details = (response or {}).get("exceptionDetails")
    if details:
        exception = details.get("exception") or {}
        raise CaptureExecutionFailed(exception.get("description") or details.get("text"))


async def get_page_data(
    page: Any,
    options: OptionsInput = None,
    *,
    bundle: Optional[ScriptBundle] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> PageData:
    """
    Capture `page` as a single self-contained document.

    Raises one of the `CaptureError` subclasses on failure. Page-side state
    (scripts, bindings, listeners) is reverted before returning or raising,
    including when the caller cancels the call.
    """
    resolved = resolve_snapshot_options(options)
    bundle = bundle or load_script_bundle()
    session = await ProtocolSession.attach(page)
    capture = CaptureSession(session, resolved, bundle, on_progress=on_progress)

    started_at = time.monotonic()
    try:
        page_data = await capture.run()
    except Exception as exc:
        _log_capture_event(
            logger,
            level=logging.INFO,
            event="capture_failed",
            page=session.label,
            error=exc,
        )
        raise
    finally:
        await capture.close()

    _log_capture_event(
        logger,
        level=logging.INFO,
        event="capture_done",
        page=session.label,
        elapsed_ms=int((time.monotonic() - started_at) * 1000),
        content_size=len(page_data.content),
    )
    return page_data
