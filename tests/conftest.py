import asyncio
import itertools
import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from pagesnap.capture.page_scripts import ENGINE_PROBE_EXPRESSION
from pagesnap.capture.script_bundle import ScriptBundle


SAMPLE_HTML = (
    "<!DOCTYPE html><html><head><title>Sample</title>"
    "<script>window.answer = 42;</script></head>"
    "<body><p>hello</p></body></html>"
)


def fake_engine(html: str = SAMPLE_HTML) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Mimics the capture engine's handling of scripts for one static page."""

    def engine(options: Dict[str, Any]) -> Dict[str, Any]:
        script_count = html.count("<script")
        content = html
        discarded = 0
        if options.get("removeScripts"):
            while "<script" in content:
                start = content.index("<script")
                end = content.index("</script>", start) + len("</script>")
                content = content[:start] + content[end:]
            discarded = script_count
        return {
            "content": content,
            "title": "Sample",
            "doctype": "<!DOCTYPE html>",
            "url": "https://example.test/",
            "stats": {
                "processed": {"scripts": script_count, "HTML bytes": len(html)},
                "discarded": {"scripts": discarded, "HTML bytes": len(html) - len(content)},
            },
        }

    return engine


class FakeCDPSession:
    """
    In-memory stand-in for a Playwright CDPSession attached to one page.

    Contexts: one main-world context exists before tracking starts; every isolated
    world injection creates one context per frame, of which only the
    `engine_frame` one ends up hosting the engine.
    """

    _ids = itertools.count(1)

    def __init__(
        self,
        *,
        engine: Optional[Callable[[Dict[str, Any]], Any]] = None,
        frames: int = 2,
        engine_frame: Optional[int] = 0,
        chunk_size: Optional[int] = None,
        fail_methods: Optional[Dict[str, str]] = None,
        dead_frames: Optional[List[int]] = None,
        error_result: Optional[str] = None,
        send_sentinel: bool = True,
        progress_bodies: Optional[List[str]] = None,
        detach_error: Optional[str] = None,
    ) -> None:
        self.engine = engine or fake_engine()
        self.frames = frames
        self.engine_frame = engine_frame
        self.chunk_size = chunk_size
        self.fail_methods = dict(fail_methods or {})
        self.dead_frames = set(dead_frames or [])
        self.error_result = error_result
        self.send_sentinel = send_sentinel
        self.progress_bodies = progress_bodies
        self.detach_error = detach_error

        self.listeners: Dict[str, List[Callable]] = {}
        self.scripts: Dict[str, Dict[str, Any]] = {}
        self.bindings: Dict[str, int] = {}
        self.live_contexts: List[int] = [next(self._ids)]
        self.engine_contexts: set = set()
        self.dead_contexts: set = set()
        self.runtime_enabled = False
        self.lifecycle_enabled = False
        self.detached = False
        self.calls: List[str] = []
        self.trigger_options: Optional[Dict[str, Any]] = None
        self.payload_calls: List[str] = []

    # Playwright surface

    def on(self, event, f):
        self.listeners.setdefault(event, []).append(f)

    def remove_listener(self, event, f):
        handlers = self.listeners.get(event, [])
        if f in handlers:
            handlers.remove(f)
        if not handlers:
            self.listeners.pop(event, None)

    async def detach(self):
        if self.detach_error:
            raise RuntimeError(self.detach_error)
        self.detached = True

    async def send(self, method, params=None):
        params = params or {}
        self.calls.append(method)
        await asyncio.sleep(0)
        if self.detached:
            raise RuntimeError("Target page, context or browser has been closed")
        if method in self.fail_methods:
            raise RuntimeError(self.fail_methods[method])
        handler = getattr(self, "_" + method.replace(".", "_"))
        return handler(params)

    # Protocol methods

    def _emit(self, event, params):
        for handler in list(self.listeners.get(event, [])):
            handler(params)

    def _create_context(self, *, engine: bool) -> int:
        context_id = next(self._ids)
        self.live_contexts.append(context_id)
        if engine:
            self.engine_contexts.add(context_id)
        if self.runtime_enabled:
            self._emit("Runtime.executionContextCreated", {"context": {"id": context_id, "name": ""}})
        return context_id

    def _Runtime_enable(self, params):
        self.runtime_enabled = True
        for context_id in self.live_contexts:
            self._emit("Runtime.executionContextCreated", {"context": {"id": context_id, "name": ""}})
        return {}

    def _Runtime_disable(self, params):
        self.runtime_enabled = False
        return {}

    def _Page_setLifecycleEventsEnabled(self, params):
        self.lifecycle_enabled = bool(params["enabled"])
        return {}

    def _Page_addScriptToEvaluateOnNewDocument(self, params):
        identifier = str(len(self.scripts) + 1) + "-" + str(next(self._ids))
        self.scripts[identifier] = dict(params)
        if params.get("worldName") and params.get("runImmediately"):
            for frame in range(self.frames):
                context_id = self._create_context(engine=(frame == self.engine_frame))
                if frame in self.dead_frames:
                    self.dead_contexts.add(context_id)
        return {"identifier": identifier}

    def _Page_removeScriptToEvaluateOnNewDocument(self, params):
        self.scripts.pop(params["identifier"])
        return {}

    def _Runtime_addBinding(self, params):
        self.bindings[params["name"]] = params["executionContextId"]
        return {}

    def _Runtime_removeBinding(self, params):
        self.bindings.pop(params["name"])
        return {}

    def _Runtime_evaluate(self, params):
        context_id = params.get("contextId")
        if context_id in self.dead_contexts:
            raise RuntimeError("Cannot find context with specified id")
        expression = params["expression"]
        if expression == ENGINE_PROBE_EXPRESSION:
            if context_id in self.engine_contexts:
                return {"result": {"type": "boolean", "value": True}}
            return {
                "result": {"type": "object", "subtype": "error", "description": "ReferenceError: singlefile is not defined"},
                "exceptionDetails": {"text": "Uncaught"},
            }
        return self._run_trigger(expression, context_id)

    def _run_trigger(self, expression, context_id):
        arguments = json.loads("[" + expression.rsplit("})(", 1)[1][:-1] + "]")
        options, payload_binding, progress_binding, max_size = arguments
        self.trigger_options = options
        chunk_size = self.chunk_size or max_size

        if self.error_result is not None:
            return {"result": {"type": "object", "subtype": "error", "description": self.error_result}}

        for body in self.progress_bodies or [
            json.dumps({"type": "page-loading", "detail": {"step": 1}, "progress": 0.5}),
        ]:
            self._call_binding(progress_binding, body, context_id)

        data = self.engine(options)
        if isinstance(data.get("content"), bytes):
            data["content"] = list(data["content"])
        serialized = json.dumps(data)
        index = 0
        while True:
            self._call_binding(payload_binding, serialized[index:index + chunk_size], context_id)
            index += chunk_size
            if index >= len(serialized):
                break
        if self.send_sentinel:
            self._call_binding(payload_binding, "", context_id)
        return {"result": {"type": "undefined"}}

    def _call_binding(self, name, payload, context_id):
        if self.bindings.get(name) != context_id:
            return
        if name == "setPageData":
            self.payload_calls.append(payload)
        self._emit(
            "Runtime.bindingCalled",
            {"name": name, "payload": payload, "executionContextId": context_id},
        )

    # Post-condition probes

    @property
    def leftovers(self) -> Dict[str, Any]:
        return {
            "scripts": dict(self.scripts),
            "bindings": dict(self.bindings),
            "listeners": {k: v for k, v in self.listeners.items() if v},
        }


class FakeBrowserContext:
    def __init__(self, session: FakeCDPSession, attach_error: Optional[str] = None) -> None:
        self.session = session
        self.attach_error = attach_error

    async def new_cdp_session(self, page):
        if self.attach_error:
            raise RuntimeError(self.attach_error)
        return self.session


class FakePage:
    def __init__(self, session: FakeCDPSession, url: str = "https://example.test/", attach_error: Optional[str] = None) -> None:
        self.url = url
        self.context = FakeBrowserContext(session, attach_error=attach_error)


@pytest.fixture
def bundle():
    return ScriptBundle(script="/* engine */ var singlefile = {};", hook_script="/* hook */")


@pytest.fixture
def make_session():
    def _make(**kwargs) -> FakeCDPSession:
        return FakeCDPSession(**kwargs)
    return _make


@pytest.fixture
def make_page(make_session):
    def _make(url: str = "https://example.test/", attach_error: Optional[str] = None, **kwargs):
        session = make_session(**kwargs)
        return FakePage(session, url=url, attach_error=attach_error), session
    return _make


@pytest.fixture
def sample_html():
    return SAMPLE_HTML


@pytest.fixture
def engine_factory():
    return fake_engine
