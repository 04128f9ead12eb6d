"""
Page capture over the DevTools protocol.

This package drives the in-page capture engine through a CDP session: script
injection, context resolution, the binding channel and teardown.
"""

from .browser_runtime import SnapshotBrowser
from .cleanup import CleanupEffect, CleanupRegistry
from .context_tracker import ContextResolver, ExecutionContextTracker
from .errors import (
    CaptureError,
    CaptureExecutionFailed,
    MalformedPayload,
    NoContextFound,
    PageLoadTimeout,
    ProtocolCallFailed,
    ScriptBundleError,
)
from .orchestrator import CaptureSession, get_page_data
from .page_data import PageData, PageStats, ProgressEvent
from .script_bundle import ScriptBundle, load_script_bundle
from .single_file import SingleFile, page_to_single_file

__all__ = [
    "CaptureError",
    "CaptureExecutionFailed",
    "CaptureSession",
    "CleanupEffect",
    "CleanupRegistry",
    "ContextResolver",
    "ExecutionContextTracker",
    "MalformedPayload",
    "NoContextFound",
    "PageData",
    "PageLoadTimeout",
    "PageStats",
    "ProgressEvent",
    "ProtocolCallFailed",
    "ScriptBundle",
    "ScriptBundleError",
    "SingleFile",
    "SnapshotBrowser",
    "get_page_data",
    "load_script_bundle",
    "page_to_single_file",
]
