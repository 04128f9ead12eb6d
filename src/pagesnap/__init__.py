from pagesnap.capture import (
    CaptureError,
    CaptureExecutionFailed,
    MalformedPayload,
    NoContextFound,
    PageData,
    ProtocolCallFailed,
    SingleFile,
    get_page_data,
    page_to_single_file,
)
from pagesnap.config import SnapshotOptions, resolve_snapshot_options

__version__ = "0.1.0"

__all__ = [
    "CaptureError",
    "CaptureExecutionFailed",
    "MalformedPayload",
    "NoContextFound",
    "PageData",
    "ProtocolCallFailed",
    "SingleFile",
    "SnapshotOptions",
    "get_page_data",
    "page_to_single_file",
    "resolve_snapshot_options",
]
