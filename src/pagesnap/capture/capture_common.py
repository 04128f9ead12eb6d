"""Shared constants and helpers for capture modules."""

from __future__ import annotations

import os


SINGLE_FILE_WORLD_NAME = "singlefile"
ENGINE_NAMESPACE = "singlefile"
SET_PAGE_DATA_BINDING = "setPageData"
SEND_PROGRESS_BINDING = "sendProgress"

MAX_CONTENT_SIZE = 32 * 1024 * 1024


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int_env(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return max(minimum, int(default))
    try:
        parsed = int(raw.strip())
    except ValueError:
        return max(minimum, int(default))
    return max(minimum, parsed)


def _max_chunk_size() -> int:
    return min(
        MAX_CONTENT_SIZE,
        _parse_int_env("PAGESNAP_MAX_CHUNK_SIZE", MAX_CONTENT_SIZE, 1),
    )
