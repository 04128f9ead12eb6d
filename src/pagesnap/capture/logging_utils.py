"""Structured logging helpers for capture modules.

Events render as one `capture event=<name> key=value ...` line. Values holding
whitespace, quotes or `=` are JSON-quoted so the line stays splittable, and
long values (page text, protocol errors echoing an expression) are truncated.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

_MAX_VALUE_CHARS = 300


def _normalize_log_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, BaseException):
        message = str(value).strip()
        value = f"{type(value).__name__}: {message}" if message else type(value).__name__
    text = " ".join(str(value).split())
    if len(text) > _MAX_VALUE_CHARS:
        text = text[:_MAX_VALUE_CHARS] + "..."
    if not text or any(ch in text for ch in ' "='):
        return json.dumps(text, ensure_ascii=False)
    return text


def _render_log_kv(fields: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        clean_key = str(key).strip()
        if not clean_key:
            continue
        parts.append(f"{clean_key}={_normalize_log_value(value)}")
    return " ".join(parts)


def _log_capture_event(
    logger: logging.Logger,
    *,
    level: int,
    event: str,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """Log one capture event; `exc_info` attaches the active traceback."""
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event}
    payload.update(fields)
    logger.log(level, "capture %s", _render_log_kv(payload), exc_info=exc_info)
