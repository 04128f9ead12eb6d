"""JavaScript evaluated in the isolated capture world."""

from __future__ import annotations

import json
from typing import Any, Dict

from .capture_common import ENGINE_NAMESPACE

ENGINE_PROBE_EXPRESSION = f'typeof {ENGINE_NAMESPACE} !== "undefined"'

# Invoked with (options, payloadBinding, progressBinding, maxContentSize).
# maxContentSize counts UTF-16 code units; a chunk never ends between the two
# halves of a surrogate pair. Resolves once the sentinel call has been made.
_PAGE_DATA_JS = """
(options, setPageDataFunctionName, sendProgressFunctionName, maxContentSize) => {
  const isPrimitive = (value) => value === null || ["string", "number", "boolean"].includes(typeof value);
  const isPlainObject = (value) => {
    if (value === null || typeof value !== "object") return false;
    const proto = Object.getPrototypeOf(value);
    return proto === Object.prototype || proto === null;
  };
  const copyDetail = (source, depth) => {
    const copy = {};
    for (const key of Object.keys(source)) {
      const value = source[key];
      if (isPrimitive(value)) {
        copy[key] = value;
      } else if (depth > 0 && Array.isArray(value)) {
        copy[key] = value.filter(isPrimitive);
      } else if (depth > 0 && isPlainObject(value)) {
        copy[key] = copyDetail(value, depth - 1);
      }
    }
    return copy;
  };
  const sendProgress = (event) => {
    const binding = globalThis[sendProgressFunctionName];
    if (typeof binding !== "function" || !event) return;
    const rawDetail = event.detail || {};
    const detail = copyDetail(rawDetail, 1);
    let progress = 0;
    if (typeof rawDetail.index === "number" && typeof rawDetail.max === "number" && rawDetail.max > 0) {
      progress = Math.max(0, Math.min(1, rawDetail.index / rawDetail.max));
    }
    try {
      binding(JSON.stringify({ type: String(event.type || ""), detail, progress }));
    } catch (error) {
      // progress is best-effort
    }
  };
  options.onprogress = sendProgress;
  return __ENGINE__.getPageData(options).then((data) => {
    if (data.content instanceof Uint8Array) {
      data.content = Array.from(data.content);
    }
    const serialized = JSON.stringify(data);
    const setPageData = globalThis[setPageDataFunctionName];
    let indexData = 0;
    do {
      let endData = Math.min(indexData + maxContentSize, serialized.length);
      const lastCode = serialized.charCodeAt(endData - 1);
      if (endData < serialized.length && lastCode >= 0xD800 && lastCode <= 0xDBFF) {
        endData += endData - 1 > indexData ? -1 : 1;
      }
      setPageData(serialized.slice(indexData, endData));
      indexData = endData;
    } while (indexData < serialized.length);
    setPageData("");
  });
}
""".replace("__ENGINE__", ENGINE_NAMESPACE)


def build_trigger_expression(
    options: Dict[str, Any],
    *,
    payload_binding: str,
    progress_binding: str,
    max_content_size: int,
) -> str:
    arguments = ", ".join(
        [
            json.dumps(options),
            json.dumps(payload_binding),
            json.dumps(progress_binding),
            str(max(1, int(max_content_size))),
        ]
    )
    return f"({_PAGE_DATA_JS.strip()})({arguments})"
