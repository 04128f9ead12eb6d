"""Loading of the pre-built capture engine scripts."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .errors import ScriptBundleError

BUNDLE_ENV_VAR = "PAGESNAP_SCRIPT_BUNDLE"
DEFAULT_BUNDLE_NAME = "single-file-bundle.json"


def get_default_bundle_path() -> Path:
    """
    Location of the bundle when neither a path nor the env variable is given.
    Bundles are stored in the user's home directory under '.pagesnap/'.
    """
    return Path.home() / ".pagesnap" / DEFAULT_BUNDLE_NAME


@dataclass(frozen=True)
class ScriptBundle:
    """Capture engine source for the isolated world and hook for the main world."""

    script: str
    hook_script: str

    def get_script_source(self, options: Any = None) -> str:
        # The engine reads its options at trigger time, not at injection.
        return self.script

    def get_hook_script_source(self) -> str:
        return self.hook_script

    @classmethod
    def from_dict(cls, data: Any) -> "ScriptBundle":
        if not isinstance(data, dict):
            raise ScriptBundleError("script bundle must be a JSON object")
        script = data.get("script")
        hook_script = data.get("hookScript", data.get("hook_script"))
        if not isinstance(script, str) or not script.strip():
            raise ScriptBundleError("script bundle has no 'script' source")
        if not isinstance(hook_script, str) or not hook_script.strip():
            raise ScriptBundleError("script bundle has no 'hookScript' source")
        return cls(script=script, hook_script=hook_script)


def load_script_bundle(path: Optional[Union[str, Path]] = None) -> ScriptBundle:
    candidate = path or os.getenv(BUNDLE_ENV_VAR, "").strip() or get_default_bundle_path()
    bundle_path = Path(candidate).expanduser()
    if not bundle_path.is_file():
        raise ScriptBundleError(
            f"Capture script bundle not found at {bundle_path}. "
            f"Build it and pass its path or set `{BUNDLE_ENV_VAR}`."
        )
    try:
        with open(bundle_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ScriptBundleError(f"Cannot read capture script bundle {bundle_path}: {exc}") from exc
    return ScriptBundle.from_dict(data)
