#!/usr/bin/env python
# coding=utf-8
"""
This module contains the options accepted by a page snapshot.

Option names use the camelCase spelling read by the in-page capture engine;
Python code may use the snake_case attribute names instead. Every option has a
default, so a partial mapping resolves to a complete record.
"""
from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

WaitUntil = Literal[
    "InteractiveTime",
    "networkIdle",
    "networkAlmostIdle",
    "load",
    "DOMContentLoaded",
]

# These fall back to their default on any falsy value, not only on absence.
_FALSY_DEFAULTS: Dict[str, Any] = {
    "browser_load_max_time": 60000,
    "browser_wait_until": "networkIdle",
    "browser_wait_delay": 0,
}


class SnapshotOptions(BaseModel):
    """ Options for saving a page as a single HTML file.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    remove_frames: bool = Field(True, alias="removeFrames", description="Remove frames from the page.")
    remove_scripts: bool = Field(True, alias="removeScripts", description="Remove scripts from the page.")
    remove_hidden: bool = Field(True, alias="removeHidden", description="Remove hidden elements.")
    remove_unused_styles: bool = Field(True, alias="removeUnusedStyles", description="Remove unused styles.")
    remove_unused_fonts: bool = Field(True, alias="removeUnusedFonts", description="Remove unused fonts.")
    remove_empty_lines: bool = Field(False, alias="removeEmptyLines", description="Collapse empty lines.")
    compress_html: bool = Field(False, alias="compressHTML", description="Compress HTML content.")
    include_bom: bool = Field(False, alias="includeBOM", description="Include a BOM in the saved file.")
    remove_alternative_fonts: bool = Field(True, alias="removeAlternativeFonts", description="Remove alternative fonts.")
    remove_alternative_medias: bool = Field(False, alias="removeAlternativeMedias", description="Remove alternative media.")
    remove_alternative_images: bool = Field(
        True,
        alias="removeAlternativeImages",
        description="Remove images for alternative screen resolutions.",
    )
    group_duplicate_images: bool = Field(True, alias="groupDuplicateImages", description="Group duplicate images together.")
    load_deferred_images: bool = Field(True, alias="loadDeferredImages", description="Save deferred images.")
    load_deferred_images_max_idle_time: int = Field(
        1500,
        ge=0,
        alias="loadDeferredImagesMaxIdleTime",
        description="Maximum idle time in ms while loading deferred images.",
    )
    max_resource_size: int = Field(10, ge=0, alias="maxResourceSize", description="Maximum resource size in MB.")
    block_scripts: bool = Field(True, alias="blockScripts", description="Block scripts from loading.")
    block_videos: bool = Field(True, alias="blockVideos", description="Block videos from loading.")
    block_audios: bool = Field(True, alias="blockAudios", description="Block audio from loading.")

    browser_load_max_time: int = Field(60000, ge=0, alias="browserLoadMaxTime", description="Maximum page load time in ms.")
    browser_wait_until: WaitUntil = Field("networkIdle", alias="browserWaitUntil", description="Page load condition.")
    browser_wait_delay: int = Field(0, ge=0, alias="browserWaitDelay", description="Extra settle delay in ms.")
    browser_by_pass_csp: bool = Field(True, alias="browserByPassCSP", description="Bypass the page CSP.")

    @field_validator("browser_load_max_time", "browser_wait_until", "browser_wait_delay", mode="before")
    @classmethod
    def _default_when_falsy(cls, value: Any, info: Any) -> Any:
        if not value:
            return _FALSY_DEFAULTS[info.field_name]
        return value

    def to_engine_options(self) -> Dict[str, Any]:
        """ Options as sent to the in-page capture engine.
        """
        return self.model_dump(by_alias=True)


OptionsInput = Union[SnapshotOptions, Mapping[str, Any], None]


def resolve_snapshot_options(options: OptionsInput = None, **overrides: Any) -> SnapshotOptions:
    """
    Merge the provided keys over the defaults.

    Resolving an already resolved record yields an equal record.
    """
    if options is None:
        data: Dict[str, Any] = {}
    elif isinstance(options, SnapshotOptions):
        data = options.model_dump(by_alias=True)
    elif isinstance(options, Mapping):
        data = _to_aliases(options)
    else:
        raise TypeError(f"Unsupported options type: {type(options).__name__}")
    data.update(_to_aliases(overrides))
    return SnapshotOptions.model_validate(data)


def _to_aliases(values: Mapping[str, Any]) -> Dict[str, Any]:
    # Both spellings may be mixed; keys are normalized to the engine spelling.
    attribute_to_alias = {name: alias for alias, name in snapshot_option_names().items()}
    return {attribute_to_alias.get(key, key): value for key, value in values.items()}


def snapshot_option_names() -> Dict[str, str]:
    """Map of camelCase option name to attribute name."""
    return {
        (field.alias or name): name
        for name, field in SnapshotOptions.model_fields.items()
    }


def coerce_option_value(name: str, raw: Optional[str]) -> Any:
    """ Parse a `KEY=VALUE` override value for the option `name`.
    """
    aliases = snapshot_option_names()
    attribute = aliases.get(name, name)
    field = SnapshotOptions.model_fields.get(attribute)
    if field is None:
        raise KeyError(name)
    text = (raw or "").strip()
    if field.annotation is bool:
        lowered = text.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"{name} expects a boolean, got {raw!r}")
    if field.annotation is int:
        return int(text)
    return text
