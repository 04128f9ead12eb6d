from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StatCounters(BaseModel):
    """Per-category counters reported by the capture engine."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    html_bytes: int = Field(0, alias="HTML bytes")
    hidden_elements: int = Field(0, alias="hidden elements")
    html_imports: int = Field(0, alias="HTML imports")
    scripts: int = Field(0, description="Script elements.")
    objects: int = Field(0)
    audio_sources: int = Field(0, alias="audio sources")
    video_sources: int = Field(0, alias="video sources")
    frames: int = Field(0)
    css_styles: int = Field(0, alias="CSS styles")
    css_stylesheets: int = Field(0, alias="CSS stylesheets")
    css_rules: int = Field(0, alias="CSS rules")
    canvas: int = Field(0)
    stylesheets: int = Field(0)
    resources: int = Field(0)
    medias: int = Field(0)


class PageStats(BaseModel):
    processed: StatCounters = Field(default_factory=StatCounters)
    discarded: StatCounters = Field(default_factory=StatCounters)


class PageData(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Union[str, bytes] = Field(..., description="Serialized page, text or raw bytes.")
    title: Optional[str] = Field(None, description="Document title.")
    doctype: Optional[str] = Field(None, description="Serialized doctype.")
    url: Optional[str] = Field(None, description="Page URL at capture time.")
    stats: Optional[PageStats] = Field(None, description="Processed vs discarded counters.")

    @property
    def text(self) -> str:
        if isinstance(self.content, bytes):
            return self.content.decode("utf-8", errors="replace")
        return self.content


class ProgressEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., description="Engine event kind.")
    detail: Dict[str, Any] = Field(default_factory=dict, description="Event detail; holds `step`.")
    progress: float = Field(0.0, ge=0.0, le=1.0, description="Completion fraction.")

    @property
    def step(self) -> Optional[Any]:
        return self.detail.get("step")
