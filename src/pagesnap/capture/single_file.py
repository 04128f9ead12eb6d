"""Public entry point: save a live page as a single HTML document."""

from __future__ import annotations

from typing import Any, Optional

from .channel import ProgressCallback
from .orchestrator import get_page_data
from .page_data import PageData
from .remover import remove_empty_lines, remove_scripts
from .script_bundle import ScriptBundle, load_script_bundle
from ..config.snapshot_options import OptionsInput, resolve_snapshot_options


class SingleFile:
    """Runs a capture and applies the text post-processing options."""

    def __init__(self, bundle: Optional[ScriptBundle] = None) -> None:
        self._bundle = bundle

    @property
    def bundle(self) -> ScriptBundle:
        if self._bundle is None:
            self._bundle = load_script_bundle()
        return self._bundle

    async def run(
        self,
        page: Any,
        options: OptionsInput = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PageData:
        resolved = resolve_snapshot_options(options)
        page_data = await get_page_data(
            page,
            resolved,
            bundle=self.bundle,
            on_progress=on_progress,
        )

        content = page_data.text
        if resolved.remove_scripts:
            content = remove_scripts(content)
        if resolved.remove_empty_lines:
            content = remove_empty_lines(content)

        return page_data.model_copy(update={"content": content})


async def page_to_single_file(
    page: Any,
    options: OptionsInput = None,
    *,
    bundle: Optional[ScriptBundle] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> PageData:
    single_file = SingleFile(bundle=bundle)
    return await single_file.run(page, options, on_progress=on_progress)
