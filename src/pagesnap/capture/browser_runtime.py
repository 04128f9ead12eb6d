"""
Local Playwright runtime used to load pages before capturing them.

`SnapshotBrowser` owns one Chromium instance; pages opened through it follow
the page-load wait policy of `SnapshotOptions`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from .capture_common import _parse_bool_env
from .errors import PageLoadTimeout
from .logging_utils import _log_capture_event
from ..config.snapshot_options import OptionsInput, SnapshotOptions, resolve_snapshot_options

logger = logging.getLogger(__name__)

_WAIT_UNTIL_STATES = {
    "networkIdle": "networkidle",
    "networkAlmostIdle": "networkidle",
    "load": "load",
    "DOMContentLoaded": "domcontentloaded",
    "InteractiveTime": "domcontentloaded",
}

_LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-default-browser-check",
]


def playwright_wait_until(options: SnapshotOptions) -> str:
    return _WAIT_UNTIL_STATES.get(options.browser_wait_until, "networkidle")


class SnapshotBrowser:
    """Async context manager around a headless Chromium."""

    def __init__(self, headless: Optional[bool] = None) -> None:
        if headless is None:
            headless = _parse_bool_env("PAGESNAP_HEADLESS", True)
        self.headless = bool(headless)
        self._started = False
        self._playwright: Any = None
        self._browser: Any = None

    async def __aenter__(self) -> "SnapshotBrowser":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._started:
            return

        try:
            from playwright.async_api import async_playwright
        except ImportError as exc:
            raise RuntimeError(
                "playwright is not installed. Install it with: pip install playwright && playwright install chromium"
            ) from exc

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=list(_LAUNCH_ARGS),
            )
        except Exception:
            await self._cleanup_partial_start()
            raise
        self._started = True
        logger.info("Snapshot browser started headless=%s", self.headless)

    async def _cleanup_partial_start(self) -> None:
        browser = self._browser
        playwright = self._playwright
        self._browser = None
        self._playwright = None
        try:
            if browser is not None:
                await browser.close()
        except Exception:
            logger.debug("Ignoring browser close error after failed start", exc_info=True)
        try:
            if playwright is not None:
                await playwright.stop()
        except Exception:
            logger.debug("Ignoring playwright stop error after failed start", exc_info=True)

    async def stop(self) -> None:
        if not self._started:
            return

        browser = self._browser
        playwright = self._playwright
        self._started = False
        self._browser = None
        self._playwright = None

        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()
        logger.info("Snapshot browser stopped")

    async def open_page(self, url: str, options: OptionsInput = None) -> Any:
        """
        Open `url` in a fresh context and wait according to the load policy.

        The caller closes the page's context (`page.context.close()`).
        """
        if not self._started:
            await self.start()
        resolved = resolve_snapshot_options(options)
        context = await self._browser.new_context(bypass_csp=resolved.browser_by_pass_csp)
        page = await context.new_page()
        try:
            await self.load(page, url, resolved)
        except Exception:
            await context.close()
            raise
        return page

    async def load(self, page: Any, url: str, options: SnapshotOptions) -> None:
        wait_until = playwright_wait_until(options)
        timeout_ms = options.browser_load_max_time
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise PageLoadTimeout(url, timeout_ms) from exc

        if options.browser_wait_delay:
            await asyncio.sleep(options.browser_wait_delay / 1000)
        _log_capture_event(
            logger,
            level=logging.DEBUG,
            event="page_loaded",
            url=url,
            wait_until=wait_until,
            delay_ms=options.browser_wait_delay,
        )
