import os
import re

import pytest

from pagesnap.capture.single_file import SingleFile, page_to_single_file


EMPTY = {"scripts": {}, "bindings": {}, "listeners": {}}


@pytest.mark.asyncio
async def test_remove_scripts_with_blocking_discards_all_scripts(make_page, bundle):
    page, session = make_page()

    page_data = await page_to_single_file(page, {"removeScripts": True, "blockScripts": True}, bundle=bundle)

    assert isinstance(page_data.content, str)
    assert "<script" not in page_data.content
    assert page_data.stats.discarded.scripts == page_data.stats.processed.scripts
    assert session.leftovers == EMPTY


@pytest.mark.asyncio
async def test_keeping_scripts_reports_no_discards(make_page, bundle):
    page, session = make_page()

    page_data = await page_to_single_file(page, {"removeScripts": False}, bundle=bundle)

    assert "<script" in page_data.content
    assert page_data.stats.discarded.scripts == 0
    assert page_data.stats.processed.scripts > 0


@pytest.mark.asyncio
async def test_post_processing_strips_leftover_scripts_and_empty_lines(make_page, bundle):
    html = "<html>\n<script>a()</script>\n\n\n\n<body>x</body>\n</html>"

    def engine(options):
        # Engine that leaves scripts in place regardless of options.
        return {"content": html.encode("utf-8")}

    page, session = make_page(engine=engine)
    page_data = await SingleFile(bundle=bundle).run(
        page,
        {"removeScripts": True, "removeEmptyLines": True},
    )

    assert page_data.content == "<html>\n<body>x</body>\n</html>"


@pytest.mark.asyncio
async def test_bytes_content_is_decoded_without_post_processing(make_page, bundle):
    def engine(options):
        return {"content": "<p>ünïcode</p>\n\n\n<script>x</script>".encode("utf-8")}

    page, session = make_page(engine=engine)
    page_data = await page_to_single_file(page, {"removeScripts": False}, bundle=bundle)

    assert page_data.content == "<p>ünïcode</p>\n\n\n<script>x</script>"


@pytest.mark.skipif(
    not os.getenv("PAGESNAP_LIVE_BROWSER"),
    reason="PAGESNAP_LIVE_BROWSER not set"
)
class TestLiveBrowser:
    """Captures against a real Chromium; needs a capture script bundle."""

    PAGE = (
        "<!DOCTYPE html><html><head><title>live</title></head>"
        "<body><p>hello</p><script>document.body.dataset.ran = '1';</script></body></html>"
    )

    @pytest.fixture
    def live_bundle(self):
        from pagesnap.capture.script_bundle import load_script_bundle

        return load_script_bundle()

    async def _capture(self, live_bundle, options):
        from playwright.async_api import async_playwright

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True)
            try:
                page = await browser.new_page()
                await page.set_content(self.PAGE)
                return await page_to_single_file(page, options, bundle=live_bundle)
            finally:
                await browser.close()

    @pytest.mark.asyncio
    async def test_remove_scripts(self, live_bundle):
        page_data = await self._capture(live_bundle, {"removeScripts": True, "blockScripts": True})
        assert len(re.findall(r"<script", page_data.content)) == 0
        assert page_data.stats.discarded.scripts == page_data.stats.processed.scripts

    @pytest.mark.asyncio
    async def test_keep_scripts(self, live_bundle):
        page_data = await self._capture(live_bundle, {"removeScripts": False, "blockScripts": False})
        assert "<script" in page_data.content
        assert page_data.stats.discarded.scripts == 0


@pytest.mark.asyncio
async def test_invalid_utf8_bytes_are_replaced(make_page, bundle):
    def engine(options):
        return {"content": b"<html>\xff\xfe</html>"}

    page, session = make_page(engine=engine)
    page_data = await page_to_single_file(page, {"removeScripts": False}, bundle=bundle)

    assert page_data.content == "<html>��</html>"
    assert session.leftovers == EMPTY
