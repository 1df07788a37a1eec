"""Unit tests for chromium_session.browser.page.PageHandle."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from chromium_session.browser.page import STEALTH_SCRIPT, PageHandle
from chromium_session.browser.params import CookieParam
from chromium_session.errors import BrowserError, CdpError


class TestPageHandle:
    async def test_get_title(self, make_page):
        assert await PageHandle(make_page(title="Docs")).get_title() == "Docs"

    async def test_empty_title_is_none(self, make_page):
        assert await PageHandle(make_page(title="")).get_title() is None

    async def test_content_error_is_wrapped(self, make_page):
        raw = make_page()
        raw.content.side_effect = PlaywrightError("Target page, context or browser has been closed")
        with pytest.raises(CdpError):
            await PageHandle(raw).content()

    async def test_inner_text(self, make_page):
        page = PageHandle(make_page(body="some text"))
        assert await page.inner_text("body") == "some text"

    async def test_inner_text_missing_element(self, make_page):
        assert await PageHandle(make_page(body=None)).inner_text("#nope") is None

    async def test_stealth_mode(self, make_page, fake_context):
        raw = make_page()
        await PageHandle(raw).enable_stealth_mode("Agent/1.0")
        raw.add_init_script.assert_awaited_once_with(STEALTH_SCRIPT)
        fake_context.cdp.send.assert_awaited_once_with(
            "Network.setUserAgentOverride", {"userAgent": "Agent/1.0"}
        )

    async def test_cdp_session_reused(self, make_page, fake_context):
        page = PageHandle(make_page())
        await page.set_user_agent("A")
        await page.set_user_agent("B")
        fake_context.new_cdp_session.assert_awaited_once()

    async def test_set_cookies_uses_page_url(self, make_page, fake_context):
        page = PageHandle(make_page(url="https://example.com/"))
        await page.set_cookies([CookieParam(name="a", value="1")])
        fake_context.add_cookies.assert_awaited_once_with(
            [{"name": "a", "value": "1", "url": "https://example.com/"}]
        )

    async def test_set_cookies_on_blank_page_needs_url(self, make_page, fake_context):
        page = PageHandle(make_page())
        with pytest.raises(BrowserError, match="url or domain"):
            await page.set_cookies([CookieParam(name="a", value="1")])
        fake_context.add_cookies.assert_not_awaited()

    async def test_set_no_cookies_is_noop(self, make_page, fake_context):
        await PageHandle(make_page()).set_cookies([])
        fake_context.add_cookies.assert_not_awaited()

    async def test_close_is_idempotent(self, make_page):
        raw = make_page()
        on_close = MagicMock()
        page = PageHandle(raw, on_close=on_close)

        await page.close()
        await page.close()

        raw.close.assert_awaited_once()
        on_close.assert_called_once_with(page)
        assert page.is_closed

    async def test_close_logs_failure(self, make_page, caplog):
        raw = make_page()
        raw.close.side_effect = PlaywrightError("Target closed")
        page = PageHandle(raw)
        await page.close()
        assert page.is_closed
        assert "Error closing page" in caplog.text

    async def test_closed_page_rejects_calls(self, make_page):
        page = PageHandle(make_page())
        await page.close()
        with pytest.raises(BrowserError, match="closed"):
            await page.content()

    async def test_async_context_manager(self, make_page):
        raw = make_page()
        async with PageHandle(raw) as page:
            assert not page.is_closed
        raw.close.assert_awaited_once()
