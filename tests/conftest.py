"""Shared test fixtures for chromium-session.

All fixtures mock Playwright: no real browser is launched.

  make_page   : factory for mock Playwright pages bound to fake_context
  fake_context: mock persistent BrowserContext with an extension worker
  session     : BrowserSession around fake_context with zero timings
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from chromium_session.browser import BrowserSession, BrowserTimings, ExtensionBridge

EXTENSION_WORKER_URL = "chrome-extension://abcdefghijklmnop/background.js"


@pytest.fixture
def fast_timings() -> BrowserTimings:
    return BrowserTimings(launch_sleep=0, set_proxy_sleep=0, page_sleep=0, wait_page_timeout=0)


@pytest.fixture
def extension_worker() -> MagicMock:
    worker = MagicMock()
    worker.url = EXTENSION_WORKER_URL
    worker.evaluate = AsyncMock(return_value=True)
    return worker


@pytest.fixture
def fake_context(extension_worker) -> MagicMock:
    context = MagicMock()
    context.service_workers = [extension_worker]
    context.add_cookies = AsyncMock()
    context.close = AsyncMock()
    context.wait_for_event = AsyncMock()

    cdp = MagicMock()
    cdp.send = AsyncMock()
    cdp.detach = AsyncMock()
    context.new_cdp_session = AsyncMock(return_value=cdp)
    context.cdp = cdp

    context.created_pages = []
    return context


@pytest.fixture
def make_page(fake_context):
    """Factory: mock Playwright page with the async methods the session uses."""

    def _factory(url: str = "about:blank", title: str = "Example", body: str | None = "Hello") -> MagicMock:
        page = MagicMock()
        page.url = url
        page.context = fake_context
        page.goto = AsyncMock()
        page.wait_for_load_state = AsyncMock()
        page.title = AsyncMock(return_value=title)
        page.content = AsyncMock(return_value="<html><body>Hello</body></html>")
        page.add_init_script = AsyncMock()
        page.close = AsyncMock()

        if body is None:
            page.query_selector = AsyncMock(return_value=None)
        else:
            element = MagicMock()
            element.inner_text = AsyncMock(return_value=body)
            page.query_selector = AsyncMock(return_value=element)

        fake_context.created_pages.append(page)
        return page

    return _factory


@pytest.fixture
def session(fake_context, make_page, fast_timings) -> BrowserSession:
    """BrowserSession whose context hands out a fresh mock page per new_page()."""
    fake_context.new_page = AsyncMock(side_effect=lambda: make_page())

    playwright = MagicMock()
    playwright.stop = AsyncMock()

    return BrowserSession(
        playwright=playwright,
        context=fake_context,
        timings=fast_timings,
        extension=ExtensionBridge(fake_context, timeout=100),
    )
