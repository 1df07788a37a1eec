"""
Page Handle - one browser tab owned by a BrowserSession
v1.0
"""

import logging
from typing import Callable, Iterable, Optional

from playwright.async_api import CDPSession, Page

from chromium_session.browser.params import CookieParam
from chromium_session.errors import BrowserError, wrap_error

logger = logging.getLogger(__name__)

BLANK_URL = "about:blank"

# Injected before any page script runs
STEALTH_SCRIPT = """
Object.defineProperty(Navigator.prototype, 'webdriver', { get: () => undefined });
if (!window.chrome) { window.chrome = { runtime: {} }; }
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
const originalQuery = window.navigator.permissions && window.navigator.permissions.query;
if (originalQuery) {
  window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters)
  );
}
"""


class PageHandle:
    """
    Wraps a Playwright page opened by a BrowserSession.

    The handle must be closed before its session; BrowserSession.close()
    closes any handle still open.
    """

    def __init__(self, page: Page, on_close: Optional[Callable[["PageHandle"], None]] = None):
        """
        Args:
            page: The Playwright page
            on_close: Called once when the handle is closed (used by the session
                to stop tracking it)
        """
        self._page = page
        self._on_close = on_close
        self._cdp: Optional[CDPSession] = None
        self._closed = False

    @property
    def raw(self) -> Page:
        """Direct access to the Playwright page for advanced operations."""
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise BrowserError("Page is closed")

    async def _cdp_session(self) -> CDPSession:
        # Kept attached for the page's lifetime; emulation overrides end with the session
        if self._cdp is None:
            self._cdp = await self._page.context.new_cdp_session(self._page)
        return self._cdp

    async def content(self) -> str:
        """
        Get the rendered HTML of the page.

        Raises:
            CdpError: If the browser rejects the request
        """
        self._ensure_open()
        try:
            return await self._page.content()
        except Exception as e:
            raise wrap_error(e, "Reading page content") from e

    async def get_title(self) -> Optional[str]:
        """
        Get the page title.

        Returns:
            Optional[str]: The title, or None if the page has no title
        """
        self._ensure_open()
        try:
            title = await self._page.title()
        except Exception as e:
            raise wrap_error(e, "Reading page title") from e
        return title or None

    async def inner_text(self, selector: str = "body") -> Optional[str]:
        """Inner text of the first element matching selector, None if absent."""
        self._ensure_open()
        try:
            element = await self._page.query_selector(selector)
            if element is None:
                return None
            return await element.inner_text()
        except Exception as e:
            raise wrap_error(e, f"Reading text of '{selector}'") from e

    async def set_user_agent(self, user_agent: str) -> None:
        """Override the user agent for this page only."""
        self._ensure_open()
        try:
            cdp = await self._cdp_session()
            await cdp.send("Network.setUserAgentOverride", {"userAgent": user_agent})
        except Exception as e:
            raise wrap_error(e, "Setting user agent") from e
        logger.debug(f"User agent set: {user_agent}")

    async def enable_stealth_mode(self, user_agent: str) -> None:
        """Hide common automation markers and set the user agent."""
        self._ensure_open()
        try:
            await self._page.add_init_script(STEALTH_SCRIPT)
        except Exception as e:
            raise wrap_error(e, "Enabling stealth mode") from e
        await self.set_user_agent(user_agent)

    async def set_cookies(self, cookies: Iterable[CookieParam], url: Optional[str] = None) -> None:
        """
        Inject cookies into the page's browser context.

        Args:
            cookies: Cookies to add, in order
            url: URL to bind cookies without their own url/domain (default: current page URL)
        """
        self._ensure_open()
        default_url = url or (self.url if self.url != BLANK_URL else None)
        try:
            payload = [c.to_playwright(default_url) for c in cookies]
        except ValueError as e:
            raise BrowserError(str(e)) from e
        if not payload:
            return
        try:
            await self._page.context.add_cookies(payload)
        except Exception as e:
            raise wrap_error(e, "Setting cookies") from e
        logger.debug(f"Set {len(payload)} cookies")

    async def close(self) -> None:
        """
        Close the page. Safe to call more than once.

        Failures are logged, not raised: the tab may already be gone.
        """
        if self._closed:
            return
        self._closed = True
        if self._cdp is not None:
            try:
                await self._cdp.detach()
            except Exception as e:
                logger.debug(f"CDP session already detached: {e}")
            self._cdp = None
        try:
            await self._page.close()
        except Exception as e:
            logger.warning(f"Error closing page {self.url}: {e}")
        finally:
            if self._on_close:
                self._on_close(self)

    async def __aenter__(self) -> "PageHandle":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        status = "closed" if self._closed else "open"
        return f"PageHandle(url={self.url}, status={status})"
