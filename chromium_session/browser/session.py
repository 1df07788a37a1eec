"""
Browser Session - lifecycle manager for one Chromium process
v1.1 - Added scoped page helpers (opened, with_open, with_new_open)

This module owns a Playwright driver and a persistent Chromium context,
opens pages, and forwards proxy switching and data clearing to the
companion extension.
"""

import asyncio
import inspect
import logging
import shutil
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from playwright.async_api import BrowserContext, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from chromium_session import config
from chromium_session.browser.extension import ExtensionBridge, install_extension
from chromium_session.browser.launcher import (
    BrowserSessionConfig,
    BrowserTimings,
    launch_browser_context,
)
from chromium_session.browser.page import PageHandle
from chromium_session.browser.params import CookieParam, MyIP, PageParam
from chromium_session.browser.proxy import ProxySpec, parse_proxy
from chromium_session.errors import BrowserError, LaunchError, wrap_error
from chromium_session.utils import get_random_user_agent

logger = logging.getLogger(__name__)

RESET_PROXY_SLEEP = 100
CLEAR_DATA_SLEEP = 150

PageAction = Callable[[PageHandle], Any]


async def sleep_ms(millis: int) -> None:
    await asyncio.sleep(max(millis, 0) / 1000)


class BrowserSession:
    """
    Manages one running browser and the pages opened from it.

    Create with BrowserSession.launch(); always close() when done, or use
    the session as an async context manager:

        async with await BrowserSession.launch(BrowserSessionConfig()) as bs:
            async with bs.opened("https://example.com") as page:
                print(await page.get_title())
    """

    def __init__(
        self,
        playwright: Playwright,
        context: BrowserContext,
        timings: BrowserTimings,
        extension: ExtensionBridge,
        throwaway_dir: Optional[str] = None
    ):
        """
        Initialize a session around an already launched context.

        Use BrowserSession.launch() instead of calling this directly.
        """
        self.playwright = playwright
        self.context = context
        self.timings = timings
        self.extension = extension
        self.current_proxy: Optional[ProxySpec] = None
        self._throwaway_dir = throwaway_dir
        self._pages: List[PageHandle] = []
        self._closed = False

    # -- Lifecycle -------------------------------------------------------------

    @classmethod
    async def launch(cls, bsc: Optional[BrowserSessionConfig] = None) -> "BrowserSession":
        """
        Launch a new browser session.

        Args:
            bsc: Session configuration (default: BrowserSessionConfig())

        Returns:
            BrowserSession: The running session

        Raises:
            LaunchError: If the browser cannot be started
            ElapsedTimeoutError: If the launch timeout elapses
        """
        bsc = bsc or BrowserSessionConfig()
        try:
            extension_dir = install_extension()
        except OSError as e:
            logger.error(f"Failed to unpack companion extension: {e}")
            raise LaunchError(f"Failed to unpack companion extension: {e}") from e

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            logger.error(f"Failed to start Playwright: {e}")
            raise LaunchError(f"Failed to start Playwright: {e}") from e

        try:
            context, throwaway_dir = await launch_browser_context(
                playwright, bsc, str(extension_dir)
            )
        except BrowserError:
            await playwright.stop()
            raise
        except Exception as e:
            await playwright.stop()
            logger.error(f"Failed to prepare browser launch: {e}")
            raise LaunchError(f"Failed to prepare browser launch: {e}") from e

        session = cls(
            playwright=playwright,
            context=context,
            timings=bsc.timings,
            extension=ExtensionBridge(context, timeout=config.EXTENSION_TIMEOUT),
            throwaway_dir=throwaway_dir,
        )
        await sleep_ms(bsc.timings.launch_sleep)
        return session

    @classmethod
    async def launch_with_default_config(cls) -> "BrowserSession":
        """Launch a new browser session with the default configuration."""
        return await cls.launch(BrowserSessionConfig())

    def set_timings(self, timings: BrowserTimings) -> None:
        """
        Replace the timing configuration.

        Example:
            session.set_timings(dataclasses.replace(session.timings, page_sleep=1000))
        """
        self.timings = timings

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pages(self) -> Tuple[PageHandle, ...]:
        """Pages opened by this session that are not closed yet."""
        return tuple(self._pages)

    def _ensure_open(self) -> None:
        if self._closed:
            raise BrowserError("Browser session is closed")

    def _forget_page(self, page: PageHandle) -> None:
        if page in self._pages:
            self._pages.remove(page)

    async def close(self) -> None:
        """
        Close all open pages and the browser.

        Failures are logged and cleanup continues, so the driver is always
        stopped. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True

        for page in list(self._pages):
            await page.close()

        try:
            await self.context.close()
            logger.info("Closed browser")
        except Exception as e:
            logger.error(f"Error closing browser: {e}")

        try:
            await self.playwright.stop()
            logger.info("Stopped Playwright")
        except Exception as e:
            logger.error(f"Error stopping Playwright: {e}")

        if self._throwaway_dir:
            shutil.rmtree(self._throwaway_dir, ignore_errors=True)
            logger.debug(f"Removed throwaway profile {self._throwaway_dir}")

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # -- Pages -----------------------------------------------------------------

    async def new_page(self) -> PageHandle:
        """
        Create a blank page with stealth mode and a random user agent.

        Raises:
            CdpError: If the browser refuses to create the page
        """
        self._ensure_open()
        try:
            raw_page = await self.context.new_page()
        except Exception as e:
            logger.error(f"Failed to create page: {e}")
            raise wrap_error(e, "Creating page") from e

        page = PageHandle(raw_page, on_close=self._forget_page)
        self._pages.append(page)
        try:
            await page.enable_stealth_mode(get_random_user_agent())
        except BrowserError:
            await page.close()
            raise
        return page

    async def open_on_page(self, url: str, page: PageHandle) -> PageHandle:
        """
        Navigate an existing page, then wait for it to settle.

        Waits up to timings.wait_page_timeout for network idle (a timeout
        there is not an error), then sleeps timings.page_sleep.

        Args:
            url: The URL to navigate to
            page: The page to navigate

        Returns:
            PageHandle: The same page

        Raises:
            CdpError: If navigation fails
            ElapsedTimeoutError: If the page does not load at all
        """
        self._ensure_open()
        logger.info(f"Navigating to: {url}")
        try:
            await page.raw.goto(url)
        except Exception as e:
            logger.error(f"Navigation failed: {e}")
            raise wrap_error(e, f"Navigating to {url}") from e

        try:
            await page.raw.wait_for_load_state(
                "networkidle", timeout=self.timings.wait_page_timeout
            )
        except PlaywrightTimeout:
            logger.debug(f"Network not idle after {self.timings.wait_page_timeout}ms: {url}")

        await sleep_ms(self.timings.page_sleep)
        return page

    async def _open_prepared(
        self,
        url: str,
        prepare: Optional[Callable[[PageHandle], Awaitable[Any]]] = None
    ) -> PageHandle:
        # New page, optional setup, navigation; the page is closed if any step fails
        page = await self.new_page()
        try:
            if prepare is not None:
                await prepare(page)
            await self.open_on_page(url, page)
        except BaseException:
            await page.close()
            raise
        return page

    async def _linger(self, millis: int) -> None:
        # page_sleep has already elapsed inside open_on_page
        await sleep_ms(max(millis - self.timings.page_sleep, 1))

    async def open(self, url: str) -> PageHandle:
        """
        Open a new page and navigate to a URL.

        Example:
            page = await session.open("https://example.com")
        """
        return await self._open_prepared(url)

    async def open_with_param(self, url: str, param: PageParam) -> PageHandle:
        """
        Open a page with proxy, cookies, user agent and duration options.

        The proxy is applied session-wide before the page is created, cookies
        and user agent are applied before navigation. With a duration the
        call returns once the page has been open for at least that long.

        Example:
            params = PageParam(
                cookies=[CookieParam(name="session_id", value="abc123")],
                user_agent="Mozilla/5.0 ...",
                duration=5000,
            )
            page = await session.open_with_param("https://example.com", params)
        """
        if param.proxy:
            await self.set_proxy(param.proxy)

        async def prepare(page: PageHandle) -> None:
            if param.cookies:
                await page.set_cookies(param.cookies, url=url)
            if param.user_agent:
                await page.set_user_agent(param.user_agent)

        page = await self._open_prepared(url, prepare)
        if param.duration is not None:
            await self._linger(param.duration)
        return page

    async def open_with_duration(self, url: str, millis: int) -> PageHandle:
        """Open a URL and keep the page open for at least millis before returning."""
        page = await self.open(url)
        await self._linger(millis)
        return page

    async def open_with_cookies(self, url: str, cookies: Iterable[CookieParam]) -> PageHandle:
        """Open a URL with cookies injected before navigation."""
        cookies = list(cookies)

        async def prepare(page: PageHandle) -> None:
            await page.set_cookies(cookies, url=url)

        return await self._open_prepared(url, prepare)

    async def open_with_cookies_and_duration(
        self, url: str, cookies: Iterable[CookieParam], millis: int
    ) -> PageHandle:
        page = await self.open_with_cookies(url, cookies)
        await self._linger(millis)
        return page

    @asynccontextmanager
    async def opened(self, url: str, param: Optional[PageParam] = None) -> AsyncIterator[PageHandle]:
        """
        Open a page for the duration of an async with block.

        The page is closed on every exit path of the block.
        """
        if param is not None:
            page = await self.open_with_param(url, param)
        else:
            page = await self.open(url)
        try:
            yield page
        finally:
            await page.close()

    async def with_open(self, url: str, action: PageAction) -> Any:
        """
        Open a page, run an action on it, and close the page.

        Args:
            url: The URL to navigate to
            action: Called with the PageHandle; may be sync or async

        Returns:
            Any: The action's return value

        Raises:
            BrowserError: If the page cannot be opened. Exceptions raised by
                the action itself propagate unchanged after the page is closed.

        Example:
            title = await session.with_open("https://example.com", lambda p: p.get_title())
        """
        async with self.opened(url) as page:
            return await _call_action(action, page)

    async def with_new_open(self, url: str, before: PageAction, after: PageAction) -> Any:
        """
        Run one action before navigation and another after it on a new page.

        Returns:
            Any: The after action's return value

        Example:
            shot = await session.with_new_open(
                "https://example.com",
                lambda p: p.raw.set_viewport_size({"width": 1920, "height": 1080}),
                lambda p: p.raw.screenshot(),
            )
        """
        page = await self.new_page()
        try:
            await _call_action(before, page)
            await self.open_on_page(url, page)
            return await _call_action(after, page)
        finally:
            await page.close()

    # -- Proxy and data ----------------------------------------------------------

    async def set_proxy(self, proxy: Union[str, ProxySpec]) -> None:
        """
        Route all session traffic through a proxy.

        Args:
            proxy: "username:password@host:port", "host:port", optionally with
                a scheme prefix, or a parsed ProxySpec

        Raises:
            ParseProxyError: If the proxy string is malformed
            ExtensionError: If the extension rejects the change

        Example:
            await session.set_proxy("username:password@host:port")
            myip = await session.myip()
            await session.reset_proxy()
        """
        self._ensure_open()
        spec = proxy if isinstance(proxy, ProxySpec) else parse_proxy(proxy)
        await self.extension.set_proxy(spec)
        self.current_proxy = spec
        await sleep_ms(self.timings.set_proxy_sleep)

    async def reset_proxy(self) -> None:
        """Switch the session back to a direct connection."""
        self._ensure_open()
        await self.extension.reset_proxy()
        self.current_proxy = None
        await sleep_ms(RESET_PROXY_SLEEP)

    async def clear_data(self) -> None:
        """Remove cookies, cache and site storage from the browser."""
        self._ensure_open()
        await self.extension.clear_data()
        await sleep_ms(CLEAR_DATA_SLEEP)

    async def myip(self, url: Optional[str] = None) -> MyIP:
        """
        Look up the session's outbound IP through the current proxy.

        Args:
            url: Lookup service URL (default: config.MYIP_URL), must return
                {"ip": ..., "country": ..., "cc": ...}

        Returns:
            MyIP: IP details

        Raises:
            ParseMyIpError: If the response body is missing or not valid JSON
        """
        async with self.opened(url or config.MYIP_URL) as page:
            text = await page.inner_text("body")
            myip = MyIP.from_json(text)
        logger.info(f"Outbound IP: {myip.ip} ({myip.cc})")
        return myip

    def __repr__(self) -> str:
        status = "closed" if self._closed else "open"
        return f"BrowserSession(pages={len(self._pages)}, status={status})"


async def _call_action(action: PageAction, page: PageHandle) -> Any:
    result = action(page)
    if inspect.isawaitable(result):
        result = await result
    return result
