"""
Error types for browser sessions
v1.0

Every fallible session or page operation raises a BrowserError subclass.
Playwright errors are wrapped with `raise ... from e` so the original
traceback stays attached.
"""

import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout


class BrowserError(Exception):
    """Base class for all browser session errors."""


class CdpError(BrowserError):
    """The browser rejected a command (navigation, protocol, closed target)."""


class ElapsedTimeoutError(BrowserError):
    """An operation did not finish within its timeout."""


class LaunchError(BrowserError):
    """The browser process could not be started."""


class ExtensionError(BrowserError):
    """The companion extension is unavailable or a command failed."""


class ParseMyIpError(BrowserError):
    """The IP lookup page did not return the expected JSON."""


class ParseProxyError(BrowserError, ValueError):
    """A proxy string could not be parsed."""


def wrap_error(e: BaseException, action: str) -> BrowserError:
    """
    Convert a low level exception into the matching BrowserError.

    Args:
        e: The exception raised by Playwright or asyncio
        action: Short description of what was being done, used in the message

    Returns:
        BrowserError: ElapsedTimeoutError for timeouts, CdpError for other
            Playwright errors, the error itself if already a BrowserError,
            otherwise a plain BrowserError
    """
    if isinstance(e, BrowserError):
        return e
    if isinstance(e, (PlaywrightTimeout, asyncio.TimeoutError)):
        return ElapsedTimeoutError(f"{action} timed out: {e}")
    if isinstance(e, PlaywrightError):
        return CdpError(f"{action} failed: {e}")
    return BrowserError(f"{action} failed: {e}")
