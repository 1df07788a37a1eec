"""
chromium-session - browser session and page lifecycle over the Chrome DevTools Protocol
"""

from chromium_session.browser import (
    BrowserSession,
    BrowserSessionConfig,
    BrowserTimings,
    CookieParam,
    HeadlessMode,
    MyIP,
    PageHandle,
    PageParam,
    ProxySpec,
    parse_proxy,
)
from chromium_session.errors import (
    BrowserError,
    CdpError,
    ElapsedTimeoutError,
    ExtensionError,
    LaunchError,
    ParseMyIpError,
    ParseProxyError,
)

__version__ = "0.1.0"

__all__ = [
    'BrowserSession', 'BrowserSessionConfig', 'BrowserTimings', 'HeadlessMode',
    'PageHandle', 'PageParam', 'CookieParam', 'MyIP', 'ProxySpec', 'parse_proxy',
    'BrowserError', 'CdpError', 'ElapsedTimeoutError', 'ExtensionError',
    'LaunchError', 'ParseMyIpError', 'ParseProxyError',
]
