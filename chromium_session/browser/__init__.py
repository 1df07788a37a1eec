"""
Browser management modules
v1.0 - Session, page handle, launch config and companion extension
"""

from .extension import ExtensionBridge, install_extension
from .launcher import BrowserSessionConfig, BrowserTimings, DEFAULT_ARGS, HeadlessMode
from .page import PageHandle
from .params import CookieParam, MyIP, PageParam
from .proxy import ProxySpec, parse_proxy
from .session import BrowserSession

__all__ = [
    'BrowserSession', 'BrowserSessionConfig', 'BrowserTimings', 'HeadlessMode', 'DEFAULT_ARGS',
    'PageHandle', 'PageParam', 'CookieParam', 'MyIP',
    'ProxySpec', 'parse_proxy',
    'ExtensionBridge', 'install_extension',
]
