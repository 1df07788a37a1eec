"""
Parameter types for page opening and IP lookup
v1.0
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from chromium_session.errors import ParseMyIpError

SAME_SITE_VALUES = ("Strict", "Lax", "None")


@dataclass(frozen=True)
class CookieParam:
    """
    One cookie to inject before a page loads.

    If neither url nor domain is given, the cookie is bound to the URL
    of the page being opened.
    """

    name: str
    value: str
    url: Optional[str] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    secure: Optional[bool] = None
    http_only: Optional[bool] = None
    same_site: Optional[str] = None
    expires: Optional[float] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Cookie name must not be empty")
        if self.same_site is not None and self.same_site not in SAME_SITE_VALUES:
            raise ValueError(
                f"Invalid same_site '{self.same_site}', expected one of {SAME_SITE_VALUES}"
            )

    @classmethod
    def from_pair(cls, pair: str) -> "CookieParam":
        """Build a cookie from a 'name=value' string."""
        if "=" not in pair:
            raise ValueError(f"Cookie must look like name=value: {pair}")
        name, value = pair.split("=", 1)
        return cls(name=name.strip(), value=value.strip())

    def to_playwright(self, default_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Convert to the dict shape BrowserContext.add_cookies() expects.

        Args:
            default_url: URL to bind the cookie to when no url/domain is set

        Returns:
            Dict[str, Any]: Cookie dict for Playwright

        Raises:
            ValueError: If the cookie has no url, no domain and no default_url
        """
        cookie: Dict[str, Any] = {"name": self.name, "value": self.value}

        if self.url:
            cookie["url"] = self.url
        elif self.domain:
            cookie["domain"] = self.domain
            cookie["path"] = self.path or "/"
        elif default_url:
            cookie["url"] = default_url
        else:
            raise ValueError(f"Cookie '{self.name}' needs a url or domain")

        if self.secure is not None:
            cookie["secure"] = self.secure
        if self.http_only is not None:
            cookie["httpOnly"] = self.http_only
        if self.same_site is not None:
            cookie["sameSite"] = self.same_site
        if self.expires is not None:
            cookie["expires"] = self.expires
        return cookie


@dataclass(frozen=True)
class PageParam:
    """
    Options applied by BrowserSession.open_with_param().

    Attributes:
        proxy: Proxy to switch the session to before opening
        user_agent: User agent override for the new page
        cookies: Cookies injected before navigation, in order
        duration: Total time in milliseconds the page should have been open
            before open_with_param() returns
    """

    proxy: Optional[str] = None
    user_agent: Optional[str] = None
    cookies: Optional[Tuple[CookieParam, ...]] = None
    duration: Optional[int] = None

    def __post_init__(self):
        # Accept any iterable of cookies but store an immutable tuple
        if self.cookies is not None and not isinstance(self.cookies, tuple):
            object.__setattr__(self, "cookies", tuple(self.cookies))
        if self.duration is not None and self.duration < 0:
            raise ValueError(f"Duration must not be negative: {self.duration}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageParam":
        cookies: Optional[Iterable[CookieParam]] = None
        if data.get("cookies") is not None:
            cookies = [
                c if isinstance(c, CookieParam) else CookieParam(**c)
                for c in data["cookies"]
            ]
        return cls(
            proxy=data.get("proxy"),
            user_agent=data.get("user_agent"),
            cookies=cookies,
            duration=data.get("duration"),
        )


@dataclass(frozen=True)
class MyIP:
    """IP information returned by the IP lookup service."""

    ip: str
    country: str = ""
    cc: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_json(cls, text: Optional[str]) -> "MyIP":
        """
        Parse the lookup service response body.

        Args:
            text: Body text, expected to be {"ip": ..., "country": ..., "cc": ...}

        Returns:
            MyIP: Parsed IP information

        Raises:
            ParseMyIpError: If text is empty, not JSON, or has no ip field
        """
        if not text or not text.strip():
            raise ParseMyIpError("Empty response from IP lookup service")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseMyIpError(f"IP lookup response is not JSON: {e}") from e

        if not isinstance(data, dict) or not data.get("ip"):
            raise ParseMyIpError(f"IP lookup response has no ip field: {text[:200]}")

        return cls(
            ip=str(data["ip"]),
            country=str(data.get("country", "")),
            cc=str(data.get("cc", "")),
            raw=data,
        )
