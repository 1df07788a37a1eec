"""
Browser Launcher - launch configuration and Chromium startup
v2.0 - Launch through Playwright persistent context with companion extension

This module handles browser initialization:
- Session configuration (headless mode, args, extensions, profile, timings)
- Chrome/Chromium executable lookup
- Starting a persistent Chromium context with the extension loaded
"""

import json
import logging
import platform
import shutil
import tempfile
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import BrowserContext, Playwright

from chromium_session import config
from chromium_session.errors import ElapsedTimeoutError, LaunchError, wrap_error

logger = logging.getLogger(__name__)

DEFAULT_ARGS = [
    "--disable-background-networking",
    "--enable-features=NetworkService,NetworkServiceInProcess",
    "--disable-client-side-phishing-detection",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
    "--disable-breakpad",
    "--disable-features=TranslateUI",
    "--disable-prompt-on-repost",
    "--no-first-run",
    "--disable-sync",
    "--force-color-profile=srgb",
    "--enable-blink-features=IdleDetection",
    "--lang=en_US",
    "--no-sandbox",
    "--disable-gpu",
    "--disable-smooth-scrolling",
]

# Playwright defaults that would block the companion extension
IGNORED_PLAYWRIGHT_ARGS = ["--disable-extensions", "--enable-automation"]

AUTO_EXECUTABLE = "auto"


class HeadlessMode(str, Enum):
    """Headless mode for browser operation."""

    FALSE = "false"  # visible UI
    TRUE = "true"    # legacy headless
    NEW = "new"      # new headless (supports extensions)

    @classmethod
    def parse(cls, value: Any) -> "HeadlessMode":
        if isinstance(value, HeadlessMode):
            return value
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid headless mode: {value}. Expected false, true or new")


@dataclass
class BrowserTimings:
    """Sleep and wait durations used by a session, all in milliseconds."""

    launch_sleep: int = 200
    set_proxy_sleep: int = 300
    page_sleep: int = 250
    wait_page_timeout: int = 500

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BrowserTimings":
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown timing keys: {sorted(unknown)}")
        return cls(**{k: int(v) for k, v in data.items() if k in known})


@dataclass
class BrowserSessionConfig:
    """
    Browser session configuration.

    Every attribute has a default, so BrowserSessionConfig() launches a
    visible browser on Playwright's bundled Chromium with a temporary profile.
    """

    executable: Optional[str] = None
    headless: HeadlessMode = HeadlessMode.FALSE
    args: List[str] = field(default_factory=lambda: list(DEFAULT_ARGS))
    extensions: List[str] = field(default_factory=list)
    incognito: bool = False
    user_data_dir: Optional[str] = None
    launch_timeout: int = config.LAUNCH_TIMEOUT
    timings: BrowserTimings = field(default_factory=BrowserTimings)

    def __post_init__(self):
        self.headless = HeadlessMode.parse(self.headless)
        if isinstance(self.timings, dict):
            self.timings = BrowserTimings.from_dict(self.timings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrowserSessionConfig":
        """
        Build a config from a plain dict, missing keys take their defaults.

        Args:
            data: Dict with any subset of the config attributes

        Returns:
            BrowserSessionConfig: The config
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        kwargs = {k: v for k, v in data.items() if k in known}
        if "timings" in kwargs:
            kwargs["timings"] = BrowserTimings.from_dict(kwargs["timings"])
        return cls(**kwargs)

    @classmethod
    def from_json_file(cls, path: str) -> "BrowserSessionConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Loaded browser config from {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "BrowserSessionConfig":
        """Build a config from environment settings (see chromium_session.config)."""
        return cls(
            executable=config.CHROME_EXECUTABLE,
            headless=HeadlessMode.parse(config.HEADLESS),
            user_data_dir=config.USER_DATA_DIR,
            launch_timeout=config.LAUNCH_TIMEOUT,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["headless"] = self.headless.value
        return data


def get_chrome_path() -> str:
    """
    Get a system Chromium/Chrome executable path based on the operating system.

    Chromium builds are listed first because branded Chrome ignores
    --load-extension on recent versions.

    Returns:
        str: Path to the executable

    Raises:
        LaunchError: If no executable is found
    """
    system = platform.system()

    if system == "Darwin":  # macOS
        paths = [
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        ]
    elif system == "Linux":
        paths = [
            "/usr/bin/chromium",
            "/usr/bin/chromium-browser",
            "/usr/bin/google-chrome",
            "/usr/bin/google-chrome-stable",
        ]
    elif system == "Windows":
        paths = [
            r"C:\Program Files\Chromium\Application\chrome.exe",
            r"C:\Program Files\Google\Chrome\Application\chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
        ]
    else:
        raise LaunchError(f"Unsupported operating system: {system}")

    for path in paths:
        if Path(path).exists():
            return path

    raise LaunchError(f"Chrome not found. Checked paths: {paths}")


def resolve_executable(executable: Optional[str]) -> Optional[str]:
    """
    Resolve the configured executable.

    Args:
        executable: None for Playwright's bundled Chromium, "auto" to search
            the system, or an explicit path

    Returns:
        Optional[str]: Executable path, or None for the bundled browser

    Raises:
        LaunchError: If the executable cannot be found
    """
    if not executable:
        return None
    if executable == AUTO_EXECUTABLE:
        return get_chrome_path()
    if not Path(executable).exists():
        raise LaunchError(f"Browser executable not found: {executable}")
    return executable


def merge_args(extra: List[str]) -> List[str]:
    """Configured args followed by DEFAULT_ARGS, duplicates dropped, order kept."""
    return list(dict.fromkeys([*extra, *DEFAULT_ARGS]))


def build_launch_options(
    bsc: BrowserSessionConfig,
    extension_dir: str
) -> Tuple[str, Dict[str, Any], Optional[str]]:
    """
    Translate a session config into launch_persistent_context() arguments.

    Args:
        bsc: Session configuration
        extension_dir: Directory of the unpacked companion extension, loaded
            before any configured extension

    Returns:
        Tuple[str, Dict[str, Any], Optional[str]]:
            - user_data_dir passed to Playwright ("" lets Playwright pick a temp dir)
            - keyword arguments for launch_persistent_context()
            - throwaway profile directory to delete on close, if any
    """
    extensions = [extension_dir, *bsc.extensions]
    ext_list = ",".join(str(Path(e).resolve()) for e in extensions)

    args = merge_args(bsc.args)
    args.append(f"--disable-extensions-except={ext_list}")
    args.append(f"--load-extension={ext_list}")

    if bsc.headless == HeadlessMode.NEW:
        args.append("--headless=new")
        headless = False
    else:
        headless = bsc.headless == HeadlessMode.TRUE

    executable = resolve_executable(bsc.executable)

    throwaway_dir = None
    if bsc.incognito:
        if bsc.user_data_dir:
            logger.warning("incognito is set, ignoring user_data_dir")
        throwaway_dir = tempfile.mkdtemp(prefix="chromium_session_")
        user_data_dir = throwaway_dir
    else:
        user_data_dir = bsc.user_data_dir or ""

    options: Dict[str, Any] = {
        "headless": headless,
        "args": args,
        "ignore_default_args": IGNORED_PLAYWRIGHT_ARGS,
        "no_viewport": True,
        "timeout": bsc.launch_timeout,
    }

    if executable:
        options["executable_path"] = executable

    return user_data_dir, options, throwaway_dir


async def launch_browser_context(
    playwright: Playwright,
    bsc: BrowserSessionConfig,
    extension_dir: str
) -> Tuple[BrowserContext, Optional[str]]:
    """
    Launch Chromium with a persistent context.

    Args:
        playwright: A started Playwright instance
        bsc: Session configuration
        extension_dir: Directory of the unpacked companion extension

    Returns:
        Tuple[BrowserContext, Optional[str]]: The context and the throwaway
            profile directory (None unless incognito)

    Raises:
        LaunchError: If the browser fails to start
        ElapsedTimeoutError: If the launch timeout elapses
    """
    user_data_dir, options, throwaway_dir = build_launch_options(bsc, extension_dir)

    logger.info(f"Launching Chromium (headless={bsc.headless.value})...")
    logger.debug(f"Launch args: {' '.join(options['args'])}")

    try:
        context = await playwright.chromium.launch_persistent_context(
            user_data_dir,
            **options
        )
    except Exception as e:
        logger.error(f"Failed to launch browser: {e}")
        if throwaway_dir:
            shutil.rmtree(throwaway_dir, ignore_errors=True)
        error = wrap_error(e, "Browser launch")
        if not isinstance(error, ElapsedTimeoutError):
            error = LaunchError(f"Failed to launch browser: {e}")
        raise error from e

    logger.info("Browser launched")
    return context, throwaway_dir
