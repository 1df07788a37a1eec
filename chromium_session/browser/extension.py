"""
Companion extension - proxy switching and browsing data removal
v1.0

The extension is a manifest v3 service worker that exposes three functions
on its global scope:
- setProxy({scheme, host, port, username, password})
- resetProxy()
- clearData()

It is unpacked to disk before launch and loaded with --load-extension.
Python calls the functions through Playwright's Worker.evaluate().
Proxy credentials live in chrome.storage.session so the auth listener
still answers after the worker has been restarted.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import BrowserContext, Worker

from chromium_session import config
from chromium_session.browser.proxy import ProxySpec
from chromium_session.errors import ExtensionError, wrap_error
from chromium_session.utils import create_dir, write_to_file

logger = logging.getLogger(__name__)

EXTENSION_NAME = "chromium-session-companion"
EXTENSION_VERSION = "1.0.0"
BACKGROUND_SCRIPT = "background.js"

MANIFEST = {
    "manifest_version": 3,
    "name": EXTENSION_NAME,
    "version": EXTENSION_VERSION,
    "description": "Proxy switching and data clearing for chromium-session",
    "permissions": [
        "proxy",
        "browsingData",
        "storage",
        "webRequest",
        "webRequestAuthProvider",
    ],
    "host_permissions": ["<all_urls>"],
    "background": {"service_worker": BACKGROUND_SCRIPT},
}

BACKGROUND_JS = r"""
const BYPASS_LIST = ["localhost", "127.0.0.1", "<local>"];

chrome.webRequest.onAuthRequired.addListener(
  (details, callback) => {
    if (!details.isProxy) {
      callback({});
      return;
    }
    chrome.storage.session.get("proxyAuth").then(({ proxyAuth }) => {
      callback(proxyAuth ? { authCredentials: proxyAuth } : {});
    });
  },
  { urls: ["<all_urls>"] },
  ["asyncBlocking"]
);

async function setProxy(spec) {
  const proxyAuth = spec.username
    ? { username: spec.username, password: spec.password || "" }
    : null;
  await chrome.storage.session.set({ proxyAuth });
  await chrome.proxy.settings.set({
    value: {
      mode: "fixed_servers",
      rules: {
        singleProxy: { scheme: spec.scheme, host: spec.host, port: spec.port },
        bypassList: BYPASS_LIST,
      },
    },
    scope: "regular",
  });
  return true;
}

async function resetProxy() {
  await chrome.storage.session.remove("proxyAuth");
  await chrome.proxy.settings.clear({ scope: "regular" });
  return true;
}

async function clearData() {
  await chrome.browsingData.remove(
    { since: 0 },
    {
      cache: true,
      cacheStorage: true,
      cookies: true,
      fileSystems: true,
      formData: true,
      indexedDB: true,
      localStorage: true,
      serviceWorkers: true,
      webSQL: true,
    }
  );
  return true;
}

self.setProxy = setProxy;
self.resetProxy = resetProxy;
self.clearData = clearData;
"""

COMMANDS = ("setProxy", "resetProxy", "clearData")


def install_extension(directory: Optional[str] = None) -> Path:
    """
    Unpack the companion extension into a directory.

    Files are rewritten on every call so an upgraded package never runs a
    stale copy.

    Args:
        directory: Target directory (default: config.EXTENSION_DIR)

    Returns:
        Path: The extension directory
    """
    target = create_dir(directory or config.EXTENSION_DIR)
    write_to_file(target / "manifest.json", json.dumps(MANIFEST, indent=2))
    write_to_file(target / BACKGROUND_SCRIPT, BACKGROUND_JS)
    logger.debug(f"Companion extension unpacked to {target}")
    return target


def is_extension_worker(worker: Worker) -> bool:
    url = worker.url
    return url.startswith("chrome-extension://") and url.endswith(f"/{BACKGROUND_SCRIPT}")


class ExtensionBridge:
    """
    Sends commands to the companion extension running in a browser context.
    """

    def __init__(self, context: BrowserContext, timeout: int = config.EXTENSION_TIMEOUT):
        """
        Args:
            context: Browser context the extension was loaded into
            timeout: Milliseconds to wait for the extension worker to appear
        """
        self.context = context
        self.timeout = timeout

    async def get_worker(self) -> Worker:
        """
        Find the extension's service worker, waiting for it if needed.

        Raises:
            ExtensionError: If the worker does not start within the timeout
        """
        for worker in self.context.service_workers:
            if is_extension_worker(worker):
                return worker

        logger.debug("Waiting for companion extension worker...")
        try:
            # Site service workers can start first; skip them
            return await self.context.wait_for_event(
                "serviceworker", predicate=is_extension_worker, timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Companion extension did not start: {e}")
            raise ExtensionError(f"Companion extension worker not available: {e}") from e

    async def call(self, command: str, arg: Any = None) -> Any:
        """
        Run one extension command.

        Args:
            command: One of COMMANDS
            arg: JSON-serialisable argument passed to the command

        Returns:
            Any: The command's return value

        Raises:
            ExtensionError: If the command is unknown or fails
        """
        if command not in COMMANDS:
            raise ExtensionError(f"Unknown extension command: {command}")

        worker = await self.get_worker()
        try:
            return await worker.evaluate(f"arg => {command}(arg)", arg)
        except Exception as e:
            logger.error(f"Extension command {command} failed: {e}")
            error = wrap_error(e, f"Extension command {command}")
            raise ExtensionError(str(error)) from e

    async def set_proxy(self, spec: ProxySpec) -> None:
        logger.info(f"Setting proxy: {spec}")
        await self.call("setProxy", spec.to_extension_payload())

    async def reset_proxy(self) -> None:
        logger.info("Resetting proxy")
        await self.call("resetProxy")

    async def clear_data(self) -> None:
        logger.info("Clearing browsing data")
        await self.call("clearData")
