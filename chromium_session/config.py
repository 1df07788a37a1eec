"""
Configuration constants for chromium-session
v1.1 - Load overrides from .env file

Values are read from environment variables after a .env file at the
repository root (if present) has been loaded.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Browser launch
CHROME_EXECUTABLE = os.getenv("CHROME_EXECUTABLE") or None
HEADLESS = os.getenv("HEADLESS", "false").lower()
USER_DATA_DIR = os.getenv("USER_DATA_DIR") or None

# Companion extension is unpacked here before every launch
EXTENSION_DIR = os.getenv(
    "EXTENSION_DIR",
    str(Path(tempfile.gettempdir()) / "chromium_session_extension")
)

# Timeouts (in milliseconds)
LAUNCH_TIMEOUT = int(os.getenv("LAUNCH_TIMEOUT", "15000"))
EXTENSION_TIMEOUT = int(os.getenv("EXTENSION_TIMEOUT", "5000"))

# IP lookup service used by BrowserSession.myip()
MYIP_URL = os.getenv("MYIP_URL", "https://api.myip.com/")

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")
