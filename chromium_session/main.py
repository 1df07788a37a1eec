# chromium-session CLI - command line entry point
# v1.0
#   - myip: report the outbound IP, optionally through a proxy
#   - open: open a page with proxy / user agent / cookies / duration, print title or content
#   - clear-data: wipe cookies, cache and storage of a persistent profile

import asyncio
import argparse
import logging
import sys
from datetime import datetime
from typing import List, Optional

from chromium_session.browser import (
    BrowserSession,
    BrowserSessionConfig,
    CookieParam,
    HeadlessMode,
    PageParam,
)
from chromium_session.config import LOG_DIR
from chromium_session.errors import BrowserError
from chromium_session.utils import get_current_dir

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Log to a dated file under LOG_DIR and to stderr."""
    log_file = get_current_dir() / LOG_DIR / f"chromium_session_{datetime.now().strftime('%Y%m%d')}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def build_config(args: argparse.Namespace) -> BrowserSessionConfig:
    """Session config from --config file or environment, then CLI overrides."""
    if args.config:
        bsc = BrowserSessionConfig.from_json_file(args.config)
    else:
        bsc = BrowserSessionConfig.from_env()

    if args.headless:
        bsc.headless = HeadlessMode.parse(args.headless)
    if args.executable:
        bsc.executable = args.executable
    if args.user_data_dir:
        bsc.user_data_dir = args.user_data_dir
    if args.incognito:
        bsc.incognito = True
    return bsc


def build_page_param(args: argparse.Namespace) -> PageParam:
    cookies: Optional[List[CookieParam]] = None
    if args.cookie:
        cookies = list(args.cookie)
    return PageParam(
        proxy=args.proxy,
        user_agent=args.user_agent,
        cookies=cookies,
        duration=args.duration,
    )


async def cmd_myip(session: BrowserSession, args: argparse.Namespace) -> int:
    if args.proxy:
        await session.set_proxy(args.proxy)
    myip = await session.myip()
    print(f"{myip.ip}\t{myip.country}\t{myip.cc}")
    return 0


async def cmd_open(session: BrowserSession, args: argparse.Namespace) -> int:
    async with session.opened(args.url, build_page_param(args)) as page:
        if args.content:
            print(await page.content())
        else:
            title = await page.get_title()
            print(title if title is not None else "")
    return 0


async def cmd_clear_data(session: BrowserSession, args: argparse.Namespace) -> int:
    await session.clear_data()
    logger.info("Browsing data cleared")
    return 0


COMMANDS = {
    "myip": cmd_myip,
    "open": cmd_open,
    "clear-data": cmd_clear_data,
}


async def run(args: argparse.Namespace) -> int:
    """
    Launch a session, run one command, close the session.

    Returns:
        int: Process exit code
    """
    bsc = build_config(args)

    try:
        session = await BrowserSession.launch(bsc)
    except BrowserError as e:
        logger.error(f"Could not launch browser: {e}")
        return 1

    try:
        return await COMMANDS[args.command](session, args)
    except BrowserError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        logger.info("Closing browser...")
        await session.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='chromium-session',
        description='Chromium session helper: proxies, cookies, IP lookup',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Outbound IP through a proxy
  chromium-session myip --proxy user:pass@1.2.3.4:8000

  # Page title with cookies and a custom user agent
  chromium-session open https://example.com --cookie sid=abc --user-agent "Mozilla/5.0 ..."

  # Full HTML after the page has been open for 5 seconds
  chromium-session open https://example.com --duration 5000 --content

  # Wipe data of a persistent profile
  chromium-session clear-data --user-data-dir ./profile
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='JSON file with BrowserSessionConfig fields'
    )
    parser.add_argument(
        '--headless',
        type=str,
        default=None,
        choices=[m.value for m in HeadlessMode],
        help='Headless mode (default: from config/env, false)'
    )
    parser.add_argument(
        '--executable',
        type=str,
        default=None,
        help='Browser executable path, or "auto" to search the system'
    )
    parser.add_argument(
        '--user-data-dir',
        type=str,
        default=None,
        help='Persistent profile directory'
    )
    parser.add_argument(
        '--incognito',
        action='store_true',
        help='Use a throwaway profile'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    myip_parser = subparsers.add_parser('myip', help='Print the outbound IP')
    myip_parser.add_argument('--proxy', type=str, default=None, help='Proxy to route through')

    open_parser = subparsers.add_parser('open', help='Open a page and print its title')
    open_parser.add_argument('url', type=str, help='URL to open')
    open_parser.add_argument('--proxy', type=str, default=None, help='Proxy to route through')
    open_parser.add_argument('--user-agent', type=str, default=None, help='User agent override')
    open_parser.add_argument(
        '--cookie',
        action='append',
        type=CookieParam.from_pair,
        default=None,
        help='Cookie as name=value (repeatable)'
    )
    open_parser.add_argument(
        '--duration',
        type=int,
        default=None,
        help='Keep the page open at least this many milliseconds'
    )
    open_parser.add_argument('--content', action='store_true', help='Print page HTML instead of title')

    subparsers.add_parser('clear-data', help='Clear cookies, cache and storage')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    return asyncio.run(run(args))


if __name__ == '__main__':
    sys.exit(main())
