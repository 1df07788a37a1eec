"""Unit tests for the chromium-session command line."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chromium_session import main as cli
from chromium_session.browser import CookieParam, HeadlessMode, MyIP
from chromium_session.errors import LaunchError, ParseMyIpError


@pytest.fixture()
def mock_session():
    """Patch BrowserSession.launch to hand out a mock session."""
    session = MagicMock()
    session.close = AsyncMock()
    session.set_proxy = AsyncMock()
    session.clear_data = AsyncMock()
    session.myip = AsyncMock(return_value=MyIP(ip="1.2.3.4", country="Germany", cc="DE"))
    with patch("chromium_session.main.BrowserSession.launch", new=AsyncMock(return_value=session)):
        yield session


class TestParseArgs:
    def test_open_options(self):
        args = cli.parse_args([
            "--headless", "new",
            "open", "https://example.com",
            "--cookie", "a=1", "--cookie", "b=2",
            "--duration", "3000",
            "--proxy", "host:8080",
        ])
        param = cli.build_page_param(args)
        assert param.cookies == (CookieParam(name="a", value="1"), CookieParam(name="b", value="2"))
        assert param.duration == 3000
        assert param.proxy == "host:8080"
        assert param.user_agent is None

    def test_bad_cookie_is_usage_error(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["open", "https://example.com", "--cookie", "novalue"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])

    def test_config_file_with_overrides(self, tmp_path):
        path = tmp_path / "browser.json"
        path.write_text(json.dumps({"headless": "true", "timings": {"page_sleep": 10}}))
        args = cli.parse_args(["--config", str(path), "--headless", "new", "--incognito", "clear-data"])

        bsc = cli.build_config(args)
        assert bsc.headless == HeadlessMode.NEW
        assert bsc.incognito is True
        assert bsc.timings.page_sleep == logging.DEBUG


class TestRun:
    async def test_myip_with_proxy(self, mock_session, capsys):
        code = await cli.run(cli.parse_args(["myip", "--proxy", "u:p@host:8000"]))
        assert code == 0
        mock_session.set_proxy.assert_awaited_once_with("u:p@host:8000")
        assert capsys.readouterr().out.strip() == "1.2.3.4\tGermany\tDE"
        mock_session.close.assert_awaited_once()

    async def test_clear_data(self, mock_session):
        assert await cli.run(cli.parse_args(["clear-data"])) == 0
        mock_session.clear_data.assert_awaited_once()

    async def test_failure_returns_one_and_closes(self, mock_session):
        mock_session.myip.side_effect = ParseMyIpError("bad json")
        assert await cli.run(cli.parse_args(["myip"])) == 1
        mock_session.close.assert_awaited_once()

    async def test_launch_failure(self):
        with patch("chromium_session.main.BrowserSession.launch",
                   new=AsyncMock(side_effect=LaunchError("no browser"))):
            assert await cli.run(cli.parse_args(["myip"])) == 1


class TestSetupLogging:
    def test_log_dir_is_under_working_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch("chromium_session.main.LOG_DIR", "logs"), \
                patch("chromium_session.main.logging.basicConfig") as basic_config:
            cli.setup_logging(verbose=True)

        handlers = basic_config.call_args.kwargs["handlers"]
        try:
            assert (tmp_path / "logs").is_dir()
            assert handlers[0].baseFilename.startswith(str(tmp_path.resolve() / "logs"))
            assert basic_config.call_args.kwargs["level"] == logging.DEBUG
        finally:
            for handler in handlers:
                handler.close()
