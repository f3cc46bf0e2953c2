"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from webintel import cli
from webintel.exceptions import WebIntelError


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch.object(cli, "setup_logging") as mock_setup:
        yield mock_setup


class TestCli:
    """Tests for the webintel command."""

    def test_strategy_command(self, capsys):
        cli.main(["strategy", "Next.js"])

        output = json.loads(capsys.readouterr().out)
        assert output["technology"] == "NEXTJS"
        assert output["strategy"] == "hybrid"
        assert output["requires_browser"] is False
        assert output["average_time_s"] == 1.5

    def test_unknown_technology(self, capsys):
        cli.main(["strategy", "MysteryStack"])

        output = json.loads(capsys.readouterr().out)
        assert output["strategy"] == "dynamic"
        assert output["requires_browser"] is True

    def test_group_command_with_site_type(self, capsys):
        cli.main(["group", "https://a.com/about", "https://a.com/search", "--site-type", "React"])

        output = json.loads(capsys.readouterr().out)
        assert output["groups"]["spa"] == ["https://a.com/about", "https://a.com/search"]
        assert output["estimate_s"]["total"] == 6.0

    def test_group_command_heuristic(self, capsys):
        cli.main(["group", "https://a.com/about", "https://a.com/search"])

        output = json.loads(capsys.readouterr().out)
        assert output["groups"]["static"] == ["https://a.com/about"]
        assert output["groups"]["dynamic"] == ["https://a.com/search"]

    def test_log_level_passed_to_setup(self, no_logging_setup, capsys):
        cli.main(["--log-level", "DEBUG", "strategy", "Hugo"])

        assert no_logging_setup.call_args.kwargs["level"] == "DEBUG"

    def test_no_command_prints_help(self, capsys):
        cli.main([])

        assert "usage" in capsys.readouterr().out.lower()

    def test_library_errors_exit_nonzero(self, capsys):
        with patch.object(cli, "get_strategy_for_technology", side_effect=WebIntelError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["strategy", "Hugo"])

        assert exc_info.value.code == 1
        assert "Error: boom" in capsys.readouterr().out

    def test_sitemap_command(self, capsys):
        discovered = {"entries": [{"url": "https://example.com/about"}], "sitemap_found": True}
        with patch.object(cli, "_sitemap", AsyncMock(return_value=discovered)) as mock_sitemap:
            cli.main(["sitemap", "example.com", "--max-urls", "10", "--location", "/extra.xml"])

        mock_sitemap.assert_called_once_with("example.com", 10, ["/extra.xml"])
        assert json.loads(capsys.readouterr().out)["sitemap_found"] is True

    def test_crawl_sitemap_flag(self, capsys):
        with patch.object(cli, "_crawl", AsyncMock(return_value={"links": []})) as mock_crawl:
            cli.main(["crawl", "example.com", "--sitemap"])

        mock_crawl.assert_called_once_with("example.com", 2, 50, False, False, True)

    def test_debug_module_levels(self, no_logging_setup, capsys):
        cli.main(["--debug-module", "webintel.crawler", "strategy", "Hugo"])

        assert no_logging_setup.call_args.kwargs["module_levels"] == {"webintel.crawler": "DEBUG"}
