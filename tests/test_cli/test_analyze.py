"""Tests for the analyze command."""

import json
import re
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gh_insights.cli.analyze import resolve_settings, run_analysis
from gh_insights.cli.main import app
from gh_insights.config import InsightsSettings, ReportPolicy
from gh_insights.errors import FetchError
from gh_insights.models import IssueEvent


def strip_ansi(text: str) -> str:
    """Strip ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner(env={"NO_COLOR": "1", "FORCE_COLOR": "0"})


@pytest.fixture
def mock_github_client(crash_issue: IssueEvent, dark_mode_issue: IssueEvent):
    with patch("gh_insights.cli.analyze.GitHubClient") as mock_client_class:
        client = mock_client_class.return_value
        client.fetch_issues.return_value = [crash_issue, dark_mode_issue]
        yield mock_client_class


class TestAnalyzeCommand:
    """Test the analyze command end to end with a mocked issue source."""

    def test_analyze_with_keyword_tagging(
        self, runner: CliRunner, mock_github_client, tmp_path: Path
    ) -> None:
        output = tmp_path / "reports" / "report.json"

        result = runner.invoke(
            app,
            [
                "analyze",
                "--org",
                "o",
                "--repo",
                "r",
                "--limit",
                "5",
                "--fallback-only",
                "--output",
                str(output),
            ],
        )

        assert result.exit_code == 0, result.stdout
        clean_output = strip_ansi(result.stdout)
        assert "Tagging with keyword heuristics" in clean_output
        assert "Summary report for o/r" in clean_output
        assert "2 total, 2 open, 0 closed" in clean_output
        mock_github_client.return_value.fetch_issues.assert_called_once_with(
            "o", "r", 5, "all"
        )

        report = json.loads(output.read_text())
        assert report["repository"] == "o/r"
        assert report["totalIssues"] == 2
        assert report["openIssues"] == 2
        assert report["topTags"][0] == {"tag": "open", "count": 2}

    def test_short_options(self, runner: CliRunner, mock_github_client) -> None:
        result = runner.invoke(
            app, ["analyze", "-o", "o", "-r", "r", "-s", "open", "--fallback-only"]
        )

        assert result.exit_code == 0, result.stdout
        mock_github_client.return_value.fetch_issues.assert_called_once_with(
            "o", "r", 10, "open"
        )

    def test_token_passed_to_client(
        self, runner: CliRunner, mock_github_client
    ) -> None:
        result = runner.invoke(
            app,
            ["analyze", "-o", "o", "-r", "r", "--token", "abc", "--fallback-only"],
        )

        assert result.exit_code == 0, result.stdout
        mock_github_client.assert_called_once_with(token="abc")

    def test_no_issues(self, runner: CliRunner) -> None:
        with patch("gh_insights.cli.analyze.GitHubClient") as mock_client_class:
            mock_client_class.return_value.fetch_issues.return_value = []
            result = runner.invoke(
                app, ["analyze", "-o", "o", "-r", "r", "--fallback-only"]
            )

        assert result.exit_code == 0
        assert "No issues found for o/r" in strip_ansi(result.stdout)

    def test_fetch_error(self, runner: CliRunner) -> None:
        with patch("gh_insights.cli.analyze.GitHubClient") as mock_client_class:
            mock_client_class.return_value.fetch_issues.side_effect = FetchError(
                "Repository o/r not found"
            )
            result = runner.invoke(
                app, ["analyze", "-o", "o", "-r", "r", "--fallback-only"]
            )

        assert result.exit_code == 1
        assert "Repository o/r not found" in strip_ansi(result.stdout)

    def test_invalid_state(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["analyze", "-o", "o", "-r", "r", "-s", "merged"])

        assert result.exit_code == 1
        assert "Invalid state 'merged'" in strip_ansi(result.stdout)

    def test_invalid_model(self, runner: CliRunner, mock_github_client) -> None:
        result = runner.invoke(
            app, ["analyze", "-o", "o", "-r", "r", "--model", "gpt-4o"]
        )

        assert result.exit_code == 1
        assert "Invalid model format" in strip_ansi(result.stdout)
        mock_github_client.return_value.fetch_issues.assert_not_called()

    def test_missing_org(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["analyze", "--repo", "r"])

        assert result.exit_code != 0
        assert "Missing option '--org'" in strip_ansi(result.output)


class TestResolveSettings:
    """Test command-line overrides of environment settings."""

    @patch.dict(
        "os.environ",
        {"INSIGHTS_COMPLETION_ENDPOINT": "https://api.example.com/v1"},
        clear=True,
    )
    def test_model_overrides_endpoint(self) -> None:
        settings = resolve_settings(None, "openai:gpt-4o-mini", False)
        assert settings.model == "openai:gpt-4o-mini"
        assert settings.completion_endpoint is None

    @patch.dict("os.environ", {"GITHUB_TOKEN": "env"}, clear=True)
    def test_token_and_fallback(self) -> None:
        settings = resolve_settings("cli", None, True)
        assert settings.github_token == "cli"
        assert settings.use_fallback_tagger
        assert not settings.ai_configured


@pytest.mark.asyncio
async def test_run_analysis_collects_tags_and_report(
    mock_github_client, crash_issue: IssueEvent
) -> None:
    """Test that issues flow through the transport to tags and a report."""
    settings = InsightsSettings(use_fallback_tagger=True)

    tagged, report = await run_analysis(
        "o", "r", 10, "all", settings, ReportPolicy(top_n=2)
    )

    assert [event["issueId"] for event in tagged] == ["1", "2"]
    assert "bug" in tagged[0]["extractedTags"]
    assert report is not None
    assert report.total_issues == 2
    assert len(report.top_tags) == 2
