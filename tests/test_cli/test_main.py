"""Test main CLI functionality."""

from typer.testing import CliRunner

from gh_insights.cli.main import app

runner = CliRunner()


def test_version_command() -> None:
    """Test version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "GitHub Issue Insights v" in result.stdout


def test_help_shorthand() -> None:
    """Test that -h works like --help."""
    result = runner.invoke(app, ["-h"])
    assert result.exit_code == 0
    assert "analyze" in result.stdout
