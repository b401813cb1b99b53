"""Shared CLI option definitions so shorthand flags stay consistent."""

import typer

ORG_OPTION = typer.Option(..., "--org", "-o", help="GitHub organization name")

REPO_OPTION = typer.Option(..., "--repo", "-r", help="GitHub repository name")

LIMIT_OPTION = typer.Option(10, "--limit", help="Maximum number of issues to analyze")

STATE_OPTION = typer.Option(
    "all", "--state", "-s", help="Issue state: open, closed, or all"
)

TOKEN_OPTION = typer.Option(
    None, "--token", help="GitHub API token (defaults to GITHUB_TOKEN env var)"
)

MODEL_OPTION = typer.Option(
    None,
    "--model",
    "-m",
    help="AI model for tag extraction (e.g., 'openai:gpt-4o-mini')",
)

FALLBACK_ONLY_OPTION = typer.Option(
    False, "--fallback-only", help="Use keyword tagging only, never call an AI model"
)

TOP_N_OPTION = typer.Option(10, "--top-n", help="Number of top tags in the report")

OUTPUT_OPTION = typer.Option(
    None, "--output", help="Write the summary report as JSON to this file"
)

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
