"""CLI command that fetches issues, tags them and prints a summary report."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..agent import ISSUES_TOPIC, TAGS_TOPIC, AnalysisAgent, InMemoryTransport
from ..ai.tagging import build_tag_extractor
from ..config import InsightsSettings, ReportPolicy
from ..errors import InsightsError
from ..github_client.client import GitHubClient
from ..models import BatchCompleted, Priority, SummaryReport
from .options import (
    FALLBACK_ONLY_OPTION,
    LIMIT_OPTION,
    MODEL_OPTION,
    ORG_OPTION,
    OUTPUT_OPTION,
    REPO_OPTION,
    STATE_OPTION,
    TOKEN_OPTION,
    TOP_N_OPTION,
    VERBOSE_OPTION,
)

console = Console()

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
VALID_STATES = ("open", "closed", "all")
PRIORITY_STYLES = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT
    )


def resolve_settings(
    token: str | None, model: str | None, fallback_only: bool
) -> InsightsSettings:
    """Environment settings with command-line overrides applied."""
    values = InsightsSettings.from_env().model_dump()
    if token:
        values["github_token"] = token
    if model:
        # An explicit model wins over an endpoint configured in the environment
        values["model"] = model
        values["completion_endpoint"] = None
    if fallback_only:
        values["use_fallback_tagger"] = True
    return InsightsSettings.model_validate(values)


async def run_analysis(
    org: str,
    repo: str,
    limit: int,
    state: str,
    settings: InsightsSettings,
    policy: ReportPolicy,
) -> tuple[list[dict[str, Any]], SummaryReport | None]:
    """Fetch issues, stream them through an agent and collect its output.

    Returns:
        The published tag events and the report, or None when no issues were found
    """
    client = GitHubClient(token=settings.github_token)
    issues = await asyncio.to_thread(client.fetch_issues, org, repo, limit, state)

    transport = InMemoryTransport()
    agent = AnalysisAgent(
        transport, extractor=build_tag_extractor(settings), policy=policy
    )
    inbound = transport.subscribe(ISSUES_TOPIC)
    tag_events = transport.subscribe(TAGS_TOPIC)
    serving = asyncio.create_task(agent.serve(inbound))

    repository = f"{org}/{repo}"
    for issue in issues:
        await transport.publish(ISSUES_TOPIC, issue)
    await transport.publish(ISSUES_TOPIC, BatchCompleted(repository=repository))
    transport.close(ISSUES_TOPIC)
    await serving

    transport.close_all()
    tagged = [event async for event in tag_events]
    return tagged, agent.latest_report(repository)


def _print_tags(tagged: list[dict[str, Any]]) -> None:
    table = Table(title="Extracted Tags")
    table.add_column("Issue", style="cyan")
    table.add_column("Title")
    table.add_column("Tags", style="green")
    table.add_column("Source", style="dim")
    for event in tagged:
        table.add_row(
            f"#{event['issueId']}",
            escape(event["title"]),
            escape(", ".join(event["extractedTags"])),
            event["source"],
        )
    console.print(table)


def _print_report(report: SummaryReport) -> None:
    console.print(f"\n[bold]Summary report for {report.repository}[/bold]")
    console.print(
        f"Issues: {report.total_issues} total, {report.open_issues} open, "
        f"{report.closed_issues} closed"
    )
    console.print(
        f"Created between {report.oldest_issue_date:%Y-%m-%d} and "
        f"{report.newest_issue_date:%Y-%m-%d}"
    )

    tags_table = Table(title="Top Tags")
    tags_table.add_column("Tag", style="cyan")
    tags_table.add_column("Issues", justify="right")
    for stat in report.top_tags:
        tags_table.add_row(escape(stat.tag), str(stat.count))
    console.print(tags_table)

    if not report.recommendations:
        console.print("[yellow]No recommendations: no tag is common enough.[/yellow]")
        return

    rec_table = Table(title="Recommendations")
    rec_table.add_column("Priority")
    rec_table.add_column("Title", style="bold")
    rec_table.add_column("Description")
    rec_table.add_column("Supporting Issues", style="cyan")
    for rec in report.recommendations:
        style = PRIORITY_STYLES[rec.priority]
        supporting = ", ".join(f"#{issue_id}" for issue_id in rec.supporting_issues)
        if rec.issue_count > len(rec.supporting_issues):
            supporting += f" (+{rec.issue_count - len(rec.supporting_issues)} more)"
        rec_table.add_row(
            f"[{style}]{rec.priority.value}[/{style}]",
            escape(rec.title),
            escape(rec.description),
            supporting,
        )
    console.print(rec_table)


def analyze(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    limit: int = LIMIT_OPTION,
    state: str = STATE_OPTION,
    token: str | None = TOKEN_OPTION,
    model: str | None = MODEL_OPTION,
    fallback_only: bool = FALLBACK_ONLY_OPTION,
    top_n: int = TOP_N_OPTION,
    output: Path | None = OUTPUT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Analyze a repository's issues and print prioritized recommendations.

    Examples:
        gh-insights analyze --org microsoft --repo vscode --limit 50
        gh-insights analyze -o pallets -r flask --fallback-only --output report.json
    """
    configure_logging(verbose)

    if state not in VALID_STATES:
        console.print(
            f"[red]❌ Invalid state '{state}'. Use one of: "
            f"{', '.join(VALID_STATES)}[/red]"
        )
        raise typer.Exit(1)
    if limit < 1:
        console.print("[red]❌ --limit must be at least 1[/red]")
        raise typer.Exit(1)

    try:
        settings = resolve_settings(token, model, fallback_only)
        policy = ReportPolicy(top_n=top_n)
        console.print(f"[blue]Analyzing up to {limit} issues from {org}/{repo}[/blue]")
        if settings.ai_configured:
            console.print(
                f"[blue]Tagging with {settings.model or settings.completion_model}"
                f"[/blue]"
            )
        else:
            console.print("[blue]Tagging with keyword heuristics[/blue]")

        tagged, report = asyncio.run(
            run_analysis(org, repo, limit, state, settings, policy)
        )
    except (InsightsError, ValueError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if report is None:
        console.print(f"[yellow]No issues found for {org}/{repo}.[/yellow]")
        return

    _print_tags(tagged)
    _print_report(report)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(report.to_event(), f, indent=2)
        console.print(f"[green]✓ Report written to {output}[/green]")
