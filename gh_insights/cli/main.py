"""Main CLI entry point."""

import typer
from dotenv import load_dotenv
from rich.console import Console

from .analyze import analyze

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="gh-insights",
    help="GitHub issue tagging and recommendation reports",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


app.command(name="analyze", context_settings={"help_option_names": ["-h", "--help"]})(
    analyze
)


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from gh_insights import __version__

    console.print(f"GitHub Issue Insights v{__version__}")


if __name__ == "__main__":
    app()
