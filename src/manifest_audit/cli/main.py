"""Main CLI entry point for manifest-audit."""

import typer
from rich.console import Console

from manifest_audit.cli import analyze, rules

app = typer.Typer(
    name="manifest-audit",
    help="Detect and rate Kubernetes manifest changes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register subcommands
app.command(name="analyze")(analyze.analyze_cmd)
app.add_typer(rules.app, name="rules")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output"),
    log_format: str = typer.Option(
        "rich", "--log-format", help="Log format (rich, plain, structured)"
    ),
) -> None:
    """
    manifest-audit: Kubernetes change detection and severity rating.

    - [bold]analyze[/bold]: Detect resource changes between two versions of a file
    - [bold]rules[/bold]: Check and test CEL severity rules
    """
    from manifest_audit.utils.logging import configure_logging

    level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"
    configure_logging(
        level=level,
        structured=log_format == "structured",
        rich=log_format == "rich",
    )


@app.command()
def version() -> None:
    """Show the manifest-audit version."""
    from manifest_audit import __version__

    console.print(f"manifest-audit version {__version__}")


if __name__ == "__main__":
    app()
