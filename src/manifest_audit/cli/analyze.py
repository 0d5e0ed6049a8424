"""CLI command for analyzing a manifest change."""

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table

from manifest_audit.cli.utils import (
    LocalFileReader,
    console,
    output_json,
    severity_style,
    unified_diff,
)
from manifest_audit.models.commit import Commit, CommitChange, FileChangeType
from manifest_audit.models.severity import Severity


def analyze_cmd(
    before: Optional[Path] = typer.Option(
        None, "--before", "-b", help="File content before the change", exists=True, dir_okay=False
    ),
    after: Optional[Path] = typer.Option(
        None, "--after", "-a", help="File content after the change", exists=True, dir_okay=False
    ),
    patch: Optional[Path] = typer.Option(
        None,
        "--patch",
        "-p",
        help="Unified diff of the change (computed from --before/--after if omitted)",
        exists=True,
        dir_okay=False,
    ),
    path: Optional[str] = typer.Option(
        None, "--path", help="Repository path of the file (default: the file name)"
    ),
    rules: Optional[Path] = typer.Option(
        None, "--rules", "-r", help="Severity rules YAML merged over the built-in rules"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="manifest-audit config file"
    ),
    fallback: bool = typer.Option(
        False, "--fallback", help="Use the fixed classification instead of rules"
    ),
    format: str = typer.Option(
        "terminal",
        "--format",
        "-f",
        help="Output format (terminal, json)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file path",
    ),
    fail_on: Optional[str] = typer.Option(
        None,
        "--fail-on",
        help="Exit with status 1 if any change is at least this severe",
    ),
) -> None:
    """
    Detect Kubernetes resource changes between two versions of a YAML file.

    Example:
        manifest-audit analyze --before old/deploy.yaml --after deploy.yaml --path k8s/deploy.yaml
    """
    from manifest_audit.core.analyzer import KubernetesChangeAnalyzer
    from manifest_audit.rules.config import build_engine
    from manifest_audit.utils.config import load_config
    from manifest_audit.utils.errors import ConfigurationError

    if before is None and after is None:
        console.print("[red]Error:[/red] Give --before, --after or both")
        raise typer.Exit(1)

    threshold = None
    if fail_on:
        try:
            threshold = Severity.parse(fail_on)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    file_path = path or (after or before).name  # type: ignore[union-attr]

    try:
        config = load_config(config_file)
        if rules is not None:
            config.severity.rules_file = str(rules)
        if fallback:
            config.analysis.use_rule_engine = False
        engine = build_engine(config)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    if before is None:
        change_type = FileChangeType.ADDED
    elif after is None:
        change_type = FileChangeType.DELETED
    else:
        change_type = FileChangeType.MODIFIED

    if patch is not None:
        patch_text = patch.read_text()
    else:
        patch_text = unified_diff(
            before.read_text() if before else "",
            after.read_text() if after else "",
            file_path,
        )

    adds, dels = _count_lines(patch_text)
    change = CommitChange(file=file_path, type=change_type, adds=adds, dels=dels)
    commit = Commit(
        hash="HEAD",
        file_patches={file_path: patch_text},
        changes=[change],
        total_line_changes=adds + dels,
    )

    analyzer = KubernetesChangeAnalyzer(
        LocalFileReader(before, after),
        engine=engine,
        version_patterns=config.analysis.version_patterns or None,
    )
    with console.status("Analyzing changes..."):
        result = analyzer.analyze(commit, change)

    if format == "json":
        output_json(result, output)
    else:
        _print_terminal_report(result)

    if threshold is not None and any(
        kc.severity.rank >= threshold.rank for kc in result.kubernetes_changes
    ):
        raise typer.Exit(1)


def _count_lines(patch_text: str) -> tuple[int, int]:
    adds = dels = 0
    for line in patch_text.split("\n"):
        if line.startswith("+") and not line.startswith("+++"):
            adds += 1
        elif line.startswith("-") and not line.startswith("---"):
            dels += 1
    return adds, dels


def _print_terminal_report(change: CommitChange) -> None:
    """Print a rich terminal report."""
    from manifest_audit.core.patch import JSONPatches

    console.print()
    severity = change.severity.value if change.severity else "none"
    style = severity_style(severity)
    console.print(
        Panel(
            f"[bold]File:[/bold] {change.file}\n"
            f"[bold]Lines:[/bold] {change.lines_changed or '-'}\n"
            f"[bold]Severity:[/bold] [{style}]{severity.upper()}[/{style}]",
            title="Manifest Changes",
        )
    )

    if change.skipped_documents:
        console.print(
            f"[yellow]Skipped {change.skipped_documents} malformed YAML document(s)[/yellow]"
        )

    if not change.kubernetes_changes:
        console.print()
        console.print("[green]No Kubernetes resource changes found.[/green]")
        return

    console.print()
    table = Table(title="Resources")
    table.add_column("Severity")
    table.add_column("Change")
    table.add_column("Resource", style="bold")
    table.add_column("Source")
    table.add_column("Fields", max_width=60)

    for kc in change.kubernetes_changes:
        style = severity_style(kc.severity)
        table.add_row(
            f"[{style}]{kc.severity.value.upper()}[/{style}]",
            kc.change_type.value,
            kc.ref.pretty(),
            kc.source_type.value,
            JSONPatches(kc.patches).pretty(),
        )
    console.print(table)

    for kc in change.kubernetes_changes:
        if kc.scaling or kc.version_changes or kc.environment_change:
            console.print(kc.pretty())
