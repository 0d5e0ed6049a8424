"""CLI commands for checking and testing severity rules."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from manifest_audit.cli.utils import console, load_json_context, severity_style

app = typer.Typer(help="Check and test severity rules.")


@app.command("check")
def check_cmd(
    rules_file: Path = typer.Argument(..., help="Severity rules YAML file", exists=True, dir_okay=False),
    with_defaults: bool = typer.Option(
        False, "--with-defaults", help="Merge over the built-in rules before compiling"
    ),
    show: bool = typer.Option(False, "--show", "-s", help="List the compiled rules in order"),
) -> None:
    """
    Compile a severity rules file and report problems.

    Example:
        manifest-audit rules check severity.yaml --show
    """
    from manifest_audit.rules.config import default_severity_config, load_severity_config
    from manifest_audit.rules.engine import Engine
    from manifest_audit.utils.errors import ConfigurationError, RuleCompilationError

    try:
        config = load_severity_config(rules_file)
        if with_defaults:
            config = default_severity_config().merge(config)
        engine = Engine(config)
    except RuleCompilationError as e:
        console.print(f"[red]Invalid rule:[/red] {escape(e.expression)}")
        console.print(f"  {escape(e.details.get('reason', e.message))}")
        raise typer.Exit(1)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    console.print(
        f"[green]OK[/green] {engine.rule_count} rules compiled, default severity "
        f"[{severity_style(config.default)}]{config.default.value}[/]"
    )

    if show:
        table = Table(title="Rules (first match wins)")
        table.add_column("#", justify="right")
        table.add_column("Expression", style="bold")
        table.add_column("Severity")
        for i, rule in enumerate(engine.config.rules, start=1):
            style = severity_style(rule.severity)
            table.add_row(str(i), escape(rule.expression), f"[{style}]{rule.severity.value}[/{style}]")
        console.print(table)


@app.command("test")
def test_cmd(
    expression: str = typer.Argument(..., help="CEL expression to evaluate"),
    context: Optional[str] = typer.Option(
        None,
        "--context",
        "-c",
        help="Evaluation context as a JSON object, or @file.json",
    ),
) -> None:
    """
    Evaluate one CEL expression against a context.

    Missing context variables default to the empty values a real change
    would have.

    Example:
        manifest-audit rules test 'kubernetes.kind == "Secret"' --context '{"kubernetes": {"kind": "Secret"}}'
    """
    from manifest_audit.rules.context import build_context
    from manifest_audit.rules.engine import Engine
    from manifest_audit.utils.errors import RuleCompilationError, RuleEvaluationError

    ctx = build_context(None, None, None)
    if context:
        for name, values in load_json_context(context).items():
            if isinstance(values, dict) and isinstance(ctx.get(name), dict):
                ctx[name] = {**ctx[name], **values}
            else:
                ctx[name] = values

    engine = Engine(config=None)
    try:
        result = engine.test_expression(expression, ctx)
    except (RuleCompilationError, RuleEvaluationError) as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1)

    console.print("[green]true[/green]" if result else "[yellow]false[/yellow]")
