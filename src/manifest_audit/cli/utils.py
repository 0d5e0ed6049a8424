"""Shared utilities for CLI commands."""

from __future__ import annotations

import difflib
import json
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel
from rich.console import Console

from manifest_audit.models.severity import Severity
from manifest_audit.utils.errors import FileReadError

# Shared console instance
console = Console()


class LocalFileReader:
    """Serves the before and after versions of one file from local paths.

    The parent ref (ending in ``^``) maps to the before file, any other
    ref to the after file.
    """

    def __init__(self, before: Path | None, after: Path | None) -> None:
        self._before = before
        self._after = after

    def read_file(self, path: str, ref: str) -> str:
        source = self._before if ref.endswith("^") else self._after
        if source is None:
            raise FileReadError(path, ref, "no local file given for this side")
        try:
            return source.read_text()
        except OSError as e:
            raise FileReadError(path, ref, str(e)) from e


def unified_diff(before: str, after: str, path: str) -> str:
    """Build a unified diff of two texts, for when no patch file is given."""
    lines = difflib.unified_diff(
        before.splitlines(),
        after.splitlines(),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        lineterm="",
    )
    return "\n".join([f"diff --git a/{path} b/{path}", *lines])


def load_json_context(raw: str) -> dict[str, Any]:
    """Parse a JSON object given inline or as ``@file``.

    Exits with status 1 on invalid input.
    """
    text = raw
    if raw.startswith("@"):
        text = Path(raw[1:]).read_text()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Invalid JSON context: {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]Error:[/red] Context must be a JSON object")
        raise typer.Exit(1)
    return data


def output_json(data: dict[str, Any] | list[Any] | BaseModel, output: Path | None = None) -> None:
    """Output data as JSON to console or file.

    Args:
        data: Data to output (dict, list or Pydantic model)
        output: Optional output file path
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    json_str = json.dumps(data, indent=2, default=str)

    if output:
        output.write_text(json_str)
        console.print(f"Report written to {output}")
    else:
        console.print_json(json_str)


def severity_style(severity: Severity | str) -> str:
    """Get Rich style for a severity level."""
    styles = {
        "critical": "bold red",
        "high": "red",
        "medium": "yellow",
        "low": "green",
        "info": "blue",
    }
    return styles.get(str(severity).lower(), "white")
