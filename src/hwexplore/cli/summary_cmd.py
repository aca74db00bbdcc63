# Copyright (c) Syntropy Systems
"""hwexplore summary command."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from hwexplore.config import require_project_dir
from hwexplore.summary import SUMMARY_FILE, read_summary, render_rows

console = Console()


def summary(
    summary_file: Optional[Path] = typer.Argument(
        None,
        help="Summary CSV to show (default: .hwexplore/summary.csv)",
    ),
) -> None:
    """Show the summary of the last exploration."""
    if summary_file is None:
        try:
            project_dir = require_project_dir()
        except RuntimeError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e
        summary_file = project_dir / SUMMARY_FILE

    if not summary_file.exists():
        console.print(f"[yellow]No summary found:[/yellow] {summary_file}")
        console.print("Run 'hwexplore explore PLAN' first.")
        raise typer.Exit(1)

    rows = read_summary(summary_file)
    if not rows:
        console.print("[dim]Summary is empty[/dim]")
        return

    console.print(render_rows(rows))
