# Copyright (c) Syntropy Systems
"""hwexplore runs command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from hwexplore.config import get_runs_dir, load_config, require_project_dir
from hwexplore.errors import RunFailed
from hwexplore.scoring import DEFAULT_ACTION_LABELS, Apdex, ResultScorer
from hwexplore.space import ExplorationPlan
from hwexplore.storage import RunCache, is_reusable, read_raw

console = Console()


def format_duration(seconds: float | None) -> str:
    """Format duration in seconds to human readable."""
    if seconds is None:
        return "-"

    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        m, s = divmod(total, 60)
        return f"{m}m {s}s"
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}h {m}m"


def runs(
    plan_file: Path = typer.Argument(
        ...,
        help="Path to exploration plan YAML file",
        exists=True,
    ),
) -> None:
    """List persisted benchmark repeats of every configuration in a plan.

    Shows which repeats a new exploration would reuse.
    """
    try:
        project_dir = require_project_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    try:
        plan = ExplorationPlan.from_yaml(plan_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading plan:[/red] {e}")
        raise typer.Exit(1) from e

    config = load_config(project_dir)
    scorer = ResultScorer(
        labels=plan.actions or DEFAULT_ACTION_LABELS,
        apdex=Apdex(config.apdex_satisfied_ms, config.apdex_tolerating_ms),
    )
    cache = RunCache(get_runs_dir(project_dir), scorer)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Instance")
    table.add_column("Nodes", justify="right")
    table.add_column("Run", justify="right", style="dim")
    table.add_column("Status")
    table.add_column("Reusable")
    table.add_column("Duration")
    table.add_column("Apdex", justify="right")
    table.add_column("Error rate", justify="right")

    found = 0
    for configuration in plan.configurations():
        for run_dir in cache.list_prior_runs(configuration):
            found += 1
            try:
                raw = read_raw(run_dir)
            except (OSError, ValueError):
                raw = None

            if raw is None:
                table.add_row(
                    configuration.instance_class,
                    str(configuration.node_count),
                    run_dir.name,
                    "[yellow]unreadable[/yellow]",
                    "no",
                    "-",
                    "-",
                    "-",
                )
                continue

            status_style = {
                "completed": "green",
                "failed": "red",
            }.get(raw.status.status, "yellow")

            apdex = "-"
            error_rate = "-"
            reusable = is_reusable(raw.status)
            if reusable:
                try:
                    score = scorer.score(configuration, raw)
                except RunFailed:
                    reusable = False
                else:
                    apdex = f"{score.apdex:.4f}"
                    error_rate = f"{score.error_rate:.4f}"

            table.add_row(
                configuration.instance_class,
                str(configuration.node_count),
                run_dir.name,
                f"[{status_style}]{raw.status.status}[/{status_style}]",
                "yes" if reusable else "no",
                format_duration(raw.status.duration_seconds),
                apdex,
                error_rate,
            )

    if not found:
        console.print("[dim]No runs found[/dim]")
        return

    console.print(table)
