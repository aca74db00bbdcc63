# Copyright (c) Syntropy Systems
"""hwexplore explore command."""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from hwexplore.benchmark import CommandBenchmark
from hwexplore.config import get_runs_dir, load_config, require_project_dir
from hwexplore.errors import ExplorationTimeout
from hwexplore.scheduler import HardwareExploration
from hwexplore.space import ExplorationPlan
from hwexplore.summary import SUMMARY_FILE, render_summary

console = Console()


def configure_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Send hwexplore logs to the console through rich."""
    root = logging.getLogger("hwexplore")
    root.handlers.clear()
    root.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    )
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def explore(
    plan_file: Path = typer.Argument(
        ...,
        help="Path to exploration plan YAML file",
        exists=True,
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers", "-w",
        help="Concurrent benchmark repeats (default: worker_pool_size from config)",
    ),
    repeats: Optional[int] = typer.Option(
        None,
        "--repeats", "-r",
        help="Repeats per configuration (default: plan repeats)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Summary CSV path (default: .hwexplore/summary.csv)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log reuse decisions and other details",
    ),
) -> None:
    """Explore the plan's hardware configurations.

    Persisted repeats are reused; only missing repeats are run. Re-running
    after a failure picks up where the last exploration stopped.

    Example:
        hwexplore explore plan.yaml --workers 4

    """
    try:
        project_dir = require_project_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    try:
        plan = ExplorationPlan.from_yaml(plan_file)
        if repeats is not None:
            plan = replace(plan, repeats=repeats)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading plan:[/red] {e}")
        raise typer.Exit(1) from e

    config = load_config(project_dir)
    if workers is not None:
        if workers < 1:
            console.print("[red]Error:[/red] --workers must be at least 1")
            raise typer.Exit(1)
        config.worker_pool_size = workers

    configure_logging(verbose)

    summary_path = output or project_dir / SUMMARY_FILE
    benchmark = CommandBenchmark(
        plan.command,
        timeout_seconds=plan.timeout_seconds,
        kill_grace_period=config.kill_grace_period,
    )
    exploration = HardwareExploration.from_plan(
        plan,
        get_runs_dir(project_dir),
        benchmark,
        config=config,
        summary_path=summary_path,
    )

    try:
        report = exploration.explore()
    except ExplorationTimeout as e:
        console.print(render_summary(e.results, plan.instance_classes))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(render_summary(report.results, plan.instance_classes))
    console.print(
        f"\n[green]{len(report.explored)} explored[/green], "
        f"[dim]{len(report.skipped)} skipped[/dim], "
        f"[red]{len(report.failures)} failed[/red]"
    )
    console.print(f"  [dim]summary:[/dim] {summary_path}")

    if not report.ok:
        raise typer.Exit(1)
