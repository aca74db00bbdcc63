# Copyright (c) Syntropy Systems
"""hwexplore space command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from hwexplore.config import find_project_dir, get_runs_dir
from hwexplore.scoring import ResultScorer
from hwexplore.space import ExplorationPlan
from hwexplore.storage import RunCache

console = Console()


def space(
    plan_file: Path = typer.Argument(
        ...,
        help="Path to exploration plan YAML file",
        exists=True,
    ),
) -> None:
    r"""Show the configuration space of an exploration plan.

    Example plan.yaml:

    \b
        name: jira-dc
        instance_classes: [c5.xlarge, c5.2xlarge]
        max_node_count: 5
        repeats: 2
        command: ./benchmark.sh --nodes {{node_count}} --out {{run_dir}}
    """
    try:
        plan = ExplorationPlan.from_yaml(plan_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading plan:[/red] {e}")
        raise typer.Exit(1) from e

    # Prior runs are shown only inside a project
    cache: RunCache | None = None
    project_dir = find_project_dir()
    if project_dir is not None:
        cache = RunCache(get_runs_dir(project_dir), ResultScorer())

    table = Table(title=f"Space: {plan.name or plan_file.stem}")
    table.add_column("#", style="dim")
    table.add_column("Instance")
    table.add_column("Nodes", justify="right")
    table.add_column("Prior runs", justify="right")

    configurations = plan.configurations()
    for i, configuration in enumerate(configurations):
        prior = (
            str(len(cache.list_prior_runs(configuration))) if cache is not None else "-"
        )
        table.add_row(
            str(i),
            configuration.instance_class,
            str(configuration.node_count),
            prior,
        )

    console.print(table)
    console.print(f"\n[bold]{len(configurations)} configurations[/bold]")
    console.print(f"  [dim]instance classes:[/dim] {len(plan.instance_classes)}")
    console.print(f"  [dim]repeats:[/dim] {plan.repeats}")
