# Copyright (c) Syntropy Systems
"""hwexplore init command."""

from pathlib import Path

import typer
import yaml
from rich.console import Console

from hwexplore.config import PROJECT_DIR_NAME, default_config_data

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new hwexplore project.

    Creates a .hwexplore directory with configuration and a runs directory.
    """
    target = path.resolve()
    project_dir = target / PROJECT_DIR_NAME

    if project_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {project_dir}")
        return

    project_dir.mkdir(parents=True)
    runs_dir = project_dir / "runs"
    runs_dir.mkdir()

    config_path = project_dir / "config.yaml"
    with config_path.open("w") as f:
        yaml.dump(default_config_data(), f, default_flow_style=False)

    console.print(f"[green]Initialized hwexplore project:[/green] {project_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
    console.print(f"  [dim]runs:[/dim] {runs_dir}")
