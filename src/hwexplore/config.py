# Copyright (c) Syntropy Systems
"""Configuration management for hwexplore."""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import cast

import yaml

PROJECT_DIR_NAME = ".hwexplore"


@dataclass
class ExplorationConfig:
    """Policy and resource settings for hardware exploration."""

    # Size of the shared pool that runs benchmark repeats
    worker_pool_size: int = 8

    # Hard ceiling on the whole exploration (seconds), 70 minutes
    exploration_timeout: float = 4200.0

    # Node counts below this are always explored
    high_availability_floor: int = 4

    # Minimum Apdex gain per added node to keep exploring
    improvement_threshold: float = 0.01

    # Quality gates on aggregated repeats
    error_rate_ceiling: float = 0.05
    spread_ceiling: float = 0.10

    # Apdex latency thresholds (milliseconds)
    apdex_satisfied_ms: float = 1000.0
    apdex_tolerating_ms: float = 4000.0

    # Grace period before SIGKILL after SIGTERM (seconds)
    kill_grace_period: float = 10.0


def find_project_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .hwexplore directory by walking up from start_path.

    Returns None if no .hwexplore directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        project_dir = current / PROJECT_DIR_NAME
        if project_dir.is_dir():
            return project_dir
        current = current.parent

    # Check root
    project_dir = current / PROJECT_DIR_NAME
    if project_dir.is_dir():
        return project_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global hwexplore config directory (~/.hwexplore)."""
    return Path.home() / PROJECT_DIR_NAME


def load_config(project_dir: Path | None = None) -> ExplorationConfig:
    """Load configuration from .hwexplore/config.yaml or defaults.

    Looks for config in:
    1. Provided project_dir
    2. Nearest .hwexplore directory walking up
    3. ~/.hwexplore/config.yaml
    4. Defaults
    """
    config = ExplorationConfig()

    config_path = None

    if project_dir is not None:
        config_path = project_dir / "config.yaml"
    else:
        found_dir = find_project_dir()
        if found_dir is not None:
            config_path = found_dir / "config.yaml"
        else:
            global_config = get_global_config_dir() / "config.yaml"
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        for field in fields(ExplorationConfig):
            value = data.get(field.name)
            # bool is an int subclass but never a valid setting here
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            default = getattr(config, field.name)
            setattr(config, field.name, type(default)(value))

    return config


def default_config_data() -> dict[str, float | int]:
    """Return the default settings as written by 'hwexplore init'."""
    config = ExplorationConfig()
    return {field.name: getattr(config, field.name) for field in fields(config)}


def get_runs_dir(project_dir: Path | None = None) -> Path:
    """Get the path to the persisted runs directory."""
    if project_dir is None:
        project_dir = find_project_dir()

    if project_dir is None:
        msg = "No .hwexplore directory found. Run 'hwexplore init' first."
        raise RuntimeError(
            msg
        )

    return project_dir / "runs"


def require_project_dir() -> Path:
    """Get the project directory or raise an error if not found."""
    project_dir = find_project_dir()
    if project_dir is None:
        msg = "No .hwexplore directory found. Run 'hwexplore init' first."
        raise RuntimeError(
            msg
        )
    return project_dir
