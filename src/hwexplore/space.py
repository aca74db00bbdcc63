# Copyright (c) Syntropy Systems
"""Exploration plan and configuration space enumeration."""
from __future__ import annotations

import itertools
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, cast

import yaml

from hwexplore.models.hardware import HardwareConfiguration

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from pathlib import Path


@dataclass
class ExplorationPlan:
    """What to explore and how to run one benchmark repeat."""

    instance_classes: list[str]
    max_node_count: int
    command: str
    repeats: int = 1
    name: str | None = None
    timeout_seconds: float | None = None  # Per repeat
    actions: list[str] | None = None  # Overrides the default action whitelist

    def __post_init__(self) -> None:
        if not self.instance_classes:
            msg = "Plan must list at least one instance class"
            raise ValueError(msg)
        if len(set(self.instance_classes)) != len(self.instance_classes):
            msg = "Plan lists an instance class more than once"
            raise ValueError(msg)
        if self.max_node_count < 1:
            msg = f"max_node_count must be at least 1, got {self.max_node_count}"
            raise ValueError(msg)
        if self.repeats < 1:
            msg = f"repeats must be at least 1, got {self.repeats}"
            raise ValueError(msg)

    @classmethod
    def from_yaml(cls, path: Path) -> ExplorationPlan:
        """Load an exploration plan from a YAML file."""
        with path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        for required in ("instance_classes", "max_node_count", "command"):
            if required not in data:
                msg = f"Exploration plan must have '{required}' field"
                raise ValueError(msg)

        instance_classes = data["instance_classes"]
        if not isinstance(instance_classes, list):
            msg = "'instance_classes' must be a list"
            raise ValueError(msg)

        actions = data.get("actions")
        if actions is not None and not isinstance(actions, list):
            msg = "'actions' must be a list of action labels"
            raise ValueError(msg)

        timeout = data.get("timeout_seconds")

        return cls(
            instance_classes=[str(item) for item in instance_classes],
            max_node_count=int(cast("int", data["max_node_count"])),
            command=str(data["command"]),
            repeats=int(cast("int", data.get("repeats", 1))),
            name=cast("Optional[str]", data.get("name")),
            timeout_seconds=float(cast("float", timeout)) if timeout is not None else None,
            actions=[str(item) for item in actions] if actions is not None else None,
        )

    def configurations(self) -> list[HardwareConfiguration]:
        """Return the plan's configuration space."""
        return list(
            enumerate_configurations(self.instance_classes, self.max_node_count)
        )


def enumerate_configurations(
    instance_classes: Sequence[str],
    max_node_count: int,
) -> Iterator[HardwareConfiguration]:
    """Generate every (instance class, node count) pair up to max_node_count.

    Pairs come out class-major, node counts ascending. The order is only a
    display hint; the scheduler decides execution order.
    """
    if max_node_count < 1:
        msg = f"max_node_count must be at least 1, got {max_node_count}"
        raise ValueError(msg)
    if not instance_classes:
        msg = "At least one instance class is required"
        raise ValueError(msg)

    for instance_class, node_count in itertools.product(
        instance_classes, range(1, max_node_count + 1)
    ):
        yield HardwareConfiguration(
            instance_class=instance_class,
            node_count=node_count,
        )


def render_command(
    template: str,
    configuration: HardwareConfiguration,
    run_dir: Path,
    run_number: int,
) -> list[str]:
    """Split a command template into argv, filling in template variables.

    Template variables:
        {{instance_class}}, {{node_count}}, {{run_dir}}, {{run_number}}
    """
    substitutions = {
        "{{instance_class}}": configuration.instance_class,
        "{{node_count}}": str(configuration.node_count),
        "{{run_dir}}": str(run_dir),
        "{{run_number}}": str(run_number),
    }
    argv: list[str] = []
    for arg in shlex.split(template):
        for key, value in substitutions.items():
            arg = arg.replace(key, value)  # noqa: PLW2901
        argv.append(arg)
    return argv
