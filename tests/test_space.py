# Copyright (c) Syntropy Systems
"""Tests for exploration plans and configuration space enumeration."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from hwexplore.models.hardware import HardwareConfiguration
from hwexplore.space import ExplorationPlan, enumerate_configurations, render_command


class TestEnumerateConfigurations:
    """Test the configuration space."""

    def test_full_product(self) -> None:
        """Every class with every node count from 1."""
        configurations = list(enumerate_configurations(["a", "b"], 3))

        assert len(configurations) == 6
        assert configurations[0] == HardwareConfiguration(instance_class="a", node_count=1)
        assert configurations[-1] == HardwareConfiguration(instance_class="b", node_count=3)
        assert len(set(configurations)) == 6

    def test_is_lazy(self) -> None:
        """Configurations are generated on demand."""
        generator = enumerate_configurations(["a"], 1000)

        assert next(generator) == HardwareConfiguration(instance_class="a", node_count=1)

    def test_invalid_bounds(self) -> None:
        """A zero node count or no classes is an error."""
        with pytest.raises(ValueError, match="max_node_count"):
            _ = list(enumerate_configurations(["a"], 0))
        with pytest.raises(ValueError, match="instance class"):
            _ = list(enumerate_configurations([], 2))


class TestExplorationPlan:
    """Test loading exploration plans."""

    def test_from_yaml(self, temp_dir: Path) -> None:
        """All plan fields load from YAML."""
        plan_path = temp_dir / "plan.yaml"
        _ = plan_path.write_text(
            yaml.dump(
                {
                    "name": "jira-dc",
                    "instance_classes": ["c5.xlarge", "c5.2xlarge"],
                    "max_node_count": 5,
                    "repeats": 2,
                    "timeout_seconds": 3600,
                    "command": "./bench.sh {{node_count}}",
                    "actions": ["View Issue"],
                }
            )
        )

        plan = ExplorationPlan.from_yaml(plan_path)

        assert plan.name == "jira-dc"
        assert plan.instance_classes == ["c5.xlarge", "c5.2xlarge"]
        assert plan.max_node_count == 5
        assert plan.repeats == 2
        assert plan.timeout_seconds == 3600.0
        assert plan.actions == ["View Issue"]
        assert len(plan.configurations()) == 10

    def test_defaults(self, temp_dir: Path) -> None:
        """Repeats default to one and actions to the built-in whitelist."""
        plan_path = temp_dir / "plan.yaml"
        _ = plan_path.write_text(
            yaml.dump({"instance_classes": ["m5"], "max_node_count": 1, "command": "true"})
        )

        plan = ExplorationPlan.from_yaml(plan_path)

        assert plan.repeats == 1
        assert plan.actions is None
        assert plan.timeout_seconds is None

    def test_missing_field(self, temp_dir: Path) -> None:
        """Command is required."""
        plan_path = temp_dir / "plan.yaml"
        _ = plan_path.write_text(yaml.dump({"instance_classes": ["m5"], "max_node_count": 2}))

        with pytest.raises(ValueError, match="'command'"):
            _ = ExplorationPlan.from_yaml(plan_path)

    def test_duplicate_classes_rejected(self) -> None:
        """Each class is explored once."""
        with pytest.raises(ValueError, match="more than once"):
            _ = ExplorationPlan(instance_classes=["m5", "m5"], max_node_count=2, command="true")

    def test_zero_repeats_rejected(self) -> None:
        """At least one repeat is needed to score anything."""
        with pytest.raises(ValueError, match="repeats"):
            _ = ExplorationPlan(instance_classes=["m5"], max_node_count=2, command="true", repeats=0)


class TestRenderCommand:
    """Test command template rendering."""

    def test_variables(self, temp_dir: Path) -> None:
        """Template variables are filled in per argument."""
        configuration = HardwareConfiguration(instance_class="c5.xlarge", node_count=3)

        argv = render_command(
            "./bench.sh --type {{instance_class}} --nodes={{node_count}} "
            "--out '{{run_dir}}' --run {{run_number}}",
            configuration,
            temp_dir / "runs" / "7",
            7,
        )

        assert argv == [
            "./bench.sh",
            "--type",
            "c5.xlarge",
            "--nodes=3",
            "--out",
            str(temp_dir / "runs" / "7"),
            "--run",
            "7",
        ]

    def test_values_are_not_split(self, temp_dir: Path) -> None:
        """A run directory with spaces stays one argument."""
        configuration = HardwareConfiguration(instance_class="m5", node_count=1)
        run_dir = temp_dir / "with space" / "1"

        argv = render_command("bench {{run_dir}}", configuration, run_dir, 1)

        assert argv == ["bench", str(run_dir)]
