# Copyright (c) Syntropy Systems
"""Pydantic models for hardware configurations and exploration outcomes."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import Literal

from pydantic import Field, model_validator

from .base import FrozenModel

ExplorationStatus = Literal["explored", "skipped", "failed"]


class HardwareConfiguration(FrozenModel):
    """An instance class paired with a cluster node count."""

    instance_class: str = Field(min_length=1)
    node_count: int = Field(ge=1)

    @property
    def label(self) -> str:
        """Short human-readable label for logs and tables."""
        return f"{self.instance_class} x{self.node_count}"


class ExplorationDecision(FrozenModel):
    """Whether a configuration is worth benchmarking, and why."""

    configuration: HardwareConfiguration
    worth_exploring: bool
    reason: str


class RunScore(FrozenModel):
    """Scalar quality vector of one benchmark repeat."""

    configuration: HardwareConfiguration
    apdex: float
    throughput: float  # requests per second
    error_rate: float = Field(ge=0.0, le=1.0)
    raw_result_handle: Path | None = None


class AggregatedResult(FrozenModel):
    """Mean and spread statistics over the repeats of one configuration."""

    configuration: HardwareConfiguration
    apdex: float
    apdex_spread: float
    throughput: float
    throughput_spread: float
    error_rate: float
    error_rate_spread: float
    repeats: tuple[RunScore, ...] = Field(min_length=1)


class ExplorationResult(FrozenModel):
    """Outcome for one configuration: skipped, explored, or failed."""

    decision: ExplorationDecision
    aggregated: AggregatedResult | None = None
    failure: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> ExplorationResult:
        if self.aggregated is not None and not self.decision.worth_exploring:
            msg = "Skipped configurations cannot carry an aggregated result"
            raise ValueError(msg)
        if self.aggregated is not None and self.failure is not None:
            msg = "Failed configurations cannot carry an aggregated result"
            raise ValueError(msg)
        return self

    @property
    def configuration(self) -> HardwareConfiguration:
        """Configuration this result belongs to."""
        return self.decision.configuration

    @property
    def status(self) -> ExplorationStatus:
        """Resolved status of the configuration."""
        if not self.decision.worth_exploring:
            return "skipped"
        if self.failure is not None or self.aggregated is None:
            return "failed"
        return "explored"
