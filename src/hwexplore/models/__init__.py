# Copyright (c) Syntropy Systems
"""Pydantic models for hwexplore."""

from .hardware import (
    AggregatedResult,
    ExplorationDecision,
    ExplorationResult,
    HardwareConfiguration,
    RunScore,
)
from .run import ActionMetric, RawRunResult, RunStatus

__all__ = [
    "ActionMetric",
    "AggregatedResult",
    "ExplorationDecision",
    "ExplorationResult",
    "HardwareConfiguration",
    "RawRunResult",
    "RunScore",
    "RunStatus",
]
