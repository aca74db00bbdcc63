"""
hwexplore - Hardware exploration for benchmark campaigns.

Find which instance class and node count pairs are worth benchmarking,
reuse what already ran, and gate repeated measurements.
"""

from hwexplore.models.hardware import (
    AggregatedResult,
    ExplorationDecision,
    ExplorationResult,
    HardwareConfiguration,
    RunScore,
)
from hwexplore.scheduler import ExplorationReport, HardwareExploration

__version__ = "0.1.0"
__all__ = [
    "AggregatedResult",
    "ExplorationDecision",
    "ExplorationReport",
    "ExplorationResult",
    "HardwareConfiguration",
    "HardwareExploration",
    "RunScore",
    "__version__",
]
