# Copyright (c) Syntropy Systems
"""Decide which configurations are worth benchmarking."""
from __future__ import annotations

from typing import TYPE_CHECKING

from hwexplore.aggregate import exceeds
from hwexplore.models.hardware import ExplorationDecision

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hwexplore.models.hardware import AggregatedResult, HardwareConfiguration

HIGH_AVAILABILITY_REASON = "high availability floor"
POSITIVE_IMPACT_REASON = "positive marginal impact from added nodes"
DIMINISHING_RETURNS_REASON = "diminishing returns from added nodes"


class DecisionPolicy:
    """Stopping rule over the Apdex trend of one instance class.

    Node counts below the high availability floor are always explored.
    Above it, a configuration is explored only while every added node so far
    raised Apdex by more than the improvement threshold.
    """

    high_availability_floor: int
    improvement_threshold: float

    def __init__(
        self,
        high_availability_floor: int = 4,
        improvement_threshold: float = 0.01,
    ) -> None:
        self.high_availability_floor = high_availability_floor
        self.improvement_threshold = improvement_threshold

    def decide(
        self,
        configuration: HardwareConfiguration,
        prior_results: Iterable[AggregatedResult],
    ) -> ExplorationDecision:
        """Decide whether to explore a configuration.

        Args:
            configuration: Configuration under consideration
            prior_results: Aggregated results of smaller node counts of the
                same instance class

        """
        if configuration.node_count < self.high_availability_floor:
            return ExplorationDecision(
                configuration=configuration,
                worth_exploring=True,
                reason=HIGH_AVAILABILITY_REASON,
            )

        trend = sorted(
            (
                result for result in prior_results
                if result.configuration.instance_class == configuration.instance_class
                and result.configuration.node_count < configuration.node_count
            ),
            key=lambda result: result.configuration.node_count,
        )
        increments = [
            later.apdex - earlier.apdex
            for earlier, later in zip(trend, trend[1:])
        ]
        # Fewer than two prior results leave nothing to compare
        if all(exceeds(increment, self.improvement_threshold) for increment in increments):
            return ExplorationDecision(
                configuration=configuration,
                worth_exploring=True,
                reason=POSITIVE_IMPACT_REASON,
            )
        return ExplorationDecision(
            configuration=configuration,
            worth_exploring=False,
            reason=DIMINISHING_RETURNS_REASON,
        )
