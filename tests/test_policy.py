# Copyright (c) Syntropy Systems
"""Tests for the exploration decision policy."""

from __future__ import annotations

from hwexplore.models.hardware import AggregatedResult, HardwareConfiguration, RunScore
from hwexplore.policy import (
    DIMINISHING_RETURNS_REASON,
    HIGH_AVAILABILITY_REASON,
    POSITIVE_IMPACT_REASON,
    DecisionPolicy,
)


def aggregated(instance_class: str, node_count: int, apdex: float) -> AggregatedResult:
    configuration = HardwareConfiguration(instance_class=instance_class, node_count=node_count)
    score = RunScore(configuration=configuration, apdex=apdex, throughput=1.0, error_rate=0.0)
    return AggregatedResult(
        configuration=configuration,
        apdex=apdex,
        apdex_spread=0.0,
        throughput=1.0,
        throughput_spread=0.0,
        error_rate=0.0,
        error_rate_spread=0.0,
        repeats=(score,),
    )


def trend(instance_class: str, apdexes: list[float]) -> list[AggregatedResult]:
    return [
        aggregated(instance_class, node_count, apdex)
        for node_count, apdex in enumerate(apdexes, start=1)
    ]


class TestHighAvailabilityFloor:
    """Node counts below the floor are always explored."""

    def test_below_floor_ignores_results(self) -> None:
        """Even a collapsing trend does not stop small clusters."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.9, 0.5])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=3), priors)

        assert decision.worth_exploring
        assert decision.reason == HIGH_AVAILABILITY_REASON

    def test_every_node_count_below_floor(self) -> None:
        """Node counts 1-3 are explored with no results at all."""
        policy = DecisionPolicy()
        for node_count in (1, 2, 3):
            configuration = HardwareConfiguration(instance_class="m5", node_count=node_count)
            assert policy.decide(configuration, []).worth_exploring

    def test_custom_floor(self) -> None:
        """The floor is configurable."""
        policy = DecisionPolicy(high_availability_floor=2)
        priors = trend("m5", [0.9, 0.9])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=3), priors)

        assert not decision.worth_exploring


class TestMarginalImpact:
    """At or above the floor, every added node must raise Apdex."""

    def test_strictly_improving_trend_is_explored(self) -> None:
        """Each increment above the threshold keeps exploring."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.5, 0.6, 0.7, 0.8])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=5), priors)

        assert decision.worth_exploring
        assert decision.reason == POSITIVE_IMPACT_REASON

    def test_flat_step_stops_exploration(self) -> None:
        """A single flat step anywhere in the trend is diminishing returns."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.5, 0.6, 0.6])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert not decision.worth_exploring
        assert decision.reason == DIMINISHING_RETURNS_REASON

    def test_increment_equal_to_threshold_is_not_enough(self) -> None:
        """The comparison against the threshold is strict."""
        policy = DecisionPolicy(improvement_threshold=0.25)
        priors = trend("m5", [0.25, 0.5, 0.75])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert not decision.worth_exploring

    def test_increment_at_threshold_with_rounding_noise(self) -> None:
        """Apdex steps of 0.01 stay at the default threshold despite float error."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.79, 0.80, 0.81])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert not decision.worth_exploring
        assert decision.reason == DIMINISHING_RETURNS_REASON

    def test_drop_stops_exploration(self) -> None:
        """A falling Apdex is diminishing returns."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.8, 0.9, 0.85])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert not decision.worth_exploring

    def test_fewer_than_two_priors_is_explored(self) -> None:
        """No increment to compare means nothing contradicts exploring."""
        policy = DecisionPolicy()
        configuration = HardwareConfiguration(instance_class="m5", node_count=4)

        assert policy.decide(configuration, []).worth_exploring
        assert policy.decide(configuration, [aggregated("m5", 3, 0.2)]).worth_exploring

    def test_unsorted_priors(self) -> None:
        """Priors are ordered by node count before comparing."""
        policy = DecisionPolicy()
        priors = list(reversed(trend("m5", [0.5, 0.6, 0.7])))

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert decision.worth_exploring

    def test_other_classes_are_ignored(self) -> None:
        """Results of another instance class never influence the decision."""
        policy = DecisionPolicy()
        priors = trend("m5", [0.5, 0.6, 0.7]) + trend("c5", [0.9, 0.9, 0.9])

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert decision.worth_exploring

    def test_larger_node_counts_are_ignored(self) -> None:
        """Only smaller node counts form the trend."""
        policy = DecisionPolicy()
        priors = [*trend("m5", [0.5, 0.6, 0.7]), aggregated("m5", 6, 0.1)]

        decision = policy.decide(HardwareConfiguration(instance_class="m5", node_count=4), priors)

        assert decision.worth_exploring

    def test_decision_carries_configuration(self) -> None:
        """The decision names the configuration it was made for."""
        configuration = HardwareConfiguration(instance_class="m5", node_count=7)

        decision = DecisionPolicy().decide(configuration, [])

        assert decision.configuration == configuration
