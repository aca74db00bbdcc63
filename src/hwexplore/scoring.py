# Copyright (c) Syntropy Systems
"""Reduce a raw benchmark repeat to Apdex, throughput and error rate."""
from __future__ import annotations

from typing import TYPE_CHECKING

from hwexplore.errors import RunFailed
from hwexplore.models.hardware import RunScore

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from hwexplore.models.hardware import HardwareConfiguration
    from hwexplore.models.run import ActionMetric, RawRunResult

DEFAULT_ACTION_LABELS: tuple[str, ...] = (
    "View Backlog",
    "View Board",
    "View Issue",
    "View Dashboard",
    "Search with JQL",
    "Add Comment",
    "Create Issue",
    "Edit Issue",
    "Project Summary",
    "Browse Projects",
    "Browse Boards",
)

THROUGHPUT_UNIT_SECONDS = 1.0


class Apdex:
    """Application performance index over action latencies.

    Successful actions within the satisfied threshold count fully, those
    within the tolerating threshold count half, everything else (including
    errors) counts zero.
    """

    satisfied_ms: float
    tolerating_ms: float

    def __init__(self, satisfied_ms: float = 1000.0, tolerating_ms: float = 4000.0) -> None:
        if tolerating_ms < satisfied_ms:
            msg = "Tolerating threshold must not be below the satisfied threshold"
            raise ValueError(msg)
        self.satisfied_ms = satisfied_ms
        self.tolerating_ms = tolerating_ms

    def score(self, metrics: Sequence[ActionMetric]) -> float:
        """Return the Apdex of the given actions, 0.0 when there are none."""
        if not metrics:
            return 0.0
        total = 0.0
        for metric in metrics:
            if metric.failed:
                continue
            if metric.duration_ms <= self.satisfied_ms:
                total += 1.0
            elif metric.duration_ms <= self.tolerating_ms:
                total += 0.5
        return total / len(metrics)


def error_rate(metrics: Sequence[ActionMetric]) -> float:
    """Fraction of failed actions, 0.0 when there are none."""
    if not metrics:
        return 0.0
    failed = sum(1 for metric in metrics if metric.failed)
    return failed / len(metrics)


def access_log_throughput(
    http_requests: int | None,
    duration_seconds: float | None,
    unit_seconds: float = THROUGHPUT_UNIT_SECONDS,
) -> float:
    """HTTP requests per time unit, 0.0 when the counts are unknown."""
    if http_requests is None or not duration_seconds:
        return 0.0
    return http_requests / duration_seconds * unit_seconds


class ResultScorer:
    """Scores raw repeats against a fixed whitelist of benchmarked actions."""

    labels: frozenset[str]
    apdex: Apdex

    def __init__(
        self,
        labels: Iterable[str] = DEFAULT_ACTION_LABELS,
        apdex: Apdex | None = None,
    ) -> None:
        self.labels = frozenset(labels)
        self.apdex = apdex or Apdex()

    def filter_actions(self, raw: RawRunResult) -> list[ActionMetric]:
        """Keep only the whitelisted actions."""
        return [metric for metric in raw.actions if metric.label in self.labels]

    def score(self, configuration: HardwareConfiguration, raw: RawRunResult) -> RunScore:
        """Score one repeat.

        Raises:
            RunFailed: The repeat carries an execution failure marker.

        """
        failure = raw.failure
        if failure is not None:
            msg = f"{raw.cohort} failed: {failure}"
            raise RunFailed(msg)

        metrics = self.filter_actions(raw)
        return RunScore(
            configuration=configuration,
            apdex=self.apdex.score(metrics),
            throughput=access_log_throughput(
                raw.status.http_requests,
                raw.status.duration_seconds,
            ),
            error_rate=error_rate(metrics),
            raw_result_handle=raw.run_dir,
        )
