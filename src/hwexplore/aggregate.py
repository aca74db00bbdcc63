# Copyright (c) Syntropy Systems
"""Combine repeats into one result and reject untrustworthy ones."""
from __future__ import annotations

import logging
import math
from statistics import fmean
from typing import TYPE_CHECKING, Protocol

from hwexplore.errors import QualityGateViolation
from hwexplore.models.hardware import AggregatedResult

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from hwexplore.models.hardware import HardwareConfiguration, RunScore

logger = logging.getLogger(__name__)

ERRORS_EXPORT_LABEL = "errors"
COMPARISON_EXPORT_LABEL = "comparison"

# Absolute slack for comparing derived metrics against configured limits
TOLERANCE = 1e-9


class _Exporter(Protocol):
    def export_scores(
        self,
        label: str,
        scores: Sequence[RunScore],
        configuration: HardwareConfiguration,
    ) -> Path | None:
        ...


def exceeds(value: float, limit: float) -> bool:
    """Return whether value is above limit by more than float noise.

    Means and differences of scores carry rounding error, so 0.8 - 0.7
    must not count as above a 0.1 limit.
    """
    return value > limit and not math.isclose(value, limit, abs_tol=TOLERANCE)


def spread(values: Sequence[float]) -> float:
    """Max minus min, 0.0 for a single value."""
    return max(values) - min(values)


def combine(scores: Sequence[RunScore], configuration: HardwareConfiguration) -> AggregatedResult:
    """Build mean and spread statistics over repeats without gating them."""
    if not scores:
        msg = f"No repeats to aggregate for {configuration.label}"
        raise ValueError(msg)

    apdexes = [score.apdex for score in scores]
    throughputs = [score.throughput for score in scores]
    error_rates = [score.error_rate for score in scores]
    return AggregatedResult(
        configuration=configuration,
        apdex=fmean(apdexes),
        apdex_spread=spread(apdexes),
        throughput=fmean(throughputs),
        throughput_spread=spread(throughputs),
        error_rate=fmean(error_rates),
        error_rate_spread=spread(error_rates),
        repeats=tuple(scores),
    )


class QualityGate:
    """Aggregates repeats and enforces error rate and spread ceilings."""

    error_rate_ceiling: float
    spread_ceiling: float
    exporter: _Exporter | None

    def __init__(
        self,
        error_rate_ceiling: float = 0.05,
        spread_ceiling: float = 0.10,
        exporter: _Exporter | None = None,
    ) -> None:
        self.error_rate_ceiling = error_rate_ceiling
        self.spread_ceiling = spread_ceiling
        self.exporter = exporter

    def aggregate(
        self,
        scores: Sequence[RunScore],
        configuration: HardwareConfiguration,
    ) -> AggregatedResult:
        """Aggregate repeats of one configuration.

        Raises:
            ValueError: No repeats were given.
            QualityGateViolation: The error rate or the Apdex spread exceeds
                its ceiling. Raw data is exported before raising.

        """
        result = combine(scores, configuration)

        if exceeds(result.error_rate, self.error_rate_ceiling):
            self._export(ERRORS_EXPORT_LABEL, scores, configuration)
            msg = (
                f"Error rate for {configuration.label} is too high: "
                f"{result.error_rate:.4f} > {self.error_rate_ceiling}"
            )
            raise QualityGateViolation(msg, result)

        if exceeds(result.apdex_spread, self.spread_ceiling):
            self._export(COMPARISON_EXPORT_LABEL, scores, configuration)
            apdexes = ", ".join(f"{score.apdex:.4f}" for score in scores)
            msg = (
                f"Apdex spread for {configuration.label} is too big: "
                f"{result.apdex_spread:.4f} > {self.spread_ceiling} (apdex: {apdexes})"
            )
            raise QualityGateViolation(msg, result)

        return result

    def _export(
        self,
        label: str,
        scores: Sequence[RunScore],
        configuration: HardwareConfiguration,
    ) -> None:
        if self.exporter is None:
            return
        try:
            _ = self.exporter.export_scores(label, scores, configuration)
        except Exception:
            logger.exception("Diagnostic export '%s' failed for %s", label, configuration.label)
