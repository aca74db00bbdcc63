# Copyright (c) Syntropy Systems
"""Exceptions raised by hardware exploration."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hwexplore.models.hardware import AggregatedResult, ExplorationResult


class ExplorationError(Exception):
    """Base class for exploration errors."""


class RunFailed(ExplorationError):
    """A benchmark repeat carries an execution failure marker."""


class QualityGateViolation(ExplorationError):
    """Aggregated repeats did not pass a quality gate.

    The offending aggregate is kept on ``result`` so it can be inspected
    after the failure surfaces.
    """

    result: AggregatedResult

    def __init__(self, message: str, result: AggregatedResult) -> None:
        super().__init__(message)
        self.result = result


class ExplorationTimeout(ExplorationError):
    """The whole exploration exceeded its wall-clock ceiling."""

    results: list[ExplorationResult]

    def __init__(self, message: str, results: list[ExplorationResult]) -> None:
        super().__init__(message)
        self.results = results


class ExplorationCancelled(ExplorationError):
    """Work was abandoned because the exploration is shutting down."""
