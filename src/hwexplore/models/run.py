# Copyright (c) Syntropy Systems
"""Pydantic models for persisted benchmark runs."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import Literal

from pydantic import Field

from .base import ExploreBaseModel

RunState = Literal["completed", "failed", "incomplete"]
ActionOutcome = Literal["OK", "ERROR"]


class ActionMetric(ExploreBaseModel):
    """One virtual user action, stored as a line of actions.jsonl."""

    label: str
    result: ActionOutcome
    duration_ms: float = Field(ge=0.0)
    start: str | None = None

    @property
    def failed(self) -> bool:
        """Return whether the action ended with an error."""
        return self.result == "ERROR"


class RunStatus(ExploreBaseModel):
    """Completion record stored in status.json."""

    cohort: str
    status: RunState = "incomplete"
    failure: str | None = None
    http_requests: int | None = Field(default=None, ge=0)
    duration_seconds: float | None = Field(default=None, ge=0.0)
    started_at: str | None = None
    finished_at: str | None = None


class RawRunResult(ExploreBaseModel):
    """Raw outcome of one benchmark repeat."""

    status: RunStatus
    actions: list[ActionMetric] = Field(default_factory=list)
    run_dir: Path | None = None

    @property
    def cohort(self) -> str:
        """Cohort name of the repeat."""
        return self.status.cohort

    @property
    def failure(self) -> str | None:
        """Failure marker, if the repeat did not complete cleanly."""
        if self.status.failure:
            return self.status.failure
        if self.status.status != "completed":
            return f"run ended with status '{self.status.status}'"
        return None
