# Copyright (c) Syntropy Systems
"""Persisted benchmark runs and their reuse across explorations.

Layout under the runs root::

    <instance class>/nodes-<n>/runs/<k>/status.json
    <instance class>/nodes-<n>/runs/<k>/actions.jsonl
    <instance class>/nodes-<n>/diagnostics/<label>/

Run numbers ``k`` start at 1 and are never reused.
"""
from __future__ import annotations

import logging
import re
from contextlib import suppress
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import ValidationError

from hwexplore.errors import RunFailed
from hwexplore.models.run import ActionMetric, RawRunResult, RunStatus

if TYPE_CHECKING:
    from pathlib import Path

    from hwexplore.models.hardware import HardwareConfiguration, RunScore
    from hwexplore.scoring import ResultScorer

logger = logging.getLogger(__name__)

STATUS_FILE = "status.json"
ACTIONS_FILE = "actions.jsonl"
ACCESS_LOG_GLOB = "access*.log"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def utcnow() -> str:
    """Get current UTC time as ISO format string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def encode_instance_class(instance_class: str) -> str:
    """Encode an instance class as a single safe path component."""
    return _UNSAFE_CHARS.sub("_", instance_class)


def is_reusable(status: RunStatus) -> bool:
    """Return whether a persisted repeat may stand in for a fresh one.

    Only runs that completed without a failure marker qualify; failed and
    incomplete runs are left on disk but never reused.
    """
    return status.status == "completed" and not status.failure


def read_actions(actions_path: Path) -> list[ActionMetric]:
    """Read action metrics from a JSONL file, tolerating partial final lines."""
    actions: list[ActionMetric] = []

    if not actions_path.exists():
        return actions

    with actions_path.open() as f:
        for raw_line in f:
            line = raw_line.strip()
            if line:
                with suppress(ValidationError):
                    actions.append(ActionMetric.model_validate_json(line))

    return actions


def count_access_log_requests(run_dir: Path) -> int | None:
    """Count request lines across the access logs of a run, if there are any."""
    logs = sorted(run_dir.rglob(ACCESS_LOG_GLOB))
    if not logs:
        return None
    total = 0
    for log_path in logs:
        with log_path.open(errors="replace") as f:
            total += sum(1 for line in f if line.strip())
    return total


def read_status(run_dir: Path) -> RunStatus | None:
    """Read the completion record of a run, None if it was never written."""
    status_path = run_dir / STATUS_FILE
    if not status_path.exists():
        return None

    return RunStatus.model_validate_json(status_path.read_text())


def read_raw(run_dir: Path) -> RawRunResult | None:
    """Load a persisted repeat.

    Raises:
        ValidationError: status.json is malformed.

    """
    status = read_status(run_dir)
    if status is None:
        return None
    if status.http_requests is None:
        requests = count_access_log_requests(run_dir)
        if requests is not None:
            status = status.model_copy(update={"http_requests": requests})
    return RawRunResult(
        status=status,
        actions=read_actions(run_dir / ACTIONS_FILE),
        run_dir=run_dir,
    )


def write_raw(run_dir: Path, raw: RawRunResult) -> None:
    """Persist a repeat so later explorations can reuse it."""
    run_dir.mkdir(parents=True, exist_ok=True)

    with (run_dir / ACTIONS_FILE).open("w") as f:
        for action in raw.actions:
            _ = f.write(action.model_dump_json(exclude_none=True) + "\n")

    # status.json goes last: its presence marks the repeat as recorded
    status = raw.status
    if status.finished_at is None:
        status = status.model_copy(update={"finished_at": utcnow()})
    _ = (run_dir / STATUS_FILE).write_text(status.model_dump_json(indent=2))


class RunCache:
    """Reads and writes the persisted repeats of each configuration."""

    root: Path
    scorer: ResultScorer

    def __init__(self, root: Path, scorer: ResultScorer) -> None:
        """Initialize the cache.

        Args:
            root: Runs root directory
            scorer: Scorer used to rebuild scores from persisted repeats

        """
        self.root = root
        self.scorer = scorer

    def configuration_dir(self, configuration: HardwareConfiguration) -> Path:
        """Directory holding everything recorded for a configuration."""
        return (
            self.root
            / encode_instance_class(configuration.instance_class)
            / f"nodes-{configuration.node_count}"
        )

    def runs_dir(self, configuration: HardwareConfiguration) -> Path:
        """Directory holding the numbered repeats of a configuration."""
        return self.configuration_dir(configuration) / "runs"

    def diagnostics_dir(self, configuration: HardwareConfiguration, label: str) -> Path:
        """Directory for a diagnostic export of a configuration."""
        return self.configuration_dir(configuration) / "diagnostics" / label

    def run_dir(self, configuration: HardwareConfiguration, run_number: int) -> Path:
        """Directory of one numbered repeat."""
        return self.runs_dir(configuration) / str(run_number)

    def list_prior_runs(self, configuration: HardwareConfiguration) -> list[Path]:
        """List numbered repeat directories, lowest number first."""
        runs_dir = self.runs_dir(configuration)
        if not runs_dir.is_dir():
            return []
        runs = [
            path for path in runs_dir.iterdir()
            if path.is_dir() and path.name.isdigit()
        ]
        return sorted(runs, key=lambda path: int(path.name))

    def next_run_number(self, configuration: HardwareConfiguration) -> int:
        """One past the highest run number on disk, or 1."""
        numbers = [int(path.name) for path in self.list_prior_runs(configuration)]
        return max(numbers) + 1 if numbers else 1

    def reuse(
        self,
        configuration: HardwareConfiguration,
        run_dir: Path,
    ) -> RunScore | None:
        """Rebuild the score of a persisted repeat, None if it is not reusable."""
        try:
            raw = read_raw(run_dir)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring malformed run %s: %s", run_dir, exc)
            return None

        if raw is None:
            logger.debug("Ignoring run %s without a status record", run_dir)
            return None
        if not is_reusable(raw.status):
            logger.debug(
                "Not reusing run %s with status '%s'", run_dir, raw.status.status
            )
            return None

        try:
            return self.scorer.score(configuration, raw)
        except RunFailed as exc:
            logger.warning("Ignoring unscorable run %s: %s", run_dir, exc)
            return None

    def reuse_all(self, configuration: HardwareConfiguration) -> list[RunScore]:
        """Rebuild scores of every reusable persisted repeat of a configuration."""
        scores: list[RunScore] = []
        for run_dir in self.list_prior_runs(configuration):
            score = self.reuse(configuration, run_dir)
            if score is not None:
                scores.append(score)
        if scores:
            logger.debug("Reusing %d result(s) for %s", len(scores), configuration.label)
        return scores
