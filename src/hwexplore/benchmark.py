# Copyright (c) Syntropy Systems
"""Benchmark execution: run one repeat against one configuration."""
from __future__ import annotations

import logging
from threading import Event, Lock
from typing import TYPE_CHECKING, Protocol

from hwexplore.models.run import RawRunResult, RunStatus
from hwexplore.runner import ProcessRunner
from hwexplore.space import render_command
from hwexplore.storage import read_raw, utcnow

if TYPE_CHECKING:
    from pathlib import Path

    from hwexplore.models.hardware import HardwareConfiguration

logger = logging.getLogger(__name__)

CANCELLED_FAILURE = "cancelled before completion"


def cohort_name(configuration: HardwareConfiguration, workspace: Path) -> str:
    """Name a repeat after its configuration and run directory."""
    return (
        f"{configuration.instance_class}, {configuration.node_count} nodes, "
        f"run {workspace.name}"
    )


class Benchmark(Protocol):
    """Runs one benchmark repeat and returns its raw per-action metrics."""

    def execute(self, configuration: HardwareConfiguration, workspace: Path) -> RawRunResult:
        """Run a repeat with ``workspace`` as its private directory."""
        ...

    def cancel(self) -> None:
        """Stop repeats in flight and refuse new ones."""
        ...


class CommandBenchmark:
    """Runs a benchmark command template as a subprocess.

    The command is expected to write status.json and actions.jsonl into its
    run directory (passed as {{run_dir}} and HWEXPLORE_RUN_DIR). A non-zero
    exit code, a timeout or a missing status record yields a failed result.
    """

    command: str
    timeout_seconds: float | None
    kill_grace_period: float
    _active: set[ProcessRunner]
    _cancelled: Event
    _lock: Lock

    def __init__(
        self,
        command: str,
        timeout_seconds: float | None = None,
        kill_grace_period: float = 10.0,
    ) -> None:
        self.command = command
        self.timeout_seconds = timeout_seconds
        self.kill_grace_period = kill_grace_period
        self._active = set()
        self._cancelled = Event()
        self._lock = Lock()

    @property
    def cancelled(self) -> bool:
        """Return whether cancel() was called."""
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop every running benchmark process; later repeats fail at once."""
        with self._lock:
            self._cancelled.set()
            runners = list(self._active)
        for runner in runners:
            logger.warning("Stopping benchmark pid %s in %s", runner.pid, runner.run_dir)
            _ = runner.stop(grace_period=self.kill_grace_period)

    def execute(self, configuration: HardwareConfiguration, workspace: Path) -> RawRunResult:
        """Run the command for one repeat and collect what it wrote."""
        run_number = int(workspace.name) if workspace.name.isdigit() else 0
        cohort = cohort_name(configuration, workspace)
        argv = render_command(self.command, configuration, workspace, run_number)
        env = {
            "HWEXPLORE_INSTANCE_CLASS": configuration.instance_class,
            "HWEXPLORE_NODE_COUNT": str(configuration.node_count),
            "HWEXPLORE_RUN_DIR": str(workspace),
            "HWEXPLORE_RUN_NUMBER": str(run_number),
            "HWEXPLORE_COHORT": cohort,
        }

        started_at = utcnow()
        runner = ProcessRunner(argv, workspace, env=env)
        # Registration and start happen together so cancel() never misses a process
        with self._lock:
            if self._cancelled.is_set():
                return _failed(cohort, workspace, CANCELLED_FAILURE, started_at, 0.0)
            logger.info("Starting %s: %s", cohort, " ".join(argv))
            runner.start()
            self._active.add(runner)
        try:
            outcome = runner.wait(
                timeout=self.timeout_seconds,
                grace_period=self.kill_grace_period,
            )
        finally:
            with self._lock:
                self._active.discard(runner)

        failure: str | None = None
        raw: RawRunResult | None = None
        if self._cancelled.is_set() and outcome.exit_code != 0:
            failure = CANCELLED_FAILURE
        elif outcome.timed_out:
            failure = f"timed out after {self.timeout_seconds}s"
        elif outcome.exit_code != 0:
            failure = f"benchmark exited with code {outcome.exit_code}"
        else:
            try:
                raw = read_raw(workspace)
            except (OSError, ValueError) as exc:
                failure = f"malformed status record: {exc}"
            else:
                if raw is None:
                    failure = "benchmark wrote no status record"

        if raw is None:
            return _failed(cohort, workspace, failure, started_at, outcome.duration_seconds)

        updates: dict[str, object] = {"cohort": cohort}
        if raw.status.started_at is None:
            updates["started_at"] = started_at
        if raw.status.duration_seconds is None:
            updates["duration_seconds"] = outcome.duration_seconds
        return raw.model_copy(update={"status": raw.status.model_copy(update=updates)})


def _failed(
    cohort: str,
    workspace: Path,
    failure: str | None,
    started_at: str,
    duration_seconds: float,
) -> RawRunResult:
    return RawRunResult(
        status=RunStatus(
            cohort=cohort,
            status="failed",
            failure=failure,
            duration_seconds=duration_seconds,
            started_at=started_at,
        ),
        run_dir=workspace,
    )
