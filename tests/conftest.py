# Copyright (c) Syntropy Systems
"""Pytest fixtures for hwexplore tests."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from hwexplore.models.hardware import HardwareConfiguration, RunScore
from hwexplore.models.run import ActionMetric, RawRunResult, RunStatus
from hwexplore.scoring import ResultScorer
from hwexplore.storage import RunCache

# Store original cwd at module load time
_original_cwd = Path.cwd()

ACTIONS_PER_RUN = 100

RawFactory = Callable[..., RawRunResult]
ApdexFunction = Callable[[HardwareConfiguration, int], float]


def _make_raw(
    apdex: float = 0.9,
    error_rate: float = 0.0,
    http_requests: int | None = 600,
    duration_seconds: float | None = 60.0,
    status: str = "completed",
    failure: str | None = None,
    cohort: str = "test cohort",
    label: str = "View Issue",
) -> RawRunResult:
    """Build a raw repeat whose whitelisted actions score the requested values.

    Errors count as frustrated, so apdex must leave room for them.
    """
    errors = round(error_rate * ACTIONS_PER_RUN)
    satisfied = round(apdex * ACTIONS_PER_RUN)
    if satisfied + errors > ACTIONS_PER_RUN:
        msg = "apdex and error rate do not fit in one run"
        raise ValueError(msg)
    actions: list[ActionMetric] = []
    for i in range(ACTIONS_PER_RUN):
        if i < errors:
            actions.append(ActionMetric(label=label, result="ERROR", duration_ms=50.0))
        elif i < errors + satisfied:
            actions.append(ActionMetric(label=label, result="OK", duration_ms=200.0))
        else:
            actions.append(ActionMetric(label=label, result="OK", duration_ms=9000.0))
    return RawRunResult(
        status=RunStatus(
            cohort=cohort,
            status=status,
            failure=failure,
            http_requests=http_requests,
            duration_seconds=duration_seconds,
        ),
        actions=actions,
    )


class FakeBenchmark:
    """In-memory benchmark that records calls and tracks concurrency."""

    apdex_for: ApdexFunction
    error_rate: float
    delay: float
    delays: dict[str, float]
    fail_on: set[HardwareConfiguration]
    calls: list[tuple[HardwareConfiguration, Path]]
    in_flight: int
    max_in_flight: int
    _cancelled: threading.Event
    _lock: threading.Lock

    def __init__(
        self,
        apdex_for: ApdexFunction | None = None,
        error_rate: float = 0.0,
        delay: float = 0.0,
        fail_on: set[HardwareConfiguration] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.apdex_for = apdex_for or (lambda _configuration, _run: 0.9)
        self.error_rate = error_rate
        self.delay = delay
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        self._cancelled.set()

    def execute(self, configuration: HardwareConfiguration, workspace: Path) -> RawRunResult:
        with self._lock:
            self.calls.append((configuration, workspace))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(configuration.instance_class, self.delay)
            if self._cancelled.is_set() or (delay and self._cancelled.wait(delay)):
                msg = f"benchmark for {configuration.label} was cancelled"
                raise RuntimeError(msg)
            if configuration in self.fail_on:
                msg = f"provisioning failed for {configuration.label}"
                raise RuntimeError(msg)
            run_number = int(workspace.name)
            return _make_raw(
                apdex=self.apdex_for(configuration, run_number),
                error_rate=self.error_rate,
                cohort=f"{configuration.label} run {run_number}",
            ).model_copy(update={"run_dir": workspace})
        finally:
            with self._lock:
                self.in_flight -= 1

    def calls_for(self, configuration: HardwareConfiguration) -> list[Path]:
        """Workspaces of every execution of one configuration."""
        return [workspace for called, workspace in self.calls if called == configuration]


@pytest.fixture(autouse=True)
def reset_hwexplore_logger() -> Generator[None, None, None]:
    """Undo CLI logging setup so caplog sees hwexplore records."""
    yield
    logger = logging.getLogger("hwexplore")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def hwexplore_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary hwexplore project directory."""
    project_dir = temp_dir / ".hwexplore"
    project_dir.mkdir()
    (project_dir / "runs").mkdir()

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def make_raw() -> RawFactory:
    """Factory for raw repeats with chosen scores."""
    return _make_raw


@pytest.fixture
def make_score() -> Callable[..., RunScore]:
    """Factory for run scores."""

    def factory(
        apdex: float,
        error_rate: float = 0.0,
        throughput: float = 10.0,
        instance_class: str = "small",
        node_count: int = 1,
    ) -> RunScore:
        return RunScore(
            configuration=HardwareConfiguration(
                instance_class=instance_class,
                node_count=node_count,
            ),
            apdex=apdex,
            throughput=throughput,
            error_rate=error_rate,
        )

    return factory


@pytest.fixture
def runs_dir(temp_dir: Path) -> Path:
    """Empty runs root."""
    path = temp_dir / "runs"
    path.mkdir()
    return path


@pytest.fixture
def cache(runs_dir: Path) -> RunCache:
    """Run cache with the default action whitelist."""
    return RunCache(runs_dir, ResultScorer())


@pytest.fixture
def fake_benchmark() -> Callable[..., FakeBenchmark]:
    """Factory for in-memory benchmarks."""
    return FakeBenchmark
