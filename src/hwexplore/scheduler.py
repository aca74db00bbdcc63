# Copyright (c) Syntropy Systems
"""Exploration scheduler: decide, reuse, run missing repeats, aggregate.

Instance classes are explored in parallel, one task per class. Inside a
class, node counts are resolved strictly in increasing order because the
decision for a node count depends on the results of the smaller ones.
Every fresh repeat is submitted to one shared, fixed-size pool, which
bounds how much external infrastructure is in use at once. When the
exploration runs out of time, queued work is dropped and benchmarks in
flight are cancelled before the partial results are reported.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from threading import Event, Lock
from typing import TYPE_CHECKING

from hwexplore.aggregate import QualityGate
from hwexplore.config import ExplorationConfig
from hwexplore.diagnostics import DiagnosticExporter
from hwexplore.errors import (
    ExplorationCancelled,
    ExplorationTimeout,
    QualityGateViolation,
    RunFailed,
)
from hwexplore.models.hardware import (
    ExplorationResult,
    HardwareConfiguration,
)
from hwexplore.models.run import RawRunResult, RunStatus
from hwexplore.policy import DecisionPolicy
from hwexplore.scoring import DEFAULT_ACTION_LABELS, Apdex, ResultScorer
from hwexplore.storage import RunCache, write_raw
from hwexplore.summary import order_results, write_summary

if TYPE_CHECKING:
    from collections.abc import Sequence
    from concurrent.futures import Future
    from pathlib import Path

    from hwexplore.benchmark import Benchmark
    from hwexplore.models.hardware import AggregatedResult, ExplorationDecision, RunScore
    from hwexplore.space import ExplorationPlan

logger = logging.getLogger(__name__)


class ResultRegistry:
    """Write-once map from configuration to its resolved result.

    Safe for concurrent insertion from several instance class tasks.
    """

    _results: dict[HardwareConfiguration, ExplorationResult]
    _lock: Lock

    def __init__(self) -> None:
        self._results = {}
        self._lock = Lock()

    def put_if_absent(self, result: ExplorationResult) -> ExplorationResult:
        """Insert a result unless one exists; return the stored result."""
        with self._lock:
            return self._results.setdefault(result.configuration, result)

    def get(self, configuration: HardwareConfiguration) -> ExplorationResult | None:
        """Return the result of a configuration, if resolved."""
        with self._lock:
            return self._results.get(configuration)

    def snapshot(self) -> list[ExplorationResult]:
        """Return every resolved result."""
        with self._lock:
            return list(self._results.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


@dataclass
class ExplorationReport:
    """Every configuration's result, in instance class then node count order."""

    results: list[ExplorationResult]
    summary_path: Path | None = None
    elapsed_seconds: float = 0.0

    @property
    def failures(self) -> list[ExplorationResult]:
        """Results of configurations that failed a repeat or a gate."""
        return [r for r in self.results if r.status == "failed"]

    @property
    def explored(self) -> list[ExplorationResult]:
        """Results of configurations that passed every gate."""
        return [r for r in self.results if r.status == "explored"]

    @property
    def skipped(self) -> list[ExplorationResult]:
        """Results of configurations judged not worth exploring."""
        return [r for r in self.results if r.status == "skipped"]

    @property
    def ok(self) -> bool:
        """Return whether no configuration failed."""
        return not self.failures


class HardwareExploration:
    """Explores a space of hardware configurations."""

    instance_classes: list[str]
    max_node_count: int
    repeats: int
    benchmark: Benchmark
    cache: RunCache
    policy: DecisionPolicy
    gate: QualityGate
    pool_size: int
    timeout: float
    summary_path: Path | None
    registry: ResultRegistry
    _stopping: Event

    def __init__(  # noqa: PLR0913
        self,
        instance_classes: Sequence[str],
        max_node_count: int,
        repeats: int,
        benchmark: Benchmark,
        cache: RunCache,
        policy: DecisionPolicy | None = None,
        gate: QualityGate | None = None,
        pool_size: int = 8,
        timeout: float = 4200.0,
        summary_path: Path | None = None,
    ) -> None:
        """Initialize an exploration.

        Args:
            instance_classes: Instance classes, in summary order
            max_node_count: Largest node count to consider
            repeats: Repeats required per explored configuration
            benchmark: Runs one fresh repeat
            cache: Persisted repeats
            policy: Decides which configurations to explore
            gate: Aggregates repeats and enforces quality gates
            pool_size: Maximum concurrent fresh repeats
            timeout: Hard ceiling on the whole exploration (seconds)
            summary_path: Where to write summary.csv, if anywhere

        """
        if pool_size < 1:
            msg = f"pool_size must be at least 1, got {pool_size}"
            raise ValueError(msg)
        if repeats < 1:
            msg = f"repeats must be at least 1, got {repeats}"
            raise ValueError(msg)
        self.instance_classes = list(instance_classes)
        self.max_node_count = max_node_count
        self.repeats = repeats
        self.benchmark = benchmark
        self.cache = cache
        self.policy = policy or DecisionPolicy()
        self.gate = gate or QualityGate(exporter=DiagnosticExporter(cache))
        self.pool_size = pool_size
        self.timeout = timeout
        self.summary_path = summary_path
        self.registry = ResultRegistry()
        self._stopping = Event()

    @classmethod
    def from_plan(
        cls,
        plan: ExplorationPlan,
        runs_dir: Path,
        benchmark: Benchmark,
        config: ExplorationConfig | None = None,
        summary_path: Path | None = None,
    ) -> HardwareExploration:
        """Wire an exploration from a plan and project configuration."""
        config = config or ExplorationConfig()
        scorer = ResultScorer(
            labels=plan.actions or DEFAULT_ACTION_LABELS,
            apdex=Apdex(config.apdex_satisfied_ms, config.apdex_tolerating_ms),
        )
        cache = RunCache(runs_dir, scorer)
        return cls(
            instance_classes=plan.instance_classes,
            max_node_count=plan.max_node_count,
            repeats=plan.repeats,
            benchmark=benchmark,
            cache=cache,
            policy=DecisionPolicy(
                high_availability_floor=config.high_availability_floor,
                improvement_threshold=config.improvement_threshold,
            ),
            gate=QualityGate(
                error_rate_ceiling=config.error_rate_ceiling,
                spread_ceiling=config.spread_ceiling,
                exporter=DiagnosticExporter(cache),
            ),
            pool_size=config.worker_pool_size,
            timeout=config.exploration_timeout,
            summary_path=summary_path,
        )

    def explore(self) -> ExplorationReport:
        """Explore every instance class and collect one result per configuration.

        Raises:
            ExplorationTimeout: The exploration exceeded its ceiling. Results
                resolved so far are attached to the exception.

        """
        started = time.monotonic()
        self.registry = ResultRegistry()
        self._stopping = Event()
        repeat_pool = ThreadPoolExecutor(
            max_workers=self.pool_size,
            thread_name_prefix="hwexplore-repeat",
        )
        class_pool = ThreadPoolExecutor(
            max_workers=len(self.instance_classes),
            thread_name_prefix="hwexplore-class",
        )
        timed_out = False
        resolved: list[ExplorationResult] = []
        try:
            class_futures = [
                class_pool.submit(self._explore_class, instance_class, repeat_pool)
                for instance_class in self.instance_classes
            ]
            _, pending = wait(class_futures, timeout=self.timeout)
            timed_out = bool(pending)
            if timed_out:
                # Only what resolved before the deadline is reported
                resolved = self.registry.snapshot()
                self._stop()
            else:
                for future in class_futures:
                    # Surfaces errors outside per-configuration handling
                    _ = future.result()
                resolved = self.registry.snapshot()
        except BaseException:
            self._stop()
            raise
        finally:
            class_pool.shutdown(wait=True, cancel_futures=True)
            repeat_pool.shutdown(wait=True, cancel_futures=True)

        results = order_results(resolved, self.instance_classes)
        if self.summary_path is not None:
            _ = write_summary(results, self.instance_classes, self.summary_path)

        if timed_out:
            msg = (
                f"Exploration did not finish within {self.timeout:g}s; "
                f"{len(results)} configuration(s) resolved"
            )
            raise ExplorationTimeout(msg, results)

        return ExplorationReport(
            results=results,
            summary_path=self.summary_path,
            elapsed_seconds=time.monotonic() - started,
        )

    def _explore_class(
        self,
        instance_class: str,
        repeat_pool: ThreadPoolExecutor,
    ) -> list[ExplorationResult]:
        """Resolve node counts of one class in increasing order."""
        resolved: list[ExplorationResult] = []
        trend: list[AggregatedResult] = []
        for node_count in range(1, self.max_node_count + 1):
            if self._stopping.is_set():
                break
            configuration = HardwareConfiguration(
                instance_class=instance_class,
                node_count=node_count,
            )
            decision = self.policy.decide(configuration, trend)
            logger.info(
                "%s: %s (%s)",
                configuration.label,
                "exploring" if decision.worth_exploring else "skipping",
                decision.reason,
            )
            if decision.worth_exploring:
                try:
                    result = self._explore_configuration(decision, repeat_pool)
                except ExplorationCancelled:
                    logger.debug("%s abandoned", configuration.label)
                    break
                if self._stopping.is_set():
                    break
            else:
                result = ExplorationResult(decision=decision)
            result = self.registry.put_if_absent(result)
            if result.aggregated is not None:
                trend.append(result.aggregated)
            resolved.append(result)
        return resolved

    def _explore_configuration(
        self,
        decision: ExplorationDecision,
        repeat_pool: ThreadPoolExecutor,
    ) -> ExplorationResult:
        """Get a gated result for one configuration, capturing its failure."""
        configuration = decision.configuration
        try:
            scores = self.ensure(configuration, self.repeats, executor=repeat_pool)
            aggregated = self.gate.aggregate(scores, configuration)
        except ExplorationCancelled:
            raise
        except (RunFailed, QualityGateViolation) as exc:
            logger.error("%s failed: %s", configuration.label, exc)  # noqa: TRY400
            return ExplorationResult(decision=decision, failure=str(exc))
        except Exception as exc:
            logger.exception("%s failed unexpectedly", configuration.label)
            return ExplorationResult(
                decision=decision,
                failure=f"{type(exc).__name__}: {exc}",
            )
        logger.info(
            "%s: apdex %.4f (spread %.4f), error rate %.4f over %d repeat(s)",
            configuration.label,
            aggregated.apdex,
            aggregated.apdex_spread,
            aggregated.error_rate,
            len(aggregated.repeats),
        )
        return ExplorationResult(decision=decision, aggregated=aggregated)

    def ensure(
        self,
        configuration: HardwareConfiguration,
        repeat_count: int,
        executor: ThreadPoolExecutor | None = None,
    ) -> list[RunScore]:
        """Make sure at least repeat_count scored repeats exist.

        Reusable persisted repeats count first; the deficit is run fresh.
        Extra history is kept, never truncated.

        Raises:
            RunFailed: A fresh repeat failed.
            ExplorationCancelled: The exploration stopped while repeats ran.

        """
        reused = self.cache.reuse_all(configuration)
        deficit = repeat_count - len(reused)
        if deficit <= 0:
            return reused

        if executor is None:
            with ThreadPoolExecutor(
                max_workers=self.pool_size,
                thread_name_prefix="hwexplore-repeat",
            ) as own_pool:
                fresh = self._run_fresh(configuration, deficit, own_pool)
        else:
            fresh = self._run_fresh(configuration, deficit, executor)
        return reused + fresh

    def _claim_run_dirs(self, configuration: HardwareConfiguration, count: int) -> list[Path]:
        """Create run directories numbered past everything already on disk."""
        claimed: list[Path] = []
        number = self.cache.next_run_number(configuration)
        while len(claimed) < count:
            run_dir = self.cache.run_dir(configuration, number)
            try:
                run_dir.mkdir(parents=True, exist_ok=False)
            except FileExistsError:
                number = max(number + 1, self.cache.next_run_number(configuration))
                continue
            claimed.append(run_dir)
            number += 1
        return claimed

    def _run_fresh(
        self,
        configuration: HardwareConfiguration,
        count: int,
        executor: ThreadPoolExecutor,
    ) -> list[RunScore]:
        logger.info(
            "Running %d test(s) to get the rest of the results for %s",
            count,
            configuration.label,
        )
        self._raise_if_stopping(configuration)
        run_dirs = self._claim_run_dirs(configuration, count)
        futures: list[Future[RunScore]] = [
            executor.submit(self._run_repeat, configuration, run_dir)
            for run_dir in run_dirs
        ]
        # Every repeat settles before the configuration is judged
        _ = wait(futures)
        self._raise_if_stopping(configuration)
        return [future.result() for future in futures]

    def _run_repeat(self, configuration: HardwareConfiguration, run_dir: Path) -> RunScore:
        """Execute, persist, then score one fresh repeat."""
        self._raise_if_stopping(configuration)
        try:
            raw = self.benchmark.execute(configuration, run_dir)
        except Exception as exc:
            failed = RawRunResult(
                status=RunStatus(
                    cohort=f"{configuration.label} run {run_dir.name}",
                    status="failed",
                    failure=f"{type(exc).__name__}: {exc}",
                ),
                run_dir=run_dir,
            )
            try:
                write_raw(run_dir, failed)
            except OSError as write_exc:
                logger.warning("Could not record failure in %s: %s", run_dir, write_exc)
            msg = f"{configuration.label} run {run_dir.name} failed: {exc}"
            raise RunFailed(msg) from exc

        if raw.run_dir is None:
            raw = raw.model_copy(update={"run_dir": run_dir})
        write_raw(run_dir, raw)
        return self.cache.scorer.score(configuration, raw)

    def _stop(self) -> None:
        """Abandon outstanding work and stop benchmarks in flight."""
        self._stopping.set()
        self.benchmark.cancel()

    def _raise_if_stopping(self, configuration: HardwareConfiguration) -> None:
        if self._stopping.is_set():
            msg = f"{configuration.label} abandoned: exploration is stopping"
            raise ExplorationCancelled(msg)
