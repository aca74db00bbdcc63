# Copyright (c) Syntropy Systems
"""Benchmark process runner with orphan prevention."""
from __future__ import annotations

import contextlib
import ctypes
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

OUTPUT_LOG = "output.log"
_POLL_INTERVAL = 0.1
_REAP_TIMEOUT = 5.0
_PR_SET_PDEATHSIG = 1


def setup_pdeathsig() -> None:
    """Ask the kernel to SIGKILL the benchmark if the explorer dies (Linux)."""
    if sys.platform != "linux":
        return
    with contextlib.suppress(AttributeError, OSError):
        _ = ctypes.CDLL("libc.so.6").prctl(_PR_SET_PDEATHSIG, signal.SIGKILL)


@dataclass
class ProcessOutcome:
    """How a benchmark process ended."""

    exit_code: int
    timed_out: bool = False
    duration_seconds: float = 0.0


class ProcessRunner:
    """One benchmark command, run in its own process group.

    stdout and stderr land in output.log inside the run directory, which is
    also the working directory. Stopping the benchmark signals the whole
    group, so helper processes it spawned go down with it.
    """

    argv: list[str]
    run_dir: Path
    log_path: Path
    env: dict[str, str]
    _process: subprocess.Popen[bytes] | None
    _exit_code: int | None
    _log_file: IO[str] | None
    _started: float | None

    def __init__(
        self,
        argv: list[str],
        run_dir: Path,
        env: dict[str, str] | None = None,
    ) -> None:
        """Prepare a benchmark process.

        Args:
            argv: Rendered benchmark command, executed without a shell
            run_dir: Run directory of the repeat
            env: Variables added on top of the explorer's environment

        """
        self.argv = argv
        self.run_dir = run_dir
        self.log_path = run_dir / OUTPUT_LOG
        self.env = {**os.environ, **(env or {})}
        self._process = None
        self._exit_code = None
        self._log_file = None
        self._started = None

    def start(self) -> None:
        """Launch the benchmark without waiting for it."""
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self._log_file = self.log_path.open("w")
        self._started = time.monotonic()
        self._process = subprocess.Popen(  # noqa: S603
            self.argv,
            stdout=self._log_file,
            stderr=subprocess.STDOUT,
            env=self.env,
            cwd=str(self.run_dir),
            start_new_session=True,
            preexec_fn=setup_pdeathsig if sys.platform == "linux" else None,  # noqa: PLW1509
        )

    def wait(
        self,
        timeout: float | None = None,
        grace_period: float = 10.0,
    ) -> ProcessOutcome:
        """Block until the benchmark exits, stopping it once timeout passes."""
        if self._process is None:
            msg = "Benchmark process was never started"
            raise RuntimeError(msg)
        try:
            code = self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return ProcessOutcome(
                exit_code=self.stop(grace_period=grace_period),
                timed_out=True,
                duration_seconds=self._elapsed(),
            )
        _ = self._finish(code)
        return ProcessOutcome(exit_code=code, duration_seconds=self._elapsed())

    def run(
        self,
        timeout: float | None = None,
        grace_period: float = 10.0,
    ) -> ProcessOutcome:
        """Start the benchmark and wait for it."""
        self.start()
        return self.wait(timeout=timeout, grace_period=grace_period)

    def stop(self, grace_period: float = 10.0) -> int:
        """Stop the process group: SIGTERM, then SIGKILL after grace_period.

        Safe to call from another thread while wait() blocks.

        Returns:
            Exit code, negative signal number when the group was killed

        """
        process = self._process
        if process is None:
            return self._exit_code or 0
        if process.poll() is not None:
            return self._finish(process.returncode)

        try:
            pgid = os.getpgid(process.pid)
        except OSError:
            code = process.poll()
            return self._finish(code if code is not None else -signal.SIGKILL)

        with contextlib.suppress(OSError):
            os.killpg(pgid, signal.SIGTERM)

        deadline = time.monotonic() + grace_period
        while time.monotonic() < deadline:
            if process.poll() is not None:
                return self._finish(process.returncode)
            time.sleep(_POLL_INTERVAL)

        with contextlib.suppress(OSError):
            os.killpg(pgid, signal.SIGKILL)
        with contextlib.suppress(subprocess.TimeoutExpired):
            _ = process.wait(timeout=_REAP_TIMEOUT)
        code = process.returncode
        return self._finish(code if code is not None else -signal.SIGKILL)

    def _finish(self, code: int) -> int:
        self._exit_code = code
        if self._log_file is not None:
            with contextlib.suppress(OSError):
                self._log_file.close()
            self._log_file = None
        return code

    def _elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    @property
    def pid(self) -> int | None:
        """Process ID once started."""
        return self._process.pid if self._process is not None else None

    @property
    def exit_code(self) -> int | None:
        """Exit code once the process has ended."""
        return self._exit_code
