# Copyright (c) Syntropy Systems
"""Export raw repeat data for human triage when a quality gate trips."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import TypeAdapter

from hwexplore.models.run import RawRunResult
from hwexplore.storage import read_raw, utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from hwexplore.models.hardware import HardwareConfiguration, RunScore
    from hwexplore.storage import RunCache

logger = logging.getLogger(__name__)

_RAW_ADAPTER = TypeAdapter(list[RawRunResult])


class DiagnosticExporter:
    """Dumps pre-aggregation raw data next to a configuration's runs."""

    cache: RunCache

    def __init__(self, cache: RunCache) -> None:
        self.cache = cache

    def export_raw(
        self,
        label: str,
        raw_results: Sequence[RawRunResult],
        configuration: HardwareConfiguration,
    ) -> Path | None:
        """Write raw results under the configuration's diagnostics directory.

        Never raises: an export failure is logged and must not mask the
        error that triggered the export.
        """
        try:
            target = self.cache.diagnostics_dir(configuration, label)
            target.mkdir(parents=True, exist_ok=True)
            raw_path = target / "raw.json"
            _ = raw_path.write_bytes(_RAW_ADAPTER.dump_json(list(raw_results), indent=2))
            _ = (target / "exported_at").write_text(utcnow() + "\n")
        except Exception:
            logger.exception(
                "Failed to export '%s' diagnostics for %s", label, configuration.label
            )
            return None
        logger.info("Exported '%s' diagnostics for %s to %s", label, configuration.label, target)
        return raw_path

    def export_scores(
        self,
        label: str,
        scores: Sequence[RunScore],
        configuration: HardwareConfiguration,
    ) -> Path | None:
        """Export the raw data behind a set of scores."""
        raw_results: list[RawRunResult] = []
        for score in scores:
            if score.raw_result_handle is None:
                continue
            try:
                raw = read_raw(score.raw_result_handle)
            except (OSError, ValueError) as exc:
                logger.warning("Cannot read %s for export: %s", score.raw_result_handle, exc)
                continue
            if raw is not None:
                raw_results.append(raw)
        return self.export_raw(label, raw_results, configuration)
