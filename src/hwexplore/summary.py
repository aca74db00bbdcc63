# Copyright (c) Syntropy Systems
"""Summary table: one row per configuration."""
from __future__ import annotations

import csv
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from hwexplore.models.hardware import ExplorationResult

SUMMARY_FILE = "summary.csv"

FIELDNAMES = [
    "instance_class",
    "node_count",
    "worth_exploring",
    "reason",
    "status",
    "apdex",
    "apdex_spread",
    "throughput",
    "throughput_spread",
    "error_rate",
    "error_rate_spread",
    "failure",
]

_NUMERIC_FIELDS = FIELDNAMES[5:11]


def summary_row(result: ExplorationResult) -> dict[str, str]:
    """Flatten a result into summary columns, numbers blank when not explored."""
    configuration = result.configuration
    row = {
        "instance_class": configuration.instance_class,
        "node_count": str(configuration.node_count),
        "worth_exploring": str(result.decision.worth_exploring).lower(),
        "reason": result.decision.reason,
        "status": result.status,
        "failure": result.failure or "",
    }
    aggregated = result.aggregated
    if aggregated is None:
        row.update(dict.fromkeys(_NUMERIC_FIELDS, ""))
    else:
        row.update(
            {
                "apdex": f"{aggregated.apdex:.4f}",
                "apdex_spread": f"{aggregated.apdex_spread:.4f}",
                "throughput": f"{aggregated.throughput:.2f}",
                "throughput_spread": f"{aggregated.throughput_spread:.2f}",
                "error_rate": f"{aggregated.error_rate:.4f}",
                "error_rate_spread": f"{aggregated.error_rate_spread:.4f}",
            }
        )
    return row


def order_results(
    results: Sequence[ExplorationResult],
    instance_classes: Sequence[str],
) -> list[ExplorationResult]:
    """Order results by caller-supplied instance class order, then node count."""
    rank = {name: index for index, name in enumerate(instance_classes)}
    return sorted(
        results,
        key=lambda r: (
            rank.get(r.configuration.instance_class, len(rank)),
            r.configuration.instance_class,
            r.configuration.node_count,
        ),
    )


def write_summary(
    results: Sequence[ExplorationResult],
    instance_classes: Sequence[str],
    path: Path,
) -> Path:
    """Write summary.csv ordered by instance class order, then node count."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for result in order_results(results, instance_classes):
            writer.writerow(summary_row(result))
    return path


def read_summary(path: Path) -> list[dict[str, str]]:
    """Read summary rows back from a CSV file."""
    with path.open(newline="") as f:
        return list(csv.DictReader(f))


_STATUS_STYLES = {
    "explored": "green",
    "skipped": "dim",
    "failed": "red",
}


def _spread_cell(mean: str, spread: str) -> str:
    if not mean:
        return "-"
    return f"{mean} ± {spread}"


def render_rows(rows: Sequence[dict[str, str]], title: str = "Hardware exploration") -> Table:
    """Build a rich table from summary rows."""
    table = Table(title=title)
    table.add_column("Instance")
    table.add_column("Nodes", justify="right")
    table.add_column("Status")
    table.add_column("Reason", style="dim")
    table.add_column("Apdex", justify="right")
    table.add_column("Throughput/s", justify="right")
    table.add_column("Error rate", justify="right")

    for row in rows:
        status = row.get("status", "")
        style = _STATUS_STYLES.get(status, "")
        status_cell = f"[{style}]{status}[/{style}]" if style else status
        reason = row.get("reason", "")
        if row.get("failure"):
            reason = f"{reason}: {row['failure']}"
        table.add_row(
            escape(row.get("instance_class", "")),
            row.get("node_count", ""),
            status_cell,
            escape(reason),
            _spread_cell(row.get("apdex", ""), row.get("apdex_spread", "")),
            _spread_cell(row.get("throughput", ""), row.get("throughput_spread", "")),
            _spread_cell(row.get("error_rate", ""), row.get("error_rate_spread", "")),
        )
    return table


def render_summary(
    results: Sequence[ExplorationResult],
    instance_classes: Sequence[str],
) -> Table:
    """Build a rich table of exploration results."""
    return render_rows(
        [summary_row(result) for result in order_results(results, instance_classes)]
    )
