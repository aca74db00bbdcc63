# Copyright (c) Syntropy Systems
"""Main CLI entry point for hwexplore."""

import typer

from hwexplore.cli.explore import explore
from hwexplore.cli.init_cmd import init
from hwexplore.cli.runs import runs
from hwexplore.cli.space import space
from hwexplore.cli.summary_cmd import summary

app = typer.Typer(
    name="hwexplore",
    help=(
        "Hardware exploration. Find the configurations worth benchmarking, "
        "reuse what already ran, gate the repeats."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(space)
_ = app.command()(explore)
_ = app.command()(runs)
_ = app.command()(summary)


if __name__ == "__main__":
    app()
