"""Tyro CLI application entrypoint."""

from __future__ import annotations

import sys
from typing import Annotated

from rich.console import Console
from rich.text import Text
import tyro

from cropbatch.cli import commands_run, commands_scan
from cropbatch.errors import UsageError


TopLevelCommand = Annotated[
    commands_run.RunCommand,
    tyro.conf.subcommand(name="run"),
] | Annotated[
    commands_scan.ScanCommand,
    tyro.conf.subcommand(name="scan"),
]


def dispatch(command: TopLevelCommand) -> int:
    """Dispatch parsed top-level command object and return an exit status.

    0 when everything succeeded, 1 when any crop or manifest failed, 2 when
    the command could not start.
    """

    try:
        return _execute(command)
    except UsageError as exc:
        Console(stderr=True, soft_wrap=True).print(Text.assemble(("error: ", "bold red"), str(exc)))
        return 2


def _execute(command: TopLevelCommand) -> int:
    if isinstance(command, commands_run.RunCommand):
        result = commands_run.execute(command)
        return 0 if result.ok else 1
    if isinstance(command, commands_scan.ScanCommand):
        commands_scan.execute(command)
        return 0
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run requested command."""

    command = tyro.cli(TopLevelCommand, args=argv)
    status = dispatch(command)
    if status:
        sys.exit(status)
