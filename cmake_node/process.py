"""Blocking execution of external tools with inherited terminal I/O."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence
import os
import signal

from .core.command_runner import CommandNotFoundError, CommandResult, CommandRunner

from .console import Console
from .errors import ProcessExit, ToolchainError


def spawn(
    runner: CommandRunner,
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    console: Console | None = None,
) -> CommandResult:
    """Run ``command`` in the foreground; raise :class:`ProcessExit` on failure."""

    if console is not None:
        location = f" (cwd={cwd})" if cwd else ""
        console.debug(f"Running{location}: {runner.format_command(command)}")
    try:
        result = runner.run(command, cwd=cwd, stream=True)
    except CommandNotFoundError as exc:
        raise ToolchainError(str(exc)) from exc
    if result.returncode != 0:
        raise ProcessExit(result.returncode, command=str(command[0]))
    return result


def exit_status(exc: ProcessExit) -> int:
    """Turn a failed child into this process's own outcome.

    A child killed by a signal is mirrored by delivering the same signal to
    ourselves; the shell then sees the same termination.
    """

    if exc.returncode >= 0:
        return exc.returncode
    signum = -exc.returncode
    if hasattr(os, "kill"):
        # SIGKILL and SIGSTOP cannot be reset; they are delivered anyway.
        try:
            signal.signal(signum, signal.SIG_DFL)
        except (OSError, ValueError):
            pass
        os.kill(os.getpid(), signum)
    return 128 + signum


__all__ = ["exit_status", "spawn"]
