"""Utilities for executing external tools with optional dry-run support.

Runners never raise on a non-zero exit status; callers inspect
:attr:`CommandResult.returncode` and decide what a failure means.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import shlex
import subprocess


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    streamed: bool = False

    @property
    def signal(self) -> int | None:
        """Signal number that terminated the child, if any (POSIX only)."""
        if self.returncode < 0:
            return -self.returncode
        return None


class CommandNotFoundError(RuntimeError):
    """Raised when the executable of a command cannot be started."""

    def __init__(self, executable: str):
        super().__init__(f"{executable} is not available.")
        self.executable = executable


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(str(part)) for part in command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    Streamed commands inherit the controlling terminal's stdin, stdout and
    stderr; the caller blocks until the child exits.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        argv = [str(part) for part in command]
        try:
            if stream:
                process = subprocess.run(
                    argv,
                    cwd=str(cwd) if cwd else None,
                    check=False,
                )
            else:
                process = subprocess.run(
                    argv,
                    cwd=str(cwd) if cwd else None,
                    capture_output=True,
                    text=True,
                    check=False,
                )
        except FileNotFoundError as exc:
            # A missing cwd raises the same error; only translate a missing executable.
            if cwd is not None and not Path(cwd).is_dir():
                raise
            raise CommandNotFoundError(argv[0]) from exc

        if stream:
            return CommandResult(
                command=argv,
                returncode=process.returncode,
                stdout="",
                stderr="",
                streamed=True,
            )
        return CommandResult(
            command=argv,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None
    stream: bool


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=[str(part) for part in command],
                cwd=str(cwd) if cwd else None,
                note=note,
                stream=stream,
            )
        )
        return CommandResult(command=list(command), returncode=0, stdout="", stderr="", streamed=stream)

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterable[str]:
        default_cwd = str(workspace) if workspace else None
        for record in self.commands:
            cmd = self.format_command(record.command)
            cwd = record.cwd or default_cwd
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            if cwd:
                parts.append(f"(cwd={cwd})")
            parts.append(cmd)
            yield " ".join(parts)
