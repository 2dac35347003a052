"""Command line entry point for cmake-node."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence
import sys
import traceback

from .core.command_runner import CommandRunner, RecordingCommandRunner, SubprocessCommandRunner

from .arguments import parse_arguments
from .commands import CommandContext, get_command
from .config import resolve_configuration
from .console import Console
from .errors import ProcessExit
from .platforms import HostFacts
from .process import exit_status


def _emit_dry_run_output(runner: RecordingCommandRunner, *, workspace: Path) -> None:
    for line in runner.iter_formatted(workspace=workspace):
        print(line)


def main(argv: Sequence[str] | None = None, *, host: HostFacts | None = None) -> int:
    """Run one cmake-node command.

    ``argv`` excludes the program name. Returns the exit status: the child's
    own status when an external tool fails, 1 for any other error.
    """

    args = list(sys.argv[1:] if argv is None else argv)
    verbose = False
    try:
        options = parse_arguments(args)
        verbose = options.verbose
        command = get_command(options.command)

        console = Console("debug" if options.verbose else "warn", dry_run=options.dry_run)
        if host is None:
            host = HostFacts.detect()
        config = resolve_configuration(options, host)
        console.debug(f"Target {config.platform.value}/{config.arch}, build tree {config.build_dir}")

        runner: CommandRunner
        if options.dry_run:
            runner = RecordingCommandRunner()
        else:
            runner = SubprocessCommandRunner()

        # Discovery probes only read, so they run for real even in a dry run.
        context = CommandContext(
            config=config,
            console=console,
            runner=runner,
            probe_runner=SubprocessCommandRunner(),
            host=host,
        )
        try:
            return command(context, config.passthrough)
        finally:
            if isinstance(runner, RecordingCommandRunner):
                _emit_dry_run_output(runner, workspace=config.root)
    except ProcessExit as exc:
        return exit_status(exc)
    except FileNotFoundError as exc:
        print(f"File not found: {exc.filename or exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        if verbose:
            traceback.print_exc()
        print(exc, file=sys.stderr)
        return 1


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
