from __future__ import annotations

from pathlib import Path
from unittest import mock
import os
import signal
import subprocess
import sys
import unittest

from cmake_node.core.command_runner import CommandNotFoundError, CommandResult

from cmake_node.errors import ProcessExit, ToolchainError
from cmake_node.process import exit_status, spawn


class SpawnTests(unittest.TestCase):
    def _runner(self, returncode: int) -> mock.Mock:
        runner = mock.Mock()
        runner.run.return_value = CommandResult(command=[], returncode=returncode, stdout="", stderr="", streamed=True)
        return runner

    def test_streams_and_returns_result(self) -> None:
        runner = self._runner(0)
        result = spawn(runner, ["cmake", "--build", "."], cwd=Path("/tmp"))
        self.assertEqual(result.returncode, 0)
        runner.run.assert_called_once_with(["cmake", "--build", "."], cwd=Path("/tmp"), stream=True)

    def test_non_zero_exit_raises_process_exit(self) -> None:
        with self.assertRaises(ProcessExit) as ctx:
            spawn(self._runner(4), ["cmake"])
        self.assertEqual(ctx.exception.returncode, 4)
        self.assertEqual(ctx.exception.command, "cmake")

    def test_missing_tool_is_a_toolchain_error(self) -> None:
        runner = mock.Mock()
        runner.run.side_effect = CommandNotFoundError("ccmake")
        with self.assertRaises(ToolchainError) as ctx:
            spawn(runner, ["ccmake", "build"])
        self.assertEqual(str(ctx.exception), "ccmake is not available.")


class ExitStatusTests(unittest.TestCase):
    def test_positive_codes_pass_through(self) -> None:
        self.assertEqual(exit_status(ProcessExit(2)), 2)

    def test_signal_is_re_raised_on_self(self) -> None:
        with mock.patch("cmake_node.process.os.kill") as kill, mock.patch("cmake_node.process.signal.signal") as install:
            status = exit_status(ProcessExit(-signal.SIGTERM))
        install.assert_called_once_with(signal.SIGTERM, signal.SIG_DFL)
        kill.assert_called_once()
        self.assertEqual(kill.call_args.args[1], signal.SIGTERM)
        self.assertEqual(status, 128 + signal.SIGTERM)

    def test_uncatchable_signal_is_still_delivered(self) -> None:
        with mock.patch("cmake_node.process.os.kill") as kill, mock.patch(
            "cmake_node.process.signal.signal", side_effect=OSError(22, "Invalid argument")
        ):
            exit_status(ProcessExit(-9))
        kill.assert_called_once_with(os.getpid(), 9)

    @unittest.skipUnless(hasattr(signal, "SIGKILL"), "requires POSIX signals")
    def test_killed_child_terminates_the_caller_with_sigkill(self) -> None:
        root = Path(__file__).resolve().parents[1]
        code = (
            "from cmake_node.errors import ProcessExit\n"
            "from cmake_node.process import exit_status\n"
            "raise SystemExit(exit_status(ProcessExit(-9)))\n"
        )
        result = subprocess.run([sys.executable, "-c", code], cwd=root, check=False)
        self.assertEqual(result.returncode, -signal.SIGKILL)


if __name__ == "__main__":
    unittest.main()
