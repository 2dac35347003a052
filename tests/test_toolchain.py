from __future__ import annotations

from pathlib import Path
from unittest import mock
import tempfile
import unittest

from cmake_node.core.command_runner import CommandNotFoundError, CommandResult

from cmake_node.platforms import HostFacts, TargetPlatform
from cmake_node.toolchain import (
    cmake_prefixes,
    find_cmake,
    find_linker,
    find_ui,
    find_wasi_sdk,
    mingw_tool_name,
    probe_executable,
)


def _result(returncode: int = 0, stdout: str = "") -> CommandResult:
    return CommandResult(command=[], returncode=returncode, stdout=stdout, stderr="")


class ToolchainDiscoveryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.linux = HostFacts(
            system="Linux",
            platform=TargetPlatform.NATIVE,
            arch="x64",
            executable="node",
            environ={"PATH": str(self.root)},
            home=self.root,
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_probe_requires_clean_exit(self) -> None:
        runner = mock.Mock()
        runner.run.return_value = _result(0)
        self.assertTrue(probe_executable(runner, "cmake"))
        runner.run.assert_called_once_with(["cmake", "--version"])

        runner.run.return_value = _result(1)
        self.assertFalse(probe_executable(runner, "cmake"))

        runner.run.return_value = _result(-9)
        self.assertFalse(probe_executable(runner, "cmake"))

    def test_probe_treats_missing_binary_as_miss(self) -> None:
        runner = mock.Mock()
        runner.run.side_effect = CommandNotFoundError("cmake")
        self.assertFalse(probe_executable(runner, "cmake"))

    def test_find_cmake_prefers_path(self) -> None:
        runner = mock.Mock()
        runner.run.return_value = _result(0)
        self.assertEqual(find_cmake(runner, self.linux), "cmake")

    def test_find_cmake_falls_back_to_install_prefix(self) -> None:
        runner = mock.Mock()
        runner.run.side_effect = CommandNotFoundError("cmake")
        (self.root / "cmake").write_text("")
        with mock.patch("cmake_node.toolchain.cmake_prefixes", return_value=[self.root / "missing", self.root]):
            self.assertEqual(find_cmake(runner, self.linux), str(self.root / "cmake"))

    def test_find_cmake_returns_bare_name_when_nothing_found(self) -> None:
        runner = mock.Mock()
        runner.run.side_effect = CommandNotFoundError("cmake")
        with mock.patch("cmake_node.toolchain.cmake_prefixes", return_value=[self.root]):
            self.assertEqual(find_cmake(runner, self.linux), "cmake")

    def test_windows_prefixes_come_from_environment(self) -> None:
        host = HostFacts(
            system="Windows",
            platform=TargetPlatform.WIN32,
            arch="x64",
            executable="node.exe",
            environ={"ProgramFiles": "C:/Program Files", "LOCALAPPDATA": "C:/Users/me/AppData/Local"},
            home=self.root,
        )
        prefixes = cmake_prefixes(host)
        self.assertEqual(prefixes[0], Path("C:/Program Files") / "CMake" / "bin")
        self.assertIn(Path("C:/Users/me/AppData/Local") / "Programs" / "CMake" / "bin", prefixes)

    def test_unix_prefixes_have_no_duplicates(self) -> None:
        prefixes = cmake_prefixes(self.linux)
        self.assertEqual(len(prefixes), len(set(prefixes)))
        self.assertIn(Path("/usr/local/bin"), prefixes)

    def test_find_ui_prefers_sibling_of_cmake(self) -> None:
        (self.root / "ccmake").write_text("")
        self.assertEqual(find_ui(str(self.root / "cmake"), self.linux), str(self.root / "ccmake"))

    def test_find_ui_falls_back_to_bare_name(self) -> None:
        self.assertEqual(find_ui("cmake", self.linux), "ccmake")

    def test_find_wasi_sdk_from_environment(self) -> None:
        sdk = self.root / "wasi-sdk-20"
        (sdk / "share" / "cmake").mkdir(parents=True)
        (sdk / "share" / "cmake" / "wasi-sdk.cmake").write_text("")
        host = HostFacts(
            system="Linux",
            platform=TargetPlatform.NATIVE,
            arch="x64",
            executable="node",
            environ={"WASI_SDK_PATH": str(sdk)},
            home=self.root,
        )
        self.assertEqual(find_wasi_sdk(host), sdk)

    def test_mingw_tool_name(self) -> None:
        self.assertEqual(mingw_tool_name("x64", "dlltool"), "x86_64-w64-mingw32-dlltool")
        self.assertEqual(mingw_tool_name("arm64", "gcc"), "aarch64-w64-mingw32-gcc")


class FindLinkerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.bin_dir = Path(self.temp_dir.name)
        self.compiler = self.bin_dir / "cl.exe"
        self.compiler.write_text("")

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _runner(self, stdout: str) -> mock.Mock:
        runner = mock.Mock()
        runner.run.return_value = _result(0, stdout)
        return runner

    def test_returns_sibling_of_reported_compiler(self) -> None:
        (self.bin_dir / "lib.exe").write_text("")
        runner = self._runner(f"-- The C compiler identification is MSVC\n-- cmake-node compiler: {self.compiler}\n")
        self.assertEqual(find_linker(runner, "cmake", arch="x64"), str(self.bin_dir / "lib.exe"))

        command = runner.run.call_args.args[0]
        self.assertEqual(command[0], "cmake")
        self.assertEqual(command[-2:], ["-A", "x64"])

    def test_passes_generator_and_skips_platform_for_ninja(self) -> None:
        runner = self._runner("")
        find_linker(runner, "cmake", generator="Ninja", arch="x64")
        command = runner.run.call_args.args[0]
        self.assertIn("Ninja", command)
        self.assertNotIn("-A", command)

    def test_missing_marker_returns_none(self) -> None:
        self.assertIsNone(find_linker(self._runner("-- Configuring done\n"), "cmake"))

    def test_missing_sibling_returns_none(self) -> None:
        runner = self._runner(f"-- cmake-node compiler: {self.compiler}\n")
        self.assertIsNone(find_linker(runner, "cmake"))

    def test_missing_cmake_returns_none(self) -> None:
        runner = mock.Mock()
        runner.run.side_effect = CommandNotFoundError("cmake")
        self.assertIsNone(find_linker(runner, "cmake"))


if __name__ == "__main__":
    unittest.main()
