"""Discovery of CMake, the MSVC librarian, mingw utilities and the WASI SDK."""
from __future__ import annotations

from pathlib import Path
from typing import List
import re
import shutil
import sys
import tempfile

from .core.command_runner import CommandNotFoundError, CommandRunner

from .console import Console
from .platforms import HostFacts, MINGW_PREFIXES, VS_ARCHS


PROBE_LISTS = """\
cmake_minimum_required(VERSION 3.10)
project(cmake_node_probe C)
message(STATUS "cmake-node compiler: ${CMAKE_C_COMPILER}")
"""

_COMPILER_MARKER = re.compile(r"^-- cmake-node compiler: (.+?)\s*$", re.MULTILINE)


def _exe(name: str, host: HostFacts) -> str:
    if host.is_windows and not name.lower().endswith(".exe"):
        return f"{name}.exe"
    return name


def probe_executable(runner: CommandRunner, executable: str) -> bool:
    """Return whether ``executable --version`` exits cleanly."""

    try:
        result = runner.run([executable, "--version"])
    except (CommandNotFoundError, OSError):
        return False
    return result.returncode == 0 and result.signal is None


def cmake_prefixes(host: HostFacts) -> List[Path]:
    """Conventional CMake install locations, highest priority first."""

    prefixes: List[Path] = []
    if host.is_windows:
        for variable in ("ProgramW6432", "ProgramFiles", "ProgramFiles(x86)"):
            value = host.environ.get(variable)
            if value:
                prefixes.append(Path(value) / "CMake" / "bin")
        local = host.environ.get("LOCALAPPDATA")
        if local:
            prefixes.append(Path(local) / "Programs" / "CMake" / "bin")
        prefixes.append(Path(sys.prefix) / "Scripts")
    else:
        prefixes.append(Path(sys.prefix) / "bin")
        prefixes.append(Path("/usr/local/bin"))
        if host.is_macos:
            prefixes.append(Path("/opt/homebrew/bin"))
            prefixes.append(Path("/opt/local/bin"))
            prefixes.append(Path("/Applications/CMake.app/Contents/bin"))
        prefixes.append(Path("/usr/bin"))
        prefixes.append(Path("/snap/bin"))

    ordered: List[Path] = []
    for prefix in prefixes:
        if prefix not in ordered:
            ordered.append(prefix)
    return ordered


def find_cmake(runner: CommandRunner, host: HostFacts, *, name: str = "cmake", console: Console | None = None) -> str:
    """Locate a working CMake binary.

    Falls back to the bare ``name`` so that the failure surfaces where the
    binary is first used.
    """

    if probe_executable(runner, name):
        if console is not None:
            console.debug(f"Using {name} from PATH")
        return name

    executable = _exe(name, host)
    for prefix in cmake_prefixes(host):
        candidate = prefix / executable
        if candidate.is_file():
            if console is not None:
                console.debug(f"Using {candidate}")
            return str(candidate)

    if console is not None:
        console.debug(f"No {name} installation found; trying '{name}' anyway")
    return name


def find_ui(cmake: str, host: HostFacts) -> str:
    """Locate the interactive CMake front end that ships beside ``cmake``."""

    tool = "cmake-gui" if host.is_windows else "ccmake"
    executable = _exe(tool, host)
    parent = Path(cmake).parent
    if str(parent) not in ("", "."):
        candidate = parent / executable
        if candidate.is_file():
            return str(candidate)
    found = shutil.which(tool, path=host.environ.get("PATH"))
    return found or tool


def wasi_sdk_candidates(host: HostFacts) -> List[Path]:
    candidates: List[Path] = []
    for variable in ("WASI_SDK_PATH", "WASI_SDK_PREFIX"):
        value = host.environ.get(variable)
        if value:
            candidates.append(Path(value))
    if host.is_windows:
        for variable in ("ProgramW6432", "ProgramFiles"):
            value = host.environ.get(variable)
            if value:
                candidates.append(Path(value) / "wasi-sdk")
        candidates.append(Path("C:/wasi-sdk"))
    else:
        candidates.extend(
            [
                Path("/opt/wasi-sdk"),
                Path("/usr/local/wasi-sdk"),
                Path("/usr/lib/wasi-sdk"),
                Path("/usr/share/wasi-sdk"),
                host.home / "wasi-sdk",
            ]
        )
    return candidates


def wasi_toolchain_file(sdk: Path) -> Path:
    return Path(sdk) / "share" / "cmake" / "wasi-sdk.cmake"


def find_wasi_sdk(host: HostFacts) -> Path | None:
    for candidate in wasi_sdk_candidates(host):
        if wasi_toolchain_file(candidate).is_file():
            return candidate
    return None


def mingw_tool_name(arch: str, tool: str) -> str:
    return f"{MINGW_PREFIXES[arch]}-w64-mingw32-{tool}"


def find_mingw_tool(host: HostFacts, arch: str, tool: str) -> str | None:
    """Locate ``<prefix>-w64-mingw32-<tool>`` on PATH."""

    if arch not in MINGW_PREFIXES:
        return None
    return shutil.which(mingw_tool_name(arch, tool), path=host.environ.get("PATH"))


def find_linker(
    runner: CommandRunner,
    cmake: str,
    *,
    tool: str = "lib.exe",
    generator: str | None = None,
    arch: str | None = None,
    console: Console | None = None,
) -> str | None:
    """Locate a utility that lives beside the C compiler CMake selects.

    A throwaway project is configured in a scratch directory and the compiler
    path is read back from its output. Returns ``None`` when the compiler path
    cannot be determined or the sibling does not exist.
    """

    with tempfile.TemporaryDirectory(prefix="cmake-node-") as scratch:
        source_dir = Path(scratch)
        build_dir = source_dir / "build"
        build_dir.mkdir()
        (source_dir / "CMakeLists.txt").write_text(PROBE_LISTS, encoding="utf-8")

        command = [cmake, str(source_dir)]
        if generator:
            command.extend(["-G", generator])
        if arch in VS_ARCHS and (generator is None or generator.startswith("Visual Studio")):
            command.extend(["-A", VS_ARCHS[arch]])

        try:
            result = runner.run(command, cwd=build_dir)
        except (CommandNotFoundError, OSError) as exc:
            if console is not None:
                console.debug(f"Compiler probe failed: {exc}")
            return None

    match = _COMPILER_MARKER.search(result.stdout or "")
    if match is None:
        if console is not None:
            console.debug("Compiler probe printed no compiler path")
        return None

    compiler = Path(match.group(1).strip())
    linker = compiler.parent / tool
    if not linker.is_file():
        if console is not None:
            console.debug(f"{tool} not found beside {compiler}")
        return None
    return str(linker)


__all__ = [
    "PROBE_LISTS",
    "cmake_prefixes",
    "find_cmake",
    "find_linker",
    "find_mingw_tool",
    "find_ui",
    "find_wasi_sdk",
    "mingw_tool_name",
    "probe_executable",
    "wasi_sdk_candidates",
    "wasi_toolchain_file",
]
