"""On-demand synthesis of the import library Windows addons link against.

Addons on Windows resolve N-API symbols from the host executable, which the
linker only accepts through an import library. Instead of downloading one per
Node.js release, the library is generated from a definitions file with the
toolchain already at hand (``lib.exe`` for MSVC, ``dlltool`` for mingw-w64)
and cached under ``<cache-root>/<base>-<abi>-<arch>.lib``. Cached files are
never invalidated; ``cmake-node clear`` removes them.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

from .core.command_runner import CommandNotFoundError, CommandRunner

from .config import Configuration
from .console import Console
from .errors import ArtifactError, ConfigurationError
from .filesystem import mkdirp
from .platforms import DLLTOOL_MACHINES, HostFacts, LIB_MACHINES, TargetPlatform
from .toolchain import find_linker, find_mingw_tool, mingw_tool_name


ABI_VERSION = 8
LIBRARY_SUFFIX = ".lib"
LINKER_FALLBACK = "lib.exe"


def library_identity(node_bin: str, arch: str) -> str:
    base = Path(node_bin).name.split(".", 1)[0]
    return f"{base}-{ABI_VERSION}-{arch}"


def library_path(cache_root: Path, node_bin: str, arch: str) -> Path:
    return Path(cache_root) / f"{library_identity(node_bin, arch)}{LIBRARY_SUFFIX}"


class ImportLibraryBuilder:
    def __init__(
        self,
        config: Configuration,
        *,
        host: HostFacts,
        runner: CommandRunner,
        probe_runner: CommandRunner,
        console: Console,
        locate_cmake: Callable[[], str],
    ) -> None:
        self._config = config
        self._host = host
        self._runner = runner
        self._probe_runner = probe_runner
        self._console = console
        self._locate_cmake = locate_cmake

    @property
    def path(self) -> Path:
        return library_path(self._config.cache_root, self._config.node_bin, self._config.arch)

    def resolve(self) -> Path:
        """Return the cached import library, creating it on first use."""

        config = self._config
        if not config.needs_import_library:
            raise ConfigurationError(f"No import library is used for {config.platform.value} targets.")

        path = self.path
        if path.exists():
            self._console.debug(f"Using cached import library {path}")
            return path

        if self._console.dry_run:
            self._console.dry(f"Would create directory {config.cache_root}")
        else:
            mkdirp(config.cache_root)

        if config.platform is TargetPlatform.MINGW:
            self._synthesize_mingw(path)
        else:
            self._synthesize_msvc(path)

        self._console.info(f"Created import library {path}")
        return path

    def _synthesize_msvc(self, path: Path) -> None:
        config = self._config
        linker = find_linker(
            self._probe_runner,
            self._locate_cmake(),
            generator=config.generator,
            arch=config.arch,
            console=self._console,
        )
        if linker is None:
            self._console.warn(f"Could not locate {LINKER_FALLBACK} beside the compiler; trying PATH.")
            linker = LINKER_FALLBACK

        self._run(
            [
                linker,
                "/nologo",
                f"/def:{config.node_def}",
                f"/out:{path}",
                f"/name:{config.node_bin}",
                f"/machine:{LIB_MACHINES[config.arch]}",
            ],
            path,
        )

    def _synthesize_mingw(self, path: Path) -> None:
        config = self._config
        dlltool = find_mingw_tool(self._host, config.arch, "dlltool")
        if dlltool is None:
            raise ArtifactError(f"Could not find {mingw_tool_name(config.arch, 'dlltool')} on PATH.")

        self._run(
            [
                dlltool,
                "--output-lib",
                str(path),
                "--input-def",
                str(config.node_def),
                "--dllname",
                config.node_bin,
                "--machine",
                DLLTOOL_MACHINES[config.arch],
            ],
            path,
        )

    def _run(self, command: Sequence[str], path: Path) -> None:
        self._console.debug(f"Running: {self._runner.format_command(command)}")
        try:
            result = self._runner.run(command, note="import library")
        except CommandNotFoundError as exc:
            raise ArtifactError(f"Could not create {path}: {exc}") from exc
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            message = f"Could not create {path}."
            if detail:
                message = f"{message}\n{detail}"
            raise ArtifactError(message)


__all__ = ["ABI_VERSION", "ImportLibraryBuilder", "library_identity", "library_path"]
