"""The cmake-node lifecycle commands and their dispatch table.

Every command takes the per-invocation :class:`CommandContext` plus the
arguments given after ``--`` and returns a process exit status. External tool
failures surface as :class:`~cmake_node.errors.ProcessExit`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Mapping, Sequence, Tuple

from .core.command_runner import CommandRunner

from .artifacts import LIBRARY_SUFFIX, ImportLibraryBuilder
from .config import MODULE_DIR, Configuration
from .console import Console
from .errors import ArgumentError, ProjectError, ToolchainError
from .filesystem import is_preserved_output, list_paths, mkdirp, remove_file, remove_tree
from .platforms import HostFacts, MINGW_PROCESSORS, TargetPlatform, VS_ARCHS
from .process import spawn
from .toolchain import find_cmake, find_ui, mingw_tool_name, wasi_toolchain_file


MODULE_PATH_VARIABLE = "CMAKE_MODULE_PATH"


@dataclass
class CommandContext:
    """State shared by the commands of a single invocation."""

    config: Configuration
    console: Console
    runner: CommandRunner
    probe_runner: CommandRunner
    host: HostFacts
    configured: bool = False
    _cmake: str | None = field(default=None, init=False, repr=False)

    @property
    def cmake(self) -> str:
        # Discovery is deferred so commands that never run cmake never probe for it.
        if self._cmake is None:
            if self.config.cmake:
                self._cmake = self.config.cmake
            else:
                self._cmake = find_cmake(self.probe_runner, self.host, console=self.console)
        return self._cmake

    @property
    def dry_run(self) -> bool:
        return self.console.dry_run

    @property
    def is_configured(self) -> bool:
        if self.config.is_configured:
            return True
        # A dry-run configure records the command without creating the cache.
        return self.dry_run and self.configured

    def import_library(self) -> ImportLibraryBuilder:
        return ImportLibraryBuilder(
            self.config,
            host=self.host,
            runner=self.runner,
            probe_runner=self.probe_runner,
            console=self.console,
            locate_cmake=lambda: self.cmake,
        )


Command = Callable[[CommandContext, Sequence[str]], int]


def _cmake_path(path: Path | str) -> str:
    # CMake treats backslashes in -D values as escapes.
    return Path(path).as_posix()


def _split_definition(args: Sequence[str], index: int) -> Tuple[str | None, int]:
    """Return the ``NAME[:TYPE]=value`` text of a definition and its width."""

    arg = args[index]
    if arg == "-D":
        if index + 1 < len(args):
            return args[index + 1], 2
        return None, 1
    if arg.startswith("-D"):
        return arg[2:], 1
    return None, 1


def extract_module_paths(args: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Pull ``CMAKE_MODULE_PATH`` definitions out of ``args``.

    Both ``-D NAME=value`` and ``-DNAME=value`` are recognised, with or without
    a ``:TYPE`` suffix on the name. Returns the module paths in order and the
    remaining arguments.
    """

    paths: List[str] = []
    remaining: List[str] = []
    index = 0
    while index < len(args):
        definition, width = _split_definition(args, index)
        if definition is not None and "=" in definition:
            name, _, value = definition.partition("=")
            if name.split(":", 1)[0] == MODULE_PATH_VARIABLE:
                paths.extend(part for part in value.split(";") if part)
                index += width
                continue
        remaining.extend(args[index:index + width])
        index += width
    return paths, remaining


def platform_definitions(config: Configuration) -> List[str]:
    platform = config.platform
    if platform is TargetPlatform.GENERIC:
        if config.toolchain is None:
            return []
        return [f"-DCMAKE_TOOLCHAIN_FILE={_cmake_path(config.toolchain)}"]

    if platform is TargetPlatform.MINGW:
        return [
            "-DCMAKE_SYSTEM_NAME=Windows",
            f"-DCMAKE_SYSTEM_PROCESSOR={MINGW_PROCESSORS[config.arch]}",
            f"-DCMAKE_C_COMPILER={mingw_tool_name(config.arch, 'gcc')}",
            f"-DCMAKE_CXX_COMPILER={mingw_tool_name(config.arch, 'g++')}",
            f"-DCMAKE_RC_COMPILER={mingw_tool_name(config.arch, 'windres')}",
        ]

    if platform is TargetPlatform.WASM:
        if config.wasi_sdk is None:
            raise ToolchainError("Could not find the WASI SDK; pass --wasi-sdk.")
        return [
            f"-DCMAKE_TOOLCHAIN_FILE={_cmake_path(wasi_toolchain_file(config.wasi_sdk))}",
            f"-DWASI_SDK_PREFIX={_cmake_path(config.wasi_sdk)}",
        ]

    return []


def _uses_vs_platform(config: Configuration) -> bool:
    if config.platform is not TargetPlatform.WIN32 or config.arch not in VS_ARCHS:
        return False
    return config.generator is None or config.generator.startswith("Visual Studio")


def configure_arguments(
    config: Configuration,
    *,
    node_lib: Path | None = None,
    extra: Sequence[str] = (),
) -> List[str]:
    """Arguments for the configure step, excluding the cmake binary itself."""

    user_paths, remaining = extract_module_paths([*config.cmake_args, *extra])
    module_path = ";".join([_cmake_path(MODULE_DIR), *user_paths])

    args = [str(config.root), f"-D{MODULE_PATH_VARIABLE}={module_path}"]
    args.extend(platform_definitions(config))

    if not config.multi_config:
        args.append(f"-DCMAKE_BUILD_TYPE={config.build_type}")

    args.append(f"-DNODE_BIN={config.node_bin}")
    if node_lib is not None:
        args.append(f"-DNODE_LIB={_cmake_path(node_lib)}")
    if config.node_exp is not None:
        args.append(f"-DNODE_EXP={_cmake_path(config.node_exp)}")

    if config.generator:
        args.extend(["-G", config.generator])
    if _uses_vs_platform(config):
        args.extend(["-A", VS_ARCHS[config.arch]])

    args.extend(remaining)
    return args


def build_arguments(config: Configuration, *, extra: Sequence[str] = ()) -> List[str]:
    args = ["--build", str(config.build_dir)]
    if config.multi_config:
        args.extend(["--config", config.build_type])
    args.extend(extra)
    return args


def _require_configured(ctx: CommandContext) -> None:
    if not ctx.is_configured:
        raise ProjectError("Project is not configured.")


def install(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    config = ctx.config
    if not config.needs_import_library:
        ctx.console.info(f"No import library is needed for {config.platform.value} targets.")
        return 0
    print(ctx.import_library().resolve())
    return 0


def list_cache(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    for path in list_paths(ctx.config.cache_root, suffix=LIBRARY_SUFFIX):
        print(path)
    return 0


def clear(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    cache_root = ctx.config.cache_root
    if ctx.dry_run:
        ctx.console.dry(f"Would remove {cache_root}")
        return 0
    remove_tree(cache_root)
    ctx.console.info(f"Removed {cache_root}")
    return 0


def configure(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    config = ctx.config
    if not config.marker_file.is_file():
        raise ProjectError(f"Invalid CMake root: {config.root}")

    node_lib = None
    if config.needs_import_library:
        node_lib = config.node_lib or ctx.import_library().resolve()

    command = [ctx.cmake, *configure_arguments(config, node_lib=node_lib, extra=args)]

    if ctx.dry_run:
        ctx.console.dry(f"Would create directory {config.build_dir}")
    else:
        mkdirp(config.build_dir)

    spawn(ctx.runner, command, cwd=config.build_dir, console=ctx.console)
    ctx.configured = True
    return 0


def build(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    _require_configured(ctx)
    config = ctx.config
    spawn(ctx.runner, [ctx.cmake, *build_arguments(config, extra=args)], cwd=config.root, console=ctx.console)
    return 0


def clean(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    config = ctx.config
    build_root = config.build_root
    exclude = is_preserved_output if config.production else None

    if ctx.dry_run:
        action = "prune" if exclude else "remove"
        ctx.console.dry(f"Would {action} {build_root}")
    else:
        remove_tree(build_root, exclude=exclude)
        ctx.console.debug(f"Cleaned {build_root}")
    ctx.configured = False
    return 0


def reconfigure(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    cache_file = ctx.config.cache_file
    if ctx.dry_run:
        ctx.console.dry(f"Would remove {cache_file}")
    else:
        remove_file(cache_file)
    return configure(ctx, args)


def rebuild(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    clean(ctx)
    configure(ctx, args)
    # Configure-time arguments are not valid for `cmake --build`.
    build(ctx)
    if ctx.config.production:
        clean(ctx)
    return 0


def ui(ctx: CommandContext, args: Sequence[str] = ()) -> int:
    _require_configured(ctx)
    config = ctx.config
    front_end = find_ui(ctx.cmake, ctx.host)
    spawn(ctx.runner, [front_end, str(config.build_dir)], cwd=config.build_dir, console=ctx.console)
    return 0


COMMANDS: Mapping[str, Command] = MappingProxyType(
    {
        "install": install,
        "list": list_cache,
        "clear": clear,
        "configure": configure,
        "build": build,
        "clean": clean,
        "reconfigure": reconfigure,
        "rebuild": rebuild,
        "ui": ui,
    }
)


def get_command(name: str | None) -> Command:
    if name is None:
        raise ArgumentError("No command specified.")
    command = COMMANDS.get(name)
    if command is None:
        raise ArgumentError(f"Unknown command: {name}.")
    return command


__all__ = [
    "COMMANDS",
    "CommandContext",
    "build_arguments",
    "configure_arguments",
    "extract_module_paths",
    "get_command",
    "platform_definitions",
]
