"""Resolved build configuration and the rules that derive it."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .arguments import DEFAULT_BUILD_TYPE, ParsedOptions
from .errors import ConfigurationError
from .platforms import (
    DEFAULT_ARCHS,
    DEFAULT_BINARIES,
    HostFacts,
    MINGW_PREFIXES,
    SUPPORTED_WASM_ARCHS,
    TargetPlatform,
    VALID_ARCHS,
    cache_directory,
    default_generator,
    is_multi_config,
)
from .settings import ProjectSettings, load_project_settings
from .toolchain import find_mingw_tool, find_wasi_sdk, mingw_tool_name


PACKAGE_DIR = Path(__file__).resolve().parent
MODULE_DIR = PACKAGE_DIR / "cmake"
DEFAULT_DEF_FILE = PACKAGE_DIR / "data" / "node.def"

PROJECT_MARKER = "CMakeLists.txt"
CMAKE_CACHE = "CMakeCache.txt"
BUILD_FOLDER = "build"


@dataclass(frozen=True)
class Configuration:
    """Fully resolved build intent for one invocation."""

    command: str | None
    build_type: str
    cmake: str | None
    root: Path
    production: bool
    node_bin: str
    node_def: Path
    node_lib: Path | None
    node_exp: Path | None
    platform: TargetPlatform
    toolchain: Path | None
    generator: str | None
    multi_config: bool
    arch: str
    wasi_sdk: Path | None
    cache_root: Path
    passthrough: tuple[str, ...] = ()
    cmake_args: tuple[str, ...] = ()

    @property
    def build_root(self) -> Path:
        return self.root / BUILD_FOLDER

    @property
    def build_dir(self) -> Path:
        if self.multi_config:
            return self.build_root
        return self.build_root / self.build_type

    @property
    def cache_file(self) -> Path:
        return self.build_dir / CMAKE_CACHE

    @property
    def marker_file(self) -> Path:
        return self.root / PROJECT_MARKER

    @property
    def is_configured(self) -> bool:
        return self.cache_file.is_file()

    @property
    def needs_import_library(self) -> bool:
        return self.platform.needs_import_library


def _invalid_arch(platform: TargetPlatform, arch: str) -> ConfigurationError:
    return ConfigurationError(f"Invalid architecture for {platform.value}: {arch}.")


def validate(platform: TargetPlatform, arch: str, host: HostFacts) -> None:
    """Reject architecture/platform combinations that cannot be built."""

    if platform in (TargetPlatform.WIN32, TargetPlatform.AIX):
        if arch not in VALID_ARCHS[platform]:
            raise _invalid_arch(platform, arch)
    elif platform is TargetPlatform.MINGW:
        if arch not in MINGW_PREFIXES:
            raise _invalid_arch(platform, arch)
        for tool in ("gcc", "dlltool"):
            if find_mingw_tool(host, arch, tool) is None:
                raise ConfigurationError(f"Could not find {mingw_tool_name(arch, tool)} on PATH.")
    elif platform is TargetPlatform.WASM:
        if arch not in VALID_ARCHS[platform]:
            raise _invalid_arch(platform, arch)
        if arch not in SUPPORTED_WASM_ARCHS:
            raise ConfigurationError(f"{arch} is not yet supported.")


def resolve_configuration(
    options: ParsedOptions,
    host: HostFacts,
    *,
    settings: ProjectSettings | None = None,
) -> Configuration:
    """Fill in defaults for everything left unset and validate the result.

    Precedence is command line, then the project settings file, then values
    derived from the host and the target platform.
    """

    root = options.root or Path.cwd().resolve()
    if settings is None:
        settings = load_project_settings(root, host.environ)

    if options.platform is not None:
        platform, toolchain = options.platform, options.toolchain
    elif settings.platform is not None:
        platform, toolchain = settings.platform, settings.toolchain
    else:
        platform, toolchain = host.platform, None

    generator = options.generator or settings.generator
    if generator is None:
        generator = default_generator(host.system, platform)
        multi_config = platform is TargetPlatform.WIN32
    else:
        multi_config = is_multi_config(generator)

    arch = options.arch or settings.arch or DEFAULT_ARCHS.get(platform, host.arch)
    node_bin = options.node_bin or settings.node_bin or DEFAULT_BINARIES.get(platform, host.executable)

    wasi_sdk = options.wasi_sdk or settings.wasi_sdk
    if platform is TargetPlatform.WASM and wasi_sdk is None:
        wasi_sdk = find_wasi_sdk(host)

    validate(platform, arch, host)

    production = options.production
    if production is None:
        production = bool(settings.production)

    return Configuration(
        command=options.command,
        build_type=options.build_type or settings.build_type or DEFAULT_BUILD_TYPE,
        cmake=options.cmake or settings.cmake,
        root=root,
        production=production,
        node_bin=node_bin,
        node_def=options.node_def or settings.node_def or DEFAULT_DEF_FILE,
        node_lib=options.node_lib or settings.node_lib,
        node_exp=options.node_exp or settings.node_exp,
        platform=platform,
        toolchain=toolchain,
        generator=generator,
        multi_config=multi_config,
        arch=arch,
        wasi_sdk=wasi_sdk,
        cache_root=cache_directory(host),
        passthrough=tuple(options.passthrough),
        cmake_args=tuple(settings.cmake_args),
    )


__all__ = [
    "BUILD_FOLDER",
    "CMAKE_CACHE",
    "Configuration",
    "DEFAULT_DEF_FILE",
    "MODULE_DIR",
    "PROJECT_MARKER",
    "resolve_configuration",
    "validate",
]
