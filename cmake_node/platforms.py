"""Target platforms, host facts and the per-platform lookup tables."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping
import os
import platform as _platform
import shutil
import sys


class TargetPlatform(str, Enum):
    WIN32 = "win32"
    AIX = "aix"
    OS390 = "os390"
    MINGW = "mingw"
    WASM = "wasm"
    GENERIC = "generic"
    NATIVE = "native"

    @property
    def needs_import_library(self) -> bool:
        return self in (TargetPlatform.WIN32, TargetPlatform.MINGW)


ARCHITECTURES = frozenset(
    {
        "arm",
        "arm64",
        "ia32",
        "loong64",
        "mips",
        "mipsel",
        "ppc",
        "ppc64",
        "riscv64",
        "s390",
        "s390x",
        "x64",
        "wasm32",
        "wasm64",
    }
)
"""Architecture names accepted on the command line (Node.js spelling)."""

UNKNOWN_ARCH = "unknown"

VALID_ARCHS: Mapping[TargetPlatform, frozenset[str]] = MappingProxyType(
    {
        TargetPlatform.WIN32: frozenset({"ia32", "x64", "arm", "arm64"}),
        TargetPlatform.AIX: frozenset({"ppc", "ppc64"}),
        TargetPlatform.MINGW: frozenset({"ia32", "x64", "arm", "arm64"}),
        TargetPlatform.WASM: frozenset({"wasm32", "wasm64"}),
    }
)

SUPPORTED_WASM_ARCHS = frozenset({"wasm32"})

DEFAULT_ARCHS: Mapping[TargetPlatform, str] = MappingProxyType(
    {
        TargetPlatform.GENERIC: UNKNOWN_ARCH,
        TargetPlatform.MINGW: "x64",
        TargetPlatform.WASM: "wasm32",
    }
)

DEFAULT_BINARIES: Mapping[TargetPlatform, str] = MappingProxyType(
    {
        TargetPlatform.GENERIC: "node",
        TargetPlatform.MINGW: "node.exe",
        TargetPlatform.WASM: "node.wasm",
    }
)

# Visual Studio generator platform names (cmake -A).
VS_ARCHS: Mapping[str, str] = MappingProxyType(
    {"ia32": "Win32", "x64": "x64", "arm": "ARM", "arm64": "ARM64"}
)

# lib.exe /MACHINE values.
LIB_MACHINES: Mapping[str, str] = MappingProxyType(
    {"ia32": "X86", "x64": "X64", "arm": "ARM", "arm64": "ARM64"}
)

MINGW_PREFIXES: Mapping[str, str] = MappingProxyType(
    {"ia32": "i686", "x64": "x86_64", "arm": "armv7", "arm64": "aarch64"}
)

# dlltool -m values.
DLLTOOL_MACHINES: Mapping[str, str] = MappingProxyType(
    {"ia32": "i386", "x64": "i386:x86-64", "arm": "arm", "arm64": "arm64"}
)

# CMAKE_SYSTEM_PROCESSOR for mingw cross builds.
MINGW_PROCESSORS: Mapping[str, str] = MappingProxyType(
    {"ia32": "x86", "x64": "AMD64", "arm": "ARM", "arm64": "ARM64"}
)

_MACHINE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "x86_64": "x64",
        "amd64": "x64",
        "x64": "x64",
        "i386": "ia32",
        "i486": "ia32",
        "i586": "ia32",
        "i686": "ia32",
        "x86": "ia32",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv6l": "arm",
        "armv7l": "arm",
        "armv7": "arm",
        "arm": "arm",
        "ppc": "ppc",
        "powerpc": "ppc",
        "ppc64": "ppc64",
        "ppc64le": "ppc64",
        "s390": "s390",
        "s390x": "s390x",
        "mips": "mips",
        "mipsel": "mipsel",
        "riscv64": "riscv64",
        "loongarch64": "loong64",
    }
)

MULTI_CONFIG_GENERATORS = ("Visual Studio", "Xcode", "Ninja Multi-Config")


def host_platform(system: str) -> TargetPlatform:
    """Map ``platform.system()`` output onto a native target platform."""

    name = system.strip().lower()
    if name == "windows":
        return TargetPlatform.WIN32
    if name in ("aix", "os400"):
        return TargetPlatform.AIX
    if name in ("os/390", "os390", "z/os", "zos"):
        return TargetPlatform.OS390
    return TargetPlatform.NATIVE


def host_arch(system: str, machine: str, *, is_64bit: bool | None = None) -> str:
    """Translate a machine name into the Node.js architecture spelling."""

    if is_64bit is None:
        is_64bit = sys.maxsize > 2**32
    # AIX reports a machine serial number instead of an architecture.
    if host_platform(system) is TargetPlatform.AIX:
        return "ppc64" if is_64bit else "ppc"
    normalized = machine.strip().lower()
    arch = _MACHINE_ALIASES.get(normalized, normalized or UNKNOWN_ARCH)
    # 32-bit interpreters on 64-bit Windows report the OS machine.
    if arch == "x64" and not is_64bit and system.lower() == "windows":
        return "ia32"
    return arch


def is_multi_config(generator: str | None) -> bool:
    if not generator:
        return False
    return generator.startswith(MULTI_CONFIG_GENERATORS)


def default_generator(system: str, target: TargetPlatform) -> str | None:
    """Single-config generator used when none was requested.

    Native Windows returns ``None`` so CMake picks its own (Visual Studio)
    default.
    """

    if target is TargetPlatform.WIN32:
        return None
    if system.lower() == "windows":
        if target is TargetPlatform.MINGW:
            return "MinGW Makefiles"
        return "Ninja"
    return "Unix Makefiles"


@dataclass(frozen=True)
class HostFacts:
    """Facts about the machine cmake-node runs on."""

    system: str
    platform: TargetPlatform
    arch: str
    executable: str
    environ: Mapping[str, str] = field(default_factory=dict)
    home: Path = field(default_factory=Path.home)

    @property
    def is_windows(self) -> bool:
        return self.system.lower() == "windows"

    @property
    def is_macos(self) -> bool:
        return self.system.lower() == "darwin"

    @classmethod
    def detect(cls, environ: Mapping[str, str] | None = None) -> "HostFacts":
        env = dict(os.environ if environ is None else environ)
        system = _platform.system()
        return cls(
            system=system,
            platform=host_platform(system),
            arch=host_arch(system, _platform.machine()),
            executable=_host_executable(system, env),
            environ=env,
            home=Path.home(),
        )


def _host_executable(system: str, environ: Mapping[str, str]) -> str:
    found = shutil.which("node", path=environ.get("PATH"))
    if found:
        return Path(found).name
    return "node.exe" if system.lower() == "windows" else "node"


CACHE_FOLDER = "cmake-node"


def cache_directory(host: HostFacts) -> Path:
    """Per-user cache root for synthesized artifacts."""

    override = host.environ.get("CMAKE_NODE_CACHE")
    if override:
        return Path(override)
    if host.is_windows:
        base = host.environ.get("LOCALAPPDATA") or host.environ.get("APPDATA")
        root = Path(base) if base else host.home / "AppData" / "Local"
        return root / CACHE_FOLDER
    if host.is_macos:
        return host.home / "Library" / "Caches" / CACHE_FOLDER
    xdg = host.environ.get("XDG_CACHE_HOME")
    root = Path(xdg) if xdg else host.home / ".cache"
    return root / CACHE_FOLDER


__all__ = [
    "ARCHITECTURES",
    "CACHE_FOLDER",
    "DEFAULT_ARCHS",
    "DEFAULT_BINARIES",
    "DLLTOOL_MACHINES",
    "HostFacts",
    "LIB_MACHINES",
    "MINGW_PREFIXES",
    "MINGW_PROCESSORS",
    "SUPPORTED_WASM_ARCHS",
    "TargetPlatform",
    "UNKNOWN_ARCH",
    "VALID_ARCHS",
    "VS_ARCHS",
    "cache_directory",
    "default_generator",
    "host_arch",
    "host_platform",
    "is_multi_config",
]
