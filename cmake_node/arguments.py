"""Tokenizer and parser for the cmake-node command line.

The accepted syntax is GNU style: short flags may be clustered (``-pG``),
long flags may carry their value after ``=`` (``--arch=x64``), and everything
after a bare ``--`` is handed to CMake untouched.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, List, Mapping, Sequence
import errno
import os
import shutil

from .errors import ArgumentError
from .platforms import ARCHITECTURES, TargetPlatform


BUILD_TYPES = ("Debug", "Release", "MinSizeRel", "RelWithDebInfo")
DEFAULT_BUILD_TYPE = "Release"

PASSTHROUGH = "--"


@dataclass(slots=True)
class ParsedOptions:
    """Options exactly as given on the command line; ``None`` means unset."""

    command: str | None = None
    build_type: str | None = None
    cmake: str | None = None
    root: Path | None = None
    production: bool | None = None
    node_bin: str | None = None
    node_def: Path | None = None
    node_lib: Path | None = None
    node_exp: Path | None = None
    platform: TargetPlatform | None = None
    toolchain: Path | None = None
    generator: str | None = None
    arch: str | None = None
    wasi_sdk: Path | None = None
    verbose: bool = False
    dry_run: bool = False
    passthrough: List[str] = field(default_factory=list)


def _not_found(value: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), value)


def parse_build_type(value: str) -> str:
    lookup = {name.lower(): name for name in BUILD_TYPES}
    canonical = lookup.get(value.strip().lower())
    if canonical is None:
        raise ArgumentError(f"Invalid build type: {value}.")
    return canonical


def parse_arch(value: str) -> str:
    if value not in ARCHITECTURES:
        raise ArgumentError(f"Invalid architecture: {value}.")
    return value


def existing_file(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_file():
        raise _not_found(value)
    return path.resolve()


def existing_directory(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_dir():
        raise _not_found(value)
    return path.resolve()


def executable(value: str) -> str:
    path = Path(value).expanduser()
    if path.is_file():
        return str(path.resolve())
    if shutil.which(value):
        return value
    raise _not_found(value)


def _name(value: str) -> str:
    text = value.strip()
    if not text:
        raise ArgumentError("Empty value is not allowed.")
    return text


Action = Callable[[ParsedOptions, str | None], None]


@dataclass(frozen=True, slots=True)
class Option:
    flags: tuple[str, ...]
    action: Action
    metavar: str | None = None
    help: str = ""

    @property
    def takes_value(self) -> bool:
        return self.metavar is not None


def _store(dest: str, convert: Callable[[str], Any]) -> Action:
    def _action(options: ParsedOptions, value: str | None) -> None:
        assert value is not None
        setattr(options, dest, convert(value))

    return _action


def _flag(dest: str) -> Action:
    def _action(options: ParsedOptions, _value: str | None) -> None:
        setattr(options, dest, True)

    return _action


# The cross modes and --toolchain are mutually exclusive: the last one wins.
def _select_mingw(options: ParsedOptions, _value: str | None) -> None:
    options.platform = TargetPlatform.MINGW
    options.toolchain = None


def _select_wasm(options: ParsedOptions, _value: str | None) -> None:
    options.platform = TargetPlatform.WASM
    options.toolchain = None


def _select_toolchain(options: ParsedOptions, value: str | None) -> None:
    assert value is not None
    options.toolchain = existing_file(value)
    options.platform = TargetPlatform.GENERIC


def _show_version(_options: ParsedOptions, _value: str | None) -> None:
    from . import __version__

    print(__version__)
    raise SystemExit(0)


def _show_help(_options: ParsedOptions, _value: str | None) -> None:
    print(usage())
    raise SystemExit(0)


OPTIONS: tuple[Option, ...] = (
    Option(("-v", "--version"), _show_version, help="print the version and exit"),
    Option(("-c", "--config"), _store("build_type", parse_build_type), "TYPE",
           "build type: Debug, Release, MinSizeRel or RelWithDebInfo"),
    Option(("-C", "--cmake"), _store("cmake", executable), "PATH", "path to the cmake binary"),
    Option(("-r", "--root"), _store("root", existing_directory), "PATH", "project root (default: cwd)"),
    Option(("-p", "--production"), _flag("production"), help="keep only build outputs when cleaning"),
    Option(("--node-bin",), _store("node_bin", _name), "NAME", "name of the node executable"),
    Option(("--node-def",), _store("node_def", existing_file), "PATH", "definitions file for the import library"),
    Option(("--node-lib",), _store("node_lib", existing_file), "PATH", "prebuilt import library"),
    Option(("--node-exp",), _store("node_exp", existing_file), "PATH", "export file (AIX, z/OS)"),
    Option(("--mingw",), _select_mingw, help="cross compile with mingw-w64"),
    Option(("--wasm",), _select_wasm, help="cross compile with the WASI SDK"),
    Option(("--toolchain",), _select_toolchain, "FILE", "use a custom CMake toolchain file"),
    Option(("-G", "--gen"), _store("generator", _name), "NAME", "CMake generator"),
    Option(("-A", "--arch"), _store("arch", parse_arch), "ARCH", "target architecture"),
    Option(("--wasi-sdk",), _store("wasi_sdk", existing_directory), "PATH", "WASI SDK root"),
    Option(("--verbose",), _flag("verbose"), help="print every command that is run"),
    Option(("--dry-run",), _flag("dry_run"), help="print commands instead of running them"),
    Option(("-h", "--help"), _show_help, help="print this help and exit"),
)

_OPTION_INDEX: Mapping[str, Option] = MappingProxyType(
    {flag: option for option in OPTIONS for flag in option.flags}
)

COMMAND_SUMMARY = (
    ("install", "create the import library (Windows targets)"),
    ("list", "list cached import libraries"),
    ("clear", "remove the import library cache"),
    ("configure", "configure the project"),
    ("build", "build a configured project"),
    ("clean", "remove the build tree"),
    ("reconfigure", "configure again after dropping the CMake cache"),
    ("rebuild", "clean, configure and build"),
    ("ui", "open the interactive CMake front end"),
)


def usage() -> str:
    lines = ["Usage: cmake-node [options] [command] -- [cmake args]", "", "Options:"]
    for option in OPTIONS:
        names = ", ".join(option.flags)
        if option.metavar:
            names = f"{names} <{option.metavar.lower()}>"
        lines.append(f"  {names:<28} {option.help}")
    lines.extend(["", "Commands:"])
    for name, summary in COMMAND_SUMMARY:
        lines.append(f"  {name:<28} {summary}")
    return "\n".join(lines)


def normalize(args: Sequence[str]) -> List[str]:
    """Expand clustered short flags and ``--opt=value`` tokens.

    Tokens from a bare ``--`` onward are returned unchanged.
    """

    tokens: List[str] = []
    for index, arg in enumerate(args):
        if arg == PASSTHROUGH:
            tokens.extend(args[index:])
            break
        if arg.startswith("--"):
            if "=" in arg:
                name, _, value = arg.partition("=")
                tokens.append(name)
                tokens.append(value)
            else:
                tokens.append(arg)
        elif arg.startswith("-") and len(arg) > 2:
            tokens.extend(f"-{char}" for char in arg[1:])
        else:
            tokens.append(arg)
    return tokens


def parse_arguments(args: Iterable[str]) -> ParsedOptions:
    """Fold the command line into :class:`ParsedOptions`.

    ``args`` excludes the program name. ``--help`` and ``--version`` print
    and raise :class:`SystemExit` immediately.
    """

    tokens = normalize(list(args))
    options = ParsedOptions()
    index = 0
    while index < len(tokens):
        token = tokens[index]

        if token == PASSTHROUGH:
            options.passthrough = tokens[index + 1:]
            break

        if token.startswith("-"):
            option = _OPTION_INDEX.get(token)
            if option is None:
                raise ArgumentError(f"Invalid option: {token}.")
            value: str | None = None
            if option.takes_value:
                if index + 1 >= len(tokens) or not tokens[index + 1] or tokens[index + 1].startswith("-"):
                    raise ArgumentError(f"Invalid value for {token}.")
                index += 1
                value = tokens[index]
            option.action(options, value)
        else:
            if options.command is not None:
                raise ArgumentError("Multiple commands specified.")
            options.command = token

        index += 1

    return options


__all__ = [
    "BUILD_TYPES",
    "DEFAULT_BUILD_TYPE",
    "OPTIONS",
    "ParsedOptions",
    "normalize",
    "parse_arguments",
    "parse_arch",
    "parse_build_type",
    "usage",
]
