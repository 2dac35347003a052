"""Per-project defaults read from ``cmake-node.{toml,json,yaml,yml}``."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping

import errno
import os

import yaml

from .core.config_loader import find_config_file, load_config_file, merge_mappings, normalize_string_list

from .arguments import parse_arch, parse_build_type
from .errors import ArgumentError, ConfigurationError
from .platforms import TargetPlatform


SETTINGS_STEM = "cmake-node"
SETTINGS_ENV = "CMAKE_NODE_CONFIG"

_TARGETS = {
    "mingw": TargetPlatform.MINGW,
    "wasm": TargetPlatform.WASM,
}


@dataclass(slots=True)
class ProjectSettings:
    source: Path | None = None
    build_type: str | None = None
    generator: str | None = None
    arch: str | None = None
    cmake: str | None = None
    production: bool | None = None
    node_bin: str | None = None
    node_def: Path | None = None
    node_lib: Path | None = None
    node_exp: Path | None = None
    platform: TargetPlatform | None = None
    toolchain: Path | None = None
    wasi_sdk: Path | None = None
    cmake_args: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, root: Path, source: Path | None = None) -> "ProjectSettings":
        section = data.get(SETTINGS_STEM)
        if isinstance(section, Mapping):
            remainder = {key: value for key, value in data.items() if key != SETTINGS_STEM}
            data = merge_mappings(remainder, section)

        allowed_keys = {
            "config",
            "generator",
            "arch",
            "cmake",
            "production",
            "node-bin",
            "node-def",
            "node-lib",
            "node-exp",
            "target",
            "toolchain",
            "wasi-sdk",
            "cmake-args",
        }
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigurationError(f"Settings file contains unknown keys: {joined}")

        def text(key: str) -> str | None:
            value = data.get(key)
            if value is None:
                return None
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"Setting '{key}' must be a non-empty string")
            return value.strip()

        def path(key: str) -> Path | None:
            value = text(key)
            if value is None:
                return None
            candidate = Path(value).expanduser()
            if not candidate.is_absolute():
                candidate = root / candidate
            return candidate

        settings = cls(source=source)
        try:
            config_value = text("config")
            if config_value is not None:
                settings.build_type = parse_build_type(config_value)
            arch_value = text("arch")
            if arch_value is not None:
                settings.arch = parse_arch(arch_value)
        except ArgumentError as exc:
            raise ConfigurationError(str(exc)) from exc

        settings.generator = text("generator")
        settings.node_bin = text("node-bin")
        settings.node_def = path("node-def")
        settings.node_lib = path("node-lib")
        settings.node_exp = path("node-exp")
        settings.wasi_sdk = path("wasi-sdk")

        cmake_value = text("cmake")
        if cmake_value is not None:
            # Bare names are looked up on PATH; anything with a separator is a path.
            if "/" in cmake_value or "\\" in cmake_value:
                settings.cmake = str(path("cmake"))
            else:
                settings.cmake = cmake_value

        production = data.get("production")
        if production is not None:
            if not isinstance(production, bool):
                raise ConfigurationError("Setting 'production' must be a boolean")
            settings.production = production

        target = text("target")
        toolchain = path("toolchain")
        if target is not None and toolchain is not None:
            raise ConfigurationError("Settings 'target' and 'toolchain' are mutually exclusive")
        if target is not None:
            platform = _TARGETS.get(target.lower())
            if platform is None:
                choices = ", ".join(sorted(_TARGETS))
                raise ConfigurationError(f"Setting 'target' must be one of: {choices}")
            settings.platform = platform
        if toolchain is not None:
            settings.toolchain = toolchain
            settings.platform = TargetPlatform.GENERIC

        try:
            settings.cmake_args = normalize_string_list(data.get("cmake-args"), field_name="cmake-args")
        except TypeError as exc:
            raise ConfigurationError(f"Setting {exc}") from exc

        for candidate in (settings.node_def, settings.node_lib, settings.node_exp, settings.toolchain):
            if candidate is not None and not candidate.is_file():
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(candidate))
        if settings.wasi_sdk is not None and not settings.wasi_sdk.is_dir():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(settings.wasi_sdk))

        return settings


def settings_path(root: Path, environ: Mapping[str, str]) -> Path | None:
    explicit = environ.get(SETTINGS_ENV)
    if explicit:
        candidate = Path(explicit).expanduser()
        if not candidate.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(candidate))
        return candidate
    try:
        return find_config_file(root, SETTINGS_STEM)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def load_project_settings(root: Path, environ: Mapping[str, str]) -> ProjectSettings:
    """Load the project's settings file, or empty settings when there is none."""

    path = settings_path(root, environ)
    if path is None:
        return ProjectSettings()
    try:
        data = load_config_file(path)
    except (ValueError, TypeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not read {path}: {exc}") from exc
    return ProjectSettings.from_mapping(data, root=root, source=path)


__all__ = ["ProjectSettings", "SETTINGS_ENV", "SETTINGS_STEM", "load_project_settings", "settings_path"]
