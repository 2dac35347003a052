"""Exception types raised by cmake-node."""
from __future__ import annotations


class CMakeNodeError(RuntimeError):
    """Base class for errors reported to the user with exit status 1."""


class ArgumentError(CMakeNodeError):
    """Malformed, unknown or incomplete command line input."""


class ConfigurationError(CMakeNodeError):
    """Inconsistent or invalid build configuration."""


class ProjectError(CMakeNodeError):
    """The project directory is not in the state a command requires."""


class ToolchainError(CMakeNodeError):
    """A required external tool could not be used."""


class ArtifactError(CMakeNodeError):
    """An import library could not be synthesized."""


class ProcessExit(Exception):
    """An external tool exited unsuccessfully.

    Carries the child's return code so the CLI can exit with the same status
    instead of translating it into a message.
    """

    def __init__(self, returncode: int, command: str | None = None):
        super().__init__(f"{command or 'command'} exited with status {returncode}")
        self.returncode = returncode
        self.command = command


__all__ = [
    "ArgumentError",
    "ArtifactError",
    "CMakeNodeError",
    "ConfigurationError",
    "ProcessExit",
    "ProjectError",
    "ToolchainError",
]
