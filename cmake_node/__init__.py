"""CMake front end for building Node.js native addons."""
from __future__ import annotations

__version__ = "0.1.0"

from .cli import main

__all__ = ["__version__", "main"]
