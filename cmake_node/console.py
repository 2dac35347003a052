"""
Console output handler for cmake-node.
"""
import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'warn'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "warn", dry_run: bool = False):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self.level = self.LEVELS[level]
        self.dry_run = dry_run

    def warn(self, message: str) -> None:
        if self.level >= self.LEVELS["warn"]:
            print(f"[WARN] {message}", file=sys.stderr)

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")
