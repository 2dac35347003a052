"""Idempotent directory creation and robust recursive removal.

Removal retries a small set of transient errors raised while another process
(an indexer, an antivirus scanner, a slow-closing editor) briefly holds a file.
Nothing stops such a process from reopening the file between attempts, so a
removal can still fail after the retries run out.
"""
from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Iterable, List, TypeVar
import errno
import os
import re
import stat
import time

T = TypeVar("T")

TRANSIENT_ERRORS = frozenset(
    {
        errno.EBUSY,
        errno.ENOTEMPTY,
        errno.EPERM,
        errno.EACCES,
        errno.EMFILE,
        errno.ENFILE,
    }
)

RETRY_ATTEMPTS = 5
RETRY_DELAY = 0.1

# Outputs kept by a production clean.
PRESERVED_OUTPUT = re.compile(r"\.(?:dll|dylib|node|wasm|so(?:\.\d+)*)$", re.IGNORECASE)

Exclude = Callable[[Path], bool]


def mkdirp(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_preserved_output(path: Path) -> bool:
    return PRESERVED_OUTPUT.search(Path(path).name) is not None


def glob_exclude(patterns: Iterable[str]) -> Exclude:
    """Build an exclusion predicate matching file names against glob patterns."""

    compiled = tuple(patterns)

    def _matches(path: Path) -> bool:
        name = Path(path).name
        return any(fnmatch(name, pattern) for pattern in compiled)

    return _matches


def _make_writable(path: str) -> None:
    try:
        mode = os.lstat(path).st_mode
        os.chmod(path, mode | stat.S_IWRITE)
    except OSError:
        pass


def retry(operation: Callable[[str], T], path: str, *, attempts: int = RETRY_ATTEMPTS, delay: float = RETRY_DELAY) -> T | None:
    """Run ``operation(path)``, retrying transient errors ``attempts`` more times.

    A path that no longer exists counts as success.
    """

    for attempt in range(attempts + 1):
        try:
            return operation(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            if exc.errno not in TRANSIENT_ERRORS or attempt >= attempts:
                raise
            if exc.errno in (errno.EPERM, errno.EACCES):
                _make_writable(path)
            if delay:
                time.sleep(delay * (attempt + 1))
    return None


def remove_tree(path: Path, *, exclude: Exclude | None = None) -> bool:
    """Recursively remove ``path``.

    Files for which ``exclude`` returns true are kept, along with the
    directories containing them. Returns ``True`` when ``path`` is gone.
    """

    target = str(path)
    try:
        info = os.lstat(target)
    except FileNotFoundError:
        return True

    if not stat.S_ISDIR(info.st_mode):
        if exclude is not None and exclude(Path(target)):
            return False
        retry(os.unlink, target)
        return True

    removed_all = True
    with os.scandir(target) as entries:
        children = [entry.path for entry in entries]
    for child in children:
        if not remove_tree(Path(child), exclude=exclude):
            removed_all = False

    if removed_all:
        retry(os.rmdir, target)
    return removed_all


def remove_file(path: Path) -> bool:
    """Remove a single file if present. Returns whether something was removed."""

    target = str(path)
    if not os.path.lexists(target):
        return False
    retry(os.unlink, target)
    return True


def list_paths(directory: Path, *, suffix: str | None = None) -> List[Path]:
    """List files directly inside ``directory``, as paths prefixed by it."""

    root = Path(directory)
    if not root.is_dir():
        return []
    results: List[Path] = []
    for name in sorted(os.listdir(root)):
        candidate = root / name
        if not candidate.is_file():
            continue
        if suffix and not name.lower().endswith(suffix.lower()):
            continue
        results.append(candidate)
    return results


__all__ = [
    "PRESERVED_OUTPUT",
    "RETRY_ATTEMPTS",
    "TRANSIENT_ERRORS",
    "glob_exclude",
    "is_preserved_output",
    "list_paths",
    "mkdirp",
    "remove_file",
    "remove_tree",
    "retry",
]
