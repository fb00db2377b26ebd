# ============================================================================
# FILESYSTEM ACCESS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Infrastructure - Local filesystem operations for workers
# PURPOSE: exists/mtime/glob/remove and the output freshness rule
# CREATED: 18 OCT 2026
# ============================================================================
"""
Filesystem Access

The engine only ever asks the filesystem four things:
- does a path exist
- when was it last modified
- which files match a pattern (input discovery, before graph construction)
- remove a leftover output

FileSystem is the interface; LocalFileSystem is the implementation used in
production and in the scheduler tests. outputs_up_to_date() is the skip rule
applied by every worker slot before running a command.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Protocol

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Filesystem operations the engine depends on."""

    def exists(self, path: str) -> bool:
        ...

    def mtime(self, path: str) -> float:
        ...

    def glob(self, directory: str, pattern: str) -> List[str]:
        ...

    def remove(self, path: str) -> bool:
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def mtime(self, path: str) -> float:
        return os.stat(path).st_mtime

    def glob(self, directory: str, pattern: str) -> List[str]:
        """Absolute, sorted paths in directory matching pattern."""
        base = Path(directory).resolve()
        return sorted(str(p) for p in base.glob(pattern) if p.is_file())

    def remove(self, path: str) -> bool:
        """Remove a file. Returns False if it did not exist."""
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False


def outputs_up_to_date(
    fs: FileSystem,
    outputs: Iterable[str],
    inputs: Iterable[str],
) -> bool:
    """
    Skip rule: every output exists and none is older than any input.

    A process without declared outputs is never up to date. A missing input
    also forces a re-run.
    """
    outputs = list(outputs)
    if not outputs:
        return False
    if not all(fs.exists(path) for path in outputs):
        return False

    input_times = []
    for path in inputs:
        if not fs.exists(path):
            logger.debug(f"Input {path} missing, outputs considered stale")
            return False
        input_times.append(fs.mtime(path))

    if not input_times:
        return True

    oldest_output = min(fs.mtime(path) for path in outputs)
    return oldest_output >= max(input_times)


__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "outputs_up_to_date",
]
