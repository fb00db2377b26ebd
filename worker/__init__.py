# ============================================================================
# WORKER MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Worker execution components
# PURPOSE: External command execution and filesystem checks
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Module

Components used by each worker slot:
- executor: runs a resolved command line as a child process
- filesystem: exists/mtime/glob/remove and the skip rule
"""

from worker.executor import (
    CommandResult,
    CommandExecutor,
)
from worker.filesystem import (
    FileSystem,
    LocalFileSystem,
    outputs_up_to_date,
)

__all__ = [
    # Executor
    "CommandResult",
    "CommandExecutor",
    # Filesystem
    "FileSystem",
    "LocalFileSystem",
    "outputs_up_to_date",
]
