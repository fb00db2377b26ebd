# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Foundation - Core enums shared by models and scheduler
# PURPOSE: Define process status, port direction and placeholder kinds
# CREATED: 18 OCT 2026
# ============================================================================
"""
Base contracts for the pipeline engine.

These enums cross every layer:
- Graph assembly (port direction, placeholder kinds)
- Scheduling (process status)
- Reporting (run status)
"""

from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class ProcessStatus(str, Enum):
    """
    Process lifecycle states within a single run.

    State transitions:
        PENDING -> READY -> RUNNING -> SUCCEEDED
                                    -> SKIPPED (outputs already up to date)
                                    -> FAILED
                -> ABORTED (an upstream process failed)
    """
    PENDING = "pending"          # Waiting for upstream processes
    READY = "ready"              # All upstreams succeeded or skipped
    RUNNING = "running"          # Dispatched to a worker slot
    SUCCEEDED = "succeeded"      # Command exited 0 and wrote all outputs
    SKIPPED = "skipped"          # Outputs already present and fresh
    FAILED = "failed"            # Template, exit status or missing output
    ABORTED = "aborted"          # Never ran because an ancestor failed

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (
            ProcessStatus.SUCCEEDED,
            ProcessStatus.SKIPPED,
            ProcessStatus.FAILED,
            ProcessStatus.ABORTED,
        )

    def is_successful(self) -> bool:
        """Check if outputs of this process are available to dependents."""
        return self in (ProcessStatus.SUCCEEDED, ProcessStatus.SKIPPED)


class RunStatus(str, Enum):
    """Overall outcome of a run."""
    SUCCESS = "success"
    FAILED = "failed"


# ============================================================================
# GRAPH ENUMS
# ============================================================================

class PortDirection(str, Enum):
    """Direction of a port on a process."""
    INPUT = "input"
    OUTPUT = "output"


class ReferenceKind(str, Enum):
    """
    Kind of a placeholder inside a command or output-path template.

    The value is the prefix used in template text: {p:k}, {i:db}, {o:out}.
    """
    PARAM = "p"
    INPUT = "i"
    OUTPUT = "o"

    @property
    def label(self) -> str:
        return {
            ReferenceKind.PARAM: "parameter",
            ReferenceKind.INPUT: "input port",
            ReferenceKind.OUTPUT: "output port",
        }[self]


__all__ = [
    "ProcessStatus",
    "RunStatus",
    "PortDirection",
    "ReferenceKind",
]
