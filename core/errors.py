# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Foundation - Exceptions raised by graph assembly and execution
# PURPOSE: One exception per failure class, all rooted at WorkflowError
# CREATED: 18 OCT 2026
# ============================================================================
"""
Error Taxonomy

Construction-time errors (raised to the caller, abort the run before it starts):
- RebindError, DuplicateDeclarationError, GraphSealedError
- DuplicateProcessError, UnboundReferenceError, CycleError

Runtime errors (caught by the scheduler, recorded on one process):
- TemplateError
- ExternalProcessError
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base exception for all pipeline engine errors."""
    pass


# ============================================================================
# CONSTRUCTION-TIME ERRORS
# ============================================================================

class RebindError(WorkflowError):
    """Raised when a port or parameter that is already bound is bound again."""

    def __init__(self, process: str, slot: str, kind: str = "port"):
        self.process = process
        self.slot = slot
        self.kind = kind
        super().__init__(f"{kind} '{slot}' of process '{process}' is already bound")


class DuplicateDeclarationError(WorkflowError):
    """Raised when a process declares the same port or parameter name twice."""

    def __init__(self, process: str, slot: str):
        self.process = process
        self.slot = slot
        super().__init__(f"Process '{process}' already declares '{slot}'")


class GraphSealedError(WorkflowError):
    """Raised on any mutation after the workflow has been sealed."""
    pass


class DuplicateProcessError(WorkflowError):
    """Raised when two processes share a name or a statically resolved output path."""
    pass


class UnboundReferenceError(WorkflowError):
    """
    Raised by seal() when a template or binding cannot be satisfied.

    Carries every problem found so a caller can fix the whole graph at once.
    """

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class CycleError(WorkflowError):
    """Raised by seal() when process dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cycle detected: {' -> '.join(self.cycle)}")


# ============================================================================
# RUNTIME ERRORS
# ============================================================================

class TemplateError(WorkflowError):
    """Raised when a placeholder cannot be resolved to a concrete value."""
    pass


class ExternalProcessError(WorkflowError):
    """Raised when a command exits non-zero or does not write its outputs."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        missing_outputs: Optional[List[str]] = None,
    ):
        self.exit_code = exit_code
        self.missing_outputs = list(missing_outputs or [])
        super().__init__(message)


__all__ = [
    "WorkflowError",
    "RebindError",
    "DuplicateDeclarationError",
    "GraphSealedError",
    "DuplicateProcessError",
    "UnboundReferenceError",
    "CycleError",
    "TemplateError",
    "ExternalProcessError",
]
