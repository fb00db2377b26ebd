# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core module initialization
# PURPOSE: Export core contracts and errors
# CREATED: 18 OCT 2026
# ============================================================================
"""
Core Module

Only the leaf modules are re-exported here. Models live in core.models,
which depends on the template engine in orchestrator.engine.
"""

from core.contracts import ProcessStatus, RunStatus, PortDirection, ReferenceKind
from core.errors import (
    WorkflowError,
    RebindError,
    DuplicateDeclarationError,
    GraphSealedError,
    DuplicateProcessError,
    UnboundReferenceError,
    CycleError,
    TemplateError,
    ExternalProcessError,
)

__all__ = [
    # Enums
    "ProcessStatus",
    "RunStatus",
    "PortDirection",
    "ReferenceKind",
    # Errors
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
