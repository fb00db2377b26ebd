# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Loading layer
# PURPOSE: Workflow file services
# CREATED: 18 OCT 2026
# ============================================================================
"""
Services Module

Usage:
    from services import WorkflowService

    workflow = WorkflowService().load_file("workflows/kleuren.yaml")
"""

from .workflow_service import WorkflowService, build_workflow

__all__ = [
    "WorkflowService",
    "build_workflow",
]
