# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Scheduler driving a sealed workflow
# PURPOSE: Execute processes with bounded concurrency
# CREATED: 18 OCT 2026
# ============================================================================
"""
Orchestrator Module

The scheduling loop that drives workflow execution.

Usage:
    from orchestrator import Scheduler, run_workflow

    result = run_workflow(workflow, max_concurrency=4)
    # or, inside an event loop:
    result = await Scheduler(workflow, max_concurrency=4).run()

The scheduler is imported lazily: the models import the template engine
from this package, and the scheduler imports the models.
"""

__all__ = ["Scheduler", "run_workflow"]


def __getattr__(name):
    if name in __all__:
        from orchestrator import loop
        return getattr(loop, name)
    raise AttributeError(f"module 'orchestrator' has no attribute '{name}'")
