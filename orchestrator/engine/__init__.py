# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Engine components
# PURPOSE: Template resolution and DAG evaluation
# CREATED: 18 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- templates: placeholder parsing and Jinja2-based resolution
- evaluator: dependency graph, cycle detection, layers, ready set
"""

from orchestrator.engine.templates import (
    TemplateToken,
    ParsedTemplate,
    TemplateResolver,
    TemplateValues,
    parse_template,
    strip_suffix,
    get_resolver,
    resolve_template,
)
from orchestrator.engine.evaluator import (
    DAGEvaluator,
    DependencyGraph,
    EvaluationResult,
    GraphBuilder,
    TopologicalSorter,
    get_evaluator,
    find_ready_nodes,
)

__all__ = [
    # Templates
    "TemplateToken",
    "ParsedTemplate",
    "TemplateResolver",
    "TemplateValues",
    "parse_template",
    "strip_suffix",
    "get_resolver",
    "resolve_template",
    # Evaluator
    "DAGEvaluator",
    "DependencyGraph",
    "EvaluationResult",
    "GraphBuilder",
    "TopologicalSorter",
    "get_evaluator",
    "find_ready_nodes",
]
