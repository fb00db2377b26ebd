# ============================================================================
# DAG EVALUATOR
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - DAG dependency resolution and evaluation
# PURPOSE: Build edges, detect cycles, compute layers and ready processes
# CREATED: 18 OCT 2026
# ============================================================================
"""
DAG Evaluator

Core logic for DAG traversal and dependency resolution.

Features:
- Dependency graph construction from process bindings
- Cycle detection (depth-first, reports the offending cycle)
- Topological layers
- Ready process detection
- Transitive dependents (for failure propagation)

The evaluator is stateless - it takes processes and statuses as input and
returns decisions about what should happen next. Node order is always the
declaration order so that every decision is reproducible.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set

from core.contracts import ProcessStatus
from core.errors import CycleError

logger = logging.getLogger(__name__)


class _GraphNode(Protocol):
    name: str

    def upstream_processes(self) -> Set[str]:
        ...


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class DependencyGraph:
    """
    Dependency graph for a workflow.

    A -> B means "B depends on A" (A must finish before B starts).
    Edge lists keep insertion order and hold no duplicates.
    """
    # Node name -> nodes that depend on it
    forward_edges: Dict[str, List[str]] = field(default_factory=dict)

    # Node name -> nodes it depends on
    backward_edges: Dict[str, List[str]] = field(default_factory=dict)

    # All node names, in declaration order
    nodes: List[str] = field(default_factory=list)

    def add_node(self, name: str) -> None:
        if name not in self.forward_edges:
            self.nodes.append(name)
            self.forward_edges[name] = []
            self.backward_edges[name] = []

    def add_edge(self, from_node: str, to_node: str) -> None:
        """Add a dependency edge: to_node depends on from_node."""
        self.add_node(from_node)
        self.add_node(to_node)
        if to_node not in self.forward_edges[from_node]:
            self.forward_edges[from_node].append(to_node)
            self.backward_edges[to_node].append(from_node)

    def get_dependencies(self, name: str) -> List[str]:
        """Get nodes that this node depends on."""
        return self.backward_edges.get(name, [])

    def get_dependents(self, name: str) -> List[str]:
        """Get nodes that depend on this node."""
        return self.forward_edges.get(name, [])

    def descendants(self, name: str) -> List[str]:
        """Every node reachable from name, in declaration order."""
        seen: Set[str] = set()
        queue = deque(self.get_dependents(name))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self.get_dependents(current))
        return [n for n in self.nodes if n in seen]


@dataclass
class EvaluationResult:
    """Result of a ready-set evaluation."""
    ready_nodes: List[str] = field(default_factory=list)
    blocked_nodes: List[str] = field(default_factory=list)


# ============================================================================
# GRAPH BUILDER
# ============================================================================

class GraphBuilder:
    """Builds the dependency graph from process bindings."""

    def build(self, processes: Iterable[_GraphNode]) -> DependencyGraph:
        """
        Args:
            processes: Objects with a name and upstream_processes()

        Returns:
            DependencyGraph instance. Edges from unknown upstream names are
            included so that validation can report them.
        """
        graph = DependencyGraph()
        processes = list(processes)
        for process in processes:
            graph.add_node(process.name)

        for process in processes:
            for upstream in sorted(process.upstream_processes()):
                graph.add_edge(upstream, process.name)

        return graph


# ============================================================================
# TOPOLOGICAL SORT / CYCLE DETECTION
# ============================================================================

class TopologicalSorter:
    """Validates DAG structure and provides topological ordering."""

    def find_cycle(self, graph: DependencyGraph) -> Optional[List[str]]:
        """
        Iterative depth-first search for a cycle.

        Returns:
            The cycle as a closed path (first node repeated at the end),
            or None if the graph is acyclic
        """
        white, grey, black = 0, 1, 2
        color = {node: white for node in graph.nodes}

        for root in graph.nodes:
            if color[root] != white:
                continue
            color[root] = grey
            path: List[str] = [root]
            stack = [(root, iter(graph.get_dependents(root)))]
            while stack:
                node, dependents = stack[-1]
                for dependent in dependents:
                    if color[dependent] == grey:
                        start = path.index(dependent)
                        return path[start:] + [dependent]
                    if color[dependent] == white:
                        color[dependent] = grey
                        path.append(dependent)
                        stack.append((dependent, iter(graph.get_dependents(dependent))))
                        break
                else:
                    stack.pop()
                    path.pop()
                    color[node] = black
        return None

    def validate(self, graph: DependencyGraph) -> None:
        """
        Raises:
            CycleError: If the graph contains a cycle
        """
        cycle = self.find_cycle(graph)
        if cycle:
            raise CycleError(cycle)

    def layers(self, graph: DependencyGraph) -> List[List[str]]:
        """
        Group nodes so that layer k depends only on layers < k.

        Raises:
            CycleError: If the graph contains a cycle
        """
        order = {node: index for index, node in enumerate(graph.nodes)}
        in_degree = {node: len(graph.get_dependencies(node)) for node in graph.nodes}
        current = [node for node in graph.nodes if in_degree[node] == 0]
        layers: List[List[str]] = []
        placed = 0

        while current:
            layers.append(current)
            placed += len(current)
            released: Set[str] = set()
            for node in current:
                for dependent in graph.get_dependents(node):
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        released.add(dependent)
            current = sorted(released, key=order.__getitem__)

        if placed != len(graph.nodes):
            self.validate(graph)
        return layers

    def sort(self, graph: DependencyGraph) -> List[str]:
        return [node for layer in self.layers(graph) for node in layer]


# ============================================================================
# MAIN EVALUATOR
# ============================================================================

class DAGEvaluator:
    """
    Determines which processes can start given the current statuses.

    A process is ready when it is PENDING and every upstream process has
    SUCCEEDED or been SKIPPED.
    """

    def __init__(self):
        self.graph_builder = GraphBuilder()
        self.topo_sorter = TopologicalSorter()

    def dependencies_met(
        self,
        name: str,
        graph: DependencyGraph,
        statuses: Mapping[str, ProcessStatus],
    ) -> bool:
        return all(
            statuses[dep].is_successful()
            for dep in graph.get_dependencies(name)
        )

    def find_ready_nodes(
        self,
        graph: DependencyGraph,
        statuses: Mapping[str, ProcessStatus],
        candidates: Optional[Iterable[str]] = None,
    ) -> EvaluationResult:
        """
        Args:
            graph: Dependency graph
            statuses: Current status of every node
            candidates: Restrict the check to these nodes (default: all)

        Returns:
            EvaluationResult with ready and still-blocked pending nodes
        """
        result = EvaluationResult()
        if candidates is None:
            names = graph.nodes
        else:
            wanted = set(candidates)
            names = [n for n in graph.nodes if n in wanted]
        for name in names:
            if statuses[name] != ProcessStatus.PENDING:
                continue
            if self.dependencies_met(name, graph, statuses):
                result.ready_nodes.append(name)
            else:
                result.blocked_nodes.append(name)
        return result


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_evaluator: Optional[DAGEvaluator] = None


def get_evaluator() -> DAGEvaluator:
    """Get shared evaluator instance."""
    global _evaluator
    if _evaluator is None:
        _evaluator = DAGEvaluator()
    return _evaluator


def find_ready_nodes(
    graph: DependencyGraph,
    statuses: Mapping[str, ProcessStatus],
) -> List[str]:
    """Convenience function returning just the ready node names."""
    return get_evaluator().find_ready_nodes(graph, statuses).ready_nodes


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DependencyGraph",
    "EvaluationResult",
    "GraphBuilder",
    "TopologicalSorter",
    "DAGEvaluator",
    "get_evaluator",
    "find_ready_nodes",
]
