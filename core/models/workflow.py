# ============================================================================
# WORKFLOW GRAPH MODEL
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core model - Process set plus derived dependency edges
# PURPOSE: Assemble processes, validate them and freeze the graph
# CREATED: 18 OCT 2026
# ============================================================================
"""
Workflow Graph Model

A Workflow holds processes in declaration order. Edges are never declared
directly: they are derived from input-port and parameter bindings when the
workflow is sealed.

seal() checks, in order:
1. Every template reference is declared, every slot is bound
2. Every binding points at an existing process and output port
3. No two processes declare the same output path, once paths built
   only from literal parameters are resolved
4. The derived edges form a DAG

After seal() the workflow and its processes are immutable.
"""

import os
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from core.contracts import ReferenceKind
from core.errors import (
    DuplicateProcessError,
    GraphSealedError,
    UnboundReferenceError,
)
from core.models.process import Process
from orchestrator.engine.evaluator import DependencyGraph, get_evaluator
from orchestrator.engine.templates import ParsedTemplate, resolve_template


class Workflow(BaseModel):
    """
    A set of processes and the dependency edges implied by their bindings.

    This is the TEMPLATE a run executes. Each run creates one
    ExecutionRecord per process.
    """
    name: str = Field(default="workflow", max_length=128)
    description: Optional[str] = None
    processes: Dict[str, Process] = Field(default_factory=dict)

    _sealed: bool = PrivateAttr(default=False)
    _graph: Optional[DependencyGraph] = PrivateAttr(default=None)
    _layers: List[List[str]] = PrivateAttr(default_factory=list)

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    def add_process(self, process: Process) -> Process:
        """Add a process. Names must be unique within the workflow."""
        self._check_mutable()
        if process.name in self.processes:
            raise DuplicateProcessError(
                f"Workflow '{self.name}' already has a process named '{process.name}'"
            )
        self.processes[process.name] = process
        return process

    def new_process(self, name: str, command: str, **kwargs) -> Process:
        """Create a process, declaring every slot its command references."""
        return self.add_process(Process.from_command(name, command, **kwargs))

    def get_process(self, name: str) -> Process:
        if name not in self.processes:
            raise KeyError(f"Process '{name}' not found in workflow '{self.name}'")
        return self.processes[name]

    def iter_processes(self) -> Iterator[Process]:
        return iter(self.processes.values())

    @property
    def process_names(self) -> List[str]:
        return list(self.processes)

    # =========================================================================
    # SEALING
    # =========================================================================

    def validate_structure(self) -> List[str]:
        """
        Validate references and bindings.

        Returns list of validation errors (empty if valid).
        """
        errors = []
        for process in self.processes.values():
            errors.extend(process.validate_references())

            for ref in process.upstream_refs():
                upstream = self.processes.get(ref.process)
                if upstream is None:
                    errors.append(
                        f"Process '{process.name}': bound to unknown process '{ref.process}'"
                    )
                elif ref.port not in upstream.outputs:
                    errors.append(
                        f"Process '{process.name}': bound to undeclared output '{ref}'"
                    )
        return errors

    def seal(self) -> "Workflow":
        """
        Validate the workflow and make it immutable.

        Raises:
            UnboundReferenceError: Undeclared or unbound references
            DuplicateProcessError: Two processes write the same static path
            CycleError: Dependency edges form a cycle
        """
        if self._sealed:
            return self

        errors = self.validate_structure()
        if errors:
            raise UnboundReferenceError(errors)

        self._check_output_paths()

        evaluator = get_evaluator()
        graph = evaluator.graph_builder.build(self.processes.values())
        evaluator.topo_sorter.validate(graph)

        self._graph = graph
        self._layers = evaluator.topo_sorter.layers(graph)
        for process in self.processes.values():
            process.seal()
        self._sealed = True
        return self

    def _check_output_paths(self) -> None:
        owners: Dict[str, str] = {}
        for process in self.processes.values():
            for port in process.outputs.values():
                path = self._static_output_path(process, port.template)
                if path is None:
                    continue
                owner = owners.get(path)
                if owner is not None and owner != process.name:
                    raise DuplicateProcessError(
                        f"Output path '{path}' is written by both "
                        f"'{owner}' and '{process.name}'"
                    )
                owners[path] = process.name

    @staticmethod
    def _static_output_path(process: Process, template: Optional[ParsedTemplate]) -> Optional[str]:
        """Resolve an output path that depends only on literal parameters."""
        if template is None:
            return None
        literals = {}
        for token in template.tokens:
            param = process.params.get(token.name)
            if token.kind != ReferenceKind.PARAM or param is None or param.value is None:
                return None
            literals[token.name] = param.value.render()
        return os.path.normpath(resolve_template(template, params=literals))

    # =========================================================================
    # GRAPH QUERIES (sealed only)
    # =========================================================================

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def graph(self) -> DependencyGraph:
        self._check_sealed()
        return self._graph

    def layers(self) -> List[List[str]]:
        """Topological layers: layer 0 has no dependencies."""
        self._check_sealed()
        return [list(layer) for layer in self._layers]

    def dependencies(self, name: str) -> List[str]:
        return list(self.graph.get_dependencies(name))

    def dependents(self, name: str) -> List[str]:
        return list(self.graph.get_dependents(name))

    def descendants(self, name: str) -> List[str]:
        return self.graph.descendants(name)

    def _check_mutable(self) -> None:
        if self._sealed:
            raise GraphSealedError(f"Workflow '{self.name}' is sealed and cannot be modified")

    def _check_sealed(self) -> None:
        if not self._sealed:
            raise GraphSealedError(f"Workflow '{self.name}' must be sealed first")


__all__ = ["Workflow"]
