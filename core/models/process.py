# ============================================================================
# PROCESS MODEL
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core model - Process node with ports and parameters
# PURPOSE: Declare commands, typed slots and write-once bindings
# CREATED: 18 OCT 2026
# ============================================================================
"""
Process Model

A Process is one external command plus its typed slots:
- Input ports: bound to exactly one upstream output port
- Output ports: path templates, concrete only at run time
- Parameters: bound to a literal (string/int) or an upstream output path

Key concept:
- Process = TEMPLATE (what to run, wired into the graph)
- ExecutionRecord (record.py) = INSTANCE (what happened in one run)

Bindings are write-once. Binding to another process's output is the only
way to create a dependency edge; the Workflow derives its edges from these
bindings when it is sealed.
"""

from typing import Any, Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field, PrivateAttr

from core.contracts import PortDirection, ReferenceKind
from core.errors import DuplicateDeclarationError, GraphSealedError, RebindError
from core.models.values import ParamValue, to_param_value
from orchestrator.engine.templates import ParsedTemplate, parse_template


# ============================================================================
# PORTS AND PARAMETERS
# ============================================================================

class OutputRef(BaseModel):
    """Reference to an output port of another process."""
    process: str = Field(..., min_length=1)
    port: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.process}.{self.port}"

    @classmethod
    def parse(cls, text: str) -> "OutputRef":
        """Parse 'process.port'. The process name may itself contain dots."""
        process, sep, port = text.rpartition(".")
        if not sep or not process or not port:
            raise ValueError(f"Output reference must look like 'process.port', got '{text}'")
        return cls(process=process, port=port)


class InputPort(BaseModel):
    """Input slot, fed by exactly one upstream output port."""
    name: str
    direction: PortDirection = PortDirection.INPUT
    source: Optional[OutputRef] = None

    @property
    def is_bound(self) -> bool:
        return self.source is not None


class OutputPort(BaseModel):
    """Output slot whose path is a template resolved at run time."""
    name: str
    direction: PortDirection = PortDirection.OUTPUT
    path_template: Optional[str] = None

    _parsed: Optional[ParsedTemplate] = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        if self.path_template is not None:
            self._parsed = parse_template(self.path_template)

    @property
    def template(self) -> Optional[ParsedTemplate]:
        return self._parsed


class Parameter(BaseModel):
    """Named scalar slot: a literal value or an upstream output path."""
    name: str
    value: Optional[ParamValue] = None
    source: Optional[OutputRef] = None

    @property
    def is_bound(self) -> bool:
        return self.value is not None or self.source is not None

    @property
    def is_dependency(self) -> bool:
        return self.source is not None


UpstreamSpec = Union["Process", str, OutputRef]


# ============================================================================
# PROCESS
# ============================================================================

class Process(BaseModel):
    """
    A declared unit of work wrapping one external command template.

    Lifecycle:
        1. Created and declared during graph assembly
        2. Bound to upstream outputs and literal parameters
        3. Sealed by Workflow.seal() - immutable from then on
    """
    name: str = Field(..., min_length=1, max_length=256)
    command: str = Field(..., min_length=1)
    inputs: Dict[str, InputPort] = Field(default_factory=dict)
    outputs: Dict[str, OutputPort] = Field(default_factory=dict)
    params: Dict[str, Parameter] = Field(default_factory=dict)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None

    _command_template: Optional[ParsedTemplate] = PrivateAttr(default=None)
    _sealed: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: Any) -> None:
        self._command_template = parse_template(self.command)

    @classmethod
    def from_command(cls, name: str, command: str, **kwargs) -> "Process":
        """
        Create a process and declare every slot its command references.

        Output ports are declared without a path; call set_output() for each.
        """
        process = cls(name=name, command=command, **kwargs)
        process._declare_referenced(process.command_template)
        for token in process.command_template.tokens:
            if token.kind == ReferenceKind.OUTPUT and token.name not in process.outputs:
                process.outputs[token.name] = OutputPort(name=token.name)
        return process

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def command_template(self) -> ParsedTemplate:
        return self._command_template

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def out(self, name: str) -> OutputRef:
        """Reference to one of this process's output ports."""
        if name not in self.outputs:
            raise KeyError(f"Process '{self.name}' has no output port '{name}'")
        return OutputRef(process=self.name, port=name)

    def upstream_refs(self) -> List[OutputRef]:
        """Every upstream output this process consumes, in declaration order."""
        refs = [port.source for port in self.inputs.values() if port.source is not None]
        refs.extend(p.source for p in self.params.values() if p.source is not None)
        return refs

    def upstream_processes(self) -> Set[str]:
        return {ref.process for ref in self.upstream_refs()}

    # =========================================================================
    # DECLARATION
    # =========================================================================

    def declare_input(self, name: str) -> InputPort:
        self._check_mutable()
        self._check_unique(name, self.inputs)
        port = InputPort(name=name)
        self.inputs[name] = port
        return port

    def declare_output(self, name: str, path_template: str) -> OutputPort:
        self._check_mutable()
        self._check_unique(name, self.outputs)
        port = OutputPort(name=name, path_template=path_template)
        self.outputs[name] = port
        return port

    def set_output(self, name: str, path_template: str) -> OutputPort:
        """
        Declare an output, or give a path to one declared from the command.

        Parameters and input ports the path references are declared too,
        as from_command() does for the command.
        """
        self._check_mutable()
        existing = self.outputs.get(name)
        if existing is not None and existing.path_template is not None:
            raise RebindError(self.name, name, kind="output port")
        port = OutputPort(name=name, path_template=path_template)
        self.outputs[name] = port
        self._declare_referenced(port.template)
        return port

    def declare_param(self, name: str) -> Parameter:
        self._check_mutable()
        self._check_unique(name, self.params)
        param = Parameter(name=name)
        self.params[name] = param
        return param

    # =========================================================================
    # BINDING
    # =========================================================================

    def bind_input(
        self,
        name: str,
        from_process: UpstreamSpec,
        from_output: Optional[str] = None,
    ) -> InputPort:
        """Feed input port `name` from an upstream output port."""
        self._check_mutable()
        port = self.inputs.get(name)
        if port is None:
            raise KeyError(f"Process '{self.name}' has no input port '{name}'")
        if port.is_bound:
            raise RebindError(self.name, name, kind="input port")
        port.source = self._make_ref(from_process, from_output)
        return port

    def bind_param_literal(self, name: str, value: Union[str, int]) -> Parameter:
        """Bind parameter `name` to a literal string or integer."""
        self._check_mutable()
        param = self._get_param(name)
        if param.is_bound:
            raise RebindError(self.name, name, kind="parameter")
        param.value = to_param_value(value)
        return param

    def bind_param_from_output(
        self,
        name: str,
        from_process: UpstreamSpec,
        from_output: Optional[str] = None,
    ) -> Parameter:
        """Bind parameter `name` to the resolved path of an upstream output."""
        self._check_mutable()
        param = self._get_param(name)
        if param.is_bound:
            raise RebindError(self.name, name, kind="parameter")
        param.source = self._make_ref(from_process, from_output)
        return param

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_references(self) -> List[str]:
        """
        Check templates and bindings against declared slots.

        Returns list of problems (empty if valid).
        """
        problems = []
        declared = {
            ReferenceKind.PARAM: self.params,
            ReferenceKind.INPUT: self.inputs,
            ReferenceKind.OUTPUT: self.outputs,
        }

        for token in self.command_template.tokens:
            if token.name not in declared[token.kind]:
                problems.append(
                    f"Process '{self.name}': command references undeclared "
                    f"{token.kind.label} '{token.name}'"
                )

        for port in self.outputs.values():
            if port.template is None:
                problems.append(
                    f"Process '{self.name}': output port '{port.name}' has no path template"
                )
                continue
            for token in port.template.tokens:
                if token.kind == ReferenceKind.OUTPUT:
                    problems.append(
                        f"Process '{self.name}': output '{port.name}' path may not "
                        f"reference output port '{token.name}'"
                    )
                elif token.name not in declared[token.kind]:
                    problems.append(
                        f"Process '{self.name}': output '{port.name}' path references "
                        f"undeclared {token.kind.label} '{token.name}'"
                    )

        for port in self.inputs.values():
            if not port.is_bound:
                problems.append(f"Process '{self.name}': input port '{port.name}' is unbound")

        for param in self.params.values():
            if not param.is_bound:
                problems.append(f"Process '{self.name}': parameter '{param.name}' is unbound")

        return problems

    def seal(self) -> None:
        self._sealed = True

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _check_mutable(self) -> None:
        if self._sealed:
            raise GraphSealedError(f"Process '{self.name}' is sealed and cannot be modified")

    def _declare_referenced(self, template: ParsedTemplate) -> None:
        for token in template.tokens:
            if token.kind == ReferenceKind.PARAM and token.name not in self.params:
                self.declare_param(token.name)
            elif token.kind == ReferenceKind.INPUT and token.name not in self.inputs:
                self.declare_input(token.name)

    def _check_unique(self, name: str, slots: Dict[str, Any]) -> None:
        if name in slots:
            raise DuplicateDeclarationError(self.name, name)

    def _get_param(self, name: str) -> Parameter:
        param = self.params.get(name)
        if param is None:
            raise KeyError(f"Process '{self.name}' has no parameter '{name}'")
        return param

    def _make_ref(self, from_process: UpstreamSpec, from_output: Optional[str]) -> OutputRef:
        if isinstance(from_process, OutputRef):
            if from_output is not None:
                raise ValueError("from_output must be omitted when passing an OutputRef")
            return from_process
        if from_output is None:
            raise ValueError("from_output is required when binding to a process")
        if isinstance(from_process, Process):
            return from_process.out(from_output)
        return OutputRef(process=from_process, port=from_output)

    def __repr__(self) -> str:
        return f"Process(name={self.name!r}, command={self.command!r})"


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "OutputRef",
    "InputPort",
    "OutputPort",
    "Parameter",
    "Process",
]
