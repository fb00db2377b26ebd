# ============================================================================
# WORKFLOW SERVICE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Workflow file loading
# PURPOSE: Load workflow graphs from YAML files and cache them
# CREATED: 18 OCT 2026
# ============================================================================
"""
Workflow Service

Loads workflow graphs from YAML files. Each file describes one workflow:

    name: two_step
    description: optional text
    processes:
      - name: count
        command: "jellyfish count -m {p:k} -o {o:db} {p:genome}"
        outputs:
          db: "{p:genome|%.fasta}.jf"
        params:
          k: 9
          genome: data/g1.fasta
      - name: dump
        command: "jellyfish dump -o {o:kmers} {i:db}"
        timeout_seconds: 600
        outputs:
          kmers: "{i:db|%.jf}.kmers"
        inputs:
          db: count.db
        params:
          other: {from: count.db}

Every slot a command references is declared automatically. Parameters are
literals (string or integer) or `{from: process.port}` bindings. The loaded
workflow is sealed, so graph errors surface at load time.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.errors import WorkflowError
from core.models import OutputRef, Process, Workflow

logger = logging.getLogger(__name__)

_PROCESS_KEYS = {"name", "command", "outputs", "inputs", "params", "timeout_seconds", "description"}


class WorkflowService:
    """Service for loading and managing workflow files."""

    def __init__(self, workflows_dir: Optional[str] = None):
        """
        Initialize workflow service.

        Args:
            workflows_dir: Directory containing workflow YAML files.
                          Defaults to ./workflows/
        """
        self.workflows_dir = Path(workflows_dir or "workflows")
        self._cache: Dict[str, Workflow] = {}
        self._loaded = False

    def load_all(self) -> int:
        """
        Load every *.yaml / *.yml file in the workflows directory.

        Files that fail to load are logged and skipped.

        Returns:
            Number of workflows loaded
        """
        if not self.workflows_dir.exists():
            logger.warning(f"Workflows directory not found: {self.workflows_dir}")
            return 0

        count = 0
        files = sorted(self.workflows_dir.glob("*.yaml")) + sorted(self.workflows_dir.glob("*.yml"))
        for yaml_file in files:
            try:
                workflow = self.load_file(yaml_file)
            except (ValueError, OSError, yaml.YAMLError, WorkflowError) as e:
                logger.error(f"Failed to load {yaml_file}: {e}")
                continue
            self._cache[workflow.name] = workflow
            count += 1

        self._loaded = True
        logger.info(f"Loaded {count} workflows from {self.workflows_dir}")
        return count

    def get(self, name: str) -> Optional[Workflow]:
        if not self._loaded:
            self.load_all()
        return self._cache.get(name)

    def get_or_raise(self, name: str) -> Workflow:
        """
        Get a workflow by name.

        Raises:
            KeyError if workflow not found
        """
        workflow = self.get(name)
        if workflow is None:
            raise KeyError(f"Workflow not found: {name}")
        return workflow

    def list_all(self) -> List[Workflow]:
        if not self._loaded:
            self.load_all()
        return list(self._cache.values())

    def load_file(self, path) -> Workflow:
        """
        Load and seal a workflow from a YAML file.

        Raises:
            ValueError: Malformed file
            yaml.YAMLError: Not valid YAML
            WorkflowError: Graph errors raised by seal()
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Invalid workflow in {path}: expected a mapping at top level")
        data.setdefault("name", path.stem)

        workflow = build_workflow(data, source=str(path))
        logger.info(f"Loaded workflow: {workflow.name} ({len(workflow.processes)} processes)")
        return workflow


# ============================================================================
# PARSING
# ============================================================================

def build_workflow(data: Dict[str, Any], source: str = "<dict>") -> Workflow:
    """
    Build a sealed Workflow from its dict form.

    Processes are added first, then bound, so bindings may point at
    processes declared later in the file.
    """
    processes = data.get("processes")
    if not isinstance(processes, list) or not processes:
        raise ValueError(f"Invalid workflow in {source}: 'processes' must be a non-empty list")

    workflow = Workflow(name=str(data.get("name", "workflow")), description=data.get("description"))

    pending = []
    for index, entry in enumerate(processes):
        if not isinstance(entry, dict) or "name" not in entry or "command" not in entry:
            raise ValueError(
                f"Invalid workflow in {source}: process #{index} needs 'name' and 'command'"
            )
        unknown = set(entry) - _PROCESS_KEYS
        if unknown:
            raise ValueError(
                f"Invalid workflow in {source}: process '{entry['name']}' "
                f"has unknown keys {sorted(unknown)}"
            )

        process = workflow.new_process(
            str(entry["name"]),
            str(entry["command"]),
            timeout_seconds=entry.get("timeout_seconds"),
            description=entry.get("description"),
        )
        for port, path in _mapping(entry, "outputs", source).items():
            process.set_output(port, str(path))
        pending.append((process, entry))

    for process, entry in pending:
        _bind(process, entry, source)

    return workflow.seal()


def _bind(process: Process, entry: Dict[str, Any], source: str) -> None:
    for port, ref in _mapping(entry, "inputs", source).items():
        if port not in process.inputs:
            process.declare_input(port)
        process.bind_input(port, _parse_ref(ref, process.name, source))

    for name, value in _mapping(entry, "params", source).items():
        if name not in process.params:
            process.declare_param(name)
        if isinstance(value, dict):
            if set(value) != {"from"}:
                raise ValueError(
                    f"Invalid workflow in {source}: parameter '{name}' of "
                    f"'{process.name}' must be a literal or {{from: process.port}}"
                )
            process.bind_param_from_output(name, _parse_ref(value["from"], process.name, source))
        else:
            try:
                process.bind_param_literal(name, value)
            except TypeError as e:
                raise ValueError(f"Invalid workflow in {source}: {e}") from e


def _mapping(entry: Dict[str, Any], key: str, source: str) -> Dict[str, Any]:
    value = entry.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(
            f"Invalid workflow in {source}: '{key}' of '{entry.get('name')}' must be a mapping"
        )
    return value


def _parse_ref(text: Any, process: str, source: str) -> OutputRef:
    try:
        return OutputRef.parse(str(text))
    except ValueError as e:
        raise ValueError(
            f"Invalid workflow in {source}: bad reference '{text}' in '{process}'"
        ) from e


__all__ = ["WorkflowService", "build_workflow"]
