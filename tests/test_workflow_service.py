# ============================================================================
# WORKFLOW SERVICE TESTS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Tests - YAML workflow loading
# PURPOSE: Verify YAML files load into sealed, runnable workflows
# CREATED: 18 OCT 2026
# ============================================================================
"""
Workflow Service Tests

Covers:
1. Loading a YAML file into a sealed Workflow
2. Literal and {from: ...} parameters, input bindings
3. Malformed files and graph errors
4. Directory loading and lookup
5. Running a loaded workflow

Run with:
    pytest tests/test_workflow_service.py -v
"""

import textwrap

import pytest

from core.contracts import ProcessStatus
from core.errors import CycleError, UnboundReferenceError
from orchestrator import run_workflow
from services import WorkflowService, build_workflow


TWO_STEP = """
name: two_step
description: count then dump
processes:
  - name: count
    command: "echo k={p:k} > {o:db}"
    outputs:
      db: "@OUT@/g1.fasta.9.jf"
    params:
      k: 9
  - name: dump
    command: "cat {i:db} {p:extra} > {o:kmers}"
    timeout_seconds: 30
    outputs:
      kmers: "{i:db|%.jf}.kmers.txt"
    inputs:
      db: count.db
    params:
      extra: {from: count.db}
"""


@pytest.fixture
def workflow_file(tmp_path):
    path = tmp_path / "two_step.yaml"
    path.write_text(TWO_STEP.replace("@OUT@", str(tmp_path)))
    return path


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text))
    return path


# ============================================================================
# LOADING
# ============================================================================

class TestLoadFile:
    """YAML file -> sealed Workflow."""

    def test_loads_and_seals(self, workflow_file):
        wf = WorkflowService().load_file(workflow_file)
        assert wf.name == "two_step"
        assert wf.description == "count then dump"
        assert wf.is_sealed
        assert wf.layers() == [["count"], ["dump"]]

    def test_bindings(self, workflow_file):
        wf = WorkflowService().load_file(workflow_file)
        dump = wf.get_process("dump")
        assert str(dump.inputs["db"].source) == "count.db"
        assert dump.params["extra"].is_dependency
        assert dump.timeout_seconds == 30
        assert wf.get_process("count").params["k"].value.render() == "9"

    def test_runs(self, workflow_file, tmp_path):
        wf = WorkflowService().load_file(workflow_file)
        result = run_workflow(wf, max_concurrency=1)
        assert result.success
        kmers = tmp_path / "g1.fasta.9.kmers.txt"
        assert result.get("dump").outputs == {"kmers": str(kmers)}
        assert kmers.read_text() == "k=9\nk=9\n"

    def test_name_defaults_to_file_stem(self, tmp_path):
        path = _write(tmp_path, "hello.yaml", """
            processes:
              - name: hello
                command: echo hi
        """)
        assert WorkflowService().load_file(path).name == "hello"

    def test_bindings_may_point_forward(self, tmp_path):
        wf = build_workflow({
            "processes": [
                {"name": "late", "command": "cp {i:x} {o:y}",
                 "outputs": {"y": "/tmp/y"}, "inputs": {"x": "early.out"}},
                {"name": "early", "command": "touch {o:out}", "outputs": {"out": "/tmp/out"}},
            ]
        })
        assert wf.layers() == [["early"], ["late"]]


class TestInvalidFiles:
    """Malformed files raise ValueError, graph errors keep their type."""

    def test_not_a_mapping(self, tmp_path):
        path = _write(tmp_path, "bad.yaml", "- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            WorkflowService().load_file(path)

    def test_no_processes(self):
        with pytest.raises(ValueError, match="non-empty list"):
            build_workflow({"name": "empty", "processes": []})

    def test_process_without_command(self):
        with pytest.raises(ValueError, match="'name' and 'command'"):
            build_workflow({"processes": [{"name": "x"}]})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="unknown keys"):
            build_workflow({"processes": [{"name": "x", "command": "true", "retries": 3}]})

    def test_bad_reference(self):
        with pytest.raises(ValueError, match="bad reference"):
            build_workflow({"processes": [
                {"name": "x", "command": "cat {i:a}", "inputs": {"a": "nodot"}},
            ]})

    def test_bad_param_mapping(self):
        with pytest.raises(ValueError, match="must be a literal"):
            build_workflow({"processes": [
                {"name": "x", "command": "echo {p:a}", "params": {"a": {"value": 1}}},
            ]})

    def test_float_param_rejected(self):
        with pytest.raises(ValueError):
            build_workflow({"processes": [
                {"name": "x", "command": "echo {p:a}", "params": {"a": 1.5}},
            ]})

    def test_unbound_param(self):
        with pytest.raises(UnboundReferenceError):
            build_workflow({"processes": [{"name": "x", "command": "echo {p:a}"}]})

    def test_cycle(self):
        with pytest.raises(CycleError):
            build_workflow({"processes": [
                {"name": "a", "command": "cp {i:x} {o:y}", "outputs": {"y": "/a"},
                 "inputs": {"x": "b.y"}},
                {"name": "b", "command": "cp {i:x} {o:y}", "outputs": {"y": "/b"},
                 "inputs": {"x": "a.y"}},
            ]})


class TestDirectoryLoading:
    """load_all() reads every workflow file in a directory."""

    def test_load_all_and_lookup(self, tmp_path, workflow_file):
        _write(tmp_path, "broken.yml", "processes: nope\n")
        _write(tmp_path, "hello.yml", """
            name: hello
            processes:
              - name: hello
                command: echo hi
        """)

        service = WorkflowService(str(tmp_path))
        assert service.load_all() == 2
        assert {wf.name for wf in service.list_all()} == {"two_step", "hello"}
        assert service.get_or_raise("hello").get_process("hello").command == "echo hi"
        assert service.get("broken") is None
        with pytest.raises(KeyError):
            service.get_or_raise("missing")

    def test_graph_errors_skip_only_that_file(self, tmp_path):
        _write(tmp_path, "cycle.yaml", """
            name: cycle
            processes:
              - {name: a, command: 'cp {i:x} {o:y}', outputs: {y: /a}, inputs: {x: b.y}}
              - {name: b, command: 'cp {i:x} {o:y}', outputs: {y: /b}, inputs: {x: a.y}}
        """)
        _write(tmp_path, "unbound.yaml", """
            name: unbound
            processes:
              - name: x
                command: echo {p:missing}
        """)
        _write(tmp_path, "good.yaml", """
            name: good
            processes:
              - name: hello
                command: echo hi
        """)

        service = WorkflowService(str(tmp_path))
        assert service.load_all() == 1
        assert [wf.name for wf in service.list_all()] == ["good"]

    def test_missing_directory(self, tmp_path):
        assert WorkflowService(str(tmp_path / "nope")).load_all() == 0

    def test_loaded_record_status(self, workflow_file):
        result = run_workflow(WorkflowService().load_file(workflow_file))
        assert [r.status for r in result.records] == [ProcessStatus.SUCCEEDED] * 2
