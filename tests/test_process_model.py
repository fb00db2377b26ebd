# ============================================================================
# PROCESS MODEL TESTS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Tests - Ports, parameters and binding rules
# PURPOSE: Verify declaration, write-once binding and reference checks
# CREATED: 18 OCT 2026
# ============================================================================
"""
Process Model Tests

Covers:
1. Parameter values (tagged string/integer union)
2. Declaring slots explicitly and from the command template
3. Write-once binding (RebindError) and unknown slots
4. validate_references() problem reporting
5. Execution record state transitions

Run with:
    pytest tests/test_process_model.py -v
"""

from datetime import timedelta

import pytest
from pydantic import TypeAdapter, ValidationError

from core.contracts import ProcessStatus
from core.errors import DuplicateDeclarationError, GraphSealedError, RebindError
from core.models import (
    ExecutionRecord,
    IntegerValue,
    OutputRef,
    ParamValue,
    Process,
    RunResult,
    StringValue,
    to_param_value,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def count():
    """jellyfish count with its output path set."""
    process = Process.from_command(
        "count", "jellyfish count -m {p:k} -o {o:jfDB} {p:genome}"
    )
    process.set_output("jfDB", "/data/g1.fasta.9.jf")
    return process


@pytest.fixture
def dump():
    process = Process.from_command("dump", "jellyfish dump -c -o {o:kmerCount} {i:jfDB}")
    process.set_output("kmerCount", "{i:jfDB|%.jf}.kmers.txt")
    return process


# ============================================================================
# PARAMETER VALUES
# ============================================================================

class TestParamValues:
    """Tagged union of string and integer literals."""

    def test_integer_renders_decimal(self):
        assert to_param_value(9).render() == "9"
        assert isinstance(to_param_value(9), IntegerValue)

    def test_string_renders_verbatim(self):
        value = to_param_value("100M")
        assert isinstance(value, StringValue)
        assert value.render() == "100M"

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_param_value(True)

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_param_value(1.5)

    def test_discriminated_union_parses(self):
        adapter = TypeAdapter(ParamValue)
        assert adapter.validate_python({"type": "integer", "value": 18}).render() == "18"
        assert adapter.validate_python({"type": "string", "value": "x"}).render() == "x"

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(ParamValue).validate_python({"type": "float", "value": 1.0})


# ============================================================================
# DECLARATION
# ============================================================================

class TestDeclaration:
    """Slots come from the command template or explicit declare_* calls."""

    def test_from_command_declares_all_slots(self, count):
        assert set(count.params) == {"k", "genome"}
        assert set(count.outputs) == {"jfDB"}
        assert count.inputs == {}

    def test_from_command_output_has_no_path(self):
        process = Process.from_command("p", "touch {o:out}")
        assert process.outputs["out"].path_template is None

    def test_set_output_declares_path_slots(self):
        process = Process.from_command("p", "touch {o:out}")
        process.set_output("out", "{p:dir}/{i:db|%.jf}.txt")
        assert set(process.params) == {"dir"}
        assert set(process.inputs) == {"db"}

    def test_set_output_keeps_existing_slots(self):
        listing = Process.from_command("list", "ls {p:dir} > {o:out}")
        listing.bind_param_literal("dir", "/data")
        listing.set_output("out", "{p:dir}/listing.txt")
        assert listing.params["dir"].value.render() == "/data"

    def test_set_output_gives_path_once(self, count):
        with pytest.raises(RebindError):
            count.set_output("jfDB", "/elsewhere.jf")

    def test_duplicate_declaration(self):
        process = Process(name="p", command="true")
        process.declare_param("x")
        with pytest.raises(DuplicateDeclarationError):
            process.declare_param("x")

    def test_output_template_is_parsed(self, dump):
        template = dump.outputs["kmerCount"].template
        assert template.tokens[0].suffix == ".jf"

    def test_out_reference(self, count):
        ref = count.out("jfDB")
        assert ref == OutputRef(process="count", port="jfDB")
        assert str(ref) == "count.jfDB"

    def test_out_unknown_port(self, count):
        with pytest.raises(KeyError):
            count.out("missing")

    def test_output_ref_parse(self):
        assert OutputRef.parse("countKmers_g1.jfDB") == OutputRef(
            process="countKmers_g1", port="jfDB"
        )
        with pytest.raises(ValueError):
            OutputRef.parse("nodot")


# ============================================================================
# BINDING
# ============================================================================

class TestBinding:
    """Every input port and parameter is bound exactly once."""

    def test_bind_input_from_process(self, count, dump):
        dump.bind_input("jfDB", count, "jfDB")
        assert dump.inputs["jfDB"].source == count.out("jfDB")
        assert dump.upstream_processes() == {"count"}

    def test_bind_input_from_ref(self, count, dump):
        dump.bind_input("jfDB", count.out("jfDB"))
        assert dump.inputs["jfDB"].is_bound

    def test_rebind_input_raises(self, count, dump):
        dump.bind_input("jfDB", count, "jfDB")
        with pytest.raises(RebindError):
            dump.bind_input("jfDB", count, "jfDB")

    def test_rebind_param_raises(self, count):
        count.bind_param_literal("k", 9)
        with pytest.raises(RebindError):
            count.bind_param_literal("k", 18)
        assert count.params["k"].value.render() == "9"

    def test_literal_then_output_binding_raises(self, count, dump):
        dump.declare_param("extra")
        dump.bind_param_literal("extra", "x")
        with pytest.raises(RebindError):
            dump.bind_param_from_output("extra", count, "jfDB")

    def test_param_from_output_is_dependency(self, count):
        listing = Process.from_command("list", "cat {p:db} > {o:out}")
        listing.bind_param_from_output("db", count, "jfDB")
        assert listing.params["db"].is_dependency
        assert listing.upstream_processes() == {"count"}

    def test_unknown_slot_raises_key_error(self, dump):
        with pytest.raises(KeyError):
            dump.bind_input("nope", "count", "jfDB")
        with pytest.raises(KeyError):
            dump.bind_param_literal("nope", 1)

    def test_from_output_required_for_name(self, dump):
        with pytest.raises(ValueError):
            dump.bind_input("jfDB", "count")

    def test_sealed_process_is_immutable(self, count):
        count.seal()
        with pytest.raises(GraphSealedError):
            count.bind_param_literal("k", 9)


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidateReferences:
    """validate_references() lists every problem."""

    def test_fully_bound_is_valid(self, count):
        count.bind_param_literal("k", 9)
        count.bind_param_literal("genome", "/data/g1.fasta")
        assert count.validate_references() == []

    def test_unbound_slots_reported(self, count, dump):
        problems = count.validate_references() + dump.validate_references()
        assert any("parameter 'k' is unbound" in p for p in problems)
        assert any("parameter 'genome' is unbound" in p for p in problems)
        assert any("input port 'jfDB' is unbound" in p for p in problems)

    def test_undeclared_reference_reported(self):
        process = Process(name="p", command="tool {p:k} > {o:out}")
        process.declare_output("out", "/tmp/out")
        problems = process.validate_references()
        assert problems == ["Process 'p': command references undeclared parameter 'k'"]

    def test_output_path_may_not_reference_outputs(self):
        process = Process(name="p", command="tool > {o:a}")
        process.declare_output("a", "{o:b}.txt")
        assert any("may not reference output port 'b'" in p for p in process.validate_references())

    def test_missing_output_path_reported(self):
        process = Process.from_command("p", "touch {o:out}")
        assert any("has no path template" in p for p in process.validate_references())


# ============================================================================
# EXECUTION RECORDS
# ============================================================================

class TestExecutionRecord:
    """State machine of a single process within a run."""

    def test_happy_path(self):
        record = ExecutionRecord(name="p")
        record.mark_ready()
        record.mark_running()
        record.mark_succeeded()
        assert record.status == ProcessStatus.SUCCEEDED
        assert record.is_terminal and record.is_successful
        assert record.duration_seconds is not None

    def test_timestamps_are_utc_aware(self):
        record = ExecutionRecord(name="p")
        record.mark_ready()
        record.mark_running()
        record.mark_succeeded()
        assert record.started_at.utcoffset() == timedelta(0)
        assert record.completed_at.utcoffset() == timedelta(0)
        assert RunResult(workflow="w", run_id="r").started_at.utcoffset() == timedelta(0)

    def test_skipped_counts_as_successful(self):
        record = ExecutionRecord(name="p")
        record.mark_ready()
        record.mark_running()
        record.mark_skipped()
        assert record.is_successful

    def test_aborted_from_pending(self):
        record = ExecutionRecord(name="dump")
        record.mark_aborted("count")
        assert record.status == ProcessStatus.ABORTED
        assert record.aborted_by == "count"
        assert "count" in record.error_message

    def test_invalid_transition(self):
        record = ExecutionRecord(name="p")
        with pytest.raises(ValueError):
            record.mark_succeeded()

    def test_terminal_is_final(self):
        record = ExecutionRecord(name="p")
        record.mark_aborted("x")
        with pytest.raises(ValueError):
            record.mark_ready()

    def test_run_result_success_and_counts(self):
        ok = ExecutionRecord(name="a")
        ok.mark_ready()
        ok.mark_running()
        ok.mark_succeeded()
        aborted = ExecutionRecord(name="b")
        aborted.mark_aborted("a")

        assert RunResult(workflow="w", run_id="r", records=[ok]).success
        result = RunResult(workflow="w", run_id="r", records=[ok, aborted])
        assert not result.success
        assert result.counts()["succeeded"] == 1
        assert result.counts()["aborted"] == 1
        assert [r.name for r in result.failures] == ["b"]
        assert result.to_dict()["status"] == "failed"
