# ============================================================================
# LOGGING TESTS
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Tests - Structured logging and context
# PURPOSE: Verify context nesting, task isolation and formatters
# CREATED: 18 OCT 2026
# ============================================================================
"""
Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import asyncio
import io
import json
import logging

import pytest

from core.logging import (
    configure_logging,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogContext:
    """log_context() nests and restores fields."""

    def test_nesting_inherits_fields(self):
        with log_context(run_id="r1", workflow="kleuren"):
            with log_context(process="countKmers_g1"):
                context = get_current_context()
                assert context.run_id == "r1"
                assert context.process == "countKmers_g1"
            assert get_current_context().process is None
        assert get_current_context().run_id is None

    def test_extra_fields_merge(self):
        with log_context(extra={"a": 1}):
            with log_context(extra={"b": 2}):
                assert get_current_context().to_dict() == {"a": 1, "b": 2}

    def test_concurrent_tasks_do_not_share_context(self):
        seen = {}

        async def worker(name):
            with log_context(process=name):
                await asyncio.sleep(0.01)
                seen[name] = get_current_context().process

        async def scenario():
            with log_context(run_id="r1"):
                await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(scenario())
        assert seen == {"a": "a", "b": "b"}


class TestFormatters:
    """JSON and human output carry the context."""

    def test_json_output(self, restore_root_logging):
        stream = io.StringIO()
        configure_logging("INFO", json_output=True, stream=stream)

        with log_context(run_id="r1", process="dump"):
            get_logger("test.json").info("Process started", extra={"slot": 2})

        line = json.loads(stream.getvalue().strip())
        assert line["level"] == "INFO"
        assert line["message"] == "Process started"
        assert line["context"] == {"run_id": "r1", "process": "dump"}
        assert line["data"]["slot"] == 2

    def test_human_output(self, restore_root_logging):
        stream = io.StringIO()
        configure_logging("DEBUG", stream=stream)

        with log_context(run_id="r1", process="dump"):
            get_logger("test.human").warning("slow", extra={"seconds": 3})

        text = stream.getvalue()
        assert "WARNING" in text
        assert "[run=r1, process=dump]" in text
        assert "slow {'seconds': 3}" in text

    def test_level_filters(self, restore_root_logging):
        stream = io.StringIO()
        configure_logging("ERROR", stream=stream)
        get_logger("test.level").info("hidden")
        assert stream.getvalue() == ""

    def test_checkpoint(self, restore_root_logging):
        stream = io.StringIO()
        configure_logging("INFO", json_output=True, stream=stream)

        with log_context(run_id="r9"):
            log_checkpoint("run_started", {"processes": 4})

        line = json.loads(stream.getvalue().strip())
        assert line["message"] == "CHECKPOINT: run_started"
        assert line["data"]["checkpoint"] == "run_started"
        assert line["data"]["run_id"] == "r9"
        assert line["data"]["data"] == {"processes": 4}
