"""
Tests for the logging helpers and the error-tracing decorator used by
follow-up work such as evaluation refreshes.
"""

import json
import logging

import pytest

from lms.common.error_handling import LMSError, NotFoundError, trace_errors
from lms.common.logger import JsonFormatter, LoggerAdapter, log_execution_time, with_context

test_logger = logging.getLogger("lms.tests")


def test_adapter_merges_context_into_record_data():
    adapter = LoggerAdapter(test_logger, {"student_id": "s1"}).with_context(course_id="c1")
    _, kwargs = adapter.process("hello", {"extra": {"data": {"attempt": 2}}})
    assert kwargs["extra"]["data"] == {"student_id": "s1", "course_id": "c1", "attempt": 2}


def test_context_fields_reach_json_output(caplog):
    with_context("lms.tests", student_id="s1", course_id="c1").warning("Metrics computed")

    record = caplog.records[-1]
    entry = json.loads(JsonFormatter().format(record))
    assert entry["message"] == "Metrics computed"
    assert entry["student_id"] == "s1"
    assert entry["course_id"] == "c1"


@pytest.mark.asyncio
async def test_execution_time_of_coroutines(caplog):
    caplog.set_level(logging.DEBUG, logger="lms")

    @log_execution_time(test_logger)
    async def compute():
        return 42

    @log_execution_time(test_logger)
    async def explode():
        raise ValueError("bad input")

    assert await compute() == 42
    assert "compute executed in" in caplog.text

    with pytest.raises(ValueError):
        await explode()
    assert "explode failed after" in caplog.text
    assert "bad input" in caplog.text


def test_execution_time_of_plain_functions(caplog):
    caplog.set_level(logging.DEBUG, logger="lms")

    @log_execution_time(test_logger)
    def add(a, b):
        return a + b

    assert add(2, 3) == 5
    assert add.__name__ == "add"
    assert "add executed in" in caplog.text


@pytest.mark.asyncio
async def test_trace_errors_can_swallow_failures(caplog):
    @trace_errors("recompute_session_evaluations", suppress=True)
    async def refresh():
        raise RuntimeError("database went away")

    assert await refresh() is None
    assert "Error in recompute_session_evaluations" in caplog.text
    assert "database went away" in caplog.text


@pytest.mark.asyncio
async def test_trace_errors_reraises_as_lms_errors():
    @trace_errors("load")
    async def load_missing():
        raise NotFoundError("Session not found")

    @trace_errors("load")
    async def load_broken():
        raise RuntimeError("boom")

    with pytest.raises(NotFoundError) as not_found:
        await load_missing()
    assert not_found.value.context["function"] == "load_missing"

    with pytest.raises(LMSError) as wrapped:
        await load_broken()
    assert isinstance(wrapped.value.cause, RuntimeError)
    assert wrapped.value.context["operation"] == "load"


@pytest.mark.asyncio
async def test_trace_errors_passes_results_through():
    @trace_errors("sum")
    async def total(*values):
        return sum(values)

    assert await total(1, 2, 3) == 6


def test_trace_errors_needs_a_coroutine_function():
    with pytest.raises(TypeError):
        @trace_errors("sync")
        def plain():
            return None
