"""Unit tests for the structured logging helpers in ``observability``."""

from __future__ import annotations

import logging

import pytest

from lib_combined_config import bind_trace_id, get_logger
from lib_combined_config.application.combined import CombinedConfiguration
from lib_combined_config.application.combiners import UnionCombiner
from lib_combined_config.observability import TRACE_ID, log_info, make_event, rebuild_event, registration_event
from tests.support import memory_source


def test_null_handler_present() -> None:
    logger = get_logger()
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs carry the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_combined_config")
    bind_trace_id("trace-123")
    try:
        log_info("source_removed", source="defaults", path=None)
    finally:
        bind_trace_id(None)
    record = caplog.records[-1]
    assert getattr(record, "context") == {"trace_id": "trace-123", "source": "defaults", "path": None}


def test_bind_trace_id_clears_context() -> None:
    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_optional_payload() -> None:
    assert make_event("env", None, {"keys": 3}) == {"source": "env", "path": None, "keys": 3}


def test_rebuild_is_logged_once_per_invalidation(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_combined_config")
    view = CombinedConfiguration()
    view.add_source(memory_source({"a": 1}), "one")
    view.get("a")
    view.get("a")
    rebuilds = [record for record in caplog.records if record.getMessage() == "combined_rebuilt"]
    assert len(rebuilds) == 1
    assert getattr(rebuilds[0], "context")["sources"] == 1
    assert getattr(rebuilds[0], "context")["combiner"] == "UnionCombiner"


def test_registration_event_reports_prefix_and_sharing() -> None:
    assert registration_event("site", 1) == {"source": "site", "path": None, "position": 1}
    assert registration_event("env", 0, "app", shared=True)["shared"] is True


def test_rebuild_event_lists_list_nodes() -> None:
    event = rebuild_event(3, UnionCombiner(), frozenset({"b", "a"}))
    assert event["list_nodes"] == ["a", "b"]
    assert event["combiner"] == "UnionCombiner"


def test_removing_a_shared_source_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_combined_config")
    source = memory_source({"a": 1})
    view = CombinedConfiguration()
    view.add_source(source, "first")
    view.add_source(source, "second")
    view.remove_source("first")
    removed = [record for record in caplog.records if record.getMessage() == "source_removed"]
    assert getattr(removed[0], "context")["shared"] is True
    assert getattr(removed[0], "context")["position"] == 0
