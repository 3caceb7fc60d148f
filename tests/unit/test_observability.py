"""Unit tests for structured logging utilities in ``observability``.

Validates the null handler, trace binding, event construction, and the events
emitted while binding and resolving settings.
"""

from __future__ import annotations

import logging

import pytest

from lib_layered_flags import bind_trace_id, get_logger
from lib_layered_flags.observability import TRACE_ID, log_debug, log_info, make_event
from tests.support import make_sandbox


def test_null_handler_present() -> None:
    """Package logger should always include a NullHandler to avoid surprises."""

    logger = get_logger()
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs should include the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_layered_flags")
    bind_trace_id("trace-123")
    try:
        log_info("config_merged", layer="config", key="/etc/app/config.yaml")
    finally:
        bind_trace_id(None)
    record = caplog.records[-1]
    assert getattr(record, "context") == {"trace_id": "trace-123", "layer": "config", "key": "/etc/app/config.yaml"}


def test_bind_trace_id_clears_context() -> None:
    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_optional_payload() -> None:
    event = make_event("env", "workers", {"variable": "WORKERS"})
    assert event == {"layer": "env", "key": "workers", "variable": "WORKERS"}


def test_make_event_without_payload() -> None:
    assert make_event("bind", None) == {"layer": "bind", "key": None}


def test_disabled_level_emits_nothing(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_layered_flags")
    log_debug("option_defined", layer="option", key="workers")
    assert not [record for record in caplog.records if record.getMessage() == "option_defined"]


def test_binding_emits_one_flag_bound_event_per_field(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_layered_flags")
    sandbox = make_sandbox()

    bound = [record.context["key"] for record in caplog.records if record.getMessage() == "flag_bound"]
    assert bound == list(sandbox.binder.schema.keys())


def test_resolution_emits_settings_resolved(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_layered_flags")
    make_sandbox().resolve([])

    messages = [record.getMessage() for record in caplog.records]
    assert messages.index("flags_added") < messages.index("settings_resolved")
    assert messages[-1] == "settings_resolved"
