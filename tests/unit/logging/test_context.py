# tests/unit/logging/test_context.py
"""Tests for logging/context.py: contextual logging variables."""

from __future__ import annotations

from sevenpools.logging.context import (
    clear_context,
    get_context,
    set_persona_context,
    set_stage,
    set_tool_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.tool is None
        assert ctx.persona_id is None
        assert ctx.stage is None

    def test_set_tool_context(self):
        set_tool_context("search", "req-1")
        ctx = get_context()
        assert ctx.tool == "search"
        assert ctx.request_id == "req-1"

    def test_set_persona_context(self):
        set_persona_context("person:larry_harvey", "collect_corpus")
        ctx = get_context()
        assert ctx.persona_id == "person:larry_harvey"
        assert ctx.stage == "collect_corpus"

    def test_set_stage_keeps_persona(self):
        set_persona_context("person:larry_harvey")
        set_stage("persist")
        ctx = get_context()
        assert ctx.persona_id == "person:larry_harvey"
        assert ctx.stage == "persist"

    def test_as_dict_filters_none(self):
        set_tool_context("fetch")
        d = get_context().as_dict()
        assert d == {"tool": "fetch"}

    def test_clear(self):
        set_tool_context("search", "req-1")
        set_persona_context("person:x", "persist")
        clear_context()
        assert get_context().as_dict() == {}
