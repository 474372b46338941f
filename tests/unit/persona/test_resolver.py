# tests/unit/persona/test_resolver.py
"""Tests for persona/resolver.py: tiered persona resolution."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sevenpools.persona.resolver import DIRECT_ID_RE, PersonaResolver


class TestDirectIdPattern:
    def test_matches_known_kinds(self):
        assert DIRECT_ID_RE.match("person:larry_harvey")
        assert DIRECT_ID_RE.match("artist:david_best")

    def test_rejects_others(self):
        assert not DIRECT_ID_RE.match("org:bmp")
        assert not DIRECT_ID_RE.match("person:Larry Harvey")


class TestPersonaResolver:
    @pytest.mark.asyncio
    async def test_empty_input(self, persona_parts):
        resolver, _ = persona_parts
        result = await resolver.resolve("   ")
        assert result.ok is False
        assert result.error == "Empty persona input"

    @pytest.mark.asyncio
    async def test_direct_id(self, persona_parts):
        resolver, _ = persona_parts
        result = await resolver.resolve("person:larry_harvey")
        assert result.ok is True
        assert result.persona_id == "person:larry_harvey"
        assert result.persona_label == "Larry Harvey"

    @pytest.mark.asyncio
    async def test_exact_name(self, persona_parts):
        resolver, _ = persona_parts
        result = await resolver.resolve("larry harvey")
        assert result.persona_id == "person:larry_harvey"
        assert result.persona_label == "Larry Harvey"

    @pytest.mark.asyncio
    async def test_partial_name_via_analysis(self, persona_parts):
        resolver, _ = persona_parts
        result = await resolver.resolve("Larry")
        assert result.ok is True
        assert result.persona_id == "person:larry_harvey"

    @pytest.mark.asyncio
    async def test_not_found(self, persona_parts):
        resolver, _ = persona_parts
        result = await resolver.resolve("Nobody Known")
        assert result.ok is False
        assert result.error == "Persona not found: Nobody Known"

    @pytest.mark.asyncio
    async def test_failing_tier_falls_through(self, empty_store):
        analyze = MagicMock()
        analyze.run = AsyncMock(side_effect=RuntimeError("analysis down"))
        search = MagicMock()
        search.run = AsyncMock(return_value={"ok": True, "items": []})
        resolver = PersonaResolver(empty_store, analyze, search)

        result = await resolver.resolve("Someone")

        assert result.ok is False
        assert result.error == "Persona not found: Someone"
        search.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_search_tier(self, entity_store):
        analyze = MagicMock()
        analyze.run = AsyncMock(return_value={"pools": {}})
        search = MagicMock()
        search.run = AsyncMock(return_value={"items": [{"id": "lh-essay"}]})
        resolver = PersonaResolver(entity_store, analyze, search)

        result = await resolver.resolve("harvey")

        assert result.persona_id == "person:larry_harvey"
        params = search.run.await_args.args[0]
        assert params.pools == ["idea"]
        assert params.top_k == 5
