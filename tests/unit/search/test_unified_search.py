# tests/unit/search/test_unified_search.py
"""Tests for search/unified_search.py: graph-expanded search."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sevenpools.search.unified_search import UnifiedSearchService, combine_scores


class TestCombineScores:
    def test_weights(self):
        assert combine_scores(1.0, 0.0) == 0.7
        assert combine_scores(0.0, 1.0) == 0.3
        assert combine_scores(0.5, 0.5) == 0.5


class TestExtractQueryEntities:
    @pytest.mark.asyncio
    async def test_full_value_match(self, entity_store):
        service = UnifiedSearchService(entity_store)
        entities = await service.extract_query_entities("fire spinning")
        found = {(e.entity_type, e.value) for e in entities}
        assert ("activity", "fire spinning") in found
        assert ("pool_practical", "fire spinning") in found

    @pytest.mark.asyncio
    async def test_first_word_partial(self, entity_store):
        service = UnifiedSearchService(entity_store)
        entities = await service.extract_query_entities("coffee please")
        assert [(e.entity_type, e.value) for e in entities] == [("activity", "coffee")]

    @pytest.mark.asyncio
    async def test_blank(self, entity_store):
        assert await UnifiedSearchService(entity_store).extract_query_entities("  ") == []


class TestSearch:
    @pytest.mark.asyncio
    async def test_ranked_with_graph_scores(self, entity_store):
        service = UnifiedSearchService(entity_store)
        response = await service.search("fire spinning", limit=5)
        assert response.results
        top = response.results[0]
        assert top.item.id == "evt-fire"
        assert top.graph_score == pytest.approx(1.0)
        scores = [r.combined_score for r in response.results]
        assert scores == sorted(scores, reverse=True)
        assert response.total_count == len(response.results)

    @pytest.mark.asyncio
    async def test_graph_expansion_adds_missed_items(self, entity_store):
        service = UnifiedSearchService(entity_store)
        response = await service.search("coffee", limit=10)
        ids = {r.item.id for r in response.results}
        assert {"camp-foo-2023", "camp-bar-2023"} <= ids

    @pytest.mark.asyncio
    async def test_expansion_flagged(self, entity_store):
        service = UnifiedSearchService(entity_store)
        response = await service.search("gathering", limit=10, expand_graph=True)
        semantic = await service.search("gathering", limit=10, expand_graph=False)
        assert response.query_entities
        assert semantic.query_entities == []
        assert semantic.graph_expansion_count == 0

    @pytest.mark.asyncio
    async def test_year_filter(self, entity_store):
        service = UnifiedSearchService(entity_store)
        response = await service.search("fire spinning", year=2022)
        assert {r.item.id for r in response.results} == {"camp-fire"}

    @pytest.mark.asyncio
    async def test_uses_embedder(self, entity_store):
        embedder = MagicMock()
        embedder.embed_query = AsyncMock(return_value=[0.1, 0.2])
        service = UnifiedSearchService(entity_store, embedder=embedder)
        await service.search("fire spinning")
        embedder.embed_query.assert_awaited_once_with("fire spinning")

    @pytest.mark.asyncio
    async def test_embedder_failure_falls_back(self, entity_store):
        embedder = MagicMock()
        embedder.embed_query = AsyncMock(side_effect=RuntimeError("quota"))
        service = UnifiedSearchService(entity_store, embedder=embedder)
        response = await service.search("fire spinning")
        assert response.results
