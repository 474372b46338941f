# src/search/unified_search.py
"""Graph-expanded search: semantic candidates re-ranked by entity overlap.

combined_score = 0.7 * similarity + 0.3 * graph_score, where graph_score is
the share of query entities attached to the item. Items carrying a query
entity but missed by the semantic pass are appended when room remains.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from sevenpools.core.models import Item
from sevenpools.store.base_entity_store import BaseEntityStore

if TYPE_CHECKING:
    from sevenpools.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

SIMILARITY_WEIGHT = 0.7
GRAPH_WEIGHT = 0.3
PARTIAL_MATCH_TYPES = ("location", "activity", "theme")
PARTIAL_MATCH_LIMIT = 5


class QueryEntity(BaseModel):
    entity_type: str
    value: str


class UnifiedResult(BaseModel):
    item: Item
    similarity: float = 0.0
    graph_score: float = 0.0
    combined_score: float = 0.0
    graph_expansion: bool = False
    expansion_reason: str | None = None


class UnifiedSearchResponse(BaseModel):
    results: list[UnifiedResult] = Field(default_factory=list)
    total_count: int = 0
    query_entities: list[QueryEntity] = Field(default_factory=list)
    graph_expansion_count: int = 0
    execution_time: float = 0.0


def combine_scores(similarity: float, graph_score: float) -> float:
    return round(SIMILARITY_WEIGHT * similarity + GRAPH_WEIGHT * graph_score, 3)


class UnifiedSearchService:
    """Semantic search over the entity store, expanded through shared entities."""

    def __init__(
        self,
        store: BaseEntityStore,
        embedder: BaseEmbedder | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder

    async def search(
        self,
        query: str,
        year: int | None = None,
        limit: int = 20,
        expand_graph: bool = True,
    ) -> UnifiedSearchResponse:
        start = time.perf_counter()
        query_embedding = await self._embed(query)
        candidates = await self._store.semantic_search(
            query, query_embedding=query_embedding, year=year, limit=limit * 2
        )

        query_entities = await self.extract_query_entities(query) if expand_graph else []
        wanted = {(e.entity_type, e.value.lower()) for e in query_entities}

        results: list[UnifiedResult] = []
        for scored in candidates:
            graph_score = await self._graph_score(scored.item.id, wanted)
            results.append(
                UnifiedResult(
                    item=scored.item,
                    similarity=scored.similarity,
                    graph_score=graph_score,
                    combined_score=combine_scores(scored.similarity, graph_score),
                )
            )

        expansions = 0
        if expand_graph and len(results) < limit and query_entities:
            extra = await self._expand(query_entities, results, year, limit - len(results))
            expansions = len(extra)
            results.extend(extra)

        results.sort(key=lambda r: r.combined_score, reverse=True)
        results = results[:limit]
        logger.debug(
            "Unified search %r: %d results (%d via graph expansion)",
            query, len(results), expansions,
        )
        return UnifiedSearchResponse(
            results=results,
            total_count=len(results),
            query_entities=query_entities,
            graph_expansion_count=expansions,
            execution_time=round(time.perf_counter() - start, 3),
        )

    async def extract_query_entities(self, query: str) -> list[QueryEntity]:
        """Entity values containing the query, plus partial matches on the first word."""
        text = query.strip()
        if not text:
            return []
        found: dict[tuple[str, str], QueryEntity] = {}
        for entity in await self._store.filter_entities(value_like=text):
            key = (entity.entity_type, entity.entity_value.lower())
            found.setdefault(key, QueryEntity(entity_type=entity.entity_type, value=entity.entity_value))

        first_word = text.split()[0]
        for entity_type in PARTIAL_MATCH_TYPES:
            matches = await self._store.filter_entities(
                entity_types=[entity_type], value_like=first_word, limit=PARTIAL_MATCH_LIMIT
            )
            for entity in matches:
                key = (entity.entity_type, entity.entity_value.lower())
                found.setdefault(key, QueryEntity(entity_type=entity_type, value=entity.entity_value))
        return list(found.values())

    async def _embed(self, query: str) -> list[float] | None:
        if self._embedder is None:
            return None
        try:
            return await self._embedder.embed_query(query)
        except Exception as e:
            logger.warning("Query embedding failed, using lexical scores: %s", e)
            return None

    async def _graph_score(self, item_id: str, wanted: set[tuple[str, str]]) -> float:
        if not wanted:
            return 0.0
        attached = {
            (e.entity_type, e.entity_value.lower())
            for e in await self._store.entities_for_item(item_id)
        }
        return round(len(attached & wanted) / len(wanted), 3)

    async def _expand(
        self,
        query_entities: list[QueryEntity],
        existing: list[UnifiedResult],
        year: int | None,
        room: int,
    ) -> list[UnifiedResult]:
        seen = {r.item.id for r in existing}
        wanted = {(e.entity_type, e.value.lower()) for e in query_entities}
        expansions: list[UnifiedResult] = []
        for entity in query_entities:
            items = await self._store.items_with_entities(
                entity_types=[entity.entity_type], value_equals=entity.value
            )
            for item in items:
                if item.id in seen or (year is not None and item.year != year):
                    continue
                seen.add(item.id)
                graph_score = await self._graph_score(item.id, wanted)
                expansions.append(
                    UnifiedResult(
                        item=item,
                        similarity=0.0,
                        graph_score=graph_score,
                        combined_score=combine_scores(0.0, graph_score),
                        graph_expansion=True,
                        expansion_reason=f"Connected through: {entity.value}",
                    )
                )
                if len(expansions) >= room:
                    return expansions
        return expansions
