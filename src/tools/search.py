# src/tools/search.py
"""search: unified semantic + graph search with pool filtering.

Response::

    {ok, items: [{id, title, summary, pools_hit, score, highlights,
                  provenance, rights, trace}],
     meta: {total_estimate, pool_counts}}
"""

from __future__ import annotations

import logging
import re
from collections import Counter, OrderedDict
from datetime import date, datetime
from typing import Any

from sevenpools.core.models import (
    POOLS,
    RIGHTS_TIERS,
    provenance_for,
    rights_for,
)
from sevenpools.core.naming import truncate
from sevenpools.search.unified_search import UnifiedResult, UnifiedSearchService
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import SearchParams

logger = logging.getLogger(__name__)

YEAR_RE = re.compile(r"(19\d{2}|20\d{2})")
MAX_TOP_K = 50
SUMMARY_LENGTH = 200
HIGHLIGHT_CONTEXT = 30
MAX_HIGHLIGHTS = 3
TRACE_POOLS = 3


class DateRangeError(ValueError):
    pass


def parse_date_range(date_from: str | None, date_to: str | None) -> int | None:
    """Year filter from an ISO date range; only the lower bound narrows the search."""
    if not date_from and not date_to:
        return None
    try:
        from_year = _parse_date(date_from).year if date_from else None
        if date_to:
            _parse_date(date_to)
    except ValueError as e:
        raise DateRangeError(str(e)) from e
    return from_year


def _parse_date(value: str) -> date:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text).date()


def summarize(text: str, max_length: int = SUMMARY_LENGTH) -> str:
    text = (text or "").strip()
    if len(text) <= max_length:
        return text
    return truncate(text, max_length + 3)


def extract_highlights(description: str, query: str) -> list[str]:
    """Up to three snippets of the description around query words."""
    lowered = description.lower()
    highlights: list[str] = []
    for word in query.lower().split():
        if len(word) < 3:
            continue
        index = lowered.find(word)
        if index < 0:
            continue
        start = max(0, index - HIGHLIGHT_CONTEXT)
        end = min(len(description), index + len(word) + HIGHLIGHT_CONTEXT)
        snippet = f"...{description[start:end].strip()}..."
        if snippet not in highlights:
            highlights.append(snippet)
    return highlights[:MAX_HIGHLIGHTS]


def build_trace(item_name: str, pools_hit: list[str]) -> str:
    return " → ".join(f"{pool.capitalize()}({item_name})" for pool in pools_hit[:TRACE_POOLS])


def diversify_by_pool(
    results: list[UnifiedResult], pools_by_item: dict[str, list[str]]
) -> list[UnifiedResult]:
    """Round-robin across primary pools, keeping score order within each pool."""
    buckets: OrderedDict[str, list[UnifiedResult]] = OrderedDict()
    for result in results:
        pools = pools_by_item.get(result.item.id) or [""]
        buckets.setdefault(pools[0], []).append(result)
    ordered: list[UnifiedResult] = []
    while any(buckets.values()):
        for bucket in buckets.values():
            if bucket:
                ordered.append(bucket.pop(0))
    return ordered


class SearchTool(BaseTool[SearchParams]):
    """Search items across the Seven Pools."""

    name = "search"
    description = "Semantic search over the knowledge base, expanded through shared entities"
    params_model = SearchParams

    def __init__(self, store: BaseEntityStore, search_service: UnifiedSearchService) -> None:
        self._store = store
        self._service = search_service

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return {
            "ok": False,
            "error": message,
            "items": [],
            "meta": {"total_estimate": 0, "pool_counts": {}},
        }

    async def run(self, params: SearchParams) -> dict[str, Any]:
        pools = [p.lower() for p in params.pools] if params.pools else None
        if params.top_k < 1 or params.top_k > MAX_TOP_K:
            return self.error_payload("top_k out of range")
        if pools and any(p not in POOLS for p in pools):
            return self.error_payload("invalid_pool")
        if params.require_rights not in RIGHTS_TIERS:
            return self.error_payload("invalid_require_rights")

        try:
            return await self._search(params, pools)
        except DateRangeError:
            return self.error_payload("bad_date_range")
        except Exception as e:
            logger.error("SearchTool error: %s", e, exc_info=True)
            return self.error_payload(f"Search failed: {e}")

    async def _search(self, params: SearchParams, pools: list[str] | None) -> dict[str, Any]:
        year_match = YEAR_RE.search(params.query)
        query_year = int(year_match.group(1)) if year_match else None
        year = parse_date_range(params.date_from, params.date_to) or query_year

        response = await self._service.search(
            query=params.query, year=year, limit=params.top_k, expand_graph=True
        )
        results = response.results

        pools_by_item = {r.item.id: await self._pools_hit(r.item.id) for r in results}
        if pools:
            results = [r for r in results if set(pools_by_item[r.item.id]) & set(pools)]
        if params.diversify_by_pool:
            results = diversify_by_pool(results, pools_by_item)

        pool_counts: Counter[str] = Counter()
        items: list[dict[str, Any]] = []
        for result in results:
            item = result.item
            pools_hit = pools_by_item[item.id]
            pool_counts.update(pools_hit)
            rights = rights_for(item)
            if params.require_rights == "public" and rights.visibility != "public":
                continue
            items.append({
                "id": item.id,
                "title": item.name or "Untitled",
                "summary": summarize(item.content),
                "pools_hit": pools_hit,
                "score": round(min(max(result.combined_score, 0.0), 1.0), 3),
                "highlights": extract_highlights(item.content, params.query),
                "provenance": [p.model_dump() for p in provenance_for(item)],
                "rights": rights.model_dump(),
                "trace": build_trace(item.name or f"Item {item.id}", pools_hit)
                if params.include_trace else None,
            })

        meta: dict[str, Any] = {"total_estimate": max(response.total_count, len(items))}
        if params.include_counts:
            meta["pool_counts"] = dict(pool_counts)
        logger.info("search %r: %d items (year=%s)", params.query, len(items), year)
        return {"ok": True, "items": items, "meta": meta}

    async def _pools_hit(self, item_id: str) -> list[str]:
        entities = await self._store.entities_for_item(item_id, pools_only=True)
        seen: dict[str, None] = {}
        for entity in entities:
            if entity.pool:
                seen.setdefault(entity.pool, None)
        return list(seen)
