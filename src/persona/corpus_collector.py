# src/persona/corpus_collector.py
"""Style corpus collector.

Five independent retrieval strategies gather evidence for a persona.
Results are deduplicated by item id (highest score wins), then filtered
by rights tier and optional era.
"""

from __future__ import annotations

import logging
import re
import time
from collections import Counter
from typing import TYPE_CHECKING, Any

from sevenpools.core.models import (
    DEFAULT_YEAR,
    CorpusItem,
    CorpusResult,
    Item,
    Provenance,
    Rights,
    pool_of,
    provenance_for,
    rights_for,
)
from sevenpools.core.naming import titleize
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.models import SearchParams

if TYPE_CHECKING:
    from sevenpools.tools.search import SearchTool

logger = logging.getLogger(__name__)

STRATEGY_BASE_SCORES: dict[str, float] = {
    "authored_content": 0.9,
    "emanation_content": 0.8,
    "entity_association": 0.7,
    "experience_content": 0.6,
    "semantic_search": 0.5,
}
DEFAULT_BASE_SCORE = 0.3

AUTHORED_ITEM_TYPES = ("philosophical_text", "principle", "manifesto", "speech")

_YEAR_IN_TITLE = re.compile(r"(19\d{2}|20\d{2})")
_ERA_RANGE = re.compile(r"^(\d{4})-(\d{4})$")
_ERA_YEAR = re.compile(r"^(\d{4})$")
_ERA_EARLY = re.compile(r"early_(\d{4})s")
_ERA_LATE = re.compile(r"late_(\d{4})s")


def label_from_persona_id(persona_id: str) -> str:
    """``"person:larry_harvey"`` -> ``"Larry Harvey"``."""
    return titleize(persona_id.split(":", 1)[-1])


def relevance_score(strategy: str, content: str) -> float:
    """Strategy base score plus a bonus for longer texts."""
    base = STRATEGY_BASE_SCORES.get(strategy, DEFAULT_BASE_SCORE)
    length = len(content or "")
    if length <= 100:
        bonus = 0.0
    elif length <= 500:
        bonus = 0.1
    elif length <= 1500:
        bonus = 0.2
    else:
        bonus = 0.3
    return round(min(base + bonus, 1.0), 2)


def parse_era(era: str) -> tuple[int, int] | None:
    """Inclusive year range for an era string, or None when unparseable."""
    match = _ERA_RANGE.match(era)
    if match:
        return int(match.group(1)), int(match.group(2))
    match = _ERA_YEAR.match(era)
    if match:
        year = int(match.group(1))
        return year, year
    match = _ERA_EARLY.search(era)
    if match:
        start = int(match.group(1))
        return start, start + 3
    match = _ERA_LATE.search(era)
    if match:
        start = int(match.group(1))
        return start + 6, start + 9
    return None


def passes_rights(rights: Rights, require_rights: str) -> bool:
    if require_rights == "public":
        return rights.visibility == "public"
    if require_rights == "internal":
        return rights.visibility in ("public", "internal")
    return True


class StyleCorpusCollector:
    """Gather, merge and filter corpus items for one persona."""

    def __init__(self, store: BaseEntityStore, search: SearchTool) -> None:
        self._store = store
        self._search = search

    async def collect(
        self,
        persona_id: str,
        era: str | None = None,
        require_rights: str = "public",
    ) -> CorpusResult:
        start = time.perf_counter()
        try:
            label = label_from_persona_id(persona_id)
            strategies = (
                ("semantic_search", self._collect_semantic),
                ("entity_association", self._collect_entity_association),
                ("authored_content", self._collect_authored),
                ("experience_content", self._collect_experience),
                ("emanation_content", self._collect_emanation),
            )
            collected: list[CorpusItem] = []
            for name, strategy in strategies:
                try:
                    found = await strategy(label)
                except Exception as e:
                    logger.warning("Corpus strategy %s failed for %s: %s", name, persona_id, e)
                    found = []
                logger.info("Strategy %s collected %d items for %s", name, len(found), label)
                collected.extend(found)

            items = self._deduplicate(collected)
            items = [i for i in items if passes_rights(i.rights, require_rights)]
            items = self._apply_era(items, era)

            return CorpusResult(
                ok=True,
                persona_id=persona_id,
                persona_label=label,
                corpus_items=items,
                total_items=len(items),
                strategies_used=dict(Counter(i.strategy for i in collected)),
                coverage_pools=_pool_coverage(items),
                era_coverage=_era_coverage(items),
                execution_time=round(time.perf_counter() - start, 3),
            )
        except Exception as e:
            logger.error("Corpus collection failed for %s: %s", persona_id, e)
            return CorpusResult(
                ok=False,
                error=f"Corpus collection failed: {e}",
                persona_id=persona_id,
                execution_time=round(time.perf_counter() - start, 3),
            )

    # --- Strategies ---

    async def _collect_semantic(self, label: str) -> list[CorpusItem]:
        result = await self._search.run(
            SearchParams(
                query=label,
                top_k=15,
                diversify_by_pool=True,
                include_trace=False,
                include_counts=False,
                require_rights="any",
            )
        )
        return [self._from_search_hit(hit) for hit in result.get("items", [])]

    async def _collect_entity_association(self, label: str) -> list[CorpusItem]:
        items = await self._store.items_with_entities(
            entity_types=["person"], value_equals=label, limit=20
        )
        return [await self._from_item(i, "entity_association") for i in items]

    async def _collect_authored(self, label: str) -> list[CorpusItem]:
        items = await self._store.items_with_entities(
            entity_types=["person"],
            value_like=label,
            item_types=AUTHORED_ITEM_TYPES,
            limit=10,
        )
        return [await self._from_item(i, "authored_content") for i in items]

    async def _collect_experience(self, label: str) -> list[CorpusItem]:
        items = await self._store.items_with_entities(
            entity_types=["person", "pool_experience"],
            value_equals=label,
            text_like=label,
            limit=15,
        )
        return [await self._from_item(i, "experience_content") for i in items]

    async def _collect_emanation(self, label: str) -> list[CorpusItem]:
        items = await self._store.items_with_entities(
            entity_types=["pool_emanation"], text_like=label, limit=10
        )
        return [await self._from_item(i, "emanation_content") for i in items]

    # --- Conversion ---

    async def _from_item(self, item: Item, strategy: str) -> CorpusItem:
        entities = await self._store.entities_for_item(item.id)
        pools = list(dict.fromkeys(
            pool_of(e.entity_type) for e in entities if pool_of(e.entity_type)
        ))
        return CorpusItem(
            id=item.id,
            title=item.name,
            content=item.content,
            year=item.year or DEFAULT_YEAR,
            item_type=item.item_type,
            pools_hit=pools,
            strategy=strategy,
            score=relevance_score(strategy, item.content),
            rights=rights_for(item),
            provenance=provenance_for(item),
        )

    @staticmethod
    def _from_search_hit(hit: dict[str, Any]) -> CorpusItem:
        title = hit.get("title") or ""
        year_match = _YEAR_IN_TITLE.search(title)
        summary = hit.get("summary") or ""
        return CorpusItem(
            id=str(hit["id"]),
            title=title,
            content=summary,
            year=int(year_match.group(1)) if year_match else DEFAULT_YEAR,
            item_type="unknown",
            pools_hit=list(hit.get("pools_hit") or []),
            strategy="semantic_search",
            score=relevance_score("semantic_search", summary),
            rights=Rights(**hit["rights"]) if hit.get("rights") else Rights(),
            provenance=[Provenance(**p) for p in hit.get("provenance") or []],
        )

    # --- Filters ---

    @staticmethod
    def _deduplicate(items: list[CorpusItem]) -> list[CorpusItem]:
        best: dict[str, CorpusItem] = {}
        for item in items:
            current = best.get(item.id)
            if current is None or current.score < item.score:
                best[item.id] = item
        return sorted(best.values(), key=lambda i: -i.score)

    @staticmethod
    def _apply_era(items: list[CorpusItem], era: str | None) -> list[CorpusItem]:
        if not era:
            return items
        bounds = parse_era(era)
        if bounds is None:
            # Unparseable eras apply no filter.
            logger.warning("Unparseable era %r, no era filter applied", era)
            return items
        low, high = bounds
        return [i for i in items if low <= (i.year or DEFAULT_YEAR) <= high]


def _pool_coverage(items: list[CorpusItem]) -> dict[str, Any]:
    counts = Counter(p for i in items for p in i.pools_hit)
    return {"pools_covered": list(counts), "pool_distribution": dict(counts)}


def _era_coverage(items: list[CorpusItem]) -> dict[str, Any]:
    years = sorted(i.year for i in items if i.year)
    if not years:
        return {"years": [], "span": 0}
    return {
        "years": sorted(set(years)),
        "span": years[-1] - years[0],
        "earliest": years[0],
        "latest": years[-1],
    }
