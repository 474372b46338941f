# src/tools/analyze_pools.py
"""analyze_pools: map free text onto the Seven Pools.

Entities are not extracted by a model: the text's words are matched
(case-insensitive substring) against entity values already in the store,
per pool and per basic type. Composite 0-100 scores and a letter grade
summarize how much of the text the knowledge base already understands.

Modes shape the ``entities`` list:

* ``extract``  - entities found verbatim in the text, with spans
* ``classify`` - every matched pool entity, plus a pool classification
* ``link``     - entities that also name similar items, plus ``linked_items``

Every mode also returns ``pools`` (matches grouped by pool, with link
confidence) and ``enliteracy`` (richness, connection and grade).
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from sevenpools.core.models import POOLS, pool_entity_type
from sevenpools.core.naming import parameterize, titleize
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import AnalyzePoolsParams

logger = logging.getLogger(__name__)

VALID_MODES = ("extract", "classify", "link")
MAX_TEXT_LENGTH = 8000
MIN_WORD_LENGTH = 3
MATCHES_PER_TYPE = 10
MATCH_TYPES = ("location", "activity", "theme", "person", "organizational")
HIGH_FREQUENCY = 5
SIMILAR_ITEM_VALUES = 10
SIMILAR_ITEM_LIMIT = 5
MAX_AMBIGUOUS = 5

_WORD_RE = re.compile(r"\W+")

CULTURAL_DOMAINS = (
    ("Physical/Structural", "manifest"),
    ("Experiential/Sensory", "experience"),
    ("Social/Community", "relational"),
    ("Philosophical/Conceptual", "idea"),
    ("Practical/Educational", "practical"),
    ("Temporal/Historical", "evolutionary"),
    ("Spiritual/Transcendent", "emanation"),
)

GRADE_BANDS = (
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B+"),
    (60.0, "B"),
    (50.0, "C+"),
    (40.0, "C"),
    (30.0, "D"),
)


def words_of(text: str) -> list[str]:
    return [w for w in _WORD_RE.split(text.lower()) if w]


def link_confidence(value: str) -> float:
    """Longer and multi-word values link more reliably."""
    base = min(len(value) / 20.0, 0.9)
    boost = 0.1 if len(value.split()) > 1 else 0.0
    return round(base + boost, 2)


def extraction_confidence(value: str, text: str) -> float:
    text_words = set(words_of(text))
    value_words = words_of(value)
    if not value_words:
        return 0.0
    share = sum(1 for w in value_words if w in text_words) / len(value_words)
    length_boost = min(len(value) / 20.0, 0.2)
    return min(round(share + length_boost, 2), 1.0)


def enliteracy_grade(score: float) -> str:
    for threshold, grade in GRADE_BANDS:
        if score >= threshold:
            return grade
    return "F"


def interpretation(score: float, active_pools: int) -> str:
    if score >= 80:
        return (
            "Highly enliterated text with rich multi-dimensional understanding "
            "and strong cultural integration."
        )
    if score >= 60:
        return (
            "Well-enliterated text showing good semantic depth across "
            f"{active_pools} cognitive dimensions."
        )
    if score >= 40:
        return (
            "Moderately enliterated text with some semantic understanding but "
            "limited cross-dimensional integration."
        )
    return (
        "Text shows basic enliteracy with potential for deeper semantic "
        "extraction and cultural integration."
    )


def bridge_values(pools: dict[str, list[str]]) -> list[str]:
    """Values matched in two or more pools."""
    counts = Counter(v for values in pools.values() for v in set(values))
    seen: dict[str, None] = {}
    for values in pools.values():
        for value in values:
            if counts[value] > 1:
                seen.setdefault(value, None)
    return list(seen)


def _distinct(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class PoolAnalysis:
    """Scores derived from a set of pool and basic matches."""

    def __init__(
        self,
        pools: dict[str, list[str]],
        basic: dict[str, list[str]],
        frequencies: dict[str, int],
    ) -> None:
        self.pools = pools
        self.basic = basic
        self.all_values = _distinct(
            [v for values in pools.values() for v in values]
            + [v for values in basic.values() for v in values]
        )
        self.bridges = bridge_values(pools)
        self.frequencies = frequencies

    @property
    def active_pools(self) -> int:
        return sum(1 for values in self.pools.values() if values)

    def semantic_richness(self) -> dict[str, Any]:
        total = len(self.all_values)
        pool_diversity = len(self.pools)
        basic_diversity = len(self.basic)
        active_dimensions = pool_diversity + basic_diversity
        base = pool_diversity * 15 + basic_diversity * 10 + total + len(self.bridges) * 5
        return {
            "total_unique_entities": total,
            "pool_coverage": {
                "pools_activated": pool_diversity,
                "total_pools": len(POOLS),
                "coverage_percentage": round(pool_diversity / len(POOLS) * 100, 1),
            },
            "basic_entity_coverage": {
                "types_found": basic_diversity,
                "entities_per_type": {k: len(v) for k, v in self.basic.items()},
            },
            "semantic_density": round(total / active_dimensions, 2) if active_dimensions else 0,
            "bridge_potential": len(self.bridges),
            "richness_score": min(round(base / 150.0 * 100, 1), 100.0),
        }

    def connection_analysis(self) -> dict[str, Any]:
        total = len(self.all_values)
        existing = sum(1 for v in self.all_values if self.frequencies.get(v.lower(), 0) > 0)
        high_frequency = [
            v for v in self.all_values if self.frequencies.get(v.lower(), 0) > HIGH_FREQUENCY
        ]
        return {
            "total_entities_found": total,
            "entities_in_knowledge_graph": existing,
            "knowledge_graph_coverage": round(existing / total * 100, 1) if existing else 0,
            "high_frequency_entities": high_frequency,
            "cultural_resonance_score": len(high_frequency),
            "bridge_entities": self.bridges,
            "connection_strength": self.connection_strength(existing, total),
            "integration_potential": self.integration_potential(existing, total),
        }

    def connection_strength(self, existing: int, total: int) -> float:
        if total == 0:
            return 0.0
        strength = (existing / total + len(self.bridges) * 0.1) * 100
        return min(round(strength, 1), 100.0)

    def integration_potential(self, existing: int, total: int) -> str:
        coverage = existing / total if total else 0.0
        bridges = len(self.bridges)
        if coverage >= 0.8 and bridges >= 3:
            return "EXCELLENT - High knowledge graph integration with strong cross-pool bridges"
        if coverage >= 0.6 and bridges >= 2:
            return "GOOD - Solid knowledge graph presence with some bridge entities"
        if coverage >= 0.4 or bridges >= 1:
            return "MODERATE - Partial integration with some existing connections"
        return "LIMITED - Few existing connections, represents novel content"

    def entity_extraction_score(self) -> float:
        entity_score = min(len(self.all_values) * 5, 50)
        diversity_score = (len(self.pools) + len(self.basic)) * 7
        return round(float(entity_score + diversity_score), 1)

    def semantic_understanding_score(self) -> float:
        coverage = round(self.active_pools / len(POOLS) * 50, 1)
        counts = [len(v) for v in self.pools.values()]
        total = sum(counts)
        balanced = total > 0 and max(counts) / total < 0.6
        return coverage + (25 if balanced else 0)

    def cultural_domains(self) -> list[dict[str, Any]]:
        domains = []
        for name, pool in CULTURAL_DOMAINS:
            values = self.pools.get(pool) or []
            if values:
                domains.append({
                    "name": name,
                    "entity_count": len(values),
                    "example_entities": values[:3],
                    "activated": True,
                })
        return domains

    def enliteracy(self) -> dict[str, Any]:
        connection = self.connection_analysis()
        overall = round(
            self.entity_extraction_score() * 0.3
            + self.semantic_understanding_score() * 0.4
            + connection["connection_strength"] * 0.3,
            1,
        )
        overall = min(max(overall, 0.0), 100.0)
        return {
            "entity_extraction_score": self.entity_extraction_score(),
            "semantic_understanding_score": self.semantic_understanding_score(),
            "cultural_integration_score": connection["cultural_resonance_score"],
            "knowledge_graph_connectivity": connection["connection_strength"],
            "overall_enliteracy_score": overall,
            "enliteracy_grade": enliteracy_grade(overall),
            "interpretation": interpretation(overall, self.active_pools),
            "semantic_richness": self.semantic_richness(),
            "connection_analysis": connection,
            "cultural_domains": self.cultural_domains(),
        }


class AnalyzePoolsTool(BaseTool[AnalyzePoolsParams]):
    """Analyze text against the entities already in the knowledge base."""

    name = "analyze_pools"
    description = "Map text onto the Seven Pools and grade how well it is understood"
    params_model = AnalyzePoolsParams

    def __init__(self, store: BaseEntityStore) -> None:
        self._store = store

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        text = (arguments or {}).get("text") or ""
        return {
            "ok": False,
            "error": message,
            "entities": [],
            "ambiguous_terms": [],
            "normalized_query": text.lower().strip() if isinstance(text, str) else "",
        }

    async def run(self, params: AnalyzePoolsParams) -> dict[str, Any]:
        if params.mode not in VALID_MODES:
            return self.error_payload("invalid_mode")
        if len(params.text) > MAX_TEXT_LENGTH:
            return self.error_payload("text_too_long")

        try:
            return await self._analyze(params)
        except Exception as e:
            logger.error("AnalyzePoolsTool error: %s", e, exc_info=True)
            return self.error_payload(f"Analysis failed: {e}", params.model_dump())

    async def _analyze(self, params: AnalyzePoolsParams) -> dict[str, Any]:
        text = params.text
        words = [w for w in words_of(text) if len(w) >= MIN_WORD_LENGTH]
        pools = await self._match(
            {pool: pool_entity_type(pool) for pool in POOLS}, words
        )
        basic = await self._match({t: t for t in MATCH_TYPES}, words)

        analysis = PoolAnalysis(
            pools, basic, await self._store.value_frequencies(_all_values(pools, basic))
        )
        similar = await self._similar_items(analysis.all_values)

        if params.mode == "extract":
            response = self._extract_response(text, pools, basic, params.link_threshold)
        elif params.mode == "classify":
            response = self._classify_response(text, analysis)
        else:
            response = self._link_response(text, pools, basic, similar)

        response["pools"] = await self._pool_groups(
            pools, params.link_threshold if params.mode == "link" else None
        )
        response["enliteracy"] = analysis.enliteracy()
        response["ok"] = True
        logger.info(
            "analyze_pools (%s): %d pools, %d basic types, grade %s",
            params.mode, len(pools), len(basic), response["enliteracy"]["enliteracy_grade"],
        )
        return response

    async def _match(self, types: dict[str, str], words: list[str]) -> dict[str, list[str]]:
        """Distinct entity values containing any of ``words``, keyed by pool or type name."""
        matches: dict[str, list[str]] = {}
        if not words:
            return matches
        for key, entity_type in types.items():
            rows = await self._store.filter_entities(entity_types=[entity_type], value_like=words)
            values = _distinct([r.entity_value for r in rows])[:MATCHES_PER_TYPE]
            if values:
                matches[key] = values
        return matches

    async def _similar_items(self, values: list[str]) -> list[dict[str, Any]]:
        sample = values[:SIMILAR_ITEM_VALUES]
        if not sample:
            return []
        min_overlap = max(int(len(sample) * 0.3), 2)
        rows = await self._store.similar_items_by_entities(
            sample, min_overlap=min_overlap, limit=SIMILAR_ITEM_LIMIT
        )
        return [
            {
                "id": item.id,
                "name": item.name,
                "item_type": item.item_type,
                "entity_overlap_count": overlap,
                "similarity_strength": round(overlap / len(sample) * 100, 1),
            }
            for item, overlap in rows
        ]

    async def _pool_groups(
        self, pools: dict[str, list[str]], threshold: float | None
    ) -> dict[str, Any]:
        all_values = _all_values(pools, {})
        people = {
            e.entity_value.lower()
            for e in await self._store.filter_entities(
                entity_types=["person"], value_equals=all_values
            )
        } if all_values else set()
        groups: dict[str, Any] = {}
        for pool, values in pools.items():
            entities = []
            for value in values:
                confidence = link_confidence(value)
                if threshold is not None and confidence < threshold:
                    continue
                entities.append({
                    "value": value,
                    "type": "person" if value.lower() in people else "concept",
                    "confidence": confidence,
                })
            groups[pool] = {"entities": entities, "count": len(entities)}
        return groups

    def _extract_response(
        self,
        text: str,
        pools: dict[str, list[str]],
        basic: dict[str, list[str]],
        threshold: float,
    ) -> dict[str, Any]:
        lowered = text.lower()
        entities = []
        for pool, values in pools.items():
            for value in values:
                start = lowered.find(value.lower())
                if start < 0:
                    continue
                linked = (
                    f"{pool}:{parameterize(value)}"
                    if link_confidence(value) >= threshold else None
                )
                entities.append({
                    "span": value,
                    "start": start,
                    "end": start + len(value),
                    "pool": pool,
                    "canonical_term": titleize(value),
                    "confidence": extraction_confidence(value, text),
                    "linked_id": linked,
                })
        entities.sort(key=lambda e: e["start"])
        return {
            "entities": entities,
            "ambiguous_terms": ambiguous_terms(text, pools),
            "normalized_query": normalize_query(text, pools, basic),
        }

    def _classify_response(self, text: str, analysis: PoolAnalysis) -> dict[str, Any]:
        primary = None
        if analysis.pools:
            primary = max(analysis.pools.items(), key=lambda pair: len(pair[1]))[0]
        return {
            "entities": [
                _whole_entity(pool, value, 0.8)
                for pool, values in analysis.pools.items()
                for value in values
            ],
            "ambiguous_terms": [],
            "normalized_query": normalize_query(text, analysis.pools, analysis.basic),
            "classification": {
                "primary_pool": primary,
                "cultural_domains": analysis.cultural_domains(),
                "confidence_scores": {
                    pool: round(len(values) / 10.0, 2) for pool, values in analysis.pools.items()
                },
            },
        }

    def _link_response(
        self,
        text: str,
        pools: dict[str, list[str]],
        basic: dict[str, list[str]],
        similar: list[dict[str, Any]],
    ) -> dict[str, Any]:
        names = [(s["name"] or "").lower() for s in similar]
        entities = [
            _whole_entity(pool, value, 0.9)
            for pool, values in pools.items()
            for value in values
            if any(value.lower() in name for name in names)
        ]
        return {
            "entities": entities,
            "ambiguous_terms": ambiguous_terms(text, pools),
            "normalized_query": normalize_query(text, pools, basic),
            "linked_items": [
                {"id": s["id"], "title": s["name"], "similarity": s["similarity_strength"]}
                for s in similar
            ],
        }


def ambiguous_terms(text: str, pools: dict[str, list[str]]) -> list[dict[str, Any]]:
    """Words of the text matching entities in more than one place."""
    terms: dict[str, list[str]] = {}
    for word in words_of(text):
        if len(word) < MIN_WORD_LENGTH or word in terms:
            continue
        candidates = [
            f"{pool}:{value}"
            for pool, values in pools.items()
            for value in values
            if word in value.lower()
        ]
        if len(candidates) > 1:
            terms[word] = candidates[:3]
    return [{"term": t, "candidates": c} for t, c in terms.items()][:MAX_AMBIGUOUS]


def normalize_query(
    text: str, pools: dict[str, list[str]], basic: dict[str, list[str]]
) -> str:
    """Replace each word by the first longer entity value containing it."""
    values = _all_values(pools, basic)
    normalized = []
    for word in words_of(text):
        canonical = next(
            (titleize(v) for v in values if word in v.lower() and len(v) > len(word)),
            word,
        )
        normalized.append(canonical)
    return " ".join(_distinct(normalized))


def _all_values(pools: dict[str, list[str]], basic: dict[str, list[str]]) -> list[str]:
    return [v for values in pools.values() for v in values] + [
        v for values in basic.values() for v in values
    ]


def _whole_entity(pool: str, value: str, confidence: float) -> dict[str, Any]:
    return {
        "span": value,
        "start": 0,
        "end": len(value),
        "pool": pool,
        "canonical_term": titleize(value),
        "confidence": confidence,
        "linked_id": f"{pool}:{parameterize(value)}",
    }
