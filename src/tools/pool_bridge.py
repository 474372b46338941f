# src/tools/pool_bridge.py
"""pool_bridge: items and entities connecting two pools.

Inputs may be a pool name (``idea``), a ``pool:entity`` pair, or free text
resolved to the first pool whose entities contain one of its words. Bridges
are read from the graph database when one is configured, and from the entity
store when it is not or when the graph query fails.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from sevenpools.core.models import POOLS, pool_entity_type
from sevenpools.rag.graph_store.base_graph_store import BaseGraphStore
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import PoolBridgeParams

logger = logging.getLogger(__name__)

BRIDGE_ITEM_LIMIT = 15
BRIDGE_ENTITY_LIMIT = 20
_WORD_RE = re.compile(r"\W+")
_POOL_PREFIX_RE = re.compile(r"^[a-z_]+$")

POOL_DESCRIPTIONS = {
    "manifest": "Physical structures, tangible creations, built environment",
    "experience": "Sensory memories, transformations, lived experiences",
    "relational": "Social connections, community bonds, relationships",
    "idea": "Philosophy, concepts, principles, beliefs",
    "practical": "How-to knowledge, techniques, skills, methods",
    "evolutionary": "Changes over time, history, development, growth",
    "emanation": "Spiritual insights, emergence, transcendence, mystery",
}

RELATIONSHIP_TYPES = {
    frozenset(("manifest", "experience")): "Physical-to-Experiential",
    frozenset(("manifest", "relational")): "Structure-to-Community",
    frozenset(("experience", "idea")): "Lived-to-Conceptual",
    frozenset(("idea", "practical")): "Theory-to-Practice",
    frozenset(("relational", "emanation")): "Social-to-Spiritual",
    frozenset(("practical", "evolutionary")): "Skills-to-Adaptation",
}

CONNECTION_THEMES = {
    frozenset(("manifest", "experience")): "How structures create experiences",
    frozenset(("manifest", "relational")): "How spaces foster community",
    frozenset(("experience", "idea")): "How experiences embody concepts",
    frozenset(("idea", "practical")): "How principles become practice",
    frozenset(("relational", "emanation")): "How community enables transcendence",
    frozenset(("practical", "evolutionary")): "How skills drive evolution",
}

CONNECTION_EXAMPLES = {
    frozenset(("manifest", "experience")): [
        "Art cars creating mobile experiences", "Temples facilitating spiritual journeys",
    ],
    frozenset(("manifest", "relational")): [
        "Camp kitchens fostering sharing", "Common areas building community",
    ],
    frozenset(("experience", "idea")): [
        "Burn ceremonies expressing impermanence", "Gift economy practicing generosity",
    ],
    frozenset(("idea", "practical")): [
        "Radical self-reliance teaching skills", "Leave No Trace protecting environment",
    ],
    frozenset(("relational", "emanation")): [
        "Sacred circles creating connection", "Community rituals enabling transcendence",
    ],
}


class BridgeCandidate(BaseModel):
    """A bridge item from either backend."""

    id: str | None
    name: str | None
    entities_a: list[str] = Field(default_factory=list)
    entities_b: list[str] = Field(default_factory=list)
    bridge_strength: int = 0


def bridge_strength_label(occurrences: int) -> str:
    if occurrences <= 5:
        return "weak"
    if occurrences <= 15:
        return "moderate"
    if occurrences <= 30:
        return "strong"
    return "very_strong"


def overall_strength(entity_count: int, item_count: int) -> str:
    if entity_count == 0 and item_count == 0:
        return "none"
    if entity_count >= 5 or item_count >= 10:
        return "strong"
    if entity_count >= 2 or item_count >= 5:
        return "moderate"
    return "weak"


def bridge_score(strength: int, pool_count: int) -> float:
    base = min(strength / 10.0, 1.0)
    bonus = min(pool_count * 0.1, 0.3)
    return min(round(base + bonus, 2), 1.0)


def relationship(pool_a: str, pool_b: str) -> dict[str, Any]:
    key = frozenset((pool_a, pool_b))
    return {
        "type": RELATIONSHIP_TYPES.get(key, "Cross-Domain"),
        "theme": CONNECTION_THEMES.get(key, "Interdisciplinary connections"),
        "examples": CONNECTION_EXAMPLES.get(key, ["Cross-domain innovations", "Hybrid approaches"]),
        "pool_a_nature": POOL_DESCRIPTIONS.get(pool_a, "Unknown pool"),
        "pool_b_nature": POOL_DESCRIPTIONS.get(pool_b, "Unknown pool"),
    }


def _path_element(pool: str, entities: list[str], wanted: str | None) -> str:
    lowered = {e.lower(): e for e in entities}
    if wanted and wanted.lower() in lowered:
        return f"{pool.capitalize()}({lowered[wanted.lower()]})"
    if entities:
        return f"{pool.capitalize()}({entities[0]})"
    return f"{pool.capitalize()}(?)"


def build_path(
    candidate: BridgeCandidate,
    pool_a: str,
    pool_b: str,
    entity_a: str | None,
    entity_b: str | None,
) -> str:
    return " → ".join([
        _path_element(pool_a, candidate.entities_a, entity_a),
        candidate.name or "Item",
        _path_element(pool_b, candidate.entities_b, entity_b),
    ])


class PoolBridgeTool(BaseTool[PoolBridgeParams]):
    """Find items and entities bridging two pools."""

    name = "pool_bridge"
    description = "Find items and shared entities connecting two of the Seven Pools"
    params_model = PoolBridgeParams

    def __init__(
        self,
        store: BaseEntityStore,
        graph_store: BaseGraphStore | None = None,
    ) -> None:
        self._store = store
        self._graph = graph_store

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return {"ok": False, "error": message, "bridges": []}

    async def run(self, params: PoolBridgeParams) -> dict[str, Any]:
        try:
            pool_a, entity_a = await self.parse_pool_input(params.a)
            pool_b, entity_b = await self.parse_pool_input(params.b)
            if pool_a is not None and pool_a not in POOLS:
                return self.error_payload("invalid_pool")
            if pool_b is not None and pool_b not in POOLS:
                return self.error_payload("invalid_pool")
            if params.a == params.b:
                return self.error_payload("same_input")
            if params.top_k < 1:
                return self.error_payload("top_k out of range")
            if pool_a is None or pool_b is None:
                logger.info("pool_bridge: no pool detected for %r / %r", params.a, params.b)
                return {
                    "ok": True,
                    "bridges": [],
                    "bridge_entities": [],
                    "overall_strength": "none",
                }

            items, entities = await self._find_bridges(pool_a, pool_b)
            bridges = []
            for candidate in items[: params.top_k]:
                bridges.append(
                    await self._format_bridge(candidate, pool_a, pool_b, entity_a, entity_b)
                )
            return {
                "ok": True,
                "bridges": bridges,
                "bridge_entities": entities,
                "relationship": relationship(pool_a, pool_b),
                "overall_strength": overall_strength(len(entities), len(items)),
            }
        except Exception as e:
            logger.error("PoolBridgeTool error: %s", e, exc_info=True)
            return self.error_payload(f"Bridge analysis failed: {e}")

    async def parse_pool_input(self, raw: str) -> tuple[str | None, str | None]:
        """Return ``(pool, entity)`` for a pool name, ``pool:entity`` or free text.

        A single-word prefix before ``:`` is taken as a pool name even when it
        is not one, so the caller can reject it.
        """
        text = raw.strip().lower()
        if text in POOLS:
            return text, None
        if ":" in text:
            pool, entity = text.split(":", 1)
            if _POOL_PREFIX_RE.match(pool):
                return pool, entity
        return await self.detect_pool(text), text

    async def detect_pool(self, text: str) -> str | None:
        words = [w for w in _WORD_RE.split(text) if w]
        if not words:
            return None
        for pool in POOLS:
            matches = await self._store.filter_entities(
                entity_types=[pool_entity_type(pool)], value_like=words, limit=1
            )
            if matches:
                return pool
        return None

    async def _find_bridges(
        self, pool_a: str, pool_b: str
    ) -> tuple[list[BridgeCandidate], list[dict[str, Any]]]:
        if self._graph is not None:
            try:
                return await self._graph_bridges(pool_a, pool_b)
            except Exception as e:
                logger.warning("Graph store unavailable, using entity store fallback: %s", e)
        return await self._store_bridges(pool_a, pool_b)

    async def _graph_bridges(
        self, pool_a: str, pool_b: str
    ) -> tuple[list[BridgeCandidate], list[dict[str, Any]]]:
        entity_rows = await self._graph.bridge_entities(pool_a, pool_b, limit=BRIDGE_ENTITY_LIMIT)
        item_rows = await self._graph.bridge_items(pool_a, pool_b, limit=BRIDGE_ITEM_LIMIT)
        items = [
            BridgeCandidate(
                id=row.item_id,
                name=row.name,
                entities_a=row.pool_a_entities,
                entities_b=row.pool_b_entities,
                bridge_strength=row.entity_count,
            )
            for row in item_rows
        ]
        entities = [
            _entity_view(row.name, row.total_occurrences) for row in entity_rows
        ]
        return items, entities

    async def _store_bridges(
        self, pool_a: str, pool_b: str
    ) -> tuple[list[BridgeCandidate], list[dict[str, Any]]]:
        type_a, type_b = pool_entity_type(pool_a), pool_entity_type(pool_b)
        entity_rows = await self._store.bridge_entities(type_a, type_b, limit=BRIDGE_ENTITY_LIMIT)
        item_rows = await self._store.bridge_items(type_a, type_b, limit=BRIDGE_ITEM_LIMIT)
        items = [
            BridgeCandidate(
                id=row.item.id,
                name=row.item.name,
                entities_a=row.entities_a,
                entities_b=row.entities_b,
                bridge_strength=len(row.entities_a) + len(row.entities_b),
            )
            for row in item_rows
        ]
        entities = [_entity_view(value, count) for value, count in entity_rows]
        return items, entities

    async def _format_bridge(
        self,
        candidate: BridgeCandidate,
        pool_a: str,
        pool_b: str,
        entity_a: str | None,
        entity_b: str | None,
    ) -> dict[str, Any]:
        pools_hit = []
        if candidate.entities_a:
            pools_hit.append(pool_a)
        if candidate.entities_b:
            pools_hit.append(pool_b)
        if candidate.id:
            for entity in await self._store.entities_for_item(candidate.id, pools_only=True):
                if entity.pool and entity.pool not in pools_hit:
                    pools_hit.append(entity.pool)
        return {
            "id": candidate.id,
            "title": candidate.name or "Untitled",
            "pools_hit": pools_hit,
            "bridge_score": bridge_score(candidate.bridge_strength, 2),
            "path": build_path(candidate, pool_a, pool_b, entity_a, entity_b),
        }


def _entity_view(name: str, occurrences: int) -> dict[str, Any]:
    return {
        "name": name,
        "total_occurrences": occurrences,
        "bridge_strength": bridge_strength_label(occurrences),
    }
