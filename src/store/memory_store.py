# src/store/memory_store.py
"""In-memory entity store backed by a networkx bipartite graph.

Item nodes connect to entity nodes keyed by ``(entity_type, lower(value))``.
Each entity row is one edge, so repeated tags with different confidence
are preserved. Loaded once from a JSON export and read-only afterwards.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path

import networkx as nx
import numpy as np

from sevenpools.core.models import BASIC_ENTITY_TYPES, POOL_ENTITY_TYPES, Entity, Item
from sevenpools.core.similarity import cosine_scores
from sevenpools.store.base_entity_store import BaseEntityStore, ValueFilter
from sevenpools.store.models import BridgeRow, CooccurrenceRow, ScoredItem

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w{2,}")


def _item_node(item_id: str) -> tuple[str, str]:
    return ("item", item_id)


def _entity_node(entity_type: str, value: str) -> tuple[str, str, str]:
    return ("entity", entity_type, value.lower())


def _as_list(values: ValueFilter) -> list[str] | None:
    if values is None:
        return None
    if isinstance(values, str):
        return [values.lower()]
    return [v.lower() for v in values if v]


def _value_matches(value: str, like: list[str] | None, equals: list[str] | None) -> bool:
    lowered = value.lower()
    if equals is not None and lowered not in equals:
        return False
    if like is not None and not any(fragment in lowered for fragment in like):
        return False
    return True


class InMemoryEntityStore(BaseEntityStore):
    """Entity store held entirely in memory."""

    def __init__(
        self,
        items: Iterable[Item] = (),
        entities: Iterable[Entity] = (),
    ) -> None:
        self._items: dict[str, Item] = {}
        self._entities: list[Entity] = []
        self._graph = nx.MultiGraph()
        for item in items:
            self.add_item(item)
        for entity in entities:
            self.add_entity(entity)

    # --- Loading ---

    def add_item(self, item: Item) -> None:
        self._items[item.id] = item
        self._graph.add_node(_item_node(item.id), kind="item")

    def add_entity(self, entity: Entity) -> None:
        if entity.item_id not in self._items:
            raise KeyError(f"Entity references unknown item: {entity.item_id!r}")
        node = _entity_node(entity.entity_type, entity.entity_value)
        self._graph.add_node(node, kind="entity", entity_type=entity.entity_type)
        self._graph.add_edge(_item_node(entity.item_id), node, entity=entity)
        self._entities.append(entity)

    @property
    def graph(self) -> nx.MultiGraph:
        return self._graph

    def item_count(self) -> int:
        return len(self._items)

    def entity_count(self) -> int:
        return len(self._entities)

    # --- Lookup ---

    async def get_item(self, item_id: str) -> Item | None:
        return self._items.get(str(item_id))

    async def get_items(self, item_ids: Sequence[str]) -> list[Item]:
        return [self._items[i] for i in item_ids if i in self._items]

    async def entities_for_item(
        self,
        item_id: str,
        entity_types: Sequence[str] | None = None,
        pools_only: bool = False,
        basic_only: bool = False,
    ) -> list[Entity]:
        wanted = set(entity_types) if entity_types is not None else None
        for flag, family in ((pools_only, POOL_ENTITY_TYPES), (basic_only, BASIC_ENTITY_TYPES)):
            if flag:
                wanted = set(family) if wanted is None else wanted & set(family)
        return self._item_entities(item_id, wanted)

    def _item_entities(
        self, item_id: str, entity_types: Sequence[str] | None = None
    ) -> list[Entity]:
        node = _item_node(item_id)
        if node not in self._graph:
            return []
        rows = [
            data["entity"]
            for _, _, data in self._graph.edges(node, data=True)
        ]
        if entity_types is not None:
            wanted = set(entity_types)
            rows = [e for e in rows if e.entity_type in wanted]
        return rows

    # --- Filters ---

    async def filter_entities(
        self,
        entity_types: Sequence[str] | None = None,
        value_like: ValueFilter = None,
        value_equals: ValueFilter = None,
        limit: int | None = None,
    ) -> list[Entity]:
        like = _as_list(value_like)
        equals = _as_list(value_equals)
        wanted = set(entity_types) if entity_types is not None else None
        result: list[Entity] = []
        for entity in self._entities:
            if wanted is not None and entity.entity_type not in wanted:
                continue
            if not _value_matches(entity.entity_value, like, equals):
                continue
            result.append(entity)
            if limit is not None and len(result) >= limit:
                break
        return result

    async def items_with_entities(
        self,
        entity_types: Sequence[str] | None = None,
        value_equals: ValueFilter = None,
        value_like: ValueFilter = None,
        item_types: Sequence[str] | None = None,
        text_like: str | None = None,
        limit: int | None = None,
    ) -> list[Item]:
        like = _as_list(value_like)
        equals = _as_list(value_equals)
        wanted_types = set(entity_types) if entity_types is not None else None
        wanted_items = set(item_types) if item_types is not None else None
        text = text_like.lower() if text_like else None

        result: list[Item] = []
        for item in self._items.values():
            if wanted_items is not None and item.item_type not in wanted_items:
                continue
            if text is not None and not (
                text in item.name.lower() or text in item.content.lower()
            ):
                continue
            if not any(
                (wanted_types is None or e.entity_type in wanted_types)
                and _value_matches(e.entity_value, like, equals)
                for e in self._item_entities(item.id)
            ):
                continue
            result.append(item)
            if limit is not None and len(result) >= limit:
                break
        return result

    async def find_items(
        self,
        item_type: str | None = None,
        year: int | None = None,
        name_like: str | None = None,
        location_like: str | None = None,
        require_location: bool = False,
        exclude_id: str | None = None,
        limit: int | None = None,
    ) -> list[Item]:
        name = name_like.lower() if name_like else None
        location = location_like.lower() if location_like else None
        matches = []
        for item in self._items.values():
            if item_type is not None and item.item_type != item_type:
                continue
            if year is not None and item.year != year:
                continue
            if exclude_id is not None and item.id == exclude_id:
                continue
            if name is not None and name not in item.name.lower():
                continue
            loc = item.location_string or ""
            if (require_location or location is not None) and not loc:
                continue
            if location is not None and location not in loc.lower():
                continue
            matches.append(item)
        matches.sort(key=lambda i: (i.year, i.name))
        return matches[:limit] if limit is not None else matches

    # --- Aggregates & joins ---

    async def group_count_by_type(
        self,
        entity_values: Sequence[str] | None = None,
        entity_types: Sequence[str] | None = None,
    ) -> dict[str, int]:
        equals = _as_list(entity_values) if entity_values is not None else None
        wanted = set(entity_types) if entity_types is not None else None
        counts: Counter[str] = Counter()
        for entity in self._entities:
            if wanted is not None and entity.entity_type not in wanted:
                continue
            if equals is not None and entity.entity_value.lower() not in equals:
                continue
            counts[entity.entity_type] += 1
        return dict(counts)

    async def value_frequencies(self, entity_values: Sequence[str]) -> dict[str, int]:
        wanted = {v.lower() for v in entity_values}
        counts: Counter[str] = Counter(
            e.entity_value.lower()
            for e in self._entities
            if e.entity_value.lower() in wanted
        )
        return {v: counts.get(v, 0) for v in wanted}

    async def join_cooccurrence(self, item_id: str, limit: int = 20) -> list[CooccurrenceRow]:
        source = _item_node(item_id)
        if source not in self._graph:
            return []
        rows: list[CooccurrenceRow] = []
        seen: set[tuple] = set()
        for entity in self._item_entities(item_id):
            node = _entity_node(entity.entity_type, entity.entity_value)
            for neighbor in self._graph.neighbors(node):
                other_id = neighbor[1]
                key = (other_id, node)
                if other_id == item_id or key in seen:
                    continue
                seen.add(key)
                rows.append(CooccurrenceRow(entity=entity, item=self._items[other_id]))
                if len(rows) >= limit:
                    return rows
        return rows

    async def bridge_items(
        self, type_a: str, type_b: str, limit: int = 15
    ) -> list[BridgeRow]:
        rows: list[BridgeRow] = []
        for item in self._items.values():
            entities = self._item_entities(item.id, (type_a, type_b))
            values_a = _distinct(e.entity_value for e in entities if e.entity_type == type_a)
            values_b = _distinct(e.entity_value for e in entities if e.entity_type == type_b)
            if not values_a or not values_b:
                continue
            rows.append(
                BridgeRow(
                    item=item,
                    entities_a=values_a,
                    entities_b=values_b,
                    entity_count=len(entities),
                )
            )
        rows.sort(key=lambda r: r.entity_count, reverse=True)
        return rows[:limit]

    async def bridge_entities(
        self, type_a: str, type_b: str, limit: int = 20
    ) -> list[tuple[str, int]]:
        types_by_value: dict[str, set[str]] = {}
        counts: Counter[str] = Counter()
        display: dict[str, str] = {}
        for entity in self._entities:
            if entity.entity_type not in (type_a, type_b):
                continue
            key = entity.entity_value.lower()
            types_by_value.setdefault(key, set()).add(entity.entity_type)
            counts[key] += 1
            display.setdefault(key, entity.entity_value)
        shared = [
            (display[key], counts[key])
            for key, types in types_by_value.items()
            if len(types) == 2
        ]
        shared.sort(key=lambda pair: pair[1], reverse=True)
        return shared[:limit]

    async def similar_items_by_entities(
        self,
        entity_values: Sequence[str],
        min_overlap: int,
        limit: int = 5,
    ) -> list[tuple[Item, int]]:
        wanted = {v.lower() for v in entity_values}
        scored: list[tuple[Item, int]] = []
        for item in self._items.values():
            values = {e.entity_value.lower() for e in self._item_entities(item.id)}
            overlap = len(values & wanted)
            if overlap >= min_overlap:
                scored.append((item, overlap))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    # --- Search ---

    async def semantic_search(
        self,
        query: str,
        query_embedding: Sequence[float] | None = None,
        year: int | None = None,
        limit: int = 10,
    ) -> list[ScoredItem]:
        candidates = [
            item for item in self._items.values() if year is None or item.year == year
        ]
        if not candidates:
            return []

        scores = {item.id: self._lexical_score(query, item) for item in candidates}

        if query_embedding is not None:
            embedded = [
                item for item in candidates
                if item.embedding is not None and len(item.embedding) == len(query_embedding)
            ]
            if embedded:
                matrix = np.asarray([item.embedding for item in embedded], dtype=np.float64)
                sims = np.clip(cosine_scores(query_embedding, matrix), 0.0, 1.0)
                for item, sim in zip(embedded, sims):
                    scores[item.id] = float(sim)

        ranked = sorted(
            (ScoredItem(item=item, similarity=scores[item.id]) for item in candidates),
            key=lambda s: s.similarity,
            reverse=True,
        )
        return [s for s in ranked if s.similarity > 0.0][:limit]

    def _lexical_score(self, query: str, item: Item) -> float:
        """Share of query tokens found in the item's text or entity values."""
        tokens = set(_TOKEN_RE.findall(query.lower()))
        if not tokens:
            return 0.0
        haystack = " ".join(
            [item.name, item.content]
            + [e.entity_value for e in self._item_entities(item.id)]
        ).lower()
        words = set(_TOKEN_RE.findall(haystack))
        return len(tokens & words) / len(tokens)


def _distinct(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        seen.setdefault(v, None)
    return list(seen)


def load_entity_store(path: Path | str) -> InMemoryEntityStore:
    """Load an entity store from a JSON export ``{"items": [...], "entities": [...]}``."""
    source = Path(path).expanduser()
    data = json.loads(source.read_text(encoding="utf-8"))
    store = InMemoryEntityStore(
        items=(Item(**raw) for raw in data.get("items", [])),
        entities=(Entity(**raw) for raw in data.get("entities", [])),
    )
    logger.info(
        "Loaded entity store from %s: %d items, %d entities",
        source, store.item_count(), store.entity_count(),
    )
    return store
