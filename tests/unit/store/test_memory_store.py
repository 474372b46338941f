# tests/unit/store/test_memory_store.py
"""Tests for store/memory_store.py: networkx-backed entity store."""

from __future__ import annotations

import json

import pytest

from sevenpools.core.models import Entity, Item
from sevenpools.store.memory_store import InMemoryEntityStore, load_entity_store


class TestLoading:
    def test_counts(self, entity_store):
        assert entity_store.item_count() > 10
        assert entity_store.entity_count() > entity_store.item_count()

    def test_entity_for_unknown_item(self, empty_store):
        with pytest.raises(KeyError, match="unknown item"):
            empty_store.add_entity(
                Entity(item_id="missing", entity_type="activity", entity_value="x")
            )

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "items": [{"id": "a", "item_type": "art", "year": 2020, "name": "A"}],
            "entities": [{"item_id": "a", "entity_type": "pool_idea", "entity_value": "x"}],
        }), encoding="utf-8")
        store = load_entity_store(path)
        assert store.item_count() == 1
        assert store.entity_count() == 1


class TestLookup:
    @pytest.mark.asyncio
    async def test_get_item(self, entity_store):
        item = await entity_store.get_item("art-temple")
        assert item is not None
        assert item.name == "Temple of Direction"
        assert await entity_store.get_item("nope") is None

    @pytest.mark.asyncio
    async def test_get_items_preserves_order(self, entity_store):
        items = await entity_store.get_items(["art-embrace", "nope", "art-temple"])
        assert [i.id for i in items] == ["art-embrace", "art-temple"]

    @pytest.mark.asyncio
    async def test_entities_for_item_filtered(self, entity_store):
        rows = await entity_store.entities_for_item("art-temple", ["pool_idea"])
        assert [e.entity_value for e in rows] == ["impermanence"]

    @pytest.mark.asyncio
    async def test_entities_for_item_pools_only(self, entity_store):
        rows = await entity_store.entities_for_item("evt-fire", pools_only=True)
        assert {e.entity_type for e in rows} == {"pool_practical", "pool_experience"}

    @pytest.mark.asyncio
    async def test_entities_for_item_basic_only(self, entity_store):
        rows = await entity_store.entities_for_item("evt-fire", basic_only=True)
        assert [(e.entity_type, e.entity_value) for e in rows] == [("activity", "fire spinning")]

    @pytest.mark.asyncio
    async def test_entities_for_item_flags_narrow_types(self, entity_store):
        rows = await entity_store.entities_for_item(
            "evt-fire", entity_types=["activity", "pool_experience"], pools_only=True
        )
        assert [e.entity_value for e in rows] == ["fire circle"]
        assert await entity_store.entities_for_item(
            "evt-fire", pools_only=True, basic_only=True
        ) == []


class TestFilters:
    @pytest.mark.asyncio
    async def test_filter_entities_case_insensitive(self, entity_store):
        rows = await entity_store.filter_entities(["person"], value_equals="LARRY HARVEY")
        assert len(rows) == 7

    @pytest.mark.asyncio
    async def test_filter_entities_like_and_limit(self, entity_store):
        rows = await entity_store.filter_entities(value_like="fire", limit=2)
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_items_with_entities(self, entity_store):
        items = await entity_store.items_with_entities(
            entity_types=["activity"], value_equals="coffee", item_types=["camp"],
        )
        assert {i.id for i in items} == {"camp-foo-2023", "camp-bar-2023"}

    @pytest.mark.asyncio
    async def test_items_with_entities_text_like(self, entity_store):
        items = await entity_store.items_with_entities(
            entity_types=["activity"], value_equals="coffee", text_like="hammocks",
        )
        assert [i.id for i in items] == ["camp-bar-2023"]

    @pytest.mark.asyncio
    async def test_find_items_sorted(self, entity_store):
        items = await entity_store.find_items(item_type="camp", name_like="foo")
        assert [i.id for i in items] == ["camp-foo-2022", "camp-foo-2023"]

    @pytest.mark.asyncio
    async def test_find_items_location(self, entity_store):
        items = await entity_store.find_items(
            year=2023, require_location=True, exclude_id="camp-foo-2023",
        )
        assert "camp-foo-2023" not in {i.id for i in items}
        assert all(i.location_string for i in items)


class TestAggregates:
    @pytest.mark.asyncio
    async def test_group_count_by_type(self, entity_store):
        counts = await entity_store.group_count_by_type(["fire spinning"])
        assert counts == {"activity": 3, "pool_practical": 1}

    @pytest.mark.asyncio
    async def test_value_frequencies(self, entity_store):
        freqs = await entity_store.value_frequencies(["Coffee", "unseen"])
        assert freqs == {"coffee": 2, "unseen": 0}

    @pytest.mark.asyncio
    async def test_join_cooccurrence(self, entity_store):
        rows = await entity_store.join_cooccurrence("camp-foo-2023")
        assert [r.item.id for r in rows] == ["camp-bar-2023"]
        assert rows[0].entity.entity_value == "coffee"

    @pytest.mark.asyncio
    async def test_bridge_items(self, entity_store):
        rows = await entity_store.bridge_items("pool_idea", "pool_manifest")
        assert {r.item.id for r in rows} == {"art-temple", "art-embrace", "camp-center"}

    @pytest.mark.asyncio
    async def test_bridge_entities(self, entity_store):
        shared = await entity_store.bridge_entities("activity", "pool_practical")
        assert shared == [("fire spinning", 4)]

    @pytest.mark.asyncio
    async def test_similar_items_by_entities(self, entity_store):
        rows = await entity_store.similar_items_by_entities(
            ["fire spinning", "fire family"], min_overlap=2,
        )
        assert [(i.id, n) for i, n in rows] == [("camp-fire", 2)]


class TestSemanticSearch:
    @pytest.mark.asyncio
    async def test_lexical_ranking(self, entity_store):
        results = await entity_store.semantic_search("fire spinning", limit=3)
        assert results
        assert all(r.similarity > 0 for r in results)
        assert results[0].similarity == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_year_filter(self, entity_store):
        results = await entity_store.semantic_search("fire spinning", year=2022)
        assert {r.item.id for r in results} == {"camp-fire"}

    @pytest.mark.asyncio
    async def test_embedding_overrides_lexical(self):
        store = InMemoryEntityStore(items=[
            Item(id="a", item_type="art", year=2020, name="Alpha", embedding=[1.0, 0.0]),
            Item(id="b", item_type="art", year=2020, name="Beta", embedding=[0.0, 1.0]),
        ])
        results = await store.semantic_search("anything", query_embedding=[0.0, 1.0])
        assert [r.item.id for r in results] == ["b"]

    @pytest.mark.asyncio
    async def test_empty_store(self, empty_store):
        assert await empty_store.semantic_search("fire") == []
