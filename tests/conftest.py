# tests/conftest.py
"""Shared test fixtures for all unit and integration tests.

Provides a seeded in-memory entity store, settings, cache and capsule
stores. No external services: every backend is in-process.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sevenpools.cache.memory_store import MemoryCacheStore
from sevenpools.capsules.sqlite_capsule_store import SqliteCapsuleStore
from sevenpools.config.settings import Settings
from sevenpools.core.models import CorpusItem, Entity, Item, Rights
from sevenpools.store.memory_store import InMemoryEntityStore

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

LARRY_HARVEY_TEXT = (
    "We believe that community is a gift we give together. Every participant "
    "should bring something to share with the city, and we must always remember "
    "that the gift economy is a living principle. What does it mean to belong? "
    "What does it mean to create? What would happen if we built a city like a "
    "temple? Radical inclusion is a promise, not a rule. We should never "
    "commodify the experience, and we must avoid spectating from the sidelines. "
    "Participate, create, and transform the desert into a vessel of meaning. "
    "The playa is a canvas for the imagination and the future we imagine together."
)

LARRY_HARVEY_YEARS = (2000, 2002, 2004, 2006, 2008, 2010)


def _larry_harvey_items() -> tuple[list[Item], list[Entity]]:
    items: list[Item] = []
    entities: list[Entity] = []
    for year in LARRY_HARVEY_YEARS:
        item_id = f"lh-{year}"
        items.append(
            Item(
                id=item_id,
                item_type="philosophical_text",
                year=year,
                name=f"Ten Principles Reflections {year}",
                description=(
                    f"{LARRY_HARVEY_TEXT} In {year}, the theme asked us to reflect "
                    "on our shared essence and to consider how culture becomes a "
                    "circle of giving."
                ),
            )
        )
        entities.extend([
            Entity(item_id=item_id, entity_type="person", entity_value="Larry Harvey"),
            Entity(item_id=item_id, entity_type="pool_idea", entity_value="Larry Harvey"),
            Entity(item_id=item_id, entity_type="pool_idea", entity_value="radical inclusion"),
            Entity(item_id=item_id, entity_type="theme", entity_value="community"),
        ])

    items.append(
        Item(
            id="lh-essay",
            item_type="essay",
            year=2005,
            name="On the Gift Economy",
            description=(
                "Larry Harvey wrote that a gift binds people together. We must "
                "share freely and we should always give without expectation."
            ),
        )
    )
    entities.extend([
        Entity(item_id="lh-essay", entity_type="person", entity_value="Larry Harvey"),
        Entity(item_id="lh-essay", entity_type="pool_relational", entity_value="gift economy"),
    ])

    items.append(
        Item(
            id="lh-emanation",
            item_type="experience_story",
            year=2009,
            name="Night at the Temple",
            description=(
                "Remembering Larry Harvey at the temple burn, the silence felt "
                "like a circle of light around the whole city."
            ),
        )
    )
    entities.append(
        Entity(item_id="lh-emanation", entity_type="pool_emanation", entity_value="temple burn")
    )
    return items, entities


def _bridge_items() -> tuple[list[Item], list[Entity]]:
    items = [
        Item(id="art-temple", item_type="art", year=2019, name="Temple of Direction",
             description="A wooden temple built to be burned."),
        Item(id="art-embrace", item_type="art", year=2014, name="Embrace",
             description="Two figures in a wooden embrace.",
             metadata={"category": "sculpture"}),
        Item(id="camp-center", item_type="camp", year=2018, name="Center Camp Cafe",
             description="Shade and coffee at the heart of the city.",
             location_string="Center Camp"),
    ]
    entities = [
        Entity(item_id="art-temple", entity_type="pool_idea", entity_value="impermanence"),
        Entity(item_id="art-temple", entity_type="pool_manifest", entity_value="temple structure"),
        Entity(item_id="art-embrace", entity_type="pool_idea", entity_value="connection"),
        Entity(item_id="art-embrace", entity_type="pool_manifest", entity_value="wooden sculpture"),
        Entity(item_id="camp-center", entity_type="pool_idea", entity_value="gathering"),
        Entity(item_id="camp-center", entity_type="pool_manifest", entity_value="shade structure"),
    ]
    return items, entities


def _camp_items() -> tuple[list[Item], list[Entity]]:
    items = [
        Item(id="camp-foo-2023", item_type="camp", year=2023, name="Foo",
             description="Foo serves cold brew at sunrise.", location_string="3:00 & C"),
        Item(id="camp-bar-2023", item_type="camp", year=2023, name="Bar Lounge",
             description="A lounge with hammocks.", location_string="3:15 & C"),
        Item(id="camp-dome-2023", item_type="camp", year=2023, name="Distant Dome",
             description="Far away on the grid.", location_string="9:00 & K"),
        Item(id="camp-foo-2022", item_type="camp", year=2022, name="Foo",
             description="Foo's first year.", location_string="3:00 & D"),
        Item(id="camp-bar-2022", item_type="camp", year=2022, name="Bar Lounge",
             description="Hammocks again.", location_string="3:30 & D"),
    ]
    entities = [
        Entity(item_id="camp-foo-2023", entity_type="activity", entity_value="coffee"),
        Entity(item_id="camp-bar-2023", entity_type="activity", entity_value="coffee"),
    ]
    return items, entities


def _fire_items() -> tuple[list[Item], list[Entity]]:
    items = [
        Item(id="evt-fire", item_type="event", year=2023, name="Fire Spinning Workshop",
             description=(
                 "Learn fire spinning safety with poi and staff. Fire spinning "
                 "circles gather every night at dusk."
             ),
             metadata={"event_type": "workshop"}),
        Item(id="camp-fire", item_type="camp", year=2022, name="Fire Spinners Guild",
             description="A camp for fire spinning performers and their families.",
             location_string="6:00 & F"),
        Item(id="evt-private", item_type="event", year=2023, name="Private fire spinning jam",
             description="Invite-only fire spinning practice.",
             metadata={"rights": {"visibility": "internal"}}),
    ]
    entities = [
        Entity(item_id="evt-fire", entity_type="activity", entity_value="fire spinning"),
        Entity(item_id="evt-fire", entity_type="pool_practical", entity_value="fire spinning"),
        Entity(item_id="evt-fire", entity_type="pool_experience", entity_value="fire circle"),
        Entity(item_id="camp-fire", entity_type="activity", entity_value="fire spinning"),
        Entity(item_id="camp-fire", entity_type="pool_relational", entity_value="fire family"),
        Entity(item_id="evt-private", entity_type="activity", entity_value="fire spinning"),
    ]
    return items, entities


def build_sample_store() -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    for items, entities in (
        _larry_harvey_items(), _bridge_items(), _camp_items(), _fire_items()
    ):
        for item in items:
            store.add_item(item)
        for entity in entities:
            store.add_entity(entity)
    return store


def make_corpus_item(
    item_id: str = "c1",
    content: str = LARRY_HARVEY_TEXT,
    year: int = 2004,
    strategy: str = "authored_content",
    pools: list[str] | None = None,
    visibility: str = "public",
    **rights: object,
) -> CorpusItem:
    return CorpusItem(
        id=item_id,
        title=f"Item {item_id}",
        content=content,
        year=year,
        pools_hit=pools if pools is not None else ["idea"],
        strategy=strategy,
        score=0.9,
        rights=Rights(visibility=visibility, **rights),
    )


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def entity_store() -> InMemoryEntityStore:
    return build_sample_store()


@pytest.fixture
def empty_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def cache() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def capsule_store():
    store = SqliteCapsuleStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def corpus_item():
    """Factory for CorpusItem test data."""
    return make_corpus_item


@pytest.fixture
def store_factory():
    """Factory for fresh copies of the seeded store."""
    return build_sample_store


@pytest.fixture
def persona_parts(entity_store):
    """Real resolver and collector wired over the seeded store."""
    from sevenpools.persona.corpus_collector import StyleCorpusCollector
    from sevenpools.persona.resolver import PersonaResolver
    from sevenpools.search.unified_search import UnifiedSearchService
    from sevenpools.tools.analyze_pools import AnalyzePoolsTool
    from sevenpools.tools.search import SearchTool

    search = SearchTool(entity_store, UnifiedSearchService(entity_store))
    analyze = AnalyzePoolsTool(entity_store)
    return (
        PersonaResolver(entity_store, analyze, search),
        StyleCorpusCollector(entity_store, search),
    )


@pytest.fixture
def builder(settings, persona_parts, capsule_store, cache):
    from sevenpools.persona.capsule_builder import StyleCapsuleBuilder

    resolver, collector = persona_parts
    return StyleCapsuleBuilder(
        settings, resolver, collector, capsule_store, cache, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def build_job(settings, builder, capsule_store, cache):
    from sevenpools.cache.lock import CacheLock
    from sevenpools.jobs.build_capsule_job import BuildStyleCapsuleJob

    return BuildStyleCapsuleJob(
        settings, builder, capsule_store, CacheLock(cache), clock=lambda: FIXED_NOW
    )


@pytest.fixture
def job_queue():
    from sevenpools.jobs.local_queue import LocalJobQueue

    return LocalJobQueue()


@pytest.fixture
def capsule_record():
    """Factory for StyleCapsuleRecord rows keyed like the default settings."""
    from datetime import timedelta

    from sevenpools.capsules.models import StyleCapsuleRecord

    def make(persona="person:larry_harvey", expires_in=timedelta(days=7), **overrides):
        fields = dict(
            persona_id=persona,
            persona_label="Larry Harvey",
            capsule_json={"tone": ["visionary"], "era": "unknown"},
            confidence=0.7,
            sources_json=[{"id": "lh-2000", "title": "Ten Principles Reflections 2000", "year": 2000}],
            graph_version="2025.07",
            lexicon_version="2025.07",
            created_at=FIXED_NOW - timedelta(days=1),
            expires_at=FIXED_NOW + expires_in,
        )
        fields.update(overrides)
        return StyleCapsuleRecord(**fields)

    return make


@pytest.fixture
def toolbox(settings, entity_store, cache, capsule_store):
    """Fully wired tools over the seeded store and in-process backends."""
    from sevenpools.api.facade import build_toolbox

    return build_toolbox(
        settings,
        entity_store=entity_store,
        cache=cache,
        capsule_store=capsule_store,
        clock=lambda: FIXED_NOW,
    )
