# tests/unit/persona/test_capsule_builder.py
"""Tests for persona/capsule_builder.py: the capsule pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sevenpools.capsules.base_capsule_store import CapsulePersistenceError
from sevenpools.capsules.models import CapsuleKey
from sevenpools.core.models import ConfidenceFactors, Provenance, RightsSummary, StyleFeatures
from sevenpools.persona.capsule_builder import (
    StyleCapsuleBuilder,
    blend_confidence,
    corpus_size_factor,
    rights_penalty,
    summarize_sources,
)

LARRY = "person:larry_harvey"


def _features(value: float) -> StyleFeatures:
    return StyleFeatures(
        confidence_factors=ConfidenceFactors(
            text_volume=value, strategy_diversity=value,
            pool_coverage=value, era_consistency=value,
        )
    )


def _key(settings, era=None) -> CapsuleKey:
    return CapsuleKey(
        persona_id=LARRY, era=era, rights_scope="public",
        graph_version=settings.graph_version, lexicon_version=settings.lexicon_version,
    )


class TestConfidence:
    def test_corpus_size_factor(self):
        assert corpus_size_factor(2) == -0.3
        assert corpus_size_factor(5) == -0.1
        assert corpus_size_factor(15) == 0.0
        assert corpus_size_factor(25) == 0.1
        assert corpus_size_factor(26) == 0.2

    def test_rights_penalty(self):
        clean = RightsSummary(ok=True, quotable=True, public_percentage=100.0)
        assert rights_penalty(clean) == 0.0
        poor = RightsSummary(ok=True, quotable=False, public_percentage=40.0)
        assert rights_penalty(poor) == pytest.approx(0.5)
        assert rights_penalty(RightsSummary(ok=False)) == 0.0

    def test_blend(self):
        clean = RightsSummary(ok=True, quotable=True, public_percentage=100.0)
        assert blend_confidence(_features(0.6), clean, 10, era_requested=False) == 0.6
        assert blend_confidence(_features(0.6), clean, 10, era_requested=True) == 0.7

    def test_blend_is_clamped(self):
        clean = RightsSummary(ok=True, quotable=True, public_percentage=100.0)
        poor = RightsSummary(ok=True, quotable=False, public_percentage=0.0)
        assert blend_confidence(_features(1.0), clean, 40, era_requested=True) == 1.0
        assert blend_confidence(_features(0.1), poor, 1, era_requested=False) == 0.0


class TestSummarizeSources:
    def test_counts_and_representative(self, corpus_item):
        a = corpus_item("a", year=2000)
        a.provenance = [Provenance.for_year(2000)]
        b = corpus_item("b", year=2000)
        b.provenance = [Provenance.for_year(2000)]
        c = corpus_item("c", year=2002)
        c.provenance = [Provenance.for_year(2002)]
        sources = summarize_sources([a, b, c])
        assert sources[0] == {"id": "burning_man_2000", "title": "Item a", "year": 2000, "count": 2}
        assert sources[1]["id"] == "burning_man_2002"

    def test_top_limit(self, corpus_item):
        items = []
        for year in range(2000, 2010):
            item = corpus_item(str(year), year=year)
            item.provenance = [Provenance.for_year(year)]
            items.append(item)
        assert len(summarize_sources(items)) == 5


class TestBuild:
    @pytest.mark.asyncio
    async def test_full_build(self, builder, capsule_store, cache, settings, fixed_now):
        result = await builder.build(LARRY)

        assert result["ok"] is True
        assert result["persona_label"] == "Larry Harvey"
        assert set(result["style_capsule"]) == {
            "tone", "cadence", "devices", "vocabulary", "metaphors", "dos", "donts", "era",
        }
        assert 0.4 <= result["style_confidence"] <= 1.0
        assert result["rights_summary"]["quotable"] is True
        assert result["sources"]

        meta = result["meta"]
        assert meta["cache"] == "miss"
        assert meta["corpus_size"] == 8
        assert meta["cached"] is True
        assert meta["ttl_seconds"] == settings.capsule_ttl_seconds
        assert list(meta["stages"]) == [
            "resolve_persona", "collect_corpus", "extract_features",
            "analyze_rights", "compute_confidence", "persist", "write_cache",
        ]

        assert await capsule_store.count() == 1
        stored = await capsule_store.find_valid(_key(settings), now=fixed_now)
        assert stored.confidence == result["style_confidence"]
        cached = await cache.get(meta["cache_key"])
        assert cached["style_capsule"] == result["style_capsule"]

    @pytest.mark.asyncio
    async def test_era_build(self, builder, capsule_store, settings, fixed_now):
        result = await builder.build(LARRY, era="2000-2004")
        assert result["ok"] is True
        assert result["meta"]["corpus_size"] == 3
        assert result["style_capsule"]["era"] == "2000–2004"
        assert await capsule_store.find_valid(_key(settings, "2000-2004"), now=fixed_now)

    @pytest.mark.asyncio
    async def test_explicit_versions(self, builder, capsule_store, fixed_now):
        result = await builder.build(LARRY, graph_version="g2", lexicon_version="l2")
        assert result["meta"]["graph_version"] == "g2"
        key = CapsuleKey(persona_id=LARRY, graph_version="g2", lexicon_version="l2")
        assert await capsule_store.find_valid(key, now=fixed_now) is not None

    @pytest.mark.asyncio
    async def test_unknown_persona(self, builder, capsule_store):
        result = await builder.build("person:nobody_known")
        assert result["ok"] is False
        assert result["error"] == "Persona not found: person:nobody_known"
        assert "execution_time" in result
        assert await capsule_store.count() == 0

    @pytest.mark.asyncio
    async def test_label_skips_resolver(self, settings, persona_parts, capsule_store, cache):
        _, collector = persona_parts
        resolver = MagicMock()
        resolver.resolve = AsyncMock()
        builder = StyleCapsuleBuilder(settings, resolver, collector, capsule_store, cache)

        result = await builder.build(LARRY, persona_label="Larry Harvey")

        assert result["ok"] is True
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_corpus(self, builder, capsule_store):
        result = await builder.build("person:ghost", persona_label="Ghost")
        assert result["ok"] is False
        assert result["error"] == "Empty corpus"
        assert result["persona_label"] == "Ghost"
        assert await capsule_store.count() == 0

    @pytest.mark.asyncio
    async def test_persist_failure_skips_cache(self, settings, persona_parts, cache):
        resolver, collector = persona_parts
        capsule_store = MagicMock()
        capsule_store.insert = AsyncMock(side_effect=CapsulePersistenceError("disk full"))
        builder = StyleCapsuleBuilder(settings, resolver, collector, capsule_store, cache)

        result = await builder.build(LARRY)

        assert result["ok"] is False
        assert result["error"] == "Failed to persist capsule"
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_cache_failure_is_tolerated(self, settings, persona_parts, capsule_store):
        resolver, collector = persona_parts
        cache = MagicMock()
        cache.set = AsyncMock(side_effect=ConnectionError("cache down"))
        builder = StyleCapsuleBuilder(settings, resolver, collector, capsule_store, cache)

        result = await builder.build(LARRY)

        assert result["ok"] is True
        assert result["meta"]["cached"] is False
        assert result["meta"]["cache_key"] is None
        assert await capsule_store.count() == 1

    @pytest.mark.asyncio
    async def test_unexpected_error(self, settings, capsule_store, cache):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))
        builder = StyleCapsuleBuilder(settings, resolver, MagicMock(), capsule_store, cache)

        result = await builder.build(LARRY)

        assert result["ok"] is False
        assert result["error"] == "Capsule build failed: boom"
