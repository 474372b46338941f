# tests/unit/core/test_models.py
"""Tests for core/models.py: taxonomy helpers and domain models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sevenpools.core.models import (
    POOL_ENTITY_TYPES,
    POOLS,
    ConfidenceFactors,
    CorpusItem,
    Entity,
    Item,
    StyleFeatures,
    pool_entity_type,
    pool_of,
    provenance_for,
    rights_for,
)


class TestTaxonomy:
    def test_seven_pools(self):
        assert len(POOLS) == 7
        assert "pool_emanation" in POOL_ENTITY_TYPES

    def test_pool_of(self):
        assert pool_of("pool_idea") == "idea"
        assert pool_of("pool_unknown") is None
        assert pool_of("activity") is None

    def test_pool_entity_type(self):
        assert pool_entity_type("manifest") == "pool_manifest"

    def test_entity_pool_property(self):
        e = Entity(item_id="x", entity_type="pool_practical", entity_value="fire")
        assert e.pool == "practical"


class TestRights:
    def test_defaults(self):
        item = Item(id="a", item_type="art", year=2020, name="A")
        rights = rights_for(item)
        assert rights.visibility == "public"
        assert rights.license == "CC-BY"
        assert rights.attribution_required is True

    def test_from_metadata(self):
        item = Item(
            id="a", item_type="art", year=2020, name="A",
            metadata={"rights": {"visibility": "internal", "consent": "limited"}},
        )
        rights = rights_for(item)
        assert rights.visibility == "internal"
        assert rights.consent == "limited"


class TestProvenance:
    def test_default_for_year(self):
        item = Item(id="a", item_type="camp", year=2019, name="A")
        (prov,) = provenance_for(item)
        assert prov.source_id == "burning_man_2019"
        assert prov.citation == "Burning Man 2019 Official Data"
        assert prov.collected_at.startswith("2019-01-01")

    def test_from_metadata(self):
        item = Item(
            id="a", item_type="camp", year=2019, name="A",
            metadata={"provenance": [{
                "source_id": "archive", "citation": "Archive",
                "collected_at": "2020-02-02T00:00:00Z",
            }]},
        )
        (prov,) = provenance_for(item)
        assert prov.source_id == "archive"
        assert prov.method == "automated_import"


class TestItem:
    def test_title_and_content(self):
        item = Item(id="a", item_type="art", year=2020, name="Embrace", description="Wood")
        assert item.title == "Embrace"
        assert item.content == "Wood"


class TestCorpusItem:
    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            CorpusItem(id="a", title="A", strategy="authored_content", score=1.5)


class TestConfidenceFactors:
    def test_mean(self):
        f = ConfidenceFactors(
            text_volume=1.0, strategy_diversity=0.5,
            pool_coverage=0.5, era_consistency=0.0,
        )
        assert f.mean() == pytest.approx(0.5)

    def test_default_is_neutral(self):
        assert ConfidenceFactors.default().mean() == pytest.approx(0.5)

    def test_bounds(self):
        with pytest.raises(ValidationError):
            ConfidenceFactors(
                text_volume=1.1, strategy_diversity=0,
                pool_coverage=0, era_consistency=0,
            )


class TestStyleFeatures:
    def test_ok(self):
        assert StyleFeatures().ok is True
        assert StyleFeatures(error="Empty corpus").ok is False

    def test_capsule_json_keys(self):
        features = StyleFeatures(tone=["visionary"], cadence="varied", era="2000-2010")
        capsule = features.capsule_json()
        assert set(capsule) == {
            "tone", "cadence", "devices", "vocabulary",
            "metaphors", "dos", "donts", "era",
        }
        assert capsule["tone"] == ["visionary"]
        assert "confidence_factors" not in capsule
