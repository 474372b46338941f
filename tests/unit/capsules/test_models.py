# tests/unit/capsules/test_models.py
"""Tests for capsules/models.py: capsule keys and record validation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from sevenpools.capsules.models import CapsuleKey, StyleCapsuleRecord, normalize_persona_key

NOW = datetime(2026, 10, 19, 12, 0)


def _record(**overrides) -> StyleCapsuleRecord:
    fields = dict(
        persona_id="person:larry_harvey",
        persona_label="Larry Harvey",
        capsule_json={"tone": ["visionary"]},
        confidence=0.756,
        graph_version="2025.07",
        lexicon_version="2025.07",
        created_at=NOW,
        expires_at=NOW + timedelta(days=7),
    )
    fields.update(overrides)
    return StyleCapsuleRecord(**fields)


class TestNormalizePersonaKey:
    def test_free_text(self):
        assert normalize_persona_key("Larry Harvey") == "person:larry_harvey"

    def test_colon_verbatim(self):
        assert normalize_persona_key("org:Burning_Man_Project") == "org:Burning_Man_Project"


class TestCapsuleKey:
    def test_cache_key(self):
        key = CapsuleKey(
            persona_id="person:larry_harvey", graph_version="2025.07", lexicon_version="2025.08",
        )
        assert key.cache_key() == "style_capsule:person:larry_harvey:any:public:2025.07:2025.08"

    def test_lock_key_differs(self):
        key = CapsuleKey(
            persona_id="person:x", era="2000-2010", rights_scope="internal",
            graph_version="g", lexicon_version="l",
        )
        assert key.lock_key() == "build_capsule:person:x:2000-2010:internal:g:l"
        assert key.lock_key() != key.cache_key()


class TestStyleCapsuleRecord:
    def test_confidence_rounded(self):
        assert _record().confidence == 0.76

    def test_naive_timestamps_become_utc(self):
        record = _record()
        assert record.created_at.tzinfo is not None
        assert record.expires_at.utcoffset() == timedelta(0)

    def test_confidence_out_of_range(self):
        with pytest.raises(ValidationError, match="confidence"):
            _record(confidence=1.2)

    def test_empty_capsule(self):
        with pytest.raises(ValidationError, match="capsule_json"):
            _record(capsule_json={})

    def test_blank_persona(self):
        with pytest.raises(ValidationError, match="persona_id"):
            _record(persona_id="  ")

    def test_expiry_after_creation(self):
        with pytest.raises(ValidationError, match="expires_at"):
            _record(expires_at=NOW)

    def test_expiry_and_ttl(self):
        record = _record()
        later = record.expires_at - timedelta(seconds=90)
        assert record.is_expired(later) is False
        assert record.ttl_seconds(later) == 90
        assert record.is_expired(record.expires_at) is True
        assert record.ttl_seconds(record.expires_at + timedelta(days=1)) == 0

    def test_key_and_cache_key(self):
        record = _record(era="2000-2010")
        assert record.key.era == "2000-2010"
        assert record.cache_key == record.key.cache_key()

    def test_payload_rights_conservative(self):
        payload = _record(sources_json=[{"id": "lh-2000"}]).payload()
        assert payload["ok"] is True
        assert payload["style_capsule"] == {"tone": ["visionary"]}
        assert payload["rights_summary"]["quotable"] is False
        assert payload["rights_summary"]["attribution_required"] is True
        assert payload["sources"] == [{"id": "lh-2000"}]
