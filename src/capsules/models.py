# src/capsules/models.py
"""StyleCapsule persistence models and key derivation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from sevenpools.core.naming import person_persona_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_persona_key(persona: str) -> str:
    """Canonical persona part of a key: ``"Larry Harvey"`` -> ``"person:larry_harvey"``.

    Strings that already contain ``:`` are used verbatim.
    """
    if ":" in persona:
        return persona
    return person_persona_id(persona)


class CapsuleKey(BaseModel):
    """Identity of a capsule: one valid capsule per key at any instant."""

    persona_id: str
    era: str | None = None
    rights_scope: str = "public"
    graph_version: str
    lexicon_version: str

    def _suffix(self) -> str:
        return (
            f"{self.persona_id}:{self.era or 'any'}:{self.rights_scope}:"
            f"{self.graph_version}:{self.lexicon_version}"
        )

    def cache_key(self) -> str:
        return f"style_capsule:{self._suffix()}"

    def lock_key(self) -> str:
        return f"build_capsule:{self._suffix()}"


class StyleCapsuleRecord(BaseModel):
    """One persisted capsule row. Never mutated after insert."""

    id: int | None = None
    persona_id: str
    persona_label: str | None = None
    era: str | None = None
    rights_scope: str = "public"
    capsule_json: dict[str, Any]
    confidence: float
    sources_json: list[dict[str, Any]] = Field(default_factory=list)
    graph_version: str
    lexicon_version: str
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @field_validator("persona_id")
    @classmethod
    def validate_persona_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("persona_id must be present")
        return v

    @field_validator("capsule_json")
    @classmethod
    def validate_capsule_json(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not v:
            raise ValueError("capsule_json must be present")
        return v

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence must be within [0.0, 1.0]")
        return round(v, 2)

    @field_validator("created_at", "expires_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def validate_expiry(self) -> StyleCapsuleRecord:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    @property
    def key(self) -> CapsuleKey:
        return CapsuleKey(
            persona_id=self.persona_id,
            era=self.era,
            rights_scope=self.rights_scope,
            graph_version=self.graph_version,
            lexicon_version=self.lexicon_version,
        )

    @property
    def cache_key(self) -> str:
        return self.key.cache_key()

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def ttl_seconds(self, now: datetime | None = None) -> int:
        """Whole seconds until expiry, 0 once expired."""
        remaining = (self.expires_at - (now or utcnow())).total_seconds()
        return max(int(remaining), 0)

    def payload(self) -> dict[str, Any]:
        """Capsule response rebuilt from the row.

        Rights are not stored with the row, so they are reported conservatively.
        """
        return {
            "ok": True,
            "persona_id": self.persona_id,
            "persona_label": self.persona_label,
            "style_capsule": dict(self.capsule_json),
            "style_confidence": self.confidence,
            "rights_summary": {
                "quotable": False,
                "attribution_required": True,
                "attribution_text": None,
                "visibility": "restricted",
            },
            "sources": list(self.sources_json),
        }
