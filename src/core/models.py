# src/core/models.py
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

# === TAXONOMY ===

POOLS: tuple[str, ...] = (
    "idea",
    "manifest",
    "experience",
    "relational",
    "evolutionary",
    "practical",
    "emanation",
)
POOL_ENTITY_TYPES: tuple[str, ...] = tuple(f"pool_{p}" for p in POOLS)

BASIC_ENTITY_TYPES: tuple[str, ...] = (
    "location",
    "activity",
    "theme",
    "time",
    "person",
    "item_type",
    "contact",
    "organizational",
    "service",
    "schedule",
    "requirement",
)

ITEM_TYPES: tuple[str, ...] = (
    "camp",
    "art",
    "event",
    "philosophical_text",
    "experience_story",
    "practical_guide",
    "infrastructure",
    "historical_fact",
    "timeline_event",
    "essay",
    "speech",
    "manifesto",
    "interview",
    "letter",
    "note",
    "theme_essay",
    "policy_essay",
)

RightsTier = Literal["public", "internal", "any"]
RIGHTS_TIERS: tuple[str, ...] = ("public", "internal", "any")

DEFAULT_YEAR = 2024


def pool_entity_type(pool: str) -> str:
    return f"pool_{pool}"


def pool_of(entity_type: str) -> str | None:
    """``"pool_idea"`` -> ``"idea"``; basic types -> None."""
    if entity_type.startswith("pool_") and entity_type[5:] in POOLS:
        return entity_type[5:]
    return None


# === STORE RECORDS ===


class Item(BaseModel):
    """A document in the knowledge base. Read-only to this package."""

    id: str
    item_type: str
    year: int
    name: str
    description: str = ""
    location_string: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding: list[float] | None = None

    @property
    def title(self) -> str:
        return self.name

    @property
    def content(self) -> str:
        return self.description or ""


class Entity(BaseModel):
    """A typed tag attached to exactly one item."""

    item_id: str
    entity_type: str
    entity_value: str
    confidence: float | None = None

    @property
    def pool(self) -> str | None:
        return pool_of(self.entity_type)


# === RIGHTS & PROVENANCE ===


class Rights(BaseModel):
    """Usage rights attached to an item."""

    license: str = "CC-BY"
    consent: str = "public"
    visibility: str = "public"
    attribution_required: bool = True


class Provenance(BaseModel):
    """Where an item came from."""

    source_id: str
    citation: str
    collected_by: str = "OK-OFFLINE Team"
    collected_at: str
    method: str = "automated_import"

    @classmethod
    def for_year(cls, year: int) -> Provenance:
        """Default provenance for items imported from the yearly data dumps."""
        return cls(
            source_id=f"burning_man_{year}",
            citation=f"Burning Man {year} Official Data",
            collected_at=f"{year}-01-01T00:00:00Z",
        )


def rights_for(item: Item) -> Rights:
    """Rights from ``item.metadata["rights"]`` when present, else defaults."""
    raw = item.metadata.get("rights")
    if isinstance(raw, dict):
        return Rights(**raw)
    return Rights()


def provenance_for(item: Item) -> list[Provenance]:
    """Provenance from ``item.metadata["provenance"]`` when present, else a yearly source."""
    raw = item.metadata.get("provenance")
    if isinstance(raw, list) and raw:
        return [Provenance(**p) for p in raw if isinstance(p, dict)]
    return [Provenance.for_year(item.year or DEFAULT_YEAR)]


# === PERSONA PIPELINE ===


class PersonaResolution(BaseModel):
    """Outcome of resolving free text to a canonical persona."""

    ok: bool
    persona_id: str | None = None
    persona_label: str | None = None
    error: str | None = None


class CorpusItem(BaseModel):
    """An item selected as style evidence. Lives for one pipeline run."""

    id: str
    title: str
    content: str = ""
    year: int = DEFAULT_YEAR
    item_type: str = "unknown"
    pools_hit: list[str] = Field(default_factory=list)
    strategy: str
    score: float = Field(ge=0.0, le=1.0)
    rights: Rights = Field(default_factory=Rights)
    provenance: list[Provenance] = Field(default_factory=list)


class CorpusResult(BaseModel):
    """Output of the style corpus collector."""

    ok: bool
    error: str | None = None
    persona_id: str | None = None
    persona_label: str | None = None
    corpus_items: list[CorpusItem] = Field(default_factory=list)
    total_items: int = 0
    strategies_used: dict[str, int] = Field(default_factory=dict)
    coverage_pools: dict[str, Any] = Field(default_factory=dict)
    era_coverage: dict[str, Any] = Field(default_factory=dict)
    execution_time: float = 0.0


class ConfidenceFactors(BaseModel):
    """Four independent 0-1 sub-scores behind a capsule's confidence."""

    text_volume: float = Field(ge=0.0, le=1.0)
    strategy_diversity: float = Field(ge=0.0, le=1.0)
    pool_coverage: float = Field(ge=0.0, le=1.0)
    era_consistency: float = Field(ge=0.0, le=1.0)

    @classmethod
    def default(cls) -> ConfidenceFactors:
        """Neutral factors used when nothing could be measured."""
        return cls(
            text_volume=0.5,
            strategy_diversity=0.5,
            pool_coverage=0.5,
            era_consistency=0.5,
        )

    def mean(self) -> float:
        return (
            self.text_volume
            + self.strategy_diversity
            + self.pool_coverage
            + self.era_consistency
        ) / 4.0


class StyleFeatures(BaseModel):
    """Heuristic stylistic profile of a corpus."""

    tone: list[str] = Field(default_factory=list)
    cadence: str = "unknown"
    devices: list[str] = Field(default_factory=list)
    vocabulary: list[str] = Field(default_factory=list)
    metaphors: list[str] = Field(default_factory=list)
    dos: list[str] = Field(default_factory=list)
    donts: list[str] = Field(default_factory=list)
    era: str = "unknown"
    confidence_factors: ConfidenceFactors = Field(default_factory=ConfidenceFactors.default)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def capsule_json(self) -> dict[str, Any]:
        """The persisted style_capsule structure."""
        return {
            "tone": list(self.tone),
            "cadence": self.cadence,
            "devices": list(self.devices),
            "vocabulary": list(self.vocabulary),
            "metaphors": list(self.metaphors),
            "dos": list(self.dos),
            "donts": list(self.donts),
            "era": self.era,
        }


class Restriction(BaseModel):
    type: str
    count: int
    description: str


class RightsSummary(BaseModel):
    """Aggregate quotability verdict for a corpus."""

    ok: bool
    error: str | None = None
    quotable: bool = False
    attribution_required: bool = True
    attribution_text: str | None = None
    visibility: str = "restricted"
    rights_breakdown: dict[str, Any] = Field(default_factory=dict)
    restrictions: list[Restriction] = Field(default_factory=list)
    public_percentage: float = 0.0
