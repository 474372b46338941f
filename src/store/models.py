# src/store/models.py
"""Row shapes returned by entity store queries."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sevenpools.core.models import Entity, Item


class ScoredItem(BaseModel):
    """An item with its similarity to a query, in [0, 1]."""

    item: Item
    similarity: float


class CooccurrenceRow(BaseModel):
    """Another item sharing an entity (type and value) with the source item."""

    entity: Entity
    item: Item


class BridgeRow(BaseModel):
    """An item carrying entities of two entity types at once."""

    item: Item
    entities_a: list[str] = Field(default_factory=list)
    entities_b: list[str] = Field(default_factory=list)
    entity_count: int = 0
