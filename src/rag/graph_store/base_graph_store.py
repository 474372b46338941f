# src/rag/graph_store/base_graph_store.py
"""Abstract graph store interface for cross-pool bridge queries.

The graph mirrors the entity store: item nodes linked to entity nodes
that carry their pool.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class GraphBridgeItem(BaseModel):
    """An item linked to entities of two pools."""

    item_id: str | None = None
    name: str | None = None
    pool_a_entities: list[str] = Field(default_factory=list)
    pool_b_entities: list[str] = Field(default_factory=list)
    entity_count: int = 0


class GraphBridgeEntity(BaseModel):
    """An entity name present in two pools."""

    name: str
    total_occurrences: int = 0


class BaseGraphStore(ABC):
    """Unified interface for graph store backends."""

    @abstractmethod
    async def bridge_items(
        self, pool_a: str, pool_b: str, limit: int = 15
    ) -> list[GraphBridgeItem]:
        """Items having entities in both pools, most connected first."""

    @abstractmethod
    async def bridge_entities(
        self, pool_a: str, pool_b: str, limit: int = 20
    ) -> list[GraphBridgeEntity]:
        """Entity names shared by both pools, most frequent first."""

    @abstractmethod
    async def node_count(self) -> int:
        """Return total number of nodes."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""
