# src/store/base_entity_store.py
"""Abstract read-only query interface over items and their entities.

Value filters are case-insensitive. ``value_like`` is a substring match,
``value_equals`` an equality match; both accept a single string or a
list meaning "any of".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from sevenpools.core.models import Entity, Item
from sevenpools.store.models import BridgeRow, CooccurrenceRow, ScoredItem

ValueFilter = str | Sequence[str] | None


class BaseEntityStore(ABC):
    """Unified interface for entity store backends."""

    # --- Lookup ---

    @abstractmethod
    async def get_item(self, item_id: str) -> Item | None:
        """Retrieve an item by id."""

    @abstractmethod
    async def get_items(self, item_ids: Sequence[str]) -> list[Item]:
        """Retrieve items by id, skipping unknown ids, preserving input order."""

    @abstractmethod
    async def entities_for_item(
        self,
        item_id: str,
        entity_types: Sequence[str] | None = None,
        pools_only: bool = False,
        basic_only: bool = False,
    ) -> list[Entity]:
        """All entity rows of an item, optionally restricted to some types.

        ``pools_only`` keeps the seven pool types and ``basic_only`` the
        basic facet types; both narrow ``entity_types`` when it is given.
        """

    # --- Filters ---

    @abstractmethod
    async def filter_entities(
        self,
        entity_types: Sequence[str] | None = None,
        value_like: ValueFilter = None,
        value_equals: ValueFilter = None,
        limit: int | None = None,
    ) -> list[Entity]:
        """Entity rows by type and value."""

    @abstractmethod
    async def items_with_entities(
        self,
        entity_types: Sequence[str] | None = None,
        value_equals: ValueFilter = None,
        value_like: ValueFilter = None,
        item_types: Sequence[str] | None = None,
        text_like: str | None = None,
        limit: int | None = None,
    ) -> list[Item]:
        """Items joined with at least one matching entity.

        ``text_like`` additionally requires a substring match in the item's
        name or description.
        """

    @abstractmethod
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
        """Items by column filters, ordered by year then name."""

    # --- Aggregates & joins ---

    @abstractmethod
    async def group_count_by_type(
        self,
        entity_values: Sequence[str] | None = None,
        entity_types: Sequence[str] | None = None,
    ) -> dict[str, int]:
        """Count entity rows per entity_type."""

    @abstractmethod
    async def value_frequencies(self, entity_values: Sequence[str]) -> dict[str, int]:
        """Number of entity rows per (lower-cased) value."""

    @abstractmethod
    async def join_cooccurrence(self, item_id: str, limit: int = 20) -> list[CooccurrenceRow]:
        """Self-join on shared (entity_type, entity_value) pairs."""

    @abstractmethod
    async def bridge_items(
        self, type_a: str, type_b: str, limit: int = 15
    ) -> list[BridgeRow]:
        """Items carrying both entity types, most entities first."""

    @abstractmethod
    async def bridge_entities(
        self, type_a: str, type_b: str, limit: int = 20
    ) -> list[tuple[str, int]]:
        """Values present under both entity types with their occurrence count."""

    @abstractmethod
    async def similar_items_by_entities(
        self,
        entity_values: Sequence[str],
        min_overlap: int,
        limit: int = 5,
    ) -> list[tuple[Item, int]]:
        """Items sharing at least ``min_overlap`` of the given entity values."""

    # --- Search ---

    @abstractmethod
    async def semantic_search(
        self,
        query: str,
        query_embedding: Sequence[float] | None = None,
        year: int | None = None,
        limit: int = 10,
    ) -> list[ScoredItem]:
        """Rank items against a query, best first."""
