# src/persona/resolver.py
"""Persona resolver: free text -> canonical ``kind:identifier`` persona.

Tiers, first success wins:
  1. direct id (``person:larry_harvey``) confirmed by a person entity
  2. exact case-insensitive person entity value
  3. person entities linked by analyze_pools in link mode
  4. person entities on the top idea-pool search hits
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from sevenpools.core.models import PersonaResolution
from sevenpools.core.naming import humanize, person_persona_id, titleize
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.models import AnalyzePoolsParams, SearchParams

if TYPE_CHECKING:
    from sevenpools.tools.analyze_pools import AnalyzePoolsTool
    from sevenpools.tools.search import SearchTool

logger = logging.getLogger(__name__)

DIRECT_ID_RE = re.compile(r"^(person|artist|founder|leader):[a-z_]+$")


def _failure(message: str) -> PersonaResolution:
    return PersonaResolution(ok=False, error=message)


def _success(persona_id: str, value: str) -> PersonaResolution:
    return PersonaResolution(ok=True, persona_id=persona_id, persona_label=titleize(value))


class PersonaResolver:
    """Resolve persona references against the entity store."""

    def __init__(
        self,
        store: BaseEntityStore,
        analyze_pools: AnalyzePoolsTool,
        search: SearchTool,
    ) -> None:
        self._store = store
        self._analyze_pools = analyze_pools
        self._search = search

    async def resolve(self, persona_input: str | None) -> PersonaResolution:
        text = (persona_input or "").strip()
        if not text:
            return _failure("Empty persona input")

        tiers = [self._resolve_exact, self._resolve_via_analyze_pools, self._resolve_via_search]
        if DIRECT_ID_RE.match(text):
            tiers.insert(0, self._resolve_direct_id)

        for tier in tiers:
            try:
                result = await tier(text)
            except Exception as e:
                logger.error("Persona tier %s failed: %s", tier.__name__, e)
                continue
            if result.ok:
                logger.debug("Resolved %r via %s -> %s", text, tier.__name__, result.persona_id)
                return result

        return _failure(f"Persona not found: {text}")

    async def _resolve_direct_id(self, text: str) -> PersonaResolution:
        identifier = text.split(":", 1)[1]
        matches = await self._store.filter_entities(
            entity_types=["person"], value_like=humanize(identifier), limit=1
        )
        if not matches:
            return _failure(f"Direct ID not found: {text}")
        return _success(text, matches[0].entity_value)

    async def _resolve_exact(self, text: str) -> PersonaResolution:
        matches = await self._store.filter_entities(
            entity_types=["person"], value_equals=text, limit=1
        )
        if not matches:
            return _failure("No exact match found")
        value = matches[0].entity_value
        return _success(person_persona_id(value), value)

    async def _resolve_via_analyze_pools(self, text: str) -> PersonaResolution:
        result = await self._analyze_pools.run(
            AnalyzePoolsParams(text=text, mode="link", link_threshold=0.7)
        )
        entities = result.get("pools", {}).get("idea", {}).get("entities", [])
        people = [e for e in entities if e.get("type") == "person"]
        if not people:
            return _failure("No person entities found in analysis")
        best = max(people, key=lambda e: e.get("confidence") or 0.0)
        return _success(person_persona_id(best["value"]), best["value"])

    async def _resolve_via_search(self, text: str) -> PersonaResolution:
        result = await self._search.run(
            SearchParams(query=text, top_k=5, pools=["idea"], diversify_by_pool=False)
        )
        needle = text.lower()
        for hit in result.get("items", []):
            people = await self._store.entities_for_item(hit["id"], entity_types=["person"])
            for entity in people:
                value = entity.entity_value.lower()
                if needle in value or value in needle:
                    return _success(person_persona_id(entity.entity_value), entity.entity_value)
        return _failure("No person found in search results")
