# src/tools/fetch.py
"""fetch: full record for one item, with pools, relations and history."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from sevenpools.core.models import (
    DEFAULT_YEAR,
    POOL_ENTITY_TYPES,
    POOLS,
    Item,
    pool_entity_type,
    provenance_for,
    rights_for,
)
from sevenpools.core.naming import humanize
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import FetchParams

logger = logging.getLogger(__name__)

MAX_RELATION_DEPTH = 3
MAX_RELATIONS = 10
COOCCURRENCE_LIMIT = 20
COORDS_RE = re.compile(r"(-?\d+\.\d+),\s*(-?\d+\.\d+)")


def extract_coordinates(location: str | None) -> list[float] | None:
    if not location:
        return None
    match = COORDS_RE.search(location)
    if not match:
        return None
    return [float(match.group(1)), float(match.group(2))]


def camp_name(item: Item) -> str | None:
    if item.item_type == "camp":
        return item.name
    if item.item_type in ("art", "event"):
        return item.metadata.get("camp") or item.metadata.get("camp_name")
    return None


def art_category(item: Item) -> str | None:
    if item.item_type != "art":
        return None
    return item.metadata.get("category") or item.metadata.get("art_category")


def format_body(item: Item) -> str:
    """Markdown body: heading, description, then type/year/location lines."""
    lines = [f"# {item.name}", ""]
    if item.content.strip():
        lines.extend([item.content, ""])
    lines.append(f"**Type:** {humanize(item.item_type)}")
    lines.append(f"**Year:** {item.year}")
    if item.location_string:
        lines.append(f"**Location:** {item.location_string}")
    return "\n".join(lines)


def _created_at(item: Item) -> str:
    return item.metadata.get("created_at") or f"{item.year or DEFAULT_YEAR}-01-01T00:00:00Z"


def _updated_at(item: Item) -> str | None:
    updated = item.metadata.get("updated_at")
    if updated and updated != item.metadata.get("created_at"):
        return updated
    return None


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_timeline(item: Item, as_of: str | None = None) -> list[dict[str, str]]:
    timeline = [{
        "version": "v1",
        "at": _created_at(item),
        "note": f"Initial import from Burning Man {item.year or DEFAULT_YEAR} data",
    }]
    updated = _updated_at(item)
    if updated:
        timeline.append({
            "version": "v2",
            "at": updated,
            "note": "Entity extraction and enliteracy processing",
        })
    if as_of:
        cutoff = _parse_time(as_of)
        timeline = [t for t in timeline if _parse_time(t["at"]) <= cutoff]
    return timeline


def build_versions(item: Item) -> list[dict[str, str]]:
    versions = [{"id": "v1", "at": _created_at(item)}]
    updated = _updated_at(item)
    if updated:
        versions.append({"id": "v2", "at": updated})
    return versions


def _group_values(entities) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for entity in entities:
        values = groups.setdefault(entity.entity_type, [])
        if entity.entity_value not in values:
            values.append(entity.entity_value)
    return groups


class FetchTool(BaseTool[FetchParams]):
    """Fetch one item with its entity groupings."""

    name = "fetch"
    description = "Fetch an item by id with pools, entities, relations, timeline and rights"
    params_model = FetchParams

    def __init__(self, store: BaseEntityStore) -> None:
        self._store = store

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return {"ok": False, "error": message, "id": (arguments or {}).get("id")}

    async def run(self, params: FetchParams) -> dict[str, Any]:
        arguments = params.model_dump()
        depth = min(params.relation_depth, MAX_RELATION_DEPTH)
        if params.pools and any(p not in POOLS for p in params.pools):
            return self.error_payload("invalid_pool", arguments)

        try:
            item = await self._store.get_item(params.id)
            if item is None:
                return self.error_payload("Item not found", arguments)

            pool_types = (
                [pool_entity_type(p) for p in params.pools] if params.pools else POOL_ENTITY_TYPES
            )
            pool_groups = _group_values(
                await self._store.entities_for_item(item.id, entity_types=pool_types)
            )
            basic_groups = _group_values(
                await self._store.entities_for_item(item.id, basic_only=True)
            )
            relations = (
                await self._relations(item.id, depth, params.pools)
                if params.include_relations else []
            )

            fields = {
                "type": item.item_type,
                "year": item.year,
                "coords": extract_coordinates(item.location_string),
                "location_string": item.location_string,
                "camp_name": camp_name(item),
                "art_category": art_category(item),
                "event_type": item.metadata.get("event_type"),
            }
            return {
                "ok": True,
                "id": item.id,
                "title": item.name or "Untitled",
                "body": format_body(item),
                "fields": {k: v for k, v in fields.items() if v is not None},
                "pools": [t.removeprefix("pool_") for t in pool_groups],
                "entities": basic_groups,
                "relations": relations,
                "timeline": build_timeline(item, params.as_of),
                "provenance": [p.model_dump() for p in provenance_for(item)],
                "rights": rights_for(item).model_dump(),
                "versions": build_versions(item),
            }
        except Exception as e:
            logger.error("FetchTool error: %s", e, exc_info=True)
            return self.error_payload(f"Fetch failed: {e}", arguments)

    async def _relations(
        self, item_id: str, depth: int, pool_filter: list[str] | None
    ) -> list[dict[str, Any]]:
        """Items sharing an entity with the source item.

        ``depth`` beyond 1 is accepted but relations are always one hop.
        """
        rows = await self._store.join_cooccurrence(item_id, limit=COOCCURRENCE_LIMIT)
        relations: list[dict[str, Any]] = []
        for row in rows:
            pool = row.entity.pool
            if pool_filter and pool and pool not in pool_filter:
                continue
            relations.append({
                "type": "shares_entity",
                "to_id": row.item.id,
                "to_title": row.item.name or "Untitled",
                "pool": pool,
                "since": row.item.metadata.get("created_at"),
                "until": None,
                "shared_entity": row.entity.entity_value,
            })
        return relations[:MAX_RELATIONS]
