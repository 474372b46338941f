# src/rag/graph_store/neo4j_store.py
"""Neo4j graph store adapter (GRAPH_DB_TYPE=neo4j).

Requires 'neo4j' package: pip install neo4j.
Expects ``(:BM_Item)-[:BM_HAS_ENTITY]->(:BM_Entity {pool, name, occurrence_count})``.
"""

from __future__ import annotations

import logging

from sevenpools.rag.graph_store.base_graph_store import (
    BaseGraphStore,
    GraphBridgeEntity,
    GraphBridgeItem,
)

logger = logging.getLogger(__name__)

_BRIDGE_ITEMS_QUERY = """
MATCH (item:BM_Item)-[:BM_HAS_ENTITY]->(e1:BM_Entity {pool: $pool1})
MATCH (item)-[:BM_HAS_ENTITY]->(e2:BM_Entity {pool: $pool2})
WITH item,
     COLLECT(DISTINCT e1.name) AS pool1_entities,
     COLLECT(DISTINCT e2.name) AS pool2_entities,
     COUNT(DISTINCT e1) + COUNT(DISTINCT e2) AS entity_count
ORDER BY entity_count DESC
LIMIT $limit
RETURN item.uid AS item_uid, item.name AS item_name,
       pool1_entities, pool2_entities, entity_count
"""

_BRIDGE_ENTITIES_QUERY = """
MATCH (e1:BM_Entity {pool: $pool1})
MATCH (e2:BM_Entity {pool: $pool2})
WHERE e1.name = e2.name
WITH e1.name AS entity_name,
     e1.occurrence_count + e2.occurrence_count AS total_occurrences
ORDER BY total_occurrences DESC
LIMIT $limit
RETURN entity_name, total_occurrences
"""


def item_id_from_uid(uid: str | None) -> str | None:
    """``"camp-2025-12345"`` -> ``"12345"``."""
    if not uid:
        return None
    return uid.rsplit("-", 1)[-1]


class Neo4jStore(BaseGraphStore):
    """Graph store backed by Neo4j."""

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "",
        password: str = "",
        database: str = "neo4j",
    ) -> None:
        try:
            from neo4j import GraphDatabase
        except ImportError as e:
            raise ImportError(
                "neo4j package required: pip install neo4j"
            ) from e

        auth = (user, password) if user else None
        self._driver = GraphDatabase.driver(uri, auth=auth)
        self._database = database

    def _run(self, query: str, **params) -> list[dict]:
        """Execute a Cypher query and return results as list of dicts."""
        with self._driver.session(database=self._database) as session:
            result = session.run(query, **params)
            return [record.data() for record in result]

    async def bridge_items(
        self, pool_a: str, pool_b: str, limit: int = 15
    ) -> list[GraphBridgeItem]:
        rows = self._run(
            _BRIDGE_ITEMS_QUERY,
            pool1=f"pool_{pool_a}", pool2=f"pool_{pool_b}", limit=limit,
        )
        return [
            GraphBridgeItem(
                item_id=item_id_from_uid(row.get("item_uid")),
                name=row.get("item_name"),
                pool_a_entities=row.get("pool1_entities") or [],
                pool_b_entities=row.get("pool2_entities") or [],
                entity_count=row.get("entity_count") or 0,
            )
            for row in rows
        ]

    async def bridge_entities(
        self, pool_a: str, pool_b: str, limit: int = 20
    ) -> list[GraphBridgeEntity]:
        rows = self._run(
            _BRIDGE_ENTITIES_QUERY,
            pool1=f"pool_{pool_a}", pool2=f"pool_{pool_b}", limit=limit,
        )
        return [
            GraphBridgeEntity(
                name=row["entity_name"],
                total_occurrences=row.get("total_occurrences") or 0,
            )
            for row in rows
        ]

    async def node_count(self) -> int:
        results = self._run("MATCH (n) RETURN count(n) AS cnt")
        return results[0]["cnt"] if results else 0

    def close(self) -> None:
        self._driver.close()

    @property
    def provider_name(self) -> str:
        return "neo4j"
