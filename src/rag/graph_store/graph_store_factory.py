# src/rag/graph_store/graph_store_factory.py
"""Factory: instantiate the graph store from configuration."""

from __future__ import annotations

import logging

from sevenpools.config.settings import Settings
from sevenpools.rag.graph_store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)


class UnsupportedGraphStoreError(ValueError):
    """Raised when a graph store type is not supported."""


def create_graph_store(settings: Settings) -> BaseGraphStore | None:
    """Instantiate the configured graph store.

    Returns:
        Configured BaseGraphStore, or None when GRAPH_DB_TYPE=none
        (pool bridges are then answered from the entity store).

    Raises:
        UnsupportedGraphStoreError: If type is not supported.
    """
    db_type = settings.graph_db_type

    if db_type == "none":
        return None

    if db_type == "neo4j":
        from sevenpools.rag.graph_store.neo4j_store import Neo4jStore
        logger.debug("Creating graph store: neo4j at %s", settings.graph_db_uri)
        return Neo4jStore(
            uri=settings.graph_db_uri,
            user=settings.graph_db_user,
            password=settings.graph_db_password,
            database=settings.graph_db_database,
        )

    raise UnsupportedGraphStoreError(
        f"Unsupported graph store type: {db_type!r}. Available: neo4j"
    )
