# src/api/facade.py
"""Public API facade: one call wires settings, stores, pipeline and tools.

Usage:
    from sevenpools.api.facade import build_toolbox
    toolbox = build_toolbox(settings)
    result = await toolbox.call("search", {"query": "fire spinning"})
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sevenpools.cache.cache_factory import create_cache_store
from sevenpools.cache.lock import CacheLock
from sevenpools.capsules.models import utcnow
from sevenpools.capsules.sqlite_capsule_store import SqliteCapsuleStore
from sevenpools.config.settings import Settings
from sevenpools.jobs.build_capsule_job import BuildStyleCapsuleJob
from sevenpools.jobs.local_queue import LocalJobQueue
from sevenpools.jobs.refresh_job import (
    MAINTENANCE_QUEUE,
    RefreshStaleCapsulesJob,
    cleanup_expired_capsules,
)
from sevenpools.persona.capsule_builder import StyleCapsuleBuilder
from sevenpools.persona.corpus_collector import StyleCorpusCollector
from sevenpools.persona.resolver import PersonaResolver
from sevenpools.rag.embeddings.embedder_factory import create_embedder
from sevenpools.rag.graph_store.graph_store_factory import create_graph_store
from sevenpools.search.unified_search import UnifiedSearchService
from sevenpools.store.memory_store import InMemoryEntityStore, load_entity_store
from sevenpools.tools.analyze_pools import AnalyzePoolsTool
from sevenpools.tools.clear_persona import ClearPersonaTool
from sevenpools.tools.fetch import FetchTool
from sevenpools.tools.location_neighbors import LocationNeighborsTool
from sevenpools.tools.pool_bridge import PoolBridgeTool
from sevenpools.tools.registry import ToolRegistry
from sevenpools.tools.search import SearchTool
from sevenpools.tools.set_persona import SetPersonaTool

if TYPE_CHECKING:
    from sevenpools.cache.base_cache_store import BaseCacheStore
    from sevenpools.capsules.base_capsule_store import BaseCapsuleStore
    from sevenpools.jobs.base_job_queue import BaseJobQueue
    from sevenpools.rag.embeddings.base_embedder import BaseEmbedder
    from sevenpools.rag.graph_store.base_graph_store import BaseGraphStore
    from sevenpools.store.base_entity_store import BaseEntityStore

logger = logging.getLogger(__name__)


@dataclass
class Toolbox:
    """Everything a dispatcher or scheduler needs, already wired."""

    settings: Settings
    registry: ToolRegistry
    queue: BaseJobQueue
    capsule_store: BaseCapsuleStore
    cache: BaseCacheStore
    entity_store: BaseEntityStore
    builder: StyleCapsuleBuilder
    build_job: BuildStyleCapsuleJob
    refresh_job: RefreshStaleCapsulesJob
    graph_store: BaseGraphStore | None = None
    clock: Callable[[], datetime] = field(default=utcnow)

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.registry.dispatch(name, arguments)

    async def enqueue_refresh(self) -> str:
        """Schedule the stale-capsule scan on the maintenance queue."""
        return await self.queue.enqueue(
            MAINTENANCE_QUEUE,
            self.refresh_job,
            refresh_window_hours=self.settings.refresh_window_hours,
            batch_size=self.settings.refresh_batch_size,
        )

    async def cleanup(self) -> int:
        return await cleanup_expired_capsules(
            self.capsule_store, self.settings.cleanup_batch_size, now=self.clock()
        )

    async def drain(self) -> None:
        await self.queue.drain()
        set_persona = self.registry.get("set_persona")
        if isinstance(set_persona, SetPersonaTool):
            await set_persona.wait_stray()
        await self.queue.drain()

    def close(self) -> None:
        self.capsule_store.close()
        self.cache.close()
        if self.graph_store is not None:
            self.graph_store.close()


def build_toolbox(
    settings: Settings | None = None,
    entity_store: BaseEntityStore | None = None,
    cache: BaseCacheStore | None = None,
    capsule_store: BaseCapsuleStore | None = None,
    queue: BaseJobQueue | None = None,
    embedder: BaseEmbedder | None = None,
    graph_store: BaseGraphStore | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Toolbox:
    """Assemble the tool surface.

    Anything not passed in is built from ``settings``: the entity store is
    loaded from ``entity_store_path`` (empty when unset), the cache from
    ``cache_backend``, capsules live in SQLite at ``capsule_db_path``, and
    the embedder and graph database follow their provider settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        entity_store: Read-only items and entities.
        cache: Capsule payload cache and lock backend.
        capsule_store: Durable capsule rows.
        queue: Background job queue. Defaults to an in-process queue.
        embedder: Query embedder for semantic search. None = lexical only.
        graph_store: Graph database for pool bridges. None = entity store only.
        clock: Time source shared by every time-dependent component.

    Returns:
        A wired Toolbox.
    """
    settings = settings or Settings()

    if entity_store is None:
        if settings.entity_store_path is not None:
            entity_store = load_entity_store(settings.entity_store_path)
        else:
            logger.warning("No entity store configured, starting empty")
            entity_store = InMemoryEntityStore()
    cache = cache if cache is not None else create_cache_store(settings)
    if capsule_store is None:
        capsule_store = SqliteCapsuleStore(settings.capsule_db_path)
    queue = queue if queue is not None else LocalJobQueue()
    embedder = embedder if embedder is not None else create_embedder(settings)
    graph_store = graph_store if graph_store is not None else create_graph_store(settings)

    search_service = UnifiedSearchService(entity_store, embedder=embedder)
    search = SearchTool(entity_store, search_service)
    analyze_pools = AnalyzePoolsTool(entity_store)

    resolver = PersonaResolver(entity_store, analyze_pools, search)
    collector = StyleCorpusCollector(entity_store, search)
    builder = StyleCapsuleBuilder(
        settings, resolver, collector, capsule_store, cache, clock=clock
    )
    build_job = BuildStyleCapsuleJob(
        settings, builder, capsule_store, CacheLock(cache), clock=clock
    )
    refresh_job = RefreshStaleCapsulesJob(capsule_store, build_job, queue, clock=clock)

    registry = ToolRegistry([
        search,
        FetchTool(entity_store),
        analyze_pools,
        PoolBridgeTool(entity_store, graph_store=graph_store),
        LocationNeighborsTool(entity_store),
        SetPersonaTool(settings, cache, capsule_store, build_job, queue, clock=clock),
        ClearPersonaTool(clock=clock),
    ])
    logger.info(
        "Toolbox ready: cache=%s, embedder=%s, graph=%s",
        type(cache).__name__,
        type(embedder).__name__ if embedder else "none",
        type(graph_store).__name__ if graph_store else "none",
    )
    return Toolbox(
        settings=settings,
        registry=registry,
        queue=queue,
        capsule_store=capsule_store,
        cache=cache,
        entity_store=entity_store,
        builder=builder,
        build_job=build_job,
        refresh_job=refresh_job,
        graph_store=graph_store,
        clock=clock,
    )
