# src/persona/capsule_builder.py
"""Style capsule builder: the persona pipeline backbone.

Stages run in order and any failing stage short-circuits to an error
response carrying that stage's message and the elapsed time:

    resolve_persona -> collect_corpus -> extract_features -> analyze_rights
    -> compute_confidence -> persist -> write_cache -> respond

Nothing is persisted unless every analysis stage succeeded. The database
row is authoritative; a failed cache write is logged and ignored.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from sevenpools.cache.base_cache_store import BaseCacheStore
from sevenpools.capsules.base_capsule_store import (
    BaseCapsuleStore,
    CapsulePersistenceError,
)
from sevenpools.capsules.models import StyleCapsuleRecord, utcnow
from sevenpools.config.settings import Settings
from sevenpools.core.models import CorpusItem, RightsSummary, StyleFeatures
from sevenpools.core.naming import humanize
from sevenpools.persona.corpus_collector import StyleCorpusCollector
from sevenpools.persona.feature_extractor import extract_features
from sevenpools.persona.resolver import PersonaResolver
from sevenpools.persona.rights_summarizer import summarize_rights
from sevenpools.tracking.stage_tracker import StageTracker

logger = logging.getLogger(__name__)


def corpus_size_factor(size: int) -> float:
    if size <= 2:
        return -0.3
    if size <= 5:
        return -0.1
    if size <= 15:
        return 0.0
    if size <= 25:
        return 0.1
    return 0.2


def rights_penalty(rights: RightsSummary) -> float:
    if not rights.ok:
        return 0.0
    penalty = 0.2 if rights.public_percentage < 60.0 else 0.0
    penalty += len(rights.restrictions) * 0.1
    penalty += 0.0 if rights.quotable else 0.3
    return penalty


def blend_confidence(
    features: StyleFeatures,
    rights: RightsSummary,
    corpus_size: int,
    era_requested: bool,
) -> float:
    """Final capsule confidence, clamped to [0, 1] with 2 decimals."""
    score = (
        features.confidence_factors.mean()
        - rights_penalty(rights)
        + corpus_size_factor(corpus_size)
        + (0.1 if era_requested else 0.0)
    )
    return round(max(min(score, 1.0), 0.0), 2)


def summarize_sources(items: list[CorpusItem], top: int = 5) -> list[dict[str, Any]]:
    """Most frequent provenance sources with a representative item each."""
    counts: Counter[str] = Counter(
        p.source_id or "unknown" for item in items for p in item.provenance
    )
    sources = []
    for source_id, count in counts.most_common(top):
        representative = next(
            (i for i in items if any(p.source_id == source_id for p in i.provenance)),
            None,
        )
        sources.append({
            "id": source_id,
            "title": representative.title if representative else humanize(source_id),
            "year": representative.year if representative else 2024,
            "count": count,
        })
    return sources


class StyleCapsuleBuilder:
    """Build, persist and cache a style capsule for one key."""

    def __init__(
        self,
        settings: Settings,
        resolver: PersonaResolver,
        collector: StyleCorpusCollector,
        capsule_store: BaseCapsuleStore,
        cache: BaseCacheStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._resolver = resolver
        self._collector = collector
        self._capsules = capsule_store
        self._cache = cache
        self._clock = clock

    async def build(
        self,
        persona_id: str,
        persona_label: str | None = None,
        era: str | None = None,
        require_rights: str = "public",
        graph_version: str | None = None,
        lexicon_version: str | None = None,
    ) -> dict[str, Any]:
        """Run the pipeline. Never raises; failures come back as ``ok: False``."""
        start = time.perf_counter()
        graph_version = graph_version or self._settings.graph_version
        lexicon_version = lexicon_version or self._settings.lexicon_version
        tracker = StageTracker(persona_id)

        def failure(message: str, label: str | None = None) -> dict[str, Any]:
            return {
                "ok": False,
                "error": message,
                "persona_id": persona_id,
                "persona_label": label,
                "execution_time": round(time.perf_counter() - start, 3),
            }

        logger.info("Building style capsule for %s", persona_id)
        try:
            with tracker.stage("resolve_persona"):
                if not persona_label:
                    resolution = await self._resolver.resolve(persona_id)
                    if not resolution.ok:
                        return failure(resolution.error or "Persona not found")
                    persona_label = resolution.persona_label

            with tracker.stage("collect_corpus"):
                corpus = await self._collector.collect(
                    persona_id, era=era, require_rights=require_rights
                )
                if not corpus.ok:
                    return failure(corpus.error or "Corpus collection failed", persona_label)
                items = corpus.corpus_items

            with tracker.stage("extract_features"):
                features = extract_features(items)
                if not features.ok:
                    return failure(features.error or "Feature extraction failed", persona_label)

            with tracker.stage("analyze_rights"):
                rights = summarize_rights(items, require_rights=require_rights)
                if not rights.ok:
                    return failure(rights.error or "Rights analysis failed", persona_label)

            with tracker.stage("compute_confidence"):
                confidence = blend_confidence(features, rights, len(items), bool(era))
                style_capsule = features.capsule_json()
                sources = summarize_sources(items)

            with tracker.stage("persist"):
                now = self._clock()
                try:
                    record = await self._capsules.insert(
                        StyleCapsuleRecord(
                            persona_id=persona_id,
                            persona_label=persona_label,
                            era=era,
                            rights_scope=require_rights,
                            capsule_json=style_capsule,
                            confidence=confidence,
                            sources_json=sources,
                            graph_version=graph_version,
                            lexicon_version=lexicon_version,
                            created_at=now,
                            expires_at=now + timedelta(days=self._settings.capsule_ttl_days),
                        )
                    )
                except (CapsulePersistenceError, ValidationError) as e:
                    logger.error("Failed to persist StyleCapsule for %s: %s", persona_id, e)
                    return failure("Failed to persist capsule", persona_label)

            rights_view = {
                "quotable": rights.quotable,
                "attribution_required": rights.attribution_required,
                "attribution_text": rights.attribution_text,
                "visibility": rights.visibility,
            }
            payload = {
                "ok": True,
                "persona_id": persona_id,
                "persona_label": persona_label,
                "style_capsule": style_capsule,
                "style_confidence": confidence,
                "rights_summary": rights_view,
                "sources": sources,
            }

            with tracker.stage("write_cache"):
                cache_key = record.cache_key
                ttl = record.ttl_seconds(self._clock())
                cached = True
                try:
                    await self._cache.set(cache_key, payload, ttl_seconds=ttl)
                except Exception as e:
                    logger.error("Failed to write capsule cache %s: %s", cache_key, e)
                    cached = False

            return {
                **payload,
                "meta": {
                    "cache": "miss",
                    "built_by_job": False,
                    "execution_time": round(time.perf_counter() - start, 3),
                    "corpus_size": len(items),
                    "graph_version": graph_version,
                    "lexicon_version": lexicon_version,
                    "cached": cached,
                    "cache_key": cache_key if cached else None,
                    "ttl_seconds": record.ttl_seconds(self._clock()),
                    "stages": tracker.durations_ms(),
                },
            }
        except Exception as e:
            logger.exception("Capsule build failed for %s", persona_id)
            return failure(f"Capsule build failed: {e}", persona_label)
