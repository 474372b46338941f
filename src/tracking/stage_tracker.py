# src/tracking/stage_tracker.py
"""Stage timer for the capsule pipeline.

Records one StageRecord per stage and logs ``<Stage>: <persona> (<secs>s)``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sevenpools.logging.context import set_persona_context
from sevenpools.tracking.models import StageRecord

logger = logging.getLogger(__name__)


class StageTracker:
    """Accumulates stage timings during one build."""

    def __init__(self, persona_id: str | None = None) -> None:
        self._persona_id = persona_id
        self._records: list[StageRecord] = []

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block as stage ``name``.

        The stage is marked failed if the block raises; the exception propagates.
        """
        set_persona_context(self._persona_id, name)
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        status = "failed"
        try:
            yield
            status = "success"
        finally:
            elapsed = time.perf_counter() - start
            self._records.append(
                StageRecord(
                    stage=name,
                    persona_id=self._persona_id,
                    started_at=started_at,
                    duration_ms=int(elapsed * 1000),
                    status=status,
                )
            )
            logger.info("%s: %s (%.3fs)", name, self._persona_id, elapsed)
            set_persona_context(self._persona_id, None)

    @property
    def records(self) -> list[StageRecord]:
        return list(self._records)

    def durations_ms(self) -> dict[str, int]:
        return {r.stage: r.duration_ms for r in self._records}
