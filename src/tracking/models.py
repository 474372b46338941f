# src/tracking/models.py
"""Tracking models for pipeline stage timings."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class StageRecord(BaseModel):
    """One timed pipeline stage."""

    stage: str
    persona_id: str | None = None
    started_at: datetime
    duration_ms: int
    status: Literal["success", "failed"]
