# src/tools/models.py
"""Parameter models for the tool surface.

Types are checked here; value ranges and enumerations are checked inside
each tool so that every violation maps onto that tool's own error shape.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ToolParams(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SearchParams(ToolParams):
    query: str
    top_k: int = 10
    pools: list[str] | None = None
    date_from: str | None = None
    date_to: str | None = None
    require_rights: str = "public"
    diversify_by_pool: bool = True
    include_trace: bool = True
    include_counts: bool = True


class FetchParams(ToolParams):
    id: str
    include_relations: bool = True
    relation_depth: int = 1
    pools: list[str] | None = None
    as_of: str | None = None


class AnalyzePoolsParams(ToolParams):
    text: str
    mode: str = "extract"
    link_threshold: float = 0.6


class PoolBridgeParams(ToolParams):
    a: str
    b: str
    top_k: int = 10


class LocationNeighborsParams(ToolParams):
    camp_name: str
    year: int | None = None
    radius: str = "adjacent"


class SetPersonaParams(ToolParams):
    persona: str
    style_mode: str = "light"
    style_scope: str = "full_answer"
    era: str | None = None
    require_rights: str = "public"
    max_quote_pct: float = 0.1


class ClearPersonaParams(ToolParams):
    pass
