# src/persona/rights_summarizer.py
"""Aggregate per-item rights into a corpus-level quotability verdict."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from typing import Any

from sevenpools.core.models import CorpusItem, Restriction, RightsSummary
from sevenpools.persona.corpus_collector import passes_rights

logger = logging.getLogger(__name__)

QUOTABLE_SHARE = 0.6
ATTRIBUTION_SHARE = 0.25
OPEN_LICENSES = frozenset({"CC-BY", "CC-BY-SA", "Public Domain"})


def summarize_rights(
    corpus_items: Sequence[CorpusItem], require_rights: str = "public"
) -> RightsSummary:
    """Summarize rights for ``require_rights``; never raises."""
    if not corpus_items:
        return RightsSummary(ok=False, error="Empty corpus")
    try:
        return _summarize(list(corpus_items), require_rights)
    except Exception as e:
        logger.error("Rights analysis failed: %s", e)
        return RightsSummary(ok=False, error=f"Rights analysis failed: {e}")


def _summarize(items: list[CorpusItem], require_rights: str) -> RightsSummary:
    visibility = Counter(i.rights.visibility for i in items)
    licenses = Counter(i.rights.license for i in items)
    consent = Counter(i.rights.consent for i in items)
    attribution = Counter(i.rights.attribution_required for i in items)
    total = len(items)

    attribution_required = attribution[True] / total > ATTRIBUTION_SHARE
    breakdown: dict[str, Any] = {
        "visibility": dict(visibility),
        "license": dict(licenses),
        "consent": dict(consent),
        "attribution_required": {str(k).lower(): v for k, v in attribution.items()},
    }

    return RightsSummary(
        ok=True,
        quotable=_quotable(visibility, total, require_rights),
        attribution_required=attribution_required,
        attribution_text=_attribution_text(items) if attribution_required else None,
        visibility=_visibility(visibility, require_rights),
        rights_breakdown=breakdown,
        restrictions=_restrictions(visibility, licenses, consent),
        public_percentage=round(visibility["public"] / total * 100, 1),
    )


def _quotable(visibility: Counter, total: int, require_rights: str) -> bool:
    if require_rights == "public":
        return visibility["public"] / total >= QUOTABLE_SHARE
    if require_rights == "internal":
        return (visibility["public"] + visibility["internal"]) / total >= QUOTABLE_SHARE
    return require_rights == "any"


def _attribution_text(items: list[CorpusItem]) -> str:
    citations = list(dict.fromkeys(
        p.citation for i in items for p in i.provenance if p.citation
    ))
    if not citations:
        return "Attribution required - see source documentation"
    if len(citations) == 1:
        return f"Based on: {citations[0]}"
    return f"Based on: {citations[0]} and {len(citations) - 1} other sources"


def _visibility(visibility: Counter, require_rights: str) -> str:
    if require_rights == "public":
        return "public"
    if require_rights == "internal":
        if visibility["public"] > 0:
            return "public"
        if visibility["internal"] > 0:
            return "internal"
        return "restricted"
    if require_rights == "any":
        common = visibility.most_common(1)
        return common[0][0] if common else "unknown"
    return "restricted"


def _restrictions(visibility: Counter, licenses: Counter, consent: Counter) -> list[Restriction]:
    restrictions: list[Restriction] = []
    if visibility["private"] > 0:
        restrictions.append(Restriction(
            type="private_content",
            count=visibility["private"],
            description=f"{visibility['private']} items have private visibility",
        ))
    restrictive = sum(n for lic, n in licenses.items() if lic not in OPEN_LICENSES)
    if restrictive > 0:
        restrictions.append(Restriction(
            type="restrictive_licenses",
            count=restrictive,
            description=f"{restrictive} items have restrictive licenses",
        ))
    if consent["withdrawn"] > 0:
        restrictions.append(Restriction(
            type="consent_withdrawn",
            count=consent["withdrawn"],
            description=f"{consent['withdrawn']} items have withdrawn consent",
        ))
    return restrictions


def filter_quotable_items(
    corpus_items: Sequence[CorpusItem], require_rights: str = "public"
) -> list[CorpusItem]:
    """Items that may be quoted under ``require_rights``.

    Experience-pool items additionally need public consent and public visibility.
    """
    quotable = []
    for item in corpus_items:
        if not passes_rights(item.rights, require_rights):
            continue
        if "experience" in item.pools_hit and not (
            item.rights.consent == "public" and item.rights.visibility == "public"
        ):
            continue
        quotable.append(item)
    return quotable
