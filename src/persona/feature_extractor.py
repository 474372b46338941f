# src/persona/feature_extractor.py
"""Deterministic heuristic style analysis over a collected corpus.

Pure function of its input: same corpus, same features.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from collections.abc import Sequence

from sevenpools.core.models import ConfidenceFactors, CorpusItem, StyleFeatures

logger = logging.getLogger(__name__)

TONE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "reflective": ("reflect", "consider", "ponder", "think", "wonder", "contemplate"),
    "inspirational": ("inspire", "create", "build", "dream", "achieve", "transform"),
    "practical": ("do", "make", "work", "build", "implement", "organize", "plan"),
    "philosophical": ("principle", "truth", "meaning", "essence", "nature", "being"),
    "communal": ("community", "together", "share", "gift", "participate", "belong"),
    "visionary": ("vision", "future", "possibility", "imagine", "potential", "become"),
    "direct": ("must", "should", "will", "need", "important", "essential", "clear"),
    "playful": ("play", "fun", "joy", "celebrate", "dance", "laugh", "creative"),
}

IMPERATIVE_STARTERS = frozenset({"do", "make", "create", "build", "give", "share", "participate"})

STOPWORDS = frozenset({
    "the", "and", "or", "but", "for", "with", "from", "that", "this",
    "these", "those", "what", "where", "when", "how", "why",
})

DOMAIN_METAPHORS = ("playa", "temple", "effigy", "gift", "economy", "radical", "self-reliance")

_CLEAN_RE = re.compile(r"[^\w\s.!?;:,'-]")
_SPACES_RE = re.compile(r" +")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_WORD_RE = re.compile(r"\b[a-z]{2,}\b")
_TRIAD_RE = re.compile(r"\w+,\s*\w+,\s*(and\s+)?\w+")

_METAPHOR_PATTERNS = (
    re.compile(r"\b\w+\s+is\s+a\s+\w+"),
    re.compile(r"\b\w+\s+as\s+\w+"),
    re.compile(r"like\s+\w+"),
    re.compile(r"vessel|journey|path|fire|light|circle|gift"),
)

_DO_PATTERNS = (
    re.compile(r"should\s+([^.!?]+)"),
    re.compile(r"must\s+([^.!?]+)"),
    re.compile(r"always\s+([^.!?]+)"),
    re.compile(r"important\s+to\s+([^.!?]+)"),
)

_DONT_PATTERNS = (
    re.compile(r"should\s+not\s+([^.!?]+)"),
    re.compile(r"never\s+([^.!?]+)"),
    re.compile(r"avoid\s+([^.!?]+)"),
    re.compile(r"don't\s+([^.!?]+)"),
)

_SIGNATURES = (
    (re.compile(r"^(we|i|you|they)$"), "PRONOUN"),
    (re.compile(r"^(will|should|must|can)$"), "MODAL"),
    (re.compile(r"^(and|but|or)$"), "CONJUNCTION"),
    (re.compile(r"ing$"), "GERUND"),
)


def extract_features(corpus_items: Sequence[CorpusItem]) -> StyleFeatures:
    """Extract a StyleFeatures profile; never raises."""
    try:
        return _Analysis(corpus_items).run()
    except Exception as e:
        logger.error("Feature extraction failed: %s", e)
        return StyleFeatures(error=f"Feature extraction failed: {e}")


class _Analysis:
    def __init__(self, corpus_items: Sequence[CorpusItem]) -> None:
        self.items = list(corpus_items)
        joined = " ".join(f"{i.title} {i.content}" for i in self.items)
        self.text = _SPACES_RE.sub(" ", _CLEAN_RE.sub(" ", joined))
        self.lower = self.text.lower()
        self.sentences = [
            s.strip() for s in _SENTENCE_SPLIT_RE.split(self.text) if s.strip()
        ]
        self.words = _WORD_RE.findall(self.lower)

    def run(self) -> StyleFeatures:
        if not self.text.strip():
            return StyleFeatures(error="Empty corpus")
        return StyleFeatures(
            tone=self.tone(),
            cadence=self.cadence(),
            devices=self.devices(),
            vocabulary=self.vocabulary(),
            metaphors=self.metaphors(),
            dos=self._directives(_DO_PATTERNS),
            donts=self._directives(_DONT_PATTERNS),
            era=self.era(),
            confidence_factors=self.confidence_factors(),
        )

    def tone(self) -> list[str]:
        tones = [
            tone
            for tone, keywords in TONE_KEYWORDS.items()
            if sum(1 for word in keywords if word in self.lower) >= 2
        ]
        return tones[:3] if tones else ["neutral"]

    def cadence(self) -> str:
        if not self.sentences:
            return "unknown"
        mean = sum(len(s.split()) for s in self.sentences) / len(self.sentences)
        if mean <= 8:
            return "short and punchy"
        if mean <= 15:
            return "medium rhythmic"
        if mean <= 25:
            return "flowing extended"
        return "long contemplative"

    def devices(self) -> list[str]:
        devices: list[str] = []
        if _TRIAD_RE.search(self.lower) or "three" in self.lower:
            devices.append("triads")

        counts = Counter(self.words)
        if any(n > 3 and len(word) > 4 for word, n in counts.items()):
            devices.append("repetition")

        if self.text.count("?") > 2:
            devices.append("rhetorical_questions")

        imperatives = sum(
            1 for s in self.sentences if s.split()[0].lower() in IMPERATIVE_STARTERS
        )
        if imperatives > 1:
            devices.append("imperatives")

        if self._has_parallel_structure():
            devices.append("parallel_structure")
        return devices

    def _has_parallel_structure(self) -> bool:
        signatures: Counter[str] = Counter()
        for sentence in self.sentences:
            tokens = sentence.split()
            if len(tokens) < 3:
                continue
            signatures["_".join(_classify(t) for t in tokens[:3])] += 1
        return any(n >= 2 for n in signatures.values())

    def vocabulary(self) -> list[str]:
        freq = Counter(w for w in self.words if w not in STOPWORDS and len(w) >= 4)
        scored = [
            (word, n * math.log(len(word))) for word, n in freq.items() if n >= 2
        ]
        scored.sort(key=lambda pair: -pair[1])
        return [word for word, _ in scored[:15]]

    def metaphors(self) -> list[str]:
        found: list[str] = []
        for pattern in _METAPHOR_PATTERNS:
            found.extend(dict.fromkeys(pattern.findall(self.text)))
        found.extend(term for term in DOMAIN_METAPHORS if term in self.lower)
        return list(dict.fromkeys(found))[:8]

    def _directives(self, patterns: Sequence[re.Pattern[str]]) -> list[str]:
        found: list[str] = []
        for pattern in patterns:
            for sentence in self.sentences:
                for match in pattern.findall(sentence):
                    cleaned = match.strip().lower()
                    if len(cleaned) > 5:
                        found.append(cleaned)
        return list(dict.fromkeys(found))[:5]

    def era(self) -> str:
        years = [i.year for i in self.items if i.year]
        if not years:
            return "unknown"
        earliest, latest = min(years), max(years)
        return str(earliest) if earliest == latest else f"{earliest}–{latest}"

    def confidence_factors(self) -> ConfidenceFactors:
        length = len(self.text)
        if length <= 500:
            volume = 0.3
        elif length <= 2000:
            volume = 0.6
        elif length <= 5000:
            volume = 0.8
        else:
            volume = 1.0

        strategies = {i.strategy for i in self.items}
        pools = {p for i in self.items for p in i.pools_hit}

        years = [i.year for i in self.items if i.year]
        if years:
            span = max(years) - min(years)
            if span <= 2:
                consistency = 1.0
            elif span <= 5:
                consistency = 0.8
            elif span <= 10:
                consistency = 0.6
            else:
                consistency = 0.4
        else:
            consistency = 0.5

        return ConfidenceFactors(
            text_volume=volume,
            strategy_diversity=min(len(strategies) / 5.0, 1.0),
            pool_coverage=min(len(pools) / 7.0, 1.0),
            era_consistency=consistency,
        )


def _classify(token: str) -> str:
    lowered = token.lower()
    for pattern, label in _SIGNATURES:
        if pattern.search(lowered):
            return label
    return "WORD"
