# src/core/naming.py
"""String helpers shared by the persona pipeline and the pool tools."""

from __future__ import annotations

import re

_NON_SLUG = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_NON_PARAM = re.compile(r"[^a-z0-9]+")


def humanize(identifier: str) -> str:
    """``"larry_harvey"`` -> ``"Larry harvey"``."""
    text = identifier.replace("_", " ").strip().lower()
    text = _WHITESPACE.sub(" ", text)
    return text[:1].upper() + text[1:]


def titleize(text: str) -> str:
    """``"larry_harvey"`` or ``"LARRY HARVEY"`` -> ``"Larry Harvey"``."""
    return " ".join(word.capitalize() for word in humanize(text).split())


def persona_slug(value: str) -> str:
    """Snake-case identifier used after ``person:`` in a persona_id."""
    cleaned = _NON_SLUG.sub("", value.lower()).strip()
    return _WHITESPACE.sub("_", cleaned)


def person_persona_id(value: str) -> str:
    return f"person:{persona_slug(value)}"


def parameterize(text: str) -> str:
    """URL-safe dashed form: ``"Center Camp"`` -> ``"center-camp"``."""
    return _NON_PARAM.sub("-", text.lower()).strip("-")


def truncate(text: str, length: int, omission: str = "...", separator: str | None = " ") -> str:
    """Cut ``text`` to at most ``length`` chars, preferring a word boundary."""
    if len(text) <= length:
        return text
    stop = max(length - len(omission), 0)
    cut = text[:stop]
    if separator:
        boundary = cut.rfind(separator)
        if boundary > 0:
            cut = cut[:boundary]
    return cut + omission
