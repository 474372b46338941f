# tests/unit/core/test_naming.py
"""Tests for core/naming.py."""

from __future__ import annotations

from sevenpools.core.naming import (
    humanize,
    parameterize,
    person_persona_id,
    persona_slug,
    titleize,
    truncate,
)


class TestHumanize:
    def test_underscores(self):
        assert humanize("larry_harvey") == "Larry harvey"

    def test_collapses_whitespace(self):
        assert humanize("  fire   spinning ") == "Fire spinning"


class TestTitleize:
    def test_snake_case(self):
        assert titleize("larry_harvey") == "Larry Harvey"

    def test_upper_case(self):
        assert titleize("LARRY HARVEY") == "Larry Harvey"


class TestPersonaSlug:
    def test_basic(self):
        assert persona_slug("Larry Harvey") == "larry_harvey"

    def test_strips_punctuation(self):
        assert persona_slug("Dr. Megan Miller!") == "dr_megan_miller"

    def test_person_persona_id(self):
        assert person_persona_id("Larry Harvey") == "person:larry_harvey"


class TestParameterize:
    def test_basic(self):
        assert parameterize("Center Camp") == "center-camp"

    def test_symbols(self):
        assert parameterize("3:00 & C") == "3-00-c"


class TestTruncate:
    def test_short_unchanged(self):
        assert truncate("short", 10) == "short"

    def test_word_boundary(self):
        assert truncate("the quick brown fox", 12) == "the quick..."

    def test_no_separator(self):
        assert truncate("abcdefghij", 8, separator=None) == "abcde..."
