"""
Tests for application constants

Validates that static league knowledge is internally consistent.
"""
import pytest

from constants import (
    DEFAULT_DRAFT_POSITION,
    DEFAULT_NUM_TEAMS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_ROSTER_SIZE,
    IDEAL_ROSTER_COMPOSITION,
    MAX_PAGE_SIZE,
    MAX_ROSTER_SIZE,
    MAX_TEAMS,
    MIN_ROSTER_SIZE,
    MIN_TEAMS,
    MLB_POSITIONS,
    NBA_POSITIONS,
    NFL_POSITIONS,
    RECOMMENDATION_TAGS,
    TAG_BEST_AVAILABLE,
    TAG_VALUE_PICK,
    UNKNOWN_POSITION,
)


class TestDraftDefaults:
    """Test draft setup bounds and defaults."""

    def test_defaults_within_bounds(self):
        assert MIN_TEAMS <= DEFAULT_NUM_TEAMS <= MAX_TEAMS
        assert MIN_ROSTER_SIZE <= DEFAULT_ROSTER_SIZE <= MAX_ROSTER_SIZE
        assert 1 <= DEFAULT_DRAFT_POSITION <= DEFAULT_NUM_TEAMS

    def test_page_sizes(self):
        assert 0 < DEFAULT_PAGE_SIZE <= MAX_PAGE_SIZE


class TestPositions:
    """Test position lists and ideal compositions."""

    @pytest.mark.parametrize("sport,positions", [
        ("NBA", NBA_POSITIONS),
        ("NFL", NFL_POSITIONS),
        ("MLB", MLB_POSITIONS),
    ])
    def test_ideal_composition_uses_known_positions(self, sport, positions):
        composition = IDEAL_ROSTER_COMPOSITION[sport]

        assert set(composition) <= set(positions)
        assert all(count > 0 for count in composition.values())

    def test_ideal_composition_fits_default_roster(self):
        for composition in IDEAL_ROSTER_COMPOSITION.values():
            assert sum(composition.values()) <= MAX_ROSTER_SIZE

    def test_unknown_position_is_flex(self):
        assert UNKNOWN_POSITION in NBA_POSITIONS
        assert UNKNOWN_POSITION not in IDEAL_ROSTER_COMPOSITION["NBA"]


class TestRecommendationTags:
    """Test the fixed tag vocabulary."""

    def test_tags_are_unique_lowercase(self):
        assert len(set(RECOMMENDATION_TAGS)) == len(RECOMMENDATION_TAGS)
        assert all(tag == tag.lower().strip() for tag in RECOMMENDATION_TAGS)

    def test_fallback_tags_in_vocabulary(self):
        assert TAG_BEST_AVAILABLE in RECOMMENDATION_TAGS
        assert TAG_VALUE_PICK in RECOMMENDATION_TAGS
