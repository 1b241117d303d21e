"""Tests for experience text parsing."""

import pytest

from gigfolio.services.experience_parsing import (
    ParsedExperience,
    format_experience,
    has_specific_duration,
    normalize_experience_level,
    parse_experience,
)


class TestParseExperience:
    """Tests for parse_experience."""

    @pytest.mark.parametrize(
        ("text", "years", "months"),
        [
            ("5", 5, 0),
            ("3 years", 3, 0),
            ("2.5 years", 2, 6),
            ("2.5", 2, 6),
            ("5 years and 3 months", 5, 3),
            ("18 months", 1, 6),
            ("6 yrs", 6, 0),
        ],
    )
    def test_parses_durations(self, text: str, years: int, months: int) -> None:
        """Years, months and bare numbers are understood."""
        assert parse_experience(text) == ParsedExperience(years=years, months=months)

    def test_words_only_is_empty(self) -> None:
        """Level words carry no duration."""
        assert parse_experience("beginner").is_empty

    def test_none_is_empty(self) -> None:
        """Missing text parses to zero."""
        assert parse_experience(None) == ParsedExperience()

    def test_years_are_capped(self) -> None:
        """Absurd year counts are clamped."""
        assert parse_experience("500 years").years == 80


class TestFormatExperience:
    """Tests for format_experience."""

    def test_singular_units(self) -> None:
        """One year and one month are singular."""
        assert format_experience(ParsedExperience(years=1, months=1)) == "1 year 1 month"

    def test_months_only(self) -> None:
        """Zero years are omitted."""
        assert format_experience(ParsedExperience(months=4)) == "4 months"

    def test_empty(self) -> None:
        """Nothing parsed formats to an empty string."""
        assert format_experience(ParsedExperience()) == ""


class TestExperienceHelpers:
    """Tests for has_specific_duration and normalize_experience_level."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("5", True), ("two years", True), ("a few months", True), ("senior", False)],
    )
    def test_has_specific_duration(self, text: str, expected: bool) -> None:
        """Numbers and units count as a specific duration."""
        assert has_specific_duration(text) is expected

    def test_level_words_map_to_labels(self) -> None:
        """Synonyms share a label."""
        assert normalize_experience_level(" Novice ") == "Beginner"
        assert normalize_experience_level("mid level") == "Intermediate"

    def test_unknown_words_pass_through(self) -> None:
        """Unknown words are only trimmed."""
        assert normalize_experience_level(" Journeyman ") == "Journeyman"
