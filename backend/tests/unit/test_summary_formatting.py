"""Tests for summary display formatting."""

import pytest

from gigfolio.services.summary_formatting import (
    NOT_PROVIDED,
    VIDEO_UPLOADED,
    format_summary_value,
)


class TestFormatSummaryValue:
    """Tests for format_summary_value."""

    @pytest.mark.parametrize("value", [None, "", [], {}])
    def test_missing_values(self, value: object) -> None:
        """Empty values read 'Not provided'."""
        assert format_summary_value("about", value) == NOT_PROVIDED

    def test_rate_in_pounds(self) -> None:
        """Rates drop trailing zeros."""
        assert format_summary_value("hourlyRate", 15.0) == "£15"
        assert format_summary_value("hourlyRate", "12.5") == "£12.5"

    def test_rate_that_is_not_a_number(self) -> None:
        """Unparseable rates are shown as given."""
        assert format_summary_value("hourlyRate", "negotiable") == "negotiable"

    def test_availability(self) -> None:
        """Days are capitalized and followed by the window."""
        value = {"days": ["monday", "tuesday"], "startTime": "09:00", "endTime": "17:00"}

        assert format_summary_value("availability", value) == "Monday, Tuesday 09:00 - 17:00"

    def test_location_with_address(self) -> None:
        """The formatted address wins over coordinates."""
        value = {"lat": 51.5, "lng": -0.12, "formatted_address": "London, UK"}

        assert format_summary_value("location", value) == "London, UK"

    def test_location_coordinates_only(self) -> None:
        """Bare coordinates show six decimals."""
        assert format_summary_value("location", {"lat": 51.5, "lng": -0.12}) == (
            "Lat: 51.500000, Lng: -0.120000"
        )

    def test_typed_location(self) -> None:
        """Typed addresses are shown as typed."""
        assert format_summary_value("location", "Leeds") == "Leeds"

    def test_equipment_names(self) -> None:
        """Equipment items are joined by name."""
        value = [{"name": "Van"}, {"name": "Ladders"}, "Drill"]

        assert format_summary_value("equipment", value) == "Van, Ladders, Drill"

    def test_structured_experience(self) -> None:
        """JSON experience blobs are rendered in words."""
        assert format_summary_value("experience", '{"years": 3, "months": 2}') == (
            "3 years and 2 months"
        )

    def test_plain_experience(self) -> None:
        """Text experience is unchanged."""
        assert format_summary_value("experience", "5 years") == "5 years"

    def test_uploaded_video(self) -> None:
        """Video URLs are not shown raw."""
        assert format_summary_value("videoIntro", "https://cdn.example.com/v.mp4") == VIDEO_UPLOADED

    def test_other_fields_are_stringified(self) -> None:
        """Anything else is str()."""
        assert format_summary_value("skills", "Baker") == "Baker"
