"""Experience text parsing.

Workers answer the experience question in free text: "5", "3 years",
"2.5 years", "5 years and 3 months", "18 months", "beginner". This module
turns that into whole years plus months, and into the normalized display
text stored in the profile.
"""

import re
from dataclasses import dataclass

# =============================================================================
# Constants
# =============================================================================

# Upper bound on parsed years; anything larger is a typo or abuse
_MAX_YEARS = 80

_YEARS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:years?|yrs?|y)\b", re.IGNORECASE)
_MONTHS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:months?|mos?|m)\b", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")
_SPECIFIC_DURATION = re.compile(r"^\d+|years?|yrs?|months?", re.IGNORECASE)

EXPERIENCE_LEVELS: dict[str, str] = {
    "beginner": "Beginner",
    "novice": "Beginner",
    "entry": "Entry Level",
    "entry level": "Entry Level",
    "intermediate": "Intermediate",
    "mid": "Intermediate",
    "mid level": "Intermediate",
    "advanced": "Advanced",
    "senior": "Senior",
    "expert": "Expert",
    "lead": "Lead",
    "manager": "Manager",
    "director": "Director",
}


@dataclass(frozen=True)
class ParsedExperience:
    """Experience split into whole years and months.

    Attributes:
        years: Whole years (0 when unknown).
        months: Remaining months, 0-11.
    """

    years: int = 0
    months: int = 0

    @property
    def is_empty(self) -> bool:
        """True when neither years nor months were found."""
        return self.years == 0 and self.months == 0


def parse_experience(text: str | None) -> ParsedExperience:
    """Parse free-text experience into years and months.

    Fractional years carry into months ("2.5 years" is 2 years 6 months);
    months above 11 carry into years ("18 months" is 1 year 6 months). A
    bare leading number counts as years.

    Args:
        text: Raw experience answer.

    Returns:
        ParsedExperience; empty when no duration was found.

    Examples:
        >>> parse_experience("5 years and 3 months")
        ParsedExperience(years=5, months=3)
        >>> parse_experience("2.5")
        ParsedExperience(years=2, months=6)
    """
    if not text:
        return ParsedExperience()

    years_value = 0.0
    months_value = 0.0

    years_match = _YEARS_PATTERN.search(text)
    months_match = _MONTHS_PATTERN.search(text)
    if years_match:
        years_value = float(years_match.group(1))
    if months_match:
        months_value = float(months_match.group(1))
    if not years_match and not months_match:
        leading = _LEADING_NUMBER.match(text)
        if leading:
            years_value = float(leading.group(1))

    whole_years = int(years_value)
    total_months = round((years_value - whole_years) * 12) + round(months_value)
    whole_years += total_months // 12
    remaining_months = total_months % 12

    return ParsedExperience(
        years=min(whole_years, _MAX_YEARS),
        months=remaining_months,
    )


def format_experience(parsed: ParsedExperience) -> str:
    """Render parsed experience as "N years M months" (singular where due)."""
    parts = []
    if parsed.years > 0:
        parts.append(f"{parsed.years} year{'s' if parsed.years != 1 else ''}")
    if parsed.months > 0:
        parts.append(f"{parsed.months} month{'s' if parsed.months != 1 else ''}")
    return " ".join(parts)


def has_specific_duration(text: str) -> bool:
    """True when the answer gives a number or a years/months unit."""
    return bool(_SPECIFIC_DURATION.search(text.strip()))


def normalize_experience_level(text: str) -> str:
    """Map a level word to its label; unknown words are returned unchanged."""
    return EXPERIENCE_LEVELS.get(text.strip().lower(), text.strip())
