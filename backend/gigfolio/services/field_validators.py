"""Local validation rules for each onboarding field.

Pure functions, no I/O: each takes the raw answer and returns a
ValidationSuccess with the cleaned value or a ValidationFailure with the
message shown back to the worker. The AI stage in field_sanitizer runs only
after these pass.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any
from urllib.parse import urlparse

from gigfolio.core.config import settings
from gigfolio.core.content_filters import (
    basic_clean,
    check_inappropriate_content,
    check_off_topic_response,
    is_skip_response,
)
from gigfolio.services.experience_parsing import (
    format_experience,
    has_specific_duration,
    normalize_experience_level,
    parse_experience,
)
from gigfolio.services.summary_formatting import WEEK_DAYS

# =============================================================================
# Outcome types
# =============================================================================


@dataclass(frozen=True)
class ValidationSuccess:
    """Accepted answer.

    Attributes:
        cleaned_value: Value to store in FormData (type depends on field).
        summary: Friendly confirmation sentence, when one was produced.
        skipped: True for "none"-style answers to optional-ish fields.
        details: Field-specific extras (parsed years, wage unit, address parts).
    """

    cleaned_value: Any
    summary: str | None = None
    skipped: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ValidationFailure:
    """Rejected answer with the message to show the worker."""

    error: str

    @property
    def ok(self) -> bool:
        return False


ValidationOutcome = ValidationSuccess | ValidationFailure

NO_QUALIFICATIONS = "No formal qualifications"

_MAX_TEXT_LENGTH = 1000

# =============================================================================
# Shared checks
# =============================================================================


def _screen(field_name: str, text: str, off_topic_message: str) -> ValidationFailure | None:
    """Run the inappropriate and off-topic filters; None means clean."""
    content = check_inappropriate_content(text)
    if content.is_inappropriate:
        return ValidationFailure(content.message or off_topic_message)
    if check_off_topic_response(field_name, text).is_off_topic:
        return ValidationFailure(off_topic_message)
    return None


def _check_inappropriate(text: str, fallback: str) -> ValidationFailure | None:
    content = check_inappropriate_content(text)
    if content.is_inappropriate:
        return ValidationFailure(content.message or fallback)
    return None


# =============================================================================
# Text fields
# =============================================================================


def validate_about(value: Any) -> ValidationOutcome:
    """Bio: 10-1000 characters, professional and on topic."""
    trimmed = str(value or "").strip()
    if not trimmed:
        return ValidationFailure("Please enter your bio")
    if len(trimmed) < 10:
        return ValidationFailure("Bio must be at least 10 characters long")
    if len(trimmed) > _MAX_TEXT_LENGTH:
        return ValidationFailure("Bio must be less than 1000 characters")

    failure = _screen(
        "about",
        trimmed,
        "Please focus on your professional background and what makes you "
        "unique as a worker",
    )
    if failure:
        return failure

    normalized = re.sub(r"[ \t]+", " ", trimmed)
    normalized = re.sub(r"\n\s*\n", "\n\n", normalized).strip()
    return ValidationSuccess(cleaned_value=normalized)


def title_case_skill(text: str) -> str:
    """Collapse whitespace and capitalize each word ("bar  staff" -> "Bar Staff")."""
    words = re.sub(r"\s+", " ", text).strip().split(" ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in words if word)


def validate_skills(value: Any) -> ValidationOutcome:
    """Skill name: 2-100 characters, title-cased."""
    trimmed = str(value or "").strip()
    if not trimmed:
        return ValidationFailure("Please enter a skill name")
    if len(trimmed) < 2:
        return ValidationFailure("Skill name must be at least 2 characters long")
    if len(trimmed) > 100:
        return ValidationFailure("Skill name must be less than 100 characters")

    failure = _check_inappropriate(
        trimmed, "Please describe your skills using professional language"
    )
    if failure:
        return failure

    return ValidationSuccess(cleaned_value=title_case_skill(trimmed))


def validate_experience(value: Any) -> ValidationOutcome:
    """Experience: a duration ("5 years 3 months") or a level word."""
    trimmed = str(value or "").strip()
    if not trimmed:
        return ValidationFailure("Please provide your experience level")
    if len(trimmed) < 2 and not trimmed.isdigit():
        return ValidationFailure("Please provide more detail about your experience")

    failure = _screen(
        "experience",
        trimmed,
        "Please provide information about your work experience or skill level",
    )
    if failure:
        return failure

    parsed = parse_experience(trimmed)
    if has_specific_duration(trimmed):
        text = format_experience(parsed) or "Less than 1 year"
    else:
        text = normalize_experience_level(trimmed)

    return ValidationSuccess(
        cleaned_value=text,
        details={"years": parsed.years, "months": parsed.months},
    )


def validate_qualifications(value: Any) -> ValidationOutcome:
    """Qualifications: skip phrases, otherwise 10-1000 characters on topic."""
    trimmed = str(value or "").strip()
    if is_skip_response("qualifications", trimmed):
        return ValidationSuccess(cleaned_value=NO_QUALIFICATIONS, skipped=True)
    if not trimmed:
        return ValidationFailure(
            "Please enter your qualifications or say \"none\" if you don't have any"
        )
    if len(trimmed) < 10:
        return ValidationFailure(
            "Qualifications must be at least 10 characters long, or say "
            "\"none\" if you don't have any"
        )
    if len(trimmed) > _MAX_TEXT_LENGTH:
        return ValidationFailure("Qualifications must be less than 1000 characters")

    failure = _screen(
        "qualifications",
        trimmed,
        "Please provide information relevant to your professional qualifications",
    )
    if failure:
        return failure

    return ValidationSuccess(cleaned_value=re.sub(r"\s+", " ", trimmed))


# =============================================================================
# Equipment
# =============================================================================

_EQUIPMENT_LEAD = re.compile(
    r"^(?:i use|i have|i own|equipment:|tools:|my equipment:?|my tools:?)\s*",
    re.IGNORECASE,
)
_EQUIPMENT_SUFFIXES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\s+as\s+a\s+\w+\s+for\s+my\s+equipment$",
        r"\s+for\s+my\s+equipment$",
        r"\s+as\s+a\s+\w+$",
        r"\s+as\s+equipment$",
        r"\s+for\s+equipment$",
        r"\s+equipment$",
    )
)
_EQUIPMENT_SEPARATORS = re.compile(r"[,;\n]|\s+and\s+|\s+&\s+", re.IGNORECASE)
_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_FILLER_WORDS = frozenset(
    {"and", "or", "the", "a", "an", "with", "for", "in", "on", "at", "by", "to", "from"}
)


def _strip_equipment_affixes(text: str) -> str:
    for pattern in _EQUIPMENT_SUFFIXES:
        text = pattern.sub("", text)
    return text


def parse_equipment_basic(text: str) -> list[dict[str, str]]:
    """Split an equipment answer into ``{"name": ...}`` items without AI.

    Examples:
        >>> parse_equipment_basic("I use Pans, Aprons as a chef for my equipment")
        [{'name': 'Pans'}, {'name': 'Aprons'}]
    """
    cleaned = _EQUIPMENT_LEAD.sub("", text.strip())
    cleaned = _ARTICLE.sub("", cleaned)
    cleaned = re.sub(r"^:\s*", "", cleaned)
    cleaned = _strip_equipment_affixes(cleaned).strip()

    items: list[dict[str, str]] = []
    for part in _EQUIPMENT_SEPARATORS.split(cleaned):
        candidate = part.strip()
        if not candidate or candidate.lower() in _FILLER_WORDS:
            continue
        name = _ARTICLE.sub("", candidate)
        name = _strip_equipment_affixes(name)
        name = re.sub(r"\s+", " ", name).strip()
        if name:
            items.append({"name": name})
    return items


def equipment_items(value: Any) -> list[dict[str, str]]:
    """Coerce a stored equipment value into a list of ``{"name": ...}``."""
    if isinstance(value, list):
        items = []
        for item in value:
            name = item.get("name") if isinstance(item, dict) else item
            if name and str(name).strip():
                items.append({"name": str(name).strip()})
        return items
    if isinstance(value, str):
        return parse_equipment_basic(value)
    return []


def validate_equipment(value: Any) -> ValidationOutcome:
    """Equipment: skip phrases mean an empty list; otherwise free text."""
    trimmed = str(value or "").strip()
    if is_skip_response("equipment", trimmed):
        return ValidationSuccess(cleaned_value=[], skipped=True)
    if not trimmed:
        return ValidationFailure(
            "Please enter your equipment or say \"none\" if you don't have any"
        )
    if len(trimmed) < 2:
        return ValidationFailure(
            "Please provide at least one piece of equipment, or say \"none\" if "
            "you don't have any"
        )
    if len(trimmed) > _MAX_TEXT_LENGTH:
        return ValidationFailure("Equipment description must be less than 1000 characters")

    failure = _check_inappropriate(
        trimmed, "Please keep your equipment description professional and appropriate"
    )
    if failure:
        return failure
    # Short lists like "Van" carry no keywords; only longer answers are scored
    if len(trimmed) > 10 and check_off_topic_response("equipment", trimmed).is_off_topic:
        return ValidationFailure("Please provide information relevant to your work equipment")

    items = parse_equipment_basic(trimmed)
    if not items:
        return ValidationFailure("Please provide at least one piece of equipment")
    return ValidationSuccess(cleaned_value=basic_clean(trimmed), details={"items": items})


# =============================================================================
# Location
# =============================================================================


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if number != number else number  # NaN check


def validate_location(value: Any) -> ValidationOutcome:
    """Location: coordinates from the map picker or a typed address."""
    if not value:
        return ValidationFailure("Please provide your location or address")

    if isinstance(value, dict) and "lat" in value and "lng" in value:
        lat, lng = _as_number(value["lat"]), _as_number(value["lng"])
        if lat is None or lng is None:
            return ValidationFailure("Invalid location coordinates")
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return ValidationFailure("Location coordinates are out of valid range")
        location: dict[str, Any] = {"lat": lat, "lng": lng}
        if value.get("formatted_address"):
            location["formatted_address"] = str(value["formatted_address"]).strip()
        return ValidationSuccess(cleaned_value=location)

    text = str(value).strip()
    if not text:
        return ValidationFailure("Please provide your address")
    if len(text) < 3:
        return ValidationFailure("Please provide a more complete address")

    failure = _screen(
        "location",
        text,
        "Please provide a valid address or location (e.g., street, city, postcode)",
    )
    if failure:
        return failure

    parts = [p.strip() for p in text.split(",") if p.strip()]
    address = {
        "city": parts[0] if parts else None,
        "province": parts[1] if len(parts) > 1 else None,
        "country": parts[-1] if parts else None,
    }
    return ValidationSuccess(cleaned_value=basic_clean(text), details={"address": address})


# =============================================================================
# Availability
# =============================================================================

AVAILABILITY_DEFAULTS: dict[str, Any] = {
    "days": [],
    "startTime": "09:00",
    "endTime": "17:00",
    "frequency": "weekly",
    "ends": "never",
    "endDate": None,
    "occurrences": None,
}

_DAY_LOOKUP: dict[str, str] = {
    **{day: day for day in WEEK_DAYS},
    **{day[:3]: day for day in WEEK_DAYS},
}
_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_FREQUENCIES = ("never", "weekly", "biweekly", "monthly")
_END_CONDITIONS = ("never", "on_date", "after_occurrences")


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _parse_end_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def validate_availability(value: Any) -> ValidationOutcome:
    """Weekly availability window; day names normalized to lowercase."""
    merged = {**AVAILABILITY_DEFAULTS, **(value if isinstance(value, dict) else {})}

    days = merged.get("days") or []
    if isinstance(days, str):
        days = [d for d in re.split(r"[,\s]+", days) if d]
    if not days:
        return ValidationFailure("Please select at least one day of availability")

    normalized_days: list[str] = []
    invalid = []
    for day in days:
        canonical = _DAY_LOOKUP.get(str(day).strip().lower())
        if canonical is None:
            invalid.append(str(day))
        elif canonical not in normalized_days:
            normalized_days.append(canonical)
    if invalid:
        return ValidationFailure(
            f"Invalid day names: {', '.join(invalid)}. Please use standard day names."
        )

    start, end = str(merged["startTime"]), str(merged["endTime"])
    if not _TIME_PATTERN.match(start) or not _TIME_PATTERN.match(end):
        return ValidationFailure("Please provide valid time format (HH:MM)")
    if _minutes(start) >= _minutes(end):
        return ValidationFailure("End time must be after start time")

    frequency = merged.get("frequency")
    if frequency and frequency not in _FREQUENCIES:
        return ValidationFailure(
            f"Invalid frequency: {frequency}. Please use: {', '.join(_FREQUENCIES)}"
        )
    ends = merged.get("ends")
    if ends and ends not in _END_CONDITIONS:
        return ValidationFailure(
            f"Invalid end condition: {ends}. Please use: {', '.join(_END_CONDITIONS)}"
        )

    if ends == "on_date" and merged.get("endDate"):
        end_date = _parse_end_date(merged["endDate"])
        if end_date is None:
            return ValidationFailure("Invalid end date format")
        if end_date <= datetime.now(UTC).date():
            return ValidationFailure("End date must be in the future")

    occurrences = merged.get("occurrences")
    if ends == "after_occurrences" and occurrences is not None:
        try:
            count = int(occurrences)
        except (TypeError, ValueError):
            return ValidationFailure("Occurrences must be between 1 and 1000")
        if not 1 <= count <= 1000:
            return ValidationFailure("Occurrences must be between 1 and 1000")
        merged["occurrences"] = count

    merged["days"] = normalized_days
    merged["startTime"] = start.zfill(5)
    merged["endTime"] = end.zfill(5)
    return ValidationSuccess(cleaned_value=merged)


# =============================================================================
# Hourly rate
# =============================================================================

_AMOUNT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")
_PURE_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")
_WEEK_UNIT = re.compile(r"\b(?:weeks?|weekly|wk|pw)\b|/\s*w\b")
_DAY_UNIT = re.compile(r"\b(?:days?|daily|pd)\b|/\s*d\b")


def detect_wage_unit(text: str) -> str:
    """Return "week", "day" or "hour" (the default) for a rate answer."""
    lowered = text.lower()
    if _WEEK_UNIT.search(lowered):
        return "week"
    if _DAY_UNIT.search(lowered):
        return "day"
    return "hour"


def validate_hourly_rate(
    value: Any,
    min_rate: float | None = None,
    max_rate: float | None = None,
) -> ValidationOutcome:
    """Rate in pounds; day and week rates are converted to an hourly figure.

    Args:
        value: Raw answer ("15", "£20 per hour", "120 a day").
        min_rate: Minimum-wage floor; defaults to settings.min_hourly_rate.
        max_rate: Sanity ceiling; defaults to settings.max_hourly_rate.

    Returns:
        ValidationSuccess whose cleaned value is the hourly amount (float).
    """
    floor = settings.min_hourly_rate if min_rate is None else min_rate
    ceiling = settings.max_hourly_rate if max_rate is None else max_rate

    trimmed = str(value if value is not None else "").strip().lower()
    if not trimmed:
        return ValidationFailure("Please enter your preferred rate")

    failure = _check_inappropriate(
        trimmed, "Please provide a professional rate without inappropriate language"
    )
    if failure:
        return failure

    if not _PURE_NUMBER.match(trimmed) and check_off_topic_response(
        "hourlyRate", trimmed
    ).is_off_topic:
        return ValidationFailure(
            "Please provide your hourly rate (e.g., £15/hour, £20 per hour)"
        )

    match = _AMOUNT_PATTERN.search(trimmed)
    if not match:
        return ValidationFailure(
            "Please enter a valid number for your hourly rate (e.g., £15, 20/hour, "
            "£25 per hour, 15.50, £12.50 per hour)"
        )
    amount = float(match.group(1))
    if amount <= 0:
        return ValidationFailure("Please enter a positive number for your rate")

    unit = detect_wage_unit(trimmed)
    if unit == "day":
        hourly = amount / settings.hours_per_day
    elif unit == "week":
        hourly = amount / settings.hours_per_week
    else:
        hourly = amount
    hourly = round(hourly, 2)

    if hourly < floor:
        return ValidationFailure(
            f"Hourly rate must be at least £{floor:g} per hour to comply with "
            "minimum wage laws. This protects both you and your clients."
        )
    if hourly > ceiling:
        return ValidationFailure(
            f"Hourly rate seems unusually high. Please enter a reasonable amount "
            f"(≤ £{ceiling:g}/hour). If this is correct, please contact support."
        )

    return ValidationSuccess(
        cleaned_value=hourly,
        details={"amount": amount, "unit": unit},
    )


# =============================================================================
# Video
# =============================================================================


def _is_http_url(text: str) -> bool:
    parsed = urlparse(text)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_video_intro(value: Any) -> ValidationOutcome:
    """Video: an http(s) URL, or an upload result carrying one."""
    if not value:
        return ValidationFailure("Please provide a video introduction")

    if isinstance(value, dict):
        value = value.get("url") or value.get("download_url") or value.get("downloadURL")
        if not value:
            return ValidationFailure("Please provide a valid video introduction")

    if not isinstance(value, str):
        return ValidationFailure("Please provide a valid video introduction")
    trimmed = value.strip()
    if not trimmed:
        return ValidationFailure("Please provide a video introduction")
    if not _is_http_url(trimmed):
        return ValidationFailure("Please provide a valid video URL")
    return ValidationSuccess(cleaned_value=trimmed)


# =============================================================================
# Registry
# =============================================================================

LOCAL_VALIDATORS: dict[str, Callable[[Any], ValidationOutcome]] = {
    "about": validate_about,
    "skills": validate_skills,
    "experience": validate_experience,
    "qualifications": validate_qualifications,
    "equipment": validate_equipment,
    "location": validate_location,
    "availability": validate_availability,
    "hourlyRate": validate_hourly_rate,
    "videoIntro": validate_video_intro,
}


def validate_locally(field_name: str, raw_value: Any) -> ValidationOutcome:
    """Run the local rules for ``field_name``.

    Unknown fields only get whitespace cleanup and the inappropriate check.
    """
    validator = LOCAL_VALIDATORS.get(field_name)
    if validator is not None:
        return validator(raw_value)

    text = basic_clean(str(raw_value or ""))
    if not text:
        return ValidationFailure("Please provide an answer")
    failure = _check_inappropriate(text, "Please keep your answer professional")
    return failure or ValidationSuccess(cleaned_value=text)
