"""Display formatting for the end-of-flow profile summary.

Turns FormData values into the one-line strings shown on the summary step.
"""

import json
import math
from typing import Any

NOT_PROVIDED = "Not provided"
VIDEO_UPLOADED = "Video uploaded ✓"

WEEK_DAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _is_coordinate(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    lat, lng = value.get("lat"), value.get("lng")
    return (
        isinstance(lat, (int, float))
        and isinstance(lng, (int, float))
        and not isinstance(lat, bool)
        and not isinstance(lng, bool)
        and -90 <= lat <= 90
        and -180 <= lng <= 180
    )


def _format_location(value: Any) -> str:
    if _is_coordinate(value):
        if value.get("formatted_address"):
            return str(value["formatted_address"])
        return f"Lat: {value['lat']:.6f}, Lng: {value['lng']:.6f}"
    return str(value)


def _format_availability(value: Any) -> str:
    if isinstance(value, dict) and "days" in value:
        labels = [day.capitalize() for day in value["days"] if day in WEEK_DAYS]
        start = value.get("startTime", "09:00")
        end = value.get("endTime", "17:00")
        return f"{', '.join(labels)} {start} - {end}"
    return str(value)


def _format_rate(value: Any) -> str:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    if math.isnan(amount):
        return str(value)
    return f"£{amount:g}"


def _format_experience(value: Any) -> str:
    # Structured experience arrives as a JSON blob from older profiles
    if isinstance(value, str) and value.startswith("{"):
        try:
            data = json.loads(value)
        except json.JSONDecodeError:
            return value
        years = int(data.get("years") or 0)
        months = int(data.get("months") or 0)
        parts = []
        if years > 0:
            parts.append(f"{years} year{'s' if years != 1 else ''}")
        if months > 0:
            parts.append(f"{months} month{'s' if months != 1 else ''}")
        return " and ".join(parts) or "Less than 1 year"
    return str(value)


def _format_equipment(value: Any) -> str:
    if isinstance(value, list):
        names = [
            str(item.get("name", "")) if isinstance(item, dict) else str(item)
            for item in value
        ]
        return ", ".join(name for name in names if name)
    return str(value)


def format_summary_value(field_name: str, value: Any) -> str:
    """Format one FormData value for the summary step.

    Args:
        field_name: Catalog field name.
        value: Stored FormData value (any shape).

    Returns:
        Display string; "Not provided" for missing values.
    """
    if _is_missing(value):
        return NOT_PROVIDED

    if field_name == "location":
        return _format_location(value)
    if field_name == "availability":
        return _format_availability(value)
    if field_name == "hourlyRate":
        return _format_rate(value)
    if field_name == "experience":
        return _format_experience(value)
    if field_name == "equipment":
        return _format_equipment(value)
    if field_name == "videoIntro" and isinstance(value, str) and value.startswith("http"):
        return VIDEO_UPLOADED
    return str(value)
