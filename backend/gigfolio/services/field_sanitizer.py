"""Field Validator/Sanitizer: local rules, then the AI review stage.

validate_field() is the single entry point the conversation uses for a
typed answer. Local rules (field_validators) always run first and can reject
on their own. Free-text fields then go to the model for an appropriateness
and relevance verdict plus light cleanup. When the model is unavailable the
locally cleaned value is accepted with a default summary.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any

from gigfolio.agents.onboarding_prompts import has_field_instructions
from gigfolio.services.ai_assist import parse_equipment_items, sanitize_field
from gigfolio.services.field_validators import (
    ValidationFailure,
    ValidationOutcome,
    ValidationSuccess,
    equipment_items,
    validate_locally,
)

logger = logging.getLogger(__name__)

# The model only judges these; the locally normalized value is kept
_VERDICT_ONLY_FIELDS = frozenset({"skills", "experience"})

_DEFAULT_SUMMARIES: dict[str, str] = {
    "about": "Perfect! Your bio sounds great!",
    "skills": "So you are a {value}?",
    "experience": "Got it, {value} of experience.",
    "qualifications": "Thanks, I've noted your qualifications.",
    "equipment": "Great! You have {value}.",
    "location": "Perfect! You're located in {value}.",
}

_INAPPROPRIATE_FALLBACK = "Please keep your answer professional and appropriate."
_IRRELEVANT_FALLBACK = (
    "That doesn't seem to answer the question. Could you tell me a bit more?"
)


@dataclass(frozen=True)
class ValidationContext:
    """Conversation context for one answer.

    Attributes:
        question: The bot prompt the worker is answering.
        variant: Catalog variant ("generic" or "hospitality").
    """

    question: str | None = None
    variant: str = "generic"


def display_text(field_name: str, value: Any) -> str:
    """Plain-text rendering of a cleaned value (equipment lists joined)."""
    if field_name == "equipment" and isinstance(value, list):
        return ", ".join(item["name"] for item in equipment_items(value))
    return "" if value is None else str(value)


def _default_summary(field_name: str, value: Any) -> str | None:
    template = _DEFAULT_SUMMARIES.get(field_name)
    if template is None:
        return None
    return template.format(value=display_text(field_name, value))


async def _finish_equipment(outcome: ValidationSuccess, text: str) -> ValidationSuccess:
    items = await parse_equipment_items(text)
    if not items:
        items = outcome.details.get("items", [])
    return replace(outcome, cleaned_value=items, details={**outcome.details, "items": items})


async def validate_field(
    field_name: str,
    raw_value: Any,
    context: ValidationContext | None = None,
) -> ValidationOutcome:
    """Validate and clean one answer.

    Args:
        field_name: Catalog field name.
        raw_value: The worker's answer (text, or a structured value from an
            inline widget).
        context: Question and variant for the AI review prompt.

    Returns:
        ValidationSuccess with the value to store (equipment as a list of
        ``{"name": ...}``), or ValidationFailure with a user-facing message.
    """
    context = context or ValidationContext()
    local = validate_locally(field_name, raw_value)
    if isinstance(local, ValidationFailure) or local.skipped:
        return local

    reviewable = has_field_instructions(field_name) and isinstance(local.cleaned_value, str)
    if not reviewable:
        return local

    text = local.cleaned_value
    review = await sanitize_field(field_name, text, context.question, context.variant)

    if review is None:
        logger.warning(
            "AI review unavailable for %s; accepting locally cleaned value", field_name
        )
        outcome = local
        if field_name == "equipment":
            outcome = await _finish_equipment(outcome, text)
        return replace(outcome, summary=_default_summary(field_name, outcome.cleaned_value))

    if not review.is_appropriate:
        return ValidationFailure(review.reason or _INAPPROPRIATE_FALLBACK)
    if not review.is_relevant:
        return ValidationFailure(review.reason or _IRRELEVANT_FALLBACK)

    cleaned = text if field_name in _VERDICT_ONLY_FIELDS else review.sanitized
    outcome = replace(local, cleaned_value=cleaned)
    if field_name == "equipment":
        outcome = await _finish_equipment(outcome, cleaned)
    return replace(
        outcome,
        summary=review.natural_summary
        or _default_summary(field_name, outcome.cleaned_value),
    )
