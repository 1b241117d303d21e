"""AI helpers used by the onboarding conversation.

Every helper here is fail-open: an AI problem never reaches the caller as an
exception. Helpers return None, a neutral verdict or a fixed fallback text,
and the warning is logged once in generate_structured().
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from gigfolio.agents.field_catalog import Variant
from gigfolio.agents.onboarding_prompts import (
    build_context_aware_prompt,
    build_equipment_parsing_prompt,
    build_field_sanitization_prompt,
    build_intent_analysis_prompt,
    build_job_title_prompt,
    build_profile_summary_prompt,
    build_relatedness_prompt,
    build_skill_name_prompt,
    build_video_script_prompt,
)
from gigfolio.core.config import settings
from gigfolio.providers.llm.base import TaskType
from gigfolio.services.field_validators import parse_equipment_basic
from gigfolio.services.structured_ai import generate_structured

logger = logging.getLogger(__name__)

# =============================================================================
# Response schemas
# =============================================================================


class JobTitleResponse(BaseModel):
    job_title: str
    confidence: float = Field(ge=0)
    matched_terms: list[str] = Field(default_factory=list)
    is_ai_suggested: bool = True


class SkillNameResponse(BaseModel):
    skill_name: str
    confidence: float = 0.0


class RelatednessResponse(BaseModel):
    is_related: bool
    confidence: float = 0.0
    reason: str = ""


class IntentResponse(BaseModel):
    action: str
    confidence: float = 0.0
    reason: str = ""
    suggested_action: str = ""


class FieldReviewResponse(BaseModel):
    is_appropriate: bool = True
    is_relevant: bool = True
    sanitized: str
    natural_summary: str = ""
    reason: str = ""


class EquipmentResponse(BaseModel):
    items: list[str]


class SummaryResponse(BaseModel):
    summary: str


class PromptResponse(BaseModel):
    prompt: str


class ScriptResponse(BaseModel):
    script: str


# =============================================================================
# Result types
# =============================================================================

# Above this the unrelated-reply verdict is trusted
_UNRELATED_CONFIDENCE = 0.7

# Clarify only for mid-confidence verdicts; outside this band, continue
_CLARIFY_MIN_CONFIDENCE = 0.5
_CLARIFY_MAX_CONFIDENCE = 0.8

_INTENT_ACTIONS = ("help", "continue", "redirect", "clarify")


@dataclass(frozen=True)
class JobTitleSuggestion:
    """Suggested standardized job title.

    Attributes:
        job_title: Suggested title.
        confidence: Percent, 0-100.
        matched_terms: Terms from the answer behind the suggestion.
        is_ai_suggested: Always True for model output.
    """

    job_title: str
    confidence: float
    matched_terms: list[str] = field(default_factory=list)
    is_ai_suggested: bool = True


@dataclass(frozen=True)
class SkillNameSuggestion:
    skill_name: str
    confidence: float


@dataclass(frozen=True)
class IntentAnalysis:
    action: str
    confidence: float
    reason: str
    suggested_action: str


@dataclass(frozen=True)
class FieldReview:
    """AI verdict and cleanup for one answer."""

    is_appropriate: bool
    is_relevant: bool
    sanitized: str
    natural_summary: str
    reason: str


def _to_percent(confidence: float) -> float:
    scaled = confidence * 100 if confidence <= 1 else confidence
    return round(min(scaled, 100.0), 1)


# =============================================================================
# Job title / skill name
# =============================================================================


async def interpret_job_title(text: str) -> JobTitleSuggestion | None:
    """Suggest a standardized job title for a skills answer.

    Args:
        text: The worker's skills answer (already locally validated).

    Returns:
        JobTitleSuggestion with confidence in percent, or None when the AI
        call failed or produced an empty title.
    """
    result = await generate_structured(
        build_job_title_prompt(text), JobTitleResponse, TaskType.JOB_TITLE
    )
    if not result.ok or result.data is None:
        return None
    title = result.data.job_title.strip()
    if not title:
        return None
    return JobTitleSuggestion(
        job_title=title,
        confidence=_to_percent(result.data.confidence),
        matched_terms=[t for t in result.data.matched_terms if t],
        is_ai_suggested=True,
    )


async def extract_skill_name(text: str) -> SkillNameSuggestion | None:
    """Pull the core skill name out of a sentence ("I am a baker" -> "Baker")."""
    result = await generate_structured(
        build_skill_name_prompt(text), SkillNameResponse, TaskType.SKILL_EXTRACTION
    )
    if not result.ok or result.data is None or not result.data.skill_name.strip():
        return None
    return SkillNameSuggestion(
        skill_name=result.data.skill_name.strip(),
        confidence=result.data.confidence,
    )


# =============================================================================
# Relatedness and intent
# =============================================================================


async def is_unrelated_response(text: str, prompt: str) -> bool:
    """True when the model is confident the reply ignores the question.

    AI failure counts as related.
    """
    result = await generate_structured(
        build_relatedness_prompt(text, prompt),
        RelatednessResponse,
        TaskType.RELEVANCE_CHECK,
    )
    if not result.ok or result.data is None:
        return False
    return not result.data.is_related and result.data.confidence > _UNRELATED_CONFIDENCE


async def analyze_user_intent(
    text: str,
    prompt: str,
    recent: list[str],
    variant: Variant | str = Variant.GENERIC,
) -> IntentAnalysis:
    """Classify a reply as help, continue, redirect or clarify.

    Clarify is only kept for mid-confidence verdicts; anything unclear
    falls back to continue.
    """
    result = await generate_structured(
        build_intent_analysis_prompt(text, prompt, recent, variant),
        IntentResponse,
        TaskType.INTENT_ANALYSIS,
    )
    if not result.ok or result.data is None:
        return IntentAnalysis(
            action="continue",
            confidence=0.5,
            reason="AI analysis failed, defaulting to continue",
            suggested_action="continue_normal_flow",
        )

    data = result.data
    action = data.action.strip().lower()
    if action not in _INTENT_ACTIONS:
        action = "continue"
    if action == "clarify" and not (
        _CLARIFY_MIN_CONFIDENCE < data.confidence < _CLARIFY_MAX_CONFIDENCE
    ):
        action = "continue"
    return IntentAnalysis(
        action=action,
        confidence=data.confidence,
        reason=data.reason,
        suggested_action=data.suggested_action,
    )


# =============================================================================
# Field cleanup
# =============================================================================


async def sanitize_field(
    field_name: str,
    value: str,
    question: str | None = None,
    variant: Variant | str = Variant.GENERIC,
) -> FieldReview | None:
    """Ask the model to judge and tidy one answer.

    Returns:
        FieldReview, or None when the AI stage failed (callers fall back to
        the locally cleaned value).
    """
    result = await generate_structured(
        build_field_sanitization_prompt(field_name, value, question, variant),
        FieldReviewResponse,
        TaskType.FIELD_SANITIZATION,
    )
    if not result.ok or result.data is None:
        return None
    data = result.data
    return FieldReview(
        is_appropriate=data.is_appropriate,
        is_relevant=data.is_relevant,
        sanitized=data.sanitized.strip() or value,
        natural_summary=data.natural_summary.strip(),
        reason=data.reason.strip(),
    )


async def parse_equipment_items(text: str) -> list[dict[str, str]]:
    """Split an equipment answer into ``{"name": ...}`` items.

    Falls back to separator-based parsing when the AI call fails or returns
    nothing usable.
    """
    result = await generate_structured(
        build_equipment_parsing_prompt(text),
        EquipmentResponse,
        TaskType.EQUIPMENT_PARSING,
        temperature=0.1,
    )
    if result.ok and result.data is not None:
        items = [{"name": name.strip()} for name in result.data.items if name.strip()]
        if items:
            return items
    return parse_equipment_basic(text)


# =============================================================================
# Summary and personalization
# =============================================================================


def fallback_profile_summary(form_data: dict[str, Any]) -> str:
    """Deterministic summary sentence used when the AI summary is unavailable."""
    skills = form_data.get("skills") or "professional"
    experience = form_data.get("experience") or "valuable"
    qualifications = form_data.get("qualifications") or "expertise"
    rate = form_data.get("hourlyRate")
    rate_text = f"£{rate}" if rate not in (None, "") else "competitive"
    return (
        f"Based on your profile, you're a skilled {skills} with {experience} "
        f"experience. You bring {qualifications} to every project and are "
        f"available at {rate_text} rates."
    )


async def generate_profile_summary(
    form_data: dict[str, Any],
    timeout: float | None = None,
    variant: Variant | str = Variant.GENERIC,
) -> str:
    """Write the end-of-flow profile summary; fixed fallback on failure."""
    result = await generate_structured(
        build_profile_summary_prompt(form_data, variant),
        SummaryResponse,
        TaskType.PROFILE_SUMMARY,
        timeout=timeout if timeout is not None else settings.summary_timeout_seconds,
    )
    if result.ok and result.data is not None and result.data.summary.strip():
        return result.data.summary.strip()
    logger.info("Using fallback profile summary")
    return fallback_profile_summary(form_data)


async def generate_context_aware_prompt(
    field_name: str,
    about: str,
    fallback: str | None = None,
    variant: Variant | str = Variant.GENERIC,
) -> str:
    """Personalize a field question using what the worker said about themselves."""
    default = fallback or f"Please tell me about your {field_name}."
    result = await generate_structured(
        build_context_aware_prompt(field_name, about, variant),
        PromptResponse,
        TaskType.PROMPT_PERSONALIZATION,
        timeout=settings.summary_timeout_seconds,
    )
    if result.ok and result.data is not None and result.data.prompt.strip():
        return result.data.prompt.strip()
    return default


async def generate_video_script(
    form_data: dict[str, Any], variant: Variant | str = Variant.GENERIC
) -> str | None:
    """Draft a 30-60 second video introduction script, or None on failure."""
    result = await generate_structured(
        build_video_script_prompt(form_data, variant),
        ScriptResponse,
        TaskType.VIDEO_SCRIPT,
    )
    if not result.ok or result.data is None or not result.data.script.strip():
        return None
    return result.data.script.strip()
