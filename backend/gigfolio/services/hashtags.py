"""Profile hashtag generation.

The model proposes hashtags from the profile; anything it returns is
normalized to lowercase hyphenated ``#tags``. When the call fails, a
deterministic fallback strategy is used instead.
"""

import logging
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel

from gigfolio.agents.onboarding_prompts import build_hashtag_prompt
from gigfolio.providers.llm.base import TaskType
from gigfolio.services.structured_ai import generate_structured

logger = logging.getLogger(__name__)

DEFAULT_MAX_HASHTAGS = 3


class FallbackStrategy(str, Enum):
    SKILLS_BASED = "skills-based"
    BASIC = "basic"
    GENERIC = "generic"


_BASIC_HASHTAGS = ["#worker", "#gig", "#freelance"]
_GENERIC_HASHTAGS = ["#professional", "#service", "#gig-worker"]


class HashtagResponse(BaseModel):
    hashtags: list[str]


def normalize_hashtag(tag: str) -> str | None:
    """Lowercase hyphenated tag ("Wine Knowledge" -> "#wine-knowledge"), or None."""
    token = tag.strip().lstrip("#").lower()
    token = re.sub(r"[\s_]+", "-", token)
    token = re.sub(r"[^a-z0-9-]", "", token)
    token = re.sub(r"-{2,}", "-", token).strip("-")
    return f"#{token}" if token else None


def fallback_hashtags(
    profile: dict[str, Any], strategy: FallbackStrategy = FallbackStrategy.SKILLS_BASED
) -> list[str]:
    if strategy is FallbackStrategy.BASIC:
        return list(_BASIC_HASHTAGS)
    if strategy is FallbackStrategy.GENERIC:
        return list(_GENERIC_HASHTAGS)

    skills = str(profile.get("skills") or "").split(",")[0]
    about = str(profile.get("about") or "").split()
    skill_tag = normalize_hashtag(skills) or "#worker"
    about_tag = normalize_hashtag(about[0]) if about else None
    return [skill_tag, about_tag or "#professional", "#gig-worker"]


def _unique(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        if tag not in seen:
            seen.append(tag)
    return seen


async def generate_hashtags(
    profile: dict[str, Any],
    max_hashtags: int = DEFAULT_MAX_HASHTAGS,
    include_location: bool = True,
    strategy: FallbackStrategy = FallbackStrategy.SKILLS_BASED,
) -> list[str]:
    """Generate exactly ``max_hashtags`` hashtags for a profile.

    Short AI answers are padded from the fallback list.

    Args:
        profile: FormData-style mapping (about, experience, skills,
            equipment, location).
        max_hashtags: Number of hashtags to return.
        include_location: Ask for a location tag when a location is known.
        strategy: Fallback used when the AI call fails.

    Returns:
        Normalized hashtags.
    """
    result = await generate_structured(
        build_hashtag_prompt(profile, count=max_hashtags, include_location=include_location),
        HashtagResponse,
        TaskType.HASHTAGS,
    )
    fallback = fallback_hashtags(profile, strategy)
    if not result.ok or result.data is None:
        logger.info("Using %s fallback hashtags", strategy.value)
        return fallback[:max_hashtags]

    tags = _unique([t for t in (normalize_hashtag(h) for h in result.data.hashtags) if t])
    if not tags:
        return fallback[:max_hashtags]
    return _unique(tags + fallback)[:max_hashtags]
