"""Prompt templates for the onboarding AI helpers.

Module-level templates plus builder functions. Worker answers are always
embedded through fence_user_text() so the model sees them as data; other
profile values pass through sanitize_llm_input().

The hospitality variant has its own templates for the review, intent,
summary and video script prompts (the Gigfolio Coach persona, UK venues and
certificates).
"""

import json
from typing import Any

from gigfolio.agents.field_catalog import Variant
from gigfolio.core.llm_sanitization import fence_user_text, sanitize_llm_input

_NOT_PROVIDED = "Not provided"


def _profile_value(value: Any) -> str:
    if value is None or value == "" or value == []:
        return _NOT_PROVIDED
    if isinstance(value, list):
        names = [item.get("name", "") if isinstance(item, dict) else str(item) for item in value]
        return sanitize_llm_input(", ".join(n for n in names if n))
    if isinstance(value, dict):
        if value.get("formatted_address"):
            return sanitize_llm_input(str(value["formatted_address"]))
        return sanitize_llm_input(json.dumps(value, default=str))
    return sanitize_llm_input(str(value))


# =============================================================================
# Field sanitization
# =============================================================================

# Per-field instructions; the shared template adds the verdict and output rules
_FIELD_INSTRUCTIONS: dict[str, str] = {
    "about": (
        "This is the worker's bio. Fix spelling, grammar, punctuation and basic "
        "formatting while keeping the original content and casual, personal tone. "
        "Remove any curse words. Do not make it overly formal. A friendly "
        'summary looks like "Perfect! Your bio sounds great!"'
    ),
    "skills": (
        "This is the worker's main skill or profession. Fix spelling and "
        'capitalization only. A friendly summary looks like "So you are a '
        '[skill]?"'
    ),
    "experience": (
        "This is how much experience the worker has. Be very lenient: single "
        'numbers ("5"), durations ("2.5 years", "5 yrs") and levels ("beginner", '
        '"senior") are all relevant. Reject only video game or fictional '
        "characters, memes, jokes and gibberish. For a level, the summary says "
        "something like \"Got it, you're at [level] level\"; do not mention "
        "years the worker did not give."
    ),
    "qualifications": (
        "These are the worker's qualifications, certificates and training. Fix "
        "spelling, grammar and formatting. Return only the cleaned text, with no "
        'label such as "Qualifications:". The summary says in a friendly way '
        "what was cleaned up."
    ),
    "equipment": (
        "This is equipment the worker owns and can use for work. Fix spelling "
        "and formatting and keep it as a comma-separated list. A friendly "
        'summary looks like "Great! You have [equipment list]".'
    ),
    "location": (
        "This is where the worker is based. Fix spelling and formatting of the "
        'place names only. A friendly summary looks like "Perfect! You\'re '
        'located in [location]".'
    ),
}

_REVIEW_CONTEXT: dict[Variant, str] = {
    Variant.GENERIC: (
        "You are reviewing one answer in a worker onboarding chat for a UK gig marketplace."
    ),
    Variant.HOSPITALITY: (
        "You are the Gigfolio Coach, reviewing one answer for a UK hospitality worker "
        "profile. Answers about pubs, restaurants, hotels, festivals and events, bar, "
        "kitchen and front-of-house work, Food Hygiene Certificates and Personal "
        "Licenses are all relevant."
    ),
}

_FIELD_SANITIZATION_TEMPLATE = """{context}

Question asked: "{question}"

{instructions}

Decide:
- is_appropriate: false if the answer contains offensive, sexual, violent or discriminatory content.
- is_relevant: false if the answer does not address the question at all.
- sanitized: the cleaned answer. Never change its meaning or add information.
- natural_summary: one short, friendly confirmation sentence for the worker.
- reason: when either verdict is false, a short explanation addressed to the worker; otherwise an empty string.

Worker answer:
{answer}"""


def build_field_sanitization_prompt(
    field_name: str,
    value: str,
    question: str | None = None,
    variant: Variant | str = Variant.GENERIC,
) -> str:
    """Build the combined verdict-and-cleanup prompt for one text field.

    Args:
        field_name: Catalog field name.
        value: Locally validated answer text.
        question: The bot prompt the worker was answering.
        variant: Catalog variant; sets the reviewer persona.

    Returns:
        Formatted prompt string.
    """
    return _FIELD_SANITIZATION_TEMPLATE.format(
        context=_REVIEW_CONTEXT[Variant(variant)],
        question=sanitize_llm_input(question or field_name),
        instructions=_FIELD_INSTRUCTIONS.get(
            field_name,
            "Fix spelling, grammar and formatting without changing the meaning.",
        ),
        answer=fence_user_text(value),
    )


def has_field_instructions(field_name: str) -> bool:
    """True for fields the AI cleanup stage understands."""
    return field_name in _FIELD_INSTRUCTIONS


# =============================================================================
# Job title and skill name
# =============================================================================

_JOB_TITLE_TEMPLATE = """Analyze this description of someone's work and suggest the most appropriate job title.

Consider:
- Industry context
- Skill level indicated
- Common job titles in the field
- Professional terminology

Respond with JSON containing:
- job_title: the most appropriate job title, in title case
- confidence: confidence score between 0 and 1
- matched_terms: key terms from the description that led to this suggestion
- is_ai_suggested: true

Description:
{answer}"""


def build_job_title_prompt(text: str) -> str:
    """Build the job-title interpretation prompt."""
    return _JOB_TITLE_TEMPLATE.format(answer=fence_user_text(text))


_SKILL_NAME_TEMPLATE = """Extract the main skill or job title from this worker's answer. Return only the core skill name, not the full sentence, in title case.

Examples:
- "I am a baker" -> "Baker"
- "I work as a software developer" -> "Software Developer"
- "I'm a graphic designer" -> "Graphic Designer"
- "I do plumbing work" -> "Plumber"
- "I'm experienced in carpentry" -> "Carpenter"
- "I am a cafeteria manager" -> "Cafeteria Manager"

Respond with JSON containing skill_name and confidence (0-1).

Worker answer:
{answer}"""


def build_skill_name_prompt(text: str) -> str:
    """Build the skill-name extraction prompt."""
    return _SKILL_NAME_TEMPLATE.format(answer=fence_user_text(text))


# =============================================================================
# Relatedness and intent
# =============================================================================

_RELATEDNESS_TEMPLATE = """Determine if this worker's reply is related to worker onboarding.

Current question: "{question}"

Is the reply related to any of:
- Worker profile creation
- Job applications
- Skills and experience
- Availability and scheduling
- Professional information

Respond with JSON containing:
- is_related: boolean
- confidence: 0-1 score
- reason: brief explanation

Worker reply:
{answer}"""


def build_relatedness_prompt(text: str, question: str) -> str:
    """Build the unrelated-reply classification prompt."""
    return _RELATEDNESS_TEMPLATE.format(
        question=sanitize_llm_input(question),
        answer=fence_user_text(text),
    )


_INTENT_TEMPLATE = """Analyze this worker's input in the context of an AI onboarding conversation.

Current question: "{question}"
Recent context:
{recent}

Determine if the worker is:
1. Asking for help or expressing frustration
2. Providing normal onboarding information
3. Trying to skip or avoid the process
4. Having technical issues

Respond with JSON containing:
- action: "help", "continue", "redirect", or "clarify"
- confidence: 0-1 confidence score
- reason: brief explanation
- suggested_action: what the system should do next

Worker input:
{answer}"""


_HOSPITALITY_INTENT_TEMPLATE = """Analyze this worker's input in the context of UK hospitality onboarding with the Gigfolio Coach.

Current question: "{question}"
Recent context:
{recent}

Determine if the worker is:
1. Providing normal hospitality information (skills, venues, certificates, availability)
2. Asking for help or clarification
3. Trying to skip the process
4. Having technical issues
5. Expressing frustration

Respond with JSON containing:
- action: "help", "continue", "redirect", or "clarify"
- confidence: 0-1 confidence score
- reason: brief explanation
- suggested_action: what the system should do next

Worker input:
{answer}"""

_INTENT_TEMPLATES: dict[Variant, str] = {
    Variant.GENERIC: _INTENT_TEMPLATE,
    Variant.HOSPITALITY: _HOSPITALITY_INTENT_TEMPLATE,
}


def build_intent_analysis_prompt(
    text: str,
    question: str,
    recent: list[str],
    variant: Variant | str = Variant.GENERIC,
) -> str:
    """Build the intent analysis prompt from the last few conversation lines."""
    lines = [sanitize_llm_input(line) for line in recent[-3:]]
    return _INTENT_TEMPLATES[Variant(variant)].format(
        question=sanitize_llm_input(question),
        recent="\n".join(lines) or "(none)",
        answer=fence_user_text(text),
    )


# =============================================================================
# Equipment
# =============================================================================

_EQUIPMENT_TEMPLATE = """Extract and clean equipment names from this worker's answer. Return only the core equipment names, removing any prefixes, suffixes or descriptive text.

Examples:
- "I use Pans, Aprons as a chef for my equipment" -> ["Pans", "Aprons"]
- "Baking Equipment, Mixing Bowls" -> ["Baking Equipment", "Mixing Bowls"]
- "Aprons as equipment" -> ["Aprons"]
- "I have: Mechanic tools, Wrenches, Screws" -> ["Mechanic tools", "Wrenches", "Screws"]

Respond with JSON containing items: an array of equipment names.

Worker answer:
{answer}"""


def build_equipment_parsing_prompt(text: str) -> str:
    """Build the equipment list extraction prompt."""
    return _EQUIPMENT_TEMPLATE.format(answer=fence_user_text(text))


# =============================================================================
# Profile summary, personalized prompts, video script
# =============================================================================

_PROFILE_SUMMARY_TEMPLATE = """Create a personalized summary of this worker's profile based on their onboarding information:

Profile Information:
- About: {about}
- Skills/Profession: {skills}
- Experience: {experience}
- Qualifications: {qualifications}
- Equipment: {equipment}
- Hourly Rate: {hourly_rate}
- Location: {location}

Create a warm, professional summary that highlights their key strengths and experience. Make it personal and engaging, like you're introducing them to potential clients. Keep it concise but comprehensive, and do not assume the worker's gender.

Respond with JSON containing summary."""


_HOSPITALITY_PROFILE_SUMMARY_TEMPLATE = """Create a professional summary for a UK hospitality worker profile based on this information:

MAIN SKILL: {skills}
EXPERIENCE: {experience}
BACKGROUND AND VENUES: {about}
QUALIFICATIONS: {qualifications}
EQUIPMENT: {equipment}
LOCATION: {location}
AVAILABILITY: {availability}
HOURLY RATE: £{hourly_rate}

Create a compelling summary that:
1. Highlights their hospitality expertise
2. Emphasizes UK venue experience
3. Shows professionalism and personality
4. Is 2-3 sentences long
5. Focuses on customer service and team work
6. Mentions relevant qualifications if any

Make it sound natural and engaging for potential employers, and do not assume the worker's gender.

Respond with JSON containing summary."""

_PROFILE_SUMMARY_TEMPLATES: dict[Variant, str] = {
    Variant.GENERIC: _PROFILE_SUMMARY_TEMPLATE,
    Variant.HOSPITALITY: _HOSPITALITY_PROFILE_SUMMARY_TEMPLATE,
}


def build_profile_summary_prompt(
    form_data: dict[str, Any], variant: Variant | str = Variant.GENERIC
) -> str:
    """Build the end-of-flow profile summary prompt."""
    return _PROFILE_SUMMARY_TEMPLATES[Variant(variant)].format(
        about=_profile_value(form_data.get("about")),
        skills=_profile_value(form_data.get("skills")),
        experience=_profile_value(form_data.get("experience")),
        qualifications=_profile_value(form_data.get("qualifications")),
        equipment=_profile_value(form_data.get("equipment")),
        hourly_rate=_profile_value(form_data.get("hourlyRate")),
        location=_profile_value(form_data.get("location")),
        availability=_profile_value(form_data.get("availability")),
    )


_CONTEXT_AWARE_TEMPLATE = """Generate a personalized question for collecting the worker's {field_name}. The worker has already told us this about themselves:
{about}

You MUST keep context and consistency. If you already know their profession (like "baker"), don't ask generic questions; ask specific questions about their field.

Create a question that:
1. References their existing information naturally and specifically
2. Asks for the field in a conversational way that builds on what you know
3. Provides helpful context about why this information is needed
4. Is encouraging and supportive
5. Is 1-2 sentences long
6. Shows you remember what they told you

Examples:
- If they said "I am a baker 25" and you're asking for skills, say "As a baker, what specific baking skills do you have?"
- If they said "I'm a construction worker" and you're asking for experience, say "How many years have you been working in construction?"

Respond with JSON containing prompt."""


_HOSPITALITY_CONTEXT_NOTE = """
The worker is building a UK hospitality profile. Where it fits, refer to their role and to venues such as pubs, restaurants, hotels and festivals (for example: "As a bartender, what equipment are you confident using?")."""


def build_context_aware_prompt(
    field_name: str, about: str, variant: Variant | str = Variant.GENERIC
) -> str:
    """Build the personalized field question prompt."""
    prompt = _CONTEXT_AWARE_TEMPLATE.format(
        field_name=sanitize_llm_input(field_name),
        about=fence_user_text(about),
    )
    if Variant(variant) is Variant.HOSPITALITY:
        prompt += "\n" + _HOSPITALITY_CONTEXT_NOTE
    return prompt


_VIDEO_SCRIPT_TEMPLATE = """Create a personalized video introduction script for a worker profile. Use the following information to create an engaging, professional script that highlights their strengths and personality:

PROFILE DATA:
- About: {about}
- Experience: {experience}
- Skills: {skills}
- Qualifications: {qualifications}
- Job Title: {job_title}

IMPORTANT: Focus on the skills field as the primary profession indicator. Do not use bio information for context as it may contain outdated or conflicting information. The skills field represents their current profession.

Create a script that:
1. Is conversational and natural
2. Highlights key strengths and experience
3. Shows personality and enthusiasm
4. Is appropriate for a professional video introduction
5. Is between 30-60 seconds when spoken
6. Uses the person's own words and style when possible
7. Focuses on their current skills/profession, not outdated bio information

Format as a natural speaking script with line breaks for pauses. Respond with JSON containing script."""


_HOSPITALITY_VIDEO_SCRIPT_TEMPLATE = """Create a personalized video introduction script for a UK hospitality worker. Use the following information to create an engaging, professional script:

PROFILE DATA:
- Main Skill: {skills}
- Job Title: {job_title}
- Experience: {experience}
- Background and Venues: {about}
- Qualifications: {qualifications}
- Equipment: {equipment}

IMPORTANT: This is for UK hospitality work, so focus on:
1. Professional hospitality experience
2. Customer service excellence
3. UK venue types (pubs, restaurants, hotels, festivals)
4. Relevant certifications (Food Hygiene, Personal License)
5. Team work and adaptability

Create a script that:
1. Is conversational and enthusiastic
2. Highlights UK hospitality experience
3. Shows personality and professionalism
4. Is 30-60 seconds when spoken
5. Uses natural, confident language
6. Emphasizes customer service skills
7. Mentions specific venue types if relevant

Format as a natural speaking script with line breaks for pauses. Respond with JSON containing script."""

_VIDEO_SCRIPT_TEMPLATES: dict[Variant, str] = {
    Variant.GENERIC: _VIDEO_SCRIPT_TEMPLATE,
    Variant.HOSPITALITY: _HOSPITALITY_VIDEO_SCRIPT_TEMPLATE,
}


def build_video_script_prompt(
    form_data: dict[str, Any], variant: Variant | str = Variant.GENERIC
) -> str:
    """Build the video introduction script prompt."""
    return _VIDEO_SCRIPT_TEMPLATES[Variant(variant)].format(
        about=_profile_value(form_data.get("about")),
        experience=_profile_value(form_data.get("experience")),
        skills=_profile_value(form_data.get("skills")),
        qualifications=_profile_value(form_data.get("qualifications")),
        job_title=_profile_value(form_data.get("jobTitle")),
        equipment=_profile_value(form_data.get("equipment")),
    )


# =============================================================================
# Clarification
# =============================================================================

# Re-asks used when a hospitality answer was unclear; generic sessions repeat
# the original question
_HOSPITALITY_CLARIFICATIONS: dict[str, str] = {
    "about": (
        "Could you tell me more about where you've worked? I'd love to hear about "
        "the types of venues - pubs, restaurants, hotels, festivals, etc."
    ),
    "skills": (
        "Could you tell me your main hospitality skill and how long you've been "
        'doing it? For example: "I\'m a bartender with 6 years experience"'
    ),
    "qualifications": (
        "No worries if you don't have formal qualifications! Just let me know if you "
        'have any certificates, licenses, or degrees, or simply say "none".'
    ),
    "equipment": (
        "What equipment or tools are you comfortable using? Even if you don't own "
        "them, what are you experienced with?"
    ),
}


def clarification_prompt(field_name: str, variant: Variant | str = Variant.GENERIC) -> str | None:
    """Variant-specific re-ask for an unclear answer, if there is one."""
    if Variant(variant) is not Variant.HOSPITALITY:
        return None
    return _HOSPITALITY_CLARIFICATIONS.get(field_name)


# =============================================================================
# Hashtags
# =============================================================================

_HASHTAG_TEMPLATE = """You generate professional hashtags for gig workers based on their profile information.

Based on the following worker profile data, generate exactly {count} relevant, professional hashtags that would help with job matching and discoverability.

Profile Data:
- About: {about}
- Experience: {experience}
- Skills: {skills}
- Equipment: {equipment}
- Location: {location}

Rules:
1. Generate exactly {count} hashtags (no more, no less)
2. Use professional, industry-standard terms
3. Focus on skills, experience level, and specializations
4. Use hashtag format (e.g., "#bartender", "#mixology", "#events")
5. Make them relevant to hospitality, events, and gig work
6. Avoid generic terms like "#work" or "#job"
7. Consider the worker's experience level and equipment
{location_rule}
Examples of good hashtags:
- For bartenders: "#bartender", "#mixology", "#cocktails"
- For chefs: "#chef", "#cooking", "#catering"
- For event staff: "#events", "#hospitality", "#customer-service"

Respond with JSON containing hashtags: an array of strings."""


def build_hashtag_prompt(
    profile: dict[str, Any], count: int = 3, include_location: bool = False
) -> str:
    """Build the profile hashtag prompt."""
    return _HASHTAG_TEMPLATE.format(
        count=count,
        about=_profile_value(profile.get("about")),
        experience=_profile_value(profile.get("experience")),
        skills=_profile_value(profile.get("skills")),
        equipment=_profile_value(profile.get("equipment")),
        location=_profile_value(profile.get("location")),
        location_rule=(
            "8. Include a location-based hashtag if location is provided\n"
            if include_location
            else ""
        ),
    )
