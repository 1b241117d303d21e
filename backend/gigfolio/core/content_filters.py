"""Keyword heuristics shared by every field validator.

These checks run before any AI call and can short-circuit it:

- check_inappropriate_content: profanity, violence, sexual content,
  self-harm, substances and discrimination, graded by severity.
- check_off_topic_response: keyword relevance score per field.
- is_skip_response: "none" / "n/a" answers for optional-ish fields.
- detect_help_request: explicit and contextual requests for help.

All term lists match on word boundaries so that ordinary words containing a
flagged substring ("hello", "Scunthorpe", "shell") pass.
"""

import re
from dataclasses import dataclass
from enum import Enum

# =============================================================================
# Inappropriate content
# =============================================================================


class Severity(str, Enum):
    """How strongly an inappropriate match should be worded back to the user."""

    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_SEVERITY_RANK = {Severity.MEDIUM: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}

_SEVERITY_MESSAGES: dict[Severity, str] = {
    Severity.CRITICAL: (
        "This content contains inappropriate material that violates our "
        "community guidelines. Please provide professional information instead."
    ),
    Severity.HIGH: (
        "Please keep your response professional and appropriate for a work "
        "environment."
    ),
    Severity.MEDIUM: (
        "Please use professional language when describing your skills and "
        "experience."
    ),
}

# Stems ending in "*" match any word continuation ("discriminat*" -> "discrimination").
# Trade vocabulary is deliberately absent: bar staff talk about beer and wine,
# photographers about shoots, cooks about beating eggs, carers about mental
# health first aid.
_INAPPROPRIATE_TERMS: dict[str, tuple[Severity, tuple[str, ...]]] = {
    "profanity": (
        Severity.MEDIUM,
        (
            "fuck*",
            "shit*",
            "damn",
            "bitch*",
            "asshole*",
            "crap",
            "piss*",
            "bugger",
            "twat*",
            "wanker*",
        ),
    ),
    "violence": (
        Severity.HIGH,
        ("kill", "murder*", "violence", "violent", "stab*", "bomb*", "threat*"),
    ),
    "sexual": (
        Severity.HIGH,
        ("sex", "porn*", "nude*", "naked", "sexual", "fetish*", "kink*", "orgasm*", "masturbat*"),
    ),
    "self_harm": (
        Severity.CRITICAL,
        (
            "suicide*",
            "suicidal",
            "kill myself",
            "end my life",
            "self harm",
            "self-harm",
            "cut myself",
            "hurt myself",
        ),
    ),
    "substances": (
        Severity.MEDIUM,
        ("cocaine", "heroin", "marijuana", "weed", "cannabis", "drugs", "drunk"),
    ),
    "discrimination": (
        Severity.CRITICAL,
        ("racist*", "sexist*", "homophob*", "transphob*", "discriminat*", "hateful", "hate speech"),
    ),
}


def _compile_terms(terms: tuple[str, ...] | list[str]) -> re.Pattern[str]:
    parts = []
    for term in terms:
        if term.endswith("*"):
            parts.append(re.escape(term[:-1]) + r"\w*")
        else:
            parts.append(re.escape(term).replace(r"\ ", r"\s+"))
    return re.compile(r"\b(?:" + "|".join(parts) + r")\b", re.IGNORECASE)


_INAPPROPRIATE_PATTERNS: dict[str, tuple[Severity, re.Pattern[str]]] = {
    category: (severity, _compile_terms(terms))
    for category, (severity, terms) in _INAPPROPRIATE_TERMS.items()
}


@dataclass(frozen=True)
class ContentCheck:
    """Result of the inappropriate-content scan.

    Attributes:
        is_inappropriate: True if any category matched.
        categories: Matched category names, in catalog order.
        severity: Highest severity across matched categories.
        message: User-facing message for the highest severity.
    """

    is_inappropriate: bool
    categories: tuple[str, ...] = ()
    severity: Severity | None = None
    message: str | None = None


def check_inappropriate_content(text: str) -> ContentCheck:
    """Scan text for inappropriate terms.

    Args:
        text: Raw answer text.

    Returns:
        ContentCheck; ``message`` is set only when something matched.
    """
    if not text or not text.strip():
        return ContentCheck(is_inappropriate=False)

    matched: list[str] = []
    worst: Severity | None = None
    for category, (severity, pattern) in _INAPPROPRIATE_PATTERNS.items():
        if pattern.search(text):
            matched.append(category)
            if worst is None or _SEVERITY_RANK[severity] > _SEVERITY_RANK[worst]:
                worst = severity

    if worst is None:
        return ContentCheck(is_inappropriate=False)
    return ContentCheck(
        is_inappropriate=True,
        categories=tuple(matched),
        severity=worst,
        message=_SEVERITY_MESSAGES[worst],
    )


# =============================================================================
# Off-topic heuristic
# =============================================================================

_RELEVANCE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "about": (
        "about",
        "myself",
        "background",
        "story",
        "professional",
        "experience",
        "skills",
        "passion",
        "career",
    ),
    "skills": (
        "skill",
        "ability",
        "capability",
        "expertise",
        "proficient",
        "experienced",
        "work",
        "service",
        "job",
    ),
    "experience": (
        "year",
        "month",
        "experience",
        "work",
        "job",
        "career",
        "professional",
        "beginner",
        "intermediate",
        "advanced",
        "senior",
    ),
    "qualifications": (
        "degree",
        "diploma",
        "certificate",
        "certification",
        "qualification",
        "license",
        "licence",
        "education",
        "training",
        "course",
    ),
    "location": (
        "address",
        "location",
        "city",
        "town",
        "area",
        "postcode",
        "zip",
        "street",
        "road",
        "based",
        "live",
    ),
    "availability": (
        "available",
        "schedule",
        "time",
        "day",
        "week",
        "hour",
        "work",
        "free",
        "busy",
        "calendar",
    ),
    "equipment": (
        "tool",
        "equipment",
        "machine",
        "device",
        "computer",
        "laptop",
        "phone",
        "camera",
        "software",
        "hardware",
    ),
    "hourlyRate": (
        "rate",
        "wage",
        "salary",
        "pay",
        "price",
        "cost",
        "hour",
        "day",
        "week",
        "pound",
        "dollar",
        "money",
        "£",
    ),
    "videoIntro": (
        "video",
        "record",
        "introduction",
        "introduce",
        "myself",
        "camera",
        "film",
    ),
}

_OFF_TOPIC_PATTERN = _compile_terms(
    (
        "i don't know",
        "i dont know",
        "i don't understand",
        "what do you mean",
        "can you explain",
        "i'm confused",
        "i need help",
        "i don't have",
        "i can't",
        "i won't",
        "this is stupid",
        "this is boring",
        "i hate this",
        "i don't want to",
        "hello",
        "hi",
        "hey",
        "good morning",
        "good afternoon",
        "good evening",
        "thank you",
        "thanks",
        "please",
        "sorry",
        "excuse me",
    )
)

_RELEVANCE_THRESHOLDS: dict[str, float] = {
    "equipment": 0.3,
    "experience": 0.4,
}
_DEFAULT_RELEVANCE_THRESHOLD = 0.6

_BASE_SCORE = 0.5
_KEYWORD_BONUS = 0.3
_OFF_TOPIC_PENALTY = 0.4
_SHORT_PENALTY = 0.2
_LONG_PENALTY = 0.1
_NUMERIC_EXPERIENCE_SCORE = 0.8


@dataclass(frozen=True)
class RelevanceCheck:
    """Keyword relevance verdict for one answer."""

    is_off_topic: bool
    score: float
    threshold: float


def check_off_topic_response(field_name: str, text: str) -> RelevanceCheck:
    """Score how on-topic an answer is for the given field.

    The score starts neutral and moves with field keywords, chit-chat
    phrases and extreme lengths. A leading number always counts as a
    plausible experience answer.

    Args:
        field_name: Catalog field name (e.g. "about", "hourlyRate").
        text: Raw answer text.

    Returns:
        RelevanceCheck with the clamped score and the field's threshold.
    """
    threshold = _RELEVANCE_THRESHOLDS.get(field_name, _DEFAULT_RELEVANCE_THRESHOLD)
    stripped = (text or "").strip()
    lowered = stripped.lower()

    score = _BASE_SCORE
    keywords = _RELEVANCE_KEYWORDS.get(field_name, ())
    if any(keyword in lowered for keyword in keywords):
        score += _KEYWORD_BONUS
    if _OFF_TOPIC_PATTERN.search(lowered):
        score -= _OFF_TOPIC_PENALTY
    if len(stripped) < 5:
        score -= _SHORT_PENALTY
    if len(stripped) > 500:
        score -= _LONG_PENALTY
    if field_name == "experience" and re.match(r"^\d", stripped):
        score = _NUMERIC_EXPERIENCE_SCORE

    score = max(0.0, min(1.0, score))
    return RelevanceCheck(is_off_topic=score < threshold, score=score, threshold=threshold)


# =============================================================================
# Skip answers
# =============================================================================

_COMMON_SKIP_TERMS = (
    "none",
    "n/a",
    "na",
    "skip",
    "nothing",
    "not applicable",
    "not relevant",
    "don't have any",
    "dont have any",
    "don't have",
    "no formal",
    "no official",
)

_SKIP_PATTERNS: dict[str, re.Pattern[str]] = {
    "qualifications": _compile_terms(
        _COMMON_SKIP_TERMS
        + (
            "no qualifications",
            "no certs",
            "no certifications",
            "no training",
            "no education",
        )
    ),
    "equipment": _compile_terms(
        _COMMON_SKIP_TERMS
        + (
            "no equipment",
            "no tools",
            "no gear",
            "i have none",
            "i have nothing",
        )
    ),
}

_MAX_SKIP_ANSWER_LENGTH = 40


def is_skip_response(field_name: str, text: str) -> bool:
    """Return True when a short answer means "I don't have any".

    Only qualifications and equipment accept skip answers. Long answers that
    merely contain "none" somewhere are treated as real content.
    """
    pattern = _SKIP_PATTERNS.get(field_name)
    if pattern is None:
        return False
    stripped = (text or "").strip()
    if not stripped or len(stripped) > _MAX_SKIP_ANSWER_LENGTH:
        return False
    return bool(pattern.search(stripped))


# =============================================================================
# Help requests
# =============================================================================


class HelpAction(str, Enum):
    """What the conversation should do with a help request."""

    CONTINUE = "continue"
    REDIRECT = "redirect"
    CLARIFY = "clarify"


_EXPLICIT_HELP_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^\s*/?help\s*$",
        r"\bget me (?:help|support|assistance)\b",
        r"\bi need help with (?:this|the) (?:form|platform|site|app)\b",
        r"\bhow do i use this\b",
        r"\bi'?m (?:stuck|lost|confused) (?:with|on) (?:this|the)\b",
        r"\b(?:don'?t|can'?t) (?:understand|figure out)\b",
        r"\bthis isn'?t working\b",
        r"\bsomething'?s broken\b",
        r"\bcontact support\b",
        r"\bi (?:need|want) to (?:speak|talk) to (?:someone|support|a human)\b",
    )
)

_CONTEXTUAL_HELP_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(?:where|what|how)\b.*\bhelp\b",
        r"\bcan you help\b",
        r"\bis there someone\b",
        r"\?.*\bhelp\b",
        r"\bi'?m (?:frustrated|annoyed|upset) with\b",
        r"\bthis is (?:confusing|difficult|hard)\b",
    )
)

_EXPLICIT_CONFIDENCE = 0.95
_CONTEXTUAL_CONFIDENCE = 0.7


@dataclass(frozen=True)
class HelpDetection:
    """Outcome of the help-request scan."""

    is_help_request: bool
    confidence: float
    action: HelpAction


def detect_help_request(text: str) -> HelpDetection:
    """Detect whether an answer is really a request for help.

    Explicit requests ("contact support", "how do I use this") redirect to
    help; contextual ones ("this is confusing") ask for clarification.
    """
    stripped = (text or "").strip()
    if any(p.search(stripped) for p in _EXPLICIT_HELP_PATTERNS):
        return HelpDetection(True, _EXPLICIT_CONFIDENCE, HelpAction.REDIRECT)
    if any(p.search(stripped) for p in _CONTEXTUAL_HELP_PATTERNS):
        return HelpDetection(True, _CONTEXTUAL_CONFIDENCE, HelpAction.CLARIFY)
    return HelpDetection(False, 0.0, HelpAction.CONTINUE)


# =============================================================================
# Final text cleanup
# =============================================================================

_MAX_CLEAN_LENGTH = 1000
_WHITESPACE = re.compile(r"\s+")


def basic_clean(text: str, max_length: int = _MAX_CLEAN_LENGTH) -> str:
    """Collapse whitespace, drop angle brackets and truncate."""
    cleaned = _WHITESPACE.sub(" ", (text or "").strip())
    cleaned = cleaned.replace("<", "").replace(">", "")
    return cleaned[:max_length]
