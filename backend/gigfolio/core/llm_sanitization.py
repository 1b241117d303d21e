"""Prompt-injection filtering for worker answers embedded in AI prompts.

Every free-text answer a worker types ends up inside a prompt (validation,
sanitization, job-title interpretation, relatedness checks). Before that
happens it passes through ``sanitize_llm_input`` which normalizes Unicode
tricks and neutralizes role markers and instruction-override phrases.

The filter is one layer only: prompts also fence user text inside
``<worker_answer>`` tags and ask for schema-shaped JSON.
"""

import re
import unicodedata

# =============================================================================
# Unicode normalization
# =============================================================================

# Cyrillic and Greek letters that render identically to Latin ones.
# NFKC does not fold cross-script homoglyphs, so they are mapped explicitly.
_CONFUSABLES = str.maketrans(
    {
        "а": "a",
        "с": "c",
        "е": "e",
        "і": "i",
        "о": "o",
        "р": "p",
        "ѕ": "s",
        "х": "x",
        "у": "y",
        "А": "A",
        "В": "B",
        "С": "C",
        "Е": "E",
        "Н": "H",
        "І": "I",
        "К": "K",
        "М": "M",
        "О": "O",
        "Р": "P",
        "Ѕ": "S",
        "Т": "T",
        "Х": "X",
        "Α": "A",
        "Β": "B",
        "Ε": "E",
        "Η": "H",
        "Ι": "I",
        "Κ": "K",
        "Μ": "M",
        "Ν": "N",
        "Ο": "O",
        "Ρ": "P",
        "Τ": "T",
        "Χ": "X",
        "ο": "o",
    }
)

# Invisible characters that split keywords without changing how text renders.
_INVISIBLE_CHARS = re.compile(
    "["
    "\u00ad\u034f\u061c\u180e"  # soft hyphen, CGJ, Arabic mark, Mongolian separator
    "\u200b-\u200f"  # zero-width space/joiners, LRM, RLM
    "\u202a-\u202e"  # BiDi embedding controls
    "\u2060-\u2064"  # word joiner, invisible operators
    "\u2066-\u2069"  # BiDi isolates
    "\ufe00-\ufe0f"  # variation selectors
    "\ufeff"  # BOM
    "]"
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_MARK_CATEGORIES = frozenset(("Mn", "Me"))

# =============================================================================
# Injection patterns
# =============================================================================

_TAG = "[TAG]"
_FILTERED = "[FILTERED]"

_INJECTION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, flags), replacement)
    for pattern, replacement, flags in (
        # Role prefixes at line start
        (r"^\s*(?:system|human|assistant|user)\s*:", _FILTERED + ":", re.I | re.M),
        # XML-style role tags and our own prompt fences
        (r"<\s*/?\s*(?:system|user|assistant)\s*>", _TAG, re.I),
        (r"<\s*/?\s*[a-z]+(?:_[a-z]+)+(?:\s[^>]*)?\s*>", _TAG, re.I),
        # ChatML / Llama delimiters
        (r"<\|(?:system|user|assistant|im_start|im_end)\|>", _TAG, re.I),
        (r"\[/?INST\]", _FILTERED, re.I),
        (r"###\s*instruction\s*###", _FILTERED, re.I),
        # Instruction overrides
        (r"ignore\s+(?:all\s+)?(?:previous|prior|above)\s+instructions?", _FILTERED, re.I),
        (r"disregard\s+(?:all\s+)?(?:prior|previous|above)", _FILTERED, re.I),
        (r"forget\s+everything", _FILTERED, re.I),
        (r"new\s+instructions?\s*:", _FILTERED + ":", re.I),
        # Attempts to dictate the verdict fields of our JSON schemas
        (r"\b(?:is_appropriate|is_relevant|is_related)\s*[:=]\s*true\b", _FILTERED, re.I),
    )
)


def _normalize(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = _INVISIBLE_CHARS.sub("", text)
    # NFD splits precomposed letters so every combining mark can be dropped
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if unicodedata.category(ch) not in _MARK_CATEGORIES)
    text = text.translate(_CONFUSABLES)
    return _CONTROL_CHARS.sub("", text)


def sanitize_llm_input(text: str) -> str:
    """Neutralize prompt-injection patterns in worker-provided text.

    Accented characters are folded to their base letters (é → e) as a side
    effect of mark stripping; the cleaned text is only ever shown to the
    model, never stored.

    Args:
        text: Raw answer text.

    Returns:
        Text safe to embed inside a prompt fence.
    """
    if not text:
        return text

    result = _normalize(text)
    for pattern, replacement in _INJECTION_PATTERNS:
        result = pattern.sub(replacement, result)
    return unicodedata.normalize("NFC", result)


def fence_user_text(text: str, max_length: int = 2000) -> str:
    """Sanitize, truncate and wrap text in ``<worker_answer>`` tags."""
    cleaned = sanitize_llm_input(text or "")[:max_length]
    return f"<worker_answer>\n{cleaned}\n</worker_answer>"
