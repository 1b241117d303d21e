"""Field catalogs: the ordered interview script for each onboarding variant.

Both variants use the same engine field names, so validation, sequencing and
submission are shared. Only prompts and placeholders differ.
"""

from dataclasses import dataclass
from enum import Enum


class FieldKind(str, Enum):
    """Input widget a field is collected with."""

    TEXT = "text"
    NUMBER = "number"
    LOCATION = "location"
    AVAILABILITY = "availability"
    VIDEO = "video"
    DATE = "date"
    REFERENCES = "references"


class Variant(str, Enum):
    GENERIC = "generic"
    HOSPITALITY = "hospitality"


@dataclass(frozen=True)
class FieldDescriptor:
    """One interview question.

    Attributes:
        name: FormData key.
        kind: Input widget kind.
        default_prompt: Bot prompt shown before the input.
        placeholder: Input placeholder.
        rows: Text area rows.
    """

    name: str
    kind: FieldKind
    default_prompt: str
    placeholder: str | None = None
    rows: int | None = None


@dataclass(frozen=True)
class Catalog:
    """Ordered fields plus the follow-up prompts for special fields."""

    variant: Variant
    fields: tuple[FieldDescriptor, ...]
    special_fields: tuple[FieldDescriptor, ...]

    def get(self, name: str) -> FieldDescriptor | None:
        return next((f for f in self.fields if f.name == name), None)

    def follow_up(self, name: str) -> FieldDescriptor | None:
        return next((f for f in self.special_fields if f.name == name), None)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)


REFERENCES_PROMPT = (
    "You need one reference per skill, from previous managers, colleagues or "
    "teachers.\n\nIf you do not have experience you can get a character "
    "reference from a friend or someone in your network."
)

_LOCATION_PROMPT = "Where are you based? This helps us find gigs near you!"
_AVAILABILITY_PROMPT = "When are you available to work? Let's set up your weekly schedule!"
_VIDEO_PROMPT = "Record a short video introduction to help clients get to know you!"

_REFERENCES = FieldDescriptor("references", FieldKind.REFERENCES, REFERENCES_PROMPT)

# =============================================================================
# Generic
# =============================================================================

GENERIC_CATALOG = Catalog(
    variant=Variant.GENERIC,
    fields=(
        FieldDescriptor(
            "about",
            FieldKind.TEXT,
            "Tell me about yourself! Share your story, what drives you, and what "
            "makes you unique as a professional.",
            placeholder="Tell us about yourself and your background...",
            rows=3,
        ),
        FieldDescriptor(
            "skills",
            FieldKind.TEXT,
            "What professional skills do you have? List your key skills and areas "
            "of expertise.",
            placeholder="List your professional skills...",
            rows=3,
        ),
        FieldDescriptor(
            "experience",
            FieldKind.TEXT,
            "How many years of experience do you have? You can enter a number "
            "(like '5' or '3 years') or a level (like 'beginner', 'intermediate', "
            "or 'senior').",
            placeholder="How many years of experience do you have? (e.g., '5', "
            "'5 years', '2.5 years', '5 years and 3 months')",
            rows=1,
        ),
        FieldDescriptor(
            "qualifications",
            FieldKind.TEXT,
            "What qualifications and certifications do you have? List your degrees, "
            "licenses, certifications, or any professional qualifications.",
            placeholder="List your qualifications, certifications, degrees, licenses, etc...",
            rows=3,
        ),
        FieldDescriptor("location", FieldKind.LOCATION, _LOCATION_PROMPT),
        FieldDescriptor("availability", FieldKind.AVAILABILITY, _AVAILABILITY_PROMPT),
        FieldDescriptor(
            "equipment",
            FieldKind.TEXT,
            "What equipment do you have that you can use for your work? List any "
            "tools, machinery, or equipment you own.",
            placeholder="List any equipment you have that you can use for your work...",
            rows=3,
        ),
        FieldDescriptor(
            "hourlyRate",
            FieldKind.NUMBER,
            "What's your preferred hourly rate? Enter your rate in pounds (£).",
            placeholder="15",
        ),
        FieldDescriptor("videoIntro", FieldKind.VIDEO, _VIDEO_PROMPT),
        _REFERENCES,
    ),
    special_fields=(
        FieldDescriptor(
            "about",
            FieldKind.TEXT,
            "Tell me about yourself! Share your story, what drives you, and what "
            "makes you unique as a professional.",
            placeholder="Tell us about yourself and your background...",
            rows=3,
        ),
        FieldDescriptor("location", FieldKind.LOCATION, _LOCATION_PROMPT),
        FieldDescriptor("availability", FieldKind.AVAILABILITY, _AVAILABILITY_PROMPT),
        FieldDescriptor(
            "skills",
            FieldKind.TEXT,
            "What professional skills do you have? List your key skills and areas "
            "of expertise.",
            placeholder="List your professional skills...",
            rows=3,
        ),
    ),
)

# =============================================================================
# Hospitality
# =============================================================================

HOSPITALITY_CATALOG = Catalog(
    variant=Variant.HOSPITALITY,
    fields=(
        FieldDescriptor(
            "about",
            FieldKind.TEXT,
            "Let's build a strong UK hospitality bio. Briefly tell me about your "
            "background, the kind of venues you've worked in (pubs, restaurants, "
            "hotels, festivals), and what you enjoy most about the work.",
            placeholder="Tell us about your hospitality background...",
            rows=3,
        ),
        FieldDescriptor(
            "skills",
            FieldKind.TEXT,
            "What's your main hospitality skill? You can also include how long "
            "you've been doing it (e.g., 'I'm a bartender with 6 years experience').",
            placeholder="e.g. bartender, chef, barista",
            rows=2,
        ),
        FieldDescriptor(
            "experience",
            FieldKind.TEXT,
            "Roughly how many years experience do you have (or your level: "
            "beginner/intermediate/senior)?",
            placeholder="years or level",
            rows=1,
        ),
        FieldDescriptor(
            "qualifications",
            FieldKind.TEXT,
            "Do you have any of these? Food Hygiene Certificate, Personal License, "
            "hospitality-related degree, first aid, allergen awareness, etc. "
            "(You can say 'none').",
            placeholder="Food Hygiene, Personal License, hospitality degree...",
            rows=3,
        ),
        FieldDescriptor(
            "location",
            FieldKind.LOCATION,
            "Where are you based for work? This helps us find gigs near you.",
        ),
        FieldDescriptor(
            "availability",
            FieldKind.AVAILABILITY,
            "When are you available to work? Let's set up your weekly schedule.",
        ),
        FieldDescriptor(
            "equipment",
            FieldKind.TEXT,
            "What equipment/tools are you confident using (POS systems, bar tools, "
            "coffee machines, kitchen equipment, etc.)?",
            placeholder="POS, bar tools, coffee machines, etc.",
            rows=2,
        ),
        FieldDescriptor(
            "hourlyRate",
            FieldKind.NUMBER,
            "What's your preferred hourly rate in pounds (£)?",
            placeholder="15",
        ),
        FieldDescriptor(
            "videoIntro",
            FieldKind.VIDEO,
            "Record a short video introduction to help clients get to know you.",
        ),
        _REFERENCES,
    ),
    special_fields=(
        FieldDescriptor(
            "about",
            FieldKind.TEXT,
            "Quick check on your hospitality bio. Anything you'd like to add about "
            "venues or customer service?",
            placeholder="Tell us about your hospitality background...",
            rows=3,
        ),
        FieldDescriptor("location", FieldKind.LOCATION, "Where are you based for work?"),
        FieldDescriptor("availability", FieldKind.AVAILABILITY, "When are you available to work?"),
        FieldDescriptor(
            "skills",
            FieldKind.TEXT,
            "Any additional hospitality skills you'd like to add?",
            placeholder="e.g. bartender, chef, barista",
            rows=2,
        ),
    ),
)

_CATALOGS: dict[Variant, Catalog] = {
    Variant.GENERIC: GENERIC_CATALOG,
    Variant.HOSPITALITY: HOSPITALITY_CATALOG,
}


def get_catalog(variant: Variant | str = Variant.GENERIC) -> Catalog:
    """Look up a catalog by variant.

    Raises:
        ValueError: Unknown variant.
    """
    return _CATALOGS[Variant(variant)]
