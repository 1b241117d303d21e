"""Conversation step models.

A ChatStep is one rendered unit of the onboarding transcript. Each tag has
its own model carrying only the fields that tag needs, and ChatStep is the
discriminated union over ``type``.

Step Types:
- bot / user: plain chat messages
- typing: typing indicator shown before a prompt
- input / calendar / location / availability / video: field input widgets
- sanitized: confirm an AI-cleaned answer
- confirmation: reuse or edit data already on file
- jobTitleConfirmation: accept a suggested job title
- similarSkillsConfirmation: reuse a similar skill already on the profile
- summary: end-of-flow profile summary with submit action
- support: human support hand-over
- shareLink: a link the worker can share or open
- hashtag-generation: profile hashtag generation progress
- help: help menu
"""

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, Field

# =============================================================================
# Shared parts
# =============================================================================


class InputConfig(BaseModel):
    """Widget configuration for an input step.

    Attributes:
        name: Field name the widget answers.
        placeholder: Placeholder text (not used by video).
        rows: Text area rows for multi-line answers.
    """

    name: str
    placeholder: str | None = None
    rows: int | None = None


class SimilarSkill(BaseModel):
    """A skill already on the worker's profile.

    Accepts the backend's camelCase keys on input.
    """

    id: str
    name: str
    experience_years: float | None = Field(
        default=None,
        validation_alias=AliasChoices("experience_years", "experienceYears"),
    )
    agreed_rate: float | None = Field(
        default=None,
        validation_alias=AliasChoices("agreed_rate", "agreedRate"),
    )


class StepBase(BaseModel):
    """Base class for all steps.

    Attributes:
        id: Monotonic per-session id, assigned by the step log.
        type: Variant tag.
    """

    id: int = 0
    type: str


class FieldStep(StepBase):
    """A step bound to one catalog field that stays active until complete."""

    field_name: str
    is_complete: bool = False


# =============================================================================
# Messages
# =============================================================================


class BotStep(StepBase):
    type: Literal["bot"] = "bot"
    content: str


class UserStep(StepBase):
    type: Literal["user"] = "user"
    content: str
    field_name: str | None = None


class TypingStep(StepBase):
    type: Literal["typing"] = "typing"
    is_complete: bool = False


class HelpStep(StepBase):
    type: Literal["help"] = "help"
    options: list[str] = Field(
        default_factory=lambda: [
            "Continue with AI onboarding",
            "Switch to the manual form",
            "Contact support",
        ]
    )


class SupportStep(StepBase):
    type: Literal["support"] = "support"
    case_id: str | None = None
    reason: str | None = None


class ShareLinkStep(StepBase):
    type: Literal["shareLink"] = "shareLink"
    url: str
    link_text: str


# =============================================================================
# Field inputs
# =============================================================================


class InputStep(FieldStep):
    """Plain text input.

    Attributes:
        chat_input: Answered through the chat box rather than an inline
            widget.
    """

    type: Literal["input"] = "input"
    input_config: InputConfig
    chat_input: bool = False


class CalendarStep(FieldStep):
    type: Literal["calendar"] = "calendar"
    input_config: InputConfig


class LocationStep(FieldStep):
    type: Literal["location"] = "location"
    input_config: InputConfig


class AvailabilityStep(FieldStep):
    type: Literal["availability"] = "availability"
    input_config: InputConfig


class VideoStep(FieldStep):
    """Video recorder; script is an AI-drafted introduction, if any."""

    type: Literal["video"] = "video"
    input_config: InputConfig
    script: str | None = None


# =============================================================================
# Confirmations
# =============================================================================


class SanitizedStep(FieldStep):
    """Confirm the cleaned version of an answer.

    Attributes:
        original_value: What the worker typed.
        sanitized_value: Cleaned value offered for confirmation.
        summary: Friendly confirmation sentence.
        confirmed_choice: "sanitized" or "original" once resolved.
    """

    type: Literal["sanitized"] = "sanitized"
    original_value: Any
    sanitized_value: Any
    summary: str | None = None
    confirmed_choice: Literal["sanitized", "original"] | None = None


class ConfirmationStep(FieldStep):
    """Reuse-or-edit card for data already on the worker's profile."""

    type: Literal["confirmation"] = "confirmation"
    confirmation_type: Literal["existing_data"] = "existing_data"
    content: str
    existing_value: Any
    confirmed_choice: Literal["reuse", "edit"] | None = None


class JobTitleConfirmationStep(FieldStep):
    """Offer a standardized job title for the skills answer.

    Attributes:
        original_value: Cleaned skills answer.
        suggested_job_title: Title suggested by the model.
        confidence: Percent, 0-100.
        matched_terms: Terms behind the suggestion.
        is_ai_suggested: Always True for model suggestions.
        confirmed_choice: "title" or "original" once resolved.
    """

    type: Literal["jobTitleConfirmation"] = "jobTitleConfirmation"
    field_name: str = "skills"
    original_value: str
    suggested_job_title: str
    confidence: float
    matched_terms: list[str] = Field(default_factory=list)
    is_ai_suggested: bool = True
    confirmed_choice: Literal["title", "original"] | None = None


class SimilarSkillsConfirmationStep(FieldStep):
    type: Literal["similarSkillsConfirmation"] = "similarSkillsConfirmation"
    field_name: str = "skills"
    original_value: str
    similar_skills: list[SimilarSkill]
    confirmed_choice: Literal["existing", "new"] | None = None


# =============================================================================
# Completion
# =============================================================================


class SummaryStep(StepBase):
    """End-of-flow summary.

    Attributes:
        summary_data: Field name to display string.
        ai_summary: Summary sentence (AI or fallback).
        is_submitted: Set once the profile was saved.
    """

    type: Literal["summary"] = "summary"
    summary_data: dict[str, str]
    ai_summary: str | None = None
    is_submitted: bool = False


class HashtagGenerationStep(StepBase):
    type: Literal["hashtag-generation"] = "hashtag-generation"
    hashtags: list[str] = Field(default_factory=list)
    is_complete: bool = False


# =============================================================================
# Union
# =============================================================================

ChatStep = Annotated[
    BotStep
    | UserStep
    | InputStep
    | SanitizedStep
    | ConfirmationStep
    | CalendarStep
    | LocationStep
    | AvailabilityStep
    | VideoStep
    | JobTitleConfirmationStep
    | SimilarSkillsConfirmationStep
    | SummaryStep
    | SupportStep
    | TypingStep
    | ShareLinkStep
    | HashtagGenerationStep
    | HelpStep,
    Field(discriminator="type"),
]

# Widget steps the worker answers with a value
INPUT_STEP_TYPES: tuple[type[FieldStep], ...] = (
    InputStep,
    CalendarStep,
    LocationStep,
    AvailabilityStep,
    VideoStep,
)
