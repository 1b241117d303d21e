"""Onboarding API request/response schemas.

Requests carry the worker's answers and choices; every response returns the
steps appended by the call plus a view of the session so the client can
re-render without a second round trip.
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, field_validator

from gigfolio.agents.field_catalog import Variant
from gigfolio.schemas.steps import ChatStep

if TYPE_CHECKING:
    from gigfolio.agents.session import OnboardingSession

# =============================================================================
# Request Schemas
# =============================================================================


class StartSessionRequest(BaseModel):
    """Request body for POST /onboarding/sessions."""

    variant: Variant = Variant.GENERIC


class SubmitInputRequest(BaseModel):
    """Request body for POST /onboarding/sessions/{id}/inputs.

    Attributes:
        step_id: Input step being answered.
        value: Typed text, or a structured value from an inline widget
            (location, availability).
    """

    step_id: int = Field(..., ge=1)
    value: str | int | float | dict[str, Any] | list[Any] = Field(
        ..., description="Answer text or widget value"
    )

    @field_validator("value", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        """Strip whitespace from text answers."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("value")
    @classmethod
    def value_not_empty(cls, v: Any) -> Any:
        """Validate a text answer is not empty after stripping."""
        if isinstance(v, str) and not v:
            msg = "Answer cannot be empty"
            raise ValueError(msg)
        return v


class ChoiceRequest(BaseModel):
    """Request body for POST /onboarding/sessions/{id}/steps/{step_id}/choice."""

    choice: Literal["accept", "reject", "use_existing", "add_new", "reuse", "edit"]
    payload: dict[str, Any] | None = None


class VideoRequest(BaseModel):
    """Request body for POST /onboarding/sessions/{id}/video."""

    url: str = Field(..., min_length=1, max_length=2048)


# =============================================================================
# Response Schemas
# =============================================================================


class SessionView(BaseModel):
    """Client view of an onboarding session."""

    id: str
    variant: Variant
    form_data: dict[str, Any]
    steps: list[ChatStep]
    is_escalated: bool
    support_case_id: str | None = None

    @classmethod
    def from_session(cls, session: "OnboardingSession") -> "SessionView":
        return cls(
            id=session.id,
            variant=session.variant,
            form_data=dict(session.form_data),
            steps=session.steps.to_list(),
            is_escalated=session.is_escalated,
            support_case_id=session.support_case_id,
        )


class TurnResult(BaseModel):
    """Steps appended by one call, plus the updated session."""

    steps: list[ChatStep]
    session: SessionView


class SubmitResult(BaseModel):
    """Outcome of POST /onboarding/sessions/{id}/submit."""

    success: bool
    redirect_path: str | None = None
    error: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    steps: list[ChatStep]
