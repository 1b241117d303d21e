"""Profile Submission: map FormData onto the backend profile payload and save it.

Submission is the terminal action of the conversation. Hashtags are
generated first (with a deterministic fallback), then the payload is sent to
save_worker_profile_from_onboarding. A failed save is reported as a bot
step and the summary stays re-submittable.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gigfolio.core.errors import InvalidStateError
from gigfolio.schemas.steps import HashtagGenerationStep, SummaryStep
from gigfolio.services.ai_assist import JobTitleSuggestion, interpret_job_title
from gigfolio.services.backend_actions import BackendActions
from gigfolio.services.experience_parsing import parse_experience
from gigfolio.services.hashtags import generate_hashtags

if TYPE_CHECKING:
    from gigfolio.agents.session import OnboardingSession

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "🎉 Profile created successfully! Redirecting to your dashboard..."
SAVING_MESSAGE = "Saving your profile with generated hashtags..."
FAILURE_TEMPLATE = "❌ Profile submission failed: {error}"

# Interpreted titles below this confidence (percent) are not stored
_JOB_TITLE_MIN_CONFIDENCE = 50

_DEFAULT_AVAILABILITY: dict[str, Any] = {
    "days": ["monday", "tuesday", "wednesday", "thursday", "friday"],
    "startTime": "09:00",
    "endTime": "17:00",
    "frequency": "weekly",
    "ends": "never",
}

_EQUIPMENT_SPLIT = re.compile(r"[,;\n]")

REQUIRED_PAYLOAD_FIELDS = ("about", "skills", "hourly_rate")


class ProfilePayload(BaseModel):
    """Body of save_worker_profile_from_onboarding (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    about: str | None = None
    skills: str | None = None
    job_title: str | None = None
    experience: str | None = None
    experience_years: int = 0
    experience_months: int = 0
    qualifications: str | None = None
    equipment: list[dict[str, str]] = Field(default_factory=list)
    hourly_rate: str | None = None
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    availability: dict[str, Any] = Field(default_factory=lambda: dict(_DEFAULT_AVAILABILITY))
    video_intro: str | None = None
    references: str | None = None
    hashtags: list[str] = Field(default_factory=list)

    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_PAYLOAD_FIELDS if not getattr(self, name)]

    def to_backend(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Payload mapping
# =============================================================================


def _split_equipment(value: Any) -> list[dict[str, str]]:
    if isinstance(value, list):
        items = []
        for item in value:
            name = item.get("name") if isinstance(item, dict) else item
            if name and str(name).strip():
                items.append({"name": str(name).strip()})
        return items
    if isinstance(value, str):
        return [{"name": part.strip()} for part in _EQUIPMENT_SPLIT.split(value) if part.strip()]
    return []


def _location_fields(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        fields: dict[str, Any] = {}
        lat, lng = value.get("lat"), value.get("lng")
        if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
            fields["latitude"] = float(lat)
            fields["longitude"] = float(lng)
        address = value.get("formatted_address")
        fields["location"] = str(address) if address else json.dumps(value, default=str)
        return fields
    if isinstance(value, str) and value.strip():
        return {"location": value.strip()}
    return {}


def _rate_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, float):
        return f"{value:g}"
    return str(value).strip() or None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_profile_payload(
    form_data: dict[str, Any],
    job_title: JobTitleSuggestion | None = None,
    hashtags: list[str] | None = None,
) -> ProfilePayload:
    """Map FormData onto the profile payload.

    Args:
        form_data: Session answers.
        job_title: Interpreted title, used when FormData has none and the
            confidence is at least 50%.
        hashtags: Generated hashtags.

    Returns:
        ProfilePayload.
    """
    experience = _text(form_data.get("experience"))
    parsed = parse_experience(experience)

    title = _text(form_data.get("jobTitle"))
    if title is None and job_title is not None and job_title.confidence >= _JOB_TITLE_MIN_CONFIDENCE:
        title = job_title.job_title

    availability = form_data.get("availability")
    if not isinstance(availability, dict) or not availability:
        availability = dict(_DEFAULT_AVAILABILITY)
    video = form_data.get("videoIntro")

    return ProfilePayload(
        about=_text(form_data.get("about")),
        skills=_text(form_data.get("skills")),
        job_title=title,
        experience=experience,
        experience_years=parsed.years,
        experience_months=parsed.months,
        qualifications=_text(form_data.get("qualifications")),
        equipment=_split_equipment(form_data.get("equipment")),
        hourly_rate=_rate_text(form_data.get("hourlyRate")),
        availability=availability,
        video_intro=video if isinstance(video, str) else None,
        references=_text(form_data.get("references")),
        hashtags=hashtags or [],
        **_location_fields(form_data.get("location")),
    )


# =============================================================================
# Submission
# =============================================================================


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a profile submission.

    Attributes:
        success: The backend saved the profile.
        redirect_path: Dashboard path on success.
        error: Failure message shown to the worker.
        hashtags: Hashtags sent with the profile.
    """

    success: bool
    redirect_path: str | None = None
    error: str | None = None
    hashtags: list[str] = field(default_factory=list)


def _hashtag_source(form_data: dict[str, Any]) -> dict[str, Any]:
    keys = ("about", "experience", "skills", "equipment", "location")
    return {key: form_data.get(key) for key in keys}


async def submit_profile(
    session: "OnboardingSession",
    backend: BackendActions,
    token: str | None,
) -> SubmissionResult:
    """Generate hashtags, save the profile and report the outcome as steps.

    Raises:
        InvalidStateError: No summary step yet, or the profile was already
            submitted.
    """
    summary = session.steps.last_of_type(SummaryStep)
    if summary is None:
        raise InvalidStateError("Profile summary has not been reached yet")
    if summary.is_submitted:
        raise InvalidStateError("Profile has already been submitted")

    form_data = session.form_data
    hashtag_step = session.steps.append(HashtagGenerationStep())
    hashtags = await generate_hashtags(_hashtag_source(form_data))
    hashtag_step.hashtags = hashtags
    session.steps.complete(hashtag_step.id)

    session.steps.bot(SAVING_MESSAGE)

    suggestion = None
    if not form_data.get("jobTitle") and form_data.get("skills"):
        suggestion = await interpret_job_title(str(form_data["skills"]))

    payload = build_profile_payload(form_data, job_title=suggestion, hashtags=hashtags)
    missing = payload.missing_required()
    if missing:
        error = f"Missing required fields: {', '.join(missing)}"
        session.steps.bot(FAILURE_TEMPLATE.format(error=error))
        return SubmissionResult(success=False, error=error, hashtags=hashtags)

    result = await backend.save_worker_profile_from_onboarding(payload.to_backend(), token)
    if not result.success:
        error = result.error or "Failed to save profile. Please try again."
        logger.warning("Profile submission failed for session %s: %s", session.id, error)
        session.steps.bot(FAILURE_TEMPLATE.format(error=error))
        return SubmissionResult(success=False, error=error, hashtags=hashtags)

    if isinstance(result.data, dict) and result.data.get("workerProfileId"):
        session.worker_profile_id = str(result.data["workerProfileId"])
    session.steps.bot(SUCCESS_MESSAGE)
    session.steps.mark_submitted(summary.id)
    logger.info("Profile submitted for session %s", session.id)
    return SubmissionResult(
        success=True,
        redirect_path=f"/user/{session.user_id}/worker",
        hashtags=hashtags,
    )
