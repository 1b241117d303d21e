"""Step Sequencer: picks the next unanswered field and emits its steps.

advance() is the only place prompts and input widgets are appended. It is
safe to call repeatedly: a field that already has an active step, an
escalated session and an already-emitted summary all produce no new steps.
"""

import asyncio
import json
import logging
from typing import Any

from gigfolio.agents.field_catalog import (
    Catalog,
    FieldDescriptor,
    FieldKind,
    Variant,
)
from gigfolio.agents.session import OnboardingSession, StepLog, has_value
from gigfolio.core.config import settings
from gigfolio.schemas.steps import (
    AvailabilityStep,
    CalendarStep,
    ConfirmationStep,
    FieldStep,
    InputConfig,
    InputStep,
    LocationStep,
    ShareLinkStep,
    StepBase,
    SummaryStep,
    TypingStep,
    VideoStep,
)
from gigfolio.services.ai_assist import (
    generate_context_aware_prompt,
    generate_profile_summary,
    generate_video_script,
)
from gigfolio.services.backend_actions import BackendActions, ExistingProfileData
from gigfolio.services.summary_formatting import format_summary_value

logger = logging.getLogger(__name__)

# =============================================================================
# Messages
# =============================================================================

NEW_USER_WELCOME = (
    "Hi! I'm here to help you create your worker profile. Tell me about yourself "
    "and what kind of work you can offer."
)
RETURNING_USER_WELCOME = "Welcome back! Let me help you update your worker profile."
HOSPITALITY_WELCOME = (
    "Welcome to Able AI! I'm your Gigfolio Coach, here to help you create an "
    "amazing hospitality profile for UK gigs. Let's get started!"
)
REFERENCE_LINK_TEXT = "Share this link to get your reference"
GIGFOLIO_SHARE_MESSAGE = (
    "Please check out your gigfolio and share with your network\n\n"
    "if your connections make a hire on Able you get £5!"
)
STRIPE_MESSAGE = "Follow this link to connect to Stripe so you can be paid at the end of your shift"
STRIPE_LINK_TEXT = "Connect to Stripe"

# About answers longer than this already cover qualifications
_ABOUT_COVERS_QUALIFICATIONS = 50

_EXISTING_DATA_LABELS = {"about": "bio", "location": "location", "availability": "availability"}

_INPUT_STEP_FOR_KIND: dict[FieldKind, type[FieldStep]] = {
    FieldKind.TEXT: InputStep,
    FieldKind.NUMBER: InputStep,
    FieldKind.DATE: CalendarStep,
    FieldKind.LOCATION: LocationStep,
    FieldKind.AVAILABILITY: AvailabilityStep,
    FieldKind.VIDEO: VideoStep,
}

# =============================================================================
# Field selection
# =============================================================================


def next_required_field(form_data: dict[str, Any], catalog: Catalog) -> FieldDescriptor | None:
    """First catalog field without an answer, or None when all are answered.

    Qualifications are skipped when the bio is long enough to cover them.
    """
    fields = catalog.fields
    for index, descriptor in enumerate(fields):
        if has_value(descriptor.name, form_data.get(descriptor.name)):
            continue
        if descriptor.name == "qualifications":
            about = form_data.get("about")
            if isinstance(about, str) and len(about) > _ABOUT_COVERS_QUALIFICATIONS:
                return _first_missing(form_data, fields[index + 1 :])
        return descriptor
    return None


def _first_missing(
    form_data: dict[str, Any], fields: tuple[FieldDescriptor, ...]
) -> FieldDescriptor | None:
    return next((f for f in fields if not has_value(f.name, form_data.get(f.name))), None)


def has_active_step_for_field(steps: StepLog, field_name: str) -> bool:
    return steps.active_step_for(field_name) is not None


# =============================================================================
# Existing profile data
# =============================================================================


def should_show_existing_data_confirmation(
    field_name: str,
    existing: ExistingProfileData | None,
    declined: set[str] | frozenset[str] = frozenset(),
) -> bool:
    """Offer reuse-or-edit only for bio, location and availability on file."""
    if existing is None or field_name in declined:
        return False
    if field_name == "about":
        return existing.has_full_bio and bool(existing.full_bio)
    if field_name == "location":
        return existing.has_location and bool(existing.location)
    if field_name == "availability":
        return existing.has_availability and bool(existing.availability)
    return False


def existing_value_for(field_name: str, existing: ExistingProfileData) -> Any:
    return {
        "about": existing.full_bio,
        "location": existing.location,
        "availability": existing.availability,
    }.get(field_name)


def _existing_display(field_name: str, value: Any) -> Any:
    if field_name == "availability" and not isinstance(value, str):
        return json.dumps(value, default=str)
    return value


# =============================================================================
# Step builders
# =============================================================================


def welcome_message(session: OnboardingSession) -> str:
    if session.variant is Variant.HOSPITALITY:
        return HOSPITALITY_WELCOME
    return RETURNING_USER_WELCOME if session.is_returning_user else NEW_USER_WELCOME


def recommendation_link(session: OnboardingSession) -> str:
    profile_id = session.worker_profile_id or session.user_id
    return f"{settings.app_origin.rstrip('/')}/worker/{profile_id}/recommendation"


def _input_config(descriptor: FieldDescriptor) -> InputConfig:
    return InputConfig(
        name=descriptor.name,
        placeholder=None if descriptor.kind is FieldKind.VIDEO else descriptor.placeholder,
        rows=descriptor.rows,
    )


async def _field_prompt(session: OnboardingSession, descriptor: FieldDescriptor) -> str:
    if descriptor.name in session.declined_existing:
        follow_up = session.catalog.follow_up(descriptor.name)
        if follow_up is not None:
            return follow_up.default_prompt
    about = session.form_data.get("about")
    personalize = settings.personalized_prompts and descriptor.name != "about"
    if personalize and isinstance(about, str) and about:
        return await generate_context_aware_prompt(
            descriptor.name, about, fallback=descriptor.default_prompt, variant=session.variant
        )
    return descriptor.default_prompt


async def _emit_field_prompt(session: OnboardingSession, descriptor: FieldDescriptor) -> None:
    steps = session.steps
    typing = steps.append(TypingStep())
    await asyncio.sleep(settings.typing_delay_seconds)
    steps.complete(typing.id)

    steps.bot(await _field_prompt(session, descriptor))

    step_type = _INPUT_STEP_FOR_KIND.get(descriptor.kind, InputStep)
    config = _input_config(descriptor)
    if step_type is VideoStep:
        script = await generate_video_script(session.form_data, variant=session.variant)
        steps.append(VideoStep(field_name=descriptor.name, input_config=config, script=script))
    elif step_type is InputStep:
        steps.append(
            InputStep(
                field_name=descriptor.name,
                input_config=config,
                chat_input=descriptor.name == "about",
            )
        )
    else:
        steps.append(step_type(field_name=descriptor.name, input_config=config))


def _emit_references(session: OnboardingSession, descriptor: FieldDescriptor) -> None:
    link = recommendation_link(session)
    session.steps.bot(descriptor.default_prompt)
    session.steps.append(ShareLinkStep(url=link, link_text=REFERENCE_LINK_TEXT))
    session.set_field("references", link)


def _emit_existing_confirmation(session: OnboardingSession, descriptor: FieldDescriptor) -> None:
    label = _EXISTING_DATA_LABELS.get(descriptor.name, descriptor.name)
    value = existing_value_for(descriptor.name, session.existing_profile)
    session.steps.append(
        ConfirmationStep(
            field_name=descriptor.name,
            content=(
                f"I can see you already have {label} information. Would you like to "
                f"use your existing {label} or create a new one?"
            ),
            existing_value=_existing_display(descriptor.name, value),
        )
    )


async def _emit_completion(
    session: OnboardingSession, backend: BackendActions, token: str | None
) -> None:
    steps = session.steps
    steps.bot(GIGFOLIO_SHARE_MESSAGE)
    steps.bot(STRIPE_MESSAGE)

    link = await backend.create_stripe_account_link(token)
    url = link.data.get("url") if link.success and isinstance(link.data, dict) else None
    if url:
        steps.append(ShareLinkStep(url=url, link_text=STRIPE_LINK_TEXT))
    else:
        logger.warning("Stripe account link unavailable for session %s: %s", session.id, link.error)

    ai_summary = await generate_profile_summary(session.form_data, variant=session.variant)
    steps.bot(ai_summary)

    summary_data = {
        descriptor.name: format_summary_value(descriptor.name, session.form_data.get(descriptor.name))
        for descriptor in session.catalog.fields
    }
    steps.append(SummaryStep(summary_data=summary_data, ai_summary=ai_summary))
    session.summary_emitted = True


# =============================================================================
# Sequencing
# =============================================================================


async def advance(
    session: OnboardingSession,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Emit the steps for the next unanswered field.

    Args:
        session: Session to advance (mutated in place).
        backend: Backend actions client (Stripe link at completion).
        token: Worker's bearer token.

    Returns:
        Steps appended by this call.
    """
    mark = len(session.steps)
    if session.is_escalated:
        return []

    while True:
        descriptor = next_required_field(session.form_data, session.catalog)
        if descriptor is None:
            if not session.summary_emitted and session.steps.last_of_type(SummaryStep) is None:
                await _emit_completion(session, backend, token)
            break

        if has_active_step_for_field(session.steps, descriptor.name):
            break

        if descriptor.kind is FieldKind.REFERENCES:
            _emit_references(session, descriptor)
            continue

        if should_show_existing_data_confirmation(
            descriptor.name, session.existing_profile, session.declined_existing
        ):
            _emit_existing_confirmation(session, descriptor)
            break

        await _emit_field_prompt(session, descriptor)
        break

    return session.steps.since(mark)


async def initial_steps(
    session: OnboardingSession,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Welcome message, then the first field."""
    mark = len(session.steps)
    session.steps.bot(welcome_message(session))
    await advance(session, backend=backend, token=token)
    return session.steps.since(mark)


async def commit_and_advance(
    session: OnboardingSession,
    field_name: str,
    value: Any,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Store an accepted answer, close its active step and move on."""
    mark = len(session.steps)
    active = session.steps.active_step_for(field_name)
    if active is not None:
        session.steps.complete(active.id)
    session.set_field(field_name, value)
    await advance(session, backend=backend, token=token)
    return session.steps.since(mark)
