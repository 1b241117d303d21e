"""Confirmation gates: job title, similar skill, sanitized answer, existing data.

resolve_choice() applies the worker's choice on a confirmation step. A step
that is already complete is left alone and produces no new steps, so a
double click never advances the conversation twice.
"""

import logging
from typing import Any

from gigfolio.agents.sequencer import (
    advance,
    commit_and_advance,
    existing_value_for,
)
from gigfolio.agents.session import OnboardingSession
from gigfolio.core.errors import InvalidStateError
from gigfolio.schemas.steps import (
    ConfirmationStep,
    FieldStep,
    InputConfig,
    InputStep,
    JobTitleConfirmationStep,
    SanitizedStep,
    SimilarSkill,
    SimilarSkillsConfirmationStep,
    StepBase,
)
from gigfolio.services.ai_assist import extract_skill_name
from gigfolio.services.backend_actions import BackendActions
from gigfolio.services.field_validators import equipment_items, title_case_skill

logger = logging.getLogger(__name__)

NEW_SKILL_PROMPT = "What would you like to call your new skill?"

_CHOICES: dict[type[FieldStep], tuple[str, ...]] = {
    JobTitleConfirmationStep: ("accept", "reject"),
    SimilarSkillsConfirmationStep: ("use_existing", "add_new"),
    SanitizedStep: ("accept", "reject"),
    ConfirmationStep: ("reuse", "edit"),
}

# =============================================================================
# Similar-skill gate
# =============================================================================


async def run_similar_skill_gate(
    session: OnboardingSession,
    skill_text: str,
    *,
    backend: BackendActions,
    token: str | None = None,
    extract: bool = True,
) -> list[StepBase]:
    """Offer an existing similar skill, or commit the skill and advance.

    Args:
        session: Session being advanced.
        skill_text: Cleaned skills answer or confirmed job title.
        backend: Backend actions client (similar-skill lookup).
        token: Worker's bearer token.
        extract: Reduce a sentence to its core skill name first.

    Returns:
        Steps appended.
    """
    mark = len(session.steps)
    skill_name = skill_text
    if extract:
        suggestion = await extract_skill_name(skill_text)
        skill_name = suggestion.skill_name if suggestion else title_case_skill(skill_text)

    lookup = await backend.check_existing_similar_skill(
        skill_name, session.worker_profile_id, token
    )
    similar: list[SimilarSkill] = []
    if lookup.success and isinstance(lookup.data, dict) and lookup.data.get("exists"):
        similar = [SimilarSkill.model_validate(s) for s in lookup.data.get("similarSkills") or []]
    elif not lookup.success:
        logger.warning("Similar skill lookup failed for session %s: %s", session.id, lookup.error)

    if not similar:
        return await commit_and_advance(
            session, "skills", skill_name, backend=backend, token=token
        )

    active = session.steps.active_step_for("skills")
    if active is not None:
        session.steps.complete(active.id)
    session.steps.append(
        SimilarSkillsConfirmationStep(original_value=skill_name, similar_skills=similar)
    )
    return session.steps.since(mark)


# =============================================================================
# Resolution
# =============================================================================


async def _resolve_job_title(
    session: OnboardingSession,
    step: JobTitleConfirmationStep,
    choice: str,
    backend: BackendActions,
    token: str | None,
) -> list[StepBase]:
    if choice == "accept":
        session.steps.complete(step.id, "title")
        session.set_field("jobTitle", step.suggested_job_title)
        skill = step.suggested_job_title
    else:
        session.steps.complete(step.id, "original")
        skill = step.original_value
    return await run_similar_skill_gate(
        session, skill, backend=backend, token=token, extract=False
    )


async def _resolve_similar_skill(
    session: OnboardingSession,
    step: SimilarSkillsConfirmationStep,
    choice: str,
    payload: dict[str, Any],
    backend: BackendActions,
    token: str | None,
) -> list[StepBase]:
    mark = len(session.steps)
    if choice == "add_new":
        session.steps.complete(step.id, "new")
        session.steps.bot(NEW_SKILL_PROMPT)
        descriptor = session.catalog.get("skills")
        session.steps.append(
            InputStep(
                field_name="skills",
                input_config=InputConfig(
                    name="skills",
                    placeholder=descriptor.placeholder if descriptor else None,
                    rows=descriptor.rows if descriptor else None,
                ),
            )
        )
        return session.steps.since(mark)

    skill_id = payload.get("skill_id")
    selected = next((s for s in step.similar_skills if s.id == skill_id), step.similar_skills[0])
    session.steps.complete(step.id, "existing")
    session.set_field("jobTitle", selected.name)
    session.set_field("skills", selected.name)
    if selected.experience_years is not None:
        session.set_field("experience", f"{selected.experience_years:g} years")
    if selected.agreed_rate is not None:
        session.set_field("hourlyRate", selected.agreed_rate)
    await advance(session, backend=backend, token=token)
    return session.steps.since(mark)


async def _resolve_sanitized(
    session: OnboardingSession,
    step: SanitizedStep,
    choice: str,
    backend: BackendActions,
    token: str | None,
) -> list[StepBase]:
    if choice == "accept":
        session.steps.complete(step.id, "sanitized")
        value = step.sanitized_value
    else:
        session.steps.complete(step.id, "original")
        value = step.original_value
    if step.field_name == "equipment":
        value = equipment_items(value)
    return await commit_and_advance(
        session, step.field_name, value, backend=backend, token=token
    )


async def _resolve_existing_data(
    session: OnboardingSession,
    step: ConfirmationStep,
    choice: str,
    backend: BackendActions,
    token: str | None,
) -> list[StepBase]:
    mark = len(session.steps)
    if choice == "reuse":
        session.steps.complete(step.id, "reuse")
        session.set_field(step.field_name, existing_value_for(step.field_name, session.existing_profile))
    else:
        session.steps.complete(step.id, "edit")
        session.declined_existing.add(step.field_name)
    await advance(session, backend=backend, token=token)
    return session.steps.since(mark)


async def resolve_choice(
    session: OnboardingSession,
    step_id: int,
    choice: str,
    payload: dict[str, Any] | None = None,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Apply the worker's choice on a confirmation step.

    Args:
        session: Session being advanced.
        step_id: Confirmation step id.
        choice: accept/reject (job title, sanitized), use_existing/add_new
            (similar skills) or reuse/edit (existing data).
        payload: Extra data; ``skill_id`` selects the similar skill to reuse.
        backend: Backend actions client.
        token: Worker's bearer token.

    Returns:
        Steps appended; empty when the step was already resolved.

    Raises:
        InvalidStateError: Unknown step, a step with no choices, or an
            invalid choice.
    """
    async with session.lock:
        step = session.steps.get(step_id)
        allowed = _CHOICES.get(type(step)) if step is not None else None
        if step is None or allowed is None:
            raise InvalidStateError(f"Step {step_id} is not a confirmation step")
        if choice not in allowed:
            raise InvalidStateError(
                f"Invalid choice '{choice}' for {step.type} step; expected one of {', '.join(allowed)}"
            )
        if step.is_complete or session.is_escalated:
            return []

        payload = payload or {}
        logger.info("Resolving %s step %d with %s", step.type, step_id, choice)
        if isinstance(step, JobTitleConfirmationStep):
            return await _resolve_job_title(session, step, choice, backend, token)
        if isinstance(step, SimilarSkillsConfirmationStep):
            return await _resolve_similar_skill(session, step, choice, payload, backend, token)
        if isinstance(step, SanitizedStep):
            return await _resolve_sanitized(session, step, choice, backend, token)
        return await _resolve_existing_data(session, step, choice, backend, token)
