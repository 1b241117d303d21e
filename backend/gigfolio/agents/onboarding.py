"""Onboarding conversation: session start and the input-handling graph.

One LangGraph invocation handles one typed answer:

    record_input → [route_after_record]
        ├─ "command" → END              (help / support)
        └─ "answer" → screen_input → [route_after_screen]
            ├─ "halt" → END             (warning, help or support case)
            └─ "continue" → validate_answer → [route_after_validation]
                ├─ "halt" → END                         (error message)
                ├─ "job_title" → job_title_gate → [route_after_job_title]
                │       ├─ "halt" → END                 (confirmation card)
                │       └─ "similar_skill" → similar_skill_gate → END
                ├─ "confirm" → confirm_sanitized → END
                └─ "advance" → advance_sequence → END

Nodes mutate the session in place and return the turn state. The public
functions below (start_session, handle_user_input, attach_video, submit,
reset_session) are what the API calls.
"""

import logging
from typing import Any

from langgraph.graph import END, StateGraph

from gigfolio.agents.confirmations import run_similar_skill_gate
from gigfolio.agents.field_catalog import Variant
from gigfolio.agents.onboarding_prompts import clarification_prompt
from gigfolio.agents.sequencer import commit_and_advance, initial_steps
from gigfolio.agents.session import OnboardingSession, SessionStore
from gigfolio.agents.state import OnboardingTurnState
from gigfolio.core.config import settings
from gigfolio.core.content_filters import HelpAction, detect_help_request
from gigfolio.core.errors import InvalidStateError
from gigfolio.schemas.steps import (
    INPUT_STEP_TYPES,
    HelpStep,
    JobTitleConfirmationStep,
    SanitizedStep,
    StepBase,
    SupportStep,
    UserStep,
    VideoStep,
)
from gigfolio.services.ai_assist import analyze_user_intent, interpret_job_title
from gigfolio.services.backend_actions import BackendActions, ExistingProfileData
from gigfolio.services.escalation import WARNING_MESSAGE, should_escalate
from gigfolio.services.field_sanitizer import ValidationContext, display_text, validate_field
from gigfolio.services.field_validators import ValidationFailure, validate_locally
from gigfolio.services.profile_submission import SubmissionResult, submit_profile
from gigfolio.services.summary_formatting import VIDEO_UPLOADED, format_summary_value
from gigfolio.services.support_cases import create_support_case

logger = logging.getLogger(__name__)

HELP_COMMANDS = frozenset({"help", "/help"})
SUPPORT_COMMANDS = frozenset({"support", "/support"})

SUPPORT_REQUEST_REASON = "User requested support during AI onboarding"
VIDEO_SAVE_FAILED = "Failed to save your video. Please try uploading it again."
CLARIFY_MESSAGE = "No problem, let me ask that again."

# Answers to these fields are offered back for confirmation when cleanup
# changed them
_CONFIRMABLE_FIELDS = frozenset(
    {"about", "skills", "experience", "qualifications", "equipment"}
)


def escalation_message(case_id: str) -> str:
    return (
        "I understand you're having trouble with the AI onboarding process. "
        f"I've created a support case ({case_id}) and our team will be in touch shortly."
    )


def clarification_message(prompt: str | None) -> str:
    if not prompt:
        return CLARIFY_MESSAGE
    return f"{CLARIFY_MESSAGE} {prompt}"


def support_request_message(case_id: str) -> str:
    return f"I've created a support case ({case_id}). Our team will be in touch shortly."


# =============================================================================
# Node Functions
# =============================================================================


async def record_input_node(state: OnboardingTurnState) -> OnboardingTurnState:
    """Echo the answer and handle chat commands.

    Raises:
        InvalidStateError: Unknown step, a completed step, or a step that
            does not take typed input.
    """
    session = state["session"]
    step_id = state["step_id"]
    step = session.steps.get(step_id)
    if not isinstance(step, INPUT_STEP_TYPES):
        raise InvalidStateError(f"Step {step_id} does not accept input")
    if step.is_complete:
        raise InvalidStateError(f"Step {step_id} has already been answered")

    value = state["value"]
    content = value if isinstance(value, str) else format_summary_value(step.field_name, value)
    session.steps.append(UserStep(content=content, field_name=step.field_name))

    command = value.strip().lower() if isinstance(value, str) else None
    if command in HELP_COMMANDS:
        session.steps.append(HelpStep())
        return {**state, "field_name": step.field_name, "halted": True}
    if command in SUPPORT_COMMANDS:
        case_id = await create_support_case(
            session, SUPPORT_REQUEST_REASON, state["backend"], state.get("token"), step.field_name
        )
        session.steps.bot(support_request_message(case_id))
        session.steps.append(SupportStep(case_id=case_id, reason=SUPPORT_REQUEST_REASON))
        return {**state, "field_name": step.field_name, "halted": True}

    return {
        **state,
        "field_name": step.field_name,
        "prompt": session.steps.prompt_before(step_id),
        "halted": False,
    }


async def screen_input_node(state: OnboardingTurnState) -> OnboardingTurnState:
    """Escalation check: warn, open a support case, or let the answer through."""
    session = state["session"]
    field_name = state["field_name"]
    decision = await should_escalate(
        state["value"],
        session.steps.to_list(),
        session.retry_counts.get(field_name, 0),
        tracker=session.escalation,
        prompt=state.get("prompt"),
        field_name=field_name,
    )

    if decision.escalate:
        case_id = await create_support_case(
            session, decision.reason, state["backend"], state.get("token"), field_name
        )
        session.support_case_id = case_id
        session.steps.bot(escalation_message(case_id))
        session.steps.append(SupportStep(case_id=case_id, reason=decision.reason))
        logger.info("Session %s escalated: %s", session.id, decision.reason)
        return {**state, "halted": True}

    if decision.warn:
        session.steps.bot(WARNING_MESSAGE)
        return {**state, "halted": True}

    value = state["value"]
    if isinstance(value, str):
        return await _screen_help_request(state, value)
    return state


async def _screen_help_request(state: OnboardingTurnState, value: str) -> OnboardingTurnState:
    """Show help for explicit requests; ask the model about borderline ones."""
    session = state["session"]
    detection = detect_help_request(value)
    if detection.action is HelpAction.CONTINUE:
        return state

    action = "help"
    if detection.action is HelpAction.CLARIFY:
        intent = await analyze_user_intent(
            value,
            state.get("prompt") or "",
            session.steps.recent_user_messages(),
            variant=session.variant,
        )
        action = intent.action

    if action in ("help", "redirect"):
        session.steps.append(HelpStep())
        return {**state, "halted": True}
    if action == "clarify":
        reask = clarification_prompt(state["field_name"], session.variant)
        session.steps.bot(clarification_message(reask or state.get("prompt")))
        return {**state, "halted": True}
    return state


async def validate_answer_node(state: OnboardingTurnState) -> OnboardingTurnState:
    """Run the field validator; a rejection is shown as a bot message."""
    session = state["session"]
    field_name = state["field_name"]
    outcome = await validate_field(
        field_name,
        state["value"],
        ValidationContext(question=state.get("prompt"), variant=session.variant.value),
    )
    if isinstance(outcome, ValidationFailure):
        retries = session.record_retry(field_name)
        logger.info("Rejected %s answer (attempt %d)", field_name, retries)
        session.steps.bot(outcome.error)
        return {**state, "outcome": None, "halted": True}
    return {**state, "outcome": outcome}


async def job_title_gate_node(state: OnboardingTurnState) -> OnboardingTurnState:
    """Offer a standardized job title when the model is confident enough."""
    session = state["session"]
    skills = display_text("skills", state["outcome"].cleaned_value)
    suggestion = await interpret_job_title(skills)
    if suggestion is None or suggestion.confidence < settings.job_title_confidence_threshold:
        return state

    active = session.steps.get(state["step_id"])
    if active is not None:
        session.steps.complete(active.id)
    session.steps.append(
        JobTitleConfirmationStep(
            original_value=skills,
            suggested_job_title=suggestion.job_title,
            confidence=suggestion.confidence,
            matched_terms=suggestion.matched_terms,
            is_ai_suggested=suggestion.is_ai_suggested,
        )
    )
    return {**state, "halted": True}


async def similar_skill_gate_node(state: OnboardingTurnState) -> OnboardingTurnState:
    skills = display_text("skills", state["outcome"].cleaned_value)
    await run_similar_skill_gate(
        state["session"], skills, backend=state["backend"], token=state.get("token")
    )
    return state


async def confirm_sanitized_node(state: OnboardingTurnState) -> OnboardingTurnState:
    """Ask the worker to confirm the cleaned-up version of their answer."""
    session = state["session"]
    outcome = state["outcome"]
    session.steps.complete(state["step_id"])
    session.steps.append(
        SanitizedStep(
            field_name=state["field_name"],
            original_value=str(state["value"]).strip(),
            sanitized_value=display_text(state["field_name"], outcome.cleaned_value),
            summary=outcome.summary,
        )
    )
    return state


async def advance_sequence_node(state: OnboardingTurnState) -> OnboardingTurnState:
    await commit_and_advance(
        state["session"],
        state["field_name"],
        state["outcome"].cleaned_value,
        backend=state["backend"],
        token=state.get("token"),
    )
    return state


# =============================================================================
# Routing Functions
# =============================================================================


def route_after_record(state: OnboardingTurnState) -> str:
    return "command" if state.get("halted") else "answer"


def route_after_screen(state: OnboardingTurnState) -> str:
    return "halt" if state.get("halted") else "continue"


def route_after_validation(state: OnboardingTurnState) -> str:
    """Pick the gate for a validated answer.

    Returns:
        "halt", "job_title", "confirm" or "advance".
    """
    outcome = state.get("outcome")
    if state.get("halted") or outcome is None:
        return "halt"

    field_name = state["field_name"]
    if outcome.skipped:
        return "advance"
    if field_name == "skills" and not state["session"].form_data.get("jobTitle"):
        return "job_title"
    if field_name in _CONFIRMABLE_FIELDS and isinstance(state["value"], str):
        if display_text(field_name, outcome.cleaned_value) != state["value"].strip():
            return "confirm"
    return "advance"


def route_after_job_title(state: OnboardingTurnState) -> str:
    return "halt" if state.get("halted") else "similar_skill"


# =============================================================================
# Graph Construction
# =============================================================================


def create_onboarding_graph() -> StateGraph:
    """Create the input-handling graph.

    Returns:
        Configured StateGraph (not compiled).
    """
    graph = StateGraph(OnboardingTurnState)

    graph.add_node("record_input", record_input_node)
    graph.add_node("screen_input", screen_input_node)
    graph.add_node("validate_answer", validate_answer_node)
    graph.add_node("job_title_gate", job_title_gate_node)
    graph.add_node("similar_skill_gate", similar_skill_gate_node)
    graph.add_node("confirm_sanitized", confirm_sanitized_node)
    graph.add_node("advance_sequence", advance_sequence_node)

    graph.set_entry_point("record_input")

    graph.add_conditional_edges(
        "record_input",
        route_after_record,
        {"command": END, "answer": "screen_input"},
    )
    graph.add_conditional_edges(
        "screen_input",
        route_after_screen,
        {"halt": END, "continue": "validate_answer"},
    )
    graph.add_conditional_edges(
        "validate_answer",
        route_after_validation,
        {
            "halt": END,
            "job_title": "job_title_gate",
            "confirm": "confirm_sanitized",
            "advance": "advance_sequence",
        },
    )
    graph.add_conditional_edges(
        "job_title_gate",
        route_after_job_title,
        {"halt": END, "similar_skill": "similar_skill_gate"},
    )

    graph.add_edge("similar_skill_gate", END)
    graph.add_edge("confirm_sanitized", END)
    graph.add_edge("advance_sequence", END)

    return graph


_onboarding_graph = None


def get_onboarding_graph():
    """Get the compiled onboarding graph (singleton).

    Returns:
        Compiled StateGraph ready for ainvoke().
    """
    global _onboarding_graph
    if _onboarding_graph is None:
        _onboarding_graph = create_onboarding_graph().compile()
    return _onboarding_graph


def reset_onboarding_graph() -> None:
    """Drop the compiled graph (tests)."""
    global _onboarding_graph
    _onboarding_graph = None


# =============================================================================
# Public operations
# =============================================================================


async def start_session(
    store: SessionStore,
    user_id: str,
    variant: Variant | str = Variant.GENERIC,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> tuple[OnboardingSession, list[StepBase]]:
    """Create a session, load existing profile data and emit the first steps.

    Backend failures here are not fatal: the worker simply goes through the
    flow as a new user.

    Returns:
        Tuple of (session, initial steps).
    """
    session = store.create(user_id, variant)

    existing = await backend.check_existing_profile_data(token)
    if existing.success and isinstance(existing.data, dict):
        session.existing_profile = ExistingProfileData.from_payload(existing.data)
        profile = session.existing_profile
        session.is_returning_user = (
            profile.has_full_bio or profile.has_location or profile.has_availability or profile.has_skills
        )
    else:
        logger.warning("Existing profile lookup failed for %s: %s", user_id, existing.error)

    created = await backend.create_worker_profile(token)
    if created.success and isinstance(created.data, dict) and created.data.get("workerProfileId"):
        session.worker_profile_id = str(created.data["workerProfileId"])
    elif not created.success:
        logger.warning("Worker profile creation failed for %s: %s", user_id, created.error)

    steps = await initial_steps(session, backend=backend, token=token)
    logger.info("Started %s onboarding session %s", session.variant.value, session.id)
    return session, steps


async def handle_user_input(
    session: OnboardingSession,
    step_id: int,
    value: Any,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Process one answer to an input step.

    Args:
        session: Session being advanced.
        step_id: Input step being answered.
        value: Typed text or a structured widget value.
        backend: Backend actions client.
        token: Worker's bearer token.

    Returns:
        Steps appended by this turn; empty once the session is escalated.

    Raises:
        InvalidStateError: Unknown, completed or non-input step.
    """
    async with session.lock:
        if session.is_escalated:
            return []

        step = session.steps.get(step_id)
        if isinstance(step, VideoStep):
            return await _save_video(session, str(value or ""), backend=backend, token=token)

        mark = len(session.steps)
        await get_onboarding_graph().ainvoke(
            {
                "session": session,
                "backend": backend,
                "token": token,
                "step_id": step_id,
                "value": value,
                "halted": False,
            }
        )
        return session.steps.since(mark)


async def attach_video(
    session: OnboardingSession,
    url: str,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Save an uploaded video URL to the profile and advance.

    Raises:
        InvalidStateError: No active video step.
    """
    async with session.lock:
        return await _save_video(session, url, backend=backend, token=token)


async def _save_video(
    session: OnboardingSession,
    url: str,
    *,
    backend: BackendActions,
    token: str | None,
) -> list[StepBase]:
    if session.is_escalated:
        return []
    step = session.steps.active_step_for("videoIntro")
    if not isinstance(step, VideoStep):
        raise InvalidStateError("No video step is waiting for an upload")

    mark = len(session.steps)
    outcome = validate_locally("videoIntro", url)
    if isinstance(outcome, ValidationFailure):
        session.steps.bot(outcome.error)
        return session.steps.since(mark)

    saved = await backend.update_video_url(outcome.cleaned_value, token)
    if not saved.success:
        logger.warning("Video URL update failed for session %s: %s", session.id, saved.error)
        session.steps.bot(VIDEO_SAVE_FAILED)
        return session.steps.since(mark)

    session.steps.append(UserStep(content=VIDEO_UPLOADED, field_name="videoIntro"))
    await commit_and_advance(
        session, "videoIntro", outcome.cleaned_value, backend=backend, token=token
    )
    return session.steps.since(mark)


async def submit(
    session: OnboardingSession,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> tuple[SubmissionResult, list[StepBase]]:
    """Submit the profile from the summary.

    Returns:
        Tuple of (submission result, steps appended).
    """
    async with session.lock:
        mark = len(session.steps)
        result = await submit_profile(session, backend, token)
        return result, session.steps.since(mark)


async def reset_session(
    session: OnboardingSession,
    *,
    backend: BackendActions,
    token: str | None = None,
) -> list[StepBase]:
    """Clear the conversation and start again from the welcome message."""
    async with session.lock:
        session.reset()
        logger.info("Reset onboarding session %s", session.id)
        return await initial_steps(session, backend=backend, token=token)
