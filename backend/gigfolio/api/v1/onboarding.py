"""Onboarding API router.

This module provides:
- POST /sessions: Start an onboarding conversation
- GET /sessions/{session_id}: Current session snapshot
- POST /sessions/{session_id}/inputs: Answer an input step
- POST /sessions/{session_id}/steps/{step_id}/choice: Resolve a confirmation
- POST /sessions/{session_id}/video: Attach an uploaded video URL
- POST /sessions/{session_id}/submit: Save the profile
- POST /sessions/{session_id}/reset: Start the conversation over

Every mutating endpoint returns the steps appended by the call together
with the updated session. Endpoints that may call the model are rate
limited.
"""

import structlog
from fastapi import APIRouter, Request, status

from gigfolio.agents.confirmations import resolve_choice
from gigfolio.agents.onboarding import (
    attach_video,
    handle_user_input,
    reset_session,
    start_session,
    submit,
)
from gigfolio.agents.session import OnboardingSession
from gigfolio.api.deps import Backend, BearerToken, CurrentUserId, Sessions
from gigfolio.core.config import settings
from gigfolio.core.rate_limiting import limiter
from gigfolio.core.responses import DataResponse
from gigfolio.schemas.onboarding import (
    ChoiceRequest,
    SessionView,
    StartSessionRequest,
    SubmitInputRequest,
    SubmitResult,
    TurnResult,
    VideoRequest,
)

router = APIRouter()

logger = structlog.get_logger()


def _turn(steps: list, session: OnboardingSession) -> DataResponse[TurnResult]:
    return DataResponse(
        data=TurnResult(steps=steps, session=SessionView.from_session(session))
    )


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_llm)
async def create_session(
    request: Request,  # noqa: ARG001
    body: StartSessionRequest,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[TurnResult]:
    """Start an onboarding session.

    Loads any profile data already on file, creates the worker profile and
    returns the welcome message with the first prompt.
    """
    session, steps = await start_session(
        store, user_id, body.variant, backend=backend, token=token
    )
    logger.info(
        "onboarding_session_started",
        session_id=session.id,
        variant=session.variant.value,
        returning_user=session.is_returning_user,
    )
    return _turn(steps, session)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    user_id: CurrentUserId,
    store: Sessions,
) -> DataResponse[SessionView]:
    """Get the full session snapshot.

    Raises:
        NotFoundError: Unknown session, or owned by another user.
    """
    session = store.get(session_id, user_id)
    return DataResponse(data=SessionView.from_session(session))


@router.post("/sessions/{session_id}/inputs")
@limiter.limit(settings.rate_limit_llm)
async def submit_input(
    request: Request,  # noqa: ARG001
    session_id: str,
    body: SubmitInputRequest,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[TurnResult]:
    """Answer an input step.

    Raises:
        NotFoundError: Unknown session.
        InvalidStateError: Unknown, completed or non-input step.
    """
    session = store.get(session_id, user_id)
    steps = await handle_user_input(
        session, body.step_id, body.value, backend=backend, token=token
    )
    logger.info(
        "onboarding_input_handled",
        session_id=session.id,
        step_id=body.step_id,
        new_steps=len(steps),
        escalated=session.is_escalated,
    )
    return _turn(steps, session)


@router.post("/sessions/{session_id}/steps/{step_id}/choice")
@limiter.limit(settings.rate_limit_llm)
async def submit_choice(
    request: Request,  # noqa: ARG001
    session_id: str,
    step_id: int,
    body: ChoiceRequest,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[TurnResult]:
    """Resolve a confirmation step.

    Resolving a step twice returns no new steps.
    """
    session = store.get(session_id, user_id)
    steps = await resolve_choice(
        session, step_id, body.choice, body.payload, backend=backend, token=token
    )
    logger.info(
        "onboarding_choice_resolved",
        session_id=session.id,
        step_id=step_id,
        choice=body.choice,
        new_steps=len(steps),
    )
    return _turn(steps, session)


@router.post("/sessions/{session_id}/video")
@limiter.limit(settings.rate_limit_llm)
async def upload_video(
    request: Request,  # noqa: ARG001
    session_id: str,
    body: VideoRequest,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[TurnResult]:
    """Attach the URL of a video the client already uploaded."""
    session = store.get(session_id, user_id)
    steps = await attach_video(session, body.url, backend=backend, token=token)
    return _turn(steps, session)


@router.post("/sessions/{session_id}/submit")
@limiter.limit(settings.rate_limit_llm)
async def submit_session(
    request: Request,  # noqa: ARG001
    session_id: str,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[SubmitResult]:
    """Generate hashtags and save the profile.

    A failed save is reported in the result (and as a bot step); the summary
    can be submitted again.

    Raises:
        InvalidStateError: No summary yet, or already submitted.
    """
    session = store.get(session_id, user_id)
    result, steps = await submit(session, backend=backend, token=token)
    logger.info(
        "onboarding_profile_submitted",
        session_id=session.id,
        success=result.success,
    )
    return DataResponse(
        data=SubmitResult(
            success=result.success,
            redirect_path=result.redirect_path,
            error=result.error,
            hashtags=result.hashtags,
            steps=steps,
        )
    )


@router.post("/sessions/{session_id}/reset")
async def reset(
    session_id: str,
    user_id: CurrentUserId,
    token: BearerToken,
    store: Sessions,
    backend: Backend,
) -> DataResponse[TurnResult]:
    """Clear answers, transcript and escalation state, then start over."""
    session = store.get(session_id, user_id)
    steps = await reset_session(session, backend=backend, token=token)
    logger.info("onboarding_session_reset", session_id=session.id)
    return _turn(steps, session)
