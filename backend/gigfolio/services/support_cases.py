"""Support case creation for escalated onboarding sessions."""

import logging
import secrets
import string
import time
from typing import TYPE_CHECKING

from gigfolio.schemas.steps import BotStep, UserStep
from gigfolio.services.backend_actions import BackendActions

if TYPE_CHECKING:
    from gigfolio.agents.session import OnboardingSession

logger = logging.getLogger(__name__)

ISSUE_TYPE = "onboarding_difficulty"
CONTEXT_TYPE = "onboarding"

_CASE_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_CASE_SUFFIX_LENGTH = 9
_TRANSCRIPT_LINES = 6
_TRANSCRIPT_LINE_LENGTH = 200


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_case_id() -> str:
    """SUPPORT-{epoch ms}-{9 random base36 chars}."""
    suffix = "".join(secrets.choice(_CASE_SUFFIX_ALPHABET) for _ in range(_CASE_SUFFIX_LENGTH))
    return f"SUPPORT-{_now_ms()}-{suffix}"


def error_case_id() -> str:
    return f"ERROR-{_now_ms()}"


def build_case_description(
    session: "OnboardingSession", reason: str, field_name: str | None = None
) -> str:
    """Support case body: field, reason and the tail of the transcript."""
    lines = [
        f"Support case generated from {field_name or 'unknown'} field validation",
        "",
        f"Escalation Reason: {reason}",
        "",
        f"Onboarding variant: {session.variant.value}",
        f"Answered fields: {', '.join(sorted(session.form_data)) or 'none'}",
        "",
        "Recent conversation:",
    ]
    recent = [s for s in session.steps if isinstance(s, (BotStep, UserStep))]
    for step in recent[-_TRANSCRIPT_LINES:]:
        speaker = "Worker" if isinstance(step, UserStep) else "Assistant"
        lines.append(f"{speaker}: {step.content[:_TRANSCRIPT_LINE_LENGTH]}")
    return "\n".join(lines)


async def create_support_case(
    session: "OnboardingSession",
    reason: str,
    backend: BackendActions,
    token: str | None,
    field_name: str | None = None,
) -> str:
    """Save a support case for an escalated session.

    Returns:
        "SUPPORT-..." when the backend accepted the case, "ERROR-..." when it
        did not. Either way the id is shown to the worker.
    """
    if not session.user_id:
        logger.error("No user id for escalated session %s", session.id)
        return error_case_id()

    payload = {
        "userId": session.user_id,
        "issueType": ISSUE_TYPE,
        "description": build_case_description(session, reason, field_name),
        "contextType": CONTEXT_TYPE,
    }
    result = await backend.save_support_case(payload, token)
    if not result.success:
        logger.error("Failed to create support case for session %s: %s", session.id, result.error)
        return error_case_id()

    case_id = new_case_id()
    logger.info("Created support case %s for session %s", case_id, session.id)
    return case_id
