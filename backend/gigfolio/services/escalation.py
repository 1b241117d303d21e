"""Escalation Detector: decides when onboarding hands over to human support.

Two signal sources feed one tracker:

- a keyword and pattern scan of the reply (explicit requests for a person,
  technical and payment problems, safety concerns, urgency, frustration)
  plus conversation-length and retry counters;
- one AI relatedness check comparing the reply to the bot prompt it answers.

Tracker states: NORMAL -> WARNED (1st and 2nd unrelated reply) -> ESCALATED
(the escalation_threshold-th). ESCALATED is terminal until reset().
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gigfolio.core.config import settings
from gigfolio.services.ai_assist import is_unrelated_response

logger = logging.getLogger(__name__)

# =============================================================================
# Keyword scan
# =============================================================================


class IssueType(str, Enum):
    HUMAN_REQUEST = "human_request"
    TECHNICAL_PROBLEM = "technical_problem"
    PAYMENT_ISSUE = "payment_issue"
    SAFETY_CONCERN = "safety_concern"
    URGENT_REQUEST = "urgent_request"
    FRUSTRATION = "frustration"
    REPEATED_DIFFICULTY = "repeated_difficulty"
    NONE = "none"


_SUGGESTED_ACTIONS: dict[IssueType, str] = {
    IssueType.HUMAN_REQUEST: "escalate_to_human_support",
    IssueType.TECHNICAL_PROBLEM: "escalate_to_technical_support",
    IssueType.PAYMENT_ISSUE: "escalate_to_billing_support",
    IssueType.SAFETY_CONCERN: "escalate_to_safety_team",
    IssueType.URGENT_REQUEST: "escalate_to_urgent_support",
    IssueType.FRUSTRATION: "offer_help",
    IssueType.REPEATED_DIFFICULTY: "escalate_to_human_support",
    IssueType.NONE: "continue_normal_flow",
}


def _phrases(*terms: str) -> re.Pattern[str]:
    alternation = "|".join(re.escape(t).replace(r"\ ", r"\s+") for t in terms)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


# Checked in order; the first match wins
_ISSUE_PATTERNS: tuple[tuple[IssueType, re.Pattern[str], float], ...] = (
    (
        IssueType.HUMAN_REQUEST,
        _phrases(
            "speak to a human",
            "talk to a human",
            "speak to a person",
            "talk to a person",
            "speak to someone",
            "talk to someone",
            "real person",
            "human agent",
            "live agent",
            "customer service",
        ),
        0.95,
    ),
    (
        IssueType.SAFETY_CONCERN,
        _phrases(
            "unsafe",
            "harassed",
            "harassment",
            "threatened",
            "assaulted",
            "in danger",
            "scammed",
            "fraud",
        ),
        0.9,
    ),
    (
        IssueType.URGENT_REQUEST,
        _phrases("urgent", "urgently", "emergency"),
        0.85,
    ),
    (
        IssueType.TECHNICAL_PROBLEM,
        _phrases(
            "not working",
            "doesn't work",
            "does not work",
            "won't load",
            "keeps crashing",
            "error message",
            "broken",
            "bug",
            "glitch",
        ),
        0.8,
    ),
    (
        IssueType.PAYMENT_ISSUE,
        _phrases(
            "refund",
            "charged me",
            "overcharged",
            "billing problem",
            "payment failed",
            "haven't been paid",
            "not been paid",
        ),
        0.8,
    ),
    (
        IssueType.FRUSTRATION,
        _phrases(
            "frustrated",
            "frustrating",
            "annoying",
            "useless",
            "waste of time",
            "ridiculous",
            "hate this",
            "this is stupid",
        ),
        0.6,
    ),
)

# Issues that bypass the warning stage
_IMMEDIATE_ISSUES = frozenset({IssueType.HUMAN_REQUEST, IssueType.SAFETY_CONCERN})

_MAX_RETRIES = 5
_MAX_CONVERSATION_LENGTH = 50

# Long back-and-forth is normal on these fields
_RETRY_EXEMPT_FIELDS = frozenset({"equipment", "hourlyRate"})


@dataclass(frozen=True)
class EscalationContext:
    retry_count: int = 0
    conversation_length: int = 0
    field_name: str | None = None


@dataclass(frozen=True)
class EscalationTrigger:
    """Result of the keyword and counter scan.

    Attributes:
        should_escalate: True when the reply is an escalation signal.
            Frustration alone is not; it only earns a warning.
        issue_type: Detected issue category.
        reason: Human-readable reason for the support case.
        confidence: 0-1.
        suggested_action: Routing hint for the support team.
        immediate: Skip the warning stage.
    """

    should_escalate: bool
    issue_type: IssueType
    reason: str
    confidence: float
    suggested_action: str
    immediate: bool = False


_NO_TRIGGER = EscalationTrigger(
    should_escalate=False,
    issue_type=IssueType.NONE,
    reason="No escalation triggers detected",
    confidence=0.0,
    suggested_action=_SUGGESTED_ACTIONS[IssueType.NONE],
)


def detect_escalation_triggers(
    text: str, context: EscalationContext | None = None
) -> EscalationTrigger:
    """Scan one reply for escalation signals.

    Args:
        text: The worker's reply.
        context: Retry and conversation counters for the current field.

    Returns:
        EscalationTrigger; should_escalate is False when nothing matched.
    """
    context = context or EscalationContext()

    for issue, pattern, confidence in _ISSUE_PATTERNS:
        match = pattern.search(text or "")
        if match is None:
            continue
        return EscalationTrigger(
            should_escalate=issue is not IssueType.FRUSTRATION,
            issue_type=issue,
            reason=f"{issue.value.replace('_', ' ').capitalize()} detected: '{match.group(0)}'",
            confidence=confidence,
            suggested_action=_SUGGESTED_ACTIONS[issue],
            immediate=issue in _IMMEDIATE_ISSUES,
        )

    if context.field_name not in _RETRY_EXEMPT_FIELDS:
        if context.retry_count >= _MAX_RETRIES:
            return EscalationTrigger(
                should_escalate=True,
                issue_type=IssueType.REPEATED_DIFFICULTY,
                reason=f"User has retried {context.retry_count} times",
                confidence=0.7,
                suggested_action=_SUGGESTED_ACTIONS[IssueType.REPEATED_DIFFICULTY],
            )
        if context.conversation_length > _MAX_CONVERSATION_LENGTH:
            return EscalationTrigger(
                should_escalate=True,
                issue_type=IssueType.REPEATED_DIFFICULTY,
                reason=f"Long conversation ({context.conversation_length} steps)",
                confidence=0.7,
                suggested_action=_SUGGESTED_ACTIONS[IssueType.REPEATED_DIFFICULTY],
            )

    return _NO_TRIGGER


# =============================================================================
# Tracker
# =============================================================================


class EscalationState(str, Enum):
    NORMAL = "normal"
    WARNED = "warned"
    ESCALATED = "escalated"


@dataclass
class EscalationTracker:
    """Per-session unrelated-reply counter and state.

    Attributes:
        threshold: Unrelated replies that trigger escalation.
        state: Current state.
        unrelated_count: Unrelated replies since the last reset.
        last_prompt: Bot prompt the last reply answered.
        reason: Why the session escalated.
    """

    threshold: int = 3
    state: EscalationState = EscalationState.NORMAL
    unrelated_count: int = 0
    last_prompt: str | None = None
    reason: str | None = None

    @property
    def is_escalated(self) -> bool:
        return self.state is EscalationState.ESCALATED

    def register_unrelated(self, prompt: str | None, reason: str | None = None) -> EscalationState:
        """Count one unrelated reply and move the state forward."""
        if self.is_escalated:
            return self.state
        self.unrelated_count += 1
        self.last_prompt = prompt
        if self.unrelated_count >= self.threshold:
            self.escalate(reason or "Multiple unrelated responses - user struggling with AI onboarding")
        else:
            self.state = EscalationState.WARNED
        return self.state

    def register_related(self, prompt: str | None) -> None:
        """A related reply; a new prompt context clears the count."""
        if self.is_escalated:
            return
        if prompt != self.last_prompt:
            self.unrelated_count = 0
            self.state = EscalationState.NORMAL
        self.last_prompt = prompt

    def escalate(self, reason: str) -> None:
        self.state = EscalationState.ESCALATED
        self.reason = reason

    def reset(self) -> None:
        self.state = EscalationState.NORMAL
        self.unrelated_count = 0
        self.last_prompt = None
        self.reason = None


# =============================================================================
# Decision
# =============================================================================

WARNING_MESSAGE = (
    "I notice you might be having some difficulty. Let me try to help you with "
    "this step. If you continue to have trouble, type 'help' for tips or "
    "'support' to reach our support team."
)


@dataclass(frozen=True)
class EscalationDecision:
    """What the turn should do with this reply.

    Attributes:
        escalate: Create a support case and stop sequencing.
        reason: Reason recorded on the support case.
        warn: Show a warning and keep the current step active.
    """

    escalate: bool
    reason: str = ""
    warn: bool = False


async def should_escalate(
    user_input: Any,
    step_history: list[Any],
    retry_count: int,
    *,
    tracker: EscalationTracker,
    prompt: str | None,
    field_name: str | None = None,
) -> EscalationDecision:
    """Run the keyword scan, then the AI relatedness check, and update the tracker.

    Args:
        user_input: The reply. Structured widget values are never escalated.
        step_history: Session steps so far (only the length is used).
        retry_count: Failed attempts on the current field.
        tracker: Session tracker, mutated in place.
        prompt: Bot prompt the reply answers.
        field_name: Field being answered.

    Returns:
        EscalationDecision.
    """
    if tracker.is_escalated:
        return EscalationDecision(escalate=True, reason=tracker.reason or "")
    if not isinstance(user_input, str) or not user_input.strip():
        return EscalationDecision(escalate=False)

    trigger = detect_escalation_triggers(
        user_input,
        EscalationContext(
            retry_count=retry_count,
            conversation_length=len(step_history),
            field_name=field_name,
        ),
    )

    if trigger.should_escalate and trigger.immediate:
        logger.info("Immediate escalation: %s", trigger.issue_type.value)
        tracker.escalate(trigger.reason)
        return EscalationDecision(escalate=True, reason=trigger.reason)

    if trigger.should_escalate:
        state = tracker.register_unrelated(prompt, trigger.reason)
        logger.info(
            "Escalation signal %s (count %d)", trigger.issue_type.value, tracker.unrelated_count
        )
        if state is EscalationState.ESCALATED:
            return EscalationDecision(escalate=True, reason=tracker.reason or trigger.reason)
        return EscalationDecision(escalate=False, reason=trigger.reason, warn=True)

    if trigger.issue_type is IssueType.FRUSTRATION:
        return EscalationDecision(escalate=False, reason=trigger.reason, warn=True)

    if prompt and await is_unrelated_response(user_input, prompt):
        state = tracker.register_unrelated(prompt)
        logger.info("Unrelated reply for %s (count %d)", field_name, tracker.unrelated_count)
        if state is EscalationState.ESCALATED:
            return EscalationDecision(escalate=True, reason=tracker.reason or "")
        return EscalationDecision(escalate=False, reason="Unrelated response", warn=True)

    tracker.register_related(prompt)
    return EscalationDecision(escalate=False)
