"""Tests for the Escalation Detector.

Covers the keyword scan, the unrelated-reply tracker and should_escalate(),
which combines both with the AI relatedness check.
"""

import pytest

from gigfolio.providers.llm.base import TaskType
from gigfolio.providers.llm.mock_adapter import MockLLMProvider
from gigfolio.services.escalation import (
    EscalationContext,
    EscalationState,
    EscalationTracker,
    IssueType,
    detect_escalation_triggers,
    should_escalate,
)

PROMPT = "Tell me a bit about yourself"
UNRELATED = '{"is_related": false, "confidence": 0.9}'


def make_tracker() -> EscalationTracker:
    return EscalationTracker(threshold=3)


# =============================================================================
# Keyword scan
# =============================================================================


class TestDetectEscalationTriggers:
    """Tests for detect_escalation_triggers."""

    def test_human_request_is_immediate(self) -> None:
        """Asking for a person escalates without warning."""
        trigger = detect_escalation_triggers("Can I speak to a human please")

        assert trigger.issue_type is IssueType.HUMAN_REQUEST
        assert trigger.should_escalate is True
        assert trigger.immediate is True
        assert trigger.suggested_action == "escalate_to_human_support"

    def test_safety_concern_is_immediate(self) -> None:
        """Safety concerns skip the warning stage."""
        trigger = detect_escalation_triggers("I was harassed on my last shift")

        assert trigger.issue_type is IssueType.SAFETY_CONCERN
        assert trigger.immediate is True

    def test_technical_problem_is_not_immediate(self) -> None:
        """Technical problems count towards the threshold."""
        trigger = detect_escalation_triggers("the upload button is not working")

        assert trigger.issue_type is IssueType.TECHNICAL_PROBLEM
        assert trigger.should_escalate is True
        assert trigger.immediate is False

    def test_frustration_only_warns(self) -> None:
        """Frustration alone is not an escalation signal."""
        trigger = detect_escalation_triggers("this is so frustrating")

        assert trigger.issue_type is IssueType.FRUSTRATION
        assert trigger.should_escalate is False

    def test_reason_quotes_match(self) -> None:
        """The reason names the matched phrase."""
        trigger = detect_escalation_triggers("I want a REFUND")

        assert trigger.reason == "Payment issue detected: 'REFUND'"

    def test_repeated_retries(self) -> None:
        """Five failed attempts on a field escalate."""
        trigger = detect_escalation_triggers(
            "chef", EscalationContext(retry_count=5, field_name="about")
        )

        assert trigger.issue_type is IssueType.REPEATED_DIFFICULTY
        assert trigger.should_escalate is True

    def test_retry_exempt_fields(self) -> None:
        """Rate and equipment retries are not counted."""
        trigger = detect_escalation_triggers(
            "abc", EscalationContext(retry_count=9, field_name="hourlyRate")
        )

        assert trigger.issue_type is IssueType.NONE

    def test_long_conversation(self) -> None:
        """Very long conversations escalate."""
        trigger = detect_escalation_triggers("ok", EscalationContext(conversation_length=51))

        assert trigger.issue_type is IssueType.REPEATED_DIFFICULTY

    def test_ordinary_answer(self) -> None:
        """Normal answers trigger nothing."""
        assert detect_escalation_triggers("I bake bread").should_escalate is False


# =============================================================================
# Tracker
# =============================================================================


class TestEscalationTracker:
    """Tests for the NORMAL -> WARNED -> ESCALATED tracker."""

    def test_warns_then_escalates(self) -> None:
        """The third unrelated reply escalates."""
        tracker = make_tracker()

        assert tracker.register_unrelated(PROMPT) is EscalationState.WARNED
        assert tracker.register_unrelated(PROMPT) is EscalationState.WARNED
        assert tracker.register_unrelated(PROMPT) is EscalationState.ESCALATED
        assert tracker.reason == (
            "Multiple unrelated responses - user struggling with AI onboarding"
        )

    def test_escalated_is_terminal(self) -> None:
        """Related replies do not undo escalation."""
        tracker = make_tracker()
        tracker.escalate("Human request")

        tracker.register_related("Another prompt")

        assert tracker.is_escalated

    def test_new_prompt_clears_count(self) -> None:
        """A related reply to a new question starts over."""
        tracker = make_tracker()
        tracker.register_unrelated(PROMPT)

        tracker.register_related("What is your main skill?")

        assert tracker.unrelated_count == 0
        assert tracker.state is EscalationState.NORMAL

    def test_same_prompt_keeps_count(self) -> None:
        """A related reply to the same question keeps the count."""
        tracker = make_tracker()
        tracker.register_unrelated(PROMPT)

        tracker.register_related(PROMPT)

        assert tracker.unrelated_count == 1

    def test_reset(self) -> None:
        """reset() returns to NORMAL."""
        tracker = make_tracker()
        tracker.escalate("x")

        tracker.reset()

        assert tracker.state is EscalationState.NORMAL
        assert tracker.reason is None


# =============================================================================
# Decision
# =============================================================================


class TestShouldEscalate:
    """Tests for should_escalate."""

    @pytest.mark.asyncio
    async def test_human_request(self) -> None:
        """Immediate issues escalate on the first reply."""
        tracker = make_tracker()

        decision = await should_escalate(
            "let me talk to a real person", [], 0, tracker=tracker, prompt=PROMPT
        )

        assert decision.escalate is True
        assert tracker.is_escalated

    @pytest.mark.asyncio
    async def test_already_escalated(self) -> None:
        """An escalated tracker keeps escalating."""
        tracker = make_tracker()
        tracker.escalate("earlier")

        decision = await should_escalate("I bake", [], 0, tracker=tracker, prompt=PROMPT)

        assert decision.escalate is True
        assert decision.reason == "earlier"

    @pytest.mark.asyncio
    async def test_widget_values_are_ignored(self, mock_llm: MockLLMProvider) -> None:
        """Structured answers never escalate and skip the AI check."""
        decision = await should_escalate(
            {"days": ["monday"]}, [], 0, tracker=make_tracker(), prompt=PROMPT
        )

        assert decision.escalate is False
        mock_llm.assert_not_called_with_task(TaskType.RELEVANCE_CHECK)

    @pytest.mark.asyncio
    async def test_frustration_warns(self) -> None:
        """Frustration warns without counting."""
        tracker = make_tracker()

        decision = await should_escalate(
            "this is useless", [], 0, tracker=tracker, prompt=PROMPT
        )

        assert decision.warn is True
        assert decision.escalate is False
        assert tracker.unrelated_count == 0

    @pytest.mark.asyncio
    async def test_technical_problems_reach_threshold(self) -> None:
        """Repeated technical complaints escalate on the third."""
        tracker = make_tracker()

        first = await should_escalate("it's broken", [], 0, tracker=tracker, prompt=PROMPT)
        second = await should_escalate("still broken", [], 0, tracker=tracker, prompt=PROMPT)
        third = await should_escalate("there's a bug", [], 0, tracker=tracker, prompt=PROMPT)

        assert (first.warn, second.warn) == (True, True)
        assert third.escalate is True

    @pytest.mark.asyncio
    async def test_unrelated_replies_escalate(self, mock_llm: MockLLMProvider) -> None:
        """Three AI-confirmed unrelated replies escalate."""
        mock_llm.set_response(TaskType.RELEVANCE_CHECK, UNRELATED)
        tracker = make_tracker()

        decisions = [
            await should_escalate("what's the weather", [], 0, tracker=tracker, prompt=PROMPT)
            for _ in range(3)
        ]

        assert [d.warn for d in decisions[:2]] == [True, True]
        assert decisions[2].escalate is True

    @pytest.mark.asyncio
    async def test_related_reply(self) -> None:
        """AI failure counts as related and nothing happens."""
        tracker = make_tracker()

        decision = await should_escalate("I bake bread", [], 0, tracker=tracker, prompt=PROMPT)

        assert decision.escalate is False
        assert decision.warn is False
        assert tracker.last_prompt == PROMPT

    @pytest.mark.asyncio
    async def test_no_prompt_skips_ai(self, mock_llm: MockLLMProvider) -> None:
        """Without a prompt there is nothing to compare against."""
        mock_llm.set_response(TaskType.RELEVANCE_CHECK, UNRELATED)

        decision = await should_escalate("anything", [], 0, tracker=make_tracker(), prompt=None)

        assert decision.escalate is False
        mock_llm.assert_not_called_with_task(TaskType.RELEVANCE_CHECK)
