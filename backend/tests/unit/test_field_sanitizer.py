"""Tests for validate_field: local rules followed by the AI review stage."""

import json

import pytest

from gigfolio.providers.llm.base import TaskType
from gigfolio.providers.llm.mock_adapter import MockLLMProvider
from gigfolio.services.field_sanitizer import (
    ValidationContext,
    display_text,
    validate_field,
)
from gigfolio.services.field_validators import (
    NO_QUALIFICATIONS,
    ValidationFailure,
    ValidationSuccess,
)

BIO = "I have ten years experience in catering"


def review(mock: MockLLMProvider, **fields) -> None:
    payload = {"is_appropriate": True, "is_relevant": True, "sanitized": ""}
    payload.update(fields)
    mock.set_response(TaskType.FIELD_SANITIZATION, json.dumps(payload))


class TestValidateFieldFallback:
    """AI unavailable: locally cleaned values with default summaries."""

    @pytest.mark.asyncio
    async def test_about_default_summary(self) -> None:
        """The bio is accepted as typed."""
        outcome = await validate_field("about", BIO)

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.cleaned_value == BIO
        assert outcome.summary == "Perfect! Your bio sounds great!"

    @pytest.mark.asyncio
    async def test_skills_summary_uses_value(self) -> None:
        """The skills summary repeats the skill."""
        outcome = await validate_field("skills", "baker")

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.summary == "So you are a Baker?"

    @pytest.mark.asyncio
    async def test_equipment_becomes_items(self) -> None:
        """Equipment is stored as name items."""
        outcome = await validate_field(
            "equipment", "I use Pans, Aprons as a chef for my equipment"
        )

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.cleaned_value == [{"name": "Pans"}, {"name": "Aprons"}]
        assert outcome.summary == "Great! You have Pans, Aprons."


class TestValidateFieldShortCircuit:
    """Cases that never reach the model."""

    @pytest.mark.asyncio
    async def test_local_failure(self, mock_llm: MockLLMProvider) -> None:
        """Local rejection skips the AI stage."""
        outcome = await validate_field("about", "chef")

        assert isinstance(outcome, ValidationFailure)
        mock_llm.assert_not_called_with_task(TaskType.FIELD_SANITIZATION)

    @pytest.mark.asyncio
    async def test_skip_answer(self, mock_llm: MockLLMProvider) -> None:
        """Skip answers are accepted without review."""
        outcome = await validate_field("qualifications", "none")

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.cleaned_value == NO_QUALIFICATIONS
        mock_llm.assert_not_called_with_task(TaskType.FIELD_SANITIZATION)

    @pytest.mark.asyncio
    async def test_structured_values(self, mock_llm: MockLLMProvider) -> None:
        """Widget values (availability, rate) are not reviewed."""
        await validate_field("availability", {"days": ["monday"]})
        await validate_field("hourlyRate", "15")

        mock_llm.assert_not_called_with_task(TaskType.FIELD_SANITIZATION)


class TestValidateFieldReview:
    """AI review verdicts and cleanup."""

    @pytest.mark.asyncio
    async def test_sanitized_text_is_stored(self, mock_llm: MockLLMProvider) -> None:
        """Cleanup replaces the text and the summary is the model's."""
        review(
            mock_llm,
            sanitized="I have ten years of experience in catering.",
            natural_summary="Lovely bio!",
        )

        outcome = await validate_field("about", BIO, ValidationContext(question="About you?"))

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.cleaned_value == "I have ten years of experience in catering."
        assert outcome.summary == "Lovely bio!"

    @pytest.mark.asyncio
    async def test_question_is_in_prompt(self, mock_llm: MockLLMProvider) -> None:
        """The bot prompt is given to the model."""
        review(mock_llm, sanitized=BIO)

        await validate_field("about", BIO, ValidationContext(question="Tell me about you"))

        prompt = mock_llm.calls_for(TaskType.FIELD_SANITIZATION)[0]["messages"][1].content
        assert 'Question asked: "Tell me about you"' in prompt
        assert "<worker_answer>" in prompt

    @pytest.mark.asyncio
    async def test_hospitality_reviewer(self, mock_llm: MockLLMProvider) -> None:
        """Hospitality answers are reviewed by the hospitality coach."""
        review(mock_llm, sanitized=BIO)

        await validate_field("about", BIO, ValidationContext(variant="hospitality"))

        prompt = mock_llm.calls_for(TaskType.FIELD_SANITIZATION)[0]["messages"][1].content
        assert prompt.startswith("You are the Gigfolio Coach")

    @pytest.mark.asyncio
    async def test_irrelevant_answer(self, mock_llm: MockLLMProvider) -> None:
        """The model's reason is shown back."""
        review(mock_llm, is_relevant=False, reason="Tell me about your work instead.")

        outcome = await validate_field("about", BIO)

        assert outcome == ValidationFailure("Tell me about your work instead.")

    @pytest.mark.asyncio
    async def test_inappropriate_without_reason(self, mock_llm: MockLLMProvider) -> None:
        """A generic message is used when no reason is given."""
        review(mock_llm, is_appropriate=False)

        outcome = await validate_field("about", BIO)

        assert isinstance(outcome, ValidationFailure)
        assert "professional" in outcome.error

    @pytest.mark.asyncio
    async def test_skills_keep_local_value(self, mock_llm: MockLLMProvider) -> None:
        """For skills the model only judges."""
        review(mock_llm, sanitized="Master Baker", natural_summary="")

        outcome = await validate_field("skills", "baker")

        assert isinstance(outcome, ValidationSuccess)
        assert outcome.cleaned_value == "Baker"
        assert outcome.summary == "So you are a Baker?"


class TestDisplayText:
    """Tests for display_text."""

    def test_equipment_list(self) -> None:
        """Equipment lists are joined by name."""
        assert display_text("equipment", [{"name": "Van"}, {"name": "Drill"}]) == "Van, Drill"

    def test_none(self) -> None:
        """None is an empty string."""
        assert display_text("about", None) == ""

    def test_number(self) -> None:
        """Other values are str()."""
        assert display_text("hourlyRate", 15.0) == "15.0"
