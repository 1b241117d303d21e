"""Tests for the confirmation gates and resolve_choice."""

import pytest

from gigfolio.agents.confirmations import (
    NEW_SKILL_PROMPT,
    resolve_choice,
    run_similar_skill_gate,
)
from gigfolio.agents.session import OnboardingSession
from gigfolio.core.errors import InvalidStateError
from gigfolio.providers.llm.base import TaskType
from gigfolio.providers.llm.mock_adapter import MockLLMProvider
from gigfolio.schemas.steps import (
    BotStep,
    ConfirmationStep,
    InputStep,
    JobTitleConfirmationStep,
    SanitizedStep,
    SimilarSkill,
    SimilarSkillsConfirmationStep,
)
from gigfolio.services.backend_actions import ExistingProfileData, InMemoryBackendActions

BAKER_SKILL = {"id": "sk-1", "name": "Baker", "experienceYears": 5, "agreedRate": 14.5}


def make_session(form_data: dict | None = None, **kwargs) -> OnboardingSession:
    session = OnboardingSession(user_id="user-1", worker_profile_id="wp-001", **kwargs)
    session.form_data.update(form_data or {})
    return session


class TestSimilarSkillGate:
    """Tests for run_similar_skill_gate."""

    @pytest.mark.asyncio
    async def test_no_similar_skill_commits(self, fake_backend: InMemoryBackendActions) -> None:
        """Without a match the skill is stored and the flow moves on."""
        session = make_session({"about": "I bake"})

        steps = await run_similar_skill_gate(session, "Baker", backend=fake_backend, extract=False)

        assert session.form_data["skills"] == "Baker"
        assert steps[-1].field_name == "experience"

    @pytest.mark.asyncio
    async def test_similar_skill_offers_reuse(self, fake_backend: InMemoryBackendActions) -> None:
        """A matching skill on the profile is offered for reuse."""
        fake_backend.skills.append(BAKER_SKILL)
        session = make_session({"about": "I bake"})

        steps = await run_similar_skill_gate(session, "Baker", backend=fake_backend, extract=False)

        assert len(steps) == 1
        card = steps[0]
        assert isinstance(card, SimilarSkillsConfirmationStep)
        assert card.similar_skills[0].experience_years == 5
        assert "skills" not in session.form_data

    @pytest.mark.asyncio
    async def test_extracts_skill_name(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """A sentence is reduced to the skill name before the lookup."""
        mock_llm.set_response(
            TaskType.SKILL_EXTRACTION, '{"skill_name": "Baker", "confidence": 90}'
        )
        session = make_session({"about": "I bake"})

        await run_similar_skill_gate(session, "I work as a baker", backend=fake_backend)

        assert session.form_data["skills"] == "Baker"

    @pytest.mark.asyncio
    async def test_extraction_failure_title_cases(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """Without the model the answer is title-cased."""
        session = make_session({"about": "I bake"})

        await run_similar_skill_gate(session, "pastry  chef", backend=fake_backend)

        assert session.form_data["skills"] == "Pastry Chef"

    @pytest.mark.asyncio
    async def test_lookup_failure_commits(self, fake_backend: InMemoryBackendActions) -> None:
        """A failed lookup is treated as no match."""
        fake_backend.skills.append(BAKER_SKILL)
        fake_backend.failing.add("check_existing_similar_skill")
        session = make_session({"about": "I bake"})

        await run_similar_skill_gate(session, "Baker", backend=fake_backend, extract=False)

        assert session.form_data["skills"] == "Baker"


class TestResolveJobTitle:
    """Tests for resolving a job title suggestion."""

    def make_card(self, session: OnboardingSession) -> JobTitleConfirmationStep:
        return session.steps.append(
            JobTitleConfirmationStep(
                original_value="I make bread and cakes",
                suggested_job_title="Baker",
                confidence=85,
                matched_terms=["bread", "cakes"],
            )
        )

    @pytest.mark.asyncio
    async def test_accept(self, fake_backend: InMemoryBackendActions) -> None:
        """Accepting stores the title as both job title and skill."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)

        await resolve_choice(session, card.id, "accept", backend=fake_backend)

        assert card.is_complete
        assert card.confirmed_choice == "title"
        assert session.form_data["jobTitle"] == "Baker"
        assert session.form_data["skills"] == "Baker"

    @pytest.mark.asyncio
    async def test_reject(self, fake_backend: InMemoryBackendActions) -> None:
        """Rejecting keeps the worker's own words."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)

        await resolve_choice(session, card.id, "reject", backend=fake_backend)

        assert card.confirmed_choice == "original"
        assert "jobTitle" not in session.form_data
        assert session.form_data["skills"] == "I make bread and cakes"

    @pytest.mark.asyncio
    async def test_second_click_is_ignored(self, fake_backend: InMemoryBackendActions) -> None:
        """Resolving twice produces no new steps."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)
        await resolve_choice(session, card.id, "accept", backend=fake_backend)
        size = len(session.steps)

        assert await resolve_choice(session, card.id, "reject", backend=fake_backend) == []
        assert len(session.steps) == size
        assert session.form_data["skills"] == "Baker"


class TestResolveSimilarSkill:
    """Tests for resolving a similar skill card."""

    def make_card(self, session: OnboardingSession) -> SimilarSkillsConfirmationStep:
        return session.steps.append(
            SimilarSkillsConfirmationStep(
                original_value="Baker",
                similar_skills=[
                    SimilarSkill.model_validate(BAKER_SKILL),
                    SimilarSkill(id="sk-2", name="Pastry Baker"),
                ],
            )
        )

    @pytest.mark.asyncio
    async def test_use_existing_copies_details(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """Reusing a skill copies its experience and rate."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)

        steps = await resolve_choice(
            session, card.id, "use_existing", {"skill_id": "sk-1"}, backend=fake_backend
        )

        assert card.confirmed_choice == "existing"
        assert session.form_data["skills"] == "Baker"
        assert session.form_data["jobTitle"] == "Baker"
        assert session.form_data["experience"] == "5 years"
        assert session.form_data["hourlyRate"] == 14.5
        assert steps[-1].field_name == "qualifications"

    @pytest.mark.asyncio
    async def test_use_existing_selects_by_id(self, fake_backend: InMemoryBackendActions) -> None:
        """The payload picks which similar skill is reused."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)

        await resolve_choice(
            session, card.id, "use_existing", {"skill_id": "sk-2"}, backend=fake_backend
        )

        assert session.form_data["skills"] == "Pastry Baker"
        assert "experience" not in session.form_data

    @pytest.mark.asyncio
    async def test_add_new_asks_for_name(self, fake_backend: InMemoryBackendActions) -> None:
        """Adding a new skill asks for its name."""
        session = make_session({"about": "I bake"})
        card = self.make_card(session)

        steps = await resolve_choice(session, card.id, "add_new", backend=fake_backend)

        assert card.confirmed_choice == "new"
        assert isinstance(steps[0], BotStep)
        assert steps[0].content == NEW_SKILL_PROMPT
        assert isinstance(steps[1], InputStep)
        assert steps[1].field_name == "skills"
        assert session.consistency_errors() == []


class TestResolveSanitized:
    """Tests for resolving a cleaned-up answer."""

    @pytest.mark.asyncio
    async def test_accept_uses_cleaned_value(self, fake_backend: InMemoryBackendActions) -> None:
        """Accepting stores the cleaned text."""
        session = make_session()
        card = session.steps.append(
            SanitizedStep(
                field_name="about",
                original_value="i bake bread",
                sanitized_value="I bake bread.",
            )
        )

        await resolve_choice(session, card.id, "accept", backend=fake_backend)

        assert card.confirmed_choice == "sanitized"
        assert session.form_data["about"] == "I bake bread."

    @pytest.mark.asyncio
    async def test_reject_keeps_original(self, fake_backend: InMemoryBackendActions) -> None:
        """Rejecting stores what the worker typed."""
        session = make_session()
        card = session.steps.append(
            SanitizedStep(
                field_name="about",
                original_value="i bake bread",
                sanitized_value="I bake bread.",
            )
        )

        await resolve_choice(session, card.id, "reject", backend=fake_backend)

        assert card.confirmed_choice == "original"
        assert session.form_data["about"] == "i bake bread"

    @pytest.mark.asyncio
    async def test_equipment_stored_as_items(self, fake_backend: InMemoryBackendActions) -> None:
        """Equipment is always stored as a list of named items."""
        session = make_session()
        card = session.steps.append(
            SanitizedStep(
                field_name="equipment",
                original_value="pans, aprons",
                sanitized_value="Pans, Aprons",
            )
        )

        await resolve_choice(session, card.id, "accept", backend=fake_backend)

        assert session.form_data["equipment"] == [{"name": "Pans"}, {"name": "Aprons"}]


class TestResolveExistingData:
    """Tests for the reuse-or-edit card."""

    EXISTING = ExistingProfileData(has_full_bio=True, full_bio="Chef for ten years in Leeds")

    def make_card(self, session: OnboardingSession) -> ConfirmationStep:
        return session.steps.append(
            ConfirmationStep(
                field_name="about",
                content="I can see you already have bio information.",
                existing_value=self.EXISTING.full_bio,
            )
        )

    @pytest.mark.asyncio
    async def test_reuse(self, fake_backend: InMemoryBackendActions) -> None:
        """Reusing copies the stored value and moves on."""
        session = make_session(existing_profile=self.EXISTING)
        card = self.make_card(session)

        steps = await resolve_choice(session, card.id, "reuse", backend=fake_backend)

        assert card.confirmed_choice == "reuse"
        assert session.form_data["about"] == "Chef for ten years in Leeds"
        assert steps[-1].field_name == "skills"

    @pytest.mark.asyncio
    async def test_edit(self, fake_backend: InMemoryBackendActions) -> None:
        """Editing asks the question fresh instead of offering the card again."""
        session = make_session(existing_profile=self.EXISTING)
        card = self.make_card(session)

        steps = await resolve_choice(session, card.id, "edit", backend=fake_backend)

        assert card.confirmed_choice == "edit"
        assert "about" in session.declined_existing
        assert isinstance(steps[-1], InputStep)
        assert steps[-1].field_name == "about"
        assert not any(isinstance(s, ConfirmationStep) for s in steps)


class TestResolveChoiceErrors:
    """Tests for invalid resolutions."""

    @pytest.mark.asyncio
    async def test_unknown_step(self, fake_backend: InMemoryBackendActions) -> None:
        """Unknown steps are rejected."""
        with pytest.raises(InvalidStateError):
            await resolve_choice(make_session(), 99, "accept", backend=fake_backend)

    @pytest.mark.asyncio
    async def test_step_without_choices(self, fake_backend: InMemoryBackendActions) -> None:
        """Plain bot messages cannot be resolved."""
        session = make_session()
        bot = session.steps.bot("Hello")

        with pytest.raises(InvalidStateError):
            await resolve_choice(session, bot.id, "accept", backend=fake_backend)

    @pytest.mark.asyncio
    async def test_invalid_choice(self, fake_backend: InMemoryBackendActions) -> None:
        """Choices from another card type are rejected."""
        session = make_session()
        card = session.steps.append(
            SanitizedStep(field_name="about", original_value="a", sanitized_value="A")
        )

        with pytest.raises(InvalidStateError, match="expected one of accept, reject"):
            await resolve_choice(session, card.id, "reuse", backend=fake_backend)
