"""Tests for the input-handling graph and the public session operations."""

import asyncio
from typing import Any

import pytest

from gigfolio.agents.confirmations import resolve_choice
from gigfolio.agents.field_catalog import Variant
from gigfolio.agents.onboarding import (
    CLARIFY_MESSAGE,
    VIDEO_SAVE_FAILED,
    attach_video,
    create_onboarding_graph,
    get_onboarding_graph,
    handle_user_input,
    reset_session,
    start_session,
    submit,
)
from gigfolio.agents.sequencer import advance
from gigfolio.agents.session import OnboardingSession, SessionStore
from gigfolio.core.config import settings
from gigfolio.core.errors import InvalidStateError
from gigfolio.providers.llm.base import TaskType
from gigfolio.providers.llm.mock_adapter import MockLLMProvider
from gigfolio.schemas.steps import (
    BotStep,
    HelpStep,
    JobTitleConfirmationStep,
    SanitizedStep,
    SummaryStep,
    SupportStep,
    UserStep,
    VideoStep,
)
from gigfolio.services.backend_actions import ActionResult, InMemoryBackendActions
from gigfolio.services.escalation import WARNING_MESSAGE
from gigfolio.services.summary_formatting import VIDEO_UPLOADED

BIO = "I'm a baker with ten years of experience in busy kitchens and a passion for bread"
VIDEO_URL = "https://cdn.example.com/videos/intro.mp4"
LEEDS = {"lat": 53.8, "lng": -1.55, "formatted_address": "Leeds, UK"}
WEEKDAYS = {"days": ["monday", "tuesday"], "startTime": "09:00", "endTime": "17:00"}


async def new_session(
    backend: InMemoryBackendActions, variant: Variant = Variant.GENERIC
) -> OnboardingSession:
    session, _ = await start_session(SessionStore(), "user-1", variant, backend=backend)
    return session


async def answer(session: OnboardingSession, value, backend: InMemoryBackendActions) -> list:
    """Answer the most recent active input step."""
    step = session.steps.active_steps()[-1]
    return await handle_user_input(session, step.id, value, backend=backend)


async def accept_cleanup(session: OnboardingSession, backend: InMemoryBackendActions) -> None:
    """Accept a pending cleaned-up answer, if one was offered."""
    card = session.steps.active_steps()[-1]
    if isinstance(card, SanitizedStep):
        await resolve_choice(session, card.id, "accept", backend=backend)


class TestOnboardingGraphStructure:
    """Tests for the graph structure."""

    def test_graph_has_required_nodes(self) -> None:
        """Every turn stage is a node."""
        graph = create_onboarding_graph()

        expected_nodes = [
            "record_input",
            "screen_input",
            "validate_answer",
            "job_title_gate",
            "similar_skill_gate",
            "confirm_sanitized",
            "advance_sequence",
        ]

        for node in expected_nodes:
            assert node in graph.nodes, f"Missing node: {node}"

    def test_graph_has_entry_point(self) -> None:
        """Turns start by recording the input."""
        compiled = create_onboarding_graph().compile()
        edges = list(compiled.get_graph().edges)

        start_edge = next((e for e in edges if e[0] == "__start__"), None)
        assert start_edge is not None
        assert start_edge[1] == "record_input"

    def test_get_onboarding_graph_returns_singleton(self) -> None:
        """get_onboarding_graph returns the same compiled graph."""
        assert get_onboarding_graph() is get_onboarding_graph()


class TestStartSession:
    """Tests for start_session."""

    @pytest.mark.asyncio
    async def test_creates_worker_profile(self, fake_backend: InMemoryBackendActions) -> None:
        """The worker profile id is recorded on the session."""
        store = SessionStore()

        session, steps = await start_session(store, "user-1", backend=fake_backend)

        assert session.worker_profile_id == "wp-001"
        assert store.get(session.id, "user-1") is session
        assert steps[-1].field_name == "about"

    @pytest.mark.asyncio
    async def test_returning_user_gets_existing_bio_card(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """A bio on file makes the first step a reuse-or-edit card."""
        fake_backend.existing_profile = {
            "hasFullBio": True,
            "profileData": {"fullBio": "Chef for ten years"},
        }

        session, steps = await start_session(SessionStore(), "user-1", backend=fake_backend)

        assert session.is_returning_user
        assert steps[-1].type == "confirmation"

    @pytest.mark.asyncio
    async def test_backend_failures_are_not_fatal(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """Lookup and creation failures leave a usable new-user session."""
        fake_backend.failing.update({"check_existing_profile_data", "create_worker_profile"})

        session, steps = await start_session(SessionStore(), "user-1", backend=fake_backend)

        assert session.worker_profile_id is None
        assert not session.is_returning_user
        assert steps[-1].field_name == "about"


class TestBakerConversation:
    """A full conversation from welcome to saved profile."""

    @pytest.mark.asyncio
    async def test_end_to_end(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """Every field is answered once and a single summary is emitted."""
        mock_llm.set_response(
            TaskType.JOB_TITLE,
            '{"job_title": "Baker", "confidence": 0.85, "matched_terms": ["baker"]}',
        )
        session = await new_session(fake_backend)

        steps = await answer(session, BIO, fake_backend)
        assert isinstance(steps[0], UserStep)
        assert session.form_data["about"] == BIO

        steps = await answer(session, "baker", fake_backend)
        card = steps[-1]
        assert isinstance(card, JobTitleConfirmationStep)
        assert card.confidence == 85
        await resolve_choice(session, card.id, "accept", backend=fake_backend)

        await answer(session, "5 years", fake_backend)
        await accept_cleanup(session, fake_backend)
        await answer(session, LEEDS, fake_backend)
        await answer(session, WEEKDAYS, fake_backend)
        await answer(session, "Ovens and mixing bowls", fake_backend)
        await accept_cleanup(session, fake_backend)
        await answer(session, "15", fake_backend)

        video = session.steps.active_steps()[-1]
        assert isinstance(video, VideoStep)
        steps = await handle_user_input(session, video.id, VIDEO_URL, backend=fake_backend)

        form = session.form_data
        assert form["jobTitle"] == "Baker"
        assert form["skills"] == "Baker"
        assert form["experience"] == "5 years"
        assert "qualifications" not in form
        assert form["location"] == LEEDS
        assert form["availability"]["days"] == ["monday", "tuesday"]
        assert form["equipment"]
        assert form["hourlyRate"] == 15.0
        assert form["videoIntro"] == VIDEO_URL
        assert form["references"].endswith("/worker/wp-001/recommendation")
        assert fake_backend.video_urls == [VIDEO_URL]

        summaries = [s for s in session.steps if isinstance(s, SummaryStep)]
        assert len(summaries) == 1
        assert steps[-1] is summaries[0]
        assert summaries[0].ai_summary == "A reliable baker with a decade in busy kitchens."
        assert session.consistency_errors() == []

        result, submit_steps = await submit(session, backend=fake_backend)

        assert result.success
        assert result.redirect_path == "/user/user-1/worker"
        assert len(fake_backend.saved_profiles) == 1
        assert summaries[0].is_submitted
        assert any(s.type == "hashtag-generation" for s in submit_steps)

    @pytest.mark.asyncio
    async def test_choice_is_idempotent(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """A second click on a resolved card does nothing."""
        mock_llm.set_response(
            TaskType.JOB_TITLE, '{"job_title": "Baker", "confidence": 90}'
        )
        session = await new_session(fake_backend)
        await answer(session, BIO, fake_backend)
        steps = await answer(session, "baker", fake_backend)
        card = steps[-1]

        first = await resolve_choice(session, card.id, "accept", backend=fake_backend)
        second = await resolve_choice(session, card.id, "accept", backend=fake_backend)

        assert first
        assert second == []
        assert session.consistency_errors() == []

    @pytest.mark.asyncio
    async def test_low_confidence_title_skips_card(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """Suggestions under the threshold go straight to the skill lookup."""
        mock_llm.set_response(
            TaskType.JOB_TITLE, '{"job_title": "Baker", "confidence": 10}'
        )
        session = await new_session(fake_backend)
        await answer(session, BIO, fake_backend)

        steps = await answer(session, "baker", fake_backend)

        assert not any(isinstance(s, JobTitleConfirmationStep) for s in steps)
        assert session.form_data["skills"] == "Baker"


class TestRejectedAnswers:
    """Tests for validation failures and warnings."""

    @pytest.mark.asyncio
    async def test_rate_below_minimum_wage(self, fake_backend: InMemoryBackendActions) -> None:
        """A rate under the floor is explained and nothing is stored."""
        session = await new_session(fake_backend)
        session.form_data.update(
            {
                "about": BIO,
                "skills": "Baker",
                "experience": "5 years",
                "location": "Leeds",
                "availability": WEEKDAYS,
                "equipment": [],
            }
        )
        session.steps.complete(session.steps.active_step_for("about").id)
        await advance(session, backend=fake_backend)
        rate = session.steps.active_step_for("hourlyRate")

        steps = await handle_user_input(session, rate.id, "£3/hour", backend=fake_backend)

        assert steps[-1].content.startswith("Hourly rate must be at least £11 per hour")
        assert "minimum wage" in steps[-1].content
        assert "hourlyRate" not in session.form_data
        assert session.steps.active_step_for("hourlyRate") is rate
        assert session.consistency_errors() == []

    @pytest.mark.asyncio
    async def test_validation_error_keeps_step_active(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """A rejected answer is explained and the same step stays open."""
        session = await new_session(fake_backend)
        about = session.steps.active_step_for("about")

        steps = await answer(session, "baking", fake_backend)

        assert [s.type for s in steps] == ["user", "bot"]
        assert steps[1].content == "Bio must be at least 10 characters long"
        assert session.steps.active_step_for("about") is about
        assert session.retry_counts["about"] == 1

    @pytest.mark.asyncio
    async def test_frustration_warns(self, fake_backend: InMemoryBackendActions) -> None:
        """Frustration earns a warning, not a support case."""
        session = await new_session(fake_backend)

        steps = await answer(session, "this is ridiculous", fake_backend)

        assert steps[-1].content == WARNING_MESSAGE
        assert not session.is_escalated
        assert session.steps.active_step_for("about") is not None

    @pytest.mark.asyncio
    async def test_answering_completed_step_fails(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """A step that was already answered cannot be answered again."""
        session = await new_session(fake_backend)
        about = session.steps.active_step_for("about")
        await answer(session, BIO, fake_backend)

        with pytest.raises(InvalidStateError):
            await handle_user_input(session, about.id, BIO, backend=fake_backend)

    @pytest.mark.asyncio
    async def test_answering_bot_step_fails(self, fake_backend: InMemoryBackendActions) -> None:
        """Only input steps take typed answers."""
        session = await new_session(fake_backend)

        with pytest.raises(InvalidStateError):
            await handle_user_input(session, 1, BIO, backend=fake_backend)


class TestEscalation:
    """Tests for support case escalation."""

    @pytest.mark.asyncio
    async def test_three_unrelated_replies_escalate(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """Two warnings, then a support case; the session then goes quiet."""
        mock_llm.set_response(
            TaskType.RELEVANCE_CHECK,
            '{"is_related": false, "confidence": 0.9, "reason": "Talks about the weather"}',
        )
        session = await new_session(fake_backend)

        first = await answer(session, "what's the weather like today", fake_backend)
        second = await answer(session, "what's the weather like today", fake_backend)
        third = await answer(session, "what's the weather like today", fake_backend)

        assert first[-1].content == WARNING_MESSAGE
        assert second[-1].content == WARNING_MESSAGE
        assert isinstance(third[-1], SupportStep)
        assert third[-1].case_id.startswith("SUPPORT-")
        assert session.is_escalated
        assert len(fake_backend.support_cases) == 1

        assert await answer(session, BIO, fake_backend) == []

    @pytest.mark.asyncio
    async def test_human_request_escalates_immediately(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """Asking for a person opens a support case straight away."""
        session = await new_session(fake_backend)

        steps = await answer(session, "I want to speak to a human", fake_backend)

        assert isinstance(steps[-1], SupportStep)
        assert "Human request" in steps[-1].reason
        assert session.support_case_id == steps[-1].case_id
        assert session.is_escalated

    @pytest.mark.asyncio
    async def test_failed_case_save_still_escalates(
        self, fake_backend: InMemoryBackendActions
    ) -> None:
        """An unsaved case is shown with an ERROR id."""
        fake_backend.failing.add("save_support_case")
        session = await new_session(fake_backend)

        steps = await answer(session, "I feel unsafe", fake_backend)

        assert steps[-1].case_id.startswith("ERROR-")
        assert session.is_escalated


class TestCommands:
    """Tests for help and support commands and help requests."""

    @pytest.mark.asyncio
    async def test_help_command(self, fake_backend: InMemoryBackendActions) -> None:
        """/help shows the help card and leaves the step open."""
        session = await new_session(fake_backend)

        steps = await answer(session, "/help", fake_backend)

        assert isinstance(steps[-1], HelpStep)
        assert session.steps.active_step_for("about") is not None
        assert "about" not in session.form_data

    @pytest.mark.asyncio
    async def test_support_command(self, fake_backend: InMemoryBackendActions) -> None:
        """support opens a case without escalating the session."""
        session = await new_session(fake_backend)

        steps = await answer(session, "support", fake_backend)

        assert isinstance(steps[-1], SupportStep)
        assert isinstance(steps[-2], BotStep)
        assert len(fake_backend.support_cases) == 1
        assert not session.is_escalated
        assert session.steps.active_step_for("about") is not None

    @pytest.mark.asyncio
    async def test_explicit_help_request(self, fake_backend: InMemoryBackendActions) -> None:
        """A plain-language help request shows the help card."""
        session = await new_session(fake_backend)

        steps = await answer(session, "How do I use this?", fake_backend)

        assert isinstance(steps[-1], HelpStep)
        assert "about" not in session.form_data

    @pytest.mark.asyncio
    async def test_borderline_help_request_clarifies(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """A confusing-question reply is met with the question again."""
        mock_llm.set_response(
            TaskType.INTENT_ANALYSIS,
            '{"action": "clarify", "confidence": 0.6, "reason": "unsure"}',
        )
        session = await new_session(fake_backend)

        steps = await answer(session, "this is confusing", fake_backend)

        assert steps[-1].content.startswith(CLARIFY_MESSAGE)
        assert "Tell me about yourself" in steps[-1].content
        mock_llm.assert_called_with_task(TaskType.INTENT_ANALYSIS)

    @pytest.mark.asyncio
    async def test_hospitality_clarification(
        self, fake_backend: InMemoryBackendActions, mock_llm: MockLLMProvider
    ) -> None:
        """Hospitality sessions re-ask with a venue-specific question."""
        mock_llm.set_response(
            TaskType.INTENT_ANALYSIS,
            '{"action": "clarify", "confidence": 0.6, "reason": "unsure"}',
        )
        session = await new_session(fake_backend, Variant.HOSPITALITY)

        steps = await answer(session, "this is confusing", fake_backend)

        assert steps[-1].content.startswith(CLARIFY_MESSAGE)
        assert "types of venues - pubs, restaurants, hotels, festivals" in steps[-1].content
        prompt = mock_llm.calls_for(TaskType.INTENT_ANALYSIS)[0]["messages"][1].content
        assert "UK hospitality onboarding" in prompt


class TestVideo:
    """Tests for attach_video."""

    async def at_video_step(self, backend: InMemoryBackendActions) -> OnboardingSession:
        session = await new_session(backend)
        session.form_data.update(
            {
                "about": BIO,
                "skills": "Baker",
                "experience": "5 years",
                "location": "Leeds",
                "availability": WEEKDAYS,
                "equipment": [],
                "hourlyRate": 15.0,
            }
        )
        about = session.steps.active_step_for("about")
        session.steps.complete(about.id)
        await advance(session, backend=backend)
        return session

    @pytest.mark.asyncio
    async def test_no_video_step(self, fake_backend: InMemoryBackendActions) -> None:
        """Uploading before the video step is an invalid state."""
        session = await new_session(fake_backend)

        with pytest.raises(InvalidStateError):
            await attach_video(session, VIDEO_URL, backend=fake_backend)

    @pytest.mark.asyncio
    async def test_invalid_url(self, fake_backend: InMemoryBackendActions) -> None:
        """A non-URL is rejected with a message."""
        session = await self.at_video_step(fake_backend)

        steps = await attach_video(session, "my video", backend=fake_backend)

        assert steps[-1].content == "Please provide a valid video URL"
        assert "videoIntro" not in session.form_data

    @pytest.mark.asyncio
    async def test_save_failure(self, fake_backend: InMemoryBackendActions) -> None:
        """A failed profile update keeps the video step open."""
        fake_backend.failing.add("update_video_url")
        session = await self.at_video_step(fake_backend)

        steps = await attach_video(session, VIDEO_URL, backend=fake_backend)

        assert steps[-1].content == VIDEO_SAVE_FAILED
        assert session.steps.active_step_for("videoIntro") is not None

    @pytest.mark.asyncio
    async def test_upload_completes_flow(self, fake_backend: InMemoryBackendActions) -> None:
        """A saved video moves on to references and the summary."""
        session = await self.at_video_step(fake_backend)

        steps = await attach_video(session, VIDEO_URL, backend=fake_backend)

        assert steps[0].content == VIDEO_UPLOADED
        assert isinstance(steps[-1], SummaryStep)


class TestResetSession:
    """Tests for reset_session."""

    @pytest.mark.asyncio
    async def test_reset_starts_over(self, fake_backend: InMemoryBackendActions) -> None:
        """Answers, transcript and escalation state are cleared."""
        session = await new_session(fake_backend)
        await answer(session, "I want to speak to a human", fake_backend)

        steps = await reset_session(session, backend=fake_backend)

        assert not session.is_escalated
        assert session.form_data == {}
        assert steps[0].id == 1
        assert steps[-1].field_name == "about"


class SlowSaveBackend(InMemoryBackendActions):
    """Backend whose profile save yields to the event loop first."""

    async def save_worker_profile_from_onboarding(
        self, payload: dict[str, Any], token: str | None
    ) -> ActionResult:
        await asyncio.sleep(0.02)
        return await super().save_worker_profile_from_onboarding(payload, token)


class TestTurnSerialization:
    """Overlapping requests on one session run one after the other."""

    @pytest.mark.asyncio
    async def test_lock_held_for_whole_turn(
        self, fake_backend: InMemoryBackendActions, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The session lock stays held while the turn waits on the typing delay."""
        session = await new_session(fake_backend)
        monkeypatch.setattr(settings, "typing_delay_seconds", 0.05)

        turn = asyncio.create_task(answer(session, BIO, fake_backend))
        await asyncio.sleep(0.01)
        assert session.lock.locked()

        await turn
        assert not session.lock.locked()

    @pytest.mark.asyncio
    async def test_overlapping_answers_apply_once(
        self, fake_backend: InMemoryBackendActions, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Two answers to the same step: one is applied, the other is refused."""
        session = await new_session(fake_backend)
        monkeypatch.setattr(settings, "typing_delay_seconds", 0.05)
        about = session.steps.active_step_for("about")

        results = await asyncio.gather(
            handle_user_input(session, about.id, BIO, backend=fake_backend),
            handle_user_input(session, about.id, BIO, backend=fake_backend),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateError)
        echoes = [s for s in session.steps if isinstance(s, UserStep) and s.field_name == "about"]
        assert len(echoes) == 1
        assert session.consistency_errors() == []

    @pytest.mark.asyncio
    async def test_reset_waits_for_running_turn(
        self, fake_backend: InMemoryBackendActions, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A reset sent mid-turn runs after the turn and leaves a clean log."""
        session = await new_session(fake_backend)
        monkeypatch.setattr(settings, "typing_delay_seconds", 0.05)

        await asyncio.gather(
            answer(session, BIO, fake_backend),
            reset_session(session, backend=fake_backend),
        )

        assert session.form_data == {}
        assert [s.field_name for s in session.steps.active_steps()] == ["about"]
        assert [s.id for s in session.steps] == list(range(1, len(session.steps) + 1))
        assert session.consistency_errors() == []

    @pytest.mark.asyncio
    async def test_double_submit_saves_once(self) -> None:
        """Two submits racing on one summary save the profile once."""
        backend = SlowSaveBackend(worker_profile_id="wp-001")
        session = OnboardingSession(user_id="user-1")
        session.form_data.update(
            {
                "about": BIO,
                "skills": "Baker",
                "experience": "5 years",
                "equipment": [{"name": "Ovens"}],
                "hourlyRate": 15.0,
                "location": LEEDS,
                "availability": WEEKDAYS,
                "videoIntro": VIDEO_URL,
            }
        )
        summary = session.steps.append(SummaryStep(summary_data={"skills": "Baker"}))

        results = await asyncio.gather(
            submit(session, backend=backend),
            submit(session, backend=backend),
            return_exceptions=True,
        )

        assert len(backend.saved_profiles) == 1
        outcomes = [r for r in results if not isinstance(r, Exception)]
        assert len(outcomes) == 1
        assert outcomes[0][0].success
        assert isinstance(next(r for r in results if isinstance(r, Exception)), InvalidStateError)
        assert summary.is_submitted
