"""Onboarding session state: FormData, the step log and the session store.

Sessions live in process memory and are scoped to the owning user. Nothing
here is persisted: a session that sees no request for SESSION_TTL_MINUTES is
dropped, the way an abandoned chat page would be.
"""

import asyncio
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from gigfolio.agents.field_catalog import Catalog, Variant, get_catalog
from gigfolio.core.config import settings
from gigfolio.core.errors import InvalidStateError, NotFoundError
from gigfolio.schemas.steps import (
    BotStep,
    FieldStep,
    HashtagGenerationStep,
    StepBase,
    SummaryStep,
    TypingStep,
    UserStep,
)
from gigfolio.services.backend_actions import ExistingProfileData
from gigfolio.services.escalation import EscalationTracker

S = TypeVar("S", bound=StepBase)

# =============================================================================
# Step log
# =============================================================================


class StepLog:
    """Append-only conversation transcript.

    Steps are never reordered or removed (except by reset()). The only
    in-place mutations are completing a step and marking the summary
    submitted.
    """

    def __init__(self) -> None:
        self._steps: list[StepBase] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepBase]:
        return iter(self._steps)

    def append(self, step: S) -> S:
        """Assign the next id and append."""
        step.id = self._next_id
        self._next_id += 1
        self._steps.append(step)
        return step

    def bot(self, content: str) -> BotStep:
        return self.append(BotStep(content=content))

    def get(self, step_id: int) -> StepBase | None:
        return next((s for s in self._steps if s.id == step_id), None)

    def since(self, mark: int) -> list[StepBase]:
        """Steps appended after the log had ``mark`` entries."""
        return list(self._steps[mark:])

    def complete(self, step_id: int, choice: str | None = None) -> StepBase:
        """Mark a step complete, recording the confirmed choice if given.

        Raises:
            InvalidStateError: Unknown step or a step with no completion flag.
        """
        step = self.get(step_id)
        if not isinstance(step, (FieldStep, TypingStep, HashtagGenerationStep)):
            raise InvalidStateError(f"Step {step_id} cannot be completed")
        step.is_complete = True
        if choice is not None and hasattr(step, "confirmed_choice"):
            step.confirmed_choice = choice
        return step

    def mark_submitted(self, step_id: int) -> SummaryStep:
        step = self.get(step_id)
        if not isinstance(step, SummaryStep):
            raise InvalidStateError(f"Step {step_id} is not a summary step")
        step.is_submitted = True
        return step

    def active_steps(self) -> list[FieldStep]:
        return [s for s in self._steps if isinstance(s, FieldStep) and not s.is_complete]

    def active_step_for(self, field_name: str) -> FieldStep | None:
        """The incomplete step bound to ``field_name``, if any."""
        return next((s for s in self.active_steps() if s.field_name == field_name), None)

    def last_of_type(self, step_type: type[S]) -> S | None:
        for step in reversed(self._steps):
            if isinstance(step, step_type):
                return step
        return None

    def prompt_before(self, step_id: int) -> str | None:
        """Content of the last bot message before ``step_id``."""
        prompt = None
        for step in self._steps:
            if step.id >= step_id:
                break
            if isinstance(step, BotStep) and step.content:
                prompt = step.content
        return prompt

    def recent_user_messages(self, limit: int = 5) -> list[str]:
        messages = [s.content for s in self._steps if isinstance(s, UserStep)]
        return messages[-limit:]

    def reset(self) -> None:
        self._steps.clear()
        self._next_id = 1

    def to_list(self) -> list[StepBase]:
        return list(self._steps)


# =============================================================================
# Session
# =============================================================================


def _new_tracker() -> EscalationTracker:
    return EscalationTracker(threshold=settings.escalation_threshold)


def _expiry(ttl_minutes: int) -> datetime:
    return datetime.now(UTC) + timedelta(minutes=ttl_minutes)


def has_value(field_name: str, value: Any) -> bool:
    """FormData presence check.

    None, blank strings and empty mappings are missing. An empty list only
    counts as an answer for equipment ("no equipment").
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return bool(value) or field_name == "equipment"
    if isinstance(value, dict):
        return bool(value)
    return True


@dataclass
class OnboardingSession:
    """One worker's onboarding conversation.

    Attributes:
        user_id: Owning user.
        variant: Catalog variant.
        id: Session id.
        form_data: Answers by field name. Keys are only removed by reset().
        steps: Conversation step log.
        existing_profile: Snapshot of data already on the worker's profile.
        worker_profile_id: Backend worker profile id.
        declined_existing: Fields where the worker chose to edit existing data.
        escalation: Unrelated-reply tracker.
        support_case_id: Set once a support case was created.
        summary_emitted: Set once the completion sequence was emitted.
        retry_counts: Rejected answers per field.
        is_returning_user: The worker already had profile data on file.
        expires_at: When the store drops the session; pushed back on every
            lookup.
        lock: Held for the whole of one turn so overlapping requests on the
            same session run one after the other.
    """

    user_id: str
    variant: Variant = Variant.GENERIC
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    form_data: dict[str, Any] = field(default_factory=dict)
    steps: StepLog = field(default_factory=StepLog)
    existing_profile: ExistingProfileData = field(default_factory=ExistingProfileData)
    worker_profile_id: str | None = None
    declined_existing: set[str] = field(default_factory=set)
    escalation: EscalationTracker = field(default_factory=_new_tracker)
    support_case_id: str | None = None
    summary_emitted: bool = False
    retry_counts: dict[str, int] = field(default_factory=dict)
    is_returning_user: bool = False
    expires_at: datetime = field(default_factory=lambda: _expiry(settings.session_ttl_minutes))
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def catalog(self) -> Catalog:
        return get_catalog(self.variant)

    @property
    def is_escalated(self) -> bool:
        return self.escalation.is_escalated

    def set_field(self, name: str, value: Any) -> None:
        self.form_data[name] = value
        self.retry_counts.pop(name, None)

    def record_retry(self, name: str) -> int:
        self.retry_counts[name] = self.retry_counts.get(name, 0) + 1
        return self.retry_counts[name]

    def consistency_errors(self) -> list[str]:
        """Violations of the step log / FormData invariants.

        - at most one active step per field;
        - a field whose steps are all complete has a FormData value.
        """
        errors: list[str] = []
        active: dict[str, int] = {}
        completed: set[str] = set()
        for step in self.steps:
            if not isinstance(step, FieldStep):
                continue
            if step.is_complete:
                completed.add(step.field_name)
            else:
                active[step.field_name] = active.get(step.field_name, 0) + 1

        for name, count in active.items():
            if count > 1:
                errors.append(f"{count} active steps for {name}")
        for name in completed - active.keys():
            if has_value(name, self.form_data.get(name)):
                continue
            errors.append(f"{name} completed without a value")
        return errors

    def reset(self) -> None:
        """Full reset: answers, transcript and escalation state."""
        self.form_data.clear()
        self.steps.reset()
        self.declined_existing.clear()
        self.escalation.reset()
        self.support_case_id = None
        self.summary_emitted = False
        self.retry_counts.clear()


# =============================================================================
# Store
# =============================================================================


class SessionStore:
    """In-process sessions keyed by id, scoped to their owner.

    Each lookup pushes the session's expiry back by the TTL; sessions left
    alone longer than that are removed on the next create() or get().
    Safe for a single event loop, not for multi-threaded access.
    """

    def __init__(self, ttl_minutes: int | None = None) -> None:
        """Initialize the store.

        Args:
            ttl_minutes: Idle time before a session is dropped. Defaults to
                SESSION_TTL_MINUTES.
        """
        self._sessions: dict[str, OnboardingSession] = {}
        self._ttl_minutes = ttl_minutes if ttl_minutes is not None else settings.session_ttl_minutes

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, user_id: str, variant: Variant | str = Variant.GENERIC) -> OnboardingSession:
        self.cleanup_expired()
        session = OnboardingSession(
            user_id=user_id,
            variant=Variant(variant),
            expires_at=_expiry(self._ttl_minutes),
        )
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str, user_id: str) -> OnboardingSession:
        """Look up a session owned by ``user_id`` and extend its expiry.

        Raises:
            NotFoundError: Missing, expired, or owned by someone else.
        """
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise NotFoundError("Onboarding session", session_id)
        if datetime.now(UTC) > session.expires_at:
            del self._sessions[session_id]
            raise NotFoundError("Onboarding session", session_id)
        session.expires_at = _expiry(self._ttl_minutes)
        return session

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def cleanup_expired(self) -> int:
        """Remove all expired sessions.

        Returns:
            Number of sessions removed.
        """
        now = datetime.now(UTC)
        expired = [sid for sid, session in self._sessions.items() if now > session.expires_at]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


def reset_session_store() -> None:
    """Drop all sessions (tests)."""
    global _session_store
    _session_store = None
