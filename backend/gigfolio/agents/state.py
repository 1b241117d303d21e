"""LangGraph state schema for one onboarding input turn.

The graph runs without a checkpointer: the session object itself is the
durable state, and the turn state only carries it through the nodes along
with what earlier nodes decided.
"""

from typing import Any, TypedDict

from gigfolio.agents.session import OnboardingSession
from gigfolio.services.backend_actions import BackendActions
from gigfolio.services.field_validators import ValidationSuccess


class OnboardingTurnState(TypedDict, total=False):
    """State for the input-handling graph.

    Attributes:
        session: Session being advanced (mutated in place by the nodes).
        backend: Backend actions client.
        token: Worker's bearer token, forwarded to backend actions.
        step_id: Input step being answered.
        value: Raw answer.
        field_name: Field bound to the input step.
        prompt: Bot prompt that preceded the input step.
        outcome: Successful validation result.
        halted: Set by any node that ends the turn early.
    """

    session: OnboardingSession
    backend: BackendActions
    token: str | None
    step_id: int
    value: Any
    field_name: str
    prompt: str | None
    outcome: ValidationSuccess | None
    halted: bool
