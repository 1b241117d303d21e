"""Pydantic request/response schemas for API endpoints."""

from gigfolio.schemas.onboarding import (
    ChoiceRequest,
    SessionView,
    StartSessionRequest,
    SubmitInputRequest,
    SubmitResult,
    TurnResult,
    VideoRequest,
)
from gigfolio.schemas.steps import ChatStep

__all__ = [
    # Steps
    "ChatStep",
    # Onboarding
    "ChoiceRequest",
    "SessionView",
    "StartSessionRequest",
    "SubmitInputRequest",
    "SubmitResult",
    "TurnResult",
    "VideoRequest",
]
