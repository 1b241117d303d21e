"""Abstract base class and types for generative-AI providers.

The onboarding flow only ever asks the model for small JSON objects, so the
interface is a single non-streaming ``complete`` call with optional JSON mode
and an optional response schema.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gigfolio.providers.config import ProviderConfig


class TaskType(Enum):
    """Task types for model routing and test fixtures.

    Every AI call the onboarding flow makes belongs to exactly one of these.
    """

    FIELD_SANITIZATION = "field_sanitization"
    RELEVANCE_CHECK = "relevance_check"
    JOB_TITLE = "job_title"
    SKILL_EXTRACTION = "skill_extraction"
    INTENT_ANALYSIS = "intent_analysis"
    EQUIPMENT_PARSING = "equipment_parsing"
    HASHTAGS = "hashtags"
    PROFILE_SUMMARY = "profile_summary"
    PROMPT_PERSONALIZATION = "prompt_personalization"
    VIDEO_SCRIPT = "video_script"


@dataclass
class LLMMessage:
    """Provider-agnostic message.

    Attributes:
        role: "system", "user" or "assistant".
        content: Text content.
    """

    role: str
    content: str


@dataclass
class LLMResponse:
    """Provider-agnostic response.

    Attributes:
        content: Text response (None when the model returned nothing).
        model: Actual model used (for logging).
        input_tokens: Number of input tokens used.
        output_tokens: Number of output tokens generated.
        finish_reason: Why generation stopped ("STOP", "MAX_TOKENS", ...).
        latency_ms: Response time in milliseconds.
    """

    content: str | None
    model: str
    input_tokens: int
    output_tokens: int
    finish_reason: str
    latency_ms: float


class LLMProvider(ABC):
    """Abstract base class for generative-AI providers."""

    def __init__(self, config: "ProviderConfig") -> None:
        """Initialize with provider configuration.

        Args:
            config: Provider configuration including API keys and defaults.
        """
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'gemini')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        task: TaskType,
        max_tokens: int | None = None,
        temperature: float | None = None,
        stop_sequences: list[str] | None = None,
        json_mode: bool = False,
        response_schema: dict[str, Any] | None = None,
        model_override: str | None = None,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            messages: Conversation as list of LLMMessage.
            task: Task type for model routing.
            max_tokens: Override default max tokens.
            temperature: Override default temperature.
            stop_sequences: Custom stop sequences.
            json_mode: If True, ask the provider for JSON output.
            response_schema: JSON schema the output must follow (implies
                json_mode for providers that support schemas natively).
            model_override: Use this model instead of the routing table.

        Returns:
            LLMResponse with the text content.

        Raises:
            ProviderError: On API failure.
        """
        ...

    @abstractmethod
    def get_model_for_task(self, task: TaskType) -> str:
        """Return the model identifier for a given task.

        Args:
            task: The task type to get the model for.

        Returns:
            Model identifier string (e.g., "gemini-2.0-flash").
        """
        ...
