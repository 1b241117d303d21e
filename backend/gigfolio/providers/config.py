"""Provider configuration management."""

import os
from dataclasses import dataclass


@dataclass
class ProviderConfig:
    """Centralized generative-AI provider configuration.

    Attributes:
        llm_provider: Which provider to use ("gemini" or "mock").
        google_api_key: Google AI API key (loaded from environment).
        gemini_model_routing: Per-task model overrides, keyed by TaskType value.
        default_max_tokens: Default max output tokens.
        default_temperature: Default sampling temperature.
        max_retries: Max retry attempts for transient errors within one call.
        retry_base_delay_ms: Base delay for exponential backoff.
        retry_max_delay_ms: Max delay cap for exponential backoff.
    """

    llm_provider: str = "gemini"
    google_api_key: str | None = None
    gemini_model_routing: dict[str, str] | None = None

    # Onboarding answers are short; responses are small JSON objects
    default_max_tokens: int = 1024
    default_temperature: float = 0.3

    max_retries: int = 2
    retry_base_delay_ms: int = 500
    retry_max_delay_ms: int = 5000

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Load configuration from environment variables.

        ``GEMINI_MODEL`` overrides the model for every task at once.

        Returns:
            ProviderConfig instance with values from environment.
        """
        routing = None
        model = os.getenv("GEMINI_MODEL")
        if model:
            from gigfolio.providers.llm.base import TaskType

            routing = {task.value: model for task in TaskType}

        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", "gemini"),
            google_api_key=os.getenv("GOOGLE_API_KEY"),
            gemini_model_routing=routing,
            default_max_tokens=int(os.getenv("DEFAULT_MAX_TOKENS", "1024")),
            default_temperature=float(os.getenv("DEFAULT_TEMPERATURE", "0.3")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "2")),
        )
