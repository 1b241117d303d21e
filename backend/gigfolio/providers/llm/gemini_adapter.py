"""Google Gemini adapter.

Uses the unified google-genai SDK. All onboarding tasks default to
gemini-2.0-flash; individual tasks can be rerouted through
ProviderConfig.gemini_model_routing.
"""

import time
from typing import TYPE_CHECKING, Any

import structlog
from google import genai
from google.genai import types

from gigfolio.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from gigfolio.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)

if TYPE_CHECKING:
    from gigfolio.providers.config import ProviderConfig

logger = structlog.get_logger()


DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"

# Summaries and scripts are read by people, so they get the stronger model.
DEFAULT_GEMINI_ROUTING: dict[str, str] = {
    TaskType.PROFILE_SUMMARY.value: "gemini-2.5-flash",
    TaskType.VIDEO_SCRIPT.value: "gemini-2.5-flash",
}


def _classify_gemini_error(error: Exception) -> ProviderError:
    """Map Gemini exceptions to internal error taxonomy."""
    error_msg = str(error).lower()
    if ("resource" in error_msg and "exhausted" in error_msg) or "429" in error_msg:
        return RateLimitError(str(error))
    if "permission" in error_msg or "unauthenticated" in error_msg or "api key" in error_msg:
        return AuthenticationError(str(error))
    if "not found" in error_msg and "model" in error_msg:
        return ModelNotFoundError(str(error))
    if "context" in error_msg or "token" in error_msg:
        return ContextLengthError(str(error))
    if "safety" in error_msg or "blocked" in error_msg:
        return ContentFilterError(str(error))
    if (
        "unavailable" in error_msg
        or "503" in error_msg
        or "deadline" in error_msg
        or "timeout" in error_msg
    ):
        return TransientError(str(error))
    return ProviderError(str(error))


def _convert_gemini_messages(
    messages: list[LLMMessage],
) -> tuple[str | None, list[types.Content]]:
    """Split out the system instruction and map assistant -> model."""
    system_parts: list[str] = []
    contents: list[types.Content] = []

    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
            continue
        role = "model" if msg.role == "assistant" else "user"
        contents.append(types.Content(role=role, parts=[types.Part(text=msg.content)]))

    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


def _first_candidate_text(response: Any) -> tuple[str | None, str]:
    """Return (text, finish_reason) for the first candidate."""
    if not response.candidates:
        return None, "UNKNOWN"
    candidate = response.candidates[0]
    finish_reason = candidate.finish_reason.name if candidate.finish_reason else "UNKNOWN"
    if not candidate.content or not candidate.content.parts:
        return None, finish_reason
    texts = [part.text for part in candidate.content.parts if part.text]
    return ("".join(texts) or None), finish_reason


class GeminiAdapter(LLMProvider):
    """Google Gemini adapter using the google-genai SDK."""

    @property
    def provider_name(self) -> str:
        """Return 'gemini'."""
        return "gemini"

    def __init__(self, config: "ProviderConfig") -> None:
        """Initialize Gemini adapter.

        Args:
            config: Provider configuration with Google API key.
        """
        super().__init__(config)
        self.client = genai.Client(api_key=config.google_api_key)
        self.model_routing = {**DEFAULT_GEMINI_ROUTING}
        if config.gemini_model_routing:
            self.model_routing.update(config.gemini_model_routing)

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
        """Generate completion using Gemini."""
        model_name = model_override or self.get_model_for_task(task)
        system_instruction, contents = _convert_gemini_messages(messages)

        wants_json = json_mode or response_schema is not None
        gen_config = types.GenerateContentConfig(
            max_output_tokens=max_tokens or self.config.default_max_tokens,
            temperature=(
                temperature if temperature is not None else self.config.default_temperature
            ),
            stop_sequences=stop_sequences or None,
            system_instruction=system_instruction,
            response_mime_type="application/json" if wants_json else None,
            response_json_schema=response_schema,
        )

        logger.info(
            "llm_request_start",
            provider="gemini",
            model=model_name,
            task=task.value,
            message_count=len(messages),
        )

        start_time = time.monotonic()

        try:
            response = await self.client.aio.models.generate_content(
                model=model_name,
                contents=contents,  # type: ignore[arg-type]
                config=gen_config,
            )
        except Exception as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                "llm_request_failed",
                provider="gemini",
                model=model_name,
                task=task.value,
                error=str(e)[:200],
                error_type=type(e).__name__,
                latency_ms=latency_ms,
            )
            raise _classify_gemini_error(e) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        content, finish_reason = _first_candidate_text(response)

        usage = response.usage_metadata
        input_tokens = (usage.prompt_token_count if usage else 0) or 0
        output_tokens = (usage.candidates_token_count if usage else 0) or 0

        logger.info(
            "llm_request_complete",
            provider="gemini",
            model=model_name,
            task=task.value,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
            latency_ms=latency_ms,
        )

    def get_model_for_task(self, task: TaskType) -> str:
        """Get model for task using routing table.

        Args:
            task: The task type to get the model for.

        Returns:
            Model identifier string (e.g., "gemini-2.0-flash").
        """
        return self.model_routing.get(task.value, DEFAULT_GEMINI_MODEL)
