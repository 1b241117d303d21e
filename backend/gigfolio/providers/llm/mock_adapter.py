"""Mock provider for tests.

Returns canned content per TaskType, records every call, and can be told to
raise a provider error for a task so fail-open paths can be exercised.
"""

from typing import Any

from gigfolio.providers.config import ProviderConfig
from gigfolio.providers.errors import ProviderError
from gigfolio.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)


class MockLLMProvider(LLMProvider):
    """Deterministic stand-in for GeminiAdapter.

    Attributes:
        responses: Canned content keyed by TaskType.
        errors: Exceptions to raise keyed by TaskType (take precedence).
        calls: Record of all invocations for test assertions.
        last_task: The most recent TaskType used in a call.
    """

    @property
    def provider_name(self) -> str:
        """Return 'mock'."""
        return "mock"

    def __init__(self, responses: dict[TaskType, str] | None = None) -> None:
        """Initialize mock provider with optional pre-configured responses.

        Args:
            responses: Dict mapping TaskType to response content. Tasks without
                an entry return "Mock response for {task}".
        """
        # No retries: injected errors surface on the first call
        self.config = ProviderConfig(llm_provider="mock", max_retries=0)
        self.responses: dict[TaskType, str] = dict(responses) if responses else {}
        self.errors: dict[TaskType, ProviderError] = {}
        self.calls: list[dict[str, Any]] = []
        self.last_task: TaskType | None = None

    def set_response(self, task: TaskType, content: str) -> None:
        """Set or update the response for a task type."""
        self.responses[task] = content

    def set_error(self, task: TaskType, error: ProviderError) -> None:
        """Make every call for ``task`` raise ``error``."""
        self.errors[task] = error

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
        """Record the call and return the configured content."""
        self.calls.append(
            {
                "method": "complete",
                "messages": messages,
                "task": task,
                "kwargs": {
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "stop_sequences": stop_sequences,
                    "json_mode": json_mode,
                    "response_schema": response_schema,
                    "model_override": model_override,
                },
            }
        )
        self.last_task = task

        if task in self.errors:
            raise self.errors[task]

        content = self.responses.get(task, f"Mock response for {task.value}")

        return LLMResponse(
            content=content,
            model="mock-model",
            input_tokens=100,
            output_tokens=50,
            finish_reason="STOP",
            latency_ms=10,
        )

    def get_model_for_task(self, _task: TaskType) -> str:
        """Return 'mock-model' for any task."""
        return "mock-model"

    def calls_for(self, task: TaskType) -> list[dict[str, Any]]:
        """Return the recorded calls for one task type."""
        return [c for c in self.calls if c["task"] == task]

    def assert_called_with_task(self, task: TaskType) -> None:
        """Test helper to verify a task was called.

        Raises:
            AssertionError: If the task was not called.
        """
        tasks_called = [c["task"] for c in self.calls]
        assert task in tasks_called, f"Expected {task}, got {tasks_called}"

    def assert_not_called_with_task(self, task: TaskType) -> None:
        """Test helper to verify a task was never called."""
        tasks_called = [c["task"] for c in self.calls]
        assert task not in tasks_called, f"Did not expect {task}, got {tasks_called}"
