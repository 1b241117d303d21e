"""LLM provider interface and adapters."""

from gigfolio.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)
from gigfolio.providers.llm.gemini_adapter import GeminiAdapter
from gigfolio.providers.llm.mock_adapter import MockLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "TaskType",
    "GeminiAdapter",
    "MockLLMProvider",
]
