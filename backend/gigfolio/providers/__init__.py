"""Generative-AI provider abstraction layer.

Exports:
    Error classes for provider error handling
    ProviderConfig for configuration
    Factory functions for provider instances
"""

from gigfolio.providers.config import ProviderConfig
from gigfolio.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TransientError,
)
from gigfolio.providers.factory import get_llm_provider, reset_providers

__all__ = [
    # Config
    "ProviderConfig",
    # Errors
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
    "ProviderTimeoutError",
    # Factory
    "get_llm_provider",
    "reset_providers",
]
