"""Provider error taxonomy.

Adapters translate SDK exceptions into these classes so callers never import
vendor exception types. ``with_retries`` retries the transient ones; the
structured-generation layer turns every one of them into a fail-open result.
"""


__all__ = [
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
    "ProviderTimeoutError",
]


class ProviderError(Exception):
    """Base class for all provider errors."""

    pass


class RateLimitError(ProviderError):
    """Provider quota exhausted.

    Carries the provider's retry hint when one was given.
    """

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        """Initialize RateLimitError.

        Args:
            message: Error description from the provider.
            retry_after_seconds: Optional hint from provider on when to retry.
        """
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class AuthenticationError(ProviderError):
    """API key missing, invalid or lacking permission. Not retryable."""

    pass


class ModelNotFoundError(ProviderError):
    """Configured model name is unknown to the provider."""

    pass


class ContentFilterError(ProviderError):
    """The provider's safety filter blocked the prompt or the answer."""

    pass


class ContextLengthError(ProviderError):
    """Prompt too long for the model."""

    pass


class TransientError(ProviderError):
    """Network failure or provider overload. Safe to retry."""

    pass


class ProviderTimeoutError(TransientError):
    """The call did not finish within the caller's deadline."""

    pass
