"""Application configuration loaded from environment variables.

Settings for the API surface, the generative-AI provider, the persistence
backend, authentication and onboarding business rules. Uses pydantic-settings
for validation and .env file support.
"""

import uuid

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS
    # Never "*": the web client sends the bearer token with credentials.
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Origin of the web client, used to build shareable recommendation links
    app_origin: str = "http://localhost:3000"

    # Generative AI
    google_api_key: str = ""

    # Persistence backend (profile, skills, support cases, Stripe links)
    # Empty selects the in-memory implementation (local development, tests)
    backend_api_url: str = ""
    backend_timeout_seconds: float = 10.0

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    # Local mode: DEFAULT_USER_ID provides user context without a token
    # Hosted mode: auth_enabled=True, bearer JWT required on every request
    default_user_id: uuid.UUID | None = None
    auth_enabled: bool = False
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "able-gigfolio"
    auth_audience: str = "able-gigfolio"

    # Wage rules (GBP)
    min_hourly_rate: float = 11.0
    max_hourly_rate: float = 500.0
    hours_per_day: int = 8
    hours_per_week: int = 40

    # Conversation pacing and gates
    job_title_confidence_threshold: int = 30  # percent
    escalation_threshold: int = 3  # unrelated replies before a support case
    typing_delay_seconds: float = 1.0
    summary_timeout_seconds: float = 10.0
    personalized_prompts: bool = False
    session_ttl_minutes: int = 60  # idle time before a session is dropped

    # Rate Limiting
    # Limits AI-calling endpoints to prevent abuse and cost explosion
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_llm: str = "20/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_settings(self) -> "Settings":
        """Validate business-rule and production security settings.

        Checks:
        - Minimum hourly rate is positive and below the maximum
        - Day/week hour divisors are positive
        - Confidence threshold is a percentage, escalation threshold >= 1
        - Session TTL is positive
        - CORS must not use wildcard origin
        - AUTH_SECRET must be set and >= 32 chars when auth is enabled in production
        """
        if self.min_hourly_rate <= 0:
            msg = f"MIN_HOURLY_RATE must be positive. Got: {self.min_hourly_rate}"
            raise ValueError(msg)
        if self.max_hourly_rate <= self.min_hourly_rate:
            msg = (
                "MAX_HOURLY_RATE must be greater than MIN_HOURLY_RATE. "
                f"Got: {self.max_hourly_rate} <= {self.min_hourly_rate}"
            )
            raise ValueError(msg)
        if self.hours_per_day <= 0 or self.hours_per_week <= 0:
            msg = "HOURS_PER_DAY and HOURS_PER_WEEK must be positive."
            raise ValueError(msg)

        if not 0 <= self.job_title_confidence_threshold <= 100:
            msg = (
                "JOB_TITLE_CONFIDENCE_THRESHOLD must be between 0 and 100. "
                f"Got: {self.job_title_confidence_threshold}"
            )
            raise ValueError(msg)
        if self.session_ttl_minutes <= 0:
            msg = f"SESSION_TTL_MINUTES must be positive. Got: {self.session_ttl_minutes}"
            raise ValueError(msg)
        if self.escalation_threshold < 1:
            msg = (
                "ESCALATION_THRESHOLD must be at least 1. "
                f"Got: {self.escalation_threshold}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production" and self.auth_enabled:
            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set when AUTH_ENABLED=true in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
