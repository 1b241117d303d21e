import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gigfolio.agents.onboarding import reset_onboarding_graph
from gigfolio.agents.session import reset_session_store
from gigfolio.core.config import settings
from gigfolio.core.rate_limiting import limiter
from gigfolio.providers import factory
from gigfolio.providers.llm.base import TaskType
from gigfolio.providers.llm.mock_adapter import MockLLMProvider
from gigfolio.services.backend_actions import (
    InMemoryBackendActions,
    get_backend_actions,
    reset_backend_actions,
)

# Test user ID (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

# Security: test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID | str = TEST_USER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: Value of the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(autouse=True)
def _isolated_conversation(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Fast, deterministic conversations with no shared state between tests.

    The typing pause is removed, prompts are not personalized, and a bare
    MockLLMProvider is installed so no test ever reaches the real model
    (every AI helper then takes its fail-open path unless a test
    configures a response).
    """
    monkeypatch.setattr(settings, "typing_delay_seconds", 0.0)
    monkeypatch.setattr(settings, "personalized_prompts", False)
    factory._llm_provider = MockLLMProvider()

    yield

    factory.reset_providers()
    reset_session_store()
    reset_onboarding_graph()
    reset_backend_actions()


@pytest.fixture
def mock_llm() -> Iterator[MockLLMProvider]:
    """Fixture that provides mock LLM and resets after test.

    Injects a MockLLMProvider into the factory singleton. Tasks without a
    configured response get non-JSON text, which the structured helpers
    treat as an AI failure.

    Yields:
        MockLLMProvider instance with pre-configured responses.
    """
    mock = MockLLMProvider(
        {
            TaskType.PROFILE_SUMMARY: '{"summary": "A reliable baker with a decade in busy kitchens."}',
        }
    )

    # Inject mock into factory singleton
    factory._llm_provider = mock

    yield mock

    # Reset after test
    factory.reset_providers()


@pytest.fixture
def fake_backend() -> InMemoryBackendActions:
    """In-memory backend actions with an empty profile."""
    return InMemoryBackendActions(worker_profile_id="wp-001")


@pytest_asyncio.fixture
async def client(
    monkeypatch: pytest.MonkeyPatch,
    fake_backend: InMemoryBackendActions,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app in local mode (DEFAULT_USER_ID).

    Rate limiting is disabled and backend actions go to ``fake_backend``.
    """
    from gigfolio.main import app

    monkeypatch.setattr(settings, "auth_enabled", False)
    monkeypatch.setattr(settings, "default_user_id", TEST_USER_ID)
    monkeypatch.setattr(limiter, "enabled", False)
    app.dependency_overrides[get_backend_actions] = lambda: fake_backend

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
