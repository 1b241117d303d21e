"""Client for the profile backend that owns persistence.

The onboarding service never writes to a database itself. Profile creation,
skill lookups, support cases and the Stripe link all live behind the main
backend API, reached here over httpx. Every action returns an ActionResult;
transport and HTTP failures are logged and reported as ``success=False``,
never raised.

InMemoryBackendActions implements the same protocol for local runs and
tests.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from gigfolio.core.config import settings

logger = logging.getLogger(__name__)

# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one backend action.

    Attributes:
        success: True when the backend accepted the call.
        data: Response payload (shape depends on the action).
        error: Short failure description.
    """

    success: bool
    data: Any = None
    error: str | None = None


@dataclass(frozen=True)
class ExistingProfileData:
    """What the worker already has on file, for the reuse-or-edit prompt."""

    has_full_bio: bool = False
    full_bio: str | None = None
    has_location: bool = False
    location: Any = None
    has_availability: bool = False
    availability: Any = None
    has_skills: bool = False
    full_name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> "ExistingProfileData":
        """Build from the backend's camelCase response body."""
        if not payload:
            return cls()
        profile = payload.get("profileData") or {}
        return cls(
            has_full_bio=bool(payload.get("hasFullBio")),
            full_bio=profile.get("fullBio"),
            has_location=bool(payload.get("hasLocation")),
            location=profile.get("location"),
            has_availability=bool(payload.get("hasAvailability")),
            availability=profile.get("availabilityJson"),
            has_skills=bool(payload.get("hasSkills")),
            full_name=profile.get("fullName"),
        )


# =============================================================================
# Protocol
# =============================================================================


class BackendActions(Protocol):
    """Persistence actions the onboarding flow depends on."""

    async def create_worker_profile(self, token: str | None) -> ActionResult: ...

    async def save_worker_profile_from_onboarding(
        self, payload: dict[str, Any], token: str | None
    ) -> ActionResult: ...

    async def update_video_url(self, video_url: str, token: str | None) -> ActionResult: ...

    async def check_existing_profile_data(self, token: str | None) -> ActionResult: ...

    async def check_existing_skill_title(
        self, title: str, token: str | None
    ) -> ActionResult: ...

    async def check_existing_similar_skill(
        self, skill_name: str, worker_profile_id: str | None, token: str | None
    ) -> ActionResult: ...

    async def save_support_case(
        self, payload: dict[str, Any], token: str | None
    ) -> ActionResult: ...

    async def create_stripe_account_link(self, token: str | None) -> ActionResult: ...


# =============================================================================
# HTTP implementation
# =============================================================================


class HTTPBackendActions:
    """BackendActions over the backend's JSON API.

    Args:
        base_url: API root, e.g. "https://api.example.com/api".
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None,
        json: dict[str, Any] | None = None,
    ) -> ActionResult:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=json, headers=headers)
                resp.raise_for_status()
                body = resp.json() if resp.content else {}
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Backend action %s %s failed with HTTP %d",
                method,
                path,
                e.response.status_code,
            )
            return ActionResult(success=False, error=_error_from_response(e.response))
        except httpx.HTTPError as e:
            logger.warning("Backend action %s %s unreachable: %s", method, path, e)
            return ActionResult(success=False, error="Profile service is unavailable")
        except ValueError:
            logger.warning("Backend action %s %s returned invalid JSON", method, path)
            return ActionResult(success=False, error="Invalid response from profile service")

        if isinstance(body, dict):
            if body.get("success") is False:
                return ActionResult(success=False, error=str(body.get("error") or "Unknown error"))
            return ActionResult(success=True, data=body.get("data", body))
        return ActionResult(success=True, data=body)

    async def create_worker_profile(self, token: str | None) -> ActionResult:
        return await self._request("POST", "/worker-profiles", token)

    async def save_worker_profile_from_onboarding(
        self, payload: dict[str, Any], token: str | None
    ) -> ActionResult:
        return await self._request("POST", "/worker-profiles/onboarding", token, payload)

    async def update_video_url(self, video_url: str, token: str | None) -> ActionResult:
        return await self._request(
            "PATCH", "/worker-profiles/video", token, {"videoUrl": video_url}
        )

    async def check_existing_profile_data(self, token: str | None) -> ActionResult:
        return await self._request("GET", "/worker-profiles/existing-data", token)

    async def check_existing_skill_title(self, title: str, token: str | None) -> ActionResult:
        return await self._request("POST", "/skills/check-title", token, {"title": title})

    async def check_existing_similar_skill(
        self, skill_name: str, worker_profile_id: str | None, token: str | None
    ) -> ActionResult:
        return await self._request(
            "POST",
            "/skills/check-similar",
            token,
            {"skillName": skill_name, "workerProfileId": worker_profile_id},
        )

    async def save_support_case(self, payload: dict[str, Any], token: str | None) -> ActionResult:
        return await self._request("POST", "/support-cases", token, payload)

    async def create_stripe_account_link(self, token: str | None) -> ActionResult:
        return await self._request("POST", "/stripe/account-link", token)


def _error_from_response(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or f"HTTP {response.status_code}")
        if error:
            return str(error)
    return f"HTTP {response.status_code}"


# =============================================================================
# In-memory implementation
# =============================================================================


@dataclass
class InMemoryBackendActions:
    """BackendActions kept in process memory.

    Attributes:
        existing_profile: Raw existing-profile payload returned to callers.
        skills: Skills already on the worker's profile
            (``{"id", "name", "experienceYears", "agreedRate"}``).
        saved_profiles: Payloads passed to save_worker_profile_from_onboarding.
        support_cases: Payloads passed to save_support_case.
        video_urls: URLs passed to update_video_url.
        failing: Action names that should report failure.
        stripe_url: URL returned by create_stripe_account_link.
        worker_profile_id: Id handed out by create_worker_profile.
    """

    existing_profile: dict[str, Any] | None = None
    skills: list[dict[str, Any]] = field(default_factory=list)
    saved_profiles: list[dict[str, Any]] = field(default_factory=list)
    support_cases: list[dict[str, Any]] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)
    stripe_url: str = "https://connect.stripe.com/setup/e/acct_local"
    worker_profile_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def _fail(self, action: str) -> ActionResult | None:
        if action in self.failing:
            return ActionResult(success=False, error=f"{action} failed")
        return None

    async def create_worker_profile(self, token: str | None) -> ActionResult:
        return self._fail("create_worker_profile") or ActionResult(
            success=True, data={"workerProfileId": self.worker_profile_id}
        )

    async def save_worker_profile_from_onboarding(
        self, payload: dict[str, Any], token: str | None
    ) -> ActionResult:
        failure = self._fail("save_worker_profile_from_onboarding")
        if failure:
            return failure
        self.saved_profiles.append(payload)
        return ActionResult(success=True, data={"workerProfileId": self.worker_profile_id})

    async def update_video_url(self, video_url: str, token: str | None) -> ActionResult:
        failure = self._fail("update_video_url")
        if failure:
            return failure
        self.video_urls.append(video_url)
        return ActionResult(success=True, data={"videoUrl": video_url})

    async def check_existing_profile_data(self, token: str | None) -> ActionResult:
        return self._fail("check_existing_profile_data") or ActionResult(
            success=True, data=self.existing_profile or {}
        )

    async def check_existing_skill_title(self, title: str, token: str | None) -> ActionResult:
        failure = self._fail("check_existing_skill_title")
        if failure:
            return failure
        exists = any(s.get("name", "").lower() == title.lower() for s in self.skills)
        return ActionResult(success=True, data={"exists": exists})

    async def check_existing_similar_skill(
        self, skill_name: str, worker_profile_id: str | None, token: str | None
    ) -> ActionResult:
        failure = self._fail("check_existing_similar_skill")
        if failure:
            return failure
        needle = skill_name.strip().lower()
        similar = [
            s
            for s in self.skills
            if needle and (needle in s.get("name", "").lower() or s.get("name", "").lower() in needle)
        ]
        return ActionResult(success=True, data={"exists": bool(similar), "similarSkills": similar})

    async def save_support_case(self, payload: dict[str, Any], token: str | None) -> ActionResult:
        failure = self._fail("save_support_case")
        if failure:
            return failure
        self.support_cases.append(payload)
        return ActionResult(success=True, data={"id": len(self.support_cases)})

    async def create_stripe_account_link(self, token: str | None) -> ActionResult:
        return self._fail("create_stripe_account_link") or ActionResult(
            success=True, data={"url": self.stripe_url}
        )


# =============================================================================
# Singleton
# =============================================================================

_backend_actions: BackendActions | None = None


def get_backend_actions() -> BackendActions:
    """Get or create the backend actions client.

    An empty BACKEND_API_URL selects the in-memory implementation.
    """
    global _backend_actions
    if _backend_actions is None:
        if settings.backend_api_url:
            _backend_actions = HTTPBackendActions(
                settings.backend_api_url, timeout=settings.backend_timeout_seconds
            )
        else:
            _backend_actions = InMemoryBackendActions()
    return _backend_actions


def reset_backend_actions() -> None:
    """Drop the singleton (tests)."""
    global _backend_actions
    _backend_actions = None
