"""Rate limiting configuration using slowapi.

Prevents API abuse and generative-AI cost explosion by limiting request
frequency on endpoints that call the model.

When auth is enabled, rate limiting keys on the JWT subject (per-user) so
users behind a shared IP don't starve each other. Unauthenticated requests
fall back to IP-based keying.

Usage in routers:
    from gigfolio.core.rate_limiting import limiter

    @router.post("/sessions/{session_id}/inputs")
    @limiter.limit(settings.rate_limit_llm)
    async def submit_input(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from gigfolio.core.config import settings

_BEARER_PREFIX = "bearer "


def extract_bearer_token(request: Request) -> str | None:
    """Return the raw token from an ``Authorization: Bearer ...`` header."""
    header = request.headers.get("authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Auth disabled: "{ip}" (local dev mode)
    - Auth enabled + valid JWT: "user:{sub}"
    - Auth enabled + no/invalid JWT: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    if not settings.auth_enabled:
        return get_remote_address(request)

    # Only the sub claim is needed for keying. Full validation happens in deps.py.
    token = extract_bearer_token(request)
    if token:
        try:
            payload = jwt.decode(
                token,
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
            )
            sub = payload["sub"]
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"unauth:{get_remote_address(request)}"


# In-memory storage (single-instance deployment).
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL.
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # exc.detail looks like "20 per 1 minute"; fall back to 60 seconds
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
