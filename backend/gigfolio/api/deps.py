"""Shared dependencies for API endpoints.

Local mode uses DEFAULT_USER_ID; hosted mode validates the bearer JWT from
the Authorization header. The same raw token is forwarded to backend
actions so the persistence backend sees the worker's own credentials.
"""

from typing import Annotated

import jwt
from fastapi import Depends, Request

from gigfolio.agents.session import SessionStore, get_session_store
from gigfolio.core.config import settings
from gigfolio.core.errors import UnauthorizedError
from gigfolio.core.rate_limiting import extract_bearer_token
from gigfolio.services.backend_actions import BackendActions, get_backend_actions


def get_bearer_token(request: Request) -> str | None:
    """Raw bearer token, if the request carries one."""
    return extract_bearer_token(request)


async def get_current_user_id(
    token: Annotated[str | None, Depends(get_bearer_token)],
) -> str:
    """Get current user ID from auth context.

    Validation steps (hosted mode):
    1. Read the bearer token
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub

    Returns:
        Id of the current user.

    Raises:
        UnauthorizedError: 401 for any auth failure. The message never says
            why the token was rejected.
    """
    if not settings.auth_enabled:
        if settings.default_user_id is None:
            raise UnauthorizedError()
        return str(settings.default_user_id)

    if not token:
        raise UnauthorizedError()

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )
        user_id = str(payload["sub"])
    except (jwt.InvalidTokenError, KeyError) as exc:
        raise UnauthorizedError() from exc

    if not user_id:
        raise UnauthorizedError()
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
BearerToken = Annotated[str | None, Depends(get_bearer_token)]
Sessions = Annotated[SessionStore, Depends(get_session_store)]
Backend = Annotated[BackendActions, Depends(get_backend_actions)]
