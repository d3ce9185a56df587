"""Authentication dependencies for FastAPI"""

from typing import Optional

from fastapi import Depends, Request
from pydantic import ValidationError

from yurushiri.auth.models import AuthTokens, AuthUser
from yurushiri.auth.session import (
    SESSION_TOKENS_KEY,
    SESSION_USER_KEY,
    AuthEvents,
    SessionContext,
)
from yurushiri.backends.auth_client import AuthClient
from yurushiri.errors import AuthError
from yurushiri.logging_config import get_logger

logger = get_logger(__name__)


def get_auth_client(request: Request) -> AuthClient:
    return request.app.state.auth_client


def get_auth_events(request: Request) -> AuthEvents:
    return request.app.state.auth_events


def _session_tokens(request: Request) -> Optional[AuthTokens]:
    raw = request.session.get(SESSION_TOKENS_KEY)
    if not raw:
        return None
    try:
        return AuthTokens.model_validate(raw)
    except ValidationError:
        logger.warning("Discarding malformed session tokens")
        return None


def _session_user(request: Request) -> Optional[AuthUser]:
    raw = request.session.get(SESSION_USER_KEY)
    if not raw:
        return None
    try:
        return AuthUser.model_validate(raw)
    except ValidationError:
        return None


async def get_session_context(
    request: Request,
    auth_client: AuthClient = Depends(get_auth_client),
    events: AuthEvents = Depends(get_auth_events),
) -> SessionContext:
    """
    Resolve the current user from the session cookie.

    An expired access token is refreshed once with the stored refresh token.
    If the auth service cannot be reached or answers with a 5xx, the request
    proceeds anonymously and the session cookie is kept.
    """
    context = SessionContext(request, events)
    tokens = _session_tokens(request)
    if tokens is None:
        return context

    try:
        user: Optional[AuthUser] = await auth_client.get_user(tokens.access_token)
        if user is not None:
            context.user = user
            context.tokens = tokens
            return context

        if tokens.refresh_token:
            result = await auth_client.refresh(tokens.refresh_token)
            context.refreshed(result.user, result.tokens)
            return context
    except AuthError as e:
        logger.warning(f"Could not resolve session user: {e}")
        if e.status_code is None or e.status_code >= 500:
            # Service unreachable or failing; keep the cookie for the next request
            return context

    # Tokens are no longer valid
    context.user = _session_user(request)
    context.sign_out()
    return context


async def require_user(
    context: SessionContext = Depends(get_session_context),
) -> AuthUser:
    """
    Require a signed-in user (web flow).
    Redirects to /signin if not authenticated.
    """
    return context.require_user()
