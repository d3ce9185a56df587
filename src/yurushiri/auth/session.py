"""Per-request session context and the app-wide auth event store"""

import enum
import logging
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import HTTPException, Request, status

from yurushiri.auth.models import AuthTokens, AuthUser

logger = logging.getLogger(__name__)

SIGNIN_PATH = "/signin"

# Keys inside the signed session cookie
SESSION_USER_KEY = "user"
SESSION_TOKENS_KEY = "tokens"


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


AuthListener = Callable[[AuthEvent, Optional[AuthUser]], None]


class AuthEvents:
    """
    Subscribe/unsubscribe store for auth state changes.

    One instance lives on ``app.state`` for the lifetime of the app. Listeners
    are called synchronously in subscription order; a failing listener is
    logged and does not stop the others.
    """

    def __init__(self):
        self._listeners: list[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: AuthEvent, user: Optional[AuthUser] = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, user)
            except Exception as e:
                logger.error(f"Auth listener failed on {event.value}: {e}")


def log_auth_event(event: AuthEvent, user: Optional[AuthUser]) -> None:
    """Default listener subscribed by the app on startup"""
    logger.info(f"Auth event {event.value} for user {user.id if user else '-'}")


def signin_redirect(next_path: Optional[str] = None) -> HTTPException:
    location = SIGNIN_PATH
    if next_path and next_path != "/":
        location += f"?next={quote(next_path)}"
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER, headers={"Location": location}
    )


class SessionContext:
    """The current user of one request plus the operations that change it"""

    def __init__(
        self,
        request: Request,
        events: AuthEvents,
        user: Optional[AuthUser] = None,
        tokens: Optional[AuthTokens] = None,
    ):
        self.request = request
        self.events = events
        self.user = user
        self.tokens = tokens

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def access_token(self) -> Optional[str]:
        return self.tokens.access_token if self.tokens else None

    def require_user(self) -> AuthUser:
        """
        Return the signed-in user.

        Raises:
            HTTPException: 303 redirect to the sign-in page when anonymous
        """
        if self.user is None:
            raise signin_redirect(self.request.url.path)
        return self.user

    def _store(self, user: AuthUser, tokens: AuthTokens) -> None:
        self.user = user
        self.tokens = tokens
        self.request.session[SESSION_USER_KEY] = user.model_dump()
        self.request.session[SESSION_TOKENS_KEY] = tokens.model_dump()

    def sign_in(self, user: AuthUser, tokens: AuthTokens) -> None:
        self._store(user, tokens)
        self.events.emit(AuthEvent.SIGNED_IN, user)

    def refreshed(self, user: AuthUser, tokens: AuthTokens) -> None:
        self._store(user, tokens)
        self.events.emit(AuthEvent.TOKEN_REFRESHED, user)

    def sign_out(self) -> None:
        user = self.user
        self.user = None
        self.tokens = None
        self.request.session.pop(SESSION_USER_KEY, None)
        self.request.session.pop(SESSION_TOKENS_KEY, None)
        if user is not None:
            self.events.emit(AuthEvent.SIGNED_OUT, user)
