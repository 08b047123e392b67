"""
Operator session gate.

One SessionGate is created at startup and passed to every view. Views read
``is_authenticated`` to decide whether edit actions are offered; the store
and repositories never look at it.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol
import logging

from portfolio.errors import AuthError
from portfolio.utils.jwt_auth import authenticate_user, create_access_token, verify_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserHandle:
    email: str
    role: str = "admin"


class Authenticator(Protocol):
    async def current_user(self) -> Optional[UserHandle]:
        ...

    async def sign_in(self, email: str, password: str) -> UserHandle:
        """Raises AuthError when the credentials are rejected."""
        ...

    async def sign_out(self) -> None:
        ...


class LocalAuthenticator:
    """Checks the configured operator credentials and keeps the issued JWT."""

    def __init__(self, token: Optional[str] = None):
        self.token = token

    async def current_user(self) -> Optional[UserHandle]:
        if not self.token:
            return None
        try:
            claims = verify_token(self.token)
        except AuthError as e:
            logger.info(f"Stored session is no longer valid: {str(e)}")
            self.token = None
            return None
        return UserHandle(email=claims["sub"], role=claims.get("role", "admin"))

    async def sign_in(self, email: str, password: str) -> UserHandle:
        claims = authenticate_user(email, password)
        self.token = create_access_token(claims)
        return UserHandle(email=claims["sub"], role=claims["role"])

    async def sign_out(self) -> None:
        self.token = None


SessionListener = Callable[[Optional[UserHandle]], None]


class SessionGate:
    """
    Process-wide authenticated/anonymous flag.

    Usage:
        session = SessionGate(LocalAuthenticator())
        await session.check()
        if await session.sign_in(email, password):
            ...
    """

    def __init__(self, authenticator: Authenticator):
        self._authenticator = authenticator
        self._user: Optional[UserHandle] = None
        self._listeners: List[SessionListener] = []
        self.loading = True
        self.last_error: Optional[str] = None

    @property
    def user(self) -> Optional[UserHandle]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def on_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def check(self) -> Optional[UserHandle]:
        """Initialize from the authenticator's current session."""
        try:
            self._set_user(await self._authenticator.current_user())
        except AuthError as e:
            logger.error(f"Error checking session: {str(e)}")
            self._set_user(None)
        finally:
            self.loading = False
        return self._user

    async def sign_in(self, email: str, password: str) -> bool:
        self.loading = True
        try:
            user = await self._authenticator.sign_in(email, password)
        except AuthError as e:
            logger.warning(f"Login rejected for {email}: {str(e)}")
            self.last_error = str(e)
            return False
        finally:
            self.loading = False

        self.last_error = None
        self._set_user(user)
        logger.info(f"Operator {user.email} signed in")
        return True

    async def sign_out(self) -> None:
        await self._authenticator.sign_out()
        self._set_user(None)
        logger.info("Operator signed out")

    def _set_user(self, user: Optional[UserHandle]) -> None:
        if user == self._user:
            return
        self._user = user
        for listener in list(self._listeners):
            listener(user)
