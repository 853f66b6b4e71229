"""
Identity provider implementations.

- InMemoryIdentityProvider: holds a session in memory; local development and tests
- PasswordLoginProvider: signs in through POST /api/auth/login
- BearerTokenProvider: a fixed token from an incoming request, for the web front-end
"""

from typing import TYPE_CHECKING, Callable, List, Optional

from agentmarket.kernel.errors import AuthenticationRequired, ValidationRejected
from agentmarket.kernel.identity.session_context import IdentityLoader, SessionCallback
from agentmarket.kernel.models.identity import Identity, Session
from agentmarket.logging_config import get_logger

if TYPE_CHECKING:
    from agentmarket.api.client import MarketplaceApiClient

logger = get_logger(__name__)


class InMemoryIdentityProvider:
    """Session held in memory; every change is pushed to subscribers."""

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._subscribers: List[SessionCallback] = []

    async def get_session(self) -> Optional[Session]:
        return self._session

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def set_session(self, session: Optional[Session]) -> None:
        self._session = session
        for callback in list(self._subscribers):
            callback(session)

    def sign_out(self) -> None:
        self.set_session(None)


class PasswordLoginProvider(InMemoryIdentityProvider):
    """Email/password sign-in against the marketplace backend."""

    def __init__(self, api: "MarketplaceApiClient", session: Optional[Session] = None):
        super().__init__(session)
        self._api = api

    async def login(self, email: str, password: str) -> Session:
        """
        Sign in and publish the new session.

        Raises:
            ValidationRejected: Bad credentials or malformed input
            TransientFailure: Backend unreachable or failing
        """
        try:
            session = await self._api.login(email, password)
        except AuthenticationRequired as e:
            raise ValidationRejected(message=str(e) or "Invalid credentials") from e
        logger.info("Signed in", extra={"identity_id": session.user.id if session.user else None})
        self.set_session(session)
        return session

    def logout(self) -> None:
        self.sign_out()


class BearerTokenProvider:
    """A session consisting only of a token taken from an incoming request."""

    def __init__(self, token: Optional[str]):
        self._session = Session(access_token=token) if token else None

    async def get_session(self) -> Optional[Session]:
        return self._session

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        # A request's token never changes
        return lambda: None


def backend_identity_loader(api: "MarketplaceApiClient") -> IdentityLoader:
    """Loader that asks GET /api/auth/user for the identity behind a session."""

    async def load(session: Session) -> Optional[Identity]:
        return await api.get_current_user(session.access_token)

    return load
