"""
Session context: the single owner of "who is signed in".

Wraps an identity provider, keeps the current identity and a loading flag,
and tells its listeners whenever either changes. Components get the context
passed in; nothing reads session state from module globals.

Ordering: every load (initial, provider change, explicit refresh) gets a
generation number. Only the newest generation may commit, and the context
reports ``is_loading`` until it has, so the route guard never redirects on
a tier that a refresh in flight is about to replace.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Set

from agentmarket.kernel.errors import AuthenticationRequired, TransientFailure
from agentmarket.kernel.identity.role_resolver import TierResolution, resolve_tier
from agentmarket.kernel.models.identity import Identity, Session, TierState
from agentmarket.logging_config import get_logger

logger = get_logger(__name__)

SessionCallback = Callable[[Optional[Session]], None]
IdentityLoader = Callable[[Session], Awaitable[Optional[Identity]]]
ContextListener = Callable[["SessionContext"], None]


class IdentityProvider(Protocol):
    """Boundary to the external session issuer."""

    async def get_session(self) -> Optional[Session]:
        ...

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        """Deliver every auth transition to ``callback``; returns the unsubscribe handle."""
        ...


def _fingerprint(identity: Optional[Identity]) -> Optional[tuple]:
    return (identity.id, identity.role) if identity else None


async def identity_from_session(session: Session) -> Optional[Identity]:
    """Default loader: trust the user the provider put in the session."""
    return session.identity


class SessionContext:
    """
    Current identity plus loading state, with an explicit lifecycle.

    Usage:
        async with SessionContext(provider, identity_loader=loader) as ctx:
            decision = guard(path, ctx.tier_state)
    """

    def __init__(
        self,
        provider: IdentityProvider,
        identity_loader: Optional[IdentityLoader] = None,
        strict: bool = False,
    ):
        """
        Args:
            provider: The external identity provider
            identity_loader: Turns a session into an Identity (normally a call
                to GET /api/auth/user). Defaults to the session's own user.
            strict: Re-raise transient load failures from start() instead of
                falling back to the session's own user
        """
        self._provider = provider
        self._load_identity = identity_loader or identity_from_session
        self._strict = strict

        self._session: Optional[Session] = None
        self._identity: Optional[Identity] = None
        self._generation = 0
        self._settled_generation = 0
        self._started = False
        self._disposed = False

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: List[ContextListener] = []
        self._tasks: Set[asyncio.Task] = set()

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> "SessionContext":
        """Subscribe to the provider and resolve the initial session."""
        if self._started:
            return self
        self._started = True
        self._unsubscribe = self._provider.subscribe(self._on_provider_change)
        try:
            session = await self._provider.get_session()
            await self._load(session, raise_transient=self._strict)
        except BaseException:
            await self.close()
            raise
        return self

    async def close(self) -> None:
        """Unsubscribe from the provider and drop any load still in flight."""
        if self._disposed:
            return
        self._disposed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._listeners.clear()

    async def __aenter__(self) -> "SessionContext":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -- state -------------------------------------------------------------

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_loading(self) -> bool:
        return not self._started or self._settled_generation != self._generation

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def resolve(self) -> TierResolution:
        return resolve_tier(self._identity)

    @property
    def tier_state(self) -> TierState:
        return TierState(tier=self.resolve().tier, is_loading=self.is_loading)

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        """Call ``listener`` on every identity or loading change; returns the unsubscribe handle."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- loading -----------------------------------------------------------

    async def refresh(self) -> Optional[Identity]:
        """
        Re-read the provider's session and re-fetch the identity.

        Returns the refreshed identity. Failures propagate; a 401 signs the
        context out before re-raising, a transient failure leaves the
        previous identity in place.
        """
        generation = self._begin_load()
        try:
            session = await self._provider.get_session()
        except BaseException:
            self._commit(generation, self._session, self._identity)
            raise
        return await self._load(
            session,
            generation=generation,
            raise_transient=True,
            raise_rejected=True,
        )

    async def settled(self) -> None:
        """Wait for loads started by provider callbacks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _load(
        self,
        session: Optional[Session],
        *,
        generation: Optional[int] = None,
        raise_transient: bool = False,
        raise_rejected: bool = False,
    ) -> Optional[Identity]:
        if generation is None:
            generation = self._begin_load()
        try:
            identity = await self._load_identity(session) if session is not None else None
        except AuthenticationRequired:
            logger.info("Backend rejected the session; treating as signed out")
            self._commit(generation, None, None)
            if raise_rejected:
                raise
            return None
        except TransientFailure as e:
            if raise_transient:
                self._commit(generation, self._session, self._identity)
                raise
            logger.warning("Identity lookup failed, using provider's copy: %s", e)
            identity = session.identity if session is not None else None
        except BaseException:
            self._commit(generation, self._session, self._identity)
            raise
        self._commit(generation, session, identity)
        return self._identity

    def _begin_load(self) -> int:
        self._generation += 1
        self._notify()
        return self._generation

    def _commit(self, generation: int, session: Optional[Session], identity: Optional[Identity]) -> None:
        if self._disposed:
            return
        if generation != self._generation:
            logger.debug("Dropping stale session load %d (current %d)", generation, self._generation)
            return
        previous = self._identity
        self._session = session
        self._identity = identity
        self._settled_generation = generation
        if _fingerprint(previous) != _fingerprint(identity):
            logger.info(
                "Session identity changed",
                extra={
                    "identity_id": identity.id if identity else None,
                    "tier": resolve_tier(identity).tier.value,
                },
            )
        self._notify()

    def _on_provider_change(self, session: Optional[Session]) -> None:
        if self._disposed:
            return
        if session is None:
            # Sign-out needs no backend round trip; apply it before anything else runs
            self._generation += 1
            self._commit(self._generation, None, None)
            return
        # Loading starts now, not when the task first runs
        generation = self._begin_load()
        task = asyncio.get_running_loop().create_task(self._load(session, generation=generation))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Session load failed", exc_info=task.exception())

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
