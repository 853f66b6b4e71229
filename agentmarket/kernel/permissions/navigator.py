"""
Guarded navigator: keeps the current location consistent with the route guard.

Re-runs the guard whenever the path changes or the session context reports a
change (sign-in, sign-out, refresh start or finish), and follows redirects.
"""

from typing import TYPE_CHECKING, Callable, List, Optional

from agentmarket.kernel import routes
from agentmarket.kernel.errors import RedirectLoop
from agentmarket.kernel.permissions.route_guard import RouteGuardDecision, guard
from agentmarket.logging_config import get_logger

if TYPE_CHECKING:
    from agentmarket.kernel.identity.session_context import SessionContext

logger = get_logger(__name__)

MAX_REDIRECTS = 5

DecisionListener = Callable[[str, RouteGuardDecision], None]


class GuardedNavigator:
    """
    Current path plus the decision that was last rendered for it.

    Decisions are recomputed from the context every time, never reused
    across identity changes.
    """

    def __init__(self, context: "SessionContext", path: str = routes.LANDING):
        self._context = context
        self._path = routes.normalize_path(path)
        self._decision: Optional[RouteGuardDecision] = None
        self._listeners: List[DecisionListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = context.subscribe(self._on_session_change)
        self._evaluate()

    @property
    def path(self) -> str:
        return self._path

    @property
    def decision(self) -> RouteGuardDecision:
        return self._decision

    def on_decision(self, listener: DecisionListener) -> None:
        self._listeners.append(listener)

    def navigate(self, path: str) -> RouteGuardDecision:
        """Move to ``path`` and return the decision that ends up rendered."""
        self._path = routes.normalize_path(path)
        return self._evaluate()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def _on_session_change(self, _context: "SessionContext") -> None:
        self._evaluate()

    def _evaluate(self) -> RouteGuardDecision:
        seen = [self._path]
        decision = guard(self._path, self._context.tier_state)
        while decision.is_redirect:
            logger.debug("Redirect %s -> %s", self._path, decision.redirect_to)
            self._path = decision.redirect_to
            if self._path in seen or len(seen) > MAX_REDIRECTS:
                raise RedirectLoop(" -> ".join(seen + [self._path]))
            seen.append(self._path)
            decision = guard(self._path, self._context.tier_state)
        self._decision = decision
        for listener in list(self._listeners):
            listener(self._path, decision)
        return decision
