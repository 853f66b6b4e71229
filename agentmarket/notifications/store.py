"""
Notification state store with optimistic read-marking.

Mutations are two-phase. ``mark_read`` / ``mark_all_read`` flip the local
flags immediately and tag them with a request id; the backend's answer then
either confirms the flags or reverts them. Reverting is keyed by request id:
a failed request only restores the last server-confirmed value when no other
request for the same notification is still pending, so a stale failure can
never undo a later success.

The unread count is always computed from the collection.
"""

import asyncio
import itertools
from collections import Counter
from typing import Awaitable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from agentmarket.api.client import MarketplaceApiClient
from agentmarket.kernel.errors import AuthenticationRequired, NotificationNotFound, SessionLost
from agentmarket.kernel.identity.session_context import SessionContext
from agentmarket.kernel.models.notification import Notification, NotificationType
from agentmarket.logging_config import get_logger
from agentmarket.notifications.filters import NotificationPredicate, everything

logger = get_logger(__name__)


class NotificationStore:
    """
    Feed of notifications for the signed-in identity.

    Watches the session context: if the identity signs out or changes while
    mutations are in flight, their optimistic flags are reverted at once and
    the late responses are dropped.
    """

    def __init__(
        self,
        api: MarketplaceApiClient,
        context: SessionContext,
        notifications: Iterable[Notification] = (),
    ):
        self._api = api
        self._context = context
        self._items: List[Notification] = []
        self._index: Dict[int, Notification] = {}
        self._confirmed: Dict[int, bool] = {}
        self._pending: Dict[int, Set[int]] = {}
        self._abandoned: Set[int] = set()
        self._request_ids = itertools.count(1)
        self._disposed = False

        identity = context.identity
        self._owner_id: Optional[str] = identity.id if identity else None
        self._unsubscribe = context.subscribe(self._on_session_change)
        self.replace(notifications)

    # -- reading -----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Notification]:
        return iter(self._items)

    def get(self, notification_id: int) -> Notification:
        try:
            return self._index[notification_id]
        except KeyError:
            raise NotificationNotFound(notification_id) from None

    def filter(self, predicate: NotificationPredicate = everything) -> Iterator[Notification]:
        """Lazy view over the live collection, in feed order. Never copies or mutates."""
        return (n for n in self._items if predicate(n))

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.is_read)

    def counts_by_type(self, unread_only: bool = False) -> Dict[NotificationType, int]:
        """Number of notifications per type (zero for absent types)."""
        counts = Counter(n.type for n in self._items if not (unread_only and n.is_read))
        return {kind: counts.get(kind, 0) for kind in NotificationType}

    def is_pending(self, notification_id: int) -> bool:
        """True while a mark-read request for this notification awaits the backend."""
        return bool(self._pending.get(notification_id))

    # -- loading -----------------------------------------------------------

    def replace(self, notifications: Iterable[Notification]) -> None:
        """
        Swap in a new feed. Existing views follow the new contents.

        Mark-read requests still in flight stay pending for the ids the new
        feed still has, and their optimistic flag carries over to the fresh
        copies; the feed's own value becomes the one a failure reverts to.
        """
        self._items[:] = list(notifications)
        self._index = {n.id: n for n in self._items}
        self._confirmed = {n.id: n.is_read for n in self._items}
        for nid in list(self._pending):
            if nid in self._index:
                self._index[nid].is_read = True
            else:
                del self._pending[nid]

    async def load(self) -> None:
        """Fetch the feed from GET /api/notifications."""
        token, _ = self._require_session()
        notifications = await self._api.list_notifications(token)
        if self._disposed:
            return
        self.replace(notifications)
        logger.debug("Loaded %d notifications (%d unread)", len(self._items), self.unread_count)

    # -- mutations ---------------------------------------------------------

    async def mark_read(self, notification_id: int) -> None:
        """
        Mark one notification read.

        Already-confirmed notifications are left alone. Failures revert the
        flag (unless another request for it is still pending) and propagate.
        """
        self.get(notification_id)
        if self._confirmed.get(notification_id) and not self.is_pending(notification_id):
            return
        token, _ = self._require_session()
        ids = [notification_id]
        request_id = self._apply(ids)
        await self._send(request_id, ids, self._api.mark_notification_read(notification_id, token))

    async def mark_all_read(self) -> None:
        """Mark every notification read. With nothing unread this is a no-op."""
        targets = [n.id for n in self._items if not n.is_read]
        if not targets:
            return
        token, _ = self._require_session()
        request_id = self._apply(targets)
        await self._send(request_id, targets, self._api.mark_all_notifications_read(token))

    def close(self) -> None:
        """Stop watching the session; responses arriving later change nothing."""
        self._disposed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- two-phase bookkeeping --------------------------------------------

    def _require_session(self) -> Tuple[str, str]:
        identity = self._context.identity
        token = self._context.access_token
        if identity is None or token is None:
            raise AuthenticationRequired("Sign in to update notifications")
        return token, identity.id

    def _apply(self, ids: List[int]) -> int:
        request_id = next(self._request_ids)
        for nid in ids:
            self._pending.setdefault(nid, set()).add(request_id)
            self._index[nid].is_read = True
        return request_id

    async def _send(self, request_id: int, ids: List[int], call: Awaitable[None]) -> None:
        try:
            await call
        except asyncio.CancelledError:
            # Revert, but let the cancellation through as-is
            self._finish(request_id, ids, succeeded=False)
            raise
        except BaseException as e:
            if self._finish(request_id, ids, succeeded=False):
                raise SessionLost("Session changed while marking notifications read") from e
            raise
        if self._finish(request_id, ids, succeeded=True):
            raise SessionLost("Session changed while marking notifications read")

    def _finish(self, request_id: int, ids: List[int], succeeded: bool) -> bool:
        """
        Settle a request. Returns True if the session was lost meanwhile.

        Only the ids the request carried are confirmed or reverted; entries
        that arrived with a later feed reload keep their own state.
        """
        if request_id in self._abandoned:
            self._abandoned.discard(request_id)
            return True
        if self._disposed:
            return False

        for nid in ids:
            waiting = self._pending.get(nid)
            if waiting is not None:
                waiting.discard(request_id)
                if not waiting:
                    del self._pending[nid]
            notification = self._index.get(nid)
            if notification is None:
                continue
            if succeeded:
                self._confirmed[nid] = True
                notification.is_read = True
            elif nid not in self._pending:
                notification.is_read = self._confirmed.get(nid, False)
        if not succeeded:
            logger.warning(
                "Mark-read failed, reverted optimistic state",
                extra={"mark_request": request_id, "notification_ids": ids},
            )
        return False

    def _on_session_change(self, context: SessionContext) -> None:
        identity = context.identity
        current = identity.id if identity else None
        if current == self._owner_id:
            return
        if self._pending:
            logger.info("Session changed with %d pending mark-read(s); reverting", len(self._pending))
        for nid, waiting in self._pending.items():
            self._abandoned.update(waiting)
            notification = self._index.get(nid)
            if notification is not None:
                notification.is_read = self._confirmed.get(nid, False)
        self._pending.clear()
        self._owner_id = current
