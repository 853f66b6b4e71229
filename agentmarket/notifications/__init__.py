"""
Notification feed state.
"""

from agentmarket.notifications.filters import by_type, everything, for_tab, unread
from agentmarket.notifications.store import NotificationStore

__all__ = [
    "NotificationStore",
    "by_type",
    "everything",
    "for_tab",
    "unread",
]
