"""
Notification feed record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from agentmarket.kernel.models.base import WireModel


class NotificationType(str, Enum):
    """Kinds of events the backend feed emits."""
    ORDER = "order"
    PAYMENT = "payment"
    REVIEW = "review"
    MESSAGE = "message"
    SYSTEM = "system"


class Notification(WireModel):
    """A single feed entry. ``is_read`` is the only field the store changes."""

    id: int
    type: NotificationType
    title: str
    message: str
    is_read: bool = False
    created_at: datetime
    action_url: Optional[str] = None

    def age_label(self, now: Optional[datetime] = None) -> str:
        """Compact age such as '5m ago', '3h ago' or '2d ago'."""
        now = now or datetime.now(timezone.utc)
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        minutes = max(0, int((now - created).total_seconds() // 60))
        if minutes < 60:
            return f"{minutes}m ago"
        if minutes < 1440:
            return f"{minutes // 60}h ago"
        return f"{minutes // 1440}d ago"
