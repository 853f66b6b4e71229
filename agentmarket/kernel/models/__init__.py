"""
Domain records shared by the identity, permission and notification layers.
"""

from agentmarket.kernel.models.base import WireModel
from agentmarket.kernel.models.identity import Identity, Session, Tier, TierState
from agentmarket.kernel.models.notification import Notification, NotificationType

__all__ = [
    "WireModel",
    # Identity
    "Identity",
    "Session",
    "Tier",
    "TierState",
    # Notifications
    "Notification",
    "NotificationType",
]
