"""
Permission Core - route guarding by capability tier.
"""

from agentmarket.kernel.permissions.route_guard import (
    ACCESS_DENIED_ACTIONS,
    RenderView,
    RouteGuardDecision,
    guard,
)
from agentmarket.kernel.permissions.navigator import GuardedNavigator

__all__ = [
    "ACCESS_DENIED_ACTIONS",
    "RenderView",
    "RouteGuardDecision",
    "guard",
    "GuardedNavigator",
]
