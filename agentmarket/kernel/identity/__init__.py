"""
Identity Core - sessions, role resolution and sign-in.
"""

from agentmarket.kernel.identity.role_resolver import (
    TierResolution,
    landing_route_for,
    resolve_tier,
    tier_for_role,
)
from agentmarket.kernel.identity.session_context import IdentityProvider, SessionContext
from agentmarket.kernel.identity.providers import (
    BearerTokenProvider,
    InMemoryIdentityProvider,
    PasswordLoginProvider,
    backend_identity_loader,
)
from agentmarket.kernel.identity.admin_login import AdminLoginResult, admin_login

__all__ = [
    "TierResolution",
    "landing_route_for",
    "resolve_tier",
    "tier_for_role",
    "IdentityProvider",
    "SessionContext",
    "BearerTokenProvider",
    "InMemoryIdentityProvider",
    "PasswordLoginProvider",
    "backend_identity_loader",
    "AdminLoginResult",
    "admin_login",
]
