"""
Role resolution: identity -> capability tier -> default landing route.

This is the only place that interprets role strings. Views, the route guard
and the workflows all ask here instead of comparing roles themselves.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from agentmarket.kernel.models.identity import Identity, Tier
from agentmarket.kernel import routes

# Backend role string -> tier. "user" is the backend's name for a buyer.
_ROLE_TIERS: Dict[str, Tier] = {
    "user": Tier.BUYER,
    "buyer": Tier.BUYER,
    "seller": Tier.SELLER,
    "admin": Tier.ADMIN,
}

LANDING_ROUTES: Dict[Tier, str] = {
    Tier.UNAUTHENTICATED: routes.LANDING,
    Tier.BUYER: routes.BUYER_DASHBOARD,
    Tier.SELLER: routes.SELLER_DASHBOARD,
    # Admins land with sellers; /admin is reached by explicit navigation
    Tier.ADMIN: routes.SELLER_DASHBOARD,
}


@dataclass(frozen=True)
class TierResolution:
    """Result of resolving an identity."""

    tier: Tier
    landing_route: str


def tier_for_role(role: Optional[str]) -> Tier:
    """Map a backend role string to an authenticated tier; unknown roles are buyers."""
    if not role:
        return Tier.BUYER
    return _ROLE_TIERS.get(role.strip().lower(), Tier.BUYER)


def landing_route_for(tier: Tier) -> str:
    return LANDING_ROUTES[tier]


def resolve_tier(identity: Optional[Identity]) -> TierResolution:
    """
    Resolve an identity (or its absence) to a tier and landing route.

    Total and side-effect free: ``None`` is UNAUTHENTICATED, every role string
    maps to some tier.
    """
    tier = Tier.UNAUTHENTICATED if identity is None else tier_for_role(identity.role)
    return TierResolution(tier=tier, landing_route=LANDING_ROUTES[tier])
