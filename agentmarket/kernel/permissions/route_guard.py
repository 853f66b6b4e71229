"""
Route guard: decides whether a path renders for the current tier, and what.

A decision either allows rendering (with the view to render) or redirects.
It is recomputed for every (path, tier state) pair and never cached.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from agentmarket.kernel import routes
from agentmarket.kernel.identity.role_resolver import landing_route_for
from agentmarket.kernel.models.identity import Tier, TierState


class RenderView(str, Enum):
    """What an allowed decision renders."""
    PAGE = "page"
    LOADING = "loading"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"


# Offered on the access-denied view
ACCESS_DENIED_ACTIONS: Tuple[str, ...] = ("home", "reauthenticate")


class RouteGuardDecision(BaseModel):
    """
    Outcome of guarding one navigation.

    Exactly one of ``allow`` and ``redirect_to`` is set; ``view`` is only
    meaningful when allowed.
    """

    model_config = ConfigDict(frozen=True)

    allow: bool
    redirect_to: Optional[str] = None
    view: Optional[RenderView] = None
    actions: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def check_exclusive(self) -> "RouteGuardDecision":
        if self.allow == (self.redirect_to is not None):
            raise ValueError("decision must either allow or redirect, not both or neither")
        if self.allow and self.view is None:
            raise ValueError("allowed decision needs a view")
        return self

    @classmethod
    def render(cls, view: RenderView = RenderView.PAGE) -> "RouteGuardDecision":
        actions = ACCESS_DENIED_ACTIONS if view is RenderView.ACCESS_DENIED else ()
        return cls(allow=True, view=view, actions=actions)

    @classmethod
    def redirect(cls, path: str) -> "RouteGuardDecision":
        return cls(allow=False, redirect_to=path)

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


def guard(path: str, tier_state: TierState) -> RouteGuardDecision:
    """
    Guard a navigation to ``path``.

    Rules, first match wins:
    1. Session still resolving: render the loading view, never redirect.
    2. Landing page while signed in: redirect to the tier's landing route.
    3. Admin area without admin tier: signed-out visitors go to admin login,
       signed-in non-admins get the access-denied view.
    4. Admin login while already admin: redirect into the admin area.
    5. Unknown path: render not found.
    6. Anything else renders.
    """
    if tier_state.is_loading:
        return RouteGuardDecision.render(RenderView.LOADING)

    tier = tier_state.tier
    path = routes.normalize_path(path)

    if path == routes.LANDING and tier.is_authenticated:
        return RouteGuardDecision.redirect(landing_route_for(tier))

    if routes.is_admin_path(path) and tier is not Tier.ADMIN:
        if not tier.is_authenticated:
            return RouteGuardDecision.redirect(routes.ADMIN_LOGIN)
        return RouteGuardDecision.render(RenderView.ACCESS_DENIED)

    if path == routes.ADMIN_LOGIN and tier is Tier.ADMIN:
        return RouteGuardDecision.redirect(routes.ADMIN)

    if not routes.is_known_path(path):
        return RouteGuardDecision.render(RenderView.NOT_FOUND)

    return RouteGuardDecision.render(RenderView.PAGE)
