"""Unit tests for the route guard."""

import pytest
from pydantic import ValidationError

from agentmarket.kernel import routes
from agentmarket.kernel.models.identity import Tier, TierState
from agentmarket.kernel.permissions.route_guard import (
    ACCESS_DENIED_ACTIONS,
    RenderView,
    RouteGuardDecision,
    guard,
)

ALL_PATHS = sorted(routes.KNOWN_PATHS) + [
    "/admin/users",
    "/admin-enhanced/settings",
    "/does-not-exist",
    "/administrator",
    "/dashboard/?tab=orders",
    "",
]
ALL_STATES = [TierState(tier=t, is_loading=loading) for t in Tier for loading in (False, True)]


def _settled(tier: Tier) -> TierState:
    return TierState(tier=tier, is_loading=False)


class TestDecisionShape:
    """Every decision allows or redirects, never both."""

    @pytest.mark.parametrize("path", ALL_PATHS)
    @pytest.mark.parametrize("state", ALL_STATES, ids=lambda s: f"{s.tier.value}-{'loading' if s.is_loading else 'settled'}")
    def test_exactly_one_outcome(self, path, state):
        decision = guard(path, state)

        assert decision.allow != (decision.redirect_to is not None)
        if decision.allow:
            assert decision.view is not None

    def test_cannot_build_allow_and_redirect(self):
        with pytest.raises(ValidationError):
            RouteGuardDecision(allow=True, redirect_to="/", view=RenderView.PAGE)

    def test_cannot_build_neither(self):
        with pytest.raises(ValidationError):
            RouteGuardDecision(allow=False)

    def test_allowed_decision_needs_view(self):
        with pytest.raises(ValidationError):
            RouteGuardDecision(allow=True)


class TestLoading:
    """While the session resolves, nothing redirects."""

    @pytest.mark.parametrize("path", ["/", "/admin", "/admin-login", "/nowhere"])
    @pytest.mark.parametrize("tier", list(Tier))
    def test_loading_renders_loading_view(self, path, tier):
        decision = guard(path, TierState(tier=tier, is_loading=True))

        assert decision.allow
        assert decision.view is RenderView.LOADING


class TestLanding:
    """Landing page sends signed-in users to their dashboard."""

    def test_unauthenticated_sees_landing(self):
        decision = guard("/", _settled(Tier.UNAUTHENTICATED))

        assert decision.allow
        assert decision.view is RenderView.PAGE

    @pytest.mark.parametrize(
        "tier,target",
        [
            (Tier.BUYER, "/dashboard"),
            (Tier.SELLER, "/seller-dashboard"),
            (Tier.ADMIN, "/seller-dashboard"),
        ],
    )
    def test_signed_in_redirects(self, tier, target):
        decision = guard("/?ref=email", _settled(tier))

        assert decision.redirect_to == target
        assert not decision.allow


class TestAdminArea:
    """Admin paths and the admin login page."""

    @pytest.mark.parametrize("path", ["/admin", "/admin-enhanced", "/admin/users"])
    def test_signed_out_goes_to_admin_login(self, path):
        decision = guard(path, _settled(Tier.UNAUTHENTICATED))

        assert decision.redirect_to == "/admin-login"

    @pytest.mark.parametrize("tier", [Tier.BUYER, Tier.SELLER])
    @pytest.mark.parametrize("path", ["/admin", "/admin-enhanced/reports"])
    def test_non_admin_gets_access_denied(self, tier, path):
        decision = guard(path, _settled(tier))

        assert decision.allow
        assert decision.view is RenderView.ACCESS_DENIED
        assert decision.actions == ACCESS_DENIED_ACTIONS

    @pytest.mark.parametrize("path", ["/admin", "/admin-enhanced", "/admin/users"])
    def test_admin_allowed(self, path):
        decision = guard(path, _settled(Tier.ADMIN))

        assert decision.view is RenderView.PAGE

    def test_lookalike_path_is_not_admin(self):
        """/administrator is not under /admin."""
        decision = guard("/administrator", _settled(Tier.BUYER))

        assert decision.view is RenderView.NOT_FOUND

    def test_admin_login_redirects_admin(self):
        assert guard("/admin-login", _settled(Tier.ADMIN)).redirect_to == "/admin"

    @pytest.mark.parametrize("tier", [Tier.UNAUTHENTICATED, Tier.BUYER, Tier.SELLER])
    def test_admin_login_renders_for_others(self, tier):
        assert guard("/admin-login", _settled(tier)).view is RenderView.PAGE


class TestOtherPaths:
    """Dashboards and public pages."""

    def test_unknown_path_is_not_found(self):
        decision = guard("/nope", _settled(Tier.SELLER))

        assert decision.allow
        assert decision.view is RenderView.NOT_FOUND
        assert decision.actions == ()

    @pytest.mark.parametrize("tier", list(Tier))
    def test_dashboards_render_for_every_tier(self, tier):
        """Admins in particular may view both dashboards."""
        for path in ("/dashboard", "/seller-dashboard/", "/marketplace"):
            assert guard(path, _settled(tier)).view is RenderView.PAGE


class TestNormalizePath:
    """Tests for routes.normalize_path."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("", "/"),
            ("/", "/"),
            ("dashboard", "/dashboard"),
            ("/dashboard/", "/dashboard"),
            ("/notifications?tab=unread#top", "/notifications"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert routes.normalize_path(raw) == expected
