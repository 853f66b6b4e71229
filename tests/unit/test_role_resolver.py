"""Unit tests for role resolution."""

import pytest

from agentmarket.kernel.identity.role_resolver import (
    LANDING_ROUTES,
    landing_route_for,
    resolve_tier,
    tier_for_role,
)
from agentmarket.kernel.models.identity import Identity, Tier


def _identity(role: str) -> Identity:
    return Identity(id="u-1", email="someone@example.com", role=role)


class TestResolveTier:
    """Tests for resolve_tier."""

    def test_no_identity_is_unauthenticated(self):
        resolution = resolve_tier(None)

        assert resolution.tier is Tier.UNAUTHENTICATED
        assert resolution.landing_route == "/"

    @pytest.mark.parametrize("role", ["user", "buyer", "moderator", "", "   "])
    def test_plain_and_unknown_roles_are_buyers(self, role):
        """Anything that is not seller or admin resolves to buyer."""
        resolution = resolve_tier(_identity(role))

        assert resolution.tier is Tier.BUYER
        assert resolution.landing_route == "/dashboard"

    @pytest.mark.parametrize("role", ["seller", "Seller", " SELLER "])
    def test_seller_role(self, role):
        resolution = resolve_tier(_identity(role))

        assert resolution.tier is Tier.SELLER
        assert resolution.landing_route == "/seller-dashboard"

    @pytest.mark.parametrize("role", ["admin", "Admin"])
    def test_admin_role(self, role):
        resolution = resolve_tier(_identity(role))

        assert resolution.tier is Tier.ADMIN
        assert resolution.landing_route == "/seller-dashboard"

    def test_resolution_is_pure(self):
        """Same identity, same answer; the identity is untouched."""
        identity = _identity("seller")

        assert resolve_tier(identity) == resolve_tier(identity)
        assert identity.role == "seller"


class TestHelpers:
    """Tests for tier_for_role and landing_route_for."""

    def test_none_role_is_buyer(self):
        assert tier_for_role(None) is Tier.BUYER

    def test_every_tier_has_a_landing_route(self):
        for tier in Tier:
            assert landing_route_for(tier) == LANDING_ROUTES[tier]

    def test_only_unauthenticated_is_not_authenticated(self):
        assert [t for t in Tier if not t.is_authenticated] == [Tier.UNAUTHENTICATED]
