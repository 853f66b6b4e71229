"""
Admin sign-in: log in, then confirm the admin tier with the backend.
"""

from dataclasses import dataclass
from typing import Optional

from agentmarket.kernel import routes
from agentmarket.kernel.identity.providers import PasswordLoginProvider
from agentmarket.kernel.identity.role_resolver import resolve_tier
from agentmarket.kernel.identity.session_context import SessionContext
from agentmarket.kernel.models.identity import Identity, Tier
from agentmarket.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdminLoginResult:
    """Outcome of an admin sign-in attempt."""

    granted: bool
    identity: Optional[Identity]
    redirect_to: Optional[str] = None


async def admin_login(
    provider: PasswordLoginProvider,
    context: SessionContext,
    email: str,
    password: str,
) -> AdminLoginResult:
    """
    Sign in and check the account is an admin.

    The tier comes from a fresh GET /api/auth/user, not from the login
    response. A valid non-admin account stays signed in but is denied; the
    caller shows the access-denied view.

    Raises:
        ValidationRejected: Bad credentials
        TransientFailure: Backend unreachable or failing
    """
    await provider.login(email, password)
    identity = await context.refresh()
    if resolve_tier(identity).tier is Tier.ADMIN:
        logger.info("Admin signed in", extra={"identity_id": identity.id})
        return AdminLoginResult(granted=True, identity=identity, redirect_to=routes.ADMIN)
    logger.warning(
        "Admin sign-in refused for non-admin account",
        extra={"identity_id": identity.id if identity else None},
    )
    return AdminLoginResult(granted=False, identity=identity)
