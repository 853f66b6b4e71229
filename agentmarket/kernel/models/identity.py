"""
Identity, session and tier types.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agentmarket.kernel.models.base import WireModel


class Tier(str, Enum):
    """Capability tier derived from an identity's role."""
    UNAUTHENTICATED = "unauthenticated"  # no session: a valid state, not an error
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"

    @property
    def is_authenticated(self) -> bool:
        return self is not Tier.UNAUTHENTICATED


class Identity(WireModel):
    """
    A signed-in user as reported by the backend.

    ``role`` stays the raw backend string ("user", "seller", "admin", ...);
    only the role resolver turns it into a Tier. Frozen: tier changes arrive
    as a fresh Identity from a session refresh.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str = "user"
    session_token: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v)


class Session(WireModel):
    """What the identity provider hands out for a signed-in user."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    user: Optional[Identity] = None  # bearer-only sessions carry no user until loaded
    expires_at: Optional[datetime] = Field(default=None)

    @property
    def identity(self) -> Optional[Identity]:
        """The session's user with the access token attached."""
        if self.user is None or self.user.session_token == self.access_token:
            return self.user
        return self.user.model_copy(update={"session_token": self.access_token})


class TierState(BaseModel):
    """Tier of the current session plus whether it is still being resolved."""

    model_config = ConfigDict(frozen=True)

    tier: Tier = Tier.UNAUTHENTICATED
    is_loading: bool = False
