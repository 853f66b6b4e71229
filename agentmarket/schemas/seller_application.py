"""
Seller application payload sent to POST /api/become-seller.
"""

from typing import Optional

from agentmarket.kernel.models.base import WireModel


class SellerApplicationRequest(WireModel):
    """A complete application, fields already trimmed."""

    business_name: str
    description: str
    expertise: str
    experience: str
    portfolio: Optional[str] = None
    motivation: str
