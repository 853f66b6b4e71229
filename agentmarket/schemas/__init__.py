"""
Request and response schemas.
"""

from agentmarket.schemas.auth import LoginRequest
from agentmarket.schemas.common import ErrorResponse, HealthResponse, PageResponse
from agentmarket.schemas.seller_application import SellerApplicationRequest

__all__ = [
    "LoginRequest",
    "ErrorResponse",
    "HealthResponse",
    "PageResponse",
    "SellerApplicationRequest",
]
