"""
Common schema types used by the web front-end.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    field_errors: Optional[Dict[str, str]] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    backend: str


class PageResponse(BaseModel):
    """What a guarded page request renders."""

    path: str
    view: str
    tier: str
    landing_route: str
    actions: List[str] = []
