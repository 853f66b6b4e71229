"""
Authentication schemas.
"""

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
