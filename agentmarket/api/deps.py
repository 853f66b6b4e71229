"""
FastAPI dependencies: backend client and the per-request session context.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agentmarket.api.client import MarketplaceApiClient
from agentmarket.kernel.identity.providers import BearerTokenProvider, backend_identity_loader
from agentmarket.kernel.identity.session_context import SessionContext

# Missing credentials are fine: the visitor is simply unauthenticated
security = HTTPBearer(auto_error=False)


def get_api_client(request: Request) -> MarketplaceApiClient:
    """The shared backend client created at startup."""
    client = getattr(request.app.state, "api_client", None)
    if client is None:
        raise RuntimeError("Marketplace API client not initialised")
    return client


ApiClient = Annotated[MarketplaceApiClient, Depends(get_api_client)]


async def get_session_context(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    api: ApiClient,
) -> AsyncGenerator[SessionContext, None]:
    """
    Resolve the bearer token to an identity via GET /api/auth/user.

    A token the backend rejects yields an unauthenticated context; a backend
    outage raises TransientFailure (answered as 503).
    """
    token = credentials.credentials if credentials else None
    context = SessionContext(
        BearerTokenProvider(token),
        identity_loader=backend_identity_loader(api),
        strict=True,
    )
    async with context:
        yield context


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
