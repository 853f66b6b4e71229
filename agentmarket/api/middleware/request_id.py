"""
Correlation middleware for page requests.

Takes X-Request-ID from the caller (or mints one), echoes it on the
response, and scopes both logging correlation fields to the request: the
request id is bound here, the identity id starts empty and is filled in by
the page route once the session is resolved.
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from agentmarket.config import get_settings
from agentmarket.logging_config import get_logger, identity_id_var, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log the slow ones."""

    def __init__(self, app: ASGIApp, slow_request_ms: Optional[float] = None):
        super().__init__(app)
        if slow_request_ms is None:
            slow_request_ms = get_settings().slow_request_ms
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        request_token = request_id_var.set(request_id)
        # Unknown until the page route resolves the session
        identity_token = identity_id_var.set(None)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            identity_id_var.reset(identity_token)
            request_id_var.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms >= self.slow_request_ms:
            # Usually a slow identity lookup against the backend
            logger.warning(
                "Slow page request",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                },
            )
        return response
