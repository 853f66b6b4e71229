"""
AgentMarket web front-end.

FastAPI application entry point. Serves the marketplace route surface; every
page request is resolved session -> tier -> route guard.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentmarket.api import pages
from agentmarket.api.client import MarketplaceApiClient
from agentmarket.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from agentmarket.config import get_settings
from agentmarket.kernel.errors import (
    AuthenticationRequired,
    TransientFailure,
    ValidationRejected,
)
from agentmarket.logging_config import configure_logging, get_logger
from agentmarket.schemas.common import ErrorResponse, HealthResponse

settings = get_settings()
logger = get_logger(__name__)


def _error(request: Request, status_code: int, detail: str, **extra) -> JSONResponse:
    req_id = getattr(request.state, "request_id", None)
    body = ErrorResponse(detail=detail, request_id=req_id, **extra)
    headers = {REQUEST_ID_HEADER: req_id} if req_id else None
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def create_app(api_client: Optional[MarketplaceApiClient] = None) -> FastAPI:
    """
    Build the application.

    Args:
        api_client: Backend client to use; when omitted one is created at
            startup from settings and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        configure_logging(
            log_level=settings.log_level,
            environment=settings.environment,
            debug=settings.debug,
        )
        logger.info("Starting %s v%s", settings.project_name, settings.version)
        owned = None
        if getattr(app.state, "api_client", None) is None:
            owned = app.state.api_client = MarketplaceApiClient()
            logger.info("Backend client ready for %s", settings.api_base_url)

        yield

        logger.info("Shutting down...")
        if owned is not None:
            await owned.aclose()
            app.state.api_client = None

    app = FastAPI(
        title=settings.project_name,
        description="Marketplace front-end: tier resolution and guarded routes.",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )
    app.state.api_client = api_client

    # Last added = outermost; CORS wraps everything so error responses carry its headers
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthenticationRequired)
    async def authentication_required_handler(request: Request, exc: AuthenticationRequired):
        return _error(request, status.HTTP_401_UNAUTHORIZED, str(exc) or "Not authenticated")

    @app.exception_handler(ValidationRejected)
    async def validation_rejected_handler(request: Request, exc: ValidationRejected):
        return _error(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            exc.message,
            field_errors=exc.field_errors or None,
        )

    @app.exception_handler(TransientFailure)
    async def transient_failure_handler(request: Request, exc: TransientFailure):
        logger.warning("Backend unavailable: %s", exc)
        return _error(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Marketplace backend unavailable")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        detail = str(exc) if settings.debug else "Internal server error"
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check application health."""
        return HealthResponse(
            status="ok",
            version=settings.version,
            backend=settings.api_base_url,
        )

    # Catch-all page route goes last
    app.include_router(pages.router, tags=["Pages"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agentmarket.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
