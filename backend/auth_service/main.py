"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures middleware,
routes, exception handlers, and other application-level concerns.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from auth_service.api import auth
from auth_service.core.config import Settings, get_settings
from auth_service.core.exception_handlers import register_exception_handlers
from auth_service.core.logging_config import configure_logging
from auth_service.db.session import Database
from auth_service.middleware import (
    CORSPreflightMiddleware,
    RateLimitMiddleware,
    RateLimiter,
    build_rate_limiter,
)
from auth_service.schemas.auth import HealthResponse
from auth_service.services.email import EmailService, build_email_service

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    email_service: Optional[EmailService] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed. Every
    collaborator is built here from one Settings object unless injected.

    Args:
        settings: Application settings (read from the environment if omitted)
        rate_limiter: Rate limiter backend (built from settings if omitted)
        email_service: Email service (built from settings if omitted)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Dr3amToReal authentication service",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs" if settings.DEBUG else None,
        redoc_url=None,
        openapi_url=f"{settings.API_PREFIX}/openapi.json" if settings.DEBUG else None,
    )

    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)
    app.state.email_service = email_service or build_email_service(settings)

    # Register exception handlers
    # WHY: Exception handlers ensure consistent error responses across the API
    # and prevent sensitive data leaks in error messages (OWASP A04)
    register_exception_handlers(app)

    # Configure Rate Limit Middleware
    # WHY: Protects every route from brute-force and credential stuffing
    # attacks (OWASP A07); over-limit requests never reach a handler.
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)

    # Configure CORS
    # WHY: Added last so it is outermost: pre-flights are answered before
    # rate limiting and routing, and every response gets the CORS headers.
    app.add_middleware(CORSPreflightMiddleware, allow_headers=settings.CORS_ALLOW_HEADERS)

    # Health check endpoint
    # WHY: Load balancers and monitoring tools need a simple endpoint
    # to verify the service is running.
    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(status="healthy", version=settings.VERSION)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release pooled database connections."""
        await app.state.database.dispose()

    # Register API routers
    app.include_router(auth.router, prefix=settings.API_PREFIX)

    logger.info(
        "Application created",
        extra={
            "api_prefix": settings.API_PREFIX,
            "rate_limiter": type(app.state.rate_limiter).__name__,
            "email_provider": app.state.email_service.provider.name,
        },
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("auth_service.main:app", host="0.0.0.0", port=8000, reload=False)
