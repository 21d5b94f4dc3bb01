"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Tests import the module-level `app` and override its dependencies

2. Lifespan Events
   - startup: log configuration, pick the email sender
   - shutdown: dispose of the connection pool

3. Exception Handlers
   - Services raise typed errors (rottenbikes.exceptions); one handler per
     family turns them into {"detail": ...} responses
   - Database and unexpected errors are logged with detail and answered
     with an opaque 500
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rottenbikes import exceptions
from rottenbikes.config import get_settings
from rottenbikes.database import engine
from rottenbikes.dependencies import DbSession
from rottenbikes.routers import (
    auth_router,
    bikes_router,
    posters_router,
    ratings_router,
    reviews_router,
)
from rottenbikes.services.email import get_email_sender
from rottenbikes.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"API version: {settings.api_version}")
    logger.info(f"Email sender: {get_email_sender().name}")

    yield

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    engine.dispose()


# =============================================================================
# Exception Handlers
# =============================================================================
# Status code for each error family. Lookup walks the exception's MRO, so a
# subclass maps to its nearest listed ancestor.
ERROR_STATUS: dict[type[exceptions.RottenBikesError], int] = {
    exceptions.NotFoundError: status.HTTP_404_NOT_FOUND,
    exceptions.ConflictError: status.HTTP_409_CONFLICT,
    exceptions.RateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
    exceptions.UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    exceptions.InvalidInputError: status.HTTP_400_BAD_REQUEST,
    exceptions.OperationTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
    exceptions.EmailDeliveryError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: exceptions.RottenBikesError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_exception_handler(
    request: Request,
    exc: exceptions.RottenBikesError,
) -> JSONResponse:
    """
    Handle failures raised on purpose by the service layer.

    Every unauthorized variant (unknown, unverified, expired token) gets the
    same body so callers cannot probe which one applied.
    """
    status_code = status_for(exc)

    if status_code == status.HTTP_401_UNAUTHORIZED:
        logger.info(f"Unauthorized request to {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={"detail": "unauthorized"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## RottenBikes API

Reviews and ratings for shared city bikes.

### Features
- **Auth**: Passwordless sign-in with emailed magic links
- **Bikes**: Register bikes by frame number and QR code
- **Reviews**: Comment and score brakes, seat, sturdiness, power and pedals
- **Ratings**: Per-bike averages, overall and over the last weeks

### Authentication
Send `Authorization: Bearer <api_token>` on write endpoints.
The token comes from confirming a magic link.
        """,
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    app.add_exception_handler(exceptions.RottenBikesError, domain_exception_handler)

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error for debugging while hiding details from users.
        """
        logger.error(f"Database error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "internal server error"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        In production, hide internal errors from users.
        In debug mode, show more details.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc)},
            )

        return JSONResponse(
            status_code=500,
            content={"detail": "internal server error"},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{settings.api_version}"

    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(posters_router, prefix=api_prefix)
    # Reviews and ratings routers must come before the bikes router
    # so that /bikes/reviews and /bikes/ratings match before /bikes/{bike_id}
    app.include_router(reviews_router, prefix=api_prefix)
    app.include_router(ratings_router, prefix=api_prefix)
    app.include_router(bikes_router, prefix=api_prefix)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/healthz",
        tags=["Health"],
        summary="Health check",
        description="Check that the API is up and the database answers.",
    )
    def health_check(db: DbSession) -> JSONResponse:
        """
        Health check endpoint for load balancers and container probes.

        Returns 503 when the database cannot be reached.
        """
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error(f"Health check failed: {exc}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "unreachable"},
            )

        return JSONResponse(
            content={
                "status": "healthy",
                "app": settings.app_name,
                "version": settings.api_version,
                "rate_limiting": {
                    "enabled": settings.rate_limit_enabled,
                    "default_limit": settings.rate_limit_default,
                },
            }
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn rottenbikes.main:app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rottenbikes.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
