from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from samgov_intel.api.router import api_router
from samgov_intel.core.config import get_settings
from samgov_intel.core.exceptions import AppException
from samgov_intel.core.logging import get_logger, setup_logging
from samgov_intel.db.session import close_db, get_engine
from samgov_intel.sam.client import close_sam_client
from samgov_intel.schemas.common import HealthResponse
from samgov_intel.services.notifier import close_notifier

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Manages startup and shutdown operations including:
    - Logging configuration
    - Database connection verification
    - Closing the shared SAM.gov and Graph HTTP clients
    """
    # Startup
    setup_logging()
    settings = get_settings()

    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        sam_gov_configured=bool(settings.sam_gov_api_key),
        notifications_configured=settings.graph_configured,
    )

    # Verify database connection
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Application shutting down")
    await close_sam_client()
    await close_notifier()
    await close_db()
    logger.info("Database connections closed")


def create_application() -> FastAPI:
    """
    Application factory.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="SAM.gov opportunity sync and historical price intelligence",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        logger.warning(
            "Application exception",
            error_code=exc.error_code,
            message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "Unhandled exception",
            error=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": {} if not settings.debug else {"error": str(exc)},
                }
            },
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers and monitoring."""
        return HealthResponse(
            version=settings.app_version,
            environment=settings.environment,
            components={
                "sam_gov": {"configured": bool(settings.sam_gov_api_key)},
                "notifications": {"configured": settings.graph_configured},
            },
        )

    return app


# Create application instance
app = create_application()
