"""
ticketflow - Main FastAPI Application

Entry point for the HTTP surface of the workflow engine.
It configures middleware, routes, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .engine.permission_cache import PermissionCache
from .repositories.mongo_client import create_indexes, close_connection, ping
from .repositories.permission_repo import PermissionRepository
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Creates MongoDB indexes
        - Builds the permission cache (preloaded when configured)

    Shutdown:
        - Closes database connections
    """
    logger.info("Starting ticketflow...")

    try:
        create_indexes()
    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")

    cache = PermissionCache(PermissionRepository())
    if settings.permission_cache_preload:
        try:
            cache.refresh_all()
        except Exception as e:
            logger.error(f"Permission cache preload failed, loading lazily: {e}")
    app.state.permission_cache = cache

    logger.info("Application started successfully")

    yield

    logger.info("Shutting down...")
    close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title="ticketflow",
        description="Help-desk workflow engine: navigation, assignment, SLA and permissions",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)

    return application


def _configure_middleware(app: FastAPI) -> None:
    """Configure application middleware."""
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    def health():
        """Liveness plus database connectivity."""
        mongo_ok = ping()
        return {
            "status": "healthy" if mongo_ok else "degraded",
            "version": __version__,
            "environment": settings.environment,
            "mongo": "up" if mongo_ok else "down"
        }


app = create_app()
