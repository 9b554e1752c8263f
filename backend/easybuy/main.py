"""
EasyBuy - vehicle marketplace backend
Main FastAPI Application Entry Point
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles

from easybuy.api.v1.endpoints.action import dispatch_action
from easybuy.api.v1.endpoints.controller import dispatch_controller
from easybuy.api.v1.router import api_router
from easybuy.core.config import settings
from easybuy.core.error_handlers import setup_exception_handlers
from easybuy.core.logging import RequestLoggingMiddleware, get_logger, setup_logging
from easybuy.db.session import async_session_maker, create_tables, dispose_engine, seed_admin_user
from easybuy.services.upload_service import ensure_upload_dirs

logger = get_logger(__name__)


async def _seed_admin() -> None:
    """Create the configured admin account if it does not exist yet. Idempotent."""
    async with async_session_maker() as session:
        if await seed_admin_user(session):
            logger.info("Admin account created")
        else:
            logger.info("Admin account seeding not needed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    setup_logging()
    logger.info("Starting EasyBuy backend service")

    if settings.DB_AUTO_CREATE:
        await create_tables()

    ensure_upload_dirs()

    try:
        await _seed_admin()
    except Exception as e:
        logger.warning(f"Admin account seeding skipped: {e}")

    yield

    # Shutdown
    logger.info("Shutting down EasyBuy backend service")
    await dispose_engine()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    tags_metadata = [
        {
            "name": "Health",
            "description": "Service health monitoring and readiness probes.",
        },
        {
            "name": "Read dispatcher",
            "description": "Page reads keyed by the `page` field: inventory, orders, ledger, dashboard, profiles and wishlists.",
        },
        {
            "name": "Write dispatcher",
            "description": "Mutations keyed by an action flag: accounts, orders, installments, inventory and wishlists. Accepts JSON or multipart bodies.",
        },
    ]

    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
# EasyBuy API

Vehicle marketplace backend: inventory, orders with full or installment
payment, receipt verification and delivery tracking.

Both dispatch endpoints answer HTTP 200 with JSON. Failures carry an
`error` key:

```
{"error": "Vehicle not found", "code": "ERR_4001", "request_id": "..."}
```
        """,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
    )

    # Added first, so it runs inside CORS and sees the final response
    application.add_middleware(RequestLoggingMiddleware)

    # Browsers reject credentialed requests to a wildcard origin
    allow_all = "*" in settings.BACKEND_CORS_ORIGINS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )

    setup_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Paths the SPA was built against
    application.add_api_route(
        "/serverAction.php", dispatch_action, methods=["POST"], include_in_schema=False
    )
    application.add_api_route(
        "/serverController.php", dispatch_controller, methods=["POST"], include_in_schema=False
    )

    # Uploaded receipts and gallery images, read-only
    application.mount(
        f"/{settings.UPLOAD_URL_PREFIX.strip('/')}",
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Basic health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "service": "easybuy-backend",
            "environment": settings.ENVIRONMENT,
        }

    return application


app = create_application()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "easybuy.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
