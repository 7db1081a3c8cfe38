"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from propdesk.core.config import settings
from propdesk.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PropdeskError,
)
from propdesk.core.logging import configure_logging
from propdesk.api.routes import router as api_router
from propdesk.api.middleware.logging import LoggingMiddleware
from propdesk.api.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()

_ERROR_STATUS: dict[type[PropdeskError], int] = {
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
}


async def _seed_on_startup() -> None:
    from propdesk.models.database import session_scope
    from propdesk.rbac.seed import seed_default_policy
    from propdesk.rbac.service import RBACService

    async with session_scope() as session:
        await seed_default_policy(RBACService(session))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Application starting", environment=settings.environment)

    if settings.rbac.seed_on_startup:
        await _seed_on_startup()

    yield

    # Shutdown
    from propdesk.models.database import close_db
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(api_router, prefix="/api")

    # Exception handlers
    @app.exception_handler(PropdeskError)
    async def propdesk_exception_handler(request: Request, exc: PropdeskError):
        """Map domain errors to HTTP status codes."""
        status_code = next(
            (
                code
                for error_type, code in _ERROR_STATUS.items()
                if isinstance(exc, error_type)
            ),
            status.HTTP_400_BAD_REQUEST,
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.code, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if settings.debug else "An error occurred",
            },
        )

    # Health check
    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "propdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        workers=settings.workers,
    )
