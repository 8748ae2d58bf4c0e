"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from client_console.api.v1.api import api_router
from client_console.core.config import settings
from client_console.core.database import engine, get_db_session
from client_console.core.errors import (
    AuthenticationError,
    ClientServiceError,
    LogoValidationError,
)
from client_console.core.logging import setup_logging
from client_console.services.realtime import get_change_feed
from client_console.services.storage import get_minio_service
from client_console.services.task_queue import get_task_queue_service

# Initialize logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.

    Handles startup and shutdown tasks:
    - Database connection verification
    - Logo bucket initialization
    - Change feed relay start/stop
    - Resource cleanup on shutdown
    """
    logger.info(
        "Starting Client Console API",
        extra={
            "version": settings.APP_VERSION,
            "env": settings.APP_ENV,
            "debug": settings.APP_DEBUG,
            "realtime_backend": settings.REALTIME_BACKEND,
        },
    )

    try:
        async with get_db_session() as db:
            await db.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise

    try:
        await get_minio_service().ensure_bucket_exists()
        logger.info("MinIO logo bucket verified")
    except Exception as e:
        logger.warning(f"MinIO initialization skipped: {e}")

    change_feed = get_change_feed()
    await change_feed.start()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Client Console API")

    await change_feed.stop()

    if settings.ARQ_ENABLED:
        await get_task_queue_service().close()

    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Administration console for client (tenant) organizations",
    docs_url="/api/docs" if settings.APP_DEBUG else None,
    redoc_url="/api/redoc" if settings.APP_DEBUG else None,
    openapi_url="/api/openapi.json" if settings.APP_DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(LogoValidationError)
async def logo_validation_error_handler(request: Request, exc: LogoValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(ClientServiceError)
async def client_service_error_handler(request: Request, exc: ClientServiceError) -> JSONResponse:
    logger.error(f"Backend call failed for {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    """Health check endpoint for load balancers and monitoring."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
        },
    )


@app.get("/ready", tags=["Health"])
async def readiness_check() -> JSONResponse:
    """Readiness check endpoint - verifies the database is reachable."""
    checks = {"database": "unknown"}

    try:
        async with get_db_session() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "error"
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": settings.APP_NAME,
                "checks": checks,
            },
        )

    return JSONResponse(
        status_code=200,
        content={
            "status": "ready",
            "service": settings.APP_NAME,
            "checks": checks,
        },
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }


app.include_router(api_router, prefix="/api/v1")
