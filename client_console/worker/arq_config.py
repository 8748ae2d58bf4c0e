"""ARQ worker configuration for async task processing."""

import logging
from typing import Any

from arq.connections import RedisSettings
from arq.worker import func

from client_console.core.config import settings
from client_console.core.database import async_session_maker
from client_console.core.logging import setup_logging
from client_console.services.storage import get_minio_service
from client_console.worker.tasks import purge_stale_logos

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """
    Worker startup hook.

    Initializes the logo storage and database session factory used by the
    cleanup task and makes sure the bucket exists.
    """
    setup_logging()

    ctx["session_factory"] = async_session_maker

    ctx["storage"] = get_minio_service()
    await ctx["storage"].ensure_bucket_exists()

    logger.info(f"Worker started on queue {settings.ARQ_QUEUE_NAME}")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown hook."""
    logger.info("Worker stopped")


# Redis settings (evaluated at module import time, after env vars are loaded)
redis_settings = RedisSettings.from_dsn(settings.ARQ_REDIS_URL)


class WorkerSettings:
    """ARQ worker settings."""

    # Redis connection
    redis_settings = redis_settings

    # Worker configuration
    queue_name = settings.ARQ_QUEUE_NAME
    max_jobs = 10
    job_timeout = 300
    keep_result = 3600

    # Retry configuration
    max_tries = 3
    retry_jobs = True

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Task functions
    functions = [
        func(purge_stale_logos, name="purge_stale_logos"),
    ]
