"""Task queue service for enqueueing background jobs."""

from functools import lru_cache
from typing import Any
from uuid import UUID

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from client_console.core.config import settings


class TaskQueueService:
    """
    Service for enqueueing background tasks to ARQ.

    Provides high-level methods for common task operations.
    """

    def __init__(self) -> None:
        """Initialize task queue service."""
        self._pool: ArqRedis | None = None

    async def get_pool(self) -> ArqRedis:
        """Get or create ARQ Redis pool."""
        if self._pool is None:
            self._pool = await create_pool(
                RedisSettings.from_dsn(settings.ARQ_REDIS_URL),
                default_queue_name=settings.ARQ_QUEUE_NAME,
            )
        return self._pool

    async def close(self) -> None:
        """Close Redis pool."""
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None

    async def enqueue_logo_cleanup(
        self,
        tenant_id: UUID,
        keep_path: str,
    ) -> dict[str, Any]:
        """
        Enqueue removal of a tenant's logo files other than the current one.

        Args:
            tenant_id: Tenant whose logo folder is cleaned
            keep_path: Object name of the logo that was just uploaded

        Returns:
            Dict with job info (job_id, tenant_id)
        """
        pool = await self.get_pool()
        job = await pool.enqueue_job(
            "purge_stale_logos",
            str(tenant_id),  # Convert UUID to string for serialization
            keep_path,
        )

        # enqueue_job returns None when a job with the same id is already queued
        return {
            "job_id": job.job_id if job is not None else None,
            "tenant_id": str(tenant_id),
        }


@lru_cache
def get_task_queue_service() -> TaskQueueService:
    """Get cached task queue service instance."""
    return TaskQueueService()
