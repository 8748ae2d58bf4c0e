"""Health check service for monitoring system components."""

import asyncio
import logging
import time
from datetime import datetime, timezone

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.pool import QueuePool

from client_console.core.config import settings
from client_console.core.database import async_session_maker, engine
from client_console.schemas.health import HealthCheckResponse, HealthStatus, ServiceHealth
from client_console.services.storage import get_minio_service

logger = logging.getLogger(__name__)


class HealthCheckService:
    """Service for checking health of all system components."""

    async def check_database(self) -> ServiceHealth:
        """
        Check PostgreSQL database health.

        Tests:
        - Connection pool availability
        - Simple query execution
        - Response time

        Returns:
            ServiceHealth with database status
        """
        start_time = time.time()
        try:
            async with async_session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

                details: dict[str, str | int] = {"database": engine.dialect.name}
                # SQLite runs without a pool
                if isinstance(engine.pool, QueuePool):
                    details["pool_size"] = engine.pool.size()
                    details["active_connections"] = engine.pool.checkedout()

                response_time_ms = (time.time() - start_time) * 1000

                return ServiceHealth(
                    status=HealthStatus.HEALTHY,
                    response_time_ms=response_time_ms,
                    details=details,
                )

        except Exception as e:
            logger.error(f"Database health check failed: {e}", exc_info=True)
            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=response_time_ms,
                error=str(e),
            )

    async def check_redis(self) -> ServiceHealth:
        """
        Check Redis health (change feed relay and job queue).

        Returns:
            ServiceHealth with Redis status
        """
        start_time = time.time()
        try:
            redis_client = aioredis.from_url(
                settings.REDIS_URL, encoding="utf-8", decode_responses=True
            )

            try:
                ping_result = await redis_client.ping()

                response_time_ms = (time.time() - start_time) * 1000

                return ServiceHealth(
                    status=HealthStatus.HEALTHY,
                    response_time_ms=response_time_ms,
                    details={
                        "ping": "PONG" if ping_result else "FAILED",
                        "realtime_backend": settings.REALTIME_BACKEND,
                    },
                )

            finally:
                await redis_client.aclose()

        except Exception as e:
            logger.error(f"Redis health check failed: {e}", exc_info=True)
            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=response_time_ms,
                error=str(e),
            )

    async def check_minio(self) -> ServiceHealth:
        """
        Check MinIO storage health.

        Tests:
        - Connection availability
        - Logo bucket presence
        - Response time

        Returns:
            ServiceHealth with MinIO status
        """
        start_time = time.time()
        try:
            minio_service = get_minio_service()

            bucket_exists = await asyncio.to_thread(
                minio_service.client.bucket_exists, minio_service.logos_bucket
            )

            response_time_ms = (time.time() - start_time) * 1000

            return ServiceHealth(
                status=HealthStatus.HEALTHY if bucket_exists else HealthStatus.DEGRADED,
                response_time_ms=response_time_ms,
                details={
                    "bucket": minio_service.logos_bucket,
                    "bucket_exists": bucket_exists,
                    "endpoint": settings.MINIO_ENDPOINT,
                    "ssl": settings.MINIO_USE_SSL,
                },
            )

        except Exception as e:
            logger.error(f"MinIO health check failed: {e}", exc_info=True)
            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=response_time_ms,
                error=str(e),
            )

    async def perform_health_check(self) -> HealthCheckResponse:
        """
        Perform health check of all services in parallel.

        Returns:
            HealthCheckResponse with overall system health
        """
        timestamp = datetime.now(timezone.utc)

        names = ["database", "redis", "minio"]
        results = await asyncio.gather(
            self.check_database(),
            self.check_redis(),
            self.check_minio(),
            return_exceptions=True,
        )

        services = {
            name: result
            if isinstance(result, ServiceHealth)
            else ServiceHealth(status=HealthStatus.UNHEALTHY, error=str(result))
            for name, result in zip(names, results)
        }

        return HealthCheckResponse(
            status=self._compute_overall_status(services),
            timestamp=timestamp,
            version=settings.APP_VERSION,
            services=services,
        )

    def _compute_overall_status(
        self, services: dict[str, ServiceHealth]
    ) -> HealthStatus:
        """
        Compute overall system health from individual services.

        Logic:
        - UNHEALTHY: A critical service is unhealthy. The database is always
          critical; Redis only when live updates are relayed through it.
        - DEGRADED: Any other service is not healthy
        - HEALTHY: All services are healthy

        Args:
            services: Dictionary of service health statuses

        Returns:
            Overall system health status
        """
        critical_services = ["database"]
        if settings.REALTIME_BACKEND == "redis":
            critical_services.append("redis")

        for service_name in critical_services:
            if services[service_name].status == HealthStatus.UNHEALTHY:
                return HealthStatus.UNHEALTHY

        for service_name, service_health in services.items():
            if (
                service_name not in critical_services
                and service_health.status != HealthStatus.HEALTHY
            ):
                return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY
