"""Health check API endpoints."""

from fastapi import APIRouter, HTTPException, status

from client_console.schemas.health import HealthCheckResponse, HealthStatus
from client_console.services.health import HealthCheckService

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="System health check",
    description="Check health of the database, Redis and the logo bucket",
    tags=["Health"],
)
async def health_check() -> HealthCheckResponse:
    """
    Report the health of every backend the console depends on.

    Response statuses:
    - `healthy`: All services operational
    - `degraded`: MinIO (or Redis, when not relaying live updates) is down;
      listing and editing still work, logo uploads or live updates may not
    - `unhealthy`: The database (or Redis, when relaying live updates) is down

    Always answers 200; use `/health/ready` for a status-code based probe.
    """
    return await HealthCheckService().perform_health_check()


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    tags=["Health"],
)
async def liveness_probe() -> dict[str, str]:
    """Always 200 while the process is serving requests."""
    return {"status": "alive"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    tags=["Health"],
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "A critical service is down"},
    },
)
async def readiness_probe() -> dict[str, str]:
    """
    Readiness probe.

    Raises:
        HTTPException: 503 listing the unhealthy services when a critical one is down
    """
    health_response = await HealthCheckService().perform_health_check()

    if health_response.status == HealthStatus.UNHEALTHY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "not_ready",
                "reason": "Critical services are unhealthy",
                "services": {
                    name: {
                        "status": service.status.value,
                        "error": service.error,
                    }
                    for name, service in health_response.services.items()
                    if service.status == HealthStatus.UNHEALTHY
                },
            },
        )

    return {"status": "ready"}
