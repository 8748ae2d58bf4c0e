"""API v1 router configuration."""

from fastapi import APIRouter

from client_console.api.v1.endpoints import clients, console, health

api_router = APIRouter()

api_router.include_router(
    clients.router,
    tags=["Clients"],
)
api_router.include_router(
    console.router,
    tags=["Console"],
)
api_router.include_router(
    health.router,
    tags=["Health"],
)
