"""API dependencies."""

from client_console.api.dependencies.auth import (
    get_current_actor,
    get_current_admin,
    get_websocket_admin,
)
from client_console.api.dependencies.services import (
    build_client_service,
    get_client_service,
    get_feed,
    get_logo_storage,
    get_session_factory,
    get_task_queue,
)

__all__ = [
    "build_client_service",
    "get_client_service",
    "get_current_actor",
    "get_current_admin",
    "get_feed",
    "get_logo_storage",
    "get_session_factory",
    "get_task_queue",
    "get_websocket_admin",
]
