"""Service providers for API endpoints.

Each backend collaborator has its own provider so tests can replace it through
``app.dependency_overrides``.
"""

from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_console.api.dependencies.auth import get_current_admin
from client_console.core.config import settings
from client_console.core.database import async_session_maker
from client_console.core.security import Actor, StaticAuthContext
from client_console.services.clients import ClientService
from client_console.services.realtime import ChangeFeed, get_change_feed
from client_console.services.storage import LogoStore, get_minio_service
from client_console.services.task_queue import TaskQueueService, get_task_queue_service


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


def get_logo_storage() -> LogoStore:
    return get_minio_service()


def get_feed() -> ChangeFeed:
    return get_change_feed()


def get_task_queue() -> Optional[TaskQueueService]:
    return get_task_queue_service() if settings.ARQ_ENABLED else None


def build_client_service(
    actor: Optional[Actor],
    session_factory: async_sessionmaker[AsyncSession],
    storage: LogoStore,
    change_feed: ChangeFeed,
    task_queue: Optional[TaskQueueService],
) -> ClientService:
    """Create a ClientService acting on behalf of ``actor``."""
    return ClientService(
        session_factory=session_factory,
        storage=storage,
        auth=StaticAuthContext(actor),
        change_feed=change_feed,
        task_queue=task_queue,
    )


async def get_client_service(
    actor: Annotated[Actor, Depends(get_current_admin)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    storage: Annotated[LogoStore, Depends(get_logo_storage)],
    change_feed: Annotated[ChangeFeed, Depends(get_feed)],
    task_queue: Annotated[Optional[TaskQueueService], Depends(get_task_queue)],
) -> ClientService:
    """ClientService for the authenticated super admin of this request."""
    return build_client_service(actor, session_factory, storage, change_feed, task_queue)
