"""Client data-access service.

Wraps the clients table, the organization-logos bucket, the current-actor
lookup and the change feed behind one object. Collaborators are passed in,
so tests and alternative deployments can substitute any of them.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_console.core.errors import (
    AuthenticationError,
    ClientServiceError,
    LogoValidationError,
)
from client_console.core.security import Actor, AuthContext
from client_console.models.client import Client, ClientStatus
from client_console.schemas.client import (
    ClientCreateData,
    ClientListOptions,
    ClientListResult,
    ClientRecord,
    ClientUpdateData,
    LogoFile,
)
from client_console.schemas.realtime import ChangeEventType
from client_console.services.realtime import ChangeFeed, make_change_event
from client_console.services.storage import LogoStore
from client_console.services.task_queue import TaskQueueService
from client_console.utils.validation import validate_logo_dimensions, validate_logo_file

logger = logging.getLogger(__name__)

CLIENTS_TABLE = Client.__tablename__
LOGO_OBJECT_NAME = "logo"

# Optional text columns: empty input is stored as NULL
OPTIONAL_TEXT_FIELDS = (
    "organization_logo_url",
    "tenant_admin_role",
    "preferred_display_name",
    "brand_color",
    "default_time_zone",
    "country_region",
    "primary_contact_person",
    "support_contact_email",
    "escalation_contact",
)


def _blank_to_none(values: dict[str, Any]) -> dict[str, Any]:
    for field in OPTIONAL_TEXT_FIELDS:
        if field in values and isinstance(values[field], str) and not values[field].strip():
            values[field] = None
    return values


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def logo_path(tenant_id: UUID | str, file: LogoFile) -> str:
    """Object name for a tenant's logo: '<tenant_id>/logo.<ext>'."""
    return f"{tenant_id}/{LOGO_OBJECT_NAME}.{file.extension}"


class ClientService:
    """
    Data access for client organizations.

    Handles:
    - Search/filter/paginate queries over the clients table
    - Create and partial update with actor audit fields
    - Logo upload/removal in object storage
    - Change notifications after every committed write
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage: LogoStore,
        auth: AuthContext,
        change_feed: ChangeFeed,
        task_queue: Optional[TaskQueueService] = None,
    ) -> None:
        self._session_factory = session_factory
        self._storage = storage
        self._auth = auth
        self._change_feed = change_feed
        self._task_queue = task_queue

    async def list_clients(self, options: Optional[ClientListOptions] = None) -> ClientListResult:
        """
        Fetch one page of clients matching search and filters.

        The search text is matched case-insensitively against organization
        name, tenant admin name and tenant admin email (any of them). Results
        are newest first.

        Args:
            options: Search, filters, page (1-based) and page size

        Returns:
            ClientListResult with the page and the total matching count

        Raises:
            ClientServiceError: If the query fails
        """
        options = options or ClientListOptions()

        filters = []
        search = (options.search_query or "").strip()
        if search:
            filters.append(
                or_(
                    Client.organization_name.icontains(search, autoescape=True),
                    Client.tenant_admin_full_name.icontains(search, autoescape=True),
                    Client.tenant_admin_email.icontains(search, autoescape=True),
                )
            )
        if options.status_filter:
            filters.append(Client.status == options.status_filter)
        if options.category_filter:
            filters.append(Client.business_category == options.category_filter)

        offset = (options.page - 1) * options.page_size

        try:
            async with self._session_factory() as session:
                total_count = await session.scalar(
                    select(func.count()).select_from(Client).where(*filters)
                )
                result = await session.execute(
                    select(Client)
                    .where(*filters)
                    .order_by(Client.created_at.desc(), Client.id.desc())
                    .offset(offset)
                    .limit(options.page_size)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Client list query failed: {e}")
            raise ClientServiceError(f"Failed to fetch clients: {e}") from e

        return ClientListResult(
            clients=[ClientRecord.model_validate(row) for row in rows],
            total_count=total_count or 0,
        )

    async def get_client(self, client_id: UUID | str) -> Optional[ClientRecord]:
        """
        Fetch a single client.

        Returns:
            The record, or None when no client has this id

        Raises:
            ClientServiceError: If the query fails
        """
        try:
            client_uuid = _as_uuid(client_id)
        except ValueError:
            return None

        try:
            async with self._session_factory() as session:
                client = await session.get(Client, client_uuid)
        except SQLAlchemyError as e:
            raise ClientServiceError(f"Failed to fetch client: {e}") from e

        return ClientRecord.model_validate(client) if client is not None else None

    async def create_client(self, data: ClientCreateData) -> ClientRecord:
        """
        Insert a client. The backend assigns id, tenant_id and timestamps.

        Raises:
            AuthenticationError: If nobody is signed in
            ClientServiceError: If the insert fails
        """
        actor = await self._require_actor()

        values = _blank_to_none(data.model_dump())
        values["status"] = data.status or ClientStatus.PENDING_VERIFICATION
        client = Client(**values, created_by=actor.id, updated_by=actor.id)

        try:
            async with self._session_factory() as session:
                session.add(client)
                await session.commit()
                await session.refresh(client)
        except SQLAlchemyError as e:
            raise ClientServiceError(f"Failed to create client: {e}") from e

        record = ClientRecord.model_validate(client)
        logger.info(f"Client created: {record.id} (tenant={record.tenant_id}, actor={actor.id})")
        await self._publish(ChangeEventType.INSERT, record)
        return record

    async def update_client(
        self, client_id: UUID | str, data: ClientUpdateData
    ) -> ClientRecord:
        """
        Partially update a client: only fields explicitly set on ``data`` change.

        Raises:
            AuthenticationError: If nobody is signed in
            ClientServiceError: If the client does not exist or the update fails
        """
        actor = await self._require_actor()
        changes = _blank_to_none(data.model_dump(exclude_unset=True))
        return await self._apply_update(client_id, changes, actor, "update client")

    async def update_client_status(
        self, client_id: UUID | str, status: ClientStatus
    ) -> ClientRecord:
        """Change only the status of a client."""
        actor = await self._require_actor()
        return await self._apply_update(
            client_id, {"status": status}, actor, "update client status"
        )

    async def _apply_update(
        self,
        client_id: UUID | str,
        changes: dict[str, Any],
        actor: Actor,
        operation: str,
    ) -> ClientRecord:
        try:
            client_uuid = _as_uuid(client_id)
        except ValueError as e:
            raise ClientServiceError(f"Failed to {operation}: invalid id {client_id!r}") from e

        try:
            async with self._session_factory() as session:
                client = await session.get(Client, client_uuid)
                if client is None:
                    raise ClientServiceError(
                        f"Failed to {operation}: client {client_uuid} not found"
                    )

                for field, value in changes.items():
                    setattr(client, field, value)
                client.updated_by = actor.id

                await session.commit()
                await session.refresh(client)
        except SQLAlchemyError as e:
            raise ClientServiceError(f"Failed to {operation}: {e}") from e

        record = ClientRecord.model_validate(client)
        logger.info(f"Client updated: {record.id} fields={sorted(changes)} actor={actor.id}")
        await self._publish(ChangeEventType.UPDATE, record)
        return record

    async def upload_logo(self, tenant_id: UUID | str, file: LogoFile) -> str:
        """
        Validate and store a tenant's logo, overwriting any file at the same path.

        The object is stored at '<tenant_id>/logo.<ext>' with the extension of
        the uploaded filename.

        Returns:
            Public URL of the stored logo

        Raises:
            LogoValidationError: If type, size or dimensions are not acceptable
            ClientServiceError: If the upload fails
        """
        error = validate_logo_file(file) or await validate_logo_dimensions(file)
        if error:
            raise LogoValidationError(error)

        path = logo_path(tenant_id, file)
        try:
            await self._storage.upload(path, file.data, file.content_type)
        except RuntimeError as e:
            raise ClientServiceError(f"Failed to upload logo: {e}") from e

        if self._task_queue is not None:
            try:
                await self._task_queue.enqueue_logo_cleanup(_as_uuid(tenant_id), path)
            except Exception as e:
                logger.warning(f"Could not enqueue logo cleanup for tenant {tenant_id}: {e}")

        return self._storage.get_public_url(path)

    async def delete_logo(self, tenant_id: UUID | str) -> None:
        """
        Remove every file under the tenant's logo folder.

        Raises:
            ClientServiceError: If listing or deletion fails
        """
        try:
            paths = await self._storage.list_files(f"{tenant_id}/")
        except RuntimeError as e:
            raise ClientServiceError(f"Failed to list logos: {e}") from e

        if not paths:
            return

        try:
            await self._storage.remove_files(paths)
        except RuntimeError as e:
            raise ClientServiceError(f"Failed to delete logo: {e}") from e

        logger.info(f"Removed {len(paths)} logo file(s) for tenant {tenant_id}")

    async def _require_actor(self) -> Actor:
        actor = await self._auth.get_user()
        if actor is None:
            raise AuthenticationError("User not authenticated")
        return actor

    async def _publish(self, event_type: ChangeEventType, record: ClientRecord) -> None:
        # The write is already committed; a lost notification must not fail it
        try:
            await self._change_feed.publish(
                make_change_event(
                    CLIENTS_TABLE,
                    event_type,
                    new=record.model_dump(mode="json"),
                    old={"id": str(record.id)} if event_type != ChangeEventType.INSERT else None,
                )
            )
        except Exception:
            logger.exception(f"Failed to publish {event_type.value} for client {record.id}")
