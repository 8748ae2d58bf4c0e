"""Tests for the client data-access service."""

from uuid import uuid4

import pytest
from sqlalchemy import select
from redis.exceptions import ConnectionError as RedisConnectionError

from client_console.core.errors import (
    AuthenticationError,
    ClientServiceError,
    LogoValidationError,
)
from client_console.models import Client, ClientStatus
from client_console.schemas.client import ClientListOptions, ClientUpdateData, LogoFile
from client_console.core.security import StaticAuthContext
from client_console.schemas.realtime import ChangeEventType
from client_console.services.clients import ClientService
from client_console.services.realtime import ChangeFeed

from conftest import make_png


# ============================================================================
# Listing
# ============================================================================

@pytest.mark.asyncio
async def test_list_second_page_of_120(client_service, seed_clients):
    """Page 2 with page size 50 holds records 51-100 of the newest-first order."""
    await seed_clients(120)

    result = await client_service.list_clients(ClientListOptions(page=2, page_size=50))

    assert result.total_count == 120
    assert len(result.clients) == 50
    # Newest first: record 1 in list order is Organization 120
    names = [c.organization_name for c in result.clients]
    assert names[0] == "Organization 070"
    assert names[-1] == "Organization 021"


@pytest.mark.asyncio
async def test_list_search_is_case_insensitive_across_columns(client_service, seed_clients):
    await seed_clients(1, organization_name="ACME Corp")
    await seed_clients(1, organization_name="Globex", tenant_admin_full_name="Wile E. Acme")
    await seed_clients(1, organization_name="Initech", tenant_admin_email="ops@acme.test")
    await seed_clients(1, organization_name="Umbrella")

    result = await client_service.list_clients(ClientListOptions(search_query="acme"))

    assert result.total_count == 3
    assert {c.organization_name for c in result.clients} == {"ACME Corp", "Globex", "Initech"}


@pytest.mark.asyncio
async def test_list_blank_search_is_ignored(client_service, seed_clients):
    await seed_clients(3)

    result = await client_service.list_clients(ClientListOptions(search_query="   "))

    assert result.total_count == 3


@pytest.mark.asyncio
async def test_list_search_treats_wildcards_literally(client_service, seed_clients):
    await seed_clients(1, organization_name="100% Juice")
    await seed_clients(1, organization_name="1000 Juices")

    result = await client_service.list_clients(ClientListOptions(search_query="100%"))

    assert [c.organization_name for c in result.clients] == ["100% Juice"]


@pytest.mark.asyncio
async def test_list_status_and_category_filters(client_service, seed_clients):
    await seed_clients(2, status=ClientStatus.ACTIVE, business_category="Retail")
    await seed_clients(3, status=ClientStatus.INACTIVE, business_category="Retail")
    await seed_clients(4, status=ClientStatus.ACTIVE, business_category="Automotive")

    by_status = await client_service.list_clients(
        ClientListOptions(status_filter=ClientStatus.INACTIVE)
    )
    by_both = await client_service.list_clients(
        ClientListOptions(status_filter=ClientStatus.ACTIVE, category_filter="Automotive")
    )

    assert by_status.total_count == 3
    assert by_both.total_count == 4
    assert all(c.business_category == "Automotive" for c in by_both.clients)


# ============================================================================
# Single record
# ============================================================================

@pytest.mark.asyncio
async def test_get_client_returns_none_when_missing(client_service):
    assert await client_service.get_client(uuid4()) is None
    assert await client_service.get_client("not-a-uuid") is None


@pytest.mark.asyncio
async def test_get_client_returns_record(client_service, seed_clients):
    [row] = await seed_clients(1, organization_name="Acme")

    record = await client_service.get_client(row.id)

    assert record is not None
    assert record.organization_name == "Acme"
    assert record.tenant_id == row.tenant_id


# ============================================================================
# Create / update
# ============================================================================

@pytest.mark.asyncio
async def test_create_sets_audit_fields_and_defaults(
    client_service, client_payload, admin_actor, change_feed
):
    events = []

    async def capture(change):
        events.append(change)

    change_feed.subscribe("clients", capture)

    record = await client_service.create_client(client_payload(tenant_admin_role=""))
    await change_feed.drain()

    assert record.status == ClientStatus.PENDING_VERIFICATION
    assert record.created_by == admin_actor.id
    assert record.updated_by == admin_actor.id
    assert record.tenant_id is not None
    assert record.tenant_admin_role is None
    assert [e.event_type for e in events] == [ChangeEventType.INSERT]
    assert events[0].row_id == str(record.id)


@pytest.mark.asyncio
async def test_create_requires_actor(anonymous_service, client_payload):
    with pytest.raises(AuthenticationError, match="User not authenticated"):
        await anonymous_service.create_client(client_payload())


@pytest.mark.asyncio
async def test_update_writes_only_set_fields(client_service, client_payload, db_session):
    created = await client_service.create_client(
        client_payload(brand_color="#112233", country_region="India")
    )

    updated = await client_service.update_client(
        created.id, ClientUpdateData(country_region="United States")
    )

    assert updated.country_region == "United States"
    assert updated.brand_color == "#112233"
    assert updated.organization_name == created.organization_name

    row = (await db_session.execute(select(Client).where(Client.id == created.id))).scalar_one()
    assert row.country_region == "United States"


@pytest.mark.asyncio
async def test_update_can_clear_a_field(client_service, client_payload):
    created = await client_service.create_client(
        client_payload(organization_logo_url="http://storage.test/x.png")
    )

    updated = await client_service.update_client(
        created.id, ClientUpdateData(organization_logo_url=None)
    )

    assert updated.organization_logo_url is None


@pytest.mark.asyncio
async def test_update_unknown_client_fails(client_service):
    with pytest.raises(ClientServiceError, match="Failed to update client"):
        await client_service.update_client(uuid4(), ClientUpdateData(country_region="X"))


@pytest.mark.asyncio
async def test_update_status_publishes_update(client_service, client_payload, change_feed):
    created = await client_service.create_client(client_payload())
    events = []

    async def capture(change):
        events.append(change)

    change_feed.subscribe("clients", capture, event="UPDATE", row_id=created.id)

    updated = await client_service.update_client_status(created.id, ClientStatus.ACTIVE)
    await change_feed.drain()

    assert updated.status == ClientStatus.ACTIVE
    assert len(events) == 1
    assert events[0].new["status"] == "active"


class UnreachableFeed(ChangeFeed):
    async def publish(self, change):
        raise RedisConnectionError("Error 111 connecting to redis:6379")


@pytest.mark.asyncio
async def test_write_survives_publish_failure(
    session_factory, storage, admin_actor, client_payload, caplog
):
    service = ClientService(
        session_factory=session_factory,
        storage=storage,
        auth=StaticAuthContext(admin_actor),
        change_feed=UnreachableFeed(),
    )

    record = await service.create_client(client_payload())
    updated = await service.update_client(record.id, ClientUpdateData(country_region="Peru"))

    assert updated.country_region == "Peru"
    assert (await service.get_client(record.id)).country_region == "Peru"
    assert f"Failed to publish INSERT for client {record.id}" in caplog.text


@pytest.mark.asyncio
async def test_update_requires_actor(anonymous_service, client_service, client_payload):
    created = await client_service.create_client(client_payload())

    with pytest.raises(AuthenticationError):
        await anonymous_service.update_client(created.id, ClientUpdateData(country_region="X"))


# ============================================================================
# Logos
# ============================================================================

@pytest.mark.asyncio
async def test_upload_logo_stores_under_tenant_folder(client_service, storage, png_logo):
    tenant_id = uuid4()

    url = await client_service.upload_logo(tenant_id, png_logo)

    assert f"{tenant_id}/logo.png" in storage.objects
    assert url == f"http://storage.test/organization-logos/{tenant_id}/logo.png"


@pytest.mark.asyncio
async def test_upload_logo_overwrites_same_path(client_service, storage):
    tenant_id = uuid4()
    first = LogoFile(filename="a.png", content_type="image/png", data=make_png(600, 600))
    second = LogoFile(filename="b.png", content_type="image/png", data=make_png(700, 700))

    await client_service.upload_logo(tenant_id, first)
    await client_service.upload_logo(tenant_id, second)

    assert list(storage.objects) == [f"{tenant_id}/logo.png"]
    assert storage.objects[f"{tenant_id}/logo.png"][0] == second.data


@pytest.mark.asyncio
async def test_upload_logo_rejects_invalid_files(client_service, storage):
    gif = LogoFile(filename="a.gif", content_type="image/gif", data=b"GIF89a")
    small = LogoFile(filename="a.png", content_type="image/png", data=make_png(64, 64))

    with pytest.raises(LogoValidationError, match="Only PNG, JPG, and JPEG"):
        await client_service.upload_logo(uuid4(), gif)
    with pytest.raises(LogoValidationError, match="512x512"):
        await client_service.upload_logo(uuid4(), small)

    assert storage.objects == {}


@pytest.mark.asyncio
async def test_upload_logo_wraps_storage_errors(client_service, storage, png_logo):
    storage.fail_uploads = True

    with pytest.raises(ClientServiceError, match="Failed to upload logo"):
        await client_service.upload_logo(uuid4(), png_logo)


@pytest.mark.asyncio
async def test_delete_logo_removes_every_file(client_service, storage):
    tenant_id = uuid4()
    other_tenant = uuid4()
    storage.objects[f"{tenant_id}/logo.png"] = (b"1", "image/png")
    storage.objects[f"{tenant_id}/logo.jpg"] = (b"2", "image/jpeg")
    storage.objects[f"{other_tenant}/logo.png"] = (b"3", "image/png")

    await client_service.delete_logo(tenant_id)

    assert list(storage.objects) == [f"{other_tenant}/logo.png"]


@pytest.mark.asyncio
async def test_delete_logo_without_files_is_noop(client_service, storage):
    await client_service.delete_logo(uuid4())

    assert not any(call[0] == "remove" for call in storage.calls)
