"""Tests for background worker tasks."""

import pytest

from client_console.models import Client
from client_console.worker.tasks import purge_stale_logos


@pytest.fixture
def worker_ctx(storage, session_factory):
    return {"storage": storage, "session_factory": session_factory}


@pytest.mark.asyncio
async def test_purge_keeps_current_logo(worker_ctx, storage, seed_clients):
    [client] = await seed_clients(1)
    tenant = str(client.tenant_id)
    storage.objects[f"{tenant}/logo.png"] = (b"new", "image/png")
    storage.objects[f"{tenant}/logo.jpg"] = (b"old", "image/jpeg")
    storage.objects["other-tenant/logo.jpg"] = (b"other", "image/jpeg")

    result = await purge_stale_logos(worker_ctx, tenant, f"{tenant}/logo.png")

    assert result["removed"] == [f"{tenant}/logo.jpg"]
    assert result["kept"] == [f"{tenant}/logo.png"]
    assert sorted(storage.objects) == sorted([f"{tenant}/logo.png", "other-tenant/logo.jpg"])


@pytest.mark.asyncio
async def test_purge_with_nothing_stale(worker_ctx, storage, seed_clients):
    [client] = await seed_clients(1)
    tenant = str(client.tenant_id)
    storage.objects[f"{tenant}/logo.png"] = (b"new", "image/png")

    result = await purge_stale_logos(worker_ctx, tenant, f"{tenant}/logo.png")

    assert result["removed"] == []
    assert not any(call[0] == "remove" for call in storage.calls)


@pytest.mark.asyncio
async def test_out_of_order_purge_keeps_logo_on_record(worker_ctx, storage, seed_clients):
    [client] = await seed_clients(1)
    tenant = str(client.tenant_id)
    # logo.png was uploaded first, then logo.jpg, which the record now points to
    storage.objects[f"{tenant}/logo.png"] = (b"first", "image/png")
    storage.objects[f"{tenant}/logo.jpg"] = (b"second", "image/jpeg")
    async with worker_ctx["session_factory"]() as session:
        row = await session.get(Client, client.id)
        row.organization_logo_url = storage.get_public_url(f"{tenant}/logo.jpg")
        await session.commit()

    # The job enqueued for the png upload runs last
    await purge_stale_logos(worker_ctx, tenant, f"{tenant}/logo.png")
    assert f"{tenant}/logo.jpg" in storage.objects

    await purge_stale_logos(worker_ctx, tenant, f"{tenant}/logo.jpg")
    assert sorted(storage.objects) == [f"{tenant}/logo.jpg"]
