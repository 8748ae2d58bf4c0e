"""ARQ async task definitions for background processing."""

import logging
import time
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_console.models.client import Client
from client_console.services.storage import LogoStore

logger = logging.getLogger(__name__)


async def _current_logo_url(
    session_factory: async_sessionmaker[AsyncSession], tenant_id: str
) -> Optional[str]:
    async with session_factory() as session:
        return await session.scalar(
            select(Client.organization_logo_url).where(Client.tenant_id == UUID(tenant_id))
        )


async def purge_stale_logos(
    ctx: dict[str, Any],
    tenant_id: str,
    keep_path: str,
) -> dict[str, Any]:
    """
    Remove a tenant's logo files other than the current one.

    Uploading a logo with a different extension (logo.png after logo.jpg)
    leaves the old object behind because uploads only overwrite the same
    path. This task deletes everything under '<tenant_id>/' except
    ``keep_path`` and the file the client record points to when the job runs.
    Jobs may run out of order, so the record is read again here rather than
    trusted from enqueue time.

    Args:
        ctx: ARQ context with the logo storage service and session factory
        tenant_id: Tenant whose logo folder is cleaned
        keep_path: Object name of the logo uploaded when the job was enqueued

    Returns:
        Dict with the kept and removed object names and timing

    Raises:
        RuntimeError: If listing or deletion fails (ARQ retries the job)
    """
    start_time = time.time()
    storage: LogoStore = ctx["storage"]

    current_url = await _current_logo_url(ctx["session_factory"], tenant_id)

    logger.info(
        f"Purging stale logos for tenant {tenant_id} (keeping {keep_path}, record={current_url})"
    )

    paths = await storage.list_files(f"{tenant_id}/")
    kept = [
        path
        for path in paths
        if path == keep_path or (current_url is not None and current_url.endswith(f"/{path}"))
    ]
    stale = [path for path in paths if path not in kept]

    if stale:
        await storage.remove_files(stale)

    elapsed = time.time() - start_time
    logger.info(f"Purged {len(stale)} stale logo file(s) for tenant {tenant_id} in {elapsed:.2f}s")

    return {
        "tenant_id": tenant_id,
        "kept": kept,
        "removed": stale,
        "processing_time_sec": round(elapsed, 3),
    }
