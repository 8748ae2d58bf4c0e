"""Pytest configuration and fixtures for client console tests."""

import io
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable
from uuid import uuid4

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_console.core.config import settings
from client_console.core.database import create_engine_for, make_session_factory
from client_console.core.security import Actor, StaticAuthContext
from client_console.models import Base, Client, ClientStatus
from client_console.schemas.client import ClientCreateData, LogoFile
from client_console.services.clients import ClientService
from client_console.services.realtime import ChangeFeed


# ============================================================================
# Fakes
# ============================================================================

class FakeLogoStorage:
    """In-memory stand-in for the MinIO logo bucket."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_uploads = False

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        self.calls.append(("upload", path))
        if self.fail_uploads:
            raise RuntimeError(f"Failed to upload {path}: storage unavailable")
        self.objects[path] = (data, content_type)

    async def list_files(self, prefix: str) -> list[str]:
        self.calls.append(("list", prefix))
        return sorted(path for path in self.objects if path.startswith(prefix))

    async def remove_files(self, paths: list[str]) -> None:
        self.calls.append(("remove", list(paths)))
        for path in paths:
            self.objects.pop(path, None)

    def get_public_url(self, path: str) -> str:
        return f"http://storage.test/{settings.MINIO_BUCKET_LOGOS}/{path}"


def make_png(width: int = 512, height: int = 512) -> bytes:
    """Encode a solid-color PNG of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 40, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================================
# Database Engine and Session Fixtures
# ============================================================================

@pytest.fixture
def database_path(tmp_path):
    """SQLite file with the schema created."""
    path = tmp_path / "clients.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest_asyncio.fixture
async def test_engine(database_path):
    """Async engine on the test database."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{database_path}")
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(test_engine)


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def admin_actor() -> Actor:
    return Actor(id=uuid4(), email="admin@console.test", role=settings.ADMIN_ROLE)


@pytest.fixture
def storage() -> FakeLogoStorage:
    return FakeLogoStorage()


@pytest.fixture
def change_feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def client_service(session_factory, storage, change_feed, admin_actor) -> ClientService:
    """ClientService acting as a signed-in super admin."""
    return ClientService(
        session_factory=session_factory,
        storage=storage,
        auth=StaticAuthContext(admin_actor),
        change_feed=change_feed,
    )


@pytest.fixture
def anonymous_service(session_factory, storage, change_feed) -> ClientService:
    """ClientService with nobody signed in."""
    return ClientService(
        session_factory=session_factory,
        storage=storage,
        auth=StaticAuthContext(None),
        change_feed=change_feed,
    )


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def client_payload() -> Callable[..., ClientCreateData]:
    """Factory for valid create payloads."""

    def _payload(**overrides: Any) -> ClientCreateData:
        values = {
            "organization_name": "Acme Retail",
            "business_category": "Retail",
            "tenant_admin_full_name": "Jane Doe",
            "tenant_admin_email": "jane@acme.test",
            "tenant_admin_mobile": "+12345678901",
        }
        values.update(overrides)
        return ClientCreateData(**values)

    return _payload


@pytest.fixture
def png_logo() -> LogoFile:
    return LogoFile(filename="brand.png", content_type="image/png", data=make_png())


@pytest_asyncio.fixture
async def seed_clients(session_factory) -> Callable[..., Any]:
    """
    Insert clients directly, newest last.

    Row ``i`` is created ``i`` minutes after a fixed base time, so the list
    order (newest first) is the reverse of the insertion order.
    """

    async def _seed(count: int, **overrides: Any) -> list[Client]:
        base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows = []
        for i in range(count):
            values = {
                "organization_name": f"Organization {i + 1:03d}",
                "business_category": "Retail",
                "tenant_admin_full_name": f"Admin {i + 1:03d}",
                "tenant_admin_email": f"admin{i + 1:03d}@example.test",
                "tenant_admin_mobile": "+12345678901",
                "status": ClientStatus.ACTIVE,
                "created_at": base_time + timedelta(minutes=i),
                "updated_at": base_time + timedelta(minutes=i),
            }
            values.update(overrides)
            rows.append(Client(**values))

        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _seed


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for direct assertions against the test database."""
    async with session_factory() as session:
        yield session
