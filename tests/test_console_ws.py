"""Tests for the console live sessions (WebSocket)."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from starlette.websockets import WebSocketDisconnect

from client_console.api.dependencies import (
    get_feed,
    get_logo_storage,
    get_session_factory,
    get_task_queue,
)
from client_console.core.database import create_engine_for, make_session_factory
from client_console.core.security import create_access_token
from client_console.main import app
from client_console.models import Client, ClientStatus

from conftest import make_png


@pytest.fixture
def sync_db(database_path):
    """Synchronous engine for seeding and assertions outside the app's event loop."""
    engine = create_engine(f"sqlite:///{database_path}")
    yield engine
    engine.dispose()


@pytest.fixture
def ws_client(database_path, storage, change_feed):
    """TestClient with test collaborators; the lifespan is not started."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{database_path}")
    factory = make_session_factory(engine)

    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_logo_storage] = lambda: storage
    app.dependency_overrides[get_feed] = lambda: change_feed
    app.dependency_overrides[get_task_queue] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()
    engine.sync_engine.dispose()


@pytest.fixture
def token(admin_actor):
    return create_access_token(admin_actor)


def seed(sync_db, count, **overrides):
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    rows = []
    for i in range(count):
        values = {
            "organization_name": f"Organization {i + 1:03d}",
            "business_category": "Retail",
            "tenant_admin_full_name": "Jane Doe",
            "tenant_admin_email": f"admin{i + 1:03d}@example.test",
            "tenant_admin_mobile": "+12345678901",
            "status": ClientStatus.ACTIVE,
            "created_at": base_time + timedelta(minutes=i),
            "updated_at": base_time + timedelta(minutes=i),
        }
        values.update(overrides)
        rows.append(Client(**values))

    with Session(sync_db, expire_on_commit=False) as session:
        session.add_all(rows)
        session.commit()
    return rows


def receive_until(websocket, predicate):
    """Read snapshots until one matches; returns it."""
    for _ in range(20):
        message = websocket.receive_json()
        if predicate(message):
            return message
    raise AssertionError("expected message was not received")


# ============================================================================
# Authentication
# ============================================================================

def test_invalid_token_closes_with_4001(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect("/api/v1/ws/clients?token=invalid") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4001


# ============================================================================
# Client list session
# ============================================================================

def test_list_session_pushes_snapshots(ws_client, sync_db, token):
    seed(sync_db, 3)

    with ws_client.websocket_connect(f"/api/v1/ws/clients?token={token}") as websocket:
        loading = websocket.receive_json()
        loaded = websocket.receive_json()

        assert loading["type"] == "client_list"
        assert loading["loading"] is True
        assert loaded["loading"] is False
        assert [row["organization_name"] for row in loaded["rows"]] == [
            "Organization 003",
            "Organization 002",
            "Organization 001",
        ]
        assert loaded["layout"] == "table"
        assert loaded["pagination"] is None

        websocket.send_json({"type": "status_filter", "status": "inactive"})
        filtered = receive_until(websocket, lambda m: m.get("loading") is False)

        assert filtered["status_filter"] == "inactive"
        assert filtered["rows"] == []
        assert filtered["empty"] is True


def test_list_session_switches_to_cards_on_mobile(ws_client, sync_db, token):
    seed(sync_db, 1)

    with ws_client.websocket_connect(f"/api/v1/ws/clients?token={token}") as websocket:
        receive_until(websocket, lambda m: m.get("loading") is False)

        websocket.send_json({"type": "viewport", "width": 375, "height": 812})
        snapshot = websocket.receive_json()

        assert snapshot["layout"] == "cards"
        assert snapshot["add_label"] == "Add"
        assert snapshot["rows"][0]["edit_label"] == "Edit Client"


def test_list_session_rejects_bad_intents(ws_client, token):
    with ws_client.websocket_connect(f"/api/v1/ws/clients?token={token}") as websocket:
        receive_until(websocket, lambda m: m.get("loading") is False)

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "teleport"})
        assert websocket.receive_json() == {
            "type": "error",
            "message": "Unknown message type: teleport",
        }

        websocket.send_text("not json")
        assert websocket.receive_json() == {"type": "error", "message": "Invalid JSON format"}


# ============================================================================
# Client form session
# ============================================================================

REQUIRED_FIELDS = {
    "organization_name": "Acme Retail",
    "business_category": "Retail",
    "tenant_admin_full_name": "Jane Doe",
    "tenant_admin_email": "jane@acme.test",
    "tenant_admin_mobile": "+12345678901",
}


def test_form_session_creates_client(ws_client, sync_db, token, storage):
    with ws_client.websocket_connect(f"/api/v1/ws/clients/form?token={token}") as websocket:
        initial = websocket.receive_json()
        assert initial["type"] == "client_form"
        assert initial["title"] == "Add New Client"
        assert initial["submit_label"] == "Create Client"

        for field, value in REQUIRED_FIELDS.items():
            websocket.send_json({"type": "change", "field": field, "value": value})
            websocket.receive_json()

        websocket.send_json(
            {"type": "stage_logo", "filename": "brand.png", "content_type": "image/png"}
        )
        websocket.send_bytes(make_png())
        staged = websocket.receive_json()
        assert staged["logo"]["staged_filename"] == "brand.png"
        assert staged["logo"]["preview_url"].startswith("data:image/png;base64,")

        websocket.send_json({"type": "submit"})
        submitting = websocket.receive_json()
        assert submitting["submit_label"] == "Saving..."

        saved = receive_until(websocket, lambda m: m["type"] == "saved")

    with Session(sync_db) as session:
        client = session.execute(select(Client)).scalar_one()
        assert saved["client_id"] == str(client.id)
        assert client.organization_name == "Acme Retail"
        assert client.status == ClientStatus.PENDING_VERIFICATION
        assert client.organization_logo_url.endswith(f"{client.tenant_id}/logo.png")
    assert f"{client.tenant_id}/logo.png" in storage.objects


def test_form_session_reports_logo_errors_on_selection(ws_client, token):
    with ws_client.websocket_connect(f"/api/v1/ws/clients/form?token={token}") as websocket:
        websocket.receive_json()

        websocket.send_json(
            {"type": "stage_logo", "filename": "tiny.png", "content_type": "image/png"}
        )
        websocket.send_bytes(make_png(64, 64))
        snapshot = websocket.receive_json()

        assert snapshot["logo"]["error"] == "Image dimensions must be at least 512x512 pixels"
        assert snapshot["logo"]["staged_filename"] is None


def test_form_session_validation_errors(ws_client, token):
    with ws_client.websocket_connect(f"/api/v1/ws/clients/form?token={token}") as websocket:
        websocket.receive_json()

        websocket.send_json({"type": "submit"})
        websocket.receive_json()
        snapshot = websocket.receive_json()

        errors = {
            field["name"]: field["error"]
            for section in snapshot["sections"]
            for field in section["fields"]
            if field["error"]
        }
        assert errors["organization_name"] == "Organization name is required"
        assert errors["tenant_admin_email"] == "Email is required"
        assert snapshot["state"] == "idle"

        websocket.send_json({"type": "change", "field": "no_such_field", "value": 1})
        assert websocket.receive_json()["type"] == "error"


def test_form_session_edits_existing_client(ws_client, sync_db, token):
    [row] = seed(sync_db, 1, status=ClientStatus.PENDING_VERIFICATION)

    url = f"/api/v1/ws/clients/form/{row.id}?token={token}"
    with ws_client.websocket_connect(url) as websocket:
        loaded = receive_until(websocket, lambda m: m.get("state") == "idle")
        assert loaded["title"] == "Edit Client"
        assert loaded["submit_label"] == "Update Client"
        name = next(
            f for f in loaded["sections"][0]["fields"] if f["name"] == "organization_name"
        )
        assert name["value"] == "Organization 001"

        websocket.send_json(
            {"type": "change", "field": "business_verification_status", "value": "verified"}
        )
        changed = websocket.receive_json()
        status_field = next(
            f for f in changed["sections"][4]["fields"] if f["name"] == "status"
        )
        assert status_field["value"] == "active"

        websocket.send_json({"type": "submit"})
        saved = receive_until(websocket, lambda m: m["type"] == "saved")
        assert saved["client_id"] == str(row.id)

    with Session(sync_db) as session:
        client = session.get(Client, row.id)
        assert client.status == ClientStatus.ACTIVE
