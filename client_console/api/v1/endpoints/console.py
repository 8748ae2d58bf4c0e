"""
Console live sessions.

Each WebSocket hosts one list or form controller server-side. The browser
sends intents, the server answers with full view snapshots whenever the
controller state changes (including changes pushed by other writers).

Connection URLs:
    ws://host/api/v1/ws/clients?token=<jwt>
    ws://host/api/v1/ws/clients/form?token=<jwt>
    ws://host/api/v1/ws/clients/form/<client_id>?token=<jwt>

List intents (client -> server):
    {"type": "search", "query": "acme"}
    {"type": "status_filter", "status": "active" | null}
    {"type": "category_filter", "category": "Retail" | null}
    {"type": "page", "page": 2}
    {"type": "clear_filters"}
    {"type": "viewport", "width": 390, "height": 844}
    {"type": "refresh"}

Form intents (client -> server):
    {"type": "change", "field": "organization_name", "value": "Acme"}
    {"type": "stage_logo", "filename": "logo.png", "content_type": "image/png"}
        followed by one binary frame with the file contents
    {"type": "clear_error", "field": "organization_name"}
    {"type": "submit"}

Server -> client:
    {"type": "client_list", ...} / {"type": "client_form", ...} - snapshots
    {"type": "saved", "client_id": "..."} - form submitted successfully
    {"type": "pong"} - answer to {"type": "ping"}
    {"type": "error", "message": "..."} - rejected intent
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_console.api.dependencies import (
    build_client_service,
    get_feed,
    get_logo_storage,
    get_session_factory,
    get_task_queue,
    get_websocket_admin,
)
from client_console.controllers.client_form import LOGO_FIELD, ClientFormController
from client_console.controllers.client_list import ClientListController
from client_console.schemas.client import LogoFile
from client_console.services.clients import ClientService
from client_console.services.realtime import ChangeFeed
from client_console.services.storage import LogoStore
from client_console.services.task_queue import TaskQueueService
from client_console.utils.validation import validate_logo_dimensions, validate_logo_file
from client_console.views.clients import render_client_list
from client_console.views.form import render_client_form
from client_console.views.viewport import ViewportTracker

logger = logging.getLogger(__name__)

router = APIRouter()

UNAUTHORIZED_CLOSE_CODE = 4001


class IntentError(ValueError):
    """A message from the browser could not be applied."""


class LiveSession:
    """Serializes snapshot pushes to one WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, payload: dict[str, Any]) -> None:
        if self.websocket.application_state != WebSocketState.CONNECTED:
            return
        async with self._send_lock:
            await self.websocket.send_json(payload)

    async def push(self, snapshot: BaseModel) -> None:
        await self.send(snapshot.model_dump(mode="json"))

    async def error(self, message: str) -> None:
        await self.send({"type": "error", "message": message})

    async def receive_intent(self) -> dict[str, Any]:
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))

        text = message.get("text")
        if text is None:
            raise IntentError("Expected a JSON text message")
        try:
            intent = json.loads(text)
        except json.JSONDecodeError as e:
            raise IntentError("Invalid JSON format") from e
        if not isinstance(intent, dict) or "type" not in intent:
            raise IntentError("Message must be an object with a 'type'")
        return intent

    async def receive_file(self) -> bytes:
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))

        data = message.get("bytes")
        if data is None:
            raise IntentError("Expected a binary frame with the file contents")
        return data


async def _open_session(
    websocket: WebSocket,
    token: Optional[str],
    session_factory: async_sessionmaker[AsyncSession],
    storage: LogoStore,
    change_feed: ChangeFeed,
    task_queue: Optional[TaskQueueService],
) -> Optional[tuple[LiveSession, ClientService]]:
    actor = get_websocket_admin(token)
    if actor is None:
        logger.warning("Live session rejected: invalid token")
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Unauthorized")
        return None

    await websocket.accept()
    service = build_client_service(actor, session_factory, storage, change_feed, task_queue)
    logger.info(f"Live session opened: {websocket.url.path} actor={actor.id}")
    return LiveSession(websocket), service


async def _serve(
    session: LiveSession,
    handle: Callable[[dict[str, Any]], Awaitable[None]],
) -> None:
    """Dispatch intents until the browser disconnects."""
    while True:
        try:
            intent = await session.receive_intent()
            if intent["type"] == "ping":
                await session.send({"type": "pong"})
                continue
            await handle(intent)
        except (ValueError, KeyError, TypeError) as e:
            await session.error(str(e))


@router.websocket("/ws/clients")
async def client_list_session(
    websocket: WebSocket,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    storage: LogoStore = Depends(get_logo_storage),
    change_feed: ChangeFeed = Depends(get_feed),
    task_queue: Optional[TaskQueueService] = Depends(get_task_queue),
    token: Optional[str] = Query(None, description="JWT access token"),
):
    """Live client list: search, filters, pages and viewport-driven layout."""
    opened = await _open_session(
        websocket, token, session_factory, storage, change_feed, task_queue
    )
    if opened is None:
        return
    session, service = opened

    viewport = ViewportTracker()
    controller = ClientListController(service, change_feed)

    async def push() -> None:
        await session.push(render_client_list(controller, viewport.current))

    controller.on_change = push
    viewport.on_change = push

    async def handle(intent: dict[str, Any]) -> None:
        kind = intent["type"]
        if kind == "search":
            await controller.set_search_query(str(intent.get("query") or ""))
        elif kind == "status_filter":
            await controller.set_status_filter(intent.get("status"))
        elif kind == "category_filter":
            await controller.set_category_filter(intent.get("category"))
        elif kind == "page":
            await controller.set_page(intent.get("page", 1))
        elif kind == "clear_filters":
            await controller.clear_filters()
        elif kind == "viewport":
            viewport.report(int(intent["width"]), int(intent.get("height", 0)))
        elif kind == "refresh":
            await controller.fetch()
        else:
            raise IntentError(f"Unknown message type: {kind}")

    try:
        await controller.fetch()
        controller.start_live_updates()
        await _serve(session, handle)
    except WebSocketDisconnect:
        logger.info("Client list session disconnected")
    finally:
        controller.close()
        viewport.cancel()


async def _run_form_session(
    websocket: WebSocket,
    client_id: Optional[str],
    token: Optional[str],
    session_factory: async_sessionmaker[AsyncSession],
    storage: LogoStore,
    change_feed: ChangeFeed,
    task_queue: Optional[TaskQueueService],
) -> None:
    opened = await _open_session(
        websocket, token, session_factory, storage, change_feed, task_queue
    )
    if opened is None:
        return
    session, service = opened

    controller = ClientFormController(service, change_feed, client_id=client_id)

    async def push() -> None:
        await session.push(render_client_form(controller))

    async def saved() -> None:
        await session.send({"type": "saved", "client_id": controller.saved_client_id})

    controller.on_change = push
    controller.on_success = saved

    async def stage_logo(intent: dict[str, Any]) -> None:
        data = await session.receive_file()
        logo = LogoFile(
            filename=str(intent.get("filename") or "logo"),
            content_type=str(intent.get("content_type") or ""),
            data=data,
        )
        # Checked on selection so the picker can show the problem right away
        error = validate_logo_file(logo) or await validate_logo_dimensions(logo)
        if error:
            await controller.set_field_error(LOGO_FIELD, error)
        else:
            await controller.stage_logo(logo)

    async def handle(intent: dict[str, Any]) -> None:
        kind = intent["type"]
        if kind == "change":
            await controller.handle_change(str(intent.get("field")), intent.get("value"))
        elif kind == "stage_logo":
            await stage_logo(intent)
        elif kind == "clear_error":
            await controller.clear_error(str(intent.get("field")))
        elif kind == "submit":
            await controller.submit()
        else:
            raise IntentError(f"Unknown message type: {kind}")

    try:
        await push()
        await controller.load()
        controller.start_live_updates()
        await _serve(session, handle)
    except WebSocketDisconnect:
        logger.info(f"Client form session disconnected (client_id={client_id})")
    finally:
        controller.close()


@router.websocket("/ws/clients/form")
async def new_client_form_session(
    websocket: WebSocket,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    storage: LogoStore = Depends(get_logo_storage),
    change_feed: ChangeFeed = Depends(get_feed),
    task_queue: Optional[TaskQueueService] = Depends(get_task_queue),
    token: Optional[str] = Query(None, description="JWT access token"),
):
    """Live form creating a new client."""
    await _run_form_session(
        websocket, None, token, session_factory, storage, change_feed, task_queue
    )


@router.websocket("/ws/clients/form/{client_id}")
async def edit_client_form_session(
    websocket: WebSocket,
    client_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    storage: LogoStore = Depends(get_logo_storage),
    change_feed: ChangeFeed = Depends(get_feed),
    task_queue: Optional[TaskQueueService] = Depends(get_task_queue),
    token: Optional[str] = Query(None, description="JWT access token"),
):
    """Live form editing an existing client."""
    await _run_form_session(
        websocket, client_id, token, session_factory, storage, change_feed, task_queue
    )
