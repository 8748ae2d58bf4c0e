"""Server-side state of the client list page: search, filters, pagination."""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional

from client_console.core.config import settings
from client_console.core.errors import ClientServiceError
from client_console.models.client import ClientStatus
from client_console.schemas.client import ClientListOptions, ClientRecord
from client_console.schemas.realtime import ChangeEvent
from client_console.services.clients import CLIENTS_TABLE, ClientService
from client_console.services.realtime import ChangeFeed, Subscription

logger = logging.getLogger(__name__)

Listener = Callable[[], Awaitable[None]]


class ClientListController:
    """
    Client list with debounced search, status/category filters and pages.

    Every parameter change triggers a fetch. Each fetch gets a generation
    number; a response is only applied when no newer fetch was started.
    """

    def __init__(
        self,
        service: ClientService,
        change_feed: ChangeFeed,
        page_size: Optional[int] = None,
        search_debounce: Optional[float] = None,
        on_change: Optional[Listener] = None,
    ) -> None:
        self.service = service
        self.change_feed = change_feed
        self.page_size = page_size or settings.CLIENTS_PAGE_SIZE
        self.search_debounce = (
            search_debounce
            if search_debounce is not None
            else settings.SEARCH_DEBOUNCE_MS / 1000
        )
        self.on_change = on_change

        self.search_query = ""
        self.status_filter: Optional[ClientStatus] = None
        self.category_filter: Optional[str] = None
        self.page = 1

        self.clients: list[ClientRecord] = []
        self.total_count = 0
        self.loading = False
        self.error: Optional[str] = None

        self._applied_search = ""
        self._search_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._subscription: Optional[Subscription] = None

    @property
    def categories(self) -> list[str]:
        """Distinct categories of the clients on the current page."""
        return sorted({c.business_category for c in self.clients if c.business_category})

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def search_pending(self) -> bool:
        return self._search_task is not None

    async def set_search_query(self, text: str) -> None:
        """
        Update the search box. The query is applied once typing has paused for
        ``search_debounce`` seconds; a newer keystroke restarts the wait.
        """
        self.search_query = text
        self._cancel_pending_search()
        self._search_task = asyncio.create_task(self._apply_search_after_pause())
        await self._notify()

    async def _apply_search_after_pause(self) -> None:
        await asyncio.sleep(self.search_debounce)
        self._search_task = None
        self._applied_search = self.search_query
        self.page = 1
        await self.fetch()

    def _cancel_pending_search(self) -> None:
        if self._search_task is not None:
            self._search_task.cancel()
            self._search_task = None

    async def set_status_filter(self, status: Optional[str]) -> None:
        """
        Raises:
            ValueError: If status is not a known client status
        """
        self.status_filter = ClientStatus(status) if status else None
        self.page = 1
        await self.fetch()

    async def set_category_filter(self, category: Optional[str]) -> None:
        self.category_filter = category or None
        self.page = 1
        await self.fetch()

    async def set_page(self, page: int) -> None:
        self.page = max(1, int(page))
        await self.fetch()

    async def clear_filters(self) -> None:
        self._cancel_pending_search()
        self.search_query = ""
        self._applied_search = ""
        self.status_filter = None
        self.category_filter = None
        self.page = 1
        await self.fetch()

    async def fetch(self) -> None:
        """Load the current page for the current search and filters."""
        self._generation += 1
        generation = self._generation

        self.loading = True
        self.error = None
        await self._notify()

        options = ClientListOptions(
            search_query=self._applied_search.strip() or None,
            status_filter=self.status_filter,
            category_filter=self.category_filter,
            page=self.page,
            page_size=self.page_size,
        )

        try:
            result = await self.service.list_clients(options)
        except ClientServiceError as e:
            if generation != self._generation:
                return
            logger.error(f"Error fetching clients: {e}")
            self.error = str(e)
            self.loading = False
            await self._notify()
            return

        if generation != self._generation:
            logger.debug(f"Discarding superseded client list response (generation {generation})")
            return

        self.clients = result.clients
        self.total_count = result.total_count
        self.loading = False
        await self._notify()

    def start_live_updates(self) -> None:
        """Re-fetch the current page whenever any client row changes."""
        if self._subscription is None:
            self._subscription = self.change_feed.subscribe(CLIENTS_TABLE, self._on_table_change)

    def stop_live_updates(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def close(self) -> None:
        self._cancel_pending_search()
        self.stop_live_updates()

    async def _on_table_change(self, change: ChangeEvent) -> None:
        logger.debug(f"clients {change.event_type.value}, refreshing page {self.page}")
        await self.fetch()

    async def _notify(self) -> None:
        if self.on_change is not None:
            await self.on_change()
