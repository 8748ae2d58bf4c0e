"""View models for the client list page (table rows, cards, pagination)."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from client_console.controllers.client_list import ClientListController
from client_console.models.client import ClientStatus
from client_console.schemas.client import ClientRecord
from client_console.views.viewport import Viewport

STATUS_BADGE_CLASSES = {
    ClientStatus.ACTIVE.value: "bg-green-100 text-green-800",
    ClientStatus.INACTIVE.value: "bg-red-100 text-red-800",
    ClientStatus.PENDING_VERIFICATION.value: "bg-yellow-100 text-yellow-800",
}
DEFAULT_BADGE_CLASS = "bg-gray-100 text-gray-800"

STATUS_FILTER_OPTIONS = [
    ("", "All Statuses"),
    (ClientStatus.ACTIVE.value, "Active"),
    (ClientStatus.INACTIVE.value, "Inactive"),
    (ClientStatus.PENDING_VERIFICATION.value, "Pending Verification"),
]


class ListLayout(str, Enum):
    TABLE = "table"
    CARDS = "cards"


class StatusBadge(BaseModel):
    label: str
    css_class: str


class ClientRow(BaseModel):
    """One client as shown in the table (desktop/tablet) or as a card (mobile)."""

    id: UUID
    organization_name: str
    logo_url: Optional[str] = Field(None, description="Logo image, or None to show the initial")
    initial: str = Field(..., description="First letter of the name, upper-cased")
    business_category: str
    tenant_admin_full_name: str
    tenant_admin_email: str
    status: StatusBadge
    created: str = Field(..., description="Creation date, e.g. 'Jan 5, 2024'")
    edit_label: str


class PaginationView(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    first_item: int
    last_item: int
    summary: str = Field(..., description="'Showing X to Y of Z results'")
    page_indicator: str = Field(..., description="'Page X of Y'")
    has_previous: bool
    has_next: bool


class FilterOption(BaseModel):
    value: str
    label: str


class ClientListView(BaseModel):
    """Snapshot of the whole client list page."""

    type: str = "client_list"
    layout: ListLayout
    add_label: str
    search_query: str
    status_filter: Optional[str] = None
    category_filter: Optional[str] = None
    status_options: list[FilterOption]
    categories: list[str]
    loading: bool
    error: Optional[str] = Field(None, description="Page-level error banner text")
    empty: bool
    rows: list[ClientRow]
    pagination: Optional[PaginationView] = None


def status_badge(status: ClientStatus | str) -> StatusBadge:
    """Badge label and color classes for a client status."""
    value = status.value if isinstance(status, ClientStatus) else str(status)
    return StatusBadge(
        label=value.replace("_", " ", 1),
        css_class=STATUS_BADGE_CLASSES.get(value, DEFAULT_BADGE_CLASS),
    )


def format_date(value: datetime) -> str:
    """Format a timestamp as 'Mon D, YYYY' (en-US short month)."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def client_row(client: ClientRecord, as_card: bool = False) -> ClientRow:
    return ClientRow(
        id=client.id,
        organization_name=client.organization_name,
        logo_url=client.organization_logo_url or None,
        initial=client.organization_name[:1].upper(),
        business_category=client.business_category,
        tenant_admin_full_name=client.tenant_admin_full_name,
        tenant_admin_email=client.tenant_admin_email,
        status=status_badge(client.status),
        created=format_date(client.created_at),
        edit_label="Edit Client" if as_card else "Edit",
    )


def pagination_view(
    current_page: int, total_pages: int, total_count: int, page_size: int
) -> Optional[PaginationView]:
    """
    Pagination controls for the current page.

    Returns None when everything fits on a single page.
    """
    if total_pages <= 1:
        return None

    first_item = (current_page - 1) * page_size + 1
    last_item = min(current_page * page_size, total_count)
    return PaginationView(
        current_page=current_page,
        total_pages=total_pages,
        total_count=total_count,
        first_item=first_item,
        last_item=last_item,
        summary=f"Showing {first_item} to {last_item} of {total_count} results",
        page_indicator=f"Page {current_page} of {total_pages}",
        has_previous=current_page > 1,
        has_next=current_page < total_pages,
    )


def render_client_list(controller: ClientListController, viewport: Viewport) -> ClientListView:
    """Build the list page snapshot from the controller state."""
    as_cards = viewport.is_mobile
    show_pagination = not controller.loading and bool(controller.clients)

    return ClientListView(
        layout=ListLayout.CARDS if as_cards else ListLayout.TABLE,
        add_label="Add" if as_cards else "Add Client",
        search_query=controller.search_query,
        status_filter=controller.status_filter.value if controller.status_filter else None,
        category_filter=controller.category_filter,
        status_options=[FilterOption(value=v, label=label) for v, label in STATUS_FILTER_OPTIONS],
        categories=controller.categories,
        loading=controller.loading,
        error=f"Error loading clients: {controller.error}" if controller.error else None,
        empty=not controller.loading and not controller.clients,
        rows=[client_row(client, as_card=as_cards) for client in controller.clients],
        pagination=(
            pagination_view(
                controller.page,
                controller.total_pages,
                controller.total_count,
                controller.page_size,
            )
            if show_pagination
            else None
        ),
    )
