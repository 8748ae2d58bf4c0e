"""Client organizations API endpoints."""

import logging
import math
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse

from client_console.api.dependencies import get_client_service
from client_console.core.config import settings
from client_console.models.client import ClientStatus
from client_console.schemas.client import (
    ClientCreateData,
    ClientFormData,
    ClientListOptions,
    ClientListResponse,
    ClientRecord,
    ClientStatusUpdate,
    ClientUpdateData,
    LogoFile,
    LogoUploadResponse,
)
from client_console.services.clients import ClientService
from client_console.utils.validation import ALLOWED_LOGO_TYPES, validate_client_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients")


def _validation_failed(errors: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation failed", "errors": errors},
    )


async def _get_or_404(service: ClientService, client_id: UUID) -> ClientRecord:
    client = await service.get_client(client_id)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {client_id} not found",
        )
    return client


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
    description="Search, filter and paginate client organizations, newest first.",
)
async def list_clients(
    service: Annotated[ClientService, Depends(get_client_service)],
    search: Annotated[Optional[str], Query(max_length=200)] = None,
    status_filter: Annotated[Optional[ClientStatus], Query(alias="status")] = None,
    category: Optional[str] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=200)] = settings.CLIENTS_PAGE_SIZE,
) -> ClientListResponse:
    """
    List clients.

    `search` matches organization name, tenant admin name or tenant admin
    email (case-insensitive, partial). `categories` lists the distinct
    categories of the returned page.
    """
    result = await service.list_clients(
        ClientListOptions(
            search_query=search,
            status_filter=status_filter,
            category_filter=category or None,
            page=page,
            page_size=page_size,
        )
    )

    return ClientListResponse(
        clients=result.clients,
        total_count=result.total_count,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(result.total_count / page_size),
        categories=sorted({c.business_category for c in result.clients if c.business_category}),
    )


@router.get(
    "/{client_id}",
    response_model=ClientRecord,
    summary="Get client",
)
async def get_client(
    client_id: UUID,
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ClientRecord:
    return await _get_or_404(service, client_id)


@router.post(
    "",
    response_model=ClientRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    responses={422: {"description": "Field validation failed; `errors` maps field to message"}},
)
async def create_client(
    data: ClientCreateData,
    service: Annotated[ClientService, Depends(get_client_service)],
):
    """
    Create a client organization.

    The body is checked with the same field rules as the console form. Logos
    are uploaded separately through `POST /clients/{id}/logo`.
    """
    errors = await validate_client_form(data)
    if errors:
        return _validation_failed(errors)

    return await service.create_client(data)


@router.patch(
    "/{client_id}",
    response_model=ClientRecord,
    summary="Update client",
    responses={422: {"description": "Field validation failed; `errors` maps field to message"}},
)
async def update_client(
    client_id: UUID,
    data: ClientUpdateData,
    service: Annotated[ClientService, Depends(get_client_service)],
):
    """
    Partially update a client. Only fields present in the body are written;
    the merged result must still pass the form rules.
    """
    existing = await _get_or_404(service, client_id)

    changes = data.model_dump(mode="json", exclude_unset=True)
    merged = ClientFormData.from_record(existing).model_dump() | changes
    errors = await validate_client_form(merged)
    if errors:
        return _validation_failed(errors)

    return await service.update_client(client_id, data)


@router.put(
    "/{client_id}/status",
    response_model=ClientRecord,
    summary="Change client status",
)
async def update_client_status(
    client_id: UUID,
    body: ClientStatusUpdate,
    service: Annotated[ClientService, Depends(get_client_service)],
) -> ClientRecord:
    await _get_or_404(service, client_id)
    return await service.update_client_status(client_id, body.status)


@router.post(
    "/{client_id}/logo",
    response_model=LogoUploadResponse,
    summary="Upload organization logo",
    description="Upload a PNG/JPEG logo (max 5MB, at least 512x512) and store its URL on the client.",
)
async def upload_logo(
    client_id: UUID,
    file: Annotated[UploadFile, File(description="Logo image")],
    service: Annotated[ClientService, Depends(get_client_service)],
) -> LogoUploadResponse:
    """
    Upload a client's logo.

    Validation:
    - Client must exist
    - Content type must be PNG or JPEG (415 otherwise)
    - Size and pixel dimensions are checked by the service (400 on failure)
    """
    client = await _get_or_404(service, client_id)

    if file.content_type not in ALLOWED_LOGO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported logo format: {file.content_type}. "
            f"Allowed formats: {', '.join(sorted(ALLOWED_LOGO_TYPES))}",
        )

    logo = LogoFile(
        filename=file.filename or "logo",
        content_type=file.content_type,
        data=await file.read(),
    )

    logo_url = await service.upload_logo(client.tenant_id, logo)
    await service.update_client(client_id, ClientUpdateData(organization_logo_url=logo_url))

    logger.info(f"Logo uploaded for client {client_id}: {logo_url}")
    return LogoUploadResponse(logo_url=logo_url)


@router.delete(
    "/{client_id}/logo",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove organization logo",
)
async def delete_logo(
    client_id: UUID,
    service: Annotated[ClientService, Depends(get_client_service)],
) -> Response:
    """Delete every stored logo file of the client and clear its logo URL."""
    client = await _get_or_404(service, client_id)

    await service.delete_logo(client.tenant_id)
    await service.update_client(client_id, ClientUpdateData(organization_logo_url=None))

    return Response(status_code=status.HTTP_204_NO_CONTENT)
