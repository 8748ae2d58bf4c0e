"""Pydantic schemas for Client records, form data and list queries."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from client_console.models.client import ClientStatus, DrawFrequency, VerificationStatus


class LogoFile(BaseModel):
    """An image file selected for upload (name, declared MIME type, raw bytes)."""

    filename: str = Field(..., description="Original filename, used for the extension")
    content_type: str = Field(..., description="Declared MIME type")
    data: bytes = Field(..., repr=False, description="File contents")

    @property
    def size(self) -> int:
        """File size in bytes."""
        return len(self.data)

    @property
    def extension(self) -> str:
        """Text after the last dot of the filename (whole name when there is no dot)."""
        return self.filename.rsplit(".", 1)[-1]


class ClientRecord(BaseModel):
    """A row of the clients table as returned by the backend."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID

    organization_name: str
    organization_logo_url: Optional[str] = None
    business_category: str

    tenant_admin_full_name: str
    tenant_admin_email: str
    tenant_admin_mobile: str
    tenant_admin_role: Optional[str] = None

    preferred_display_name: Optional[str] = None
    brand_color: Optional[str] = None

    default_time_zone: Optional[str] = None
    country_region: Optional[str] = None
    draw_frequency: Optional[DrawFrequency] = None

    business_verification_status: Optional[VerificationStatus] = None
    data_usage_consent: bool = False
    data_privacy_acknowledgment: bool = False

    primary_contact_person: Optional[str] = None
    support_contact_email: Optional[str] = None
    escalation_contact: Optional[str] = None

    status: ClientStatus

    created_at: datetime
    created_by: Optional[UUID] = None
    updated_at: datetime
    updated_by: Optional[UUID] = None


class ClientFormData(BaseModel):
    """
    In-progress values of the client form.

    Values are kept as entered (plain strings for enumerations) until the
    form is validated; ``organization_logo`` holds a staged file that is only
    uploaded on submit.
    """

    organization_name: str = ""
    organization_logo: Optional[LogoFile] = None
    business_category: str = ""

    tenant_admin_full_name: str = ""
    tenant_admin_email: str = ""
    tenant_admin_mobile: str = ""
    tenant_admin_role: Optional[str] = None

    preferred_display_name: Optional[str] = None
    brand_color: Optional[str] = None

    default_time_zone: Optional[str] = None
    country_region: Optional[str] = None
    draw_frequency: Optional[str] = None

    business_verification_status: Optional[str] = None
    data_usage_consent: bool = False
    data_privacy_acknowledgment: bool = False

    primary_contact_person: Optional[str] = None
    support_contact_email: Optional[str] = None
    escalation_contact: Optional[str] = None

    status: Optional[str] = ClientStatus.PENDING_VERIFICATION.value

    @classmethod
    def from_record(cls, record: "ClientRecord") -> "ClientFormData":
        """Build form values from a stored record (NULL columns become None)."""
        values = record.model_dump(mode="json", include=set(cls.model_fields))
        return cls(**values)

    def _payload_values(self, logo_url: Optional[str]) -> dict:
        values = self.model_dump(exclude={"organization_logo"})
        # Unselected options arrive as "" from the form
        for field in ("draw_frequency", "business_verification_status", "status"):
            if not values.get(field):
                values[field] = None
        values["organization_logo_url"] = logo_url
        return values

    def to_create_data(self, logo_url: Optional[str] = None) -> "ClientCreateData":
        """Payload for inserting a new client; the staged file is not part of it."""
        return ClientCreateData(**self._payload_values(logo_url))

    def to_update_data(self, logo_url: Optional[str]) -> "ClientUpdateData":
        """Payload writing every form field plus the given logo URL."""
        values = self._payload_values(logo_url)
        if values["status"] is None:
            del values["status"]
        return ClientUpdateData(**values)


class ClientCreateData(BaseModel):
    """Payload for creating a client."""

    organization_name: str
    organization_logo_url: Optional[str] = None
    business_category: str

    tenant_admin_full_name: str
    tenant_admin_email: str
    tenant_admin_mobile: str
    tenant_admin_role: Optional[str] = None

    preferred_display_name: Optional[str] = None
    brand_color: Optional[str] = None

    default_time_zone: Optional[str] = None
    country_region: Optional[str] = None
    draw_frequency: Optional[DrawFrequency] = None

    business_verification_status: Optional[VerificationStatus] = None
    data_usage_consent: bool = False
    data_privacy_acknowledgment: bool = False

    primary_contact_person: Optional[str] = None
    support_contact_email: Optional[str] = None
    escalation_contact: Optional[str] = None

    status: Optional[ClientStatus] = None


class ClientUpdateData(BaseModel):
    """Partial update payload - only explicitly set fields are written."""

    organization_name: Optional[str] = None
    organization_logo_url: Optional[str] = None
    business_category: Optional[str] = None

    tenant_admin_full_name: Optional[str] = None
    tenant_admin_email: Optional[str] = None
    tenant_admin_mobile: Optional[str] = None
    tenant_admin_role: Optional[str] = None

    preferred_display_name: Optional[str] = None
    brand_color: Optional[str] = None

    default_time_zone: Optional[str] = None
    country_region: Optional[str] = None
    draw_frequency: Optional[DrawFrequency] = None

    business_verification_status: Optional[VerificationStatus] = None
    data_usage_consent: Optional[bool] = None
    data_privacy_acknowledgment: Optional[bool] = None

    primary_contact_person: Optional[str] = None
    support_contact_email: Optional[str] = None
    escalation_contact: Optional[str] = None

    status: Optional[ClientStatus] = None

    @field_validator("status", "data_usage_consent", "data_privacy_acknowledgment")
    @classmethod
    def reject_null(cls, v):
        """These columns are NOT NULL: they may be left out but not cleared."""
        if v is None:
            raise ValueError("Field may be omitted but not set to null")
        return v


class ClientStatusUpdate(BaseModel):
    """Request body for a status-only change."""

    status: ClientStatus


class ClientListOptions(BaseModel):
    """Search, filter and pagination parameters for listing clients."""

    search_query: Optional[str] = None
    status_filter: Optional[ClientStatus] = None
    category_filter: Optional[str] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1)


class ClientListResult(BaseModel):
    """One page of clients plus the total number of matching rows."""

    clients: list[ClientRecord]
    total_count: int


class ClientListResponse(BaseModel):
    """List endpoint response with pagination math and category options."""

    clients: list[ClientRecord] = Field(..., description="Clients on the requested page")
    total_count: int = Field(..., description="Total rows matching the filters")
    page: int = Field(..., description="Current page (1-based)")
    page_size: int = Field(..., description="Rows per page")
    total_pages: int = Field(..., description="Number of pages for the filters")
    categories: list[str] = Field(..., description="Distinct categories on this page")


class LogoUploadResponse(BaseModel):
    """Response after a logo upload."""

    logo_url: str = Field(..., description="Public URL of the stored logo")
