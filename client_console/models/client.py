"""Client model - Tenant organizations managed from the console."""

from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Enum as SQLEnum, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from client_console.models.base import AuditMixin, Base


class ClientStatus(str, Enum):
    """Operational status of a client organization."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING_VERIFICATION = "pending_verification"


class VerificationStatus(str, Enum):
    """Outcome of the business verification review."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


STATUS_BY_VERIFICATION = {
    VerificationStatus.VERIFIED.value: ClientStatus.ACTIVE,
    VerificationStatus.REJECTED.value: ClientStatus.INACTIVE,
    VerificationStatus.PENDING.value: ClientStatus.PENDING_VERIFICATION,
}


def derive_status(verification_status: Optional[str]) -> Optional[ClientStatus]:
    """
    Map a business verification outcome to the client status it implies.

    Returns None when the value implies no status change.
    """
    if isinstance(verification_status, Enum):
        verification_status = verification_status.value
    return STATUS_BY_VERIFICATION.get(verification_status)


class DrawFrequency(str, Enum):
    """How often the tenant runs draws."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CAMPAIGN_BASED = "campaign_based"
    CUSTOM = "custom"


class Client(Base, AuditMixin):
    """
    Client organization model.

    One row per tenant organization. ``tenant_id`` is assigned on insert and
    keys the organization's files in object storage (``{tenant_id}/logo.png``).
    """

    __tablename__ = "clients"
    __table_args__ = (
        Index("idx_clients_status_created", "status", "created_at"),
        Index("idx_clients_category", "business_category"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        comment="Primary key (UUID)",
    )

    tenant_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        default=uuid4,
        comment="Tenant this client maps to",
    )

    # Organization
    organization_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Legal or trading name",
    )

    organization_logo_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
        comment="Public URL of the uploaded logo",
    )

    business_category: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Free-text business category",
    )

    # Tenant admin
    tenant_admin_full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_admin_email: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_admin_mobile: Mapped[str] = mapped_column(String(32), nullable=False)
    tenant_admin_role: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Branding
    preferred_display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    brand_color: Mapped[Optional[str]] = mapped_column(
        String(7),
        nullable=True,
        comment="#RRGGBB",
    )

    # Operational
    default_time_zone: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="IANA time zone identifier",
    )
    country_region: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    draw_frequency: Mapped[Optional[DrawFrequency]] = mapped_column(
        SQLEnum(
            DrawFrequency,
            name="draw_frequency",
            native_enum=False,
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )

    # Compliance
    business_verification_status: Mapped[Optional[VerificationStatus]] = mapped_column(
        SQLEnum(
            VerificationStatus,
            name="verification_status",
            native_enum=False,
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    data_usage_consent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_privacy_acknowledgment: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Communication contacts
    primary_contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    support_contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    escalation_contact: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Escalation contact email",
    )

    status: Mapped[ClientStatus] = mapped_column(
        SQLEnum(
            ClientStatus,
            name="client_status",
            native_enum=False,
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ClientStatus.PENDING_VERIFICATION,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Client {self.organization_name} ({self.status.value if self.status else None})>"
