"""Base model with audit fields."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models with common fields."""

    pass


class AuditMixin:
    """Mixin for audit fields - who created/updated and when."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when record was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp when record was last updated",
    )

    created_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        nullable=True,
        comment="User ID who created this record",
    )

    updated_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        nullable=True,
        comment="User ID who last updated this record",
    )
