"""Database models for the client console."""

from client_console.models.base import Base
from client_console.models.client import (
    Client,
    ClientStatus,
    DrawFrequency,
    VerificationStatus,
    derive_status,
)

__all__ = [
    "Base",
    "Client",
    "ClientStatus",
    "DrawFrequency",
    "VerificationStatus",
    "derive_status",
]
