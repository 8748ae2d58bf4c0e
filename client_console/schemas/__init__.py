"""Pydantic schemas for request/response validation."""

from client_console.schemas.client import (
    ClientCreateData,
    ClientFormData,
    ClientListOptions,
    ClientListResponse,
    ClientListResult,
    ClientRecord,
    ClientStatusUpdate,
    ClientUpdateData,
    LogoFile,
    LogoUploadResponse,
)
from client_console.schemas.realtime import ChangeEvent, ChangeEventType

__all__ = [
    "ChangeEvent",
    "ChangeEventType",
    "ClientCreateData",
    "ClientFormData",
    "ClientListOptions",
    "ClientListResponse",
    "ClientListResult",
    "ClientRecord",
    "ClientStatusUpdate",
    "ClientUpdateData",
    "LogoFile",
    "LogoUploadResponse",
]
