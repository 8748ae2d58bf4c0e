"""Change notification payloads."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ChangeEventType(str, Enum):
    """Kind of row change."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A row change pushed to subscribers of a table."""

    table: str = Field(..., description="Table the row belongs to")
    event_type: ChangeEventType = Field(..., description="INSERT, UPDATE or DELETE")
    new: Optional[dict[str, Any]] = Field(
        default=None, description="Row state after the change (INSERT/UPDATE)"
    )
    old: Optional[dict[str, Any]] = Field(
        default=None, description="Row identity before the change (UPDATE/DELETE)"
    )
    committed_at: datetime = Field(..., description="When the change was committed")

    @property
    def row_id(self) -> Optional[str]:
        """Identifier of the changed row, as a string."""
        row = self.new or self.old or {}
        value = row.get("id")
        return str(value) if value is not None else None
