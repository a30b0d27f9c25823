"""
Domain model for stored messages.

Messages are frozen pydantic models. Changes are made by building a new
value with ``model_copy(update=...)`` and handing it to the repository,
so a reference held by a reader never changes underneath it.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


NIL_UUID = uuid.UUID(int=0)


def utc_now() -> datetime:
    """Current server time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_empty_id(value: Optional[uuid.UUID]) -> bool:
    """True for a missing identifier or the nil UUID."""
    return value is None or value == NIL_UUID


class Message(BaseModel):
    """
    A short text entry owned by one organization.

    ``id`` is assigned by the repository on creation. ``updated_at`` stays
    ``None`` until the first successful update.
    """
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default=NIL_UUID, description="Repository-assigned identifier")
    organization_id: uuid.UUID = Field(..., description="Owning organization")
    title: str = Field(..., description="Trimmed title, unique per organization (case-insensitive)")
    content: str = Field(..., description="Trimmed message body")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Time of the last update (UTC)")
    is_active: bool = Field(True, description="Inactive messages are read-only")
