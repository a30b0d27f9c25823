"""
Pydantic schemas for request/response bodies.

This module contains:
- Request models passed from the HTTP layer to the logic layer
- Response models for API responses

Request models carry no length constraints: field rules live in the
logic layer so every caller gets the same validation and error format.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from message_store.models import Message


# =============================================================================
# Pydantic Request Models
# =============================================================================

class CreateMessageRequest(BaseModel):
    """Body of a message creation request."""
    title: Optional[str] = Field(None, description="Message title (3-200 characters after trimming)")
    content: Optional[str] = Field(None, description="Message body (10-1000 characters after trimming)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"title": "Release notes", "content": "Version 2 ships on Friday."}
            ]
        }
    }


class UpdateMessageRequest(BaseModel):
    """
    Body of a message update request.

    Title and content replace the stored values. Setting ``is_active`` to
    false deactivates the message; it cannot be reactivated afterwards.
    """
    title: Optional[str] = Field(None, description="New title (3-200 characters after trimming)")
    content: Optional[str] = Field(None, description="New body (10-1000 characters after trimming)")
    is_active: bool = Field(True, description="False makes the message read-only")


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """Response model for a single message."""
    id: uuid.UUID = Field(..., description="Message identifier")
    organization_id: uuid.UUID = Field(..., description="Owning organization")
    title: str = Field(..., description="Message title")
    content: str = Field(..., description="Message body")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last update time (UTC)")
    is_active: bool = Field(..., description="Whether the message can still be updated")

    model_config = {"from_attributes": True}

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls.model_validate(message)


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


class ValidationErrorResponse(BaseModel):
    """Response model for field validation failures."""
    detail: str = Field(default="Validation failed", description="Error summary")
    errors: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Field name to validation messages"
    )


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
