"""
Outcome types returned by the logic layer.

Every logic operation returns exactly one of these variants instead of
raising. Callers dispatch on the type (or on the ``kind`` tag) and must
handle each case:

- Success: the operation completed, optionally carrying the message
- BadRequest: a required identifier or the request payload is missing
- ValidationFailed: one or more field rules were broken
- NotFound: no such message in the requesting organization
- Conflict: the title is already used within the organization
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from message_store.models import Message


class _ResultBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class Success(_ResultBase):
    """Operation completed."""
    kind: Literal["success"] = "success"
    message: Optional[Message] = Field(None, description="Resulting message, if any")


class BadRequest(_ResultBase):
    """Missing identifier or absent payload."""
    kind: Literal["bad_request"] = "bad_request"
    detail: str


class ValidationFailed(_ResultBase):
    """Field-level rule violations, collected together."""
    kind: Literal["validation_error"] = "validation_error"
    errors: dict[str, list[str]] = Field(default_factory=dict)


class NotFound(_ResultBase):
    """Message missing or owned by another organization."""
    kind: Literal["not_found"] = "not_found"
    detail: str


class Conflict(_ResultBase):
    """Uniqueness rule would be violated."""
    kind: Literal["conflict"] = "conflict"
    detail: str


Result = Union[Success, BadRequest, ValidationFailed, NotFound, Conflict]
