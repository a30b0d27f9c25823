"""
Business rules for organization-scoped messages.

MessageLogic validates input, enforces per-organization title uniqueness
and the active-only update rule, and reports every outcome as a Result
value (see results.py). It only talks to storage through the repository's
public methods.

Check-then-write sequences (duplicate title check then insert, lookup then
update or delete) run under a per-organization lock so concurrent requests
for the same organization cannot interleave between the check and the write.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from message_store.models import Message, is_empty_id, utc_now
from message_store.results import (
    BadRequest,
    Conflict,
    NotFound,
    Result,
    Success,
    ValidationFailed,
)
from message_store.schemas import CreateMessageRequest, UpdateMessageRequest
from message_store.storage import InMemoryMessageRepository, normalize_title

logger = logging.getLogger(__name__)


TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 1000

TITLE_LENGTH_ERROR = f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters."
CONTENT_LENGTH_ERROR = f"Content must be between {CONTENT_MIN_LENGTH} and {CONTENT_MAX_LENGTH} characters."
INACTIVE_ERROR = "Inactive messages cannot be updated."
DUPLICATE_TITLE_ERROR = "A message with the same title already exists."
NOT_FOUND_ERROR = "Message not found."
ORGANIZATION_REQUIRED = "OrganizationId is required."
MESSAGE_ID_REQUIRED = "MessageId is required."
REQUEST_REQUIRED = "Request is required."


def validate_fields(title: Optional[str], content: Optional[str]) -> dict[str, list[str]]:
    """
    Check title and content lengths after trimming.

    Both fields are always checked; the result maps each failing field to
    its messages and is empty when everything is valid.
    """
    errors: dict[str, list[str]] = {}

    trimmed_title = (title or "").strip()
    if not TITLE_MIN_LENGTH <= len(trimmed_title) <= TITLE_MAX_LENGTH:
        errors["title"] = [TITLE_LENGTH_ERROR]

    trimmed_content = (content or "").strip()
    if not CONTENT_MIN_LENGTH <= len(trimmed_content) <= CONTENT_MAX_LENGTH:
        errors["content"] = [CONTENT_LENGTH_ERROR]

    return errors


class _OrganizationLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class OrganizationLocks:
    """
    Hands out one mutex per organization id.

    An entry lives only while some caller holds or waits for it, so the
    map stays empty between requests.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[uuid.UUID, _OrganizationLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, organization_id: uuid.UUID) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(organization_id)
            if entry is None:
                entry = self._locks[organization_id] = _OrganizationLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[organization_id]


class MessageLogic:
    """Service layer over an InMemoryMessageRepository."""

    def __init__(self, repository: InMemoryMessageRepository):
        self._repository = repository
        self._org_locks = OrganizationLocks()

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_message(
        self,
        organization_id: Optional[uuid.UUID],
        request: Optional[CreateMessageRequest],
    ) -> Result:
        if is_empty_id(organization_id):
            return BadRequest(detail=ORGANIZATION_REQUIRED)
        if request is None:
            return BadRequest(detail=REQUEST_REQUIRED)

        errors = validate_fields(request.title, request.content)
        if errors:
            logger.info(f"Create rejected for org={organization_id}: invalid fields {sorted(errors)}")
            return ValidationFailed(errors=errors)

        title = request.title.strip()
        content = request.content.strip()

        with self._org_locks.hold(organization_id):
            if self._repository.get_by_title(organization_id, title) is not None:
                logger.info(f"Create rejected for org={organization_id}: duplicate title")
                return Conflict(detail=DUPLICATE_TITLE_ERROR)

            message = self._repository.create(
                Message(
                    organization_id=organization_id,
                    title=title,
                    content=content,
                    created_at=utc_now(),
                    is_active=True,
                )
            )

        logger.info(f"Message {message.id} created for org={organization_id}")
        return Success(message=message)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_message(
        self,
        organization_id: Optional[uuid.UUID],
        message_id: Optional[uuid.UUID],
        request: Optional[UpdateMessageRequest],
    ) -> Result:
        """
        Replace title and content of an active message.

        Inactive messages are rejected before field validation. Passing
        ``is_active=False`` deactivates the message with this update.
        """
        if is_empty_id(organization_id):
            return BadRequest(detail=ORGANIZATION_REQUIRED)
        if is_empty_id(message_id):
            return BadRequest(detail=MESSAGE_ID_REQUIRED)
        if request is None:
            return BadRequest(detail=REQUEST_REQUIRED)

        with self._org_locks.hold(organization_id):
            existing = self._repository.get_by_id(organization_id, message_id)
            if existing is None:
                return NotFound(detail=NOT_FOUND_ERROR)

            if not existing.is_active:
                logger.info(f"Update rejected for message {message_id}: inactive")
                return ValidationFailed(errors={"message": [INACTIVE_ERROR]})

            errors = validate_fields(request.title, request.content)
            if errors:
                logger.info(f"Update rejected for message {message_id}: invalid fields {sorted(errors)}")
                return ValidationFailed(errors=errors)

            title = request.title.strip()
            if normalize_title(title) != normalize_title(existing.title):
                clash = self._repository.get_by_title(organization_id, title)
                if clash is not None and clash.id != existing.id:
                    logger.info(f"Update rejected for message {message_id}: duplicate title")
                    return Conflict(detail=DUPLICATE_TITLE_ERROR)

            updated = self._repository.update(
                existing.model_copy(
                    update={
                        "title": title,
                        "content": request.content.strip(),
                        "updated_at": utc_now(),
                        "is_active": request.is_active,
                    }
                )
            )

        if updated is None:
            return NotFound(detail=NOT_FOUND_ERROR)

        if not updated.is_active:
            logger.info(f"Message {message_id} deactivated")
        logger.info(f"Message {message_id} updated for org={organization_id}")
        return Success(message=updated)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_message(
        self,
        organization_id: Optional[uuid.UUID],
        message_id: Optional[uuid.UUID],
    ) -> Result:
        if is_empty_id(organization_id):
            return BadRequest(detail=ORGANIZATION_REQUIRED)
        if is_empty_id(message_id):
            return BadRequest(detail=MESSAGE_ID_REQUIRED)

        with self._org_locks.hold(organization_id):
            if not self._repository.delete(organization_id, message_id):
                return NotFound(detail=NOT_FOUND_ERROR)

        logger.info(f"Message {message_id} deleted for org={organization_id}")
        return Success()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_message(self, organization_id: uuid.UUID, message_id: uuid.UUID) -> Optional[Message]:
        return self._repository.get_by_id(organization_id, message_id)

    def get_all_messages(self, organization_id: uuid.UUID) -> list[Message]:
        return self._repository.get_all_by_organization(organization_id)
