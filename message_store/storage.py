import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from message_store.models import Message

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Shared-read / exclusive-write lock.

    Any number of readers may hold the lock at once; a writer holds it
    alone. Waiting writers block new readers so writes are not starved.
    Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def normalize_title(title: str) -> str:
    """Key used for case-insensitive title comparison."""
    return title.strip().casefold()


# =============================================================================
# Message Repository
# =============================================================================

class InMemoryMessageRepository:
    """
    Process-local message store keyed by message id.

    All methods are safe to call from multiple threads. Lookups that take
    an organization id never return another organization's message.
    ``update`` is not organization-scoped: callers verify ownership first.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._store: dict[uuid.UUID, Message] = {}

    def get_by_id(self, organization_id: uuid.UUID, message_id: uuid.UUID) -> Optional[Message]:
        """
        Retrieve a message by id within an organization.

        Returns:
            Message if found and owned by organization_id, None otherwise
        """
        with self._lock.read_lock():
            message = self._store.get(message_id)
        if message is None or message.organization_id != organization_id:
            logger.debug(f"Message lookup miss: org={organization_id}, id={message_id}")
            return None
        return message

    def get_all_by_organization(self, organization_id: uuid.UUID) -> list[Message]:
        """
        Retrieve every message of an organization, newest first.

        Ties on created_at keep insertion order.
        """
        with self._lock.read_lock():
            messages = [m for m in self._store.values() if m.organization_id == organization_id]
        messages.sort(key=lambda m: m.created_at, reverse=True)
        logger.debug(f"Retrieved {len(messages)} messages for org={organization_id}")
        return messages

    def get_by_title(self, organization_id: uuid.UUID, title: str) -> Optional[Message]:
        """
        Case-insensitive exact title lookup within an organization.

        Returns the first stored match, or None.
        """
        key = normalize_title(title)
        with self._lock.read_lock():
            for message in self._store.values():
                if message.organization_id == organization_id and normalize_title(message.title) == key:
                    return message
        return None

    def create(self, message: Message) -> Message:
        """
        Store a new message under a freshly generated id.

        Any id already set on ``message`` is replaced.

        Returns:
            The stored message
        """
        stored = message.model_copy(update={"id": uuid.uuid4()})
        with self._lock.write_lock():
            self._store[stored.id] = stored
        logger.info(f"Message created: id={stored.id}, org={stored.organization_id}")
        return stored

    def update(self, message: Message) -> Optional[Message]:
        """
        Replace the stored record with the same id.

        Returns:
            The stored message, or None if no message has that id
        """
        with self._lock.write_lock():
            if message.id not in self._store:
                stored = None
            else:
                self._store[message.id] = message
                stored = message
        if stored is None:
            logger.info(f"Update skipped, message not found: id={message.id}")
        else:
            logger.info(f"Message updated: id={message.id}, org={message.organization_id}")
        return stored

    def delete(self, organization_id: uuid.UUID, message_id: uuid.UUID) -> bool:
        """
        Remove a message if it exists and belongs to the organization.

        Returns:
            True if a message was removed, False otherwise
        """
        with self._lock.write_lock():
            existing = self._store.get(message_id)
            removed = existing is not None and existing.organization_id == organization_id
            if removed:
                del self._store[message_id]
        logger.info(f"Message delete: id={message_id}, org={organization_id}, removed={removed}")
        return removed

    def count(self) -> int:
        """Total number of stored messages across all organizations."""
        with self._lock.read_lock():
            return len(self._store)
