"""
Pytest configuration and shared fixtures.

Settings are read from the environment; the cache is cleared before any
application import so test values win over a developer's .env file.
"""

import os
import uuid

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")

from message_store.config import get_settings
get_settings.cache_clear()

from message_store.logic import MessageLogic
from message_store.storage import InMemoryMessageRepository


@pytest.fixture
def repository() -> InMemoryMessageRepository:
    """Fresh, empty repository per test."""
    return InMemoryMessageRepository()


@pytest.fixture
def logic(repository) -> MessageLogic:
    """Logic layer over the per-test repository."""
    return MessageLogic(repository)


@pytest.fixture
def org_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_org_id() -> uuid.UUID:
    return uuid.uuid4()
