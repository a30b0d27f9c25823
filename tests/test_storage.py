"""
Tests for InMemoryMessageRepository and ReadWriteLock.

Tests cover:
- Id assignment and lookup scoped by organization
- Case-insensitive title lookup
- Newest-first listing
- Update and delete contracts
- Reader/writer lock semantics and concurrent writes
"""

import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from message_store.models import Message
from message_store.storage import InMemoryMessageRepository, ReadWriteLock


BASE_TIME = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def make_message(org_id: uuid.UUID, title: str = "Weekly digest", **overrides) -> Message:
    fields = {
        "organization_id": org_id,
        "title": title,
        "content": "Some content for the message.",
        "created_at": BASE_TIME,
    }
    fields.update(overrides)
    return Message(**fields)


class TestRepositoryCreate:
    """Test create and id assignment."""

    def test_create_assigns_new_id(self, repository, org_id):
        """Test a caller-supplied id is replaced."""
        supplied = uuid.uuid4()
        stored = repository.create(make_message(org_id, id=supplied))

        assert stored.id != supplied
        assert repository.get_by_id(org_id, stored.id) == stored
        assert repository.get_by_id(org_id, supplied) is None

    def test_create_returns_distinct_ids(self, repository, org_id):
        """Test each created message gets its own id."""
        ids = {repository.create(make_message(org_id, title=f"Title {i}")).id for i in range(20)}

        assert len(ids) == 20
        assert repository.count() == 20

    def test_create_does_not_alter_input(self, repository, org_id):
        """Test the message passed in keeps its original id."""
        original = make_message(org_id)
        repository.create(original)

        assert original.id == uuid.UUID(int=0)


class TestRepositoryGetById:
    """Test organization-scoped id lookup."""

    def test_missing_id_returns_none(self, repository, org_id):
        assert repository.get_by_id(org_id, uuid.uuid4()) is None

    def test_other_organization_returns_none(self, repository, org_id, other_org_id):
        """Test a message is invisible to other organizations."""
        stored = repository.create(make_message(org_id))

        assert repository.get_by_id(other_org_id, stored.id) is None
        assert repository.get_by_id(org_id, stored.id) is not None


class TestRepositoryGetByTitle:
    """Test case-insensitive title lookup."""

    def test_title_match_ignores_case(self, repository, org_id):
        stored = repository.create(make_message(org_id, title="Quarterly Report"))

        assert repository.get_by_title(org_id, "quarterly report") == stored
        assert repository.get_by_title(org_id, "QUARTERLY REPORT") == stored

    def test_title_match_ignores_surrounding_whitespace(self, repository, org_id):
        stored = repository.create(make_message(org_id, title="Quarterly Report"))

        assert repository.get_by_title(org_id, "  Quarterly Report \t") == stored

    def test_title_match_is_exact(self, repository, org_id):
        """Test partial titles do not match."""
        repository.create(make_message(org_id, title="Quarterly Report"))

        assert repository.get_by_title(org_id, "Quarterly") is None

    def test_title_scoped_to_organization(self, repository, org_id, other_org_id):
        repository.create(make_message(org_id, title="Quarterly Report"))

        assert repository.get_by_title(other_org_id, "Quarterly Report") is None

    def test_first_match_returned_for_duplicates(self, repository, org_id):
        """Test the earliest stored record wins if duplicates were inserted directly."""
        first = repository.create(make_message(org_id, title="Same"))
        repository.create(make_message(org_id, title="SAME"))

        assert repository.get_by_title(org_id, "same") == first


class TestRepositoryListing:
    """Test get_all_by_organization ordering and scoping."""

    def test_empty_organization(self, repository, org_id):
        assert repository.get_all_by_organization(org_id) == []

    def test_newest_first(self, repository, org_id):
        """Test messages are ordered by created_at descending."""
        for minutes in (0, 5, 2, 9):
            repository.create(
                make_message(org_id, title=f"At {minutes}", created_at=BASE_TIME + timedelta(minutes=minutes))
            )

        titles = [m.title for m in repository.get_all_by_organization(org_id)]

        assert titles == ["At 9", "At 5", "At 2", "At 0"]

    def test_ties_include_every_message_once(self, repository, org_id):
        """Test equal timestamps keep all messages exactly once."""
        created = [repository.create(make_message(org_id, title=f"Tie {i}")) for i in range(5)]

        listed = repository.get_all_by_organization(org_id)

        assert sorted(m.id for m in listed) == sorted(m.id for m in created)

    def test_only_requested_organization(self, repository, org_id, other_org_id):
        repository.create(make_message(org_id, title="Mine"))
        repository.create(make_message(other_org_id, title="Theirs"))

        listed = repository.get_all_by_organization(org_id)

        assert [m.title for m in listed] == ["Mine"]
        assert all(m.organization_id == org_id for m in listed)


class TestRepositoryUpdate:
    """Test wholesale replacement."""

    def test_update_replaces_record(self, repository, org_id):
        stored = repository.create(make_message(org_id))
        changed = stored.model_copy(update={"title": "Renamed", "content": "Entirely new text."})

        assert repository.update(changed) == changed
        assert repository.get_by_id(org_id, stored.id).title == "Renamed"

    def test_update_missing_returns_none(self, repository, org_id):
        """Test updating an unknown id changes nothing."""
        ghost = make_message(org_id, id=uuid.uuid4())

        assert repository.update(ghost) is None
        assert repository.count() == 0


class TestRepositoryDelete:
    """Test organization-scoped deletion."""

    def test_delete_then_lookup(self, repository, org_id):
        stored = repository.create(make_message(org_id))

        assert repository.delete(org_id, stored.id) is True
        assert repository.get_by_id(org_id, stored.id) is None
        assert repository.delete(org_id, stored.id) is False

    def test_delete_other_organization_is_noop(self, repository, org_id, other_org_id):
        stored = repository.create(make_message(org_id))

        assert repository.delete(other_org_id, stored.id) is False
        assert repository.get_by_id(org_id, stored.id) == stored


class TestReadWriteLock:
    """Test shared-read / exclusive-write behavior."""

    def test_readers_share_the_lock(self):
        """Test two readers can hold the lock at the same time."""
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=5)

        def reader():
            with lock.read_lock():
                both_inside.wait()

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(reader) for _ in range(2)]
            for future in futures:
                future.result(timeout=10)

    def test_writer_waits_for_reader(self):
        """Test a writer cannot enter while a reader holds the lock."""
        lock = ReadWriteLock()
        events = []
        reader_inside = threading.Event()
        release_reader = threading.Event()

        def reader():
            with lock.read_lock():
                reader_inside.set()
                release_reader.wait(5)
                events.append("reader done")

        def writer():
            reader_inside.wait(5)
            with lock.write_lock():
                events.append("writer")

        threads = [threading.Thread(target=reader), threading.Thread(target=writer)]
        for thread in threads:
            thread.start()

        reader_inside.wait(5)
        time.sleep(0.1)
        assert events == []

        release_reader.set()
        for thread in threads:
            thread.join(5)

        assert events == ["reader done", "writer"]

    def test_writers_are_exclusive(self):
        """Test no two writers are ever inside together."""
        lock = ReadWriteLock()
        inside = []
        overlaps = []

        def writer():
            for _ in range(50):
                with lock.write_lock():
                    inside.append(1)
                    if len(inside) > 1:
                        overlaps.append(len(inside))
                    inside.pop()

        with ThreadPoolExecutor(max_workers=4) as pool:
            for future in [pool.submit(writer) for _ in range(4)]:
                future.result(timeout=10)

        assert overlaps == []


class TestRepositoryConcurrency:
    """Test the repository under parallel callers."""

    def test_parallel_creates_are_all_stored(self, repository, org_id):
        def worker(n):
            return [repository.create(make_message(org_id, title=f"W{n}-{i}")).id for i in range(25)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = [i for batch in pool.map(worker, range(8)) for i in batch]

        assert len(set(ids)) == 200
        assert len(repository.get_all_by_organization(org_id)) == 200

    def test_readers_see_whole_records(self, repository, org_id):
        """Test concurrent readers only ever observe complete versions."""
        stored = repository.create(make_message(org_id, title="v0", content="content version 0"))
        stop = threading.Event()
        torn = []

        def reader():
            while not stop.is_set():
                current = repository.get_by_id(org_id, stored.id)
                if current.title[1:] != current.content.rsplit(" ", 1)[1]:
                    torn.append(current)

        with ThreadPoolExecutor(max_workers=4) as pool:
            readers = [pool.submit(reader) for _ in range(3)]
            for version in range(1, 200):
                repository.update(
                    stored.model_copy(update={"title": f"v{version}", "content": f"content version {version}"})
                )
            stop.set()
            for future in readers:
                future.result(timeout=10)

        assert torn == []
        assert repository.get_by_id(org_id, stored.id).title == "v199"


@pytest.mark.parametrize("title", ["Straße", "STRASSE"])
def test_casefold_title_lookup(repository, org_id, title):
    """Test titles compare with full Unicode case folding."""
    stored = repository.create(make_message(org_id, title="strasse"))

    assert repository.get_by_title(org_id, title) == stored
