"""Unit tests for the attendee repository."""
import threading

import pytest

from starcheckin.core.exceptions import RepositoryUnavailable
from starcheckin.db.base import Base
from starcheckin.schemas import AttendeeUpdate, ROSTER_MERGE_FIELDS


@pytest.fixture
def existing(repository):
    return repository.upsert(AttendeeUpdate(id="a1", name="X", email="x@x", status="updated"))


class TestUpsert:

    def test_insert_applies_defaults(self, repository):
        stored = repository.upsert(AttendeeUpdate(id="new-1", status="checked_in"))

        assert stored.id == "new-1"
        assert stored.name == ""
        assert stored.email == ""
        assert stored.status == "checked_in"
        assert stored.answers is None
        assert stored.created_at == stored.updated_at

    def test_insert_without_status_defaults_to_updated(self, repository):
        stored = repository.upsert(AttendeeUpdate(id="new-2", name="Ada"))
        assert stored.status == "updated"

    def test_partial_merge_keeps_untouched_fields(self, repository, existing):
        merged = repository.upsert(AttendeeUpdate(id="a1", status="checked_in"))

        assert merged.id == "a1"
        assert merged.name == "X"
        assert merged.email == "x@x"
        assert merged.status == "checked_in"

    def test_same_update_twice_is_idempotent(self, repository, existing):
        update = AttendeeUpdate(
            id="a1",
            status="checked_in",
            checked_in=True,
            answers={"T-shirt size": "M", "Diet": "Vegan"},
        )

        first = repository.upsert(update)
        second = repository.upsert(update)

        ignore = {"updated_at"}
        assert first.model_dump(exclude=ignore) == second.model_dump(exclude=ignore)

    def test_updated_at_strictly_increases(self, repository, existing):
        previous = existing.updated_at
        for _ in range(5):
            stored = repository.upsert(AttendeeUpdate(id="a1", status="checked_in"))
            assert stored.updated_at > previous
            previous = stored.updated_at

    def test_answers_keep_question_order(self, repository):
        answers = {"Zeta": "1", "Alpha": "2", "Mid": "3"}
        stored = repository.upsert(AttendeeUpdate(id="q1", answers=answers))
        assert list(stored.answers) == ["Zeta", "Alpha", "Mid"]

    def test_merge_fields_limit_what_changes(self, repository, existing):
        stored = repository.upsert(
            AttendeeUpdate(id="a1", name="Y", status="updated"),
            ROSTER_MERGE_FIELDS,
        )
        assert stored.name == "Y"
        # status is not in the roster merge set
        assert stored.status == "updated"

        repository.upsert(AttendeeUpdate(id="a1", status="checked_in"))
        stored = repository.upsert(AttendeeUpdate(id="a1", status="updated"), ROSTER_MERGE_FIELDS)
        assert stored.status == "checked_in"

    def test_unknown_merge_field_rejected(self, repository):
        with pytest.raises(ValueError):
            repository.upsert(AttendeeUpdate(id="a1"), ("id",))

    def test_concurrent_upserts_to_same_id_do_not_tear(self, repository, existing):
        barrier = threading.Barrier(2)
        errors = []

        def write(update):
            try:
                barrier.wait()
                for _ in range(10):
                    repository.upsert(update)
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        threads = [
            threading.Thread(target=write, args=(AttendeeUpdate(id="a1", name="N1", email="n1@example.com"),)),
            threading.Thread(target=write, args=(AttendeeUpdate(id="a1", status="checked_in", checked_in=True),)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        stored = repository.get_by_id("a1")
        assert (stored.name, stored.email) == ("N1", "n1@example.com")
        assert (stored.status, stored.checked_in) == ("checked_in", True)


class TestReads:

    def test_get_by_id_missing(self, repository):
        assert repository.get_by_id("nope") is None

    def test_get_all_and_filters(self, repository):
        repository.upsert(AttendeeUpdate(id="1", event_id="e1", status="checked_in"))
        repository.upsert(AttendeeUpdate(id="2", event_id="e1", status="updated"))
        repository.upsert(AttendeeUpdate(id="3", event_id="e2", status="checked_in"))

        assert {a.id for a in repository.get_all()} == {"1", "2", "3"}
        assert {a.id for a in repository.get_all(event_id="e1")} == {"1", "2"}
        assert {a.id for a in repository.get_all(status="checked_in")} == {"1", "3"}
        assert [a.id for a in repository.get_all(event_id="e1", status="checked_in")] == ["1"]
        assert repository.count() == 3

    def test_storage_failure_surfaces(self, repository, engine):
        Base.metadata.drop_all(bind=engine)

        with pytest.raises(RepositoryUnavailable):
            repository.get_all()
        with pytest.raises(RepositoryUnavailable):
            repository.upsert(AttendeeUpdate(id="a1", status="checked_in"))
