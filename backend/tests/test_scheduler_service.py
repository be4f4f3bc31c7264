"""Tests for the scheduler service and the in-memory repository."""

import random
import threading
from datetime import timedelta

import pytest

from cadence.repositories import InMemoryCardStateRepository
from cadence.services import SchedulerService
from cadence.srs.calculator import Response, apply_response
from cadence.srs.errors import (
    CardStateNotFoundError,
    InvalidResponseError,
    InvalidStateError,
    StaleCardStateError,
    StorageError,
)


@pytest.fixture
def repository():
    return InMemoryCardStateRepository()


@pytest.fixture
def service(repository, policy, steady_rng):
    return SchedulerService(repository, policy, rng=steady_rng)


class TestSubmitResponse:
    def test_applies_and_persists(self, service, repository, now):
        service.register_card("learner-1", "card-1", now=now)

        updated = service.submit_response("learner-1", "card-1", "good", now=now)

        assert updated.state == "learning"
        assert updated.dueDate == now + timedelta(minutes=1)
        assert repository.load_card_state("learner-1", "card-1") == updated

    def test_missing_card_raises_not_found(self, service, now):
        with pytest.raises(CardStateNotFoundError):
            service.submit_response("learner-1", "nope", Response.GOOD, now=now)

    def test_invalid_response_does_not_write(self, service, repository, now):
        original = service.register_card("learner-1", "card-1", now=now)

        with pytest.raises(InvalidResponseError):
            service.submit_response("learner-1", "card-1", "perfect", now=now)

        assert repository.load_card_state("learner-1", "card-1") == original

    def test_invalid_state_does_not_write(self, service, repository, make_state, now, caplog):
        broken = make_state(state="archived")
        repository.save_card_state(broken)

        with pytest.raises(InvalidStateError):
            service.submit_response("learner-1", "card-1", "good", now=now)

        assert repository.load_card_state("learner-1", "card-1") == broken
        assert "corrupted" in caplog.text

    def test_stale_write_rejected(self, service, repository, policy, now):
        service.register_card("learner-1", "card-1", now=now)
        loaded = repository.load_card_state("learner-1", "card-1")

        # Another submission lands first
        service.submit_response("learner-1", "card-1", "again", now=now)

        late = apply_response(loaded, "easy", policy, now=now)
        with pytest.raises(StaleCardStateError):
            repository.save_card_state(late, expected=loaded)

    def test_stale_error_is_a_storage_error(self):
        assert issubclass(StaleCardStateError, StorageError)

    def test_concurrent_submissions_never_lose_an_update(self, repository, policy, now):
        service = SchedulerService(repository, policy, rng=random.Random(0))
        service.register_card("learner-1", "card-1", now=now)
        successes = []
        failures = []

        def submit():
            try:
                successes.append(service.submit_response("learner-1", "card-1", "good", now=now))
            except StaleCardStateError as e:
                failures.append(e)

        threads = [threading.Thread(target=submit) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stored = repository.load_card_state("learner-1", "card-1")
        assert len(successes) + len(failures) == 8
        assert stored.repetitions == len(successes)

    def test_learners_are_independent(self, service, repository, now):
        service.register_card("learner-1", "card-1", now=now)
        service.register_card("learner-2", "card-1", now=now)

        service.submit_response("learner-1", "card-1", "easy", now=now)

        assert repository.load_card_state("learner-1", "card-1").state == "review"
        assert repository.load_card_state("learner-2", "card-1").state == "new"


class TestRegisterCard:
    def test_uses_initial_ease(self, repository, now, steady_rng):
        from cadence.srs.policy import load_policy

        service = SchedulerService(repository, load_policy({"initialEaseFactor": 2100}), rng=steady_rng)
        state = service.register_card("learner-1", "card-1", now=now)
        assert state.easeFactor == 2100
        assert state.state == "new"
        assert state.dueDate == now

    def test_is_idempotent(self, service, repository, now):
        first = service.register_card("learner-1", "card-1", now=now)
        service.submit_response("learner-1", "card-1", "good", now=now)

        again = service.register_card("learner-1", "card-1", now=now + timedelta(days=1))

        assert again.state == "learning"
        assert again.createdAt == first.createdAt
        assert len(repository) == 1


class TestGetSession:
    def test_returns_due_and_new_cards_with_counts(self, service, repository, make_state, now):
        repository.save_card_state(make_state(cardId="new-1", createdAt=now - timedelta(days=2)))
        repository.save_card_state(make_state(cardId="new-2", createdAt=now - timedelta(days=1)))
        repository.save_card_state(make_state(cardId="rev", state="review", dueDate=now - timedelta(days=1)))
        repository.save_card_state(make_state(cardId="learn", state="learning", dueDate=now))
        repository.save_card_state(make_state(cardId="future", state="review", dueDate=now + timedelta(days=3)))
        repository.save_card_state(make_state(learnerId="someone-else", cardId="other"))

        session = service.get_session("learner-1", new_limit=1, review_limit=10, now=now)

        assert sorted(c.cardId for c in session.cards) == ["learn", "new-1", "rev"]
        assert session.counts.as_dict() == {
            "new": 1,
            "learning": 1,
            "relearning": 0,
            "review": 1,
            "total": 3,
        }

    def test_empty_session(self, service, now):
        session = service.get_session("learner-1", now=now)
        assert session.cards == []
        assert session.counts.total == 0

    def test_interleaved_ordering(self, repository, policy, make_state, now):
        for i in range(4):
            repository.save_card_state(
                make_state(cardId=f"r{i}", state="review", dueDate=now - timedelta(hours=i + 1))
            )
        for i in range(2):
            repository.save_card_state(make_state(cardId=f"n{i}", createdAt=now - timedelta(minutes=i)))
        service = SchedulerService(repository, policy, rng=random.Random(4), ordering="interleave", new_every=2)

        session = service.get_session("learner-1", now=now)

        assert [c.cardId[0] for c in session.cards] == ["r", "r", "n", "r", "r", "n"]

    def test_session_reads_do_not_modify_records(self, service, repository, make_state, now):
        record = make_state(cardId="rev", state="review", dueDate=now - timedelta(days=1))
        repository.save_card_state(record)
        service.get_session("learner-1", now=now)
        assert repository.load_card_state("learner-1", "rev") == record
