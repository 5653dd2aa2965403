"""Tests for the repository-backed review service."""

import logging
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import InMemoryCardRepository
from reprise.application.review_service import ReviewService
from reprise.domain.errors import EmptyQueueError, RepositoryError
from reprise.domain.models import CardDraft, ReconcilePolicy, SessionState

DAY = timedelta(days=1)


@pytest.fixture
def stocked_repo(make_card, now):
    return InMemoryCardRepository(
        [
            make_card("a", next_review_at=now - DAY, deck="bio"),
            make_card("b", next_review_at=now - 2 * DAY, deck="bio"),
            make_card("c", next_review_at=now + DAY, deck="bio"),
            make_card("x", next_review_at=now - DAY, deck="chem"),
        ]
    )


@pytest.fixture
def service(stocked_repo, clock):
    return ReviewService(stocked_repo, clock=clock)


def test_due_cards_by_deck(service):
    assert [c.id for c in service.due_cards("bio")] == ["b", "a"]
    assert [c.id for c in service.due_cards()] == ["b", "a", "x"]
    assert [c.id for c in service.due_cards(limit=1)] == ["b"]


def test_answer_persists_graded_card(service, stocked_repo, clock):
    service.start_session("bio")

    updated = service.answer(4)

    assert stocked_repo.saved == [updated]
    assert stocked_repo.cards["b"].last_reviewed_at == clock.now
    assert stocked_repo.cards["b"].total_reviews == 1


def test_full_session_round_trip(service, stocked_repo):
    session = service.start_session("bio")
    service.answer(5)
    service.advance()
    service.answer(1)
    service.advance()

    assert session.state is SessionState.COMPLETE
    assert session.score == 1
    assert [c.id for c in stocked_repo.saved] == ["b", "a"]
    assert service.due_cards("bio") == []


def test_start_with_nothing_due(service):
    with pytest.raises(EmptyQueueError):
        service.start_session("physics")


def test_grading_does_not_trigger_reconcile(service):
    service.start_session("bio")
    service.answer(4)

    assert service.refresh() is False
    assert service.session.answers == (4, None)


def test_added_cards_reset_active_session(service, clock):
    service.start_session("bio")
    service.answer(4)
    service.advance()

    added = service.add_drafts([CardDraft(front="new", back="card")], deck="bio")

    session = service.session
    assert [c.id for c in session.queue] == ["a", added[0].id]
    assert session.cursor == 0
    assert session.answers == (None, None)


def test_added_cards_merge_with_preserve_policy(stocked_repo, clock):
    service = ReviewService(stocked_repo, clock=clock, policy=ReconcilePolicy.PRESERVE)
    service.start_session("bio")
    service.answer(4)
    service.advance()

    added = service.add_drafts([CardDraft(front="new", back="card")], deck="bio")

    session = service.session
    assert [c.id for c in session.queue] == ["b", "a", added[0].id]
    assert session.answers == (4, None, None)
    assert session.current_card.id == "a"


def test_capped_session_does_not_grow(service):
    service.start_session("bio", limit=1)

    service.add_drafts([CardDraft(front="new", back="card")], deck="bio")

    assert [c.id for c in service.session.queue] == ["b"]


def test_retake_session_is_not_reconciled(service):
    service.start_session("bio")
    service.answer(1)
    service.advance()
    service.answer(5)
    service.advance()
    service.retake("wrong")

    service.add_drafts([CardDraft(front="new", back="card")], deck="bio")

    assert [c.id for c in service.session.queue] == ["b"]


def test_delete_deck_reconciles(service):
    service.start_session()

    removed = service.delete_deck("chem")

    assert removed == 1
    assert [c.id for c in service.session.queue] == ["b", "a"]


@pytest.fixture
def two_deck_repo(make_card, now):
    return InMemoryCardRepository(
        [
            make_card("p", next_review_at=now - 2 * DAY, deck="chem"),
            make_card("q", next_review_at=now - DAY, deck="bio"),
        ]
    )


def test_deleted_graded_card_leaves_session(two_deck_repo, clock):
    service = ReviewService(two_deck_repo, clock=clock)
    service.start_session()
    service.answer(1)

    assert service.delete_deck("chem") == 1

    session = service.session
    assert [c.id for c in session.queue] == ["q"]
    assert session.answers == (None,)

    service.answer(1)
    service.advance()
    service.retake("wrong")
    assert [c.id for c in session.queue] == ["q"]
    service.answer(4)

    assert "p" not in two_deck_repo.cards
    assert two_deck_repo.cards["q"].total_reviews == 2


def test_deleted_graded_card_leaves_preserved_session(two_deck_repo, clock):
    service = ReviewService(two_deck_repo, clock=clock, policy=ReconcilePolicy.PRESERVE)
    service.start_session()
    service.answer(1)

    service.delete_deck("chem")

    session = service.session
    assert [c.id for c in session.queue] == ["q"]
    assert session.current_card.id == "q"
    assert session.score == 0


def test_retake_skips_cards_deleted_after_session(two_deck_repo, clock):
    service = ReviewService(two_deck_repo, clock=clock)
    service.start_session()
    for _ in range(2):
        service.answer(1)
        service.advance()

    service.delete_deck("chem")
    service.retake("wrong")

    assert [c.id for c in service.session.queue] == ["q"]


def test_deck_deleted_during_retake(two_deck_repo, clock):
    service = ReviewService(two_deck_repo, clock=clock)
    service.start_session()
    for _ in range(2):
        service.answer(1)
        service.advance()
    service.retake("wrong")
    service.answer(2)

    assert service.delete_deck("chem") == 1

    session = service.session
    assert [c.id for c in session.queue] == ["q"]
    assert session.answers == (None,)
    assert "p" not in two_deck_repo.cards


def test_save_failure_is_logged_and_raised(make_card, clock, caplog):
    repo = MagicMock()
    repo.load_all.return_value = [make_card("a")]
    repo.save.side_effect = RepositoryError("disk full")
    service = ReviewService(repo, clock=clock)
    service.start_session()

    with caplog.at_level(logging.ERROR, logger="reprise"):
        with pytest.raises(RepositoryError):
            service.answer(4)

    assert "could not be saved" in caplog.text
    assert service.session.answers == (4,)


def test_summary_and_export(service):
    summary = service.summary("bio")
    assert summary.total == 3
    assert summary.due == 2

    assert service.export("chem") == "front x\tback x\n"


def test_get_enriched_stats(service):
    service.start_session("bio")
    service.answer(5)

    enriched = service.get_enriched_stats("bio")

    assert [e.card_id for e in enriched] == ["a", "b", "c"]
    graded = enriched[1]
    assert graded.accuracy == 1.0
    assert graded.days_overdue == -1
    assert graded.is_due is False
    assert enriched[0].days_overdue is None
