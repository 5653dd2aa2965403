"""Tests for the review session state machine."""

from dataclasses import replace
from datetime import timedelta

import pytest

from reprise.application.session import TRANSITIONS, StudySessionController
from reprise.domain.errors import (
    AlreadyActiveError,
    AlreadyAnsweredError,
    EmptyQueueError,
    EmptySubsetError,
    IndexOutOfRangeError,
    InvalidGradeError,
    InvalidSessionStateError,
)
from reprise.domain.models import ReconcilePolicy, RetakeFilter, SessionState


@pytest.fixture
def cards(make_card):
    return [make_card("a"), make_card("b"), make_card("c")]


@pytest.fixture
def session(clock):
    return StudySessionController(clock=clock)


@pytest.fixture
def active(session, cards):
    session.start(cards)
    return session


# --- Start ---


def test_starts_idle(session):
    assert session.state is SessionState.IDLE
    assert session.current_card is None
    assert session.progress_percent == 0.0
    assert session.elapsed == timedelta(0)


def test_start_initializes_session(session, cards, clock):
    session.start(cards)

    assert session.state is SessionState.ACTIVE
    assert session.cursor == 0
    assert session.current_card == cards[0]
    assert session.answers == (None, None, None)
    assert session.flags == (False, False, False)
    assert session.started_at == clock.now
    assert session.finished_at is None


def test_start_copies_queue(session, cards):
    session.start(cards)
    cards.clear()

    assert len(session.queue) == 3


def test_start_while_active_fails(active, cards):
    before = active.snapshot()

    with pytest.raises(AlreadyActiveError):
        active.start(cards)

    assert active.snapshot() == before


def test_start_on_empty_queue_fails(session):
    with pytest.raises(EmptyQueueError):
        session.start([])
    assert session.state is SessionState.IDLE


# --- Answering ---


def test_answer_grades_without_advancing(active, clock):
    updated = active.answer_current(5)

    assert active.cursor == 0
    assert active.answers == (5, None, None)
    assert updated.repetitions == 1
    assert updated.last_reviewed_at == clock.now
    assert active.current_card == updated
    assert active.queue[0] == updated


def test_answer_twice_is_rejected_and_changes_nothing(active):
    active.answer_current(4)
    before = active.snapshot()

    with pytest.raises(AlreadyAnsweredError) as exc:
        active.answer_current(1)

    assert exc.value.index == 0
    assert active.snapshot() == before
    assert active.current_card.total_reviews == 1


def test_invalid_grade_changes_nothing(active):
    before = active.snapshot()

    with pytest.raises(InvalidGradeError):
        active.answer_current(7)

    assert active.snapshot() == before


def test_answer_requires_active_session(session):
    with pytest.raises(InvalidSessionStateError):
        session.answer_current(4)


# --- Navigation ---


def test_advance_moves_then_completes(active, clock):
    active.advance()
    active.advance()
    assert active.cursor == 2
    assert active.state is SessionState.ACTIVE

    clock.tick(minutes=3)
    active.advance()

    assert active.state is SessionState.COMPLETE
    assert active.finished_at == clock.now
    assert active.elapsed == timedelta(minutes=3)
    assert active.current_card is None


def test_elapsed_runs_while_active(active, clock):
    clock.tick(seconds=42)
    assert active.elapsed == timedelta(seconds=42)


def test_retreat_stops_at_zero(active):
    active.advance()
    active.retreat()
    active.retreat()
    assert active.cursor == 0


def test_jump_to_keeps_answers(active):
    active.answer_current(4)

    active.jump_to(2)
    assert active.cursor == 2
    active.jump_to(0)

    assert active.answers == (4, None, None)
    assert active.current_answer == 4


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_jump_out_of_range(active, index):
    with pytest.raises(IndexOutOfRangeError):
        active.jump_to(index)
    assert active.cursor == 0


def test_toggle_flag(active):
    assert active.toggle_flag() is True
    active.advance()
    active.toggle_flag()
    active.toggle_flag()

    assert active.flags == (True, False, False)
    assert active.flagged_count == 1


def test_flag_has_no_scheduling_effect(active, cards):
    active.toggle_flag()
    assert active.queue == tuple(cards)


def test_end_completes_early(active):
    active.end()
    assert active.state is SessionState.COMPLETE
    with pytest.raises(InvalidSessionStateError):
        active.advance()


def test_reset_returns_to_idle(active):
    active.answer_current(3)
    active.reset()
    assert active.state is SessionState.IDLE
    assert active.queue == ()


# --- Derived values ---


def test_progress_and_score(active):
    active.answer_current(5)
    active.advance()
    active.answer_current(1)

    assert active.answered_count == 2
    assert active.progress_percent == pytest.approx(200 / 3)
    assert active.score == 1
    assert active.wrong_count == 1


# --- Retake ---


def test_retake_wrong_only_counts_graded_lapses(active, cards):
    active.answer_current(1)
    active.advance()
    active.advance()
    active.advance()

    assert active.answers == (1, None, None)
    assert active.state is SessionState.COMPLETE

    active.retake("wrong")

    assert active.state is SessionState.ACTIVE
    assert [c.id for c in active.queue] == ["a"]
    assert active.answers == (None,)
    assert active.queue[0].total_reviews == 1  # carries the graded state


def test_retake_flagged(active):
    active.advance()
    active.toggle_flag()
    active.answer_current(5)
    active.end()

    active.retake(RetakeFilter.FLAGGED)

    assert [c.id for c in active.queue] == ["b"]
    assert active.flags == (False,)


def test_retake_empty_subset(active):
    active.answer_current(5)
    active.end()
    before = active.snapshot()

    with pytest.raises(EmptySubsetError):
        active.retake("wrong")
    with pytest.raises(EmptySubsetError):
        active.retake("flagged")

    assert active.snapshot() == before


def test_retake_requires_complete_session(session, cards):
    with pytest.raises(InvalidSessionStateError):
        session.retake("wrong")
    session.start(cards)
    with pytest.raises(AlreadyActiveError):
        session.retake("wrong")


def test_retake_unknown_filter(active):
    active.end()
    with pytest.raises(ValueError):
        active.retake("slow")


# --- Reconciliation ---


def test_reconcile_ignores_own_grading(active, cards):
    active.answer_current(4)

    changed = active.reconcile(cards[1:])

    assert changed is False
    assert active.answers == (4, None, None)


def test_reconcile_reset_restarts_on_fresh_queue(active, cards, make_card):
    active.answer_current(4)
    active.advance()
    new = make_card("d")

    changed = active.reconcile([cards[1], cards[2], new])

    assert changed is True
    assert [c.id for c in active.queue] == ["b", "c", "d"]
    assert active.cursor == 0
    assert active.answers == (None, None, None)
    assert active.state is SessionState.ACTIVE


def test_reconcile_reset_detects_edited_card(active, cards):
    edited = replace(cards[2], front="changed")

    assert active.reconcile([cards[0], cards[1], edited]) is True
    assert active.queue[2].front == "changed"


def test_reconcile_with_nothing_due_completes(active):
    assert active.reconcile([]) is True
    assert active.state is SessionState.COMPLETE


def test_reconcile_preserve_keeps_position(clock, cards, make_card):
    session = StudySessionController(clock=clock, policy=ReconcilePolicy.PRESERVE)
    session.start(cards)
    session.answer_current(2)
    session.advance()
    session.toggle_flag()
    new = make_card("d")

    # c no longer due, d newly due
    changed = session.reconcile([cards[1], new])

    assert changed is True
    assert [c.id for c in session.queue] == ["a", "b", "d"]
    assert session.answers == (2, None, None)
    assert session.flags == (False, True, False)
    assert session.current_card.id == "b"


def test_reconcile_preserve_clamps_when_current_removed(clock, cards):
    session = StudySessionController(clock=clock, policy="preserve")
    session.start(cards)
    session.jump_to(2)

    session.reconcile(cards[:2])

    assert [c.id for c in session.queue] == ["a", "b"]
    assert session.cursor == 1


def test_reconcile_when_not_active(session, cards):
    assert session.reconcile(cards) is False
    assert session.state is SessionState.IDLE


def test_reconcile_drops_graded_cards_that_no_longer_exist(active, cards):
    active.answer_current(1)

    # "a" was graded, then deleted from storage
    changed = active.reconcile(cards[1:], existing_ids=["b", "c"])

    assert changed is True
    assert [c.id for c in active.queue] == ["b", "c"]
    assert active.score == 0


def test_reconcile_preserve_drops_deleted_graded_card(clock, cards):
    session = StudySessionController(clock=clock, policy=ReconcilePolicy.PRESERVE)
    session.start(cards)
    session.answer_current(4)
    session.advance()
    session.answer_current(4)
    session.advance()

    changed = session.reconcile(cards[2:], existing_ids=["b", "c"])

    assert changed is True
    assert [c.id for c in session.queue] == ["b", "c"]
    assert session.answers == (4, None)
    assert session.current_card.id == "c"


def test_discard_removes_any_position(active):
    active.answer_current(1)
    active.advance()
    active.toggle_flag()

    assert active.discard(["a"]) is True

    assert [c.id for c in active.queue] == ["b", "c"]
    assert active.answers == (None, None)
    assert active.flags == (True, False)
    assert active.current_card.id == "b"


def test_discard_unknown_ids_changes_nothing(active):
    assert active.discard(["zzz"]) is False
    assert len(active.queue) == 3


def test_discard_everything_completes(active):
    assert active.discard(["a", "b", "c"]) is True
    assert active.state is SessionState.COMPLETE


# --- Transition table ---


def test_transition_table_covers_every_state():
    assert set(TRANSITIONS) == set(SessionState)
    assert "start" not in TRANSITIONS[SessionState.ACTIVE]
    assert "retake" in TRANSITIONS[SessionState.COMPLETE]
    assert "answer_current" in TRANSITIONS[SessionState.ACTIVE]
