"""
Review session state machine.

Walks a learner through a queue of cards one position at a time:
IDLE -> ACTIVE -> COMPLETE, with retakes starting a new ACTIVE session
from a completed one. Rendering concerns (e.g. whether the answer is
revealed) belong to the presentation layer, not here.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta

from reprise.domain.errors import (
    AlreadyActiveError,
    AlreadyAnsweredError,
    EmptyQueueError,
    EmptySubsetError,
    IndexOutOfRangeError,
    InvalidSessionStateError,
)
from reprise.domain.models import (
    Card,
    ReconcilePolicy,
    RetakeFilter,
    SessionSnapshot,
    SessionState,
    utc_now,
)

from .scheduling import SchedulingEngine, is_success

# Legal actions per state.
TRANSITIONS: dict[SessionState, frozenset[str]] = {
    SessionState.IDLE: frozenset({"start", "reset"}),
    SessionState.ACTIVE: frozenset(
        {
            "answer_current",
            "advance",
            "retreat",
            "jump_to",
            "toggle_flag",
            "end",
            "reconcile",
            "discard",
            "reset",
        }
    ),
    SessionState.COMPLETE: frozenset({"start", "retake", "reset"}),
}


class StudySessionController:
    """
    Holds one review session and applies grading through the scheduling engine.

    The controller never persists anything: `answer_current` returns the
    updated card and the caller hands it to storage.
    """

    def __init__(
        self,
        engine: SchedulingEngine | None = None,
        clock: Callable[[], datetime] | None = None,
        policy: ReconcilePolicy = ReconcilePolicy.RESET,
    ):
        """
        Args:
            engine: Scheduling engine; uses the default SM-2 engine if not provided.
            clock: Returns the current aware datetime; defaults to UTC now.
            policy: How `reconcile` treats an externally changed due set.
        """
        self._engine = engine or SchedulingEngine()
        self._clock = clock or utc_now
        self.policy = ReconcilePolicy(policy)
        self._clear()

    def _clear(self) -> None:
        self._state = SessionState.IDLE
        self._queue: list[Card] = []
        self._cursor = 0
        self._answers: list[int | None] = []
        self._flags: list[bool] = []
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None

    def _require(self, action: str) -> None:
        if action in TRANSITIONS[self._state]:
            return
        if self._state is SessionState.ACTIVE:
            raise AlreadyActiveError(f"Cannot {action}: a session is already active")
        raise InvalidSessionStateError(f"Cannot {action} while session is {self._state.value}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, queue: Iterable[Card]) -> None:
        """Begin a session on `queue` (copied; later changes to it are not seen)."""
        self._require("start")
        cards = list(queue)
        if not cards:
            raise EmptyQueueError("Cannot start a session with no cards")

        self._state = SessionState.ACTIVE
        self._queue = cards
        self._cursor = 0
        self._answers = [None] * len(cards)
        self._flags = [False] * len(cards)
        self._started_at = self._clock()
        self._finished_at = None

    def answer_current(self, grade: int) -> Card:
        """
        Grade the card at the cursor. The cursor does not move.

        Returns:
            The updated card, for the caller to persist.

        Raises:
            AlreadyAnsweredError: The position was graded before.
            InvalidGradeError: The grade is outside [1, 5].
        """
        self._require("answer_current")
        if self._answers[self._cursor] is not None:
            raise AlreadyAnsweredError(self._cursor)

        updated = self._engine.grade(self._queue[self._cursor], grade, self._clock())
        self._queue[self._cursor] = updated
        self._answers[self._cursor] = grade
        return updated

    def advance(self) -> None:
        """Move to the next position; past the last one the session completes."""
        self._require("advance")
        if self._cursor < len(self._queue) - 1:
            self._cursor += 1
        else:
            self._finish()

    def retreat(self) -> None:
        self._require("retreat")
        self._cursor = max(0, self._cursor - 1)

    def jump_to(self, index: int) -> None:
        self._require("jump_to")
        if not 0 <= index < len(self._queue):
            raise IndexOutOfRangeError(index, len(self._queue))
        self._cursor = index

    def toggle_flag(self) -> bool:
        """Flip the flag at the cursor and return its new value."""
        self._require("toggle_flag")
        self._flags[self._cursor] = not self._flags[self._cursor]
        return self._flags[self._cursor]

    def end(self) -> None:
        """Finish the session early."""
        self._require("end")
        self._finish()

    def _finish(self) -> None:
        self._state = SessionState.COMPLETE
        self._finished_at = self._clock()

    def reset(self) -> None:
        """Drop the session entirely and go back to IDLE."""
        self._require("reset")
        self._clear()

    def retake(self, which: RetakeFilter | str) -> None:
        """
        Start a new session on part of the completed one.

        `wrong` selects positions graded below the success threshold
        (unanswered positions are not wrong); `flagged` selects flagged ones.

        Raises:
            EmptySubsetError: Nothing matches the filter.
        """
        self._require("retake")
        which = RetakeFilter(which)
        if which is RetakeFilter.WRONG:
            subset = [
                card
                for card, answer in zip(self._queue, self._answers)
                if answer is not None and not is_success(answer)
            ]
        else:
            subset = [card for card, flag in zip(self._queue, self._flags) if flag]

        if not subset:
            raise EmptySubsetError(f"No {which.value} cards to retake")
        self.start(subset)

    def reconcile(
        self, due_cards: Sequence[Card], existing_ids: Iterable[str] | None = None
    ) -> bool:
        """
        Bring an active session in line with a freshly selected due set.

        Cards graded in this session dropping out of the due set is expected
        and does not count as a change. Any other difference (cards added,
        removed, or edited) is handled according to `policy`.

        Args:
            due_cards: The cards due now, in study order.
            existing_ids: Ids of every card still in storage. When given,
                graded cards missing from it are dropped from the session
                under either policy.

        Returns:
            True if the session was changed.
        """
        if self._state is not SessionState.ACTIVE:
            return False

        due = list(due_cards)
        answered_ids = {
            card.id for card, answer in zip(self._queue, self._answers) if answer is not None
        }
        gone = answered_ids - set(existing_ids) if existing_ids is not None else set()
        pending = {
            card.id: card
            for card, answer in zip(self._queue, self._answers)
            if answer is None
        }
        fresh = {card.id: card for card in due if card.id not in answered_ids}
        if pending == fresh and not gone:
            return False

        if self.policy is ReconcilePolicy.PRESERVE:
            self._merge(due, gone)
        else:
            self._restart(due)
        return True

    def discard(self, card_ids: Iterable[str]) -> bool:
        """
        Remove cards that no longer exist, answered or not.

        Completes the session if nothing is left. No-op when not active.

        Returns:
            True if any position was removed.
        """
        if self._state is not SessionState.ACTIVE:
            return False

        gone = set(card_ids)
        kept = [
            (card, answer, flag)
            for card, answer, flag in zip(self._queue, self._answers, self._flags)
            if card.id not in gone
        ]
        if len(kept) == len(self._queue):
            return False
        self._replace_queue(kept)
        return True

    def _restart(self, due: list[Card]) -> None:
        if not due:
            self._finish()
            return
        self._queue = due
        self._cursor = 0
        self._answers = [None] * len(due)
        self._flags = [False] * len(due)

    def _merge(self, due: list[Card], gone: set[str]) -> None:
        fresh_by_id = {card.id: card for card in due}

        entries: list[tuple[Card, int | None, bool]] = []
        for card, answer, flag in zip(self._queue, self._answers, self._flags):
            if answer is not None:
                if card.id in gone:
                    continue
                entries.append((card, answer, flag))
            elif card.id in fresh_by_id:
                entries.append((fresh_by_id[card.id], answer, flag))

        seen = {card.id for card, _, _ in entries}
        for card in due:
            if card.id not in seen:
                entries.append((card, None, False))
                seen.add(card.id)

        self._replace_queue(entries)

    def _replace_queue(self, entries: list[tuple[Card, int | None, bool]]) -> None:
        # Keeps the cursor on the same card id, else clamps it.
        if not entries:
            self._finish()
            return

        current_id = self._queue[self._cursor].id
        ids = [card.id for card, _, _ in entries]
        if current_id in ids:
            cursor = ids.index(current_id)
        else:
            cursor = min(self._cursor, len(entries) - 1)

        self._queue = [card for card, _, _ in entries]
        self._answers = [answer for _, answer, _ in entries]
        self._flags = [flag for _, _, flag in entries]
        self._cursor = cursor

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def queue(self) -> tuple[Card, ...]:
        return tuple(self._queue)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current_card(self) -> Card | None:
        if self._state is not SessionState.ACTIVE:
            return None
        return self._queue[self._cursor]

    @property
    def current_answer(self) -> int | None:
        if self._state is not SessionState.ACTIVE:
            return None
        return self._answers[self._cursor]

    @property
    def answers(self) -> tuple[int | None, ...]:
        return tuple(self._answers)

    @property
    def flags(self) -> tuple[bool, ...]:
        return tuple(self._flags)

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def finished_at(self) -> datetime | None:
        return self._finished_at

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self._answers if answer is not None)

    @property
    def progress_percent(self) -> float:
        if not self._queue:
            return 0.0
        return self.answered_count / len(self._queue) * 100

    @property
    def score(self) -> int:
        """Number of positions graded as a successful recall."""
        return sum(1 for answer in self._answers if answer is not None and is_success(answer))

    @property
    def wrong_count(self) -> int:
        return sum(1 for answer in self._answers if answer is not None and not is_success(answer))

    @property
    def flagged_count(self) -> int:
        return sum(self._flags)

    @property
    def elapsed(self) -> timedelta:
        if self._started_at is None:
            return timedelta(0)
        end = self._finished_at or self._clock()
        return end - self._started_at

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            queue=tuple(self._queue),
            cursor=self._cursor,
            answers=tuple(self._answers),
            flags=tuple(self._flags),
            started_at=self._started_at,
            finished_at=self._finished_at,
        )
