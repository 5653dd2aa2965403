"""
Domain models for cards and review sessions.

These are pure data structures with no I/O or external dependencies
beyond pydantic validation of incoming drafts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_EASE_FACTOR


@dataclass(frozen=True)
class Card:
    """
    A learning item and its SM-2 memory state.

    Cards are immutable values: grading returns a new Card rather than
    changing this one, so the same object can safely sit in several
    collections at once (all cards, due queue, session queue).

    Attributes:
        id: Opaque unique identifier.
        front: Prompt text.
        back: Answer text.
        interval_days: Days between the last review and the next one.
        repetitions: Consecutive successful reviews since the last lapse.
        ease_factor: Interval growth multiplier, never below 1.3.
        next_review_at: When the card becomes due.
        last_reviewed_at: Time of the last grading, None until first graded.
        total_reviews: Number of times the card has been graded.
        correct_reviews: Number of successful gradings.
        deck: Owning deck/document, if any.
        hint: Optional hint shown before the answer.
    """

    id: str
    front: str
    back: str
    next_review_at: datetime
    interval_days: int = 0
    repetitions: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    last_reviewed_at: datetime | None = None
    total_reviews: int = 0
    correct_reviews: int = 0
    deck: str | None = None
    hint: str | None = None

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    def is_due(self, as_of: datetime) -> bool:
        return self.next_review_at <= as_of

    def scheduled_interval(self) -> timedelta:
        return timedelta(days=self.interval_days)


class CardDraft(BaseModel):
    """
    A generated `{front, back}` pair that has not been scheduled yet.

    Generators emit either front/back or question/answer keys; both are
    accepted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    front: str = Field(validation_alias=AliasChoices("front", "question"))
    back: str = Field(validation_alias=AliasChoices("back", "answer"))
    hint: str | None = None

    @field_validator("front", "back")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("hint")
    @classmethod
    def _blank_hint_is_none(cls, v: str | None) -> str | None:
        return v or None


class RetakeFilter(str, Enum):
    """Which positions of a finished session to study again."""

    WRONG = "wrong"
    FLAGGED = "flagged"


class ReconcilePolicy(str, Enum):
    """How an active session reacts when the due set changes underneath it."""

    RESET = "reset"  # restart on the fresh queue at position 0
    PRESERVE = "preserve"  # diff by card id, keep answers and position


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionSnapshot:
    """Plain-data view of a review session at one point in time."""

    state: SessionState
    queue: tuple[Card, ...] = ()
    cursor: int = 0
    answers: tuple[int | None, ...] = ()
    flags: tuple[bool, ...] = ()
    started_at: datetime | None = None
    finished_at: datetime | None = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
