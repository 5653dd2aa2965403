"""
SM-2 scheduling engine.

Maps a card's memory state plus a recall grade to its next memory state.
This is a pure computation module with no I/O.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta

from reprise.domain.constants import (
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MAX_GRADE,
    MIN_EASE_FACTOR,
    MIN_GRADE,
    SECOND_INTERVAL_DAYS,
    SUCCESS_THRESHOLD,
)
from reprise.domain.errors import InvalidGradeError
from reprise.domain.models import Card


def validate_grade(quality: object) -> int:
    """Return the grade unchanged, or raise InvalidGradeError."""
    # bool is an int subclass; True/False are not grades.
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidGradeError(quality)
    if not MIN_GRADE <= quality <= MAX_GRADE:
        raise InvalidGradeError(quality)
    return quality


def is_success(quality: int) -> bool:
    return quality >= SUCCESS_THRESHOLD


def ease_delta(quality: int) -> float:
    """
    SM-2 ease adjustment for a grade.

    +0.1 at 5, 0 at 4, then increasingly negative below.
    """
    miss = 5 - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def _round_half_up(value: float) -> int:
    # round() would send 2.5 to 2; intervals round .5 upwards.
    return int(math.floor(value + 0.5))


def next_interval(card: Card, repetitions: int) -> int:
    """Interval in days after a successful review that brings the streak to `repetitions`."""
    if repetitions == 1:
        return FIRST_INTERVAL_DAYS
    if repetitions == 2:
        return SECOND_INTERVAL_DAYS
    return _round_half_up(card.interval_days * card.ease_factor)


class SchedulingEngine:
    """
    Applies SM-2 to cards.

    Stateless and side-effect free: the caller persists the returned card.
    """

    def grade(self, card: Card, quality: int, now: datetime) -> Card:
        """
        Grade one review of a card.

        Args:
            card: Current card state. Not modified.
            quality: Recall quality, 1 (blackout) to 5 (easy).
            now: Review time; must be timezone-aware.

        Returns:
            A new Card carrying the updated memory state.

        Raises:
            InvalidGradeError: If quality is not an integer in [1, 5].
        """
        quality = validate_grade(quality)
        if now.tzinfo is None:
            raise ValueError("now must be a timezone-aware datetime")

        success = is_success(quality)
        if success:
            repetitions = card.repetitions + 1
            interval = next_interval(card, repetitions)
        else:
            repetitions = 0
            interval = LAPSE_INTERVAL_DAYS

        ease = max(card.ease_factor + ease_delta(quality), MIN_EASE_FACTOR)

        return replace(
            card,
            repetitions=repetitions,
            interval_days=interval,
            ease_factor=ease,
            last_reviewed_at=now,
            next_review_at=now + timedelta(days=interval),
            total_reviews=card.total_reviews + 1,
            correct_reviews=card.correct_reviews + (1 if success else 0),
        )


_default_engine = SchedulingEngine()


def grade_card(card: Card, quality: int, now: datetime) -> Card:
    """Module-level shortcut for SchedulingEngine().grade."""
    return _default_engine.grade(card, quality, now)
