"""
Due-card selection.

Picks the cards whose review time has come and orders them for study.
Pure functions over an immutable snapshot; nothing here knows about sessions.
"""

from collections.abc import Iterable
from datetime import datetime

from reprise.domain.models import Card


def select_due(
    cards: Iterable[Card],
    as_of: datetime,
    limit: int | None = None,
) -> list[Card]:
    """
    Return the cards due at `as_of`, most overdue first.

    Ties on due time go to the lower ease factor (harder cards first), then
    to the original collection order, so identical inputs always produce
    the same queue.

    Args:
        cards: Any iterable of cards; it is read once and never modified.
        as_of: Reference time.
        limit: Optional cap on the number of cards returned.
    """
    indexed = [
        (position, card)
        for position, card in enumerate(cards)
        if card.next_review_at <= as_of
    ]
    indexed.sort(key=lambda pc: (pc[1].next_review_at, pc[1].ease_factor, pc[0]))
    due = [card for _, card in indexed]
    if limit is not None:
        due = due[: max(limit, 0)]
    return due


def count_due(cards: Iterable[Card], as_of: datetime) -> int:
    return sum(1 for card in cards if card.next_review_at <= as_of)


def next_due_at(cards: Iterable[Card], as_of: datetime) -> datetime | None:
    """Earliest review time strictly after `as_of`, or None if nothing is scheduled later."""
    upcoming = [card.next_review_at for card in cards if card.next_review_at > as_of]
    return min(upcoming) if upcoming else None
