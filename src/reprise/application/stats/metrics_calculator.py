"""
Metrics calculator for deriving insights from card memory state.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from reprise.application.due_selector import next_due_at
from reprise.domain.constants import MASTERED_INTERVAL_DAYS
from reprise.domain.models import Card

SECONDS_PER_DAY = 86400


@dataclass
class EnrichedCard:
    """
    Card state enriched with computed metrics.
    """

    # Original card
    card_id: str
    deck: str | None
    front: str
    interval_days: int
    repetitions: int
    ease_factor: float
    total_reviews: int
    correct_reviews: int

    # Computed metrics
    accuracy: float | None  # correct / total
    days_overdue: int | None  # Negative if not yet due
    is_due: bool
    is_mastered: bool


@dataclass
class DeckSummary:
    """Counts and totals over a set of cards."""

    total: int = 0
    due: int = 0
    new: int = 0  # never reviewed
    learning: int = 0  # reviewed, not yet mastered
    mastered: int = 0
    total_reviews: int = 0
    correct_reviews: int = 0
    next_due_at: datetime | None = None

    @property
    def accuracy(self) -> float | None:
        if self.total_reviews == 0:
            return None
        return self.correct_reviews / self.total_reviews


class MetricsCalculator:
    """
    Computes derived metrics from cards.

    Stateless and side-effect free.
    """

    def enrich(self, card: Card, as_of: datetime) -> EnrichedCard:
        """
        Enrich a card with computed metrics as of a reference time.
        """
        return EnrichedCard(
            card_id=card.id,
            deck=card.deck,
            front=card.front,
            interval_days=card.interval_days,
            repetitions=card.repetitions,
            ease_factor=card.ease_factor,
            total_reviews=card.total_reviews,
            correct_reviews=card.correct_reviews,
            accuracy=self._compute_accuracy(card),
            days_overdue=self._compute_days_overdue(card, as_of),
            is_due=card.is_due(as_of),
            is_mastered=self.is_mastered(card),
        )

    def _compute_accuracy(self, card: Card) -> float | None:
        if card.total_reviews == 0:
            return None
        return card.correct_reviews / card.total_reviews

    def _compute_days_overdue(self, card: Card, as_of: datetime) -> int | None:
        """
        Whole days since the card fell due (negative if not yet due).

        Never-reviewed cards have no schedule to be late against.
        """
        if card.is_new:
            return None
        seconds = (as_of - card.next_review_at).total_seconds()
        return int(seconds / SECONDS_PER_DAY)

    def is_mastered(self, card: Card) -> bool:
        return card.interval_days >= MASTERED_INTERVAL_DAYS


def summarize(cards: Iterable[Card], as_of: datetime) -> DeckSummary:
    """Aggregate counts over a collection of cards."""
    cards = list(cards)
    calc = MetricsCalculator()
    summary = DeckSummary(total=len(cards), next_due_at=next_due_at(cards, as_of))

    for card in cards:
        if card.is_due(as_of):
            summary.due += 1
        if card.is_new:
            summary.new += 1
        elif calc.is_mastered(card):
            summary.mastered += 1
        else:
            summary.learning += 1
        summary.total_reviews += card.total_reviews
        summary.correct_reviews += card.correct_reviews

    return summary
