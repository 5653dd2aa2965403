"""
Review Service: Application layer orchestrator.

Pulls cards from the repository, runs a review session over the due ones,
and pushes every graded card back to the repository.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from reprise.domain.errors import RepositoryError
from reprise.domain.models import Card, CardDraft, ReconcilePolicy, RetakeFilter, utc_now
from reprise.domain.ports import CardRepository

from .card_factory import new_cards
from .due_selector import select_due
from .importer import export_tsv
from .scheduling import SchedulingEngine
from .session import StudySessionController
from .stats import DeckSummary, EnrichedCard, MetricsCalculator, summarize

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Application service wiring a CardRepository to a review session.

    Follows Dependency Inversion: depends on the CardRepository abstraction,
    not on a concrete storage adapter.
    """

    def __init__(
        self,
        repository: CardRepository,
        engine: SchedulingEngine | None = None,
        clock: Callable[[], datetime] | None = None,
        policy: ReconcilePolicy = ReconcilePolicy.RESET,
    ):
        """
        Args:
            repository: The repository (port) cards are loaded from and saved to.
            engine: Optional custom engine; uses default SM-2 if not provided.
            clock: Optional time source; defaults to UTC now.
            policy: Reconciliation policy for the active session.
        """
        self._repo = repository
        self._calc = MetricsCalculator()
        self._clock = clock or utc_now
        self.session = StudySessionController(
            engine=engine or SchedulingEngine(), clock=self._clock, policy=policy
        )
        self._deck: str | None = None
        self._limit: int | None = None
        # Only sessions built from the due set are reconciled against it;
        # a retake queue holds cards that are no longer due.
        self._follows_due_set = False

    def due_cards(self, deck: str | None = None, limit: int | None = None) -> list[Card]:
        return select_due(self._repo.load_all(deck), self._clock(), limit=limit)

    def start_session(
        self, deck: str | None = None, limit: int | None = None
    ) -> StudySessionController:
        """
        Start a session on the cards currently due.

        Raises:
            EmptyQueueError: Nothing is due.
            AlreadyActiveError: A session is in progress.
        """
        self.session.start(self.due_cards(deck, limit))
        self._deck = deck
        self._limit = limit
        self._follows_due_set = True
        logger.info(f"Started review of {len(self.session.queue)} cards (deck={deck or 'all'})")
        return self.session

    def answer(self, grade: int) -> Card:
        """Grade the current card and persist the result."""
        updated = self.session.answer_current(grade)
        try:
            self._repo.save(updated)
        except RepositoryError:
            logger.error(f"Graded card {updated.id} could not be saved")
            raise
        logger.debug(
            f"Graded {updated.id} q={grade}: interval={updated.interval_days}d "
            f"ease={updated.ease_factor:.2f}"
        )
        return updated

    def advance(self) -> None:
        self.session.advance()
        if not self.session.is_active:
            logger.info(
                f"Session complete: {self.session.score}/{len(self.session.queue)} recalled"
            )

    def retake(self, which: RetakeFilter | str) -> StudySessionController:
        self.session.retake(which)
        self._follows_due_set = False
        # Cards deleted since the session finished must not be graded again.
        self.refresh()
        return self.session

    def add_drafts(self, drafts: Iterable[CardDraft], deck: str | None = None) -> list[Card]:
        """Turn drafts into new cards, due now, and store them."""
        cards = new_cards(drafts, self._clock(), deck=deck)
        if cards:
            self._repo.save_many(cards)
            logger.info(f"Added {len(cards)} cards to deck '{deck or 'default'}'")
            self.refresh()
        return cards

    def delete_deck(self, deck: str) -> int:
        removed = self._repo.delete_deck(deck)
        if removed:
            self.refresh()
        return removed

    def refresh(self) -> bool:
        """
        Re-read storage and reconcile the active session with it.

        Sessions built from the due set follow it; retake sessions only
        lose cards that were deleted.

        Returns:
            True if the session changed.
        """
        if not self.session.is_active:
            return False

        cards = self._repo.load_all(self._deck)
        existing = {card.id for card in cards}
        if not self._follows_due_set:
            missing = [card.id for card in self.session.queue if card.id not in existing]
            changed = self.session.discard(missing)
            if changed:
                logger.info(f"Dropped {len(missing)} deleted cards from the retake session")
            return changed

        due = select_due(cards, self._clock())
        if self._limit is not None:
            # A capped session does not grow; only removals and edits apply.
            queued = {card.id for card in self.session.queue}
            due = [card for card in due if card.id in queued]

        changed = self.session.reconcile(due, existing_ids=existing)
        if changed:
            logger.info(f"Due cards changed; session reconciled ({self.session.policy.value})")
        return changed

    def summary(self, deck: str | None = None) -> DeckSummary:
        return summarize(self._repo.load_all(deck), self._clock())

    def export(self, deck: str | None = None) -> str:
        return export_tsv(self._repo.load_all(deck))

    def get_enriched_stats(self, deck: str | None = None) -> list[EnrichedCard]:
        """
        Per-card metrics, soonest review first.

        Args:
            deck: Restrict to one deck; all cards when None.
        """
        now = self._clock()
        cards = sorted(self._repo.load_all(deck), key=lambda card: card.next_review_at)
        return [self._calc.enrich(card, now) for card in cards]
