"""Creates schedulable cards from generated drafts."""

from collections.abc import Iterable
from datetime import datetime

from ulid import ULID

from reprise.domain.constants import CARD_ID_PREFIX, DEFAULT_EASE_FACTOR
from reprise.domain.models import Card, CardDraft


def generate_card_id() -> str:
    """Generate a stable card ID using ULID."""
    return f"{CARD_ID_PREFIX}{ULID()}"


def new_card(
    draft: CardDraft,
    now: datetime,
    deck: str | None = None,
    card_id: str | None = None,
) -> Card:
    """
    Stamp the initial scheduling fields on a draft.

    New cards are due immediately and have never been reviewed.
    """
    return Card(
        id=card_id or generate_card_id(),
        front=draft.front,
        back=draft.back,
        hint=draft.hint,
        deck=deck,
        interval_days=0,
        repetitions=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        next_review_at=now,
        last_reviewed_at=None,
        total_reviews=0,
        correct_reviews=0,
    )


def new_cards(drafts: Iterable[CardDraft], now: datetime, deck: str | None = None) -> list[Card]:
    return [new_card(draft, now, deck=deck) for draft in drafts]
