from datetime import datetime, timedelta, timezone

import pytest

from reprise.domain.errors import CardNotFoundError
from reprise.domain.models import Card
from reprise.domain.ports import CardRepository

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class InMemoryCardRepository(CardRepository):
    def __init__(self, cards: list[Card] | None = None):
        self.cards: dict[str, Card] = {c.id: c for c in cards or []}
        self.saved: list[Card] = []

    def load_all(self, deck=None):
        return [c for c in self.cards.values() if deck is None or c.deck == deck]

    def save(self, card):
        self.saved.append(card)
        self.cards[card.id] = card

    def delete(self, card_id):
        if card_id not in self.cards:
            raise CardNotFoundError(card_id)
        del self.cards[card_id]

    def delete_deck(self, deck):
        doomed = [cid for cid, c in self.cards.items() if c.deck == deck]
        for cid in doomed:
            del self.cards[cid]
        return len(doomed)


def build_card(card_id: str = "c1", **overrides) -> Card:
    fields = {
        "id": card_id,
        "front": f"front {card_id}",
        "back": f"back {card_id}",
        "next_review_at": NOW,
    }
    fields.update(overrides)
    return Card(**fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_card():
    return build_card


@pytest.fixture
def repo():
    return InMemoryCardRepository()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config files and the default card store
    monkeypatch.setenv("HOME", str(home))
    for var in ("REPRISE_DATA_FILE", "REPRISE_DEFAULT_DECK", "REPRISE_SESSION_LIMIT",
                "REPRISE_RECONCILE_POLICY", "REPRISE_VERBOSE"):
        monkeypatch.delenv(var, raising=False)
    return home
