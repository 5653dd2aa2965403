"""
JSON Card Repository: Infrastructure adapter for a single JSON file.

Implements CardRepository by rewriting the whole document on every change.
"""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from reprise.domain.constants import STORE_FORMAT_VERSION
from reprise.domain.errors import CardNotFoundError, RepositoryError
from reprise.domain.models import Card
from reprise.domain.ports import CardRepository

from .records import CardRecord, CardStore

logger = logging.getLogger(__name__)


class JsonCardRepository(CardRepository):
    """
    Stores all cards in one JSON document.

    A missing file is an empty collection. Writes go to a temporary file in
    the same directory which then replaces the original, so a crash never
    leaves a half-written store behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> list[Card]:
        if not self.path.exists():
            return []
        try:
            store = CardStore.model_validate_json(self.path.read_bytes())
        except OSError as e:
            raise RepositoryError(f"Cannot read {self.path}: {e}") from e
        except ValidationError as e:
            raise RepositoryError(f"Corrupt card store {self.path}: {e}") from e

        if store.version > STORE_FORMAT_VERSION:
            raise RepositoryError(
                f"{self.path} uses store version {store.version}; "
                f"this version of reprise reads up to {STORE_FORMAT_VERSION}"
            )
        return [record.to_card() for record in store.cards]

    def _write(self, cards: list[Card]) -> None:
        store = CardStore(cards=[CardRecord.from_card(card) for card in cards])
        payload = store.model_dump_json(by_alias=True, indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise RepositoryError(f"Cannot write {self.path}: {e}") from e

        logger.debug(f"[store] Wrote {len(cards)} cards to {self.path}")

    def load_all(self, deck: str | None = None) -> list[Card]:
        cards = self._read()
        if deck is None:
            return cards
        return [card for card in cards if card.deck == deck]

    def save(self, card: Card) -> None:
        cards = self._read()
        for i, existing in enumerate(cards):
            if existing.id == card.id:
                cards[i] = card
                break
        else:
            cards.append(card)
        self._write(cards)

    def save_many(self, cards: list[Card]) -> None:
        """Insert or replace several cards with a single write."""
        stored = self._read()
        index = {card.id: i for i, card in enumerate(stored)}
        for card in cards:
            if card.id in index:
                stored[index[card.id]] = card
            else:
                index[card.id] = len(stored)
                stored.append(card)
        self._write(stored)

    def delete(self, card_id: str) -> None:
        cards = self._read()
        kept = [card for card in cards if card.id != card_id]
        if len(kept) == len(cards):
            raise CardNotFoundError(card_id)
        self._write(kept)

    def delete_deck(self, deck: str) -> int:
        cards = self._read()
        kept = [card for card in cards if card.deck != deck]
        removed = len(cards) - len(kept)
        if removed:
            self._write(kept)
            logger.info(f"[store] Deleted {removed} cards from deck '{deck}'")
        return removed
