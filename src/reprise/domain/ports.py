"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card


class CardRepository(ABC):
    """
    Port for loading and persisting cards.

    Implementations:
        - JsonCardRepository: A single JSON document on disk.
    """

    @abstractmethod
    def load_all(self, deck: str | None = None) -> list[Card]:
        """
        Load every stored card, optionally restricted to one deck.

        Args:
            deck: Deck name to filter by; None returns all cards.

        Returns:
            Cards in storage order.
        """
        pass

    @abstractmethod
    def save(self, card: Card) -> None:
        """
        Insert or replace a card, keyed by its id.
        """
        pass

    @abstractmethod
    def delete(self, card_id: str) -> None:
        """
        Remove a single card.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass

    @abstractmethod
    def delete_deck(self, deck: str) -> int:
        """
        Remove every card belonging to a deck.

        Returns:
            Number of cards removed.
        """
        pass

    def save_many(self, cards: list[Card]) -> None:
        """
        Insert or replace several cards.

        Adapters that can batch writes should override this.
        """
        for card in cards:
            self.save(card)
