"""
Persisted record schema for cards.

Field names on disk are the canonical camelCase set
(id, front, back, intervalDays, repetitions, easeFactor, nextReviewAt,
lastReviewedAt, totalReviews, correctReviews) plus deck and hint.
"""

from dataclasses import asdict

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from reprise.domain.constants import DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR, STORE_FORMAT_VERSION
from reprise.domain.models import Card


class CardRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    front: str
    back: str
    interval_days: int = Field(default=0, ge=0, alias="intervalDays")
    repetitions: int = Field(default=0, ge=0)
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR, alias="easeFactor")
    next_review_at: AwareDatetime = Field(alias="nextReviewAt")
    last_reviewed_at: AwareDatetime | None = Field(default=None, alias="lastReviewedAt")
    total_reviews: int = Field(default=0, ge=0, alias="totalReviews")
    correct_reviews: int = Field(default=0, ge=0, alias="correctReviews")
    deck: str | None = None
    hint: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardRecord":
        return cls.model_validate(asdict(card))

    def to_card(self) -> Card:
        return Card(**self.model_dump())


class CardStore(BaseModel):
    """Top-level JSON document holding every card."""

    version: int = STORE_FORMAT_VERSION
    cards: list[CardRecord] = Field(default_factory=list)
