"""
Typed errors raised by reprise.

Every error is a rejected operation: the object it was raised from is left
exactly as it was before the call.
"""


class RepriseError(Exception):
    """Base class for all reprise errors."""


class InvalidGradeError(RepriseError, ValueError):
    """Grade is not an integer in the closed range [1, 5]."""

    def __init__(self, grade: object):
        self.grade = grade
        super().__init__(f"Grade must be an integer between 1 and 5, got {grade!r}")


# ---------- Review session protocol ----------


class SessionError(RepriseError):
    """A review session operation was called out of protocol."""


class AlreadyActiveError(SessionError):
    """A session is already in progress."""


class AlreadyAnsweredError(SessionError):
    """The current position has already been graded."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Position {index} has already been answered")


class IndexOutOfRangeError(SessionError, IndexError):
    """A jump target lies outside the session queue."""

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"Index {index} out of range for a queue of {length} cards")


class EmptySubsetError(SessionError):
    """A retake filter matched no cards."""


class EmptyQueueError(SessionError):
    """A session cannot start on an empty queue."""


class InvalidSessionStateError(SessionError):
    """The operation is not allowed in the session's current state."""


# ---------- Storage / import ----------


class RepositoryError(RepriseError):
    """The card store could not be read or written."""


class CardNotFoundError(RepositoryError, KeyError):
    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"No card with id {card_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class ImportFormatError(RepriseError):
    """A draft file could not be parsed."""
