# Domain Package
from .errors import (
    AlreadyActiveError,
    AlreadyAnsweredError,
    CardNotFoundError,
    EmptyQueueError,
    EmptySubsetError,
    ImportFormatError,
    IndexOutOfRangeError,
    InvalidGradeError,
    InvalidSessionStateError,
    RepositoryError,
    RepriseError,
    SessionError,
)
from .models import (
    Card,
    CardDraft,
    ReconcilePolicy,
    RetakeFilter,
    SessionSnapshot,
    SessionState,
)
from .ports import CardRepository

__all__ = [
    "Card",
    "CardDraft",
    "CardRepository",
    "ReconcilePolicy",
    "RetakeFilter",
    "SessionSnapshot",
    "SessionState",
    "RepriseError",
    "InvalidGradeError",
    "SessionError",
    "AlreadyActiveError",
    "AlreadyAnsweredError",
    "IndexOutOfRangeError",
    "EmptySubsetError",
    "EmptyQueueError",
    "InvalidSessionStateError",
    "RepositoryError",
    "CardNotFoundError",
    "ImportFormatError",
]
