# Application Package
from .due_selector import count_due, next_due_at, select_due
from .review_service import ReviewService
from .scheduling import SchedulingEngine, grade_card
from .session import TRANSITIONS, StudySessionController

__all__ = [
    "SchedulingEngine",
    "grade_card",
    "select_due",
    "count_due",
    "next_due_at",
    "StudySessionController",
    "TRANSITIONS",
    "ReviewService",
]
