"""Centralized constants for reprise.

All algorithm parameters and defaults live here so every layer
imports from a single source of truth.
"""

VERSION = "0.3.0"

# ---------- Grades ----------
MIN_GRADE = 1
MAX_GRADE = 5
SUCCESS_THRESHOLD = 3  # grade >= this counts as a successful recall

# The four buttons offered during review. Grade 2 is valid for the engine
# but never offered.
REVIEW_BUTTONS: dict[int, str] = {
    1: "Again",
    3: "Hard",
    4: "Good",
    5: "Easy",
}

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

# ---------- Statistics ----------
MASTERED_INTERVAL_DAYS = 21

# ---------- Storage ----------
STORE_FORMAT_VERSION = 1
CARD_ID_PREFIX = "card_"
