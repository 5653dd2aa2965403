"""reprise: SM-2 spaced-repetition scheduling and review sessions."""

from reprise.domain.constants import VERSION

__version__ = VERSION
