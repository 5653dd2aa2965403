# Application Stats Package
from .metrics_calculator import DeckSummary, EnrichedCard, MetricsCalculator, summarize

__all__ = ["MetricsCalculator", "EnrichedCard", "DeckSummary", "summarize"]
