"""
Repository Factory
Centralizes the logic for building the configured card store.
"""

from reprise.application.config import AppConfig
from reprise.domain.ports import CardRepository
from reprise.infrastructure.json_repository import JsonCardRepository


def get_card_repository(config: AppConfig) -> CardRepository:
    """
    Returns the CardRepository implementation for the configured data file.
    """
    return JsonCardRepository(config.data_file)
