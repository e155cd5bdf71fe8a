"""
Utilities module for Rally.
"""
from src.utils.constants import (
    DEFAULT_ELO, K_FACTOR, BRACKET_SIZE, SEED_ORDER_16,
    WEEKDAYS, WEEKENDS, BOTH
)
from src.utils.log import setup_logger

__all__ = [
    'DEFAULT_ELO', 'K_FACTOR', 'BRACKET_SIZE', 'SEED_ORDER_16',
    'WEEKDAYS', 'WEEKENDS', 'BOTH',
    'setup_logger'
]
