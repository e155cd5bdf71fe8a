"""
Matchmaking module.

Provides:
- MatchScorer: Weighted composite scoring for singles and doubles
- EnhancedMatchEngine: Quality-optimized matching with dynamic tolerance
"""

from src.matchmaking.models import (
    Availability, ConfidenceLevel, EnhancedMatchingResult, MatchConstraints,
    MatchingResult, MatchQualityMetrics, MatchType, Player
)
from src.matchmaking.scorer import MatchScorer
from src.matchmaking.enhanced import EnhancedMatchEngine

__all__ = [
    'Availability',
    'ConfidenceLevel',
    'EnhancedMatchingResult',
    'MatchConstraints',
    'MatchingResult',
    'MatchQualityMetrics',
    'MatchType',
    'Player',
    'MatchScorer',
    'EnhancedMatchEngine',
]
