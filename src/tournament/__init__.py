"""
Tournament module for ratings, brackets and leagues.

Provides:
- EloRatingSystem: Standard Elo rating calculation
- BracketEngine: Seeded single-elimination brackets
- round_robin / league_rounds / balanced_schedule: League scheduling
- TournamentStorage: Persists players, ratings and brackets
"""

from src.tournament.elo import EloRatingSystem
from src.tournament.bracket import BracketEngine, BracketMatch, BracketPlayer, TournamentBracket
from src.tournament.scheduler import (
    balanced_schedule, create_league_schedule, league_rounds, num_matchups,
    round_robin
)
from src.tournament.standings import LeagueStanding, MatchOutcome, compute_standings
from src.tournament.storage import TournamentStorage

__all__ = [
    'EloRatingSystem',
    'BracketEngine',
    'BracketMatch',
    'BracketPlayer',
    'TournamentBracket',
    'round_robin',
    'balanced_schedule',
    'create_league_schedule',
    'league_rounds',
    'num_matchups',
    'LeagueStanding',
    'MatchOutcome',
    'compute_standings',
    'TournamentStorage',
]
