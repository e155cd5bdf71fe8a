"""
League standings from reported match performances.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from src.errors import ValidationError
from src.utils.constants import POINTS_PER_WIN


@dataclass
class MatchOutcome:
    """Performance ratings both players received for a league match."""
    player1_id: str
    player2_id: str
    player1_performance: Optional[float] = None
    player2_performance: Optional[float] = None

    @property
    def winner_id(self) -> Optional[str]:
        """Player with the higher performance, None when undecided."""
        if self.player1_performance is None or self.player2_performance is None:
            return None
        if self.player1_performance == self.player2_performance:
            return None
        if self.player1_performance > self.player2_performance:
            return self.player1_id
        return self.player2_id


@dataclass
class LeagueStanding:
    """A player's record in a league."""
    player_id: str
    played: int = 0
    won: int = 0
    lost: int = 0
    points: int = 0


def compute_standings(
    player_ids: Sequence[str],
    outcomes: Iterable[MatchOutcome]
) -> List[LeagueStanding]:
    """
    Build the league table.

    Undecided outcomes are skipped. Sorted by points, then wins, then id.

    Raises:
        ValidationError: If an outcome names a player outside the league
    """
    table = {pid: LeagueStanding(player_id=pid) for pid in player_ids}

    for outcome in outcomes:
        for pid in (outcome.player1_id, outcome.player2_id):
            if pid not in table:
                raise ValidationError(f"Player {pid} is not in this league")

        winner_id = outcome.winner_id
        if winner_id is None:
            continue
        loser_id = outcome.player2_id if winner_id == outcome.player1_id else outcome.player1_id

        table[winner_id].played += 1
        table[winner_id].won += 1
        table[winner_id].points += POINTS_PER_WIN
        table[loser_id].played += 1
        table[loser_id].lost += 1

    return sorted(table.values(), key=lambda s: (-s.points, -s.won, s.player_id))
