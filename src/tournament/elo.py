"""
Elo rating system for match and tournament results.

Implements the standard Elo law:
- Expected score: E = 1 / (1 + 10^((R_opp - R_self) / 400))
- Rating update: R_new = round(R_old + K * (S - E))

Team results are rated on team averages; every member of a team receives the
same delta so rating gaps inside a team are preserved.
"""

from typing import Dict, Iterable, Mapping, Optional, Tuple, TYPE_CHECKING

from src.utils.constants import DEFAULT_ELO, K_FACTOR, LOWEST_RANK, RANK_TIERS
from src.errors import ValidationError
from src.utils.log import setup_logger

if TYPE_CHECKING:
    from src.tournament.bracket import TournamentBracket

logger = setup_logger(__name__)


class EloRatingSystem:
    """
    Pure Elo calculator.

    Holds no ratings itself; callers pass current ratings in and persist the
    returned ones through the storage collaborator.
    """

    def __init__(self, k_factor: int = K_FACTOR, default_elo: int = DEFAULT_ELO):
        """
        Initialize the rating system.

        Args:
            k_factor: The K-factor determines rating volatility (default: 32)
            default_elo: Rating assumed for players without one (default: 1500)
        """
        self.k_factor = k_factor
        self.default_elo = default_elo

    def rating_or_default(self, rating: Optional[float]) -> float:
        """Return the rating, or the default Elo when it is missing."""
        return self.default_elo if rating is None else rating

    def expected_outcome(self, rating_a: float, rating_b: float) -> float:
        """
        Calculate expected score for player A against player B.

        Args:
            rating_a: Rating of player A
            rating_b: Rating of player B

        Returns:
            Expected score strictly between 0 and 1
        """
        return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400.0))

    def update_ratings(
        self,
        winner_rating: float,
        loser_rating: float,
        k_factor: Optional[float] = None
    ) -> Tuple[int, int]:
        """
        Calculate new ratings after a decided match.

        Args:
            winner_rating: Winner's rating before the match
            loser_rating: Loser's rating before the match
            k_factor: Override for this match (defaults to the system K-factor)

        Returns:
            Tuple of (winner_new, loser_new)
        """
        k = self.k_factor if k_factor is None else k_factor
        expected_winner = self.expected_outcome(winner_rating, loser_rating)
        expected_loser = self.expected_outcome(loser_rating, winner_rating)

        winner_new = round(winner_rating + k * (1 - expected_winner))
        loser_new = round(loser_rating + k * (0 - expected_loser))
        return winner_new, loser_new

    def process_team_result(
        self,
        ratings: Mapping[str, Optional[float]],
        winner_ids: Iterable[str],
        loser_ids: Iterable[str]
    ) -> Dict[str, int]:
        """
        Rate a team match (singles is a team of one).

        Each team is rated on its average; the resulting delta is added to
        every member of that team.

        Args:
            ratings: Current ratings by player id (missing -> default Elo)
            winner_ids: Players on the winning team
            loser_ids: Players on the losing team

        Returns:
            New rating for every player on either team

        Raises:
            ValidationError: If a team is empty or a player is on both teams
        """
        winner_ids = list(winner_ids)
        loser_ids = list(loser_ids)

        if not winner_ids or not loser_ids:
            raise ValidationError("Both teams need at least one player")
        overlap = set(winner_ids) & set(loser_ids)
        if overlap:
            raise ValidationError(f"Players on both teams: {sorted(overlap)}")

        current = {
            pid: self.rating_or_default(ratings.get(pid))
            for pid in winner_ids + loser_ids
        }
        winners_avg = sum(current[pid] for pid in winner_ids) / len(winner_ids)
        losers_avg = sum(current[pid] for pid in loser_ids) / len(loser_ids)

        winner_new, loser_new = self.update_ratings(winners_avg, losers_avg)

        # One rounded delta per team keeps every member's change identical
        winner_delta = round(winner_new - winners_avg)
        loser_delta = round(loser_new - losers_avg)

        new_ratings = {}
        for pid in winner_ids:
            new_ratings[pid] = round(current[pid]) + winner_delta
        for pid in loser_ids:
            new_ratings[pid] = round(current[pid]) + loser_delta

        logger.debug(
            "Team result %s beat %s: delta %+d / %+d",
            winner_ids, loser_ids, winner_delta, loser_delta
        )
        return new_ratings

    def process_bracket_results(
        self,
        bracket: "TournamentBracket",
        ratings: Mapping[str, Optional[float]]
    ) -> Dict[str, int]:
        """
        Replay every decided bracket match and return updated ratings.

        Later rounds weigh more: the K-factor for round r is 16 + 4 * r.

        Args:
            bracket: Bracket with some or all winners reported
            ratings: Ratings before the tournament by player id

        Returns:
            Ratings for every player who appears in the bracket
        """
        updated: Dict[str, float] = {}
        for match in bracket.matches:
            for player in (match.player1, match.player2):
                if player is not None:
                    updated[player.player_id] = self.rating_or_default(
                        ratings.get(player.player_id)
                    )

        for match in sorted(bracket.matches, key=lambda m: (m.round, m.match_number)):
            if not match.winner or match.player1 is None or match.player2 is None:
                continue

            if match.winner == match.player1.player_id:
                winner_id, loser_id = match.player1.player_id, match.player2.player_id
            else:
                winner_id, loser_id = match.player2.player_id, match.player1.player_id

            k = 16 + match.round * 4
            updated[winner_id], updated[loser_id] = self.update_ratings(
                updated[winner_id], updated[loser_id], k_factor=k
            )

        return {pid: round(rating) for pid, rating in updated.items()}

    @staticmethod
    def rank_description(rating: float) -> str:
        """Map an Elo rating to its tier label."""
        for minimum, label in RANK_TIERS:
            if rating >= minimum:
                return label
        return LOWEST_RANK
