"""
Single-elimination tournament brackets.

A bracket is built once from a ranked player pool and then only changes
through advance(). Matches are indexed by (round, match_number); the winner
of match m in round r moves to match (m + 1) // 2 of round r + 1, taking the
player1 slot when m is odd and player2 when m is even.
"""

import copy
import random
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.errors import (
    InsufficientPlayersError, InvalidWinnerError, StaleBracketError, ValidationError
)
from src.matchmaking.models import Player
from src.tournament.elo import EloRatingSystem
from src.utils.constants import BRACKET_SIZE, SEED_ORDER_16
from src.utils.log import setup_logger

logger = setup_logger(__name__)

MATCH_ID_PATTERN = re.compile(r"^R(\d+)M(\d+)$")


def match_id_for(round_number: int, match_number: int) -> str:
    return f"R{round_number}M{match_number}"


def parse_match_id(match_id: str) -> Tuple[int, int]:
    """Split 'R2M3' into (2, 3)."""
    m = MATCH_ID_PATTERN.match(match_id or "")
    if not m:
        raise ValidationError(f"Malformed match id: {match_id!r}")
    return int(m.group(1)), int(m.group(2))


def standard_seed_order(size: int) -> List[int]:
    """
    Draw order for a bracket of the given size.

    The 16-player draw uses its fixed table; other sizes are built by
    recursively pairing each slot with its mirror.
    """
    if size == BRACKET_SIZE:
        return list(SEED_ORDER_16)

    order = [0]
    while len(order) < size:
        n = len(order) * 2
        order = [x for slot in order for x in (slot, n - 1 - slot)]
    return order


def round_name(round_number: int, rounds: int) -> str:
    """Human name of a round, e.g. 'Quarterfinals' or 'Round of 16'."""
    players_left = 2 ** (rounds - round_number + 1)
    if players_left == 2:
        return "Final"
    if players_left == 4:
        return "Semifinals"
    if players_left == 8:
        return "Quarterfinals"
    return f"Round of {players_left}"


class Achievement(Enum):
    """How far a player got in a finished bracket."""
    WINNER = "winner"
    RUNNER_UP = "runner_up"
    SEMIFINALIST = "semifinalist"


@dataclass
class BracketPlayer:
    """A player entered in a bracket."""
    player_id: str
    name: str
    elo_rating: int
    seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.player_id,
            "name": self.name,
            "elo_rating": self.elo_rating,
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BracketPlayer"]:
        if data is None:
            return None
        return cls(
            player_id=data["id"],
            name=data["name"],
            elo_rating=data["elo_rating"],
            seed=data.get("seed"),
        )


@dataclass
class BracketMatch:
    """One match slot in a bracket."""
    round: int
    match_number: int
    player1: Optional[BracketPlayer] = None
    player2: Optional[BracketPlayer] = None
    winner: Optional[str] = None
    next_match_id: Optional[str] = None

    @property
    def match_id(self) -> str:
        return match_id_for(self.round, self.match_number)

    def player_by_id(self, player_id: str) -> Optional[BracketPlayer]:
        """Return the assigned player with this id, if any."""
        for player in (self.player1, self.player2):
            if player is not None and player.player_id == player_id:
                return player
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.match_id,
            "round": self.round,
            "match_number": self.match_number,
            "player1": self.player1.to_dict() if self.player1 else None,
            "player2": self.player2.to_dict() if self.player2 else None,
            "winner": self.winner,
            "next_match_id": self.next_match_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BracketMatch":
        return cls(
            round=data["round"],
            match_number=data["match_number"],
            player1=BracketPlayer.from_dict(data.get("player1")),
            player2=BracketPlayer.from_dict(data.get("player2")),
            winner=data.get("winner"),
            next_match_id=data.get("next_match_id"),
        )


@dataclass
class TournamentBracket:
    """
    A single-elimination bracket.

    Matches are stored keyed by (round, match_number). The version starts at
    1 and grows by one with every reported result so that writers can detect
    concurrent changes.
    """
    bracket_id: str
    name: str
    rounds: int
    round_names: List[str]
    slots: Dict[Tuple[int, int], BracketMatch] = field(default_factory=dict)
    version: int = 1

    @property
    def matches(self) -> List[BracketMatch]:
        """All matches ordered by round, then match number."""
        return [self.slots[key] for key in sorted(self.slots)]

    def round_matches(self, round_number: int) -> List[BracketMatch]:
        return [m for m in self.matches if m.round == round_number]

    def get_match(self, match_id: str) -> BracketMatch:
        """
        Look up a match by id.

        Raises:
            ValidationError: If the id is malformed or not in this bracket
        """
        key = parse_match_id(match_id)
        match = self.slots.get(key)
        if match is None:
            raise ValidationError(f"Match {match_id} not found in bracket {self.bracket_id}")
        return match

    @property
    def final(self) -> BracketMatch:
        return self.slots[(self.rounds, 1)]

    @property
    def champion(self) -> Optional[str]:
        """Id of the tournament winner once the final is decided."""
        return self.final.winner

    @property
    def is_complete(self) -> bool:
        return self.final.winner is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.bracket_id,
            "name": self.name,
            "rounds": self.rounds,
            "roundNames": list(self.round_names),
            "version": self.version,
            "matches": [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentBracket":
        matches = [BracketMatch.from_dict(m) for m in data["matches"]]
        return cls(
            bracket_id=data["id"],
            name=data["name"],
            rounds=data["rounds"],
            round_names=list(data.get("roundNames") or []),
            slots={(m.round, m.match_number): m for m in matches},
            version=data.get("version", 1),
        )


class BracketEngine:
    """
    Builds and advances single-elimination brackets.

    Usage:
        engine = BracketEngine(seed=42)
        bracket = engine.create_bracket(players, "Spring Open")
        bracket = engine.advance(bracket, "R1M1", winner_id)
    """

    def __init__(
        self,
        rating_system: Optional[EloRatingSystem] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the engine.

        Args:
            rating_system: Supplies the default Elo for unrated players
            rng: Random source for shuffling unseeded players
            seed: Seed for a fresh random source when rng is not given
        """
        self.rating_system = rating_system or EloRatingSystem()
        self.rng = rng or random.Random(seed)

    def create_bracket(
        self,
        players: Sequence[Player],
        name: str,
        bracket_id: Optional[str] = None,
        size: int = BRACKET_SIZE
    ) -> TournamentBracket:
        """
        Create a seeded bracket from the strongest players in the pool.

        The top quarter of the field (by Elo) is seeded into fixed slots; the
        rest are shuffled into the remaining positions.

        Args:
            players: Player pool, at least `size` players
            name: Tournament name
            bracket_id: Id for the bracket (generated if None)
            size: Bracket size, a power of two (default: 16)

        Returns:
            New TournamentBracket at version 1

        Raises:
            ValidationError: If size is not a power of two of at least 4 or
                player ids repeat
            InsufficientPlayersError: If the pool has fewer than `size` players
        """
        if size < 4 or size & (size - 1):
            raise ValidationError(f"Bracket size must be a power of two >= 4, got {size}")
        ids = [p.player_id for p in players]
        if len(set(ids)) != len(ids):
            raise ValidationError("Player ids must be unique")
        if len(players) < size:
            raise InsufficientPlayersError(size, len(players))

        ranked = sorted(
            players,
            key=lambda p: (-self.rating_system.rating_or_default(p.elo_rating), p.player_id)
        )[:size]

        entrants = [
            BracketPlayer(
                player_id=p.player_id,
                name=p.display_name,
                elo_rating=int(self.rating_system.rating_or_default(p.elo_rating))
            )
            for p in ranked
        ]

        num_seeds = size // 4
        seeded = entrants[:num_seeds]
        for i, player in enumerate(seeded, 1):
            player.seed = i
        unseeded = entrants[num_seeds:]
        self.rng.shuffle(unseeded)
        draw = seeded + unseeded

        rounds = size.bit_length() - 1
        order = standard_seed_order(size)
        slots: Dict[Tuple[int, int], BracketMatch] = {}

        for i in range(size // 2):
            match = BracketMatch(
                round=1,
                match_number=i + 1,
                player1=draw[order[i * 2]],
                player2=draw[order[i * 2 + 1]],
            )
            slots[(1, i + 1)] = match

        for r in range(2, rounds + 1):
            for i in range(size // 2 ** r):
                slots[(r, i + 1)] = BracketMatch(round=r, match_number=i + 1)

        for match in slots.values():
            if match.round < rounds:
                match.next_match_id = match_id_for(match.round + 1, (match.match_number + 1) // 2)

        bracket = TournamentBracket(
            bracket_id=bracket_id or str(uuid.uuid4()),
            name=name,
            rounds=rounds,
            round_names=[round_name(r, rounds) for r in range(1, rounds + 1)],
            slots=slots,
        )
        logger.info(
            "Created bracket %s (%s): %d players, %d rounds",
            bracket.bracket_id, name, size, rounds
        )
        return bracket

    def advance(
        self,
        bracket: TournamentBracket,
        match_id: str,
        winner_id: str,
        expected_version: Optional[int] = None
    ) -> TournamentBracket:
        """
        Report a match winner and move them on.

        The input bracket is left untouched; a new bracket is returned.

        Args:
            bracket: Current bracket
            match_id: Match being reported, e.g. 'R1M3'
            winner_id: Id of the winning player
            expected_version: Version the caller read (None skips the check)

        Returns:
            Updated bracket with its version incremented

        Raises:
            StaleBracketError: If expected_version does not match
            ValidationError: If the match is unknown or already decided differently
            InvalidWinnerError: If winner_id is not one of the match's players
        """
        if expected_version is not None and expected_version != bracket.version:
            raise StaleBracketError(bracket.bracket_id, expected_version, bracket.version)

        updated = copy.deepcopy(bracket)
        match = updated.get_match(match_id)

        winner = match.player_by_id(winner_id)
        if winner is None or match.player1 is None or match.player2 is None:
            raise InvalidWinnerError(match_id, winner_id)

        if match.winner == winner_id:
            return updated
        if match.winner is not None:
            raise ValidationError(
                f"Match {match_id} already decided for {match.winner}"
            )

        match.winner = winner_id

        if match.next_match_id:
            next_match = updated.get_match(match.next_match_id)
            if match.match_number % 2 == 1:
                next_match.player1 = winner
            else:
                next_match.player2 = winner

        updated.version += 1
        logger.info(
            "Bracket %s: %s won %s (version %d)",
            updated.bracket_id, winner_id, match_id, updated.version
        )
        return updated

    @staticmethod
    def achievement_for(bracket: TournamentBracket, player_id: str) -> Optional[Achievement]:
        """How far a player got: winner, runner-up, semifinalist or None."""
        final = bracket.final
        if final.winner is not None:
            if final.winner == player_id:
                return Achievement.WINNER
            if final.player_by_id(player_id) is not None:
                return Achievement.RUNNER_UP

        if bracket.rounds >= 2:
            for semifinal in bracket.round_matches(bracket.rounds - 1):
                if (semifinal.winner is not None
                        and semifinal.winner != player_id
                        and semifinal.player_by_id(player_id) is not None):
                    return Achievement.SEMIFINALIST
        return None
