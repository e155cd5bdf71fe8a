"""
Basic match scorer.

Scores every eligible candidate against the initiator with a weighted
composite of location, skill, Elo and availability, then proposes the best
ones. A match is only reported as found when skill compatibility holds, no
matter how well location and availability line up.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.config import EngineConfig
from src.errors import InsufficientCandidatesError, ValidationError
from src.matchmaking.models import (
    Availability, MatchCandidateScore, MatchConstraints, MatchingResult, Player
)
from src.utils.constants import DEFAULT_SKILL_LEVEL_RATING, SKILL_LEVEL_RATINGS
from src.utils.log import setup_logger

logger = setup_logger(__name__)

DOUBLES_PARTNERS = 3


@dataclass(frozen=True)
class ScoreWeights:
    """Weights of the composite score components."""
    location: float
    skill: float
    elo: float
    availability: float


SINGLES_WEIGHTS = ScoreWeights(location=0.35, skill=0.45, elo=0.10, availability=0.10)
DOUBLES_WEIGHTS = ScoreWeights(location=0.30, skill=0.50, elo=0.10, availability=0.10)


def skill_level_to_rating(level: str) -> float:
    """
    Convert a skill level to the numeric skill scale.

    Numeric strings are taken as-is; named levels map to fixed values and
    anything else falls back to the middle of the scale.
    """
    try:
        return float(level)
    except (TypeError, ValueError):
        pass
    return SKILL_LEVEL_RATINGS.get(str(level).strip().lower(), DEFAULT_SKILL_LEVEL_RATING)


def skill_score(skill_delta: float) -> float:
    """
    Score a skill difference.

    Within one level the score stays at 80 or above; crossing the one-level
    boundary drops it to 60 and below.
    """
    if skill_delta <= 1.0:
        return max(80.0, 100.0 - 20.0 * skill_delta)
    return max(0.0, 60.0 - 20.0 * (skill_delta - 1.0))


class MatchScorer:
    """
    Weighted composite scorer for singles and doubles matching.

    Usage:
        scorer = MatchScorer()
        result = scorer.find_matches(pool, initiator, desired_count=1)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def eligible_candidates(
        self,
        pool: Sequence[Player],
        initiator: Player,
        constraints: MatchConstraints,
        same_city: bool
    ) -> List[Player]:
        """Filter the pool down to players who may be proposed at all."""
        gender = constraints.gender or initiator.gender
        city = constraints.city or initiator.city

        candidates = []
        for player in pool:
            if player.player_id == initiator.player_id:
                continue
            if player.skill_rating is None:
                continue
            if player.gender != gender:
                continue
            if same_city and player.city != city:
                continue
            candidates.append(player)
        return candidates

    def score_candidate(
        self,
        candidate: Player,
        initiator: Player,
        city: str,
        weights: ScoreWeights
    ) -> MatchCandidateScore:
        """Compute the composite score of one candidate."""
        default_elo = self.config.default_elo

        location_score = 100.0 if candidate.city == city else 0.0

        skill_delta = candidate.skill_gap(initiator)

        candidate_elo = candidate.elo_rating if candidate.elo_rating is not None else default_elo
        initiator_elo = initiator.elo_rating if initiator.elo_rating is not None else default_elo
        elo_score = max(0.0, 100.0 - abs(candidate_elo - initiator_elo) / 30.0)

        availability_score = 20.0 if candidate.availability == Availability.BOTH else 0.0

        composite = (
            location_score * weights.location
            + skill_score(skill_delta) * weights.skill
            + elo_score * weights.elo
            + availability_score * weights.availability
        )
        return MatchCandidateScore(
            player=candidate,
            composite_score=composite,
            skill_delta=skill_delta
        )

    def find_matches(
        self,
        pool: Sequence[Player],
        initiator: Player,
        desired_count: int = 1,
        constraints: Optional[MatchConstraints] = None
    ) -> MatchingResult:
        """
        Find the best partners for a singles-style request.

        Args:
            pool: Candidate players (the initiator may be included)
            initiator: Player asking for a match
            desired_count: Number of partners wanted
            constraints: Gender/city filters (default: the initiator's own)

        Returns:
            MatchingResult with the top candidates

        Raises:
            ValidationError: If desired_count < 1 or the initiator has no skill rating
            InsufficientCandidatesError: If nobody passes the filters
        """
        return self._find(pool, initiator, desired_count, constraints, doubles=False)

    def find_doubles_matches(
        self,
        pool: Sequence[Player],
        initiator: Player,
        constraints: Optional[MatchConstraints] = None
    ) -> MatchingResult:
        """
        Find three partners for a doubles match.

        Location is scored rather than filtered, skill weighs more, and every
        selected partner must be within the skill gap for the match to count.
        """
        return self._find(pool, initiator, DOUBLES_PARTNERS, constraints, doubles=True)

    def _find(
        self,
        pool: Sequence[Player],
        initiator: Player,
        desired_count: int,
        constraints: Optional[MatchConstraints],
        doubles: bool
    ) -> MatchingResult:
        if desired_count < 1:
            raise ValidationError("desired_count must be at least 1")
        if initiator.skill_rating is None:
            raise ValidationError(f"Player {initiator.player_id} has no skill rating")

        constraints = constraints or MatchConstraints()
        city = constraints.city or initiator.city
        weights = DOUBLES_WEIGHTS if doubles else SINGLES_WEIGHTS

        candidates = self.eligible_candidates(pool, initiator, constraints, same_city=not doubles)
        if not candidates:
            raise InsufficientCandidatesError(
                f"No players match gender/location filters for {initiator.player_id}"
            )

        scored = [self.score_candidate(c, initiator, city, weights) for c in candidates]
        scored.sort(key=lambda s: s.composite_score, reverse=True)

        selected = scored[:desired_count]
        top = selected[0]
        max_gap = self.config.max_skill_gap

        if doubles:
            skill_ok = all(s.skill_delta <= max_gap for s in selected)
        else:
            skill_ok = top.skill_delta <= max_gap

        found = (
            len(selected) == desired_count
            and top.composite_score > self.config.found_score_threshold
            and skill_ok
        )

        logger.debug(
            "Scored %d candidates for %s (doubles=%s): top %.1f, found=%s",
            len(scored), initiator.player_id, doubles, top.composite_score, found
        )
        return MatchingResult(matches=selected, found=found, score=top.composite_score)
