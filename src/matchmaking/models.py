"""
Data model for matchmaking.

Players arrive as plain records from the profile store; everything else in
this module is produced per matching request and discarded afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from src.utils.constants import BOTH, WEEKDAYS, WEEKENDS


class Availability(Enum):
    """When a player is free to play."""
    WEEKDAYS = WEEKDAYS
    WEEKENDS = WEEKENDS
    BOTH = BOTH


@dataclass
class Player:
    """A player record as read from the profile store."""
    player_id: str
    display_name: str
    sport: str
    city: str
    gender: str
    skill_rating: Optional[float] = None
    elo_rating: Optional[int] = None
    availability: Availability = Availability.BOTH

    def skill_gap(self, other: "Player") -> float:
        """Absolute skill difference to another player (both must be rated)."""
        return abs(self.skill_rating - other.skill_rating)


@dataclass(frozen=True)
class QualityWeights:
    """Weights for combining quality metrics into overall quality."""
    skill: float
    experience: float
    play_style: float
    performance: float


class MatchType(Enum):
    """
    Kind of match a player is looking for.

    Each type carries its own base skill tolerance and quality-weight table.
    """
    COMPETITIVE = "competitive"
    CASUAL = "casual"
    TRAINING = "training"

    @property
    def base_tolerance(self) -> float:
        return _BASE_TOLERANCE[self]

    @property
    def weights(self) -> QualityWeights:
        return _QUALITY_WEIGHTS[self]


_BASE_TOLERANCE = {
    MatchType.COMPETITIVE: 0.5,
    MatchType.CASUAL: 1.0,
    MatchType.TRAINING: 1.2,
}

_QUALITY_WEIGHTS = {
    MatchType.COMPETITIVE: QualityWeights(skill=0.4, experience=0.3, play_style=0.1, performance=0.2),
    MatchType.CASUAL: QualityWeights(skill=0.3, experience=0.2, play_style=0.3, performance=0.2),
    MatchType.TRAINING: QualityWeights(skill=0.2, experience=0.3, play_style=0.2, performance=0.3),
}


class ConfidenceLevel(Enum):
    """How much to trust an enhanced matching result."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class MatchConstraints:
    """Hard filters for the basic scorer. None means 'same as the initiator'."""
    gender: Optional[str] = None
    city: Optional[str] = None


@dataclass
class MatchCandidateScore:
    """Score of one candidate against the initiator."""
    player: Player
    composite_score: float
    skill_delta: float


@dataclass
class MatchingResult:
    """Result of the basic scorer."""
    matches: List[MatchCandidateScore]
    found: bool
    score: float

    @property
    def matched_players(self) -> List[Player]:
        return [m.player for m in self.matches]


@dataclass
class MatchQualityMetrics:
    """Quality sub-scores for a candidate pair, all percentages (0-100)."""
    skill_balance: float = 0.0
    experience_balance: float = 0.0
    play_style_compatibility: float = 0.0
    recent_performance_balance: float = 0.0
    overall_quality: float = 0.0


@dataclass
class ScoredCandidate:
    """A candidate with its quality metrics and final weighted score."""
    player: Player
    quality_metrics: MatchQualityMetrics
    total_score: float


@dataclass
class EnhancedMatchingResult:
    """Result of the enhanced engine."""
    matched_players: List[Player] = field(default_factory=list)
    found: bool = False
    match_score: float = 0.0
    quality_metrics: MatchQualityMetrics = field(default_factory=MatchQualityMetrics)
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    recommended_match_type: MatchType = MatchType.CASUAL
    skill_tolerance: float = 0.0

    @classmethod
    def empty(cls) -> "EnhancedMatchingResult":
        """The canonical result when nobody can be matched."""
        return cls()
