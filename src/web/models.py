"""
Pydantic models for the Rally web API.

Defines request/response schemas for the REST endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from enum import Enum

from src.utils.constants import MAX_SKILL, MIN_SKILL


class AvailabilityModel(str, Enum):
    """When a player is free to play."""
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    BOTH = "both"


class MatchTypeModel(str, Enum):
    """Kind of match requested from the enhanced engine."""
    COMPETITIVE = "competitive"
    CASUAL = "casual"
    TRAINING = "training"


class PlayerModel(BaseModel):
    """A player profile."""
    player_id: str
    display_name: str
    sport: str
    city: str
    gender: str
    skill_rating: Optional[float] = Field(default=None, ge=MIN_SKILL, le=MAX_SKILL)
    elo_rating: Optional[int] = None
    availability: AvailabilityModel = AvailabilityModel.BOTH


# =============================================================================
# Matchmaking
# =============================================================================

class MatchRequest(BaseModel):
    """
    Request for match proposals.

    Without a match_type the basic scorer is used (desired_count 3 means
    doubles); with one the enhanced engine is used.
    """
    pool: List[PlayerModel]
    initiator_id: str
    desired_count: int = Field(default=1, ge=1)
    match_type: Optional[MatchTypeModel] = None
    sport: Optional[str] = None
    skill_level: Optional[str] = None
    gender: Optional[str] = Field(default=None, description="Defaults to the initiator's gender")
    city: Optional[str] = Field(default=None, description="Defaults to the initiator's city")
    performance_history: Dict[str, List[Optional[float]]] = Field(
        default_factory=dict,
        description="Recent performance ratings per player id, most recent first"
    )


class CandidateScoreModel(BaseModel):
    """Basic scorer result for one candidate."""
    player: PlayerModel
    composite_score: float
    skill_delta: float


class QualityMetricsModel(BaseModel):
    """Quality sub-scores, all percentages."""
    skill_balance: float
    experience_balance: float
    play_style_compatibility: float
    recent_performance_balance: float
    overall_quality: float


class MatchResponse(BaseModel):
    """Response for a match request from either engine."""
    engine: str
    found: bool
    score: float
    matches: List[CandidateScoreModel] = Field(default_factory=list)
    matched_players: List[PlayerModel] = Field(default_factory=list)
    quality_metrics: Optional[QualityMetricsModel] = None
    confidence_level: Optional[str] = None
    recommended_match_type: Optional[str] = None
    skill_tolerance: Optional[float] = None


# =============================================================================
# Brackets
# =============================================================================

class CreateBracketRequest(BaseModel):
    """Request to build a 16-player bracket."""
    name: str
    players: List[PlayerModel]
    seed: Optional[int] = Field(default=None, description="Seed for shuffling unseeded players")


class AdvanceRequest(BaseModel):
    """Report the winner of a bracket match."""
    match_id: str
    winner_id: str
    expected_version: Optional[int] = None


class BracketPlayerModel(BaseModel):
    """A player entered in a bracket."""
    id: str
    name: str
    elo_rating: int
    seed: Optional[int] = None


class BracketMatchModel(BaseModel):
    """One bracket match."""
    id: str
    round: int
    match_number: int
    player1: Optional[BracketPlayerModel] = None
    player2: Optional[BracketPlayerModel] = None
    winner: Optional[str] = None
    next_match_id: Optional[str] = None


class BracketResponse(BaseModel):
    """A full bracket."""
    id: str
    name: str
    rounds: int
    round_names: List[str] = Field(alias="roundNames")
    version: int
    matches: List[BracketMatchModel]
    champion: Optional[str] = None


# =============================================================================
# Leagues
# =============================================================================

class LeagueScheduleRequest(BaseModel):
    """Request a round-robin schedule."""
    player_ids: List[str]
    weeks: Optional[int] = Field(default=None, ge=1, description="Spread rounds over this many weeks")


class LeagueWeekModel(BaseModel):
    """Matches of one league week."""
    week_number: int
    matches: List[List[str]]


class LeagueScheduleResponse(BaseModel):
    """A round-robin schedule."""
    rounds: List[List[List[str]]]
    total_matchups: int
    weeks: Optional[List[LeagueWeekModel]] = None


# =============================================================================
# Ratings
# =============================================================================

class RatingUpdateRequest(BaseModel):
    """Apply a match result to current ratings."""
    ratings: Dict[str, Optional[int]] = Field(default_factory=dict)
    winner_ids: List[str]
    loser_ids: List[str]


class RatingUpdateResponse(BaseModel):
    """New ratings and rank labels for every player in the match."""
    ratings: Dict[str, int]
    ranks: Dict[str, str]


class HealthResponse(BaseModel):
    """Service health."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str
