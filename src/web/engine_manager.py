"""
Engine manager for the web interface.

Owns the configured engines and the storage backend, and converts between
API schemas and domain objects.
"""
from typing import Any, Dict, List, Optional

from src.config import EngineConfig
from src.errors import ValidationError
from src.matchmaking.enhanced import EnhancedMatchEngine
from src.matchmaking.models import (
    Availability, EnhancedMatchingResult, MatchConstraints, MatchingResult,
    MatchType, Player
)
from src.matchmaking.scorer import DOUBLES_PARTNERS, MatchScorer
from src.tournament.bracket import BracketEngine, TournamentBracket
from src.tournament.elo import EloRatingSystem
from src.tournament.scheduler import balanced_schedule, league_rounds, num_matchups
from src.tournament.storage import TournamentStorage
from src.utils.log import setup_logger
from src.web.models import (
    AdvanceRequest, CreateBracketRequest, LeagueScheduleRequest, MatchRequest,
    PlayerModel, RatingUpdateRequest
)

logger = setup_logger(__name__)


def to_player(model: PlayerModel) -> Player:
    """Convert an API player into a domain player."""
    return Player(
        player_id=model.player_id,
        display_name=model.display_name,
        sport=model.sport,
        city=model.city,
        gender=model.gender,
        skill_rating=model.skill_rating,
        elo_rating=model.elo_rating,
        availability=Availability(model.availability.value)
    )


def player_to_dict(player: Player) -> Dict[str, Any]:
    """Serialize a domain player for API responses."""
    return {
        "player_id": player.player_id,
        "display_name": player.display_name,
        "sport": player.sport,
        "city": player.city,
        "gender": player.gender,
        "skill_rating": player.skill_rating,
        "elo_rating": player.elo_rating,
        "availability": player.availability.value,
    }


def bracket_to_dict(bracket: TournamentBracket) -> Dict[str, Any]:
    """Serialize a bracket for API responses."""
    data = bracket.to_dict()
    data["champion"] = bracket.champion
    return data


class EngineManager:
    """
    Entry point from the HTTP layer into the engines.

    Handles matchmaking, bracket creation and advancement, league scheduling
    and rating updates.
    """

    def __init__(self, config: Optional[EngineConfig] = None, storage: Optional[TournamentStorage] = None):
        """
        Initialize engine manager.

        Args:
            config: Engine configuration (default: read from the environment)
            storage: Storage backend (default: SQLite under config.data_dir)
        """
        self.config = config or EngineConfig.from_env()
        self.storage = storage or TournamentStorage(data_dir=self.config.data_dir)
        self.rating_system = EloRatingSystem(
            k_factor=self.config.k_factor,
            default_elo=self.config.default_elo
        )
        self.scorer = MatchScorer(self.config)
        self.enhanced = EnhancedMatchEngine(self.config, self.rating_system)
        self.bracket_engine = BracketEngine(self.rating_system)

    # =========================================================================
    # Matchmaking
    # =========================================================================

    def find_matches(self, request: MatchRequest) -> Dict[str, Any]:
        """Run the basic scorer or the enhanced engine for a request."""
        pool = [to_player(p) for p in request.pool]
        initiator = next((p for p in pool if p.player_id == request.initiator_id), None)
        logger.debug(
            "Match request from %s: %d in pool, type=%s",
            request.initiator_id, len(pool),
            request.match_type.value if request.match_type else "basic"
        )

        if request.match_type is None:
            if initiator is None:
                raise ValidationError(f"Initiator {request.initiator_id} is not in the pool")
            return self._basic_response(self._find_basic(pool, initiator, request))

        history = request.performance_history or self.storage.recent_performance(
            [p.player_id for p in pool]
        )
        result = self.enhanced.find_enhanced_matches(
            pool,
            sport=request.sport,
            city=request.city or (initiator.city if initiator else ""),
            skill_level=request.skill_level,
            gender=request.gender or (initiator.gender if initiator else ""),
            initiator_id=request.initiator_id,
            desired_count=request.desired_count,
            match_type=MatchType(request.match_type.value),
            performance_history=history
        )
        return self._enhanced_response(result)

    def _find_basic(self, pool: List[Player], initiator: Player, request: MatchRequest) -> MatchingResult:
        if request.sport:
            pool = [p for p in pool if p.sport == request.sport]
        constraints = MatchConstraints(gender=request.gender, city=request.city)
        if request.desired_count == DOUBLES_PARTNERS:
            return self.scorer.find_doubles_matches(pool, initiator, constraints)
        return self.scorer.find_matches(pool, initiator, request.desired_count, constraints)

    @staticmethod
    def _basic_response(result: MatchingResult) -> Dict[str, Any]:
        return {
            "engine": "basic",
            "found": result.found,
            "score": result.score,
            "matches": [
                {
                    "player": player_to_dict(m.player),
                    "composite_score": m.composite_score,
                    "skill_delta": m.skill_delta,
                }
                for m in result.matches
            ],
            "matched_players": [player_to_dict(p) for p in result.matched_players],
        }

    @staticmethod
    def _enhanced_response(result: EnhancedMatchingResult) -> Dict[str, Any]:
        metrics = result.quality_metrics
        return {
            "engine": "enhanced",
            "found": result.found,
            "score": result.match_score,
            "matched_players": [player_to_dict(p) for p in result.matched_players],
            "quality_metrics": {
                "skill_balance": metrics.skill_balance,
                "experience_balance": metrics.experience_balance,
                "play_style_compatibility": metrics.play_style_compatibility,
                "recent_performance_balance": metrics.recent_performance_balance,
                "overall_quality": metrics.overall_quality,
            },
            "confidence_level": result.confidence_level.value,
            "recommended_match_type": result.recommended_match_type.value,
            "skill_tolerance": result.skill_tolerance,
        }

    # =========================================================================
    # Brackets
    # =========================================================================

    def create_bracket(self, request: CreateBracketRequest) -> Dict[str, Any]:
        """Build, persist and return a new bracket."""
        engine = self.bracket_engine
        if request.seed is not None:
            engine = BracketEngine(self.rating_system, seed=request.seed)

        bracket = engine.create_bracket([to_player(p) for p in request.players], request.name)
        self.storage.save_bracket(bracket)
        return bracket_to_dict(bracket)

    def get_bracket(self, bracket_id: str) -> Dict[str, Any]:
        """Load a stored bracket."""
        return bracket_to_dict(self.storage.load_bracket(bracket_id))

    def advance_bracket(self, bracket_id: str, request: AdvanceRequest) -> Dict[str, Any]:
        """Report a match winner on a stored bracket."""
        bracket = self.storage.advance_bracket(
            bracket_id,
            request.match_id,
            request.winner_id,
            self.bracket_engine,
            expected_version=request.expected_version
        )
        return bracket_to_dict(bracket)

    # =========================================================================
    # Leagues and ratings
    # =========================================================================

    def league_schedule(self, request: LeagueScheduleRequest) -> Dict[str, Any]:
        """Generate a league round-robin, optionally spread over weeks."""
        rounds = league_rounds(request.player_ids)
        response: Dict[str, Any] = {
            "rounds": [[list(pair) for pair in r] for r in rounds],
            "total_matchups": num_matchups(request.player_ids),
        }
        if request.weeks is not None:
            response["weeks"] = [
                {"week_number": w.week_number, "matches": [list(pair) for pair in w.matches]}
                for w in balanced_schedule(request.player_ids, request.weeks)
            ]
        return response

    def update_ratings(self, request: RatingUpdateRequest) -> Dict[str, Any]:
        """Apply a team (or singles) result to the given ratings."""
        new_ratings = self.rating_system.process_team_result(
            request.ratings, request.winner_ids, request.loser_ids
        )
        return {
            "ratings": new_ratings,
            "ranks": {
                pid: self.rating_system.rank_description(rating)
                for pid, rating in new_ratings.items()
            },
        }
