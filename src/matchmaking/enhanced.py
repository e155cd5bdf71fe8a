"""
Enhanced matchmaking with dynamic skill tolerance and quality metrics.

Differences from the basic scorer:
- The skill tolerance widens in thin local markets and narrows in busy ones
- Candidates are ranked on multi-factor quality metrics weighted per match type
- Casual and training requests trade some peak quality for variety

Performance history is pre-fetched by the caller and passed in as plain data.
"""

import math
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence

from src.config import EngineConfig
from src.errors import ValidationError
from src.matchmaking.models import (
    Availability, ConfidenceLevel, EnhancedMatchingResult, MatchQualityMetrics,
    MatchType, Player, ScoredCandidate
)
from src.matchmaking.performance import performance_trend, trends_for
from src.matchmaking.scorer import skill_level_to_rating
from src.tournament.elo import EloRatingSystem
from src.utils.log import setup_logger

logger = setup_logger(__name__)

# Pool sizes that trigger tolerance scaling
THIN_MARKET = 5
BUSY_MARKET = 20

# Share of slots reserved for high-quality candidates in casual/training mode
HIGH_QUALITY_SHARE = 0.7

COMPETITIVE_SKILL_BONUS = 10.0
CASUAL_STYLE_BONUS = 8.0


def play_style_compatibility(a: Player, b: Player) -> float:
    """Compatibility of two players' availability preferences."""
    if a.availability == b.availability:
        return 90.0
    if Availability.BOTH in (a.availability, b.availability):
        return 80.0
    return 70.0


class EnhancedMatchEngine:
    """
    Quality-optimizing matchmaker.

    Usage:
        engine = EnhancedMatchEngine()
        result = engine.find_enhanced_matches(pool, "Padel", "Stockholm", "3.0",
                                              "female", "p1", match_type=MatchType.CASUAL)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rating_system: Optional[EloRatingSystem] = None
    ):
        self.config = config or EngineConfig()
        self.rating_system = rating_system or EloRatingSystem(
            k_factor=self.config.k_factor,
            default_elo=self.config.default_elo
        )

    def find_enhanced_matches(
        self,
        pool: Sequence[Player],
        sport: Optional[str],
        city: str,
        skill_level: Optional[str],
        gender: str,
        initiator_id: str,
        desired_count: int = 1,
        match_type: MatchType = MatchType.COMPETITIVE,
        performance_history: Optional[Mapping[str, Sequence[Optional[float]]]] = None
    ) -> EnhancedMatchingResult:
        """
        Find matches for a player with quality optimization.

        Args:
            pool: Candidate players, including the initiator
            sport: Only players of this sport are considered (None = any)
            city: City to match in
            skill_level: Fallback skill level when the initiator has no rating
            gender: Gender to match
            initiator_id: Id of the player asking for a match
            desired_count: Number of partners wanted
            match_type: Competitive, casual or training
            performance_history: Recent performance ratings by player id,
                most recent first

        Returns:
            EnhancedMatchingResult (the canonical empty result if nobody fits)

        Raises:
            ValidationError: If desired_count < 1
        """
        if desired_count < 1:
            raise ValidationError("desired_count must be at least 1")

        initiator = next((p for p in pool if p.player_id == initiator_id), None)
        if initiator is None:
            logger.debug("Initiator %s not in pool", initiator_id)
            return EnhancedMatchingResult.empty()

        if initiator.skill_rating is None:
            if skill_level is None:
                return EnhancedMatchingResult.empty()
            initiator = replace(initiator, skill_rating=skill_level_to_rating(skill_level))

        if sport:
            pool = [p for p in pool if p.sport == sport]

        tolerance = self.dynamic_skill_tolerance(pool, initiator, match_type, gender, city)
        candidates = self.filter_candidates(pool, initiator, gender, city, tolerance)
        if not candidates:
            logger.debug(
                "No candidates within tolerance %.2f for %s", tolerance, initiator_id
            )
            return EnhancedMatchingResult.empty()

        trends = trends_for([c.player_id for c in candidates], performance_history)
        initiator_trend = performance_trend((performance_history or {}).get(initiator_id, ()))

        scored = self.score_candidates(candidates, initiator, initiator_trend, trends, match_type)
        selected = self.select_matches(scored, desired_count, match_type)

        result = self.build_result(selected, match_type, tolerance)
        logger.debug(
            "Enhanced match for %s (%s): %d selected, score %.1f, found=%s",
            initiator_id, match_type.value, len(selected), result.match_score, result.found
        )
        return result

    def dynamic_skill_tolerance(
        self,
        pool: Sequence[Player],
        initiator: Player,
        match_type: MatchType,
        gender: str,
        city: str
    ) -> float:
        """
        Skill tolerance adapted to match type, market size and skill level.

        A thin local market widens the tolerance, a busy one narrows it;
        beginners get more room and strong players less.
        """
        min_tol = self.config.min_skill_tolerance
        max_tol = self.config.max_skill_tolerance
        tolerance = match_type.base_tolerance

        local_players = [
            p for p in pool
            if p.gender == gender and p.city == city and p.player_id != initiator.player_id
        ]
        if len(local_players) < THIN_MARKET:
            tolerance = min(tolerance * 1.5, max_tol)
        elif len(local_players) > BUSY_MARKET:
            tolerance = max(tolerance * 0.8, min_tol)

        if initiator.skill_rating < 2.0:
            tolerance += 0.3
        elif initiator.skill_rating > 4.0:
            tolerance -= 0.2

        return max(min_tol, min(max_tol, tolerance))

    @staticmethod
    def filter_candidates(
        pool: Sequence[Player],
        initiator: Player,
        gender: str,
        city: str,
        tolerance: float
    ) -> List[Player]:
        """Players of the right gender and city within the skill tolerance."""
        return [
            p for p in pool
            if p.player_id != initiator.player_id
            and p.gender == gender
            and p.city == city
            and p.skill_rating is not None
            and p.skill_gap(initiator) <= tolerance
        ]

    def quality_metrics(
        self,
        initiator: Player,
        candidate: Player,
        initiator_trend: float,
        candidate_trend: float,
        match_type: MatchType
    ) -> MatchQualityMetrics:
        """Quality sub-scores for one pair and their weighted combination."""
        skill_balance = max(0.0, 100.0 - candidate.skill_gap(initiator) * 30.0)

        elo_a = self.rating_system.rating_or_default(initiator.elo_rating)
        elo_b = self.rating_system.rating_or_default(candidate.elo_rating)
        experience_balance = max(0.0, 100.0 - abs(elo_a - elo_b) / 20.0)

        style = play_style_compatibility(initiator, candidate)
        performance_balance = max(0.0, 100.0 - abs(initiator_trend - candidate_trend) * 20.0)

        weights = match_type.weights
        overall = (
            skill_balance * weights.skill
            + experience_balance * weights.experience
            + style * weights.play_style
            + performance_balance * weights.performance
        )
        return MatchQualityMetrics(
            skill_balance=skill_balance,
            experience_balance=experience_balance,
            play_style_compatibility=style,
            recent_performance_balance=performance_balance,
            overall_quality=overall
        )

    @staticmethod
    def weighted_score(metrics: MatchQualityMetrics, match_type: MatchType) -> float:
        """Overall quality plus match-type bonuses, capped at 100."""
        score = metrics.overall_quality
        if match_type is MatchType.COMPETITIVE and metrics.skill_balance > 85:
            score += COMPETITIVE_SKILL_BONUS
        if match_type is MatchType.CASUAL and metrics.play_style_compatibility > 85:
            score += CASUAL_STYLE_BONUS
        return min(100.0, score)

    def score_candidates(
        self,
        candidates: Sequence[Player],
        initiator: Player,
        initiator_trend: float,
        trends: Dict[str, float],
        match_type: MatchType
    ) -> List[ScoredCandidate]:
        """Score every candidate, best first."""
        scored = []
        for candidate in candidates:
            metrics = self.quality_metrics(
                initiator, candidate, initiator_trend,
                trends.get(candidate.player_id, 0.0), match_type
            )
            scored.append(ScoredCandidate(
                player=candidate,
                quality_metrics=metrics,
                total_score=self.weighted_score(metrics, match_type)
            ))
        scored.sort(key=lambda s: s.total_score, reverse=True)
        return scored

    def select_matches(
        self,
        scored: Sequence[ScoredCandidate],
        desired_count: int,
        match_type: MatchType
    ) -> List[ScoredCandidate]:
        """
        Pick the final matches from scored candidates (best first).

        Competitive requests only take candidates above the quality threshold.
        Casual and training requests fill up to 70% of the slots from that
        tier and the rest from the medium tier.
        """
        threshold = self.config.quality_threshold
        floor = self.config.medium_quality_floor

        high = [s for s in scored if s.total_score >= threshold]
        if match_type is MatchType.COMPETITIVE:
            return high[:desired_count]

        medium = [s for s in scored if floor <= s.total_score < threshold]
        target_high = math.ceil(desired_count * HIGH_QUALITY_SHARE)
        target_medium = desired_count - target_high

        selected = high[:target_high]
        if len(selected) < desired_count:
            selected.extend(medium[:target_medium])
        return selected[:desired_count]

    def build_result(
        self,
        selected: Sequence[ScoredCandidate],
        match_type: MatchType,
        tolerance: float
    ) -> EnhancedMatchingResult:
        """Summarize the selected matches."""
        if not selected:
            return EnhancedMatchingResult.empty()

        avg_score = sum(s.total_score for s in selected) / len(selected)

        if avg_score >= self.config.high_confidence:
            confidence = ConfidenceLevel.HIGH
        elif avg_score >= self.config.medium_confidence:
            confidence = ConfidenceLevel.MEDIUM
        else:
            confidence = ConfidenceLevel.LOW

        return EnhancedMatchingResult(
            matched_players=[s.player for s in selected],
            found=avg_score >= self.config.found_average_threshold,
            match_score=avg_score,
            quality_metrics=selected[0].quality_metrics,
            confidence_level=confidence,
            recommended_match_type=match_type,
            skill_tolerance=tolerance
        )
