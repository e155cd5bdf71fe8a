"""
Unit tests for the enhanced match engine.
"""

import pytest

from src.errors import ValidationError
from src.matchmaking.enhanced import EnhancedMatchEngine, play_style_compatibility
from src.matchmaking.models import (
    Availability, ConfidenceLevel, EnhancedMatchingResult, MatchQualityMetrics,
    MatchType, Player, ScoredCandidate
)


def make_player(player_id, skill=3.0, city="Stockholm", gender="female",
                elo=1500, availability=Availability.BOTH, sport="Padel"):
    return Player(
        player_id=player_id,
        display_name=player_id.title(),
        sport=sport,
        city=city,
        gender=gender,
        skill_rating=skill,
        elo_rating=elo,
        availability=availability
    )


def find(engine, pool, initiator_id="ann", **kwargs):
    kwargs.setdefault("sport", "Padel")
    kwargs.setdefault("city", "Stockholm")
    kwargs.setdefault("skill_level", None)
    kwargs.setdefault("gender", "female")
    return engine.find_enhanced_matches(pool, initiator_id=initiator_id, **kwargs)


def scored(player_id, score):
    return ScoredCandidate(
        player=make_player(player_id),
        quality_metrics=MatchQualityMetrics(overall_quality=score),
        total_score=score
    )


class TestEmptyResults:
    """Tests for the canonical empty result."""

    def test_empty_defaults(self):
        """The empty result recommends casual play with low confidence."""
        result = EnhancedMatchingResult.empty()
        assert result.matched_players == []
        assert not result.found
        assert result.match_score == 0.0
        assert result.confidence_level == ConfidenceLevel.LOW
        assert result.recommended_match_type == MatchType.CASUAL
        assert result.quality_metrics == MatchQualityMetrics()

    def test_empty_pool(self):
        """A pool with only the initiator yields the empty result."""
        engine = EnhancedMatchEngine()
        assert find(engine, [make_player("ann")]) == EnhancedMatchingResult.empty()

    def test_missing_initiator(self):
        """An initiator not in the pool yields the empty result."""
        engine = EnhancedMatchEngine()
        pool = [make_player("bea"), make_player("cat")]
        assert find(engine, pool) == EnhancedMatchingResult.empty()

    def test_unrated_initiator_without_level(self):
        """No skill rating and no skill level yields the empty result."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann", skill=None), make_player("bea")]
        assert find(engine, pool) == EnhancedMatchingResult.empty()

    def test_everyone_outside_tolerance(self):
        """Candidates beyond the skill tolerance are dropped."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann", skill=3.0), make_player("bea", skill=4.5)]
        assert find(engine, pool) == EnhancedMatchingResult.empty()


class TestDynamicTolerance:
    """Tests for the dynamic skill tolerance."""

    def local_pool(self, count, skill=3.0):
        return [make_player("ann", skill=skill)] + [
            make_player(f"p{i}") for i in range(count)
        ]

    def tolerance(self, pool, match_type=MatchType.COMPETITIVE):
        engine = EnhancedMatchEngine()
        return engine.dynamic_skill_tolerance(pool, pool[0], match_type, "female", "Stockholm")

    def test_thin_market_widens(self):
        """Fewer than 5 local players widens the tolerance by half."""
        assert self.tolerance(self.local_pool(2)) == pytest.approx(0.75)

    def test_normal_market(self):
        """A normal market keeps the base tolerance."""
        assert self.tolerance(self.local_pool(10)) == pytest.approx(0.5)

    def test_busy_market_narrows(self):
        """More than 20 local players narrows the tolerance."""
        assert self.tolerance(self.local_pool(25)) == pytest.approx(0.4)

    def test_match_type_base(self):
        """Casual and training requests start wider."""
        pool = self.local_pool(10)
        assert self.tolerance(pool, MatchType.CASUAL) == pytest.approx(1.0)
        assert self.tolerance(pool, MatchType.TRAINING) == pytest.approx(1.2)

    def test_beginner_gets_more_room(self):
        """Players under 2.0 get 0.3 extra."""
        assert self.tolerance(self.local_pool(2, skill=1.5)) == pytest.approx(1.05)

    def test_clamped_to_bounds(self):
        """The tolerance stays within [0.3, 1.5]."""
        assert self.tolerance(self.local_pool(25, skill=4.5)) == pytest.approx(0.3)
        wide = self.local_pool(2, skill=1.5)
        assert self.tolerance(wide, MatchType.TRAINING) == pytest.approx(1.5)

    def test_other_cities_not_counted(self):
        """Only players in the same city and gender count as the local market."""
        pool = self.local_pool(2) + [make_player(f"x{i}", city="Malmo") for i in range(30)]
        assert self.tolerance(pool) == pytest.approx(0.75)


class TestQualityMetrics:
    """Tests for quality metrics and weighting."""

    def test_identical_players(self):
        """Identical players score full balance on every metric."""
        engine = EnhancedMatchEngine()
        metrics = engine.quality_metrics(
            make_player("ann"), make_player("bea"), 0.0, 0.0, MatchType.COMPETITIVE
        )
        assert metrics.skill_balance == 100.0
        assert metrics.experience_balance == 100.0
        assert metrics.play_style_compatibility == 90.0
        assert metrics.recent_performance_balance == 100.0
        assert metrics.overall_quality == pytest.approx(99.0)

    @pytest.mark.parametrize("match_type,overall", [
        (MatchType.COMPETITIVE, 99.0),
        (MatchType.CASUAL, 97.0),
        (MatchType.TRAINING, 98.0),
    ])
    def test_weights_per_match_type(self, match_type, overall):
        """Each match type has its own weight table."""
        engine = EnhancedMatchEngine()
        metrics = engine.quality_metrics(
            make_player("ann"), make_player("bea"), 0.0, 0.0, match_type
        )
        assert metrics.overall_quality == pytest.approx(overall)

    def test_balances_degrade(self):
        """Skill and Elo differences lower the balances linearly."""
        engine = EnhancedMatchEngine()
        metrics = engine.quality_metrics(
            make_player("ann", skill=3.0, elo=1500),
            make_player("bea", skill=3.5, elo=1900),
            1.0, 0.0, MatchType.COMPETITIVE
        )
        assert metrics.skill_balance == pytest.approx(85.0)
        assert metrics.experience_balance == pytest.approx(80.0)
        assert metrics.recent_performance_balance == pytest.approx(80.0)

    def test_play_style_compatibility(self):
        """Matching availability is most compatible."""
        both = make_player("a", availability=Availability.BOTH)
        weekdays = make_player("b", availability=Availability.WEEKDAYS)
        weekends = make_player("c", availability=Availability.WEEKENDS)

        assert play_style_compatibility(weekdays, weekdays) == 90.0
        assert play_style_compatibility(both, weekends) == 80.0
        assert play_style_compatibility(weekdays, weekends) == 70.0

    def test_competitive_bonus(self):
        """Competitive requests reward close skill, capped at 100."""
        metrics = MatchQualityMetrics(skill_balance=90.0, overall_quality=80.0)
        assert EnhancedMatchEngine.weighted_score(metrics, MatchType.COMPETITIVE) == 90.0
        assert EnhancedMatchEngine.weighted_score(metrics, MatchType.TRAINING) == 80.0

        metrics.overall_quality = 95.0
        assert EnhancedMatchEngine.weighted_score(metrics, MatchType.COMPETITIVE) == 100.0

    def test_casual_bonus(self):
        """Casual requests reward compatible play styles."""
        metrics = MatchQualityMetrics(play_style_compatibility=90.0, overall_quality=70.0)
        assert EnhancedMatchEngine.weighted_score(metrics, MatchType.CASUAL) == 78.0


class TestSelection:
    """Tests for choosing the final matches."""

    def candidates(self):
        return [
            scored("a", 95), scored("b", 90), scored("c", 80),
            scored("d", 78), scored("e", 65), scored("f", 62), scored("g", 40)
        ]

    def test_competitive_high_tier_only(self):
        """Competitive requests only take candidates above the threshold."""
        engine = EnhancedMatchEngine()
        selected = engine.select_matches(self.candidates(), 6, MatchType.COMPETITIVE)
        assert [s.player.player_id for s in selected] == ["a", "b", "c", "d"]

    def test_casual_mixes_tiers(self):
        """Casual requests fill 70% from the high tier and the rest from medium."""
        engine = EnhancedMatchEngine()
        selected = engine.select_matches(self.candidates(), 4, MatchType.CASUAL)
        assert [s.player.player_id for s in selected] == ["a", "b", "c", "e"]

    def test_low_scores_never_selected(self):
        """Candidates below the medium floor are never picked."""
        engine = EnhancedMatchEngine()
        selected = engine.select_matches([scored("g", 40)], 1, MatchType.TRAINING)
        assert selected == []


class TestFindEnhancedMatches:
    """End-to-end tests for enhanced matching."""

    def test_perfect_competitive_match(self):
        """An identical local player is a high-confidence competitive match."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann"), make_player("bea")]

        result = find(engine, pool, match_type=MatchType.COMPETITIVE)

        assert result.found
        assert [p.player_id for p in result.matched_players] == ["bea"]
        assert result.match_score == pytest.approx(100.0)
        assert result.confidence_level == ConfidenceLevel.HIGH
        assert result.recommended_match_type == MatchType.COMPETITIVE
        assert result.skill_tolerance == pytest.approx(0.75)
        assert result.quality_metrics.skill_balance == 100.0

    def test_training_match(self):
        """Training requests score without bonuses."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann"), make_player("bea")]

        result = find(engine, pool, match_type=MatchType.TRAINING)

        assert result.found
        assert result.match_score == pytest.approx(98.0)
        assert result.recommended_match_type == MatchType.TRAINING

    def test_skill_level_fallback(self):
        """An unrated initiator is matched on the given skill level."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann", skill=None), make_player("bea", skill=3.0)]

        result = find(engine, pool, skill_level="intermediate")

        assert result.found
        assert result.matched_players[0].player_id == "bea"

    def test_sport_filter(self):
        """Players of another sport are not considered."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann"), make_player("bea", sport="Tennis")]
        assert find(engine, pool) == EnhancedMatchingResult.empty()

    def test_performance_history_used(self):
        """Diverging recent form lowers the performance balance."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann"), make_player("bea")]
        history = {"bea": [5, 5, 5, 1, 1, 1], "ann": [3, 3]}

        result = find(engine, pool, match_type=MatchType.COMPETITIVE, performance_history=history)

        # bea trend 4.0, ann trend 0.0
        assert result.quality_metrics.recent_performance_balance == pytest.approx(20.0)
        assert result.match_score == pytest.approx(93.0)

    def test_desired_count_respected(self):
        """No more than desired_count players are returned."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann")] + [make_player(f"p{i}") for i in range(6)]

        result = find(engine, pool, desired_count=2)
        assert len(result.matched_players) == 2

    @pytest.mark.parametrize("desired_count", [0, -1])
    def test_invalid_desired_count(self, desired_count):
        """desired_count must be at least 1."""
        engine = EnhancedMatchEngine()
        pool = [make_player("ann")] + [make_player(f"p{i}") for i in range(3)]

        with pytest.raises(ValidationError):
            find(engine, pool, desired_count=desired_count)
