"""
Constants for the Rally engine.

Tunable values (K-factor, default Elo, thresholds) live in src.config and are
injected into the engines; what remains here is fixed by the rules of the
game itself.
"""

# Elo defaults
DEFAULT_ELO = 1500
K_FACTOR = 32

# Elo rank ladder, highest first: (minimum rating, label)
RANK_TIERS = [
    (2200, "Grandmaster"),
    (2000, "Master"),
    (1800, "Expert"),
    (1600, "Skilled"),
    (1400, "Average"),
    (1200, "Novice"),
]
LOWEST_RANK = "Beginner"

# Skill scale used for matching (self/community reported)
MIN_SKILL = 0.0
MAX_SKILL = 7.0

# Textual skill levels mapped onto the numeric scale
SKILL_LEVEL_RATINGS = {
    "beginner": 1.0,
    "intermediate": 3.0,
    "advanced": 4.0,
    "professional": 5.0,
}
DEFAULT_SKILL_LEVEL_RATING = 2.5

# Availability tags
WEEKDAYS = "weekdays"
WEEKENDS = "weekends"
BOTH = "both"

# Bracket layout
BRACKET_SIZE = 16
# Seed position i of the draw maps to bracket slot SEED_ORDER_16[i].
# Seed 1 opens against 16, seed 2 against 15, top four land in separate quarters.
SEED_ORDER_16 = [0, 15, 7, 8, 3, 12, 4, 11, 2, 13, 5, 10, 6, 9, 1, 14]

# Performance ratings recorded per match (1-5 scale)
PERFORMANCE_HISTORY_LIMIT = 10
NEUTRAL_PERFORMANCE = 3.0

# League scoring
POINTS_PER_WIN = 3
LEAGUE_MIN_PLAYERS = 3
WEDNESDAY = 2  # date.weekday()
