"""
Engine configuration.

All tunable numbers are collected in one EngineConfig so that each sport or
deployment can run the engine with its own values. The basic scorer and the
enhanced engine use different gates; both live here side by side.
"""

import os
from dataclasses import dataclass

from src.utils.constants import DEFAULT_ELO, K_FACTOR


@dataclass
class EngineConfig:
    """Configuration shared by the rating, matching and tournament engines."""
    k_factor: int = K_FACTOR
    default_elo: int = DEFAULT_ELO

    # Basic scorer: found requires top score above this and a close skill gap
    found_score_threshold: float = 70.0
    max_skill_gap: float = 1.0

    # Enhanced engine
    quality_threshold: float = 75.0
    medium_quality_floor: float = 60.0
    found_average_threshold: float = 60.0
    high_confidence: float = 85.0
    medium_confidence: float = 70.0
    min_skill_tolerance: float = 0.3
    max_skill_tolerance: float = 1.5

    # Storage and logging
    data_dir: str = "data"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build a config from environment variables.

        Only the Elo constants, the data directory and the log level are
        read from the environment; thresholds keep their defaults.
        """
        return cls(
            k_factor=int(os.getenv("RALLY_K_FACTOR", K_FACTOR)),
            default_elo=int(os.getenv("RALLY_DEFAULT_ELO", DEFAULT_ELO)),
            data_dir=os.getenv("RALLY_DATA_DIR", "data"),
            log_level=os.getenv("RALLY_LOG_LEVEL", "INFO").upper(),
        )
