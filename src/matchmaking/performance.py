"""
Recent-performance trend from a player's match history.

History is a sequence of per-match performance ratings (1-5 scale), most
recent first, fetched by the caller before matching starts.
"""

from typing import Dict, Iterable, Mapping, Optional, Sequence

import numpy as np

from src.utils.constants import NEUTRAL_PERFORMANCE, PERFORMANCE_HISTORY_LIMIT


def performance_trend(history: Sequence[Optional[float]]) -> float:
    """
    Calculate a performance trend.

    trend = mean(3 most recent) - mean(next 3 older). Positive means the
    player is improving. Missing ratings count as neutral (3).

    Args:
        history: Performance ratings, most recent first

    Returns:
        Trend value, 0.0 with fewer than 2 matches
    """
    ratings = [
        NEUTRAL_PERFORMANCE if r is None else float(r)
        for r in list(history)[:PERFORMANCE_HISTORY_LIMIT]
    ]
    if len(ratings) < 2:
        return 0.0

    recent = np.array(ratings[:3])
    older = np.array(ratings[3:6])

    recent_avg = recent.mean()
    older_avg = older.mean() if older.size > 0 else recent_avg
    return float(recent_avg - older_avg)


def trends_for(
    player_ids: Iterable[str],
    history: Optional[Mapping[str, Sequence[Optional[float]]]]
) -> Dict[str, float]:
    """Compute trends for several players; players without history get 0."""
    history = history or {}
    return {pid: performance_trend(history.get(pid, ())) for pid in player_ids}
