"""
Round-robin league scheduling.

Uses the circle method: the first player stays fixed while everyone else
rotates one position per round. Odd-sized pools get a BYE placeholder whose
pairings are dropped, so every real pair meets exactly once.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from src.errors import ValidationError
from src.utils.constants import LEAGUE_MIN_PLAYERS, WEDNESDAY

BYE = None

Pairing = Tuple[str, str]


@dataclass
class LeagueWeek:
    """Matches played in one week of a balanced schedule."""
    week_number: int
    matches: List[Pairing]


@dataclass
class ScheduledRound:
    """A league round with its match date."""
    round_number: int
    match_date: date
    matches: List[Pairing]


def _validate_players(player_ids: Sequence[str], minimum: int):
    if len(player_ids) < minimum:
        raise ValidationError(f"Need at least {minimum} players, got {len(player_ids)}")
    if len(set(player_ids)) != len(player_ids):
        raise ValidationError("Player ids must be unique")


def round_robin(player_ids: Sequence[str]) -> List[List[Pairing]]:
    """
    Generate a full round-robin schedule.

    Args:
        player_ids: Ids of the league players

    Returns:
        n-1 rounds (n padded to even), each a list of (player, player) pairings

    Raises:
        ValidationError: If fewer than 2 players or ids repeat
    """
    _validate_players(player_ids, 2)

    players: List[Optional[str]] = list(player_ids)
    if len(players) % 2 == 1:
        players.append(BYE)

    n = len(players)
    schedule = []

    for _ in range(n - 1):
        round_matches = []
        for i in range(n // 2):
            a, b = players[i], players[n - 1 - i]
            if a is not BYE and b is not BYE:
                round_matches.append((a, b))
        schedule.append(round_matches)

        # Keep the first player fixed, rotate the rest one step
        players = [players[0], players[-1]] + players[1:-1]

    return schedule


def league_rounds(player_ids: Sequence[str]) -> List[List[Pairing]]:
    """
    Round-robin rounds for a league.

    Raises:
        ValidationError: If fewer than 3 players or ids repeat
    """
    _validate_players(player_ids, LEAGUE_MIN_PLAYERS)
    return round_robin(player_ids)


def balanced_schedule(player_ids: Sequence[str], weeks: int) -> List[LeagueWeek]:
    """
    Spread the round-robin over a fixed number of weeks.

    Rounds repeat from the start once the base cycle is used up.

    Args:
        player_ids: Ids of the league players
        weeks: Number of weeks to fill

    Returns:
        One LeagueWeek per week, numbered from 1
    """
    if weeks < 1:
        raise ValidationError(f"weeks must be at least 1, got {weeks}")

    rounds = round_robin(player_ids)
    return [
        LeagueWeek(week_number=week + 1, matches=list(rounds[week % len(rounds)]))
        for week in range(weeks)
    ]


def next_wednesday(day: date) -> date:
    """Return the date itself if it is a Wednesday, else the next one."""
    return day + timedelta(days=(WEDNESDAY - day.weekday()) % 7)


def create_league_schedule(
    player_ids: Sequence[str],
    start_date: date,
    weeks_between_matches: int = 1
) -> List[ScheduledRound]:
    """
    Schedule a mini-league: one round every `weeks_between_matches` weeks,
    always played on a Wednesday.

    Raises:
        ValidationError: If fewer than 3 players, ids repeat, or the interval is < 1
    """
    if weeks_between_matches < 1:
        raise ValidationError("weeks_between_matches must be at least 1")

    scheduled = []
    for index, matches in enumerate(league_rounds(player_ids)):
        day = start_date + timedelta(days=index * 7 * weeks_between_matches)
        scheduled.append(ScheduledRound(
            round_number=index + 1,
            match_date=next_wednesday(day),
            matches=matches
        ))
    return scheduled


def num_matchups(player_ids: Sequence[str]) -> int:
    """Number of distinct pairings in a round-robin."""
    n = len(player_ids)
    return n * (n - 1) // 2
