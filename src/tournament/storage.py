"""
Storage backend for players, ratings, brackets and league schedules.

Uses SQLite. Every read-modify-write (rating updates, bracket advancement)
runs inside one IMMEDIATE transaction, which holds the write lock from the
first read. Player rows carry a version that grows with every write; brackets
are written with compare-and-set on their version.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from src.errors import (
    BracketNotFoundError, PersistenceError, StaleBracketError, ValidationError
)
from src.matchmaking.models import Availability, Player
from src.tournament.bracket import BracketEngine, TournamentBracket
from src.tournament.elo import EloRatingSystem
from src.utils.constants import PERFORMANCE_HISTORY_LIMIT
from src.utils.log import setup_logger

logger = setup_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TournamentStorage:
    """
    Handles persistent storage for the engine.

    Uses SQLite tables in the rally.db database.
    """

    def __init__(self, data_dir: str = "data", timeout: float = 5.0):
        """
        Initialize storage backend.

        Args:
            data_dir: Base directory for data storage
            timeout: Seconds to wait for a locked database
        """
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / "rally.db"
        self.timeout = timeout

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize SQLite database schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    player_id TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    sport TEXT NOT NULL,
                    city TEXT NOT NULL,
                    gender TEXT NOT NULL,
                    skill_rating REAL,
                    elo_rating INTEGER,
                    availability TEXT NOT NULL DEFAULT 'both',
                    version INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS brackets (
                    bracket_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS match_performances (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    player_id TEXT NOT NULL,
                    performance_rating REAL,
                    recorded_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS league_schedules (
                    league_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    rounds TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_players_sport ON players(sport)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_performances_player "
                "ON match_performances(player_id, recorded_at)"
            )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block in one IMMEDIATE transaction.

        Commits on success, rolls back on any exception. SQLite errors are
        re-raised as PersistenceError; engine errors pass through unchanged.
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            logger.error("Could not open %s: %s", self.db_path, e)
            raise PersistenceError(f"Could not open database: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("Storage operation failed: %s", e)
            raise PersistenceError(str(e)) from e
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    # =========================================================================
    # Players and ratings
    # =========================================================================

    @staticmethod
    def _row_to_player(row: sqlite3.Row) -> Player:
        return Player(
            player_id=row['player_id'],
            display_name=row['display_name'],
            sport=row['sport'],
            city=row['city'],
            gender=row['gender'],
            skill_rating=row['skill_rating'],
            elo_rating=row['elo_rating'],
            availability=Availability(row['availability'])
        )

    def upsert_player(self, player: Player):
        """Insert a player or update their profile fields."""
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO players
                (player_id, display_name, sport, city, gender,
                 skill_rating, elo_rating, availability, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    sport = excluded.sport,
                    city = excluded.city,
                    gender = excluded.gender,
                    skill_rating = excluded.skill_rating,
                    elo_rating = excluded.elo_rating,
                    availability = excluded.availability,
                    version = players.version + 1,
                    updated_at = excluded.updated_at
            """, (
                player.player_id,
                player.display_name,
                player.sport,
                player.city,
                player.gender,
                player.skill_rating,
                player.elo_rating,
                player.availability.value,
                _now()
            ))

    def get_player(self, player_id: str) -> Optional[Player]:
        """Load a player by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM players WHERE player_id = ?", (player_id,)
            ).fetchone()
        return self._row_to_player(row) if row else None

    def list_players(self, sport: Optional[str] = None) -> List[Player]:
        """List players, optionally only those of one sport."""
        with self._transaction() as conn:
            if sport:
                rows = conn.execute(
                    "SELECT * FROM players WHERE sport = ? ORDER BY player_id", (sport,)
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM players ORDER BY player_id").fetchall()
        return [self._row_to_player(r) for r in rows]

    def apply_team_result(
        self,
        winner_ids: Sequence[str],
        loser_ids: Sequence[str],
        rating_system: EloRatingSystem
    ) -> Dict[str, int]:
        """
        Read ratings, compute the result and write the new ratings atomically.

        Either every player's rating is written or none is.

        Args:
            winner_ids: Players on the winning team
            loser_ids: Players on the losing team
            rating_system: Rating law to apply

        Returns:
            New ratings by player id

        Raises:
            ValidationError: If a player is unknown or the teams are invalid
            PersistenceError: If any write fails (nothing is written)
        """
        player_ids = list(winner_ids) + list(loser_ids)

        with self._transaction() as conn:
            placeholders = ",".join("?" for _ in player_ids)
            rows = conn.execute(
                f"SELECT player_id, elo_rating FROM players "
                f"WHERE player_id IN ({placeholders})",
                player_ids
            ).fetchall()

            current: Dict[str, Optional[int]] = {r['player_id']: r['elo_rating'] for r in rows}
            missing = [pid for pid in player_ids if pid not in current]
            if missing:
                raise ValidationError(f"Unknown players: {missing}")

            new_ratings = rating_system.process_team_result(current, winner_ids, loser_ids)

            updated_at = _now()
            for pid, rating in new_ratings.items():
                cursor = conn.execute("""
                    UPDATE players
                    SET elo_rating = ?, version = version + 1, updated_at = ?
                    WHERE player_id = ?
                """, (rating, updated_at, pid))
                if cursor.rowcount != 1:
                    raise PersistenceError(f"No stored player {pid} to write a rating for")

        logger.info("Applied result %s beat %s: %s", list(winner_ids), list(loser_ids), new_ratings)
        return new_ratings

    # =========================================================================
    # Performance history
    # =========================================================================

    def record_performance(self, player_id: str, performance_rating: Optional[float]):
        """Record a player's performance rating (1-5) for one match."""
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO match_performances (player_id, performance_rating, recorded_at)
                VALUES (?, ?, ?)
            """, (player_id, performance_rating, _now()))

    def recent_performance(
        self,
        player_ids: Sequence[str],
        limit: int = PERFORMANCE_HISTORY_LIMIT
    ) -> Dict[str, List[Optional[float]]]:
        """Last `limit` performance ratings per player, most recent first."""
        history: Dict[str, List[Optional[float]]] = {}
        with self._transaction() as conn:
            for pid in player_ids:
                rows = conn.execute("""
                    SELECT performance_rating FROM match_performances
                    WHERE player_id = ?
                    ORDER BY recorded_at DESC, id DESC
                    LIMIT ?
                """, (pid, limit)).fetchall()
                history[pid] = [r['performance_rating'] for r in rows]
        return history

    # =========================================================================
    # Brackets
    # =========================================================================

    def save_bracket(self, bracket: TournamentBracket):
        """Store a newly created bracket."""
        now = _now()
        with self._transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM brackets WHERE bracket_id = ?", (bracket.bracket_id,)
            ).fetchone()
            if exists:
                raise PersistenceError(f"Bracket {bracket.bracket_id} already exists")
            conn.execute("""
                INSERT INTO brackets (bracket_id, name, data, version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                bracket.bracket_id,
                bracket.name,
                json.dumps(bracket.to_dict()),
                bracket.version,
                now,
                now
            ))

    @staticmethod
    def _row_to_bracket(row: sqlite3.Row) -> TournamentBracket:
        bracket = TournamentBracket.from_dict(json.loads(row['data']))
        bracket.version = row['version']
        return bracket

    def load_bracket(self, bracket_id: str) -> TournamentBracket:
        """
        Load a bracket by ID.

        Raises:
            BracketNotFoundError: If no bracket has this id
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT data, version FROM brackets WHERE bracket_id = ?", (bracket_id,)
            ).fetchone()
        if not row:
            raise BracketNotFoundError(f"Bracket {bracket_id} not found")
        return self._row_to_bracket(row)

    def _write_bracket(
        self,
        conn: sqlite3.Connection,
        bracket: TournamentBracket,
        expected_version: int
    ):
        cursor = conn.execute("""
            UPDATE brackets
            SET data = ?, version = ?, updated_at = ?
            WHERE bracket_id = ? AND version = ?
        """, (
            json.dumps(bracket.to_dict()),
            bracket.version,
            _now(),
            bracket.bracket_id,
            expected_version
        ))
        if cursor.rowcount == 1:
            return

        row = conn.execute(
            "SELECT version FROM brackets WHERE bracket_id = ?", (bracket.bracket_id,)
        ).fetchone()
        if not row:
            raise BracketNotFoundError(f"Bracket {bracket.bracket_id} not found")
        raise StaleBracketError(bracket.bracket_id, expected_version, row['version'])

    def update_bracket(self, bracket: TournamentBracket, expected_version: int):
        """
        Compare-and-set write of a bracket.

        Raises:
            StaleBracketError: If the stored version is not expected_version
            BracketNotFoundError: If the bracket does not exist
        """
        with self._transaction() as conn:
            self._write_bracket(conn, bracket, expected_version)

    def advance_bracket(
        self,
        bracket_id: str,
        match_id: str,
        winner_id: str,
        engine: BracketEngine,
        expected_version: Optional[int] = None
    ) -> TournamentBracket:
        """
        Read, advance and write back a bracket as one atomic step.

        Args:
            bracket_id: Bracket to update
            match_id: Match being reported
            winner_id: Winner of that match
            engine: Bracket engine that applies the result
            expected_version: Version the caller last saw (None skips the check)

        Returns:
            The bracket as stored after the update
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT data, version FROM brackets WHERE bracket_id = ?", (bracket_id,)
            ).fetchone()
            if not row:
                raise BracketNotFoundError(f"Bracket {bracket_id} not found")

            current = self._row_to_bracket(row)
            updated = engine.advance(current, match_id, winner_id, expected_version)
            if updated.version != current.version:
                self._write_bracket(conn, updated, current.version)

        return updated

    def list_brackets(self, limit: int = 20) -> List[Dict[str, object]]:
        """List recent brackets."""
        with self._transaction() as conn:
            rows = conn.execute("""
                SELECT bracket_id, name, version, created_at, updated_at
                FROM brackets
                ORDER BY created_at DESC
                LIMIT ?
            """, (limit,)).fetchall()
        return [dict(row) for row in rows]

    # =========================================================================
    # League schedules
    # =========================================================================

    def save_league_schedule(self, league_id: str, name: str, rounds: List[List[Tuple[str, str]]]):
        """Store the schedule generated at league creation."""
        with self._transaction() as conn:
            conn.execute("""
                INSERT INTO league_schedules (league_id, name, rounds, created_at)
                VALUES (?, ?, ?, ?)
            """, (league_id, name, json.dumps([[list(p) for p in r] for r in rounds]), _now()))

    def load_league_schedule(self, league_id: str) -> Optional[List[List[Tuple[str, str]]]]:
        """Load a stored schedule, or None."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT rounds FROM league_schedules WHERE league_id = ?", (league_id,)
            ).fetchone()
        if not row:
            return None
        return [[(a, b) for a, b in r] for r in json.loads(row['rounds'])]
