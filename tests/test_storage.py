"""
Integration tests for the SQLite storage backend.
"""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from src.errors import (
    BracketNotFoundError, PersistenceError, StaleBracketError, ValidationError
)
from src.matchmaking.models import Availability, Player
from src.tournament.bracket import BracketEngine
from src.tournament.elo import EloRatingSystem
from src.tournament.storage import TournamentStorage


def make_player(player_id, elo=1500, sport="Padel"):
    return Player(
        player_id=player_id,
        display_name=player_id.title(),
        sport=sport,
        city="Stockholm",
        gender="female",
        skill_rating=3.0,
        elo_rating=elo,
        availability=Availability.WEEKENDS
    )


class GhostRatingSystem(EloRatingSystem):
    """Returns a rating for a player who is not stored."""

    def process_team_result(self, ratings, winner_ids, loser_ids):
        new = super().process_team_result(ratings, winner_ids, loser_ids)
        new["ghost"] = 1400
        return new


@pytest.fixture
def temp_storage():
    """Create storage in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield TournamentStorage(data_dir=tmpdir)


@pytest.fixture
def engine():
    return BracketEngine(seed=3)


@pytest.fixture
def stored_bracket(temp_storage, engine):
    players = [make_player(f"p{i:02d}", elo=1800 - i) for i in range(16)]
    bracket = engine.create_bracket(players, "Club Cup", bracket_id="cup")
    temp_storage.save_bracket(bracket)
    return bracket


class TestPlayers:
    """Tests for player records."""

    def test_upsert_and_get(self, temp_storage):
        """A stored player reads back unchanged."""
        player = make_player("ann", elo=1620)
        temp_storage.upsert_player(player)

        assert temp_storage.get_player("ann") == player

    def test_get_missing(self, temp_storage):
        """Unknown players read back as None."""
        assert temp_storage.get_player("nobody") is None

    def test_upsert_updates(self, temp_storage):
        """Upserting again replaces the profile."""
        temp_storage.upsert_player(make_player("ann"))
        updated = make_player("ann", elo=1700)
        updated.city = "Uppsala"
        temp_storage.upsert_player(updated)

        loaded = temp_storage.get_player("ann")
        assert loaded.city == "Uppsala"
        assert loaded.elo_rating == 1700

    def test_list_by_sport(self, temp_storage):
        """Players can be listed per sport."""
        temp_storage.upsert_player(make_player("ann", sport="Padel"))
        temp_storage.upsert_player(make_player("bea", sport="Tennis"))
        temp_storage.upsert_player(make_player("cat", sport="Padel"))

        assert [p.player_id for p in temp_storage.list_players()] == ["ann", "bea", "cat"]
        assert [p.player_id for p in temp_storage.list_players(sport="Padel")] == ["ann", "cat"]


class TestRatings:
    """Tests for atomic rating updates."""

    def test_singles_result(self, temp_storage):
        """A singles result is written to both players."""
        temp_storage.upsert_player(make_player("ann"))
        temp_storage.upsert_player(make_player("bea"))

        new = temp_storage.apply_team_result(["ann"], ["bea"], EloRatingSystem())

        assert new == {"ann": 1516, "bea": 1484}
        assert temp_storage.get_player("ann").elo_rating == 1516
        assert temp_storage.get_player("bea").elo_rating == 1484

    def test_doubles_result(self, temp_storage):
        """Every team member moves by the same delta."""
        for pid, elo in [("a", 1600), ("b", 1400), ("c", 1500), ("d", 1500)]:
            temp_storage.upsert_player(make_player(pid, elo=elo))

        temp_storage.apply_team_result(["a", "b"], ["c", "d"], EloRatingSystem())

        assert temp_storage.get_player("a").elo_rating == 1616
        assert temp_storage.get_player("b").elo_rating == 1416
        assert temp_storage.get_player("c").elo_rating == 1484
        assert temp_storage.get_player("d").elo_rating == 1484

    def test_unrated_player_defaults(self, temp_storage):
        """A stored player without Elo is rated from 1500."""
        temp_storage.upsert_player(make_player("ann", elo=None))
        temp_storage.upsert_player(make_player("bea"))

        new = temp_storage.apply_team_result(["ann"], ["bea"], EloRatingSystem())
        assert new["ann"] == 1516

    def test_unknown_player_writes_nothing(self, temp_storage):
        """An unknown player aborts the whole update."""
        temp_storage.upsert_player(make_player("ann"))

        with pytest.raises(ValidationError):
            temp_storage.apply_team_result(["ann"], ["nobody"], EloRatingSystem())
        assert temp_storage.get_player("ann").elo_rating == 1500

    def test_failed_write_rolls_back(self, temp_storage):
        """If any row cannot be written, no rating changes."""
        temp_storage.upsert_player(make_player("ann"))
        temp_storage.upsert_player(make_player("bea"))

        with pytest.raises(PersistenceError):
            temp_storage.apply_team_result(["ann"], ["bea"], GhostRatingSystem())

        assert temp_storage.get_player("ann").elo_rating == 1500
        assert temp_storage.get_player("bea").elo_rating == 1500

    def test_rating_write_bumps_version(self, temp_storage):
        """Each rating write increments the player row version."""
        temp_storage.upsert_player(make_player("ann"))
        temp_storage.upsert_player(make_player("bea"))

        temp_storage.apply_team_result(["ann"], ["bea"], EloRatingSystem())

        conn = sqlite3.connect(temp_storage.db_path)
        versions = dict(conn.execute("SELECT player_id, version FROM players"))
        conn.close()
        assert versions == {"ann": 2, "bea": 2}


class TestPerformance:
    """Tests for performance history."""

    def test_most_recent_first(self, temp_storage):
        """History is returned newest first, capped at the limit."""
        for rating in range(12):
            temp_storage.record_performance("ann", float(rating % 5 + 1))

        history = temp_storage.recent_performance(["ann"])["ann"]
        assert len(history) == 10
        assert history[0] == float(11 % 5 + 1)
        assert history[1] == float(10 % 5 + 1)

    def test_missing_rating_kept(self, temp_storage):
        """Matches without a performance rating are stored as None."""
        temp_storage.record_performance("ann", None)
        assert temp_storage.recent_performance(["ann"]) == {"ann": [None]}

    def test_player_without_history(self, temp_storage):
        """Players without matches get an empty history."""
        assert temp_storage.recent_performance(["bea"], limit=3) == {"bea": []}


class TestBrackets:
    """Tests for bracket persistence."""

    def test_save_and_load(self, temp_storage, stored_bracket):
        """A saved bracket loads back identically."""
        loaded = temp_storage.load_bracket("cup")
        assert loaded.to_dict() == stored_bracket.to_dict()

    def test_load_missing(self, temp_storage):
        """Unknown brackets raise BracketNotFoundError."""
        with pytest.raises(BracketNotFoundError):
            temp_storage.load_bracket("missing")

    def test_duplicate_save(self, temp_storage, stored_bracket):
        """A bracket id can only be saved once."""
        with pytest.raises(PersistenceError):
            temp_storage.save_bracket(stored_bracket)

    def test_compare_and_set(self, temp_storage, stored_bracket, engine):
        """A write based on an old version is refused."""
        winner = stored_bracket.get_match("R1M1").player1.player_id
        updated = engine.advance(stored_bracket, "R1M1", winner)
        temp_storage.update_bracket(updated, expected_version=1)

        assert temp_storage.load_bracket("cup").version == 2

        with pytest.raises(StaleBracketError) as exc_info:
            temp_storage.update_bracket(updated, expected_version=1)
        assert exc_info.value.actual == 2

    def test_advance_bracket(self, temp_storage, stored_bracket, engine):
        """Advancing through storage persists the new state."""
        winner = stored_bracket.get_match("R1M2").player2.player_id
        result = temp_storage.advance_bracket("cup", "R1M2", winner, engine, expected_version=1)

        loaded = temp_storage.load_bracket("cup")
        assert result.version == 2
        assert loaded.version == 2
        assert loaded.get_match("R2M1").player2.player_id == winner

    def test_advance_stale(self, temp_storage, stored_bracket, engine):
        """Two writers reading version 1: the second one is refused."""
        first = stored_bracket.get_match("R1M1").player1.player_id
        second = stored_bracket.get_match("R1M3").player1.player_id

        temp_storage.advance_bracket("cup", "R1M1", first, engine, expected_version=1)
        with pytest.raises(StaleBracketError):
            temp_storage.advance_bracket("cup", "R1M3", second, engine, expected_version=1)

        loaded = temp_storage.load_bracket("cup")
        assert loaded.version == 2
        assert loaded.get_match("R1M3").winner is None

    def test_advance_repeat_keeps_version(self, temp_storage, stored_bracket, engine):
        """Reporting the same result twice stores it once."""
        winner = stored_bracket.get_match("R1M1").player1.player_id
        temp_storage.advance_bracket("cup", "R1M1", winner, engine)
        again = temp_storage.advance_bracket("cup", "R1M1", winner, engine)

        assert again.version == 2
        assert temp_storage.load_bracket("cup").version == 2

    def test_advance_missing(self, temp_storage, engine):
        """Advancing an unknown bracket raises BracketNotFoundError."""
        with pytest.raises(BracketNotFoundError):
            temp_storage.advance_bracket("missing", "R1M1", "p00", engine)

    def test_list_brackets(self, temp_storage, stored_bracket):
        """Stored brackets are listed."""
        brackets = temp_storage.list_brackets()
        assert [b['bracket_id'] for b in brackets] == ["cup"]
        assert brackets[0]['version'] == 1


class TestLeagueSchedules:
    """Tests for stored league schedules."""

    def test_save_and_load(self, temp_storage):
        """A schedule reads back as rounds of pairs."""
        rounds = [[("a", "d"), ("b", "c")], [("a", "c"), ("d", "b")]]
        temp_storage.save_league_schedule("spring", "Spring League", rounds)

        assert temp_storage.load_league_schedule("spring") == rounds

    def test_load_missing(self, temp_storage):
        """Unknown leagues read back as None."""
        assert temp_storage.load_league_schedule("autumn") is None


class TestFailures:
    """Tests for storage failures."""

    def test_unusable_database(self):
        """SQLite errors surface as PersistenceError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = TournamentStorage(data_dir=tmpdir)
            storage.db_path = Path(tmpdir)

            with pytest.raises(PersistenceError):
                storage.get_player("ann")
