"""
Exception taxonomy for the matchmaking, rating and tournament engine.

Engine functions either return a result or raise one of these. Nothing here
retries; callers translate failures for their users.
"""


class RallyError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(RallyError, ValueError):
    """Input has the wrong shape (too few players, unknown match, ...)."""


class InsufficientPlayersError(ValidationError):
    """Not enough players to build a bracket of the requested size."""

    def __init__(self, required: int, found: int):
        self.required = required
        self.found = found
        super().__init__(
            f"Not enough players for a {required}-player bracket: found {found}"
        )


class InsufficientCandidatesError(RallyError):
    """No pool member satisfies the matching filters."""


class InvalidWinnerError(RallyError):
    """A reported winner is not one of the match's two players."""

    def __init__(self, match_id: str, winner_id: str):
        self.match_id = match_id
        self.winner_id = winner_id
        super().__init__(f"Player {winner_id} is not part of match {match_id}")


class PersistenceError(RallyError):
    """Raised by the storage collaborator when a read or write fails."""


class StaleBracketError(PersistenceError):
    """The bracket changed since the caller last read it."""

    def __init__(self, bracket_id: str, expected: int, actual: int):
        self.bracket_id = bracket_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Bracket {bracket_id} is at version {actual}, expected {expected}"
        )


class BracketNotFoundError(RallyError):
    """No bracket is stored under the requested id."""
