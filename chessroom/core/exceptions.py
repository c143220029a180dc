"""
Custom exceptions.

Everything derives from GameError, so the layer handling requests only has to catch a single type.
"""


class GameError(Exception):
    """Top-level exception for anything going wrong while playing a game."""


# --- NOTATION ---
class ResolutionError(GameError):
    """Notation could not be turned into exactly one move."""

    def __init__(self, notation: str, message: str) -> None:
        super().__init__(message)
        self.notation = notation


class UnparseableNotation(ResolutionError):
    """The notation does not look like any known way of writing a move."""


class NoLegalCandidate(ResolutionError):
    """The notation was understood, but no legal move matches it."""


class AmbiguousCandidate(ResolutionError):
    """More than one legal move matches the notation. The player has to disambiguate."""

    def __init__(self, notation: str, message: str, candidates: list[str]) -> None:
        super().__init__(notation, message)
        self.candidates = candidates


# --- RULES ---
class InvalidPositionError(GameError):
    """Position encoding (FEN) cannot be loaded."""


class IllegalMoveError(GameError):
    """A move was submitted that is not allowed in the current position."""


# --- GAME STATE / PRECONDITIONS ---
class GameStateError(GameError):
    """Operation is not allowed given the current state of the game."""


class InvalidStateError(GameStateError):
    """Game has the wrong status for the requested operation."""


class OutOfTurnError(GameStateError):
    """Player attempted to move while it is the opponent's turn."""


class SelfJoinError(GameStateError):
    """The creator of a game tried to join as its opponent."""


class SelfResponseError(GameStateError):
    """The player who offered a draw tried to answer their own offer."""


class NoDrawOfferedError(GameStateError):
    """Response to a draw offer, but there is none pending."""


class AlreadyInActiveGameError(GameStateError):
    """A player can only take part in one unfinished game at a time."""


class NotAParticipantError(GameStateError):
    """Player is not seated in this game."""


# --- PERSISTENCE ---
class RepositoryError(GameError):
    """Something went wrong on the persistence side."""


class GameNotFoundError(RepositoryError):
    """No game is stored under the requested ID."""


# --- API ---
class InvalidRequestError(GameError):
    """Request data cannot be interpreted."""
